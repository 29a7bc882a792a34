"""
Streaming z-scores against a rolling baseline.

Mean and sample variance are computed in a single pass with Welford's
algorithm:

    n += 1
    delta = x - mean
    mean += delta / n
    M2 += delta * (x - mean)
    variance = M2 / (n - 1)

Scores are clamped to [-3, +3] for display. A flat baseline (std == 0) carries
no signal and scores exactly 0.0. Missing inputs and baselines with fewer than
two points score None ("not enough data"), never raise.

Latency-like metrics use the inverted score: optionally log-transformed with
ln(max(x, 1)) to compress long-tail outliers, then negated so that an
improvement (lower than baseline) is positive.
"""

import math
from typing import Iterable, Optional, Sequence

import structlog

from portfolio_analytics import constants
from portfolio_analytics.engine.baseline import build_baseline
from portfolio_analytics.engine.derived import (
    engagement_avg,
    quality_visit_rate,
    social_ctr,
    ttfi_mean,
    views_of,
)
from portfolio_analytics.models.enums import ZScoreMetric
from portfolio_analytics.models.metrics import DailyAggregateMetrics, ZScoreSet


def clamp_zscore(value: float, limit: float = constants.ZSCORE_CLAMP) -> float:
    return max(-limit, min(limit, value))


def zscore(current: Optional[float], baseline: Optional[Sequence[float]]) -> Optional[float]:
    """
    Clamped z-score of current against baseline.

    Args:
        current: Value under evaluation, None when undefined
        baseline: Baseline samples

    Returns:
        Score in [-3, 3], 0.0 for a flat baseline, None with fewer than two points

    Example:
        >>> round(zscore(15.0, [10, 12, 8, 14, 11]), 2)
        1.79
    """
    if current is None or baseline is None or len(baseline) < constants.MIN_BASELINE_POINTS:
        return None

    n = 0
    mean = 0.0
    m2 = 0.0
    for x in baseline:
        n += 1
        delta = x - mean
        mean += delta / n
        m2 += delta * (x - mean)

    variance = m2 / (n - 1)
    std = math.sqrt(max(variance, 0.0))
    if std == 0.0:
        return 0.0

    return clamp_zscore((current - mean) / std)


def inverted_zscore(
    current: Optional[float],
    baseline: Optional[Sequence[float]],
    use_log_transform: bool = True,
) -> Optional[float]:
    """Negated z-score for lower-is-better metrics."""
    if current is None or baseline is None or len(baseline) < constants.MIN_BASELINE_POINTS:
        return None

    if use_log_transform:
        current = math.log(max(current, 1.0))
        baseline = [math.log(max(x, 1.0)) for x in baseline]

    score = zscore(current, baseline)
    if score is None:
        return None
    # -0.0 from a flat baseline stays a plain zero
    return -score if score != 0.0 else 0.0


class PortfolioZScoreCalculator:
    """
    Scores a day's aggregate against its prior-day baseline window.

    Scored metrics: views, engagement average, TTFI mean (inverted, log
    transformed), quality visit rate and social CTR.

    Example:
        >>> calculator = PortfolioZScoreCalculator()
        >>> scores = calculator.calculate(today, history, window_days=30)
        >>> scores.views
    """

    INVERTED_METRICS = frozenset({ZScoreMetric.TTFI})

    def __init__(self, use_log_transform: bool = True):
        self.use_log_transform = use_log_transform
        self.logger = structlog.get_logger()

    @staticmethod
    def current_values(metrics: DailyAggregateMetrics) -> dict[ZScoreMetric, Optional[float]]:
        """Values of the scored metrics for one day."""
        return {
            ZScoreMetric.VIEWS: views_of(metrics),
            ZScoreMetric.ENGAGEMENT_AVG: engagement_avg(metrics.engagement, metrics.scroll),
            ZScoreMetric.TTFI: ttfi_mean(metrics.scroll),
            ZScoreMetric.QUALITY_VISIT_RATE: quality_visit_rate(metrics.engagement),
            ZScoreMetric.SOCIAL_CTR: social_ctr(metrics.engagement),
        }

    def calculate(
        self,
        current: Optional[DailyAggregateMetrics],
        history: Iterable[DailyAggregateMetrics],
        window_days: int = constants.BASELINE_WINDOW_DAYS,
    ) -> ZScoreSet:
        """
        Compute the z-score set of a day.

        Args:
            current: Day under evaluation
            history: Prior days, most recent first; current's date is skipped
            window_days: Maximum baseline window

        Returns:
            ZScoreSet; all fields None when no baseline is available

        Raises:
            ValueError: If window_days < 1
        """
        if current is None:
            return ZScoreSet()

        baseline = build_baseline(history, current.date, window_days)
        if baseline is None:
            return ZScoreSet()

        scores: dict[str, Optional[float]] = {}
        for metric, value in self.current_values(current).items():
            samples = baseline.values_for(metric)
            if metric in self.INVERTED_METRICS:
                scores[metric.value] = inverted_zscore(value, samples, self.use_log_transform)
            else:
                scores[metric.value] = zscore(value, samples)

        self.logger.debug(
            "zscores_calculated",
            portfolio_id=current.portfolio_id,
            date=str(current.date),
            **scores,
        )
        return ZScoreSet(**scores)
