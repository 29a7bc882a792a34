"""
Read-side enrichment of stored aggregates and slots.

Z-scores are computed on every read and never persisted. For a history
ordered most recent first, the baseline of entry i is the window_days entries
that follow it (the days before it).
"""

from typing import Optional, Sequence

from portfolio_analytics import constants
from portfolio_analytics.engine.derived import calculate_derived_metrics, calculate_project_derived
from portfolio_analytics.engine.zscore import PortfolioZScoreCalculator
from portfolio_analytics.models.heatmap import DetailSlot, EnhancedDetailSlot
from portfolio_analytics.models.metrics import DailyAggregateMetrics, EnhancedDailyMetrics


def enhance_day(
    metrics: DailyAggregateMetrics,
    prior_days: Sequence[DailyAggregateMetrics],
    window_days: int = constants.BASELINE_WINDOW_DAYS,
    time_unit_ms: int = constants.TIME_UNIT_MS,
    calculator: Optional[PortfolioZScoreCalculator] = None,
) -> EnhancedDailyMetrics:
    """Derived metrics and z-scores of one day against the given prior days."""
    calculator = calculator or PortfolioZScoreCalculator()
    return EnhancedDailyMetrics(
        metrics=metrics,
        derived=calculate_derived_metrics(
            metrics.engagement, metrics.scroll, metrics.projects, time_unit_ms
        ),
        zscores=calculator.calculate(metrics, prior_days, window_days),
    )


def enhance_metrics(
    history: Sequence[DailyAggregateMetrics],
    window_days: int = constants.BASELINE_WINDOW_DAYS,
    time_unit_ms: int = constants.TIME_UNIT_MS,
) -> list[EnhancedDailyMetrics]:
    """
    Enrich every day of a history with derived metrics and z-scores.

    Args:
        history: Daily aggregates, most recent first
        window_days: Baseline window per day
        time_unit_ms: Milliseconds per stored time unit

    Returns:
        Enhanced days in the same order

    Raises:
        ValueError: If window_days < 1
    """
    if window_days < 1:
        raise ValueError(f"window_days must be >= 1, got {window_days}")

    calculator = PortfolioZScoreCalculator()
    return [
        enhance_day(
            metrics,
            history[i + 1 : i + 1 + window_days],
            window_days,
            time_unit_ms,
            calculator,
        )
        for i, metrics in enumerate(history)
    ]


def enhance_slot(
    slot: DetailSlot,
    time_unit_ms: int = constants.TIME_UNIT_MS,
) -> EnhancedDetailSlot:
    """Attach per-project derived ratios to a detail slot."""
    return EnhancedDetailSlot(
        slot=slot,
        project_derived={
            project.id: calculate_project_derived(project, time_unit_ms)
            for project in slot.projects
        },
    )
