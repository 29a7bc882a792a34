"""
Rolling baseline construction from historical daily aggregates.

The baseline window is the set of prior days a current day is compared
against. The caller supplies history already ordered (most recent first);
the builder drops the day under evaluation, caps the window and derives one
sample per metric per surviving day.

A metric sample is dropped, not zero-filled, when its ratio is undefined for
that day. Baseline arrays may therefore differ in length.
"""

import datetime
from typing import Iterable, Optional

import structlog

from portfolio_analytics import constants
from portfolio_analytics.engine.derived import (
    engagement_avg,
    quality_visit_rate,
    social_ctr,
    ttfi_mean,
    views_of,
)
from portfolio_analytics.models.metrics import BaselineArrays, DailyAggregateMetrics

logger = structlog.get_logger()


def select_window(
    history: Iterable[DailyAggregateMetrics],
    exclude_date: Optional[datetime.date],
    window_days: int,
) -> list[DailyAggregateMetrics]:
    """
    Baseline window: history without exclude_date, capped at window_days entries.

    Raises:
        ValueError: If window_days < 1
    """
    if window_days < 1:
        raise ValueError(f"window_days must be >= 1, got {window_days}")

    window: list[DailyAggregateMetrics] = []
    for metrics in history:
        if metrics.date == exclude_date:
            continue
        window.append(metrics)
        if len(window) == window_days:
            break
    return window


def build_baseline(
    history: Iterable[DailyAggregateMetrics],
    exclude_date: Optional[datetime.date],
    window_days: int = constants.BASELINE_WINDOW_DAYS,
) -> Optional[BaselineArrays]:
    """
    Build per-metric baseline arrays.

    Args:
        history: Prior daily aggregates, most recent first
        exclude_date: Day under evaluation, never part of its own baseline
        window_days: Maximum number of days in the window

    Returns:
        BaselineArrays, or None when fewer than two days survive filtering

    Raises:
        ValueError: If window_days < 1

    Example:
        >>> arrays = build_baseline(history, date(2026, 3, 10), window_days=30)
        >>> arrays.views if arrays else "not enough data"
    """
    window = select_window(history, exclude_date, window_days)
    if len(window) < constants.MIN_BASELINE_POINTS:
        logger.debug(
            "baseline_insufficient_history",
            exclude_date=str(exclude_date),
            days=len(window),
        )
        return None

    arrays = BaselineArrays()
    for metrics in window:
        samples = (
            (arrays.views, views_of(metrics)),
            (arrays.engagement_avg, engagement_avg(metrics.engagement, metrics.scroll)),
            (arrays.ttfi, ttfi_mean(metrics.scroll)),
            (arrays.quality_rate, quality_visit_rate(metrics.engagement)),
            (arrays.social_ctr, social_ctr(metrics.engagement)),
        )
        for target, value in samples:
            if value is not None:
                target.append(value)

    return arrays
