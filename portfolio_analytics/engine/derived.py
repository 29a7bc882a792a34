"""
Derived ratio metrics for daily aggregates and projects.

Every ratio is undefined (None) when its denominator is missing or zero, or
when an operand is missing. Undefined ratios are never zero-filled: a day with
no views has no engagement average, it does not have an average of zero.

Stored durations (scroll time, project view time) are in coarse time units;
``time_unit_ms`` converts them to milliseconds.
"""

from typing import Optional

from portfolio_analytics import constants
from portfolio_analytics.models.metrics import (
    DailyAggregateMetrics,
    DerivedMetrics,
    Engagement,
    InteractionMetrics,
    ProjectDerivedMetrics,
    ProjectMetrics,
)


def safe_div(numerator: Optional[float], denominator: Optional[float]) -> Optional[float]:
    """numerator / denominator, or None when either is None or the denominator is 0."""
    if numerator is None or denominator is None or denominator == 0:
        return None
    return float(numerator) / float(denominator)


def _to_ms(value: Optional[int], time_unit_ms: int) -> Optional[float]:
    if value is None:
        return None
    return float(value) * time_unit_ms


# ---------------------------------------------------------------------------
# Scored ratios, shared with the baseline builder
# ---------------------------------------------------------------------------


def views_of(metrics: DailyAggregateMetrics) -> Optional[float]:
    if metrics.engagement is None:
        return None
    return float(metrics.engagement.views)


def engagement_avg(
    engagement: Optional[Engagement], scroll: Optional[InteractionMetrics]
) -> Optional[float]:
    """Average scroll score per view."""
    if engagement is None or scroll is None:
        return None
    return safe_div(scroll.score_total, engagement.views)


def ttfi_mean(scroll: Optional[InteractionMetrics]) -> Optional[float]:
    """Mean time to first interaction in ms."""
    if scroll is None:
        return None
    return safe_div(scroll.ttfi_sum_ms, scroll.ttfi_count)


def quality_visit_rate(engagement: Optional[Engagement]) -> Optional[float]:
    if engagement is None:
        return None
    return safe_div(engagement.quality_visits, engagement.views)


def social_ctr(engagement: Optional[Engagement]) -> Optional[float]:
    if engagement is None:
        return None
    return safe_div(engagement.social_clicks, engagement.views)


# ---------------------------------------------------------------------------
# Full derived sets
# ---------------------------------------------------------------------------


def calculate_derived_metrics(
    engagement: Optional[Engagement],
    scroll: Optional[InteractionMetrics],
    projects: Optional[ProjectMetrics],
    time_unit_ms: int = constants.TIME_UNIT_MS,
) -> DerivedMetrics:
    """
    Derive the day's ratio metrics.

    Args:
        engagement: Engagement counters, None on incomplete rows
        scroll: Scroll and TTFI totals
        projects: Cumulative project totals
        time_unit_ms: Milliseconds per stored time unit

    Returns:
        DerivedMetrics; every field None when engagement is missing
    """
    if engagement is None:
        return DerivedMetrics()

    views = engagement.views
    desktop = engagement.devices.desktop_views
    mobile = engagement.devices.mobile_tablet_views
    device_views = desktop + mobile

    return DerivedMetrics(
        desktop_share=safe_div(desktop, device_views),
        mobile_tablet_share=safe_div(mobile, device_views),
        engagement_avg=engagement_avg(engagement, scroll),
        avg_scroll_time_ms=safe_div(
            _to_ms(scroll.scroll_time_total if scroll else None, time_unit_ms), views
        ),
        avg_project_view_time_ms=safe_div(
            _to_ms(projects.view_time if projects else None, time_unit_ms),
            projects.exposures if projects else None,
        ),
        ttfi_mean_ms=ttfi_mean(scroll),
        email_copy_rate=safe_div(engagement.email_copies, views),
        quality_visit_rate=quality_visit_rate(engagement),
        social_ctr=social_ctr(engagement),
    )


def calculate_project_derived(
    project: Optional[ProjectMetrics],
    time_unit_ms: int = constants.TIME_UNIT_MS,
) -> ProjectDerivedMetrics:
    """Per-exposure ratios of one project."""
    if project is None:
        return ProjectDerivedMetrics()

    return ProjectDerivedMetrics(
        avg_view_time_ms=safe_div(_to_ms(project.view_time, time_unit_ms), project.exposures),
        code_view_rate=safe_div(project.code_views, project.exposures),
        live_view_rate=safe_div(project.live_views, project.exposures),
    )
