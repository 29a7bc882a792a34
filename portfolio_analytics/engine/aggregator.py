"""
Session-to-daily aggregate merge.

A visitor session produces engagement, scroll and project deltas. The
aggregator folds them into the portfolio's running aggregate for the day,
returning a new aggregate and never mutating its inputs.

Merge Policies:
    Every counter has an explicit policy in FIELD_POLICIES. All counters are
    additive (MergePolicy.SUM) so that a day's aggregate is exactly the sum of
    its sessions and ratios such as score_total / views stay exact.

    MergePolicy.EMA keeps the older smoothing behaviour for callers that still
    store running averages in a field. It is opt-in per field through the
    constructor and uses apply_ema():

        sample < 1    -> previous is kept (no sample)
        previous < 1  -> sample is taken (uninitialized)
        otherwise     -> round(previous + alpha * (sample - previous))

Quality Visit Rule:
    A session is a quality visit iff the visitor interacted at all
    (ttfi > ttfi_min) or scrolled deep and long enough
    (score >= score_min and scroll_time >= scroll_time_min).
"""

import math
from typing import Optional, TypeVar

import structlog
from pydantic import BaseModel

from portfolio_analytics import constants
from portfolio_analytics.models.enums import MergePolicy
from portfolio_analytics.models.metrics import (
    DailyAggregateMetrics,
    Engagement,
    InteractionMetrics,
    ProjectMetrics,
    ProjectMetricsWithId,
)

M = TypeVar("M", bound=BaseModel)

FIELD_POLICIES: dict[str, MergePolicy] = {
    "engagement.active_time": MergePolicy.SUM,
    "engagement.views": MergePolicy.SUM,
    "engagement.quality_visits": MergePolicy.SUM,
    "engagement.email_copies": MergePolicy.SUM,
    "engagement.social_clicks": MergePolicy.SUM,
    "engagement.devices.desktop_views": MergePolicy.SUM,
    "engagement.devices.mobile_tablet_views": MergePolicy.SUM,
    "scroll.score_total": MergePolicy.SUM,
    "scroll.scroll_time_total": MergePolicy.SUM,
    "scroll.ttfi_sum_ms": MergePolicy.SUM,
    "scroll.ttfi_count": MergePolicy.SUM,
    "projects.view_time": MergePolicy.SUM,
    "projects.exposures": MergePolicy.SUM,
    "projects.code_views": MergePolicy.SUM,
    "projects.live_views": MergePolicy.SUM,
}


def apply_ema(previous: int, sample: int, alpha: float = constants.EMA_ALPHA) -> int:
    """
    Exponential moving average step with "uninitialized" handling.

    Example:
        >>> apply_ema(100, 200, 0.18)
        118
        >>> apply_ema(0, 50)
        50
    """
    if sample < 1:
        return previous
    if previous < 1:
        return sample
    # half-up rounding
    return int(math.floor(previous + alpha * (sample - previous) + 0.5))


class MetricsAggregator:
    """
    Merges session deltas into daily aggregates.

    Attributes:
        field_policies: Effective policy per dotted field path
        ema_alpha: Smoothing factor for EMA fields
        quality_ttfi_min_ms: TTFI strictly above this makes a quality visit
        quality_scroll_score_min: Minimum scroll score of a deep scroll
        quality_scroll_time_min: Minimum scroll time of a deep scroll

    Example:
        >>> aggregator = MetricsAggregator()
        >>> day = DailyAggregateMetrics.empty("pf-1", date(2026, 3, 1))
        >>> day = aggregator.merge_session(day, Engagement(views=5), None, None)
        >>> day = aggregator.merge_session(day, Engagement(views=3), None, None)
        >>> day.engagement.views
        8
    """

    def __init__(
        self,
        policy_overrides: Optional[dict[str, MergePolicy]] = None,
        ema_alpha: float = constants.EMA_ALPHA,
        quality_ttfi_min_ms: int = constants.QUALITY_TTFI_MIN_MS,
        quality_scroll_score_min: int = constants.QUALITY_SCROLL_SCORE_MIN,
        quality_scroll_time_min: int = constants.QUALITY_SCROLL_TIME_MIN,
    ):
        """
        Initialize the aggregator.

        Args:
            policy_overrides: Per-field policies replacing the SUM defaults
            ema_alpha: Smoothing factor (default: 0.18)
            quality_ttfi_min_ms: Quality visit TTFI threshold (default: 0)
            quality_scroll_score_min: Quality visit score threshold (default: 50)
            quality_scroll_time_min: Quality visit time threshold (default: 60000)

        Raises:
            ValueError: On an unknown field path or alpha outside (0, 1]
        """
        if not 0.0 < ema_alpha <= 1.0:
            raise ValueError(f"ema_alpha must be in (0, 1], got {ema_alpha}")

        self.field_policies = dict(FIELD_POLICIES)
        for path, policy in (policy_overrides or {}).items():
            if path not in FIELD_POLICIES:
                raise ValueError(f"Unknown aggregate field '{path}'")
            self.field_policies[path] = MergePolicy(policy)

        self.ema_alpha = ema_alpha
        self.quality_ttfi_min_ms = quality_ttfi_min_ms
        self.quality_scroll_score_min = quality_scroll_score_min
        self.quality_scroll_time_min = quality_scroll_time_min
        self.logger = structlog.get_logger()

    def is_quality_visit(self, ttfi_ms: int, scroll_score: int, scroll_time: int) -> bool:
        """True iff the session interacted, or scrolled deep and long enough."""
        if ttfi_ms > self.quality_ttfi_min_ms:
            return True
        return (
            scroll_score >= self.quality_scroll_score_min
            and scroll_time >= self.quality_scroll_time_min
        )

    def apply_ema(self, previous: int, sample: int) -> int:
        return apply_ema(previous, sample, self.ema_alpha)

    def merge_session(
        self,
        previous: DailyAggregateMetrics,
        engagement: Optional[Engagement],
        scroll: Optional[InteractionMetrics],
        projects: Optional[ProjectMetrics],
    ) -> DailyAggregateMetrics:
        """
        Fold one session into a daily aggregate.

        Missing sub-aggregates on either side count as all-zero.

        Args:
            previous: Day's aggregate so far
            engagement: Session engagement delta
            scroll: Session scroll and TTFI delta
            projects: Session project totals

        Returns:
            New aggregate with the same portfolio and date
        """
        merged = previous.model_copy(
            update={
                "engagement": self._merge_group(
                    "engagement", previous.engagement, engagement, Engagement
                ),
                "scroll": self._merge_group("scroll", previous.scroll, scroll, InteractionMetrics),
                "projects": self._merge_group(
                    "projects", previous.projects, projects, ProjectMetrics
                ),
            }
        )

        self.logger.debug(
            "session_merged",
            portfolio_id=previous.portfolio_id,
            date=str(previous.date),
            views=merged.engagement.views,
        )
        return merged

    def merge_projects(
        self,
        existing: list[ProjectMetricsWithId],
        incoming: list[ProjectMetricsWithId],
    ) -> list[ProjectMetricsWithId]:
        """
        Merge per-project totals by project id.

        Existing projects keep their order; projects first seen in incoming
        are appended in incoming order.
        """
        merged: dict[int, ProjectMetricsWithId] = {p.id: p for p in existing}
        for project in incoming:
            current = merged.get(project.id)
            if current is None:
                merged[project.id] = project
            else:
                merged[project.id] = self._merge_model("projects", current, project)
        return list(merged.values())

    def _merge_group(
        self,
        prefix: str,
        previous: Optional[M],
        incoming: Optional[M],
        model: type[M],
    ) -> M:
        if previous is None:
            previous = model()
        if incoming is None:
            incoming = model()
        return self._merge_model(prefix, previous, incoming)

    def _merge_model(self, prefix: str, previous: M, incoming: M) -> M:
        values = {}
        for name in type(previous).model_fields:
            prev_value = getattr(previous, name)
            new_value = getattr(incoming, name)
            path = f"{prefix}.{name}"
            if isinstance(prev_value, BaseModel):
                values[name] = self._merge_model(path, prev_value, new_value)
            elif path not in self.field_policies:
                # identity fields such as project id
                values[name] = prev_value
            elif self.field_policies[path] == MergePolicy.EMA:
                values[name] = self.apply_ema(prev_value, new_value)
            else:
                values[name] = prev_value + new_value
        return type(previous)(**values)
