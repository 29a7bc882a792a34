"""
Visitor session payload sent by the portfolio page on unload.

The payload describes exactly one session. Mapping methods turn it into the
per-session deltas that the aggregator and heatmap merger fold into the
day's running records.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from portfolio_analytics import constants

from .heatmap import CellInt, HeatmapSnapshot
from .metrics import (
    Devices,
    Engagement,
    InteractionMetrics,
    ProjectMetrics,
    ProjectMetricsWithId,
)


class _ClientModel(BaseModel):
    """Accepts camelCase keys from the browser as well as snake_case."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ScrollSample(_ClientModel):
    score: int = Field(default=0, ge=0, description="Scroll depth score, 0..100")
    scroll_time_ms: int = Field(default=0, ge=0, description="Time spent scrolling")


class ProjectSample(_ClientModel):
    id: int = Field(ge=0)
    view_time: int = Field(default=0, ge=0)
    exposures: int = Field(default=0, ge=0)
    code_views: int = Field(default=0, ge=0)
    live_views: int = Field(default=0, ge=0)


class TopCells(_ClientModel):
    indices: list[CellInt] = Field(default_factory=list)
    values: list[CellInt] = Field(default_factory=list)


class HeatmapData(_ClientModel):
    cols: int = Field(default=0, ge=0)
    top_cells: TopCells = Field(default_factory=TopCells)


class SessionPayload(_ClientModel):
    """
    One visitor session as reported by the client.

    Attributes:
        portfolio_id: Portfolio the session belongs to
        active_time_ms: Foreground time of the session
        email_copied: Whether the contact email was copied
        social_clicks: Clicks on social links
        is_mobile: Phone or tablet visitor
        ttfi_ms: Time to first interaction, 0 when the visitor never interacted
        scroll: Scroll depth sample
        projects: Per-project exposure samples
        heatmap: Hottest cells observed during the session, if any
    """

    portfolio_id: str = Field(min_length=1)
    active_time_ms: int = Field(default=0, ge=0)
    email_copied: bool = False
    social_clicks: int = Field(default=0, ge=0)
    is_mobile: bool = False
    ttfi_ms: int = Field(default=0, ge=0)
    scroll: ScrollSample = Field(default_factory=ScrollSample)
    projects: list[ProjectSample] = Field(default_factory=list)
    heatmap: Optional[HeatmapData] = None

    def to_engagement(self, quality_visit: bool) -> Engagement:
        """
        Engagement delta of this session.

        Args:
            quality_visit: Outcome of the quality-visit rule for this session

        Returns:
            Engagement with views=1 and the device split set
        """
        return Engagement(
            active_time=self.active_time_ms,
            views=1,
            quality_visits=1 if quality_visit else 0,
            email_copies=1 if self.email_copied else 0,
            social_clicks=self.social_clicks,
            devices=Devices(
                desktop_views=0 if self.is_mobile else 1,
                mobile_tablet_views=1 if self.is_mobile else 0,
            ),
        )

    def to_interaction_metrics(self) -> InteractionMetrics:
        return InteractionMetrics(
            score_total=self.scroll.score,
            scroll_time_total=self.scroll.scroll_time_ms,
            ttfi_sum_ms=self.ttfi_ms,
            # Counted even when the visitor never interacted (ttfi_ms == 0)
            ttfi_count=1,
        )

    def to_project_totals(self) -> ProjectMetrics:
        """Sum of every project sample of the session."""
        return ProjectMetrics(
            view_time=sum(p.view_time for p in self.projects),
            exposures=sum(p.exposures for p in self.projects),
            code_views=sum(p.code_views for p in self.projects),
            live_views=sum(p.live_views for p in self.projects),
        )

    def to_heatmap_snapshot(self) -> Optional[HeatmapSnapshot]:
        if self.heatmap is None:
            return None
        return HeatmapSnapshot(
            version=constants.SNAPSHOT_VERSION,
            columns=self.heatmap.cols,
            indexes=list(self.heatmap.top_cells.indices),
            values=list(self.heatmap.top_cells.values),
        )

    def to_project_list(self) -> list[ProjectMetricsWithId]:
        return [
            ProjectMetricsWithId(
                id=p.id,
                view_time=p.view_time,
                exposures=p.exposures,
                code_views=p.code_views,
                live_views=p.live_views,
            )
            for p in self.projects
        ]
