"""
Daily engagement aggregate models.

One ``DailyAggregateMetrics`` row exists per portfolio per day. It is created
by the first visitor session of the day, grows additively with every later
session of that day, and becomes read-only baseline material once the day
rolls over.
"""

import datetime
from typing import Optional

from pydantic import BaseModel, Field

from .enums import ZScoreMetric


class Devices(BaseModel):
    """View counts split by device class."""

    desktop_views: int = Field(default=0, ge=0, description="Views from desktop browsers")
    mobile_tablet_views: int = Field(default=0, ge=0, description="Views from phones and tablets")


class Engagement(BaseModel):
    """
    Visitor engagement counters.

    Attributes:
        active_time: Foreground time on the page
        views: Page views (one per session)
        quality_visits: Sessions that met the quality-visit rule
        email_copies: Times the contact email was copied
        social_clicks: Clicks on social profile links
        devices: Device split of views
    """

    active_time: int = Field(default=0, ge=0, description="Foreground time on the page")
    views: int = Field(default=0, ge=0, description="Page views")
    quality_visits: int = Field(default=0, ge=0, description="Quality visits")
    email_copies: int = Field(default=0, ge=0, description="Contact email copies")
    social_clicks: int = Field(default=0, ge=0, description="Social link clicks")
    devices: Devices = Field(default_factory=Devices, description="Device split of views")


class InteractionMetrics(BaseModel):
    """Scroll depth and time-to-first-interaction totals."""

    score_total: int = Field(default=0, ge=0, description="Sum of session scroll scores")
    scroll_time_total: int = Field(default=0, ge=0, description="Sum of session scroll times")
    ttfi_sum_ms: int = Field(default=0, ge=0, description="Sum of TTFI samples in ms")
    ttfi_count: int = Field(default=0, ge=0, description="Number of TTFI samples")


class ProjectMetrics(BaseModel):
    """Project exposure totals."""

    view_time: int = Field(default=0, ge=0, description="Time projects were on screen")
    exposures: int = Field(default=0, ge=0, description="Times projects entered the viewport")
    code_views: int = Field(default=0, ge=0, description="Clicks through to source code")
    live_views: int = Field(default=0, ge=0, description="Clicks through to live demos")


class ProjectMetricsWithId(ProjectMetrics):
    """Totals for a single project of a portfolio."""

    id: int = Field(ge=0, description="Project identifier within the portfolio")


class DailyAggregateMetrics(BaseModel):
    """
    One portfolio's engagement aggregate for one day.

    Sub-aggregates may be None on historical rows; ratio metrics treat a missing
    sub-aggregate as an undefined operand.
    """

    portfolio_id: str = Field(min_length=1, description="Portfolio identifier")
    date: datetime.date = Field(description="Calendar day of the aggregate")
    engagement: Optional[Engagement] = Field(default_factory=Engagement)
    scroll: Optional[InteractionMetrics] = Field(default_factory=InteractionMetrics)
    projects: Optional[ProjectMetrics] = Field(default_factory=ProjectMetrics)

    @classmethod
    def empty(cls, portfolio_id: str, day: datetime.date) -> "DailyAggregateMetrics":
        """Zero-initialized aggregate for the first session of a day."""
        return cls(portfolio_id=portfolio_id, date=day)


class DerivedMetrics(BaseModel):
    """Ratios derived from a daily aggregate; None where undefined."""

    desktop_share: Optional[float] = None
    mobile_tablet_share: Optional[float] = None
    engagement_avg: Optional[float] = None
    avg_scroll_time_ms: Optional[float] = None
    avg_project_view_time_ms: Optional[float] = None
    ttfi_mean_ms: Optional[float] = None
    email_copy_rate: Optional[float] = None
    quality_visit_rate: Optional[float] = None
    social_ctr: Optional[float] = None


class ProjectDerivedMetrics(BaseModel):
    """Per-project ratios over exposures; None where undefined."""

    avg_view_time_ms: Optional[float] = None
    code_view_rate: Optional[float] = None
    live_view_rate: Optional[float] = None


class ZScoreSet(BaseModel):
    """
    Clamped z-scores of the current day against its baseline window.

    None means "not enough data" and is rendered as such by the API layer.
    TTFI is inverted: a faster first interaction yields a positive score.
    """

    views: Optional[float] = Field(default=None, ge=-3.0, le=3.0)
    engagement_avg: Optional[float] = Field(default=None, ge=-3.0, le=3.0)
    ttfi: Optional[float] = Field(default=None, ge=-3.0, le=3.0)
    quality_visit_rate: Optional[float] = Field(default=None, ge=-3.0, le=3.0)
    social_ctr: Optional[float] = Field(default=None, ge=-3.0, le=3.0)


class BaselineArrays(BaseModel):
    """Per-metric baseline samples; each list only holds defined values."""

    views: list[float] = Field(default_factory=list)
    engagement_avg: list[float] = Field(default_factory=list)
    ttfi: list[float] = Field(default_factory=list)
    quality_rate: list[float] = Field(default_factory=list)
    social_ctr: list[float] = Field(default_factory=list)

    def values_for(self, metric: ZScoreMetric) -> list[float]:
        """Baseline samples for one scored metric."""
        return {
            ZScoreMetric.VIEWS: self.views,
            ZScoreMetric.ENGAGEMENT_AVG: self.engagement_avg,
            ZScoreMetric.TTFI: self.ttfi,
            ZScoreMetric.QUALITY_VISIT_RATE: self.quality_rate,
            ZScoreMetric.SOCIAL_CTR: self.social_ctr,
        }[metric]


class EnhancedDailyMetrics(BaseModel):
    """Daily aggregate enriched with derived ratios and z-scores."""

    metrics: DailyAggregateMetrics
    derived: DerivedMetrics
    zscores: ZScoreSet
