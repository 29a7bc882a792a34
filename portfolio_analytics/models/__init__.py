"""
Pydantic v2 data models for portfolio engagement analytics.

Model Organization:
    - enums: Merge policies and scored metric names
    - metrics: Daily aggregates, derived ratios, baselines and z-scores
    - heatmap: Sparse heatmaps, incoming snapshots and detail slots
    - session: Client session payload and its per-session deltas

Usage:
    >>> from portfolio_analytics.models import DailyAggregateMetrics
    >>> metrics = DailyAggregateMetrics.empty("pf-1", date(2026, 3, 1))
    >>> metrics.engagement.views
    0
"""

from .enums import MergePolicy, ZScoreMetric
from .heatmap import (
    DetailSlot,
    EnhancedDetailSlot,
    HeatmapCell,
    HeatmapSnapshot,
    PortfolioHeatmap,
)
from .metrics import (
    BaselineArrays,
    DailyAggregateMetrics,
    DerivedMetrics,
    Devices,
    Engagement,
    EnhancedDailyMetrics,
    InteractionMetrics,
    ProjectDerivedMetrics,
    ProjectMetrics,
    ProjectMetricsWithId,
    ZScoreSet,
)
from .session import HeatmapData, ProjectSample, ScrollSample, SessionPayload, TopCells

__all__ = [
    "MergePolicy",
    "ZScoreMetric",
    "DetailSlot",
    "EnhancedDetailSlot",
    "HeatmapCell",
    "HeatmapSnapshot",
    "PortfolioHeatmap",
    "BaselineArrays",
    "DailyAggregateMetrics",
    "DerivedMetrics",
    "Devices",
    "Engagement",
    "EnhancedDailyMetrics",
    "InteractionMetrics",
    "ProjectDerivedMetrics",
    "ProjectMetrics",
    "ProjectMetricsWithId",
    "ZScoreSet",
    "HeatmapData",
    "ProjectSample",
    "ScrollSample",
    "SessionPayload",
    "TopCells",
]
