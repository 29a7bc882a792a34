"""
Enumeration types for portfolio analytics.

All enums inherit from str to ensure JSON serialization compatibility.
"""

from enum import Enum


class MergePolicy(str, Enum):
    """How a session value is folded into the running daily aggregate."""

    SUM = "sum"
    EMA = "ema"


class ZScoreMetric(str, Enum):
    """Metrics scored against the rolling baseline."""

    VIEWS = "views"
    ENGAGEMENT_AVG = "engagement_avg"
    TTFI = "ttfi"
    QUALITY_VISIT_RATE = "quality_visit_rate"
    SOCIAL_CTR = "social_ctr"
