"""
Analytics engines for portfolio engagement.

- heatmap: capacity-bounded heatmap merge with relevance ranking
- baseline: rolling baseline windows from daily aggregates
- zscore: Welford z-scores, inverted log z-scores and the per-day calculator
- aggregator: session-to-daily merge policies and the quality-visit rule
- derived: ratio metrics for days and projects
- analytics: read-side enrichment of histories and slots

All engines are pure and synchronous; persistence is the caller's concern.
"""

__all__ = [
    "HeatmapMerger",
    "merge_heatmap",
    "build_baseline",
    "zscore",
    "inverted_zscore",
    "PortfolioZScoreCalculator",
    "MetricsAggregator",
    "apply_ema",
    "calculate_derived_metrics",
    "calculate_project_derived",
    "enhance_metrics",
    "enhance_slot",
]

from portfolio_analytics.engine.aggregator import MetricsAggregator, apply_ema
from portfolio_analytics.engine.analytics import enhance_metrics, enhance_slot
from portfolio_analytics.engine.baseline import build_baseline
from portfolio_analytics.engine.derived import calculate_derived_metrics, calculate_project_derived
from portfolio_analytics.engine.heatmap import HeatmapMerger, merge_heatmap
from portfolio_analytics.engine.zscore import PortfolioZScoreCalculator, inverted_zscore, zscore
