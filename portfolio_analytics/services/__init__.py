"""
Orchestration services combining engines, codecs and the repository contract.
"""

from portfolio_analytics.services.metrics_service import MetricsService, TodaySnapshot

__all__ = ["MetricsService", "TodaySnapshot"]
