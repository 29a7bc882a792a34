"""Utility modules."""

from portfolio_analytics.utils.logging import configure_logging, get_logger, portfolio_context

__all__ = ["configure_logging", "get_logger", "portfolio_context"]
