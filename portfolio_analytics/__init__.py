"""
Portfolio engagement analytics core.

Compact storage, incremental merging and statistical comparison of
per-portfolio visitor engagement: fixed-width blob codecs, bounded heatmap
merges, rolling-baseline z-scores and session-to-daily aggregation.
"""

__version__ = "1.0.0"
