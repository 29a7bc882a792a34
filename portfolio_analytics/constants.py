"""
Product-tuned constants shared by the engines and the settings layer.

Values here are the defaults surfaced through ``portfolio_analytics.config.Settings``.
This module imports nothing from the package to avoid import cycles.
"""

# Heatmap relevance score: weight of absolute intensity vs intensity-per-visit
HEATMAP_VALUE_WEIGHT = 0.7
HEATMAP_RATIO_WEIGHT = 0.3
HEATMAP_MAX_CELLS = 400

# Quality visit: any interaction, or a long and deep scroll
QUALITY_TTFI_MIN_MS = 0
QUALITY_SCROLL_SCORE_MIN = 50
QUALITY_SCROLL_TIME_MIN = 60000

# Baseline / z-score
BASELINE_WINDOW_DAYS = 30
MIN_BASELINE_POINTS = 2
ZSCORE_CLAMP = 3.0

# Legacy smoothing for averaged fields
EMA_ALPHA = 0.18

# Stored durations are deciseconds
TIME_UNIT_MS = 100

# Heatmap blob layout (15 bits covers a 64 x 512 grid)
HEATMAP_SECTION_INDEX = 1
HEATMAP_SECTION_VALUE = 2
HEATMAP_SECTION_COUNT = 3
HEATMAP_INDEX_BITS = 15
HEATMAP_VALUE_BITS = 12
HEATMAP_COUNT_BITS = 6
HEATMAP_BLOB_VERSION = 1

SNAPSHOT_VERSION = "1.0"
