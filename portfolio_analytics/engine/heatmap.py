"""
Incremental heatmap merge with a capacity bound.

Every session contributes a handful of (index, value) samples. Samples are
unioned into the day's heatmap by cell index, each one counting as a single
visit. When the union grows past the capacity, only the most relevant cells
are retained.

Relevance Score:
    score = w_value * value / max_value + w_ratio * (value / count) / max_ratio

    where max_value and max_ratio are taken over all cells of the union and
    floored at 1. The first term favours hot cells, the second favours cells
    that are hot per visit, so a cell touched intensely by few visitors is not
    crowded out by a lukewarm cell touched by many.

Selection keeps the top K cells with a bounded min-heap (O(n log k)) and
returns them by descending score. On equal scores the cell inserted first
wins.
"""

import heapq
from typing import Optional

import numpy as np
import structlog

from portfolio_analytics import constants
from portfolio_analytics.models.heatmap import HeatmapCell, HeatmapSnapshot, PortfolioHeatmap


class HeatmapMerger:
    """
    Merges session heatmap snapshots into a bounded daily heatmap.

    Attributes:
        max_cells: Maximum number of cells retained after a merge
        value_weight: Weight of normalized intensity in the relevance score
        ratio_weight: Weight of normalized intensity-per-visit

    Example:
        >>> merger = HeatmapMerger(max_cells=100)
        >>> existing = PortfolioHeatmap.from_arrays("1.0", 10, [0, 1], [5, 10], [2, 3])
        >>> incoming = HeatmapSnapshot(version="1.0", columns=10, indexes=[1, 2], values=[15, 25])
        >>> merger.merge(existing, incoming).counts
        [2, 4, 1]
    """

    def __init__(
        self,
        max_cells: int = constants.HEATMAP_MAX_CELLS,
        value_weight: float = constants.HEATMAP_VALUE_WEIGHT,
        ratio_weight: float = constants.HEATMAP_RATIO_WEIGHT,
    ):
        """
        Initialize the merger.

        Args:
            max_cells: Capacity of the merged heatmap (default: 400)
            value_weight: Intensity weight (default: 0.7)
            ratio_weight: Intensity-per-visit weight (default: 0.3)

        Raises:
            ValueError: If max_cells is negative or weights don't sum to 1.0
        """
        if max_cells < 0:
            raise ValueError(f"max_cells must be >= 0, got {max_cells}")
        total = value_weight + ratio_weight
        if abs(total - 1.0) > 0.01:
            raise ValueError(f"Heatmap weights must sum to 1.0, got {total:.4f}")

        self.max_cells = max_cells
        self.value_weight = value_weight
        self.ratio_weight = ratio_weight
        self.logger = structlog.get_logger()

    def merge(
        self,
        existing: Optional[PortfolioHeatmap],
        incoming: HeatmapSnapshot,
    ) -> PortfolioHeatmap:
        """
        Fold one session snapshot into an existing heatmap.

        Args:
            existing: Day's heatmap so far, or None for the first session
            incoming: Samples of the new session

        Returns:
            New heatmap carrying the incoming version and columns, with at
            most max_cells cells
        """
        combined: dict[int, HeatmapCell] = {}
        if existing is not None:
            for cell in existing.cells:
                combined[cell.index] = cell.model_copy()

        for index, value in incoming.samples():
            cell = combined.get(index)
            if cell is None:
                combined[index] = HeatmapCell(index=index, value=value, count=1)
            else:
                cell.value += value
                cell.count += 1

        cells = list(combined.values())
        if len(cells) > self.max_cells:
            selected = self._select_most_relevant(cells)
            self.logger.debug(
                "heatmap_cells_trimmed",
                union_cells=len(cells),
                kept=len(selected),
                max_cells=self.max_cells,
            )
            cells = selected

        return PortfolioHeatmap(version=incoming.version, columns=incoming.columns, cells=cells)

    def score_cells(self, cells: list[HeatmapCell]) -> np.ndarray:
        """
        Composite relevance score of every cell, in input order.

        Args:
            cells: Cells of the unioned heatmap

        Returns:
            Array of scores in [0, 1]
        """
        if not cells:
            return np.zeros(0, dtype=float)

        values = np.array([c.value for c in cells], dtype=float)
        counts = np.array([c.count for c in cells], dtype=float)
        ratios = values / np.maximum(counts, 1.0)

        max_value = max(float(values.max()), 1.0)
        max_ratio = max(float(ratios.max()), 1.0)

        return self.value_weight * (values / max_value) + self.ratio_weight * (ratios / max_ratio)

    def _select_most_relevant(self, cells: list[HeatmapCell]) -> list[HeatmapCell]:
        if self.max_cells == 0:
            return []

        scores = self.score_cells(cells)

        # Min-heap keyed on (score, -seq): among equal scores the latest
        # insertion sits at the root and is evicted first.
        heap: list[tuple[float, int, int]] = []
        for seq, score in enumerate(scores.tolist()):
            entry = (score, -seq, seq)
            if len(heap) < self.max_cells:
                heapq.heappush(heap, entry)
            elif score > heap[0][0]:
                heapq.heapreplace(heap, entry)

        ranked = sorted(heap, key=lambda e: (-e[0], e[2]))
        return [cells[seq] for _, _, seq in ranked]


def merge_heatmap(
    existing: Optional[PortfolioHeatmap],
    incoming: HeatmapSnapshot,
    max_cells: int = constants.HEATMAP_MAX_CELLS,
) -> PortfolioHeatmap:
    """Merge with the default relevance weights."""
    return HeatmapMerger(max_cells=max_cells).merge(existing, incoming)
