"""
Heatmap and detail slot models.

A heatmap is a sparse grid: each cell carries the accumulated interaction
intensity at a flat grid index and the number of visits that touched it.
The cell list is bounded by the heatmap merger, so only the most relevant
cells of a day survive.
"""

import datetime
from typing import Annotated, Iterator, Optional

from pydantic import BaseModel, Field, model_validator

from portfolio_analytics import constants

from .metrics import ProjectDerivedMetrics, ProjectMetricsWithId

CellInt = Annotated[int, Field(ge=0)]


class HeatmapCell(BaseModel):
    """
    One populated grid cell.

    Attributes:
        index: Flat grid index (row * columns + column)
        value: Accumulated interaction intensity
        count: Number of visits that contributed to the cell
    """

    index: int = Field(ge=0, description="Flat grid index")
    value: int = Field(default=0, ge=0, description="Accumulated intensity")
    count: int = Field(default=0, ge=0, description="Contributing visits")


class PortfolioHeatmap(BaseModel):
    """Sparse heatmap of one portfolio for one day."""

    version: str = Field(default=constants.SNAPSHOT_VERSION, description="Client heatmap version")
    columns: int = Field(default=0, ge=0, description="Grid width in cells")
    cells: list[HeatmapCell] = Field(default_factory=list)

    @model_validator(mode="after")
    def validate_unique_indexes(self) -> "PortfolioHeatmap":
        """Cell indexes must be unique within a heatmap."""
        indexes = self.indexes
        if len(set(indexes)) != len(indexes):
            raise ValueError("Heatmap cell indexes must be unique")
        return self

    @property
    def indexes(self) -> list[int]:
        return [cell.index for cell in self.cells]

    @property
    def values(self) -> list[int]:
        return [cell.value for cell in self.cells]

    @property
    def counts(self) -> list[int]:
        return [cell.count for cell in self.cells]

    @classmethod
    def from_arrays(
        cls,
        version: str,
        columns: int,
        indexes: list[int],
        values: list[int],
        counts: list[int],
    ) -> "PortfolioHeatmap":
        """
        Build a heatmap from parallel arrays, as stored in a packed blob.

        Raises:
            ValueError: If the arrays differ in length
        """
        if not len(indexes) == len(values) == len(counts):
            raise ValueError(
                f"Heatmap arrays differ in length: indexes={len(indexes)}, "
                f"values={len(values)}, counts={len(counts)}"
            )
        cells = [
            HeatmapCell(index=i, value=v, count=c) for i, v, c in zip(indexes, values, counts)
        ]
        return cls(version=version, columns=columns, cells=cells)


class HeatmapSnapshot(BaseModel):
    """
    Heatmap samples collected during a single visit.

    Each (index, value) pair is one sample; the merger counts it as one visit
    to that cell.
    """

    version: str = Field(default=constants.SNAPSHOT_VERSION)
    columns: int = Field(default=0, ge=0)
    indexes: list[CellInt] = Field(default_factory=list)
    values: list[CellInt] = Field(default_factory=list)

    @model_validator(mode="after")
    def validate_parallel_arrays(self) -> "HeatmapSnapshot":
        if len(self.indexes) != len(self.values):
            raise ValueError(
                f"indexes and values must have equal length, got "
                f"{len(self.indexes)} and {len(self.values)}"
            )
        return self

    def samples(self) -> Iterator[tuple[int, int]]:
        """Yield (index, value) pairs in client order."""
        return zip(self.indexes, self.values)


class DetailSlot(BaseModel):
    """One day's bounded heatmap plus per-project metrics."""

    date: datetime.date
    heatmap: Optional[PortfolioHeatmap] = None
    projects: list[ProjectMetricsWithId] = Field(default_factory=list)


class EnhancedDetailSlot(BaseModel):
    """Detail slot with per-project derived ratios keyed by project id."""

    slot: DetailSlot
    project_derived: dict[int, ProjectDerivedMetrics] = Field(default_factory=dict)
