"""
Abstract persistence contract for portfolio engagement metrics.

Two record kinds are stored per portfolio:
- Daily aggregates: one DailyAggregateMetrics per day, most recent first
- Detail slots: one SlotRecord per day holding the packed heatmap blob and
  the compressed per-project metrics list

Concrete backends (key-value tables, document stores, in-memory fakes) live
outside this package. The orchestration service performs read-merge-write
cycles and hands the record it read back to the repository, so backends can
implement optimistic concurrency with a conditional write and raise
ConcurrentWriteError when the stored record changed in between.
"""

import datetime
from abc import ABC, abstractmethod
from typing import Optional

from pydantic import BaseModel, Field

from portfolio_analytics import constants
from portfolio_analytics.models.metrics import DailyAggregateMetrics


class StorageError(Exception):
    """Base exception for storage operations."""

    pass


class ConcurrentWriteError(StorageError):
    """Conditional write lost against a concurrent writer of the same record."""

    pass


class SlotRecord(BaseModel):
    """
    Stored form of one day's detail slot.

    Attributes:
        portfolio_id: Portfolio identifier
        date: Day of the slot
        version: Client heatmap version
        columns: Heatmap grid width
        heatmap_blob: Sectioned blob with index, value and count sections
        projects_blob: Gzip JSON list of per-project metrics
    """

    portfolio_id: str = Field(min_length=1)
    date: datetime.date
    version: str = Field(default=constants.SNAPSHOT_VERSION)
    columns: int = Field(default=0, ge=0)
    heatmap_blob: Optional[bytes] = None
    projects_blob: Optional[bytes] = None


class MetricsRepository(ABC):
    """
    Abstract base class for metrics storage implementations.

    Implementations must return histories most recent first and must
    serialize concurrent writes of the same portfolio/day record.
    """

    # =========================================================================
    # Daily aggregates
    # =========================================================================

    @abstractmethod
    def get_today_metrics(
        self, portfolio_id: str, today: datetime.date
    ) -> Optional[DailyAggregateMetrics]:
        """
        Read the aggregate of the given day.

        Args:
            portfolio_id: Portfolio identifier
            today: Day to read

        Returns:
            The day's aggregate, or None before the first session of the day
        """
        pass

    @abstractmethod
    def save_today_metrics(
        self,
        metrics: DailyAggregateMetrics,
        previous: Optional[DailyAggregateMetrics] = None,
    ) -> None:
        """
        Create or replace the aggregate of metrics.date.

        Args:
            metrics: Aggregate to store
            previous: Record this write was derived from, None for a create

        Raises:
            ConcurrentWriteError: If the stored record no longer equals previous
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    def find_portfolio_metrics(
        self, portfolio_id: str, limit: int = constants.BASELINE_WINDOW_DAYS
    ) -> list[DailyAggregateMetrics]:
        """
        Read up to limit daily aggregates, most recent first.

        Args:
            portfolio_id: Portfolio identifier
            limit: Maximum number of days

        Returns:
            Aggregates ordered by date descending
        """
        pass

    # =========================================================================
    # Detail slots
    # =========================================================================

    @abstractmethod
    def get_today_slot_item(
        self, portfolio_id: str, today: datetime.date
    ) -> Optional[SlotRecord]:
        """Read the stored slot of the given day, or None."""
        pass

    @abstractmethod
    def save_today_slot_item(
        self,
        record: SlotRecord,
        previous: Optional[SlotRecord] = None,
    ) -> None:
        """
        Create or replace the slot of record.date.

        Raises:
            ConcurrentWriteError: If the stored record no longer equals previous
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    def list_slot_items(self, portfolio_id: str) -> list[SlotRecord]:
        """All stored slots of a portfolio, most recent first."""
        pass

    # =========================================================================
    # Maintenance
    # =========================================================================

    @abstractmethod
    def delete_all(self, portfolio_id: str) -> None:
        """Delete every aggregate and slot of a portfolio."""
        pass
