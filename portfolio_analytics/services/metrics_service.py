"""
Metrics service orchestrating session ingestion and analytics reads.

Write path (one call per visitor session):
1. Merge today's detail slot through HeatmapMerger and the per-project
   merge and pack it with the slot codec; a rejected session stops here
2. Decide the quality-visit flag and read-merge-write today's aggregate
   through MetricsAggregator
3. Write the packed slot, re-merging from a fresh read after a conflict

Read path:
- Today's aggregate with derived metrics and z-scores, plus today's slot
- Enhanced history for the metrics dashboard
- Decoded detail slots; a corrupt slot is logged and skipped

Each read-merge-write hands the record it read back to the repository. A
repository that detects a concurrent writer raises ConcurrentWriteError and the
cycle is retried from a fresh read.
"""

import datetime
from typing import Callable, Optional, TypeVar

from pydantic import BaseModel

from portfolio_analytics.codec.errors import CodecError
from portfolio_analytics.config import Settings, get_settings
from portfolio_analytics.engine.aggregator import MetricsAggregator
from portfolio_analytics.engine.analytics import enhance_day, enhance_metrics, enhance_slot
from portfolio_analytics.engine.heatmap import HeatmapMerger
from portfolio_analytics.engine.zscore import PortfolioZScoreCalculator
from portfolio_analytics.models.heatmap import DetailSlot, EnhancedDetailSlot
from portfolio_analytics.models.metrics import DailyAggregateMetrics, EnhancedDailyMetrics
from portfolio_analytics.models.session import SessionPayload
from portfolio_analytics.storage.base import ConcurrentWriteError, MetricsRepository, SlotRecord
from portfolio_analytics.storage.slot_codec import decode_slot, encode_slot
from portfolio_analytics.utils.logging import get_logger, portfolio_context

logger = get_logger(__name__)

T = TypeVar("T")


class TodaySnapshot(BaseModel):
    """Today's enhanced aggregate and detail slot; either may be None."""

    portfolio_id: str
    date: datetime.date
    metrics: Optional[EnhancedDailyMetrics] = None
    slot: Optional[EnhancedDetailSlot] = None


class MetricsService:
    """
    Entry point for persistence adapters and request handlers.

    Attributes:
        repository: Metrics storage backend
        settings: Application settings
        aggregator: Session-to-daily merge
        merger: Heatmap merge bounded by settings.heatmap_max_cells
        max_write_attempts: Read-merge-write attempts before giving up
    """

    def __init__(
        self,
        repository: MetricsRepository,
        settings: Optional[Settings] = None,
        max_write_attempts: int = 3,
    ):
        """
        Initialize the metrics service.

        Args:
            repository: Metrics storage backend
            settings: Settings (default: cached application settings)
            max_write_attempts: Attempts per write on concurrent modification
        """
        if max_write_attempts < 1:
            raise ValueError(f"max_write_attempts must be >= 1, got {max_write_attempts}")

        self.repository = repository
        self.settings = settings or get_settings()
        self.max_write_attempts = max_write_attempts
        self.aggregator = MetricsAggregator(
            ema_alpha=self.settings.ema_alpha,
            quality_ttfi_min_ms=self.settings.quality_ttfi_min_ms,
            quality_scroll_score_min=self.settings.quality_scroll_score_min,
            quality_scroll_time_min=self.settings.quality_scroll_time_min,
        )
        self.merger = HeatmapMerger(
            max_cells=self.settings.heatmap_max_cells,
            value_weight=self.settings.heatmap_value_weight,
            ratio_weight=self.settings.heatmap_ratio_weight,
        )
        self.calculator = PortfolioZScoreCalculator()

    # =========================================================================
    # Write path
    # =========================================================================

    def record_session(
        self, payload: SessionPayload, today: datetime.date
    ) -> DailyAggregateMetrics:
        """
        Fold one visitor session into today's aggregate and detail slot.

        Args:
            payload: Session reported by the client
            today: Day the session belongs to

        Returns:
            Today's aggregate after the merge

        Raises:
            ConcurrentWriteError: If every write attempt lost a race
            ValueOverflowError: If a heatmap index exceeds the configured grid;
                raised before either record is written
        """
        with portfolio_context(payload.portfolio_id, date=str(today)):
            # Slot encoding can reject the session; run it before any write
            pending = [self._build_slot(payload, today)]

            def save_slot() -> DetailSlot:
                slot, record, previous = pending.pop() if pending else self._build_slot(
                    payload, today
                )
                self.repository.save_today_slot_item(record, previous)
                return slot

            aggregate = self._with_retry(
                "aggregate", lambda: self._merge_aggregate(payload, today)
            )
            slot = self._with_retry("slot", save_slot)

            logger.info(
                "session_recorded",
                views=aggregate.engagement.views if aggregate.engagement else 0,
                heatmap_cells=len(slot.heatmap.cells) if slot.heatmap else 0,
                projects=len(slot.projects),
            )
        return aggregate

    def _merge_aggregate(
        self, payload: SessionPayload, today: datetime.date
    ) -> DailyAggregateMetrics:
        previous = self.repository.get_today_metrics(payload.portfolio_id, today)
        base = previous
        if base is None:
            base = DailyAggregateMetrics.empty(payload.portfolio_id, today)

        quality = self.aggregator.is_quality_visit(
            payload.ttfi_ms, payload.scroll.score, payload.scroll.scroll_time_ms
        )
        merged = self.aggregator.merge_session(
            base,
            payload.to_engagement(quality),
            payload.to_interaction_metrics(),
            payload.to_project_totals(),
        )
        self.repository.save_today_metrics(merged, previous)
        return merged

    def _build_slot(
        self, payload: SessionPayload, today: datetime.date
    ) -> tuple[DetailSlot, SlotRecord, Optional[SlotRecord]]:
        """Merge the session into today's slot and encode it, without writing."""
        previous = self.repository.get_today_slot_item(payload.portfolio_id, today)
        existing = DetailSlot(date=today)
        if previous is not None:
            try:
                existing = decode_slot(previous, self.settings)
            except CodecError as e:
                # Corrupt slot would block every save of the day; start over
                logger.warning("slot_decode_failed", error=str(e), action="reset")

        heatmap = existing.heatmap
        snapshot = payload.to_heatmap_snapshot()
        if snapshot is not None:
            heatmap = self.merger.merge(existing.heatmap, snapshot)

        slot = DetailSlot(
            date=today,
            heatmap=heatmap,
            projects=self.aggregator.merge_projects(existing.projects, payload.to_project_list()),
        )
        return slot, encode_slot(payload.portfolio_id, slot, self.settings), previous

    def _with_retry(self, record: str, operation: Callable[[], T]) -> T:
        for attempt in range(1, self.max_write_attempts + 1):
            try:
                return operation()
            except ConcurrentWriteError:
                if attempt == self.max_write_attempts:
                    logger.error(
                        "concurrent_write_failed",
                        record=record,
                        attempts=attempt,
                    )
                    raise
                logger.warning(
                    "concurrent_write_retry",
                    record=record,
                    attempt=attempt,
                )
        raise AssertionError("unreachable")

    # =========================================================================
    # Read path
    # =========================================================================

    def get_today_snapshot(self, portfolio_id: str, today: datetime.date) -> TodaySnapshot:
        """
        Today's aggregate with derived metrics and z-scores, plus today's slot.

        The slot is None when it does not exist or cannot be decoded.
        """
        window_days = self.settings.baseline_window_days
        enhanced = None
        current = self.repository.get_today_metrics(portfolio_id, today)
        if current is not None:
            # one extra day because the history may include today
            history = self.repository.find_portfolio_metrics(portfolio_id, window_days + 1)
            enhanced = enhance_day(
                current, history, window_days, self.settings.time_unit_ms, self.calculator
            )

        slot = None
        record = self.repository.get_today_slot_item(portfolio_id, today)
        if record is not None:
            slot = self._decode_or_skip(record)

        return TodaySnapshot(
            portfolio_id=portfolio_id,
            date=today,
            metrics=enhanced,
            slot=enhance_slot(slot, self.settings.time_unit_ms) if slot else None,
        )

    def get_portfolio_metrics(
        self, portfolio_id: str, limit: int
    ) -> list[EnhancedDailyMetrics]:
        """
        The most recent limit days, each with derived metrics and z-scores.

        Extra history beyond limit is fetched so that the oldest returned day
        still gets a full baseline window.

        Raises:
            ValueError: If limit < 1
        """
        if limit < 1:
            raise ValueError(f"limit must be >= 1, got {limit}")

        window_days = self.settings.baseline_window_days
        history = self.repository.find_portfolio_metrics(portfolio_id, limit + window_days)
        enhanced = enhance_metrics(history, window_days, self.settings.time_unit_ms)

        logger.debug(
            "portfolio_metrics_enhanced",
            portfolio_id=portfolio_id,
            days=min(limit, len(enhanced)),
            history=len(history),
        )
        return enhanced[:limit]

    def get_detail_slots(self, portfolio_id: str) -> list[EnhancedDetailSlot]:
        """All decodable slots of a portfolio, most recent first."""
        slots = []
        for record in self.repository.list_slot_items(portfolio_id):
            slot = self._decode_or_skip(record)
            if slot is not None:
                slots.append(enhance_slot(slot, self.settings.time_unit_ms))
        return slots

    def delete_all(self, portfolio_id: str) -> None:
        self.repository.delete_all(portfolio_id)
        logger.info("portfolio_metrics_deleted", portfolio_id=portfolio_id)

    def _decode_or_skip(self, record: SlotRecord) -> Optional[DetailSlot]:
        try:
            return decode_slot(record, self.settings)
        except CodecError as e:
            logger.warning(
                "slot_decode_failed",
                portfolio_id=record.portfolio_id,
                date=str(record.date),
                error=str(e),
                error_type=type(e).__name__,
            )
            return None
