"""
Pytest configuration and shared fixtures for the portfolio analytics test suite.

Provides pydantic model factories, an in-memory metrics repository with
conditional-write semantics, and environment isolation for settings and
logging across unit, integration, golden and property-based tests.
"""

import os
from datetime import date, timedelta
from typing import Optional

import pytest

# Set testing environment BEFORE importing settings
os.environ["TESTING"] = "true"
os.environ["DEV_MODE"] = "true"
os.environ["LOG_LEVEL"] = "warning"

from portfolio_analytics.config import Settings, get_settings
from portfolio_analytics.models.heatmap import HeatmapCell, HeatmapSnapshot, PortfolioHeatmap
from portfolio_analytics.models.metrics import (
    DailyAggregateMetrics,
    Devices,
    Engagement,
    InteractionMetrics,
    ProjectMetrics,
    ProjectMetricsWithId,
)
from portfolio_analytics.models.session import SessionPayload
from portfolio_analytics.storage.base import ConcurrentWriteError, MetricsRepository, SlotRecord
from portfolio_analytics.utils.logging import configure_logging

get_settings.cache_clear()
configure_logging()


TODAY = date(2026, 3, 15)


# ---------------------------------------------------------------------------
# Pydantic model factories, shared by all test suites
# ---------------------------------------------------------------------------


def make_daily_metrics(
    day: date = TODAY,
    portfolio_id: str = "pf-test",
    views: int = 10,
    score_total: int = 500,
    ttfi_sum_ms: int = 12000,
    ttfi_count: int = 10,
    quality_visits: int = 4,
    social_clicks: int = 2,
    **overrides,
) -> DailyAggregateMetrics:
    """Factory function for creating test DailyAggregateMetrics objects."""
    defaults = dict(
        portfolio_id=portfolio_id,
        date=day,
        engagement=Engagement(
            active_time=views * 30000,
            views=views,
            quality_visits=quality_visits,
            email_copies=1,
            social_clicks=social_clicks,
            devices=Devices(desktop_views=views - views // 2, mobile_tablet_views=views // 2),
        ),
        scroll=InteractionMetrics(
            score_total=score_total,
            scroll_time_total=views * 200,
            ttfi_sum_ms=ttfi_sum_ms,
            ttfi_count=ttfi_count,
        ),
        projects=ProjectMetrics(view_time=300, exposures=30, code_views=6, live_views=3),
    )
    defaults.update(overrides)
    return DailyAggregateMetrics(**defaults)


def make_history(
    views: list[int],
    start: date = TODAY,
    portfolio_id: str = "pf-test",
) -> list[DailyAggregateMetrics]:
    """
    Daily aggregates for consecutive days, most recent first.

    views[0] belongs to start, views[1] to the day before, and so on.
    """
    return [
        make_daily_metrics(day=start - timedelta(days=i), portfolio_id=portfolio_id, views=v)
        for i, v in enumerate(views)
    ]


def make_heatmap(
    cells: list[tuple[int, int, int]],
    version: str = "1.0",
    columns: int = 64,
) -> PortfolioHeatmap:
    """Factory for PortfolioHeatmap from (index, value, count) tuples."""
    return PortfolioHeatmap(
        version=version,
        columns=columns,
        cells=[HeatmapCell(index=i, value=v, count=c) for i, v, c in cells],
    )


def make_snapshot(
    samples: list[tuple[int, int]],
    version: str = "1.0",
    columns: int = 64,
) -> HeatmapSnapshot:
    """Factory for HeatmapSnapshot from (index, value) samples."""
    return HeatmapSnapshot(
        version=version,
        columns=columns,
        indexes=[i for i, _ in samples],
        values=[v for _, v in samples],
    )


def make_project(project_id: int = 1, **overrides) -> ProjectMetricsWithId:
    """Factory function for creating test ProjectMetricsWithId objects."""
    defaults = dict(id=project_id, view_time=120, exposures=4, code_views=1, live_views=1)
    defaults.update(overrides)
    return ProjectMetricsWithId(**defaults)


def make_session_payload(
    portfolio_id: str = "pf-test",
    ttfi_ms: int = 1500,
    scroll_score: int = 70,
    scroll_time_ms: int = 45000,
    is_mobile: bool = False,
    heatmap_samples: Optional[list[tuple[int, int]]] = None,
    **overrides,
) -> SessionPayload:
    """Factory for SessionPayload, built from the client's camelCase JSON shape."""
    samples = heatmap_samples if heatmap_samples is not None else [(10, 5), (11, 3), (74, 8)]
    data = {
        "portfolioId": portfolio_id,
        "activeTimeMs": 52000,
        "emailCopied": False,
        "socialClicks": 1,
        "isMobile": is_mobile,
        "ttfiMs": ttfi_ms,
        "scroll": {"score": scroll_score, "scrollTimeMs": scroll_time_ms},
        "projects": [
            {"id": 1, "viewTime": 80, "exposures": 2, "codeViews": 1, "liveViews": 0},
            {"id": 2, "viewTime": 40, "exposures": 1, "codeViews": 0, "liveViews": 1},
        ],
        "heatmap": {
            "cols": 64,
            "topCells": {
                "indices": [i for i, _ in samples],
                "values": [v for _, v in samples],
            },
        },
    }
    data.update(overrides)
    return SessionPayload.model_validate(data)


# ---------------------------------------------------------------------------
# Mock repository: in-memory backend
# ---------------------------------------------------------------------------


class MockMetricsRepository(MetricsRepository):
    """
    In-memory MetricsRepository with conditional writes.

    A write whose `previous` no longer matches the stored record raises
    ConcurrentWriteError. `conflicts` forces that many upcoming writes to
    fail, simulating a concurrent writer.
    """

    def __init__(self):
        self._metrics: dict[tuple[str, date], DailyAggregateMetrics] = {}
        self._slots: dict[tuple[str, date], SlotRecord] = {}
        self.conflicts = 0
        self.write_calls = 0

    def _check_conflict(self, stored, previous) -> None:
        self.write_calls += 1
        if self.conflicts > 0:
            self.conflicts -= 1
            raise ConcurrentWriteError("Simulated concurrent write")
        if stored != previous:
            raise ConcurrentWriteError("Stored record changed since read")

    # --- Daily aggregates ---
    def get_today_metrics(self, portfolio_id, today):
        return self._metrics.get((portfolio_id, today))

    def save_today_metrics(self, metrics, previous=None):
        key = (metrics.portfolio_id, metrics.date)
        self._check_conflict(self._metrics.get(key), previous)
        self._metrics[key] = metrics

    def find_portfolio_metrics(self, portfolio_id, limit=30):
        rows = [m for (pid, _), m in self._metrics.items() if pid == portfolio_id]
        rows.sort(key=lambda m: m.date, reverse=True)
        return rows[:limit]

    # --- Detail slots ---
    def get_today_slot_item(self, portfolio_id, today):
        return self._slots.get((portfolio_id, today))

    def save_today_slot_item(self, record, previous=None):
        key = (record.portfolio_id, record.date)
        self._check_conflict(self._slots.get(key), previous)
        self._slots[key] = record

    def list_slot_items(self, portfolio_id):
        rows = [r for (pid, _), r in self._slots.items() if pid == portfolio_id]
        rows.sort(key=lambda r: r.date, reverse=True)
        return rows

    # --- Maintenance ---
    def delete_all(self, portfolio_id):
        for store in (self._metrics, self._slots):
            for key in [k for k in store if k[0] == portfolio_id]:
                del store[key]

    # --- Test helpers ---
    def put_metrics(self, *metrics: DailyAggregateMetrics) -> None:
        for m in metrics:
            self._metrics[(m.portfolio_id, m.date)] = m

    def put_slot(self, record: SlotRecord) -> None:
        self._slots[(record.portfolio_id, record.date)] = record


# ---------------------------------------------------------------------------
# Pytest fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def mock_repository():
    """Fresh MockMetricsRepository instance for each test."""
    return MockMetricsRepository()


@pytest.fixture
def test_settings():
    """Settings with defaults, independent of any .env file."""
    return Settings(_env_file=None)


@pytest.fixture
def sample_history():
    """Seven days of history ending yesterday, most recent first."""
    return make_history([12, 9, 11, 10, 13, 8, 12], start=TODAY - timedelta(days=1))
