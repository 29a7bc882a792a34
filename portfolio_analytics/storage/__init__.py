"""
Persistence contract and stored-record codecs for portfolio metrics.
"""

from portfolio_analytics.storage.base import (
    ConcurrentWriteError,
    MetricsRepository,
    SlotRecord,
    StorageError,
)
from portfolio_analytics.storage.slot_codec import decode_slot, encode_slot

__all__ = [
    "ConcurrentWriteError",
    "MetricsRepository",
    "SlotRecord",
    "StorageError",
    "decode_slot",
    "encode_slot",
]
