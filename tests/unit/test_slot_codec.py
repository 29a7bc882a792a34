"""
Unit tests for the stored form of detail slots.
"""

import pytest

from portfolio_analytics.codec.blob import BlobReader, BlobSection, build_blob
from portfolio_analytics.codec.errors import (
    ChecksumMismatchError,
    CodecError,
    SectionNotFoundError,
    ValueOverflowError,
)
from portfolio_analytics.config import Settings
from portfolio_analytics.models.heatmap import DetailSlot
from portfolio_analytics.storage.base import SlotRecord
from portfolio_analytics.storage.slot_codec import (
    decode_heatmap,
    decode_slot,
    encode_heatmap,
    encode_slot,
    saturate,
)
from tests.conftest import TODAY, make_heatmap, make_project


class TestSaturate:
    def test_saturate_clamps_to_width_max(self):
        assert saturate([1, 63, 64, 500], 6) == ([1, 63, 63, 63], 2)

    def test_saturate_no_overflow(self):
        assert saturate([0, 10], 12) == ([0, 10], 0)


class TestHeatmapBlob:
    """Test heatmap packing with the configured section widths."""

    def test_encode_heatmap_section_layout(self, test_settings):
        blob = encode_heatmap(make_heatmap([(10, 5, 1), (11, 3, 1), (74, 8, 2)]), test_settings)
        reader = BlobReader.parse(blob)
        assert reader.section_ids() == [1, 2, 3]
        assert reader.info(1).bits_per_value == 15
        assert reader.info(2).bits_per_value == 12
        assert reader.info(3).bits_per_value == 6
        assert len(blob) == 38 + 6 + 5 + 3

    def test_encode_decode_heatmap(self, test_settings):
        heatmap = make_heatmap([(10, 5, 1), (11, 3, 1), (74, 8, 2)], columns=64)
        blob = encode_heatmap(heatmap, test_settings)
        assert decode_heatmap(blob, "1.0", 64, test_settings) == heatmap

    def test_encode_heatmap_saturates_values_and_counts(self, test_settings):
        heatmap = make_heatmap([(1, 5000, 100), (2, 7, 1)])
        decoded = decode_heatmap(encode_heatmap(heatmap, test_settings), "1.0", 64, test_settings)
        assert decoded.values == [4095, 7]
        assert decoded.counts == [63, 1]

    def test_encode_heatmap_index_overflow_raises(self, test_settings):
        with pytest.raises(ValueOverflowError):
            encode_heatmap(make_heatmap([(32768, 1, 1)]), test_settings)

    def test_encode_heatmap_empty(self, test_settings):
        blob = encode_heatmap(make_heatmap([]), test_settings)
        assert decode_heatmap(blob, "1.0", 64, test_settings).cells == []

    def test_encode_heatmap_with_checksum(self):
        settings = Settings(_env_file=None, heatmap_blob_checksum=True)
        heatmap = make_heatmap([(3, 4, 1)])
        blob = encode_heatmap(heatmap, settings)
        assert BlobReader.parse(blob).has_checksum
        assert decode_heatmap(blob, "1.0", 64, settings) == heatmap

    def test_decode_heatmap_checksum_required_when_enabled(self, test_settings):
        blob = encode_heatmap(make_heatmap([(3, 4, 1)]), test_settings)
        settings = Settings(_env_file=None, heatmap_blob_checksum=True)
        with pytest.raises(ChecksumMismatchError):
            decode_heatmap(blob, "1.0", 64, settings)

    def test_decode_heatmap_missing_section_raises(self, test_settings):
        blob = build_blob(1, [BlobSection(1, 15, [1]), BlobSection(2, 12, [1])])
        with pytest.raises(SectionNotFoundError):
            decode_heatmap(blob, "1.0", 64, test_settings)

    def test_decode_heatmap_inconsistent_sections_raises(self, test_settings):
        blob = build_blob(
            1,
            [BlobSection(1, 15, [1, 2]), BlobSection(2, 12, [1]), BlobSection(3, 6, [1, 1])],
        )
        with pytest.raises(CodecError):
            decode_heatmap(blob, "1.0", 64, test_settings)

    def test_decode_heatmap_garbage_raises(self, test_settings):
        with pytest.raises(CodecError):
            decode_heatmap(b"\x00" * 40, "1.0", 64, test_settings)


class TestSlotRecord:
    """Test slot to record conversion."""

    def test_encode_slot_record_fields(self, test_settings):
        slot = DetailSlot(
            date=TODAY,
            heatmap=make_heatmap([(5, 5, 1)], version="1.1", columns=32),
            projects=[make_project(1)],
        )
        record = encode_slot("pf-test", slot, test_settings)
        assert record.portfolio_id == "pf-test"
        assert record.date == TODAY
        assert record.version == "1.1"
        assert record.columns == 32
        assert record.heatmap_blob is not None
        assert record.projects_blob is not None

    def test_encode_decode_slot(self, test_settings):
        slot = DetailSlot(
            date=TODAY,
            heatmap=make_heatmap([(5, 5, 1), (9, 2, 3)]),
            projects=[make_project(1), make_project(2, live_views=4)],
        )
        record = encode_slot("pf-test", slot, test_settings)
        assert decode_slot(record, test_settings) == slot

    def test_encode_slot_without_heatmap(self, test_settings):
        slot = DetailSlot(date=TODAY, projects=[make_project(1)])
        record = encode_slot("pf-test", slot, test_settings)
        assert record.heatmap_blob is None
        assert decode_slot(record, test_settings) == slot

    def test_decode_slot_without_projects_blob(self, test_settings):
        record = SlotRecord(portfolio_id="pf-test", date=TODAY)
        slot = decode_slot(record, test_settings)
        assert slot.heatmap is None
        assert slot.projects == []

    def test_decode_slot_corrupt_heatmap_raises(self, test_settings):
        record = SlotRecord(portfolio_id="pf-test", date=TODAY, heatmap_blob=b"HMB1\x01")
        with pytest.raises(CodecError):
            decode_slot(record, test_settings)

    def test_decode_slot_corrupt_projects_raises(self, test_settings):
        record = SlotRecord(portfolio_id="pf-test", date=TODAY, projects_blob=b"garbage")
        with pytest.raises(CodecError):
            decode_slot(record, test_settings)
