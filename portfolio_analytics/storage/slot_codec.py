"""
Stored form of detail slots.

Heatmap layout inside the sectioned blob:

    section 1: cell indexes   (heatmap_index_bits, default 15: 64 x 512 grid)
    section 2: cell values    (heatmap_value_bits, default 12)
    section 3: visit counts   (heatmap_count_bits, default 6)

At 400 cells this is 750 + 600 + 300 payload bytes plus a 38 byte header.

Values and counts that outgrow their width saturate at the section maximum,
so a very popular cell stays the hottest cell instead of failing the save.
Indexes never saturate: an index beyond the configured grid is a caller bug
and raises ValueOverflowError.
"""

from typing import Optional

import structlog

from portfolio_analytics import constants
from portfolio_analytics.codec import bitpack, structured
from portfolio_analytics.codec.blob import BlobReader, BlobSection, build_blob
from portfolio_analytics.codec.errors import InvalidFormatError
from portfolio_analytics.config import Settings, get_settings
from portfolio_analytics.models.heatmap import DetailSlot, PortfolioHeatmap
from portfolio_analytics.models.metrics import ProjectMetricsWithId
from portfolio_analytics.storage.base import SlotRecord

logger = structlog.get_logger()


def saturate(values: list[int], bits_per_value: int) -> tuple[list[int], int]:
    """
    Clamp values to the largest value representable in bits_per_value bits.

    Returns:
        Tuple of (clamped values, number of values that were clamped)
    """
    limit = bitpack.max_value(bits_per_value)
    clamped = 0
    result = []
    for value in values:
        if value > limit:
            result.append(limit)
            clamped += 1
        else:
            result.append(value)
    return result, clamped


def encode_heatmap(heatmap: PortfolioHeatmap, settings: Optional[Settings] = None) -> bytes:
    """
    Pack a heatmap into a sectioned blob.

    Raises:
        ValueOverflowError: If a cell index does not fit the index width
    """
    settings = settings or get_settings()

    values, values_clamped = saturate(heatmap.values, settings.heatmap_value_bits)
    counts, counts_clamped = saturate(heatmap.counts, settings.heatmap_count_bits)
    if values_clamped or counts_clamped:
        logger.warning(
            "heatmap_values_saturated",
            values_clamped=values_clamped,
            counts_clamped=counts_clamped,
            value_bits=settings.heatmap_value_bits,
            count_bits=settings.heatmap_count_bits,
        )

    return build_blob(
        settings.heatmap_blob_version,
        [
            BlobSection(
                constants.HEATMAP_SECTION_INDEX, settings.heatmap_index_bits, heatmap.indexes
            ),
            BlobSection(constants.HEATMAP_SECTION_VALUE, settings.heatmap_value_bits, values),
            BlobSection(constants.HEATMAP_SECTION_COUNT, settings.heatmap_count_bits, counts),
        ],
        with_checksum=settings.heatmap_blob_checksum,
    )


def decode_heatmap(
    blob: bytes,
    version: str,
    columns: int,
    settings: Optional[Settings] = None,
) -> PortfolioHeatmap:
    """
    Unpack a heatmap blob.

    Raises:
        CodecError: If the blob is corrupt or a section is missing
    """
    settings = settings or get_settings()
    reader = BlobReader.parse(blob, verify_checksum=settings.heatmap_blob_checksum)

    indexes = reader.decode_section(constants.HEATMAP_SECTION_INDEX)
    values = reader.decode_section(constants.HEATMAP_SECTION_VALUE)
    counts = reader.decode_section(constants.HEATMAP_SECTION_COUNT)
    try:
        return PortfolioHeatmap.from_arrays(version, columns, indexes, values, counts)
    except ValueError as e:
        raise InvalidFormatError(f"Inconsistent heatmap sections: {e}") from e


def encode_slot(
    portfolio_id: str,
    slot: DetailSlot,
    settings: Optional[Settings] = None,
) -> SlotRecord:
    """
    Convert a detail slot to its stored record.

    Args:
        portfolio_id: Owning portfolio
        slot: Day's heatmap and per-project metrics
        settings: Blob layout settings (default: application settings)

    Returns:
        SlotRecord ready for the repository
    """
    settings = settings or get_settings()
    heatmap = slot.heatmap

    return SlotRecord(
        portfolio_id=portfolio_id,
        date=slot.date,
        version=heatmap.version if heatmap else constants.SNAPSHOT_VERSION,
        columns=heatmap.columns if heatmap else 0,
        heatmap_blob=encode_heatmap(heatmap, settings) if heatmap else None,
        projects_blob=structured.compress(slot.projects, list[ProjectMetricsWithId]),
    )


def decode_slot(record: SlotRecord, settings: Optional[Settings] = None) -> DetailSlot:
    """
    Convert a stored record back to a detail slot.

    Raises:
        CodecError: If the heatmap blob or the projects payload is corrupt
    """
    heatmap = None
    if record.heatmap_blob is not None:
        heatmap = decode_heatmap(record.heatmap_blob, record.version, record.columns, settings)

    return DetailSlot(
        date=record.date,
        heatmap=heatmap,
        projects=structured.decompress_list(record.projects_blob, ProjectMetricsWithId),
    )
