"""
Versioned, sectioned binary blob built from fixed-width packed integer arrays.

Several heterogeneous numeric arrays (heatmap indexes, values and counts, for
instance) are stored in one value, each packed at the minimum width its range
requires.

Wire format (all integers big-endian):

    offset 0  : magic "HMB1"                       4 bytes
    offset 4  : version                            1 byte, 1..255
    offset 5  : section count                      1 byte
    offset 6  : header length                      2 bytes, bytes 0..end of section table
    offset 8  : section count x 10-byte entries:
                id(1) | bits_per_value(1) | value_count(4) | payload_length(4)
    then      : section payloads in declared order
    trailing  : CRC32 of all preceding bytes, only when enabled at build time
"""

import struct
import zlib
from typing import Iterable, Sequence

import structlog
from pydantic import BaseModel, ConfigDict

from portfolio_analytics.codec import bitpack
from portfolio_analytics.codec.errors import (
    ChecksumMismatchError,
    EmptyBlobError,
    InvalidFormatError,
    InvalidSectionError,
    OutOfBoundsError,
    SectionNotFoundError,
    TruncatedBlobError,
)

logger = structlog.get_logger()

MAGIC = b"HMB1"
FIXED_HEADER = struct.Struct(">4sBBH")
SECTION_ENTRY = struct.Struct(">BBII")
CRC = struct.Struct(">I")

MAX_SECTIONS = 255
MAX_SECTION_ID = 255
MAX_VERSION = 255


class BlobSection:
    """
    One integer array to be packed into a blob.

    Attributes:
        id: Section identifier, unique within a blob (0..255)
        bits_per_value: Packing width (1..32)
        values: Non-negative integers that fit in bits_per_value
    """

    __slots__ = ("id", "bits_per_value", "values")

    def __init__(self, id: int, bits_per_value: int, values: Iterable[int]):
        if not 0 <= id <= MAX_SECTION_ID:
            raise InvalidSectionError(f"Section id must be in 0..255, got {id}")
        bitpack.validate_width(bits_per_value)
        self.id = id
        self.bits_per_value = bits_per_value
        self.values = list(values)

    def __repr__(self) -> str:
        return (
            f"BlobSection(id={self.id}, bits_per_value={self.bits_per_value}, "
            f"count={len(self.values)})"
        )


class SectionInfo(BaseModel):
    """Descriptor of one packed array inside a parsed blob."""

    model_config = ConfigDict(frozen=True)

    id: int
    bits_per_value: int
    count: int
    offset: int
    length: int

    @property
    def end(self) -> int:
        return self.offset + self.length


def build_blob(
    version: int,
    sections: Sequence[BlobSection],
    with_checksum: bool = False,
) -> bytes:
    """
    Assemble a sectioned blob.

    Args:
        version: Format version stored in the header (1..255)
        sections: Sections in the order their payloads are written
        with_checksum: Append a CRC32 over every preceding byte

    Returns:
        Blob bytes

    Raises:
        EmptyBlobError: If no section is given
        InvalidSectionError: On a bad version, duplicate id or too many sections
        InvalidWidthError: On a bad section width
        ValueOverflowError: If a value does not fit its section width
    """
    if not sections:
        raise EmptyBlobError("No sections added")
    if not 1 <= version <= MAX_VERSION:
        raise InvalidSectionError(f"version must be in 1..255, got {version}")
    if len(sections) > MAX_SECTIONS:
        raise InvalidSectionError(f"At most {MAX_SECTIONS} sections allowed, got {len(sections)}")

    seen: set[int] = set()
    for section in sections:
        if section.id in seen:
            raise InvalidSectionError(f"Duplicate section id {section.id}")
        seen.add(section.id)

    payloads = [bitpack.encode(s.values, s.bits_per_value) for s in sections]
    header_length = FIXED_HEADER.size + len(sections) * SECTION_ENTRY.size

    out = bytearray(FIXED_HEADER.pack(MAGIC, version, len(sections), header_length))
    for section, payload in zip(sections, payloads):
        out += SECTION_ENTRY.pack(
            section.id, section.bits_per_value, len(section.values), len(payload)
        )
    for payload in payloads:
        out += payload

    if with_checksum:
        out += CRC.pack(zlib.crc32(out) & 0xFFFFFFFF)

    logger.debug(
        "blob_built",
        version=version,
        sections=len(sections),
        size=len(out),
        checksum=with_checksum,
    )
    return bytes(out)


class BlobReader:
    """
    Read-only structured view over a parsed blob.

    Headers are validated eagerly by parse(); section payloads are sliced and
    decoded only when requested.

    Example:
        >>> blob = build_blob(1, [BlobSection(1, 8, [1, 2, 3])])
        >>> BlobReader.parse(blob).decode_section(1)
        [1, 2, 3]
    """

    def __init__(
        self,
        version: int,
        header_length: int,
        blob: bytes,
        sections: dict[int, SectionInfo],
        payload_end: int,
    ):
        self._version = version
        self._header_length = header_length
        self._blob = blob
        self._sections = sections
        self._payload_end = payload_end

    @classmethod
    def parse(cls, blob: bytes, verify_checksum: bool = False) -> "BlobReader":
        """
        Validate a blob header and section table.

        Args:
            blob: Raw blob bytes
            verify_checksum: Require a matching trailing CRC32

        Returns:
            BlobReader over the blob

        Raises:
            TruncatedBlobError: If the blob is shorter than its fixed or declared header
            InvalidFormatError: On bad magic, version, header length, duplicate ids
                or trailing bytes that cannot be a checksum
            OutOfBoundsError: If a section extends past the blob end
            ChecksumMismatchError: If verify_checksum is set and the CRC is missing or wrong
        """
        if blob is None:
            raise InvalidFormatError("Blob is None")
        blob = bytes(blob)
        if len(blob) < FIXED_HEADER.size:
            raise TruncatedBlobError(f"Blob too small: {len(blob)} bytes")

        magic, version, section_count, header_length = FIXED_HEADER.unpack_from(blob, 0)
        if magic != MAGIC:
            raise InvalidFormatError(f"Invalid magic {magic!r}")
        if version == 0:
            raise InvalidFormatError("Invalid version 0")

        table_end = FIXED_HEADER.size + section_count * SECTION_ENTRY.size
        if header_length < table_end:
            raise InvalidFormatError(
                f"Header length {header_length} smaller than section table ({table_end})"
            )
        if len(blob) < header_length:
            raise TruncatedBlobError(
                f"Truncated header: declared {header_length} bytes, blob has {len(blob)}"
            )

        sections: dict[int, SectionInfo] = {}
        cursor = header_length
        for i in range(section_count):
            section_id, bits, count, length = SECTION_ENTRY.unpack_from(
                blob, FIXED_HEADER.size + i * SECTION_ENTRY.size
            )
            if not bitpack.MIN_BITS <= bits <= bitpack.MAX_BITS:
                raise InvalidFormatError(f"Section {section_id} has invalid width {bits}")
            if section_id in sections:
                raise InvalidFormatError(f"Duplicate section id {section_id}")
            if cursor + length > len(blob):
                raise OutOfBoundsError(section_id, cursor + length, len(blob))
            sections[section_id] = SectionInfo(
                id=section_id,
                bits_per_value=bits,
                count=count,
                offset=cursor,
                length=length,
            )
            cursor += length

        trailing = len(blob) - cursor
        if trailing not in (0, CRC.size):
            raise InvalidFormatError(f"Unexpected {trailing} trailing bytes after payloads")

        reader = cls(version, header_length, blob, sections, cursor)
        if verify_checksum and not reader.has_checksum:
            raise ChecksumMismatchError("Blob checksum missing or does not match")
        return reader

    @property
    def version(self) -> int:
        return self._version

    @property
    def header_length(self) -> int:
        return self._header_length

    @property
    def has_checksum(self) -> bool:
        """True when exactly four trailing bytes hold a matching CRC32."""
        if len(self._blob) != self._payload_end + CRC.size:
            return False
        (stored,) = CRC.unpack_from(self._blob, self._payload_end)
        return stored == zlib.crc32(self._blob[: self._payload_end]) & 0xFFFFFFFF

    def section_ids(self) -> list[int]:
        """Section ids in declared order."""
        return list(self._sections)

    def info(self, section_id: int) -> SectionInfo:
        section = self._sections.get(section_id)
        if section is None:
            raise SectionNotFoundError(section_id)
        return section

    def payload(self, section_id: int) -> bytes:
        """Raw packed bytes of one section."""
        section = self.info(section_id)
        return self._blob[section.offset : section.end]

    def decode_section(self, section_id: int) -> list[int]:
        """Unpack one section's integers."""
        section = self.info(section_id)
        return bitpack.decode(self.payload(section_id), section.bits_per_value, section.count)
