"""
Binary and structured codecs for persisted analytics values.

- bitpack: fixed bit-width integer packing
- blob: versioned sectioned blob ("HMB1") built from packed arrays
- structured: gzip-compressed pydantic JSON
- errors: codec exception hierarchy rooted at CodecError
"""

from portfolio_analytics.codec.blob import BlobReader, BlobSection, SectionInfo, build_blob
from portfolio_analytics.codec.errors import (
    ChecksumMismatchError,
    CodecError,
    EmptyBlobError,
    InvalidFormatError,
    InvalidSectionError,
    InvalidWidthError,
    OutOfBoundsError,
    SectionNotFoundError,
    StructuredDecodeError,
    TruncatedBlobError,
    ValueOverflowError,
)

__all__ = [
    "BlobReader",
    "BlobSection",
    "SectionInfo",
    "build_blob",
    "ChecksumMismatchError",
    "CodecError",
    "EmptyBlobError",
    "InvalidFormatError",
    "InvalidSectionError",
    "InvalidWidthError",
    "OutOfBoundsError",
    "SectionNotFoundError",
    "StructuredDecodeError",
    "TruncatedBlobError",
    "ValueOverflowError",
]
