"""
Exceptions raised by the fixed-width and sectioned blob codecs.

Every codec failure is fatal for the value being encoded or decoded: either a
caller bug (bad width, value out of range) or corrupt stored data. Callers on a
read path catch ``CodecError`` around a single stored slot and treat that slot
as unavailable.
"""


class CodecError(ValueError):
    """Base exception for all codec failures."""

    pass


class InvalidWidthError(CodecError):
    """Bit width outside the supported 1..32 range."""

    def __init__(self, bits_per_value: int):
        self.bits_per_value = bits_per_value
        super().__init__(f"bits_per_value must be in 1..32, got {bits_per_value}")


class ValueOverflowError(CodecError):
    """Value does not fit in the requested bit width."""

    def __init__(self, value: int, bits_per_value: int):
        self.value = value
        self.bits_per_value = bits_per_value
        super().__init__(f"Value {value} does not fit in {bits_per_value} bits")


class InvalidSectionError(CodecError):
    """Section or blob parameters rejected at build time."""

    pass


class EmptyBlobError(CodecError):
    """A blob was built without any section."""

    pass


class InvalidFormatError(CodecError):
    """Blob bytes are not a valid sectioned blob."""

    pass


class ChecksumMismatchError(InvalidFormatError):
    """Trailing CRC32 does not match the blob contents."""

    pass


class TruncatedBlobError(CodecError):
    """Blob or payload is shorter than its header declares."""

    pass


class OutOfBoundsError(CodecError):
    """A declared section byte range extends past the end of the blob."""

    def __init__(self, section_id: int, end: int, blob_length: int):
        self.section_id = section_id
        super().__init__(
            f"Section out of bounds: id={section_id} ends at {end}, blob length {blob_length}"
        )


class SectionNotFoundError(CodecError, LookupError):
    """Requested section id is not present in the blob."""

    def __init__(self, section_id: int):
        self.section_id = section_id
        super().__init__(f"Section {section_id} not found")


class StructuredDecodeError(CodecError):
    """Compressed structured value is not valid gzip or does not match its type."""

    pass
