"""
Fixed bit-width integer packing.

Values are written MSB-first into a running bit accumulator: each time at least
eight bits are buffered the top byte is emitted, and the final partial byte is
zero-padded. Decoding streams bytes back through the same accumulator and stops
after exactly ``count`` values, ignoring trailing padding.

Example:
    >>> encode([1, 2, 3], 2)
    b'l'
    >>> decode(b'l', 2, 3)
    [1, 2, 3]
"""

from typing import Iterable

from portfolio_analytics.codec.errors import (
    InvalidWidthError,
    TruncatedBlobError,
    ValueOverflowError,
)

MIN_BITS = 1
MAX_BITS = 32


def validate_width(bits_per_value: int) -> None:
    """Raise InvalidWidthError unless bits_per_value is in 1..32."""
    if not MIN_BITS <= bits_per_value <= MAX_BITS:
        raise InvalidWidthError(bits_per_value)


def max_value(bits_per_value: int) -> int:
    """Largest unsigned value representable in bits_per_value bits."""
    validate_width(bits_per_value)
    return (1 << bits_per_value) - 1


def packed_length(count: int, bits_per_value: int) -> int:
    """Number of bytes needed to hold count values of bits_per_value bits."""
    return (count * bits_per_value + 7) // 8


def encode(values: Iterable[int], bits_per_value: int) -> bytes:
    """
    Pack non-negative integers at a fixed bit width.

    Args:
        values: Integers, each in [0, 2**bits_per_value)
        bits_per_value: Width of every value, 1..32

    Returns:
        Packed bytes, last byte zero-padded

    Raises:
        InvalidWidthError: If bits_per_value is outside 1..32
        ValueOverflowError: If a value is negative or needs more bits
    """
    validate_width(bits_per_value)
    limit = 1 << bits_per_value

    out = bytearray()
    acc = 0
    bit_count = 0

    for value in values:
        if value < 0 or value >= limit:
            raise ValueOverflowError(value, bits_per_value)

        acc = (acc << bits_per_value) | value
        bit_count += bits_per_value

        while bit_count >= 8:
            bit_count -= 8
            out.append((acc >> bit_count) & 0xFF)
            acc &= (1 << bit_count) - 1

    if bit_count > 0:
        out.append((acc << (8 - bit_count)) & 0xFF)

    return bytes(out)


def decode(data: bytes, bits_per_value: int, count: int) -> list[int]:
    """
    Unpack exactly count fixed-width values produced by encode().

    Args:
        data: Packed bytes
        bits_per_value: Width used at encode time, 1..32
        count: Number of values to extract

    Returns:
        Decoded integers in their original order

    Raises:
        InvalidWidthError: If bits_per_value is outside 1..32
        ValueError: If count is negative
        TruncatedBlobError: If data holds fewer than count values
    """
    validate_width(bits_per_value)
    if count < 0:
        raise ValueError("count must be >= 0")

    needed = packed_length(count, bits_per_value)
    if len(data) < needed:
        raise TruncatedBlobError(
            f"Need {needed} bytes for {count} values of {bits_per_value} bits, got {len(data)}"
        )

    result: list[int] = []
    if count == 0:
        return result

    mask = (1 << bits_per_value) - 1
    acc = 0
    bit_count = 0

    for byte in data[:needed]:
        acc = (acc << 8) | byte
        bit_count += 8

        while bit_count >= bits_per_value and len(result) < count:
            bit_count -= bits_per_value
            result.append((acc >> bit_count) & mask)
            acc &= (1 << bit_count) - 1

    return result
