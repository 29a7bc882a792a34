"""
Structured value codec: pydantic JSON compressed with gzip.

Used for values that are not flat integer arrays, such as the per-project
metrics list of a detail slot. Kept apart from the fixed-width codec.
"""

import gzip
import zlib
from typing import Any, Optional, TypeVar

import structlog
from pydantic import TypeAdapter, ValidationError

from portfolio_analytics.codec.errors import StructuredDecodeError

logger = structlog.get_logger()

T = TypeVar("T")


def compress(item: Any, type_: Optional[Any] = None) -> bytes:
    """
    Serialize a value (model, list of models, dict) to gzip-compressed JSON.

    Args:
        item: Value to serialize
        type_: Declared type of item, inferred from the value when omitted

    Raises:
        ValueError: If item is None
    """
    if item is None:
        raise ValueError("Object to compress cannot be None")
    data = TypeAdapter(type_ or type(item)).dump_json(item)
    return gzip.compress(data, mtime=0)


def _load(data: bytes, adapter: TypeAdapter) -> Any:
    try:
        raw = gzip.decompress(data)
    except (OSError, EOFError, zlib.error) as e:
        raise StructuredDecodeError(f"Invalid gzip payload: {e}") from e
    try:
        return adapter.validate_json(raw)
    except ValidationError as e:
        raise StructuredDecodeError(f"Payload does not match expected type: {e}") from e


def decompress(data: Optional[bytes], type_: type[T]) -> Optional[T]:
    """
    Decompress a single value of type_.

    Returns:
        Decoded value, or None when data is None

    Raises:
        StructuredDecodeError: On corrupt gzip or a type mismatch
    """
    if data is None:
        return None
    return _load(data, TypeAdapter(type_))


def decompress_list(data: Optional[bytes], type_: type[T]) -> list[T]:
    """
    Decompress a list of type_ values.

    Older records hold a single object instead of an array; such a payload is
    returned wrapped in a one-element list.

    Raises:
        StructuredDecodeError: If neither a list nor a single object decodes
    """
    if data is None:
        return []
    try:
        return _load(data, TypeAdapter(list[type_]))
    except StructuredDecodeError as list_error:
        try:
            single = _load(data, TypeAdapter(type_))
        except StructuredDecodeError:
            raise list_error
        logger.debug("structured_list_fallback_single", type=getattr(type_, "__name__", str(type_)))
        return [single]
