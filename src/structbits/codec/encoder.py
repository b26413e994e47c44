"""Binary encoder for structbits models.

This module provides the encode() function that converts a model instance to
bytes. The schema is implied by the instance's class.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from structlog import get_logger

from ..exceptions import EncodeError
from ..models.base import BitEnum, BitStruct
from .bitpack import BitWriter
from .dispatch import encode_schema, root_scope

logger = get_logger()


def encode_to(
    writer: BitWriter,
    message: BitStruct,
    *,
    ctx: Any = None,
    sizes: Optional[Dict[str, int]] = None,
) -> None:
    """Append the encoding of ``message`` to an existing writer.

    No padding is added, so consecutive values pack without gaps. When
    encoding fails, the writer is restored to the state it had on entry.

    Args:
        writer: Stream to append to
        message: BitStruct or BitEnum variant instance
        ctx: Context for schemas declaring structbits_ctx
        sizes: When given, receives the number of bits written per field
    """
    message_class = type(message)
    if not isinstance(message, BitStruct):
        raise EncodeError(f"Cannot encode {message_class.__name__}: not a BitStruct")
    schema_class = message_class.enum_root() if isinstance(message, BitEnum) else message_class
    checkpoint = writer.checkpoint()
    try:
        encode_schema(message_class, message, writer, root_scope(schema_class, ctx, writer), sizes)
    except Exception:
        writer.rollback(checkpoint)
        raise


def encode(message: BitStruct, *, ctx: Any = None) -> bytes:
    """Encode a model instance to bytes.

    Fields are written in declaration order; the final byte is padded with
    zero bits when the total is not a whole number of bytes. Run update()
    first if derived fields (counts, lengths) may be stale.

    Args:
        message: BitStruct or BitEnum variant instance to encode
        ctx: Context for schemas declaring structbits_ctx; ctx defaults are
            used when omitted

    Returns:
        Binary representation

    Raises:
        SchemaError: If the schema is invalid
        EncodeError: If a field value is invalid or out of range
        HookError: If a user hook fails

    Examples:
        ```python
        class Status(BitStruct):
            vehicle_id: U8
            flags: U8 = BitField(bits=4)

        data = encode(Status(vehicle_id=42, flags=3))  # b"\\x2a\\x30"
        ```
    """
    log = logger.new(schema=type(message).__name__)
    writer = BitWriter()
    encode_to(writer, message, ctx=ctx)
    encoded = writer.to_bytes()
    log.debug("encoded", bits=writer.bit_length())

    # Check max_bytes constraint if present
    max_bytes = getattr(type(message), "structbits_max_bytes", None)
    if max_bytes is not None and len(encoded) > max_bytes:
        raise EncodeError(
            f"Encoded message size ({len(encoded)} bytes) exceeds structbits_max_bytes={max_bytes}"
        )

    return encoded
