"""Message size calculation utilities.

Sizes depend on field values (counts, conditions, variants), so they are
measured on an instance by encoding it into a scratch writer.
"""

from __future__ import annotations

from typing import Any

from ..codec.bitpack import BitWriter
from ..codec.encoder import encode_to
from ..models.base import BitStruct


def encoded_bits(message: BitStruct, *, ctx: Any = None) -> int:
    """Calculate the encoded size of a message in bits.

    Example:
        >>> class Status(BitStruct):
        ...     vehicle_id: U8
        ...     active: U8 = BitField(bits=1)
        >>> encoded_bits(Status(vehicle_id=42, active=1))
        9
    """
    writer = BitWriter()
    encode_to(writer, message, ctx=ctx)
    return writer.bit_length()


def encoded_size(message: BitStruct, *, ctx: Any = None) -> int:
    """Calculate the encoded size of a message in bytes (rounded up).

    Example:
        >>> encoded_size(Status(vehicle_id=42, active=1))
        2  # 8 bits + 1 bit = 9 bits = 2 bytes
    """
    return (encoded_bits(message, ctx=ctx) + 7) // 8


def field_sizes(message: BitStruct, *, ctx: Any = None) -> dict[str, int]:
    """Get the size in bits of each top-level field of a message.

    Skipped and absent fields report 0. For an enum variant the discriminant
    is not attributed to any field.

    Example:
        >>> field_sizes(Status(vehicle_id=42, active=1))
        {'vehicle_id': 8, 'active': 1}
    """
    sizes: dict[str, int] = {}
    encode_to(BitWriter(), message, ctx=ctx, sizes=sizes)
    return sizes
