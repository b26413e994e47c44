"""structbits: Declarative Binary Codec

A Python library for decoding and encoding bit-precise binary formats from
declarative schemas. A schema lists its fields in order; attributes on the
fields control width, byte order, presence, element counts, context passed
to nested schemas and derived values. Tagged unions select a variant from a
discriminant.

Key Features:
- Pydantic-based schema modeling
- Sub-byte fields with no implicit alignment
- Conditional, skipped and counted fields
- Context propagation into nested schemas
- Enum dispatch with id, pattern and catch-all variants
- Symmetric decode/encode, plus update() for derived fields

Quick Start:
    >>> from typing import ClassVar
    >>> from structbits import BitField, BitStruct, U8, decode, encode, update
    >>>
    >>> class Packet(BitStruct):
    ...     count: U8 = BitField(update=lambda self: len(self.items))
    ...     items: list[U8] = BitField(count=lambda s: s.count)
    >>>
    >>> packet = decode(Packet, b"\\x02\\xab\\xcd")
    >>> packet.items.append(0xFF)
    >>> update(packet)
    >>> encode(packet)
    b'\\x03\\xab\\xcd\\xff'
"""

from __future__ import annotations

from .codec import (
    BitReader,
    BitWriter,
    Endian,
    Scope,
    decode,
    decode_from,
    encode,
    encode_to,
    update,
)
from .exceptions import (
    DecodeError,
    EncodeError,
    HookError,
    InsufficientData,
    InvalidCount,
    MapError,
    SchemaError,
    StructbitsError,
    TrailingData,
    UnknownVariant,
    UnreachableVariant,
    ValueOverflow,
)
from .models import (
    F32,
    F64,
    I8,
    I16,
    I32,
    I64,
    I128,
    U8,
    U16,
    U32,
    U64,
    U128,
    BitEnum,
    BitField,
    BitStruct,
    Bool,
    Float,
    Int,
)
from .utils import encoded_bits, encoded_size, field_sizes

__version__ = "0.1.0"

__all__ = [
    # Core API
    "BitStruct",
    "BitEnum",
    "BitField",
    "encode",
    "encode_to",
    "decode",
    "decode_from",
    "update",
    # Wire types
    "Int",
    "Float",
    "U8",
    "U16",
    "U32",
    "U64",
    "U128",
    "I8",
    "I16",
    "I32",
    "I64",
    "I128",
    "F32",
    "F64",
    "Bool",
    # Streams and context
    "BitReader",
    "BitWriter",
    "Endian",
    "Scope",
    # Exceptions
    "StructbitsError",
    "SchemaError",
    "UnreachableVariant",
    "DecodeError",
    "InsufficientData",
    "TrailingData",
    "InvalidCount",
    "MapError",
    "UnknownVariant",
    "EncodeError",
    "ValueOverflow",
    "HookError",
    # Sizing
    "encoded_size",
    "encoded_bits",
    "field_sizes",
    # Version
    "__version__",
]
