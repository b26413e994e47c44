"""Declarative binary codec for structbits.

This module provides decoding, encoding and update of models described by
BitStruct/BitEnum schemas, at bit granularity.
"""

from __future__ import annotations

from .bitpack import BitReader, BitWriter
from .context import Scope
from .decoder import decode, decode_from
from .encoder import encode, encode_to
from .scalar import Endian, decode_scalar, encode_scalar
from .schema import ContainerSpec, EnumSpec, FieldSpec, VariantSpec, schema_for
from .update import update

__all__ = [
    "encode",
    "encode_to",
    "decode",
    "decode_from",
    "update",
    "BitReader",
    "BitWriter",
    "Scope",
    "Endian",
    "decode_scalar",
    "encode_scalar",
    "schema_for",
    "ContainerSpec",
    "EnumSpec",
    "FieldSpec",
    "VariantSpec",
]
