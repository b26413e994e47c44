"""Pydantic schema modeling for structbits.

This module provides the BitStruct/BitEnum base classes, the BitField()
attribute helper and the scalar wire types.
"""

from __future__ import annotations

from .base import BitEnum, BitStruct
from .fields import BitField
from .types import (
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
    Bool,
    Float,
    Int,
)

__all__ = [
    "BitStruct",
    "BitEnum",
    "BitField",
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
]
