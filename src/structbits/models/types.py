"""Wire types for scalar fields.

A scalar field's natural width comes from an ``Int`` or ``Float`` marker in
its ``typing.Annotated`` metadata. The aliases below cover the usual machine
types; custom widths are spelled out directly:

    >>> class Header(BitStruct):
    ...     version: U8
    ...     flags: Annotated[int, Int(12)]
    ...     kind: Annotated[Kind, Int(4)]  # Kind is an enum.IntEnum
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Annotated


@dataclass(frozen=True)
class Int:
    """Integer stored in ``bits`` bits, optionally two's complement."""

    bits: int
    signed: bool = False


@dataclass(frozen=True)
class Float:
    """IEEE-754 float stored in 32 or 64 bits."""

    bits: int


U8 = Annotated[int, Int(8)]
U16 = Annotated[int, Int(16)]
U32 = Annotated[int, Int(32)]
U64 = Annotated[int, Int(64)]
U128 = Annotated[int, Int(128)]

I8 = Annotated[int, Int(8, signed=True)]
I16 = Annotated[int, Int(16, signed=True)]
I32 = Annotated[int, Int(32, signed=True)]
I64 = Annotated[int, Int(64, signed=True)]
I128 = Annotated[int, Int(128, signed=True)]

F32 = Annotated[float, Float(32)]
F64 = Annotated[float, Float(64)]

Bool = Annotated[bool, Int(8)]
