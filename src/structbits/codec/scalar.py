"""Fixed-width scalar encoding.

Integers of arbitrary bit width are pulled off the stream MSB-first. For widths
that are a multiple of 8 the resulting bytes are then reassembled in the
requested byte order; narrower or odd widths are a single unsigned bit string
and are never reordered.
"""

from __future__ import annotations

import enum
import struct
import sys
from typing import Any

from ..exceptions import SchemaError, ValueOverflow
from .bitpack import BitReader, BitWriter


class Endian(str, enum.Enum):
    """Byte order of multi-byte scalars."""

    BIG = "big"
    LITTLE = "little"

    @classmethod
    def native(cls) -> Endian:
        """Byte order of the running platform."""
        return cls(sys.byteorder)

    @classmethod
    def coerce(cls, value: Any) -> Endian:
        """Convert ``"big"``/``"little"`` (or an Endian) to an Endian.

        Raises:
            SchemaError: If the value names no byte order
        """
        if isinstance(value, Endian):
            return value
        try:
            return cls(value)
        except ValueError as err:
            raise SchemaError(f"Invalid endian {value!r}, expected 'big' or 'little'") from err


def _swap(value: int, width: int, endian: Endian) -> int:
    if endian is Endian.BIG or width % 8 or width <= 8:
        return value
    return int.from_bytes(value.to_bytes(width // 8, "big"), "little")


def decode_scalar(reader: BitReader, width: int, endian: Endian, signed: bool = False) -> int:
    """Read an integer of ``width`` bits.

    Args:
        reader: Stream to read from
        width: Width in bits
        endian: Byte order applied when width is a whole number of bytes
        signed: Interpret the bits as two's complement

    Raises:
        InsufficientData: If the stream is exhausted
    """
    value = _swap(reader.read_bits(width), width, endian)
    if signed and value & (1 << (width - 1)):
        value -= 1 << width
    return value


def encode_scalar(
    writer: BitWriter, value: int, width: int, endian: Endian, signed: bool = False
) -> None:
    """Write an integer using exactly ``width`` bits.

    Raises:
        ValueOverflow: If value does not fit in width bits
    """
    if signed:
        low, high = -(1 << (width - 1)), (1 << (width - 1)) - 1
    else:
        low, high = 0, (1 << width) - 1
    if value < low or value > high:
        raise ValueOverflow(
            f"Value {value} doesn't fit in {width} bits (range: {low} to {high})",
            bit_offset=writer.bit_length(),
        )
    if value < 0:
        value += 1 << width
    writer.write_bits(_swap(value, width, endian), width)


_FLOAT_FORMATS = {32: ">f", 64: ">d"}


def _float_format(width: int) -> str:
    try:
        return _FLOAT_FORMATS[width]
    except KeyError:
        raise SchemaError(f"Float width must be 32 or 64 bits, got {width}") from None


def decode_float(reader: BitReader, width: int, endian: Endian) -> float:
    """Read an IEEE-754 float of 32 or 64 bits."""
    fmt = _float_format(width)
    raw = decode_scalar(reader, width, endian)
    return struct.unpack(fmt, raw.to_bytes(width // 8, "big"))[0]


def encode_float(writer: BitWriter, value: float, width: int, endian: Endian) -> None:
    """Write an IEEE-754 float of 32 or 64 bits."""
    fmt = _float_format(width)
    try:
        packed = struct.pack(fmt, value)
    except (OverflowError, struct.error) as err:
        raise ValueOverflow(
            f"Value {value} doesn't fit in a {width}-bit float", bit_offset=writer.bit_length()
        ) from err
    encode_scalar(writer, int.from_bytes(packed, "big"), width, endian)
