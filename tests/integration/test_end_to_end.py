"""End-to-end integration tests."""

from __future__ import annotations

import enum
from typing import Annotated, Any, ClassVar, Optional

import pytest

from structbits import (
    I16,
    U8,
    U32,
    BitEnum,
    BitField,
    BitStruct,
    Bool,
    DecodeError,
    Int,
    decode,
    decode_from,
    encode,
    encoded_size,
    field_sizes,
    update,
)


class Priority(enum.IntEnum):
    """Frame priority."""

    LOW = 0
    NORMAL = 1
    HIGH = 2


class Reading(BitEnum):
    """Sensor reading; byte order comes from the enclosing frame."""

    structbits_type: ClassVar[Any] = U8
    structbits_ctx: ClassVar[tuple[str, ...]] = ("endian",)
    structbits_ctx_default: ClassVar[Any] = ("big",)
    structbits_endian: ClassVar[Any] = lambda s: s.endian


class Temperature(Reading):
    structbits_variant_id: ClassVar[Any] = 0x01

    celsius_x10: I16


class Pressure(Reading):
    structbits_variant_id: ClassVar[Any] = 0x02

    pascal: U32


class Vendor(Reading):
    """Vendor extensions occupy the upper half of the id space."""

    structbits_variant_pat: ClassVar[Any] = range(0x80, 0x100)

    code: U8
    length: U8 = BitField(update=lambda self: len(self.payload))
    payload: bytes = BitField(count=lambda s: s.length)


class Frame(BitStruct):
    """Telemetry frame with a packed header and a list of readings."""

    structbits_endian: ClassVar[str] = "little"
    structbits_max_bytes: ClassVar[Optional[int]] = 64

    version: U8 = BitField(bits=4)
    priority: Annotated[Priority, Int(3)]
    has_timestamp: Bool = BitField(bits=1)
    timestamp: Optional[U32] = BitField(cond=lambda s: s.has_timestamp)
    count: U8 = BitField(update=lambda self: len(self.readings))
    readings: list[Reading] = BitField(count=lambda s: s.count)


FRAME_BYTES = bytes.fromhex(
    "15"  # version 1, priority HIGH, timestamp present
    "78563412"  # timestamp
    "03"  # three readings
    "0183ff"  # temperature -12.5
    "02cd8b0100"  # pressure 101325
    "8102dead"  # vendor 0x81
)


class TestTelemetryFrame:
    """Test a realistic frame end to end."""

    def test_decode(self) -> None:
        frame = decode(Frame, FRAME_BYTES)

        assert frame.version == 1
        assert frame.priority is Priority.HIGH
        assert frame.has_timestamp is True
        assert frame.timestamp == 0x12345678
        assert frame.readings == [
            Temperature(celsius_x10=-125),
            Pressure(pascal=101325),
            Vendor(code=0x81, length=2, payload=b"\xde\xad"),
        ]

    def test_roundtrip(self) -> None:
        assert encode(decode(Frame, FRAME_BYTES)) == FRAME_BYTES

    def test_modify_update_encode(self) -> None:
        frame = decode(Frame, FRAME_BYTES)
        frame.readings.append(Vendor(code=0xFE, length=0, payload=b"\x01\x02\x03"))
        frame.has_timestamp = False

        update(frame)
        data = encode(frame)

        assert frame.count == 4
        assert frame.readings[-1].length == 3
        assert data[0] == 0x14
        assert data[1] == 0x04
        assert data.endswith(b"\xfe\x03\x01\x02\x03")

        decoded = decode(Frame, data)
        assert decoded.timestamp is None
        assert decoded.readings == frame.readings

    def test_reading_standalone(self) -> None:
        """Outside a frame the reading falls back to big endian."""
        assert decode(Reading, b"\x01\xff\x83") == Temperature(celsius_x10=-125)

    def test_reading_little_endian_ctx(self) -> None:
        assert decode(Reading, b"\x01\x83\xff", ctx={"endian": "little"}) == Temperature(
            celsius_x10=-125
        )

    def test_sizes(self) -> None:
        frame = decode(Frame, FRAME_BYTES)

        assert encoded_size(frame) == len(FRAME_BYTES)
        sizes = field_sizes(frame)
        assert sizes["version"] == 4
        assert sizes["priority"] == 3
        assert sizes["has_timestamp"] == 1
        assert sizes["timestamp"] == 32
        assert sizes["readings"] == (3 + 5 + 4) * 8

    def test_truncated_reading(self) -> None:
        """Errors report the full path to the failing field."""
        with pytest.raises(DecodeError) as exc_info:
            decode(Frame, FRAME_BYTES[:-1])

        assert exc_info.value.field == "readings.payload"


class TestRecordStream:
    """Test a stream of back-to-back records."""

    def test_decode_all(self) -> None:
        stream = encode(Temperature(celsius_x10=215)) + encode(Pressure(pascal=9))
        stream += encode(Vendor(code=0x90, length=1, payload=b"\x00"))

        records = []
        rest = (stream, 0)
        while rest[0]:
            rest, record = decode_from(Reading, *rest)
            records.append(record)

        assert records == [
            Temperature(celsius_x10=215),
            Pressure(pascal=9),
            Vendor(code=0x90, length=1, payload=b"\x00"),
        ]
