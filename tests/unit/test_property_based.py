"""Property-based tests using hypothesis."""

from __future__ import annotations

from hypothesis import given
from hypothesis import strategies as st

from structbits import (
    I16,
    U8,
    U16,
    BitField,
    BitReader,
    BitStruct,
    BitWriter,
    Endian,
    decode,
    decode_from,
    encode,
    update,
)
from structbits.codec import decode_scalar, encode_scalar


class Packed(BitStruct):
    high: U8 = BitField(bits=2)
    low: U8 = BitField(bits=6)


class Mixed(BitStruct):
    flag: U8 = BitField(bits=1)
    delta: I16 = BitField(endian="little")
    reading: U16 = BitField(bits=13)


class Packet(BitStruct):
    count: U8 = BitField(update=lambda self: len(self.items))
    items: list[U8] = BitField(count=lambda s: s.count)


@st.composite
def scalars(draw: st.DrawFn) -> tuple[int, int, Endian, bool]:
    width = draw(st.integers(min_value=1, max_value=64))
    signed = draw(st.booleans())
    if signed:
        value = draw(st.integers(min_value=-(1 << (width - 1)), max_value=(1 << (width - 1)) - 1))
    else:
        value = draw(st.integers(min_value=0, max_value=(1 << width) - 1))
    return value, width, draw(st.sampled_from(Endian)), signed


class TestScalarProperties:
    """Property-based tests for the scalar codec."""

    @given(case=scalars())
    def test_roundtrip(self, case: tuple[int, int, Endian, bool]) -> None:
        """Test any in-range value decodes to itself."""
        value, width, endian, signed = case
        writer = BitWriter()
        encode_scalar(writer, value, width, endian, signed=signed)

        assert writer.bit_length() == width
        assert decode_scalar(BitReader(writer.to_bytes()), width, endian, signed=signed) == value

    @given(prefix=st.integers(min_value=0, max_value=7), case=scalars())
    def test_roundtrip_unaligned(self, prefix: int, case: tuple[int, int, Endian, bool]) -> None:
        """Test values starting at any bit offset."""
        value, width, endian, signed = case
        writer = BitWriter()
        writer.write_bits(0, prefix)
        encode_scalar(writer, value, width, endian, signed=signed)

        reader = BitReader(writer.to_bytes(), bit_offset=prefix)
        assert decode_scalar(reader, width, endian, signed=signed) == value


class TestCodecProperties:
    """Property-based tests for containers."""

    @given(high=st.integers(min_value=0, max_value=3), low=st.integers(min_value=0, max_value=63))
    def test_packed_byte(self, high: int, low: int) -> None:
        """Test the bit layout of two sub-byte fields."""
        data = encode(Packed(high=high, low=low))

        assert data == bytes([(high << 6) | low])
        assert decode(Packed, data) == Packed(high=high, low=low)

    @given(
        flag=st.integers(min_value=0, max_value=1),
        delta=st.integers(min_value=-32768, max_value=32767),
        reading=st.integers(min_value=0, max_value=(1 << 13) - 1),
    )
    def test_encode_decode_roundtrip(self, flag: int, delta: int, reading: int) -> None:
        """Test encode/decode is invertible."""
        message = Mixed(flag=flag, delta=delta, reading=reading)

        assert decode(Mixed, encode(message)) == message

    @given(items=st.lists(st.integers(min_value=0, max_value=255), max_size=50))
    def test_update_then_roundtrip(self, items: list[int]) -> None:
        """Test update() makes any packet consistent and is idempotent."""
        packet = Packet(count=0, items=items)
        update(packet)
        once = encode(packet)
        update(packet)

        assert encode(packet) == once
        assert decode(Packet, once) == packet

    @given(values=st.lists(st.integers(min_value=0, max_value=63), min_size=1, max_size=20))
    def test_concatenated_records(self, values: list[int]) -> None:
        """Test records packed back to back decode in sequence."""
        writer = BitWriter()
        for value in values:
            writer.write_bits(value >> 4, 2)
            writer.write_bits(value & 0xF, 6)

        rest = (writer.to_bytes(), 0)
        decoded = []
        for _ in values:
            rest, record = decode_from(Packed, *rest)
            decoded.append((record.high << 4) | record.low)

        assert decoded == values
        assert rest == (b"", 0)
