"""Unit tests for enum dispatch."""

from __future__ import annotations

from typing import Any, ClassVar, Optional

import pytest

from structbits import (
    I8,
    U8,
    U16,
    U32,
    BitEnum,
    BitField,
    BitReader,
    BitStruct,
    BitWriter,
    DecodeError,
    EncodeError,
    SchemaError,
    UnknownVariant,
    UnreachableVariant,
    decode,
    decode_from,
    encode,
    field_sizes,
)


class Command(BitEnum):
    """Enum with two id variants and a catch-all."""

    structbits_type: ClassVar[Any] = U8
    structbits_endian: ClassVar[str] = "little"


class VariantA(Command):
    structbits_variant_id: ClassVar[Any] = 0x01

    value: U8


class VariantB(Command):
    structbits_variant_id: ClassVar[Any] = 0x02

    first: U8
    second: U16


class VariantOther(Command):
    opcode: U8


class Ranged(BitEnum):
    structbits_type: ClassVar[Any] = U8


class RangedExact(Ranged):
    structbits_variant_id: ClassVar[Any] = 0x01

    value: U8


class RangedLow(Ranged):
    structbits_variant_pat: ClassVar[Any] = range(0x02, 0x07)

    id: U8


class RangedOdd(Ranged):
    structbits_variant_pat: ClassVar[Any] = lambda d: d % 2 == 1
    structbits_variant_id_field: ClassVar[Optional[str]] = "code"

    flag: U8 = BitField(skip=True, default=lambda s: s.discriminant)
    code: U8


class Nibbles(BitEnum):
    """Discriminant stored in 4 bits."""

    structbits_type: ClassVar[Any] = U8
    structbits_bits: ClassVar[Optional[int]] = 4


class NibbleA(Nibbles):
    structbits_variant_id: ClassVar[Any] = 0b1001

    low: U8 = BitField(bits=4)
    tail: U8


class Wide(BitEnum):
    """32-bit discriminant type stored in two little endian bytes."""

    structbits_type: ClassVar[Any] = U32
    structbits_bytes: ClassVar[Optional[int]] = 2
    structbits_endian: ClassVar[str] = "little"


class WideA(Wide):
    structbits_variant_id: ClassVar[Any] = 0xBEEF

    value: U8


class ById(BitEnum):
    """Discriminant supplied by the parent, nothing stored."""

    structbits_ctx: ClassVar[tuple[str, ...]] = ("my_id",)
    structbits_id: ClassVar[Any] = lambda s: s.my_id


class ByIdA(ById):
    structbits_variant_id: ClassVar[Any] = 0x01

    value: U8


class ByIdB(ById):
    structbits_variant_id: ClassVar[Any] = 0x02


class Holder(BitStruct):
    my_id: U8
    data: U8
    enum_from_id: ById = BitField(ctx=lambda s: (s.my_id,))


def read_blob(reader: BitReader, scope: Any) -> Blob:
    return Blob(data=reader.read_bytes(reader.read_bits(8)))


def write_blob(writer: BitWriter, value: Blob, scope: Any) -> None:
    writer.write_bits(len(value.data), 8)
    writer.write_bytes(value.data)


class Framed(BitEnum):
    """Variant bodies with their own length-prefixed layout."""

    structbits_type: ClassVar[Any] = U8


class Blob(Framed):
    structbits_variant_id: ClassVar[Any] = 0x01
    structbits_reader: ClassVar[Any] = read_blob
    structbits_writer: ClassVar[Any] = write_blob

    data: bytes = BitField(skip=True)


class Plain(Framed):
    structbits_variant_id: ClassVar[Any] = 0x02

    value: U8


class TestIdVariants:
    """Test dispatch on literal ids and the catch-all."""

    def test_record_stream(self, record_stream: bytes) -> None:
        """Records decode one after another from the same input."""
        rest, first = decode_from(Command, record_stream)
        assert first == VariantA(value=0xFF)
        assert encode(first) == b"\x01\xff"

        rest, second = decode_from(Command, *rest)
        assert second == VariantB(first=0xAB, second=0xBEEF)
        assert encode(second) == b"\x02\xab\xef\xbe"

        rest, third = decode_from(Command, *rest)
        assert third == VariantOther(opcode=0xFF)
        assert encode(third) == b"\xff"
        assert rest == (b"", 0)

    def test_catch_all_wrong_discriminant(self) -> None:
        """A catch-all value whose discriminant belongs to another variant."""
        with pytest.raises(EncodeError, match="selects VariantA"):
            encode(VariantOther(opcode=0x01))

    def test_variants_registered_in_order(self) -> None:
        assert Command.structbits_variants == (VariantA, VariantB, VariantOther)
        assert VariantB.enum_root() is Command
        assert VariantOther.is_catch_all()

    def test_discriminant_not_a_field(self) -> None:
        assert field_sizes(VariantB(first=1, second=2)) == {"first": 8, "second": 16}


class TestPatternVariants:
    """Test dispatch on ranges and predicates."""

    def test_exact_id(self) -> None:
        assert decode(Ranged, b"\x01\x05") == RangedExact(value=5)

    def test_range(self) -> None:
        value = decode(Ranged, b"\x02")

        assert value == RangedLow(id=2)
        assert encode(value) == b"\x02"

    def test_predicate_with_id_field(self) -> None:
        value = decode(Ranged, b"\x09")

        assert value == RangedOdd(flag=9, code=9)
        assert encode(value) == b"\x09"

    def test_unknown_variant(self) -> None:
        with pytest.raises(UnknownVariant) as exc_info:
            decode(Ranged, b"\x08")

        assert exc_info.value.discriminant == 8
        assert exc_info.value.bit_offset == 0

    def test_pattern_mismatch_on_encode(self) -> None:
        with pytest.raises(EncodeError, match="selects no variant"):
            encode(RangedLow(id=8))

    def test_pattern_selecting_earlier_variant(self) -> None:
        with pytest.raises(EncodeError, match="selects RangedExact"):
            encode(RangedOdd(flag=0, code=1))


class TestDiscriminantWidth:
    """Test bits/bytes overrides of the discriminant."""

    def test_sub_byte_discriminant(self) -> None:
        data = bytes([0b1001_0110, 0xFF])
        value = decode(Nibbles, data)

        assert value == NibbleA(low=0b0110, tail=0xFF)
        assert encode(value) == data

    def test_partial_byte_discriminant(self) -> None:
        value = decode(Wide, b"\xef\xbe\xff")

        assert value == WideA(value=0xFF)
        assert encode(value) == b"\xef\xbe\xff"


class TestExternalId:
    """Test discriminants supplied by the caller."""

    def test_id_from_parent(self) -> None:
        value = decode(Holder, b"\x01\xff\xab")

        assert value == Holder(my_id=0x01, data=0xFF, enum_from_id=ByIdA(value=0xAB))
        assert encode(value) == b"\x01\xff\xab"

    def test_variant_without_fields(self) -> None:
        value = decode(Holder, b"\x02\xff")

        assert value.enum_from_id == ByIdB()
        assert encode(value) == b"\x02\xff"

    def test_id_and_variant_disagree(self) -> None:
        value = Holder(my_id=0x02, data=0xFF, enum_from_id=ByIdA(value=0xAB))

        with pytest.raises(EncodeError) as exc_info:
            encode(value)

        assert exc_info.value.field == "enum_from_id"

    def test_standalone_with_ctx(self) -> None:
        assert decode(ById, b"\x07", ctx=(1,)) == ByIdA(value=7)

    def test_unknown_external_id(self) -> None:
        with pytest.raises(UnknownVariant):
            decode(Holder, b"\x03\xff")


class TestReachability:
    """Test variants that could never be selected."""

    def test_after_catch_all(self) -> None:
        class Root(BitEnum):
            structbits_type: ClassVar[Any] = U8

        class Anything(Root):
            value: U8

        with pytest.raises(UnreachableVariant, match="after the catch-all"):

            class Late(Root):
                structbits_variant_id: ClassVar[Any] = 1

                value: U8

        assert Root.structbits_variants == (Anything,)

    def test_duplicate_id(self) -> None:
        class Root(BitEnum):
            structbits_type: ClassVar[Any] = U8

        class First(Root):
            structbits_variant_id: ClassVar[Any] = 1

        with pytest.raises(UnreachableVariant, match="already matched by First"):

            class Second(Root):
                structbits_variant_id: ClassVar[Any] = 1

    def test_id_inside_earlier_range(self) -> None:
        class Root(BitEnum):
            structbits_type: ClassVar[Any] = U8

        class Low(Root):
            structbits_variant_pat: ClassVar[Any] = range(0, 10)

            code: U8

        with pytest.raises(UnreachableVariant):

            class Five(Root):
                structbits_variant_id: ClassVar[Any] = 5

    def test_catch_all_must_store_discriminant(self) -> None:
        class Root(BitEnum):
            structbits_type: ClassVar[Any] = U8

        class Empty(Root):
            pass

        with pytest.raises(SchemaError, match="store their discriminant"):
            decode(Root, b"\x00")

    def test_enum_needs_discriminant_type(self) -> None:
        class Root(BitEnum):
            pass

        class Only(Root):
            structbits_variant_id: ClassVar[Any] = 1

        with pytest.raises(SchemaError, match="structbits_type"):
            decode(Root, b"\x01")

    def test_range_inside_earlier_range(self) -> None:
        class Root(BitEnum):
            structbits_type: ClassVar[Any] = U8

        class Low(Root):
            structbits_variant_pat: ClassVar[Any] = range(0, 10)

            code: U8

        with pytest.raises(UnreachableVariant, match="already matched by Low"):

            class Middle(Root):
                structbits_variant_pat: ClassVar[Any] = range(3, 5)

                code: U8

        assert Root.structbits_variants == (Low,)

    def test_pattern_covered_by_ids(self) -> None:
        class Root(BitEnum):
            structbits_type: ClassVar[Any] = U8

        class One(Root):
            structbits_variant_id: ClassVar[Any] = 1

        class Two(Root):
            structbits_variant_id: ClassVar[Any] = 2

        with pytest.raises(UnreachableVariant, match="every value"):

            class OneOrTwo(Root):
                structbits_variant_pat: ClassVar[Any] = [1, 2]

                code: U8

    def test_partly_covered_pattern(self) -> None:
        class Root(BitEnum):
            structbits_type: ClassVar[Any] = U8

        class One(Root):
            structbits_variant_id: ClassVar[Any] = 1

        class Few(Root):
            structbits_variant_pat: ClassVar[Any] = range(1, 3)

            code: U8

        assert decode(Root, b"\x02") == Few(code=2)
        assert decode(Root, b"\x01") == One()


class TestIdField:
    """Test the field re-reading a pattern or catch-all discriminant."""

    def test_field_before_id_field(self) -> None:
        class Root(BitEnum):
            structbits_type: ClassVar[Any] = U8

        class Tagged(Root):
            structbits_variant_pat: ClassVar[Any] = range(0x10, 0x20)
            structbits_variant_id_field: ClassVar[Optional[str]] = "code"

            payload: U8
            code: U8

        with pytest.raises(SchemaError, match="'payload' is read before the id field 'code'"):
            decode(Root, b"\x10\x10")

    def test_skipped_fields_before_id_field(self) -> None:
        """Skipped fields never touch the stream and may come first."""
        class Root(BitEnum):
            structbits_type: ClassVar[Any] = U8

        class Tagged(Root):
            marker: U8 = BitField(skip=True, default=lambda s: s.discriminant + 1)
            code: U8
            payload: U8

        value = decode(Root, b"\x10\x20")

        assert value == Tagged(marker=0x11, code=0x10, payload=0x20)
        assert encode(value) == b"\x10\x20"

    def test_id_field_wider_than_discriminant(self) -> None:
        class Root(BitEnum):
            structbits_type: ClassVar[Any] = U8
            structbits_bits: ClassVar[Optional[int]] = 4

        class Other(Root):
            code: U8

        with pytest.raises(SchemaError, match="8-bit unsigned integer"):
            decode(Root, b"\x7a")

    def test_id_field_of_discriminant_width(self) -> None:
        class Root(BitEnum):
            structbits_type: ClassVar[Any] = U8
            structbits_bits: ClassVar[Optional[int]] = 4

        class Other(Root):
            code: U8 = BitField(bits=4)
            low: U8 = BitField(bits=4)

        value = decode(Root, b"\x7a")

        assert value == Other(code=7, low=0xA)
        assert encode(value) == b"\x7a"

    def test_id_field_signedness(self) -> None:
        class Root(BitEnum):
            structbits_type: ClassVar[Any] = I8

        class Negative(Root):
            structbits_variant_pat: ClassVar[Any] = range(-128, 0)

            code: U8

        with pytest.raises(SchemaError, match="signed"):
            decode(Root, b"\xff")

    def test_id_field_must_be_scalar(self) -> None:
        class Root(BitEnum):
            structbits_type: ClassVar[Any] = U8

        class Counted(Root):
            codes: list[U8] = BitField(count=1)

        with pytest.raises(SchemaError, match="plain integer field"):
            decode(Root, b"\x05")


class TestVariantHooks:
    """Test variants decoded and encoded by their own hooks."""

    def test_custom_reader_and_writer(self) -> None:
        value = decode(Framed, b"\x01\x02\xab\xcd")

        assert value == Blob(data=b"\xab\xcd")
        assert encode(value) == b"\x01\x02\xab\xcd"

    def test_other_variants_unaffected(self) -> None:
        value = decode(Framed, b"\x02\x07")

        assert value == Plain(value=7)
        assert encode(value) == b"\x02\x07"

    def test_reader_returning_other_type(self) -> None:
        class Root(BitEnum):
            structbits_type: ClassVar[Any] = U8

        class Broken(Root):
            structbits_variant_id: ClassVar[Any] = 0x01
            structbits_reader: ClassVar[Any] = lambda reader, s: reader.read_bits(8)

            value: U8

        with pytest.raises(DecodeError, match="reader of Broken returned int"):
            decode(Root, b"\x01\x02")
