#!/usr/bin/env python3
"""Decoding a stream of tagged records.

Each record starts with a one-byte opcode. Known opcodes map to their own
variant; anything else is kept by a catch-all variant so the stream can be
re-encoded unchanged.
"""

from __future__ import annotations

from typing import Any, ClassVar

from structbits import U8, U16, BitEnum, BitField, decode_from, encode


class Record(BitEnum):
    structbits_type: ClassVar[Any] = U8
    structbits_endian: ClassVar[str] = "little"


class Ping(Record):
    structbits_variant_id: ClassVar[Any] = 0x01

    seq: U8


class Move(Record):
    structbits_variant_id: ClassVar[Any] = 0x02

    heading: U16
    speed: U8 = BitField(bits=4)
    reserved: U8 = BitField(bits=4)


class Unknown(Record):
    opcode: U8


def main() -> None:
    """Decode every record of a captured stream."""
    stream = bytes.fromhex("0107" "025a0130" "ff" "0108")

    rest = (stream, 0)
    output = b""
    while rest[0]:
        rest, record = decode_from(Record, *rest)
        print(f"{type(record).__name__}: {record.model_dump()}")
        output += encode(record)

    assert output == stream
    print(f"Re-encoded {len(output)} bytes unchanged")


if __name__ == "__main__":
    main()
