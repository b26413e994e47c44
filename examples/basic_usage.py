#!/usr/bin/env python3
"""Basic usage example for structbits.

This example demonstrates:
1. Declaring a schema with sub-byte and counted fields
2. Decoding from binary into a Pydantic model
3. Modifying the model and recomputing derived fields
4. Encoding back and inspecting field sizes
"""

from __future__ import annotations

from typing import ClassVar, Optional

from structbits import U8, U16, BitField, BitStruct, decode, encode, field_sizes, update


class StatusReport(BitStruct):
    """Vehicle status report.

    The header packs a version and three flags into one byte; the depth log
    length is carried by ``samples`` and kept in sync by update().
    """

    structbits_endian: ClassVar[str] = "big"
    structbits_max_bytes: ClassVar[Optional[int]] = 32

    version: U8 = BitField(bits=4)
    active: U8 = BitField(bits=1)
    has_battery: U8 = BitField(bits=1)
    reserved: U8 = BitField(bits=2)
    vehicle_id: U16
    battery_pct: Optional[U8] = BitField(cond=lambda s: s.has_battery == 1)
    samples: U8 = BitField(update=lambda self: len(self.depth_cm))
    depth_cm: list[U16] = BitField(count=lambda s: s.samples)


def main() -> None:
    """Run the basic usage example."""
    print("=" * 60)
    print("structbits Basic Usage Example")
    print("=" * 60)
    print()

    print("1. Decoding a status report...")
    data = bytes.fromhex("1c002a57" "02" "09c4" "0a28")
    msg = decode(StatusReport, data)

    print(f"   Vehicle ID: {msg.vehicle_id}")
    print(f"   Battery: {msg.battery_pct}%")
    print(f"   Depth log: {msg.depth_cm}")
    print()

    print("2. Appending a sample and updating derived fields...")
    msg.depth_cm.append(2700)
    update(msg)
    print(f"   Samples: {msg.samples}")
    print()

    print("3. Encoding...")
    encoded_data = encode(msg)
    print(f"   Encoded size: {len(encoded_data)} bytes")
    print(f"   Hex: {encoded_data.hex()}")
    print()

    print("4. Analyzing field sizes...")
    for field_name, bits in field_sizes(msg).items():
        print(f"   {field_name}: {bits} bits")
    print()

    print("5. Verifying round-trip...")
    if decode(StatusReport, encoded_data) == msg:
        print("   Round-trip successful! Messages match.")
    else:
        print("   Round-trip failed! Messages don't match.")
    print()

    print("=" * 60)
    print("Example complete!")
    print("=" * 60)


if __name__ == "__main__":
    main()
