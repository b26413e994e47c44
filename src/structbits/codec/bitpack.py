"""Bit-level reading and writing over byte buffers.

Bits are addressed most-significant-bit first within each byte and across
byte boundaries. Fields are never implicitly aligned: every read or write
continues from the exact bit offset the previous one left behind.
"""

from __future__ import annotations

from ..exceptions import InsufficientData, ValueOverflow


class BitWriter:
    """Appends values bit-by-bit to a growing byte buffer.

    Complete bytes are flushed to the buffer as soon as they are filled; the
    partially filled trailing byte is kept aside until more bits arrive.

    Example:
        >>> writer = BitWriter()
        >>> writer.write_bits(0b11, 2)
        >>> writer.write_bits(0b101010, 6)
        >>> writer.to_bytes()
        b'\\xea'
    """

    def __init__(self) -> None:
        """Initialize an empty bit writer."""
        self._buffer = bytearray()
        self._pending = 0
        self._pending_bits = 0

    def write_bits(self, value: int, num_bits: int) -> None:
        """Write the low ``num_bits`` bits of an unsigned integer.

        Args:
            value: Unsigned integer value to write (must be >= 0)
            num_bits: Number of bits to use for encoding

        Raises:
            ValueOverflow: If value is negative or doesn't fit in num_bits
        """
        if num_bits < 0:
            raise ValueError(f"num_bits must be non-negative, got {num_bits}")
        if value < 0 or value >> num_bits:
            raise ValueOverflow(
                f"Value {value} requires more than {num_bits} bits",
                bit_offset=self.bit_length(),
            )
        if num_bits == 0:
            return

        acc = (self._pending << num_bits) | value
        total = self._pending_bits + num_bits
        full, rem = divmod(total, 8)
        if full:
            self._buffer += (acc >> rem).to_bytes(full, "big")
        self._pending = acc & ((1 << rem) - 1)
        self._pending_bits = rem

    def write_bytes(self, data: bytes) -> None:
        """Write raw bytes starting at the current bit position.

        Args:
            data: Bytes to write
        """
        if self._pending_bits == 0:
            self._buffer += data
            return
        for byte in data:
            self.write_bits(byte, 8)

    def bit_length(self) -> int:
        """Return the number of bits written so far."""
        return len(self._buffer) * 8 + self._pending_bits

    def checkpoint(self) -> tuple[int, int, int]:
        """Return a marker of the current state, for rollback()."""
        return len(self._buffer), self._pending, self._pending_bits

    def rollback(self, checkpoint: tuple[int, int, int]) -> None:
        """Discard everything written after ``checkpoint`` was taken.

        Writes only ever append to the buffer, so the bytes before the
        marker are still intact.
        """
        length, self._pending, self._pending_bits = checkpoint
        del self._buffer[length:]

    def to_bytes(self) -> bytes:
        """Return the written bits as bytes.

        If the number of bits is not a multiple of 8, the last byte is padded
        with zeros on the right (LSB side).
        """
        if not self._pending_bits:
            return bytes(self._buffer)
        tail = self._pending << (8 - self._pending_bits)
        return bytes(self._buffer) + bytes((tail,))


class BitReader:
    """Reads bits from a byte buffer with a sub-byte cursor.

    Example:
        >>> reader = BitReader(b"\\xea")
        >>> reader.read_bits(2), reader.read_bits(6)
        (3, 42)
        >>> reader.remaining_bits()
        0
    """

    def __init__(self, data: bytes, bit_offset: int = 0) -> None:
        """Initialize a reader positioned ``bit_offset`` bits into ``data``.

        Args:
            data: Byte buffer to read from
            bit_offset: Starting bit position

        Raises:
            ValueError: If bit_offset lies outside the buffer
        """
        self._data = bytes(data)
        self._size = len(self._data) * 8
        if not 0 <= bit_offset <= self._size:
            raise ValueError(f"bit_offset {bit_offset} outside of {self._size} available bits")
        self._position = bit_offset

    def read_bits(self, num_bits: int) -> int:
        """Read ``num_bits`` bits as an unsigned integer.

        Raises:
            InsufficientData: If fewer than num_bits bits remain
        """
        if num_bits < 0:
            raise ValueError(f"num_bits must be non-negative, got {num_bits}")
        remaining = self._size - self._position
        if num_bits > remaining:
            raise InsufficientData(
                f"Not enough bits: need {num_bits}, have {remaining}",
                bit_offset=self._position,
            )
        if num_bits == 0:
            return 0

        start = self._position
        end = start + num_bits
        first, last = start // 8, (end + 7) // 8
        chunk = int.from_bytes(self._data[first:last], "big")
        self._position = end
        return (chunk >> (last * 8 - end)) & ((1 << num_bits) - 1)

    def read_bytes(self, num_bytes: int) -> bytes:
        """Read raw bytes starting at the current bit position.

        Raises:
            InsufficientData: If not enough bytes are available
        """
        if self._position % 8 == 0:
            start = self._position // 8
            if num_bytes * 8 > self.remaining_bits():
                raise InsufficientData(
                    f"Not enough bits: need {num_bytes * 8}, have {self.remaining_bits()}",
                    bit_offset=self._position,
                )
            self._position += num_bytes * 8
            return self._data[start : start + num_bytes]
        return bytes(self.read_bits(8) for _ in range(num_bytes))

    def bit_position(self) -> int:
        """Return the current read position in bits."""
        return self._position

    def remaining_bits(self) -> int:
        """Return the number of unread bits."""
        return self._size - self._position

    def seek(self, bit_position: int) -> None:
        """Move the cursor to an absolute bit position."""
        if not 0 <= bit_position <= self._size:
            raise ValueError(f"bit position {bit_position} outside of {self._size} bits")
        self._position = bit_position

    def rest(self) -> tuple[bytes, int]:
        """Return the unread input as ``(bytes, bit_offset)``.

        The bytes start at the byte holding the next unread bit, and
        bit_offset is the position of that bit inside the first byte.
        """
        byte_index, bit_offset = divmod(self._position, 8)
        return self._data[byte_index:], bit_offset
