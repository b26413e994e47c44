"""Binary decoder for structbits models.

This module provides decode_from(), which decodes one value and hands back the
unconsumed input, and decode(), which additionally requires the whole input to
be consumed.
"""

from __future__ import annotations

from typing import Any, Tuple, TypeVar

from structlog import get_logger

from ..exceptions import TrailingData
from ..models.base import BitStruct
from .bitpack import BitReader
from .dispatch import decode_schema, root_scope

T = TypeVar("T", bound=BitStruct)

logger = get_logger()


def decode_from(
    message_class: type[T],
    data: bytes,
    bit_offset: int = 0,
    *,
    ctx: Any = None,
    strict: bool = False,
) -> Tuple[Tuple[bytes, int], T]:
    """Decode one value starting ``bit_offset`` bits into ``data``.

    Args:
        message_class: BitStruct class or BitEnum root to decode
        data: Binary data to decode
        bit_offset: Position of the first bit to read
        ctx: Context for schemas declaring structbits_ctx (mapping or
            positional sequence); ctx defaults are used when omitted
        strict: Fail with TrailingData if input is left over

    Returns:
        ``((rest, rest_bit_offset), value)``: the remaining input, in the same
        form accepted by this function, and the decoded value

    Raises:
        SchemaError: If the schema is invalid or context is missing
        DecodeError: If data is truncated, corrupted, or doesn't match schema
        HookError: If a user hook fails

    Examples:
        ```python
        rest, first = decode_from(Record, data)
        rest, second = decode_from(Record, *rest)
        ```
    """
    reader = BitReader(data, bit_offset)
    log = logger.new(schema=message_class.__name__)
    log.debug("decoding", bits=reader.remaining_bits())

    value = decode_schema(message_class, reader, root_scope(message_class, ctx, reader))

    if strict:
        _check_consumed(reader)
    log.debug("decoded", consumed=reader.bit_position() - bit_offset)
    return reader.rest(), value


def decode(message_class: type[T], data: bytes, *, ctx: Any = None) -> T:
    """Decode binary data that holds exactly one value.

    Up to seven zero bits of padding in the final byte are accepted, so the
    output of encode() always decodes.

    Raises:
        TrailingData: If input is left unconsumed
        DecodeError: If data is truncated, corrupted, or doesn't match schema

    Examples:
        ```python
        msg = Status(vehicle_id=42, flags=3)
        assert decode(Status, encode(msg)) == msg
        ```
    """
    _, value = decode_from(message_class, data, ctx=ctx, strict=True)
    return value


def _check_consumed(reader: BitReader) -> None:
    position = reader.bit_position()
    remaining = reader.remaining_bits()
    if remaining == 0:
        return
    if remaining < 8 and reader.read_bits(remaining) == 0:
        return
    raise TrailingData(f"{remaining} bits left unconsumed", bit_offset=position)
