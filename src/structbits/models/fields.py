"""Field attribute helper.

This module provides BitField(), the per-field counterpart of the
container-level ``structbits_*`` class variables.
"""

from __future__ import annotations

from typing import Any, Callable, Optional, cast

from pydantic import Field
from pydantic.fields import FieldInfo

from ..exceptions import SchemaError

# Marks "no default given" so that None stays usable as a default value.
UNSET: Any = type("Unset", (), {"__repr__": lambda self: "UNSET"})()


def BitField(
    *,
    bits: Optional[int] = None,
    bytes: Optional[int] = None,
    endian: Any = None,
    count: Any = None,
    cond: Optional[Callable[..., bool]] = None,
    skip: bool = False,
    default: Any = UNSET,
    map: Optional[Callable[..., Any]] = None,
    raw: Any = None,
    reader: Optional[Callable[..., Any]] = None,
    writer: Optional[Callable[..., None]] = None,
    ctx: Optional[Callable[..., Any]] = None,
    ctx_default: Any = None,
    update: Optional[Callable[..., Any]] = None,
    **kwargs: Any,
) -> FieldInfo:
    """Create a field carrying structbits attributes.

    Hooks receive the current scope (earlier fields and context parameters,
    see ``Scope``) as their last argument.

    Args:
        bits: Bit width, overriding the natural width of the type
        bytes: Byte width, overriding the natural width of the type
        endian: ``"big"``, ``"little"``, an Endian, or ``(scope) -> Endian``
        count: Element count of a list/bytes field, int or ``(scope) -> int``
        cond: ``(scope) -> bool``; the field is absent when it returns False
        skip: Never read or write the field
        default: Value (or ``(scope) -> value``) used when skipped or absent
        map: ``(raw, scope) -> value`` applied after reading
        raw: Wire type read before ``map`` when the declared type isn't one
        reader: ``(reader, scope) -> value`` replacing the built-in read
        writer: ``(writer, value, scope) -> None`` replacing the built-in write
        ctx: ``(scope) -> tuple`` of context arguments for a nested schema
        ctx_default: Context of the nested schema for parameters ``ctx`` leaves
            unset, positional tuple or mapping; takes precedence over the
            nested schema's own structbits_ctx_default
        update: ``(instance) -> value`` used by ``update()``
        **kwargs: Additional Field() arguments (description, ...)

    Returns:
        Pydantic FieldInfo suitable for use as a field default.

    Example:
        >>> class Packet(BitStruct):
        ...     count: U8 = BitField(update=lambda self: len(self.items))
        ...     items: list[U8] = BitField(count=lambda s: s.count)
    """
    if bits is not None and bytes is not None:
        raise SchemaError("bits and bytes cannot be used together")

    attrs = {
        "bits": bits,
        "bytes": bytes,
        "endian": endian,
        "count": count,
        "cond": cond,
        "map": map,
        "raw": raw,
        "reader": reader,
        "writer": writer,
        "ctx": ctx,
        "ctx_default": ctx_default,
        "update": update,
    }
    extra: dict[str, Any] = {key: value for key, value in attrs.items() if value is not None}
    if skip:
        extra["skip"] = True
    if default is not UNSET:
        extra["default"] = default

    return cast(FieldInfo, Field(json_schema_extra={"structbits": extra}, **kwargs))
