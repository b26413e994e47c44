"""Per-field decode/encode protocol.

A field goes through the same steps in both directions: skip, condition,
endian and width resolution, element count, then either the custom
reader/writer, a nested schema, or the scalar codec, and finally (decode only)
the map transform.
"""

from __future__ import annotations

import copy
from typing import Any, Callable, Mapping, Optional

from ..exceptions import (
    DecodeError,
    EncodeError,
    HookError,
    InvalidCount,
    MapError,
    SchemaError,
    StructbitsError,
)
from ..models.fields import UNSET
from ..models.types import Float
from .bitpack import BitReader, BitWriter
from .context import Scope
from .scalar import Endian, decode_float, decode_scalar, encode_float, encode_scalar
from .schema import FieldSpec, resolve_endian, schema_for


def call_hook(hook: Callable[..., Any], *args: Any, what: str = "hook") -> Any:
    """Invoke a user hook, wrapping foreign exceptions in HookError."""
    try:
        return hook(*args)
    except StructbitsError:
        raise
    except Exception as err:
        raise HookError(f"{what} failed: {err}") from err


def default_value(spec: FieldSpec, scope: Scope) -> Any:
    """Value of a skipped or absent field."""
    if spec.default is UNSET:
        return spec.zero()
    if callable(spec.default):
        return call_hook(spec.default, scope, what="default")
    return copy.copy(spec.default)


def is_present(spec: FieldSpec, scope: Scope) -> bool:
    """Whether the field touches the stream at all."""
    if spec.skip:
        return False
    if spec.cond is None:
        return True
    return bool(call_hook(spec.cond, scope, what="cond"))


def field_endian(spec: FieldSpec, scope: Scope, container_endian: Optional[Endian]) -> Optional[Endian]:
    """Field endian > container endian; None when neither is declared."""
    endian = resolve_endian(spec.endian, scope)
    return endian if endian is not None else container_endian


def child_scope(
    spec: FieldSpec,
    nested: type,
    scope: Scope,
    endian: Optional[Endian],
) -> Scope:
    """Build the context a nested schema receives from this field.

    Parameters named ``endian``, ``bits`` and ``bytes`` are filled from this
    field's own attributes first, the ``ctx`` arguments then fill the remaining
    parameters in order, and the nested schema's ctx defaults cover the rest.
    """
    schema = schema_for(nested)
    params = schema.ctx_params
    if not params:
        return Scope(stream=scope.stream)

    implicit = {}
    if "endian" in params and endian is not None:
        implicit["endian"] = endian
    if "bits" in params and spec.bits is not None:
        implicit["bits"] = spec.bits
    if "bytes" in params and spec.bytes is not None:
        implicit["bytes"] = spec.bytes

    args: tuple[Any, ...] = ()
    if spec.ctx is not None:
        result = call_hook(spec.ctx, scope, what="ctx")
        args = tuple(result) if isinstance(result, (tuple, list)) else (result,)

    remaining = [name for name in params if name not in implicit]
    if len(args) > len(remaining):
        raise SchemaError(
            f"{schema.name} takes {len(remaining)} context arguments, {len(args)} given"
        )

    values = dict(implicit)
    values.update(zip(remaining, args))
    field_defaults = _field_ctx_defaults(spec, schema.name, params, remaining)
    for name in remaining[len(args) :]:
        if name in field_defaults:
            values[name] = field_defaults[name]
            continue
        if name not in schema.ctx_defaults:
            raise SchemaError(f"{schema.name} requires context parameter '{name}'")
        values[name] = schema.ctx_defaults[name]
    return Scope(((name, values[name]) for name in params), scope.stream)


def _field_ctx_defaults(
    spec: FieldSpec, schema_name: str, params: tuple[str, ...], remaining: list[str]
) -> dict[str, Any]:
    defaults = spec.ctx_default
    if defaults is None:
        return {}
    if isinstance(defaults, Mapping):
        unknown = set(defaults) - set(params)
        if unknown:
            raise SchemaError(
                f"Field {spec.name}: ctx_default names unknown parameters {sorted(unknown)} "
                f"of {schema_name}",
            )
        return dict(defaults)
    if not isinstance(defaults, (tuple, list)):
        defaults = (defaults,)
    if len(defaults) > len(remaining):
        raise SchemaError(
            f"Field {spec.name}: {len(defaults)} ctx defaults for {len(remaining)} "
            f"parameters of {schema_name}",
        )
    return dict(zip(remaining, defaults))


def element_count(spec: FieldSpec, scope: Scope) -> int:
    count = spec.count
    if callable(count):
        count = call_hook(count, scope, what="count")
    if isinstance(count, bool) or not isinstance(count, int) or count < 0:
        raise InvalidCount(f"Count must be a non-negative integer, got {count!r}")
    return count


def decode_field(
    spec: FieldSpec, reader: BitReader, scope: Scope, container_endian: Optional[Endian]
) -> Any:
    """Decode one field at the reader's position.

    Raises:
        DecodeError: If the data cannot be decoded
        SchemaError: If the schema is invalid
        HookError: If a user hook fails
    """
    if not is_present(spec, scope):
        return default_value(spec, scope)

    endian = field_endian(spec, scope, container_endian)
    if not spec.is_sequence:
        return _decode_element(spec, reader, scope, endian)

    items = [_decode_element(spec, reader, scope, endian) for _ in range(element_count(spec, scope))]
    if spec.is_bytes:
        return bytes(items)
    return items


def _decode_element(spec: FieldSpec, reader: BitReader, scope: Scope, endian: Optional[Endian]) -> Any:
    if spec.reader is not None:
        return call_hook(spec.reader, reader, scope, what="reader")

    if spec.nested is not None:
        # Import here to avoid circular dependency
        from .dispatch import decode_schema

        value = decode_schema(spec.nested, reader, child_scope(spec, spec.nested, scope, endian))
    else:
        value = _decode_scalar(spec, reader, endian or Endian.native())

    if spec.map is not None:
        try:
            value = spec.map(value, scope)
        except StructbitsError:
            raise
        except Exception as err:
            raise MapError(f"map failed: {err}") from err
    return value


def _decode_scalar(spec: FieldSpec, reader: BitReader, endian: Endian) -> Any:
    width = spec.width()
    assert width is not None and spec.wire is not None
    if isinstance(spec.wire, Float):
        return decode_float(reader, width, endian)

    start = reader.bit_position()
    raw = decode_scalar(reader, width, endian, signed=spec.wire.signed)
    if spec.scalar_type is bool:
        if raw not in (0, 1):
            raise DecodeError(f"invalid boolean value {raw}", bit_offset=start)
        return bool(raw)
    if spec.scalar_type is not int:
        try:
            return spec.scalar_type(raw)  # type: ignore[misc]
        except ValueError as err:
            raise DecodeError(
                f"invalid {spec.scalar_type.__name__} value {raw}", bit_offset=start  # type: ignore[union-attr]
            ) from err
    return raw


def encode_field(
    spec: FieldSpec,
    value: Any,
    writer: BitWriter,
    scope: Scope,
    container_endian: Optional[Endian],
) -> None:
    """Encode one field from its in-memory value.

    Raises:
        EncodeError: If the value cannot be encoded
        SchemaError: If the schema is invalid
        HookError: If a user hook fails
    """
    if not is_present(spec, scope):
        return

    if value is None and spec.writer is None:
        raise EncodeError("value is required but got None")

    endian = field_endian(spec, scope, container_endian)
    if not spec.is_sequence:
        _encode_element(spec, value, writer, scope, endian)
        return

    if isinstance(value, (str, bytes)) and not spec.is_bytes:
        raise EncodeError(f"expected a list, got {type(value).__name__}")
    for item in value:
        _encode_element(spec, item, writer, scope, endian)


def _encode_element(
    spec: FieldSpec, value: Any, writer: BitWriter, scope: Scope, endian: Optional[Endian]
) -> None:
    if spec.writer is not None:
        call_hook(spec.writer, writer, value, scope, what="writer")
        return
    if spec.map is not None:
        raise HookError("map has no inverse: a field using map needs a writer to be encoded")

    if spec.nested is not None:
        if not isinstance(value, spec.nested):
            raise EncodeError(f"expected {spec.nested.__name__}, got {type(value).__name__}")
        # Import here to avoid circular dependency
        from .dispatch import encode_schema

        encode_schema(type(value), value, writer, child_scope(spec, spec.nested, scope, endian))
        return

    _encode_scalar(spec, value, writer, endian or Endian.native())


def _encode_scalar(spec: FieldSpec, value: Any, writer: BitWriter, endian: Endian) -> None:
    width = spec.width()
    assert width is not None and spec.wire is not None
    if isinstance(spec.wire, Float):
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise EncodeError(f"expected float, got {type(value).__name__}")
        encode_float(writer, float(value), width, endian)
        return

    expected = spec.scalar_type or int
    if not isinstance(value, expected) or (expected is int and isinstance(value, bool)):
        raise EncodeError(f"expected {expected.__name__}, got {type(value).__name__}")
    encode_scalar(writer, int(value), width, endian, signed=spec.wire.signed)
