"""Container codec: fields in declaration order with an accumulating scope."""

from __future__ import annotations

from typing import Any, Dict, Optional

from ..exceptions import DecodeError, StructbitsError
from .bitpack import BitReader, BitWriter
from .context import Scope
from .field import decode_field, encode_field
from .schema import ContainerSpec


def decode_container(spec: ContainerSpec, reader: BitReader, scope: Scope) -> Any:
    """Decode every field of a container and build the model instance.

    Each decoded field is bound into the scope before the next field is
    processed, so later fields can refer to earlier ones. The first failure
    aborts the container.
    """
    endian = spec.resolve_endian(scope)
    values: Dict[str, Any] = {}
    for field_spec in spec.fields:
        start = reader.bit_position()
        try:
            value = decode_field(field_spec, reader, scope, endian)
        except StructbitsError as err:
            raise err.at(field_spec.name, start)
        values[field_spec.name] = value
        scope = scope.bind(field_spec.name, value)

    try:
        return spec.model_class(**values)
    except Exception as err:
        raise DecodeError(f"Failed to construct {spec.name}: {err}") from err


def encode_container(
    spec: ContainerSpec,
    value: Any,
    writer: BitWriter,
    scope: Scope,
    sizes: Optional[Dict[str, int]] = None,
) -> None:
    """Encode every field of a container from the in-memory value.

    Args:
        spec: Container descriptor
        value: Model instance to encode
        writer: Stream to append to
        scope: Context of this container
        sizes: When given, receives the number of bits written per field
    """
    endian = spec.resolve_endian(scope)
    for field_spec in spec.fields:
        field_value = getattr(value, field_spec.name)
        start = writer.bit_length()
        try:
            encode_field(field_spec, field_value, writer, scope, endian)
        except StructbitsError as err:
            raise err.at(field_spec.name, start)
        if sizes is not None:
            sizes[field_spec.name] = writer.bit_length() - start
        scope = scope.bind(field_spec.name, field_value)
