"""Enum dispatch and schema routing.

decode_schema()/encode_schema() are the entry points used for any nested
schema: enum roots go through the discriminant dispatcher, everything else
through the container codec.
"""

from __future__ import annotations

from typing import Any, Dict, Mapping, Optional

from structlog import get_logger

from ..exceptions import DecodeError, EncodeError, SchemaError, UnknownVariant
from ..models.base import BitEnum
from .bitpack import BitReader, BitWriter
from .container import decode_container, encode_container
from .context import Scope
from .field import call_hook
from .scalar import Endian, decode_scalar, encode_scalar
from .schema import EnumSpec, VariantSpec, container_for, resolve_endian, schema_for

logger = get_logger()


def decode_schema(model_class: type, reader: BitReader, scope: Scope) -> Any:
    """Decode a value of any schema at the reader's position."""
    schema = schema_for(model_class)
    if isinstance(schema, EnumSpec):
        return decode_enum(schema, reader, scope)
    return decode_container(schema, reader, scope)


def encode_schema(
    model_class: type,
    value: Any,
    writer: BitWriter,
    scope: Scope,
    sizes: Optional[Dict[str, int]] = None,
) -> None:
    """Encode a value; the schema is taken from the value's own class."""
    if issubclass(model_class, BitEnum):
        spec = schema_for(model_class.enum_root())
        assert isinstance(spec, EnumSpec)
        encode_enum(spec, value, writer, scope, sizes)
        return
    encode_container(container_for(model_class), value, writer, scope, sizes)


def _id_endian(spec: EnumSpec, scope: Scope) -> Endian:
    return resolve_endian(spec.endian, scope) or Endian.native()


def decode_enum(spec: EnumSpec, reader: BitReader, scope: Scope) -> Any:
    """Read (or evaluate) the discriminant and decode the matching variant.

    Pattern and catch-all variants keep their discriminant in their own
    fields: when it came from the stream, the reader is moved back so those
    fields read it again. A variant with a structbits_reader is decoded by
    that hook instead of field by field.

    Raises:
        UnknownVariant: If no variant matches and there is no catch-all
    """
    start = reader.bit_position()
    from_stream = spec.id_expr is None
    if spec.id_expr is not None:
        discriminant = call_hook(spec.id_expr, scope, what="id")
    else:
        assert spec.id_wire is not None
        discriminant = decode_scalar(
            reader, spec.id_width(), _id_endian(spec, scope), signed=spec.id_wire.signed
        )

    variant = spec.match(discriminant)
    if variant is None:
        err = UnknownVariant(discriminant, spec.name)
        err.bit_offset = start
        raise err
    logger.debug(
        "variant selected", enum=spec.name, variant=variant.model_class.__name__, id=discriminant
    )

    if from_stream and variant.id is None:
        reader.seek(start)
    variant_scope = scope.bind("discriminant", discriminant)
    if variant.reader is None:
        return decode_container(variant.container, reader, variant_scope)

    value = call_hook(variant.reader, reader, variant_scope, what="reader")
    if not isinstance(value, variant.model_class):
        raise DecodeError(
            f"reader of {variant.model_class.__name__} returned {type(value).__name__}",
            bit_offset=start,
        )
    return value


def encode_enum(
    spec: EnumSpec,
    value: Any,
    writer: BitWriter,
    scope: Scope,
    sizes: Optional[Dict[str, int]] = None,
) -> None:
    """Write the discriminant of the active variant, then its fields.

    Raises:
        EncodeError: If the value is not a variant of this enum, or its stored
            discriminant would not select it again on decode
    """
    variant = spec.variant_for(type(value))
    if variant is None:
        raise EncodeError(f"{type(value).__name__} is not a variant of {spec.name}")

    if spec.id_expr is not None:
        discriminant = call_hook(spec.id_expr, scope, what="id")
        _check_selects(spec, variant, discriminant)
    elif variant.id is not None:
        discriminant = variant.id
        assert spec.id_wire is not None
        encode_scalar(
            writer,
            discriminant,
            spec.id_width(),
            _id_endian(spec, scope),
            signed=spec.id_wire.signed,
        )
    else:
        assert variant.id_field is not None
        discriminant = getattr(value, variant.id_field)
        _check_selects(spec, variant, discriminant)

    variant_scope = scope.bind("discriminant", discriminant)
    if variant.writer is not None:
        call_hook(variant.writer, writer, value, variant_scope, what="writer")
        return
    encode_container(variant.container, value, writer, variant_scope, sizes)


def _check_selects(spec: EnumSpec, variant: VariantSpec, discriminant: Any) -> None:
    selected = spec.match(discriminant)
    if selected is not variant:
        target = selected.model_class.__name__ if selected is not None else "no variant"
        raise EncodeError(
            f"{variant.model_class.__name__}: discriminant {discriminant!r} selects {target} "
            f"of {spec.name}"
        )


def root_scope(model_class: type, ctx: Any, stream: Any) -> Scope:
    """Context of a top-level decode/encode call.

    ``ctx`` may be a mapping or a positional sequence; parameters it does not
    cover fall back to the schema's ctx defaults.

    Raises:
        SchemaError: If a context parameter has no value
    """
    schema = schema_for(model_class)
    params = schema.ctx_params
    values = dict(schema.ctx_defaults)
    if isinstance(ctx, Mapping):
        unknown = set(ctx) - set(params)
        if unknown:
            raise SchemaError(f"{schema.name} has no context parameters {sorted(unknown)}")
        values.update(ctx)
    elif ctx is not None:
        args = tuple(ctx) if isinstance(ctx, (tuple, list)) else (ctx,)
        if len(args) > len(params):
            raise SchemaError(
                f"{schema.name} takes {len(params)} context arguments, {len(args)} given"
            )
        values.update(zip(params, args))

    missing = [name for name in params if name not in values]
    if missing:
        raise SchemaError(
            f"{schema.name} requires context {missing}; pass ctx= or declare structbits_ctx_default"
        )
    return Scope(((name, values[name]) for name in params), stream)
