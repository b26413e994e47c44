"""Schema introspection for structbits models.

This module analyzes BitStruct/BitEnum classes and extracts the immutable
descriptors the codec interprets: one FieldSpec per field in declaration
order, grouped into a ContainerSpec, and for tagged unions an EnumSpec listing
its VariantSpecs in match order.

Descriptors are built once per class and cached.
"""

from __future__ import annotations

import enum
import types
from dataclasses import dataclass, field, replace
from typing import (
    Annotated,
    Any,
    Callable,
    Dict,
    Mapping,
    Optional,
    Tuple,
    Type,
    Union,
    get_args,
    get_origin,
)

from pydantic.fields import FieldInfo

from ..exceptions import HookError, SchemaError
from ..models.base import BitEnum, BitStruct
from ..models.fields import UNSET
from ..models.types import Float, Int
from .context import Scope
from .scalar import Endian

_UNION_TYPES = (Union, types.UnionType)

# Names a Scope resolves itself; a binding of the same name would be shadowed
_SCOPE_MEMBERS = frozenset(name for name in dir(Scope) if not name.startswith("_"))


@dataclass(frozen=True)
class FieldSpec:
    """Schema information for a single field.

    Attributes:
        name: Field name
        python_type: Declared (logical) element type
        scalar_type: Python type of the wire scalar (int, bool, float, IntEnum)
        wire: Int/Float marker giving the natural width of a scalar
        nested: BitStruct/BitEnum class of a nested schema
        is_list: Whether the field is a counted list
        is_bytes: Whether the field is a counted bytes string
        optional: Whether the field may be absent (Optional[...])
        bits / bytes: Width overrides
        endian: Field byte order (Endian or callable)
        count, cond, default, map, reader, writer, ctx, update: Hooks
        ctx_default: Context values for a nested schema when ctx gives none
        skip: Never touch the stream
    """

    name: str
    python_type: Any
    scalar_type: Optional[type] = None
    wire: Optional[Union[Int, Float]] = None
    nested: Optional[Type[BitStruct]] = None
    is_list: bool = False
    is_bytes: bool = False
    optional: bool = False
    bits: Optional[int] = None
    bytes: Optional[int] = None
    endian: Any = None
    count: Any = None
    cond: Optional[Callable[..., Any]] = None
    skip: bool = False
    default: Any = UNSET
    map: Optional[Callable[..., Any]] = None
    reader: Optional[Callable[..., Any]] = None
    writer: Optional[Callable[..., Any]] = None
    ctx: Optional[Callable[..., Any]] = None
    ctx_default: Any = None
    update: Optional[Callable[..., Any]] = None

    @property
    def is_sequence(self) -> bool:
        return self.is_list or self.is_bytes

    def width(self) -> Optional[int]:
        """Resolved bit width: bits > bytes > natural width of the type."""
        if self.bits is not None:
            return self.bits
        if self.bytes is not None:
            return self.bytes * 8
        if self.wire is not None:
            return self.wire.bits
        return None

    def has_zero(self) -> bool:
        """Whether the type has an implicit value when skipped or absent."""
        if self.optional or self.is_sequence:
            return True
        return self.scalar_type in (int, bool, float) and self.map is None

    def zero(self) -> Any:
        """The type's zero/empty value."""
        if self.optional:
            return None
        if self.is_bytes:
            return b""
        if self.is_list:
            return []
        if not self.has_zero():
            raise SchemaError(f"Field {self.name} has no default value", field=self.name)
        return self.scalar_type()  # type: ignore[misc]


@dataclass(frozen=True)
class ContainerSpec:
    """Schema information for a container (struct or enum variant)."""

    model_class: Type[BitStruct]
    fields: Tuple[FieldSpec, ...]
    endian: Any = None
    ctx_params: Tuple[str, ...] = ()
    ctx_defaults: Mapping[str, Any] = field(default_factory=dict)
    max_bytes: Optional[int] = None

    @property
    def name(self) -> str:
        return self.model_class.__name__

    def resolve_endian(self, scope: Scope) -> Optional[Endian]:
        return resolve_endian(self.endian, scope)


@dataclass(frozen=True)
class VariantSpec:
    """One variant of a tagged union."""

    model_class: Type[BitEnum]
    container: ContainerSpec
    id: Any = None
    pattern: Any = None
    id_field: Optional[str] = None
    reader: Optional[Callable[..., Any]] = None
    writer: Optional[Callable[..., Any]] = None

    @property
    def is_catch_all(self) -> bool:
        return self.id is None and self.pattern is None

    def matches(self, discriminant: Any) -> bool:
        if self.id is not None:
            return bool(discriminant == self.id)
        if self.pattern is not None:
            if callable(self.pattern):
                return bool(self.pattern(discriminant))
            return discriminant in self.pattern
        return True


@dataclass(frozen=True)
class EnumSpec:
    """Schema information for a tagged union root."""

    model_class: Type[BitEnum]
    variants: Tuple[VariantSpec, ...]
    id_wire: Optional[Int] = None
    bits: Optional[int] = None
    bytes: Optional[int] = None
    endian: Any = None
    id_expr: Optional[Callable[..., Any]] = None
    ctx_params: Tuple[str, ...] = ()
    ctx_defaults: Mapping[str, Any] = field(default_factory=dict)
    max_bytes: Optional[int] = None

    @property
    def name(self) -> str:
        return self.model_class.__name__

    def id_width(self) -> int:
        if self.bits is not None:
            return self.bits
        if self.bytes is not None:
            return self.bytes * 8
        assert self.id_wire is not None
        return self.id_wire.bits

    def match(self, discriminant: Any) -> Optional[VariantSpec]:
        """First variant, in declaration order, selected by the discriminant."""
        for variant in self.variants:
            if variant.matches(discriminant):
                return variant
        return None

    def variant_for(self, model_class: type) -> Optional[VariantSpec]:
        for variant in self.variants:
            if variant.model_class is model_class:
                return variant
        return None


Schema = Union[ContainerSpec, EnumSpec]


def resolve_endian(value: Any, scope: Scope) -> Optional[Endian]:
    """Evaluate an endian attribute, None when it is not set."""
    if value is None:
        return None
    if callable(value) and not isinstance(value, Endian):
        try:
            value = value(scope)
        except Exception as err:
            raise HookError(f"endian failed: {err}") from err
    return Endian.coerce(value)


_SCHEMAS: Dict[type, Schema] = {}


def schema_for(model_class: type) -> Schema:
    """Return the (cached) descriptor of a model class.

    Enum roots produce an EnumSpec; plain structs and individual variants
    produce a ContainerSpec.

    Raises:
        SchemaError: If the class is not a structbits model or is invalid
    """
    try:
        return _SCHEMAS[model_class]
    except KeyError:
        pass

    if not (isinstance(model_class, type) and issubclass(model_class, BitStruct)):
        raise SchemaError(f"{model_class!r} is not a BitStruct or BitEnum")
    if model_class is BitStruct or model_class is BitEnum:
        raise SchemaError(f"{model_class.__name__} cannot be used as a schema directly")

    schema: Schema
    if issubclass(model_class, BitEnum) and BitEnum in model_class.__bases__:
        schema = _build_enum(model_class)
    else:
        schema = _build_container(model_class)
    _SCHEMAS[model_class] = schema
    return schema


def container_for(model_class: type) -> ContainerSpec:
    """Return the ContainerSpec of a struct or a variant."""
    schema = schema_for(model_class)
    if isinstance(schema, EnumSpec):
        raise SchemaError(f"{model_class.__name__} is an enum root, not a container")
    return schema


def forget_schema(model_class: type) -> None:
    """Discard a cached descriptor (used when new variants are registered)."""
    _SCHEMAS.pop(model_class, None)


def _ctx_defaults(model_class: type, params: Tuple[str, ...]) -> Dict[str, Any]:
    defaults = model_class.structbits_ctx_default  # type: ignore[attr-defined]
    if defaults is None:
        return {}
    if isinstance(defaults, Mapping):
        unknown = set(defaults) - set(params)
        if unknown:
            raise SchemaError(
                f"{model_class.__name__}: ctx_default names unknown parameters {sorted(unknown)}"
            )
        return dict(defaults)
    if not isinstance(defaults, (tuple, list)):
        defaults = (defaults,)
    if len(defaults) > len(params):
        raise SchemaError(
            f"{model_class.__name__}: {len(defaults)} ctx defaults for {len(params)} parameters"
        )
    return dict(zip(params, defaults))


def _check_names(model_class: type, names: Tuple[str, ...]) -> None:
    for name in names:
        if name in _SCOPE_MEMBERS:
            raise SchemaError(
                f"{model_class.__name__}: {name!r} is a Scope attribute and cannot be used "
                f"as a field or context name",
                field=name,
            )


def _build_container(model_class: Type[BitStruct]) -> ContainerSpec:
    params = tuple(model_class.structbits_ctx)
    _check_names(model_class, params + tuple(model_class.model_fields))
    fields = tuple(
        _extract_field_spec(model_class, name, info) for name, info in model_class.model_fields.items()
    )
    return ContainerSpec(
        model_class=model_class,
        fields=fields,
        endian=_check_endian(model_class.structbits_endian),
        ctx_params=params,
        ctx_defaults=_ctx_defaults(model_class, params),
        max_bytes=model_class.structbits_max_bytes,
    )


def _build_enum(model_class: Type[BitEnum]) -> EnumSpec:
    name = model_class.__name__
    params = tuple(model_class.structbits_ctx)
    _check_names(model_class, params)
    id_expr = model_class.structbits_id
    bits, nbytes = model_class.structbits_bits, model_class.structbits_bytes

    id_wire = None
    if id_expr is None:
        if bits is not None and nbytes is not None:
            raise SchemaError(f"{name}: structbits_bits and structbits_bytes are exclusive")
        id_wire = _wire_of(model_class.structbits_type)
        if not isinstance(id_wire, Int):
            raise SchemaError(
                f"{name}: enums need an integer structbits_type or a structbits_id expression"
            )
        _check_width(name, bits, nbytes, id_wire)

    spec = EnumSpec(
        model_class=model_class,
        variants=(),
        id_wire=id_wire,
        bits=bits,
        bytes=nbytes,
        endian=_check_endian(model_class.structbits_endian),
        id_expr=id_expr,
        ctx_params=params,
        ctx_defaults=_ctx_defaults(model_class, params),
        max_bytes=model_class.structbits_max_bytes,
    )

    variants = []
    for variant_class in model_class.structbits_variants:
        container = _build_container(variant_class)
        variant = VariantSpec(
            model_class=variant_class,
            container=container,
            id=variant_class.structbits_variant_id,
            pattern=variant_class.structbits_variant_pat,
            id_field=_id_field(variant_class, container, spec),
            reader=variant_class.structbits_reader,
            writer=variant_class.structbits_writer,
        )
        _SCHEMAS[variant_class] = container
        variants.append(variant)

    return replace(spec, variants=tuple(variants))


def _id_field(variant_class: type, container: ContainerSpec, spec: EnumSpec) -> Optional[str]:
    """Name of the field carrying a pattern/catch-all variant's discriminant.

    A discriminant taken from the stream is read a second time by this field,
    so no field before it may touch the stream and its wire format must be
    the discriminant's own. A variant with a custom reader lays out its bits
    itself and is only required to name the field.
    """
    cls = variant_class.__name__
    if variant_class.structbits_variant_id is not None:  # type: ignore[attr-defined]
        return None

    stored = spec.id_expr is None
    name = variant_class.structbits_variant_id_field  # type: ignore[attr-defined]
    if name is None:
        name = next((field.name for field in container.fields if not field.skip), None)
    if name is None:
        if stored:
            raise SchemaError(
                f"{cls}: pattern and catch-all variants must store their discriminant in a field"
            )
        return None

    fields = {field.name: field for field in container.fields}
    if name not in fields:
        raise SchemaError(f"{cls}: unknown id field {name!r}")
    if not stored or variant_class.structbits_reader is not None:  # type: ignore[attr-defined]
        return name

    for earlier in container.fields:
        if earlier.name == name:
            break
        if not earlier.skip:
            raise SchemaError(
                f"{cls}: field {earlier.name!r} is read before the id field {name!r}",
                field=earlier.name,
            )

    id_spec = fields[name]
    plain = not (
        id_spec.skip
        or id_spec.cond is not None
        or id_spec.is_sequence
        or id_spec.reader is not None
        or id_spec.writer is not None
        or id_spec.map is not None
    )
    if not plain or not isinstance(id_spec.wire, Int):
        raise SchemaError(f"{cls}: id field {name!r} must be a plain integer field", field=name)

    assert spec.id_wire is not None
    width, signed = id_spec.width(), id_spec.wire.signed
    if width != spec.id_width() or signed != spec.id_wire.signed:
        raise SchemaError(
            f"{cls}: id field {name!r} is a {width}-bit {_signedness(signed)} integer, "
            f"the discriminant of {spec.name} is {spec.id_width()}-bit "
            f"{_signedness(spec.id_wire.signed)}",
            field=name,
        )

    field_endian = id_spec.endian if id_spec.endian is not None else container.endian
    if (
        isinstance(field_endian, Endian)
        and isinstance(spec.endian, Endian)
        and field_endian is not spec.endian
        and width % 8 == 0
        and width > 8
    ):
        raise SchemaError(
            f"{cls}: id field {name!r} is {field_endian.value} endian, the discriminant is "
            f"{spec.endian.value} endian",
            field=name,
        )
    return name


def _signedness(signed: bool) -> str:
    return "signed" if signed else "unsigned"


def _check_endian(value: Any) -> Any:
    if value is None or (callable(value) and not isinstance(value, Endian)):
        return value
    return Endian.coerce(value)


def _check_width(
    name: str, bits: Optional[int], nbytes: Optional[int], wire: Optional[Union[Int, Float]]
) -> None:
    width = bits if bits is not None else (nbytes * 8 if nbytes is not None else None)
    if width is None:
        return
    if width < 1:
        raise SchemaError(f"{name}: width must be at least 1 bit, got {width}", field=name)
    if isinstance(wire, Float):
        raise SchemaError(f"{name}: float width cannot be overridden", field=name)
    if wire is not None and width > wire.bits:
        raise SchemaError(
            f"{name}: {width} bits exceed the {wire.bits}-bit natural width of the type",
            field=name,
        )


def _wire_of(annotation: Any) -> Optional[Union[Int, Float]]:
    """Int/Float marker of an Annotated alias, or the marker itself."""
    if isinstance(annotation, (Int, Float)):
        return annotation
    if get_origin(annotation) is Annotated:
        for meta in get_args(annotation)[1:]:
            if isinstance(meta, (Int, Float)):
                return meta
    return None


def _split(annotation: Any) -> Tuple[Any, Tuple[Any, ...]]:
    if get_origin(annotation) is Annotated:
        args = get_args(annotation)
        return args[0], tuple(args[1:])
    return annotation, ()


def _is_model(annotation: Any) -> bool:
    return isinstance(annotation, type) and issubclass(annotation, BitStruct)


def _extract_field_spec(model_class: type, name: str, field_info: FieldInfo) -> FieldSpec:
    """Extract schema information from a Pydantic FieldInfo."""
    annotation = field_info.annotation
    if annotation is None:
        raise SchemaError(f"Field {name} has no type annotation", field=name)

    extra = field_info.json_schema_extra
    attrs: Dict[str, Any] = dict(extra.get("structbits", {})) if isinstance(extra, dict) else {}
    metadata = tuple(field_info.metadata)

    # Optional[T] is Union[T, None]
    optional = False
    if get_origin(annotation) in _UNION_TYPES:
        non_none = [arg for arg in get_args(annotation) if arg is not type(None)]
        if len(non_none) != 1:
            raise SchemaError(f"Field {name}: complex Union types not supported", field=name)
        inner, inner_metadata = _split(non_none[0])
        annotation, metadata = inner, inner_metadata + metadata
        optional = True

    is_list = get_origin(annotation) is list
    is_bytes = annotation is bytes
    if is_list:
        (element,) = get_args(annotation) or (Any,)
        annotation, metadata = _split(element)
    elif is_bytes:
        annotation, metadata = int, (Int(8),)

    # The wire format comes from `raw` when a map changes the logical type
    raw = attrs.get("raw")
    wire_source, wire_meta = (annotation, metadata) if raw is None else _split(raw)
    if isinstance(raw, (Int, Float)):
        wire_source, wire_meta = (float if isinstance(raw, Float) else int), (raw,)

    nested = wire_source if _is_model(wire_source) else None
    wire = next((meta for meta in wire_meta if isinstance(meta, (Int, Float))), None)
    scalar_type = None
    if nested is None:
        if wire is None and attrs.get("reader") is None:
            raise SchemaError(
                f"Field {name}: unsupported type {wire_source!r}. Use a wire type such as "
                f"U8/I16/F32, a BitStruct/BitEnum, or a custom reader.",
                field=name,
            )
        if wire is not None:
            scalar_type = _scalar_type(name, wire_source, wire)

    if attrs.get("count") is not None and not (is_list or is_bytes):
        raise SchemaError(f"Field {name}: count requires a list or bytes field", field=name)
    if (is_list or is_bytes) and attrs.get("count") is None and not attrs.get("skip"):
        raise SchemaError(f"Field {name}: list and bytes fields require a count", field=name)
    if nested is None:
        _check_width(name, attrs.get("bits"), attrs.get("bytes"), wire)
    elif attrs.get("bits") is not None and attrs.get("bytes") is not None:
        raise SchemaError(f"{name}: bits and bytes cannot be used together", field=name)

    spec = FieldSpec(
        name=name,
        python_type=annotation,
        scalar_type=scalar_type,
        wire=wire,
        nested=nested,
        is_list=is_list,
        is_bytes=is_bytes,
        optional=optional,
        bits=attrs.get("bits"),
        bytes=attrs.get("bytes"),
        endian=_check_endian(attrs.get("endian")),
        count=attrs.get("count"),
        cond=attrs.get("cond"),
        skip=bool(attrs.get("skip", False)),
        default=attrs.get("default", UNSET),
        map=attrs.get("map"),
        reader=attrs.get("reader"),
        writer=attrs.get("writer"),
        ctx=attrs.get("ctx"),
        ctx_default=attrs.get("ctx_default"),
        update=attrs.get("update"),
    )

    if (spec.skip or spec.cond is not None) and spec.default is UNSET and not spec.has_zero():
        raise SchemaError(
            f"Field {name}: skipped or conditional fields of type {annotation!r} need a default",
            field=name,
        )
    return spec


def _scalar_type(name: str, annotation: Any, wire: Union[Int, Float]) -> type:
    if isinstance(wire, Float):
        if wire.bits not in (32, 64):
            raise SchemaError(f"Field {name}: float width must be 32 or 64 bits", field=name)
        return float
    if wire.bits < 1:
        raise SchemaError(f"Field {name}: width must be at least 1 bit", field=name)
    if annotation is bool:
        return bool
    if isinstance(annotation, type) and issubclass(annotation, enum.IntEnum):
        return annotation
    return int
