"""Base classes and structbits-specific Pydantic configuration.

This module provides BitStruct, the base class of every container schema, and
BitEnum, the base class of tagged unions. Schema-level options are ClassVar
attributes named ``structbits_*``.
"""

from __future__ import annotations

from typing import Any, Callable, ClassVar, Optional

from pydantic import BaseModel, ConfigDict

from ..exceptions import UnreachableVariant


class BitStruct(BaseModel):
    """Base class for all structbits containers.

    Fields are encoded in declaration order. Scalar fields take their natural
    width from the ``Int``/``Float`` marker of their type (``U8``, ``I16``,
    ...); per-field attributes come from ``BitField()``.

    Example:
        >>> from typing import ClassVar
        >>> class Header(BitStruct):
        ...     structbits_endian: ClassVar[str] = "little"
        ...
        ...     version: U8 = BitField(bits=4)
        ...     flags: U8 = BitField(bits=4)
        ...     length: U16

    Attributes:
        structbits_endian: Default byte order of the fields, or a callable
            evaluated against the context
        structbits_ctx: Names of the context parameters this schema expects
        structbits_ctx_default: Context used when decoded/encoded standalone,
            positional tuple or mapping
        structbits_max_bytes: Maximum encoded size in bytes (optional)
    """

    model_config = ConfigDict(
        # Lax validation, so assignments from update hooks are coerced
        strict=False,
        # Allow arbitrary types (map targets may be any Python type)
        arbitrary_types_allowed=True,
        # Validate on assignment, update() relies on it
        validate_assignment=True,
        # Forbid extra fields not defined in schema
        extra="forbid",
    )

    structbits_endian: ClassVar[Any] = None
    structbits_ctx: ClassVar[tuple[str, ...]] = ()
    structbits_ctx_default: ClassVar[Any] = None
    structbits_max_bytes: ClassVar[Optional[int]] = None


class BitEnum(BitStruct):
    """Base class for tagged unions.

    A direct subclass of BitEnum is an enum root; its direct subclasses are the
    variants, matched in definition order. A variant without id or pattern is
    the catch-all and must come last.

    Example:
        >>> class Command(BitEnum):
        ...     structbits_type: ClassVar[Any] = U8
        ...
        >>> class Ping(Command):
        ...     structbits_variant_id: ClassVar[Any] = 0x01
        ...     seq: U8
        ...
        >>> class Other(Command):  # catch-all, stores the discriminant
        ...     opcode: U8

    Root attributes:
        structbits_type: Discriminant wire type (``U8``, ``Int(4)``, ...)
        structbits_bits / structbits_bytes: Discriminant width override
        structbits_id: ``(scope) -> discriminant`` supplied by the caller; no
            discriminant is read or written when set

    Variant attributes:
        structbits_variant_id: Discriminant value selecting this variant
        structbits_variant_pat: ``range``, container or predicate selecting it
        structbits_variant_id_field: Field carrying the discriminant of a
            pattern/catch-all variant (first non-skipped field by default)
        structbits_reader: ``(reader, scope) -> instance`` replacing the
            field-by-field decode of the variant body
        structbits_writer: ``(writer, value, scope)`` replacing its encode
    """

    structbits_type: ClassVar[Any] = None
    structbits_bits: ClassVar[Optional[int]] = None
    structbits_bytes: ClassVar[Optional[int]] = None
    structbits_id: ClassVar[Optional[Callable[..., Any]]] = None

    structbits_variant_id: ClassVar[Any] = None
    structbits_variant_pat: ClassVar[Any] = None
    structbits_variant_id_field: ClassVar[Optional[str]] = None
    structbits_reader: ClassVar[Optional[Callable[..., Any]]] = None
    structbits_writer: ClassVar[Optional[Callable[..., Any]]] = None

    structbits_variants: ClassVar[tuple[type[BitEnum], ...]] = ()

    def __init_subclass__(cls, **kwargs: Any) -> None:
        """Register variants with their enum root, in definition order."""
        super().__init_subclass__(**kwargs)

        if BitEnum in cls.__bases__:
            cls.structbits_variants = ()
            return

        root = cls.enum_root()
        if root not in cls.__bases__:
            return
        _check_reachable(root, cls)
        root.structbits_variants = root.structbits_variants + (cls,)

        # Drop a descriptor built before this variant existed
        from ..codec.schema import forget_schema

        forget_schema(root)

    @classmethod
    def enum_root(cls) -> type[BitEnum]:
        """Return the enum root this class belongs to."""
        for klass in cls.__mro__:
            if BitEnum in getattr(klass, "__bases__", ()):
                return klass
        raise TypeError(f"{cls.__name__} is not part of an enum")

    @classmethod
    def is_catch_all(cls) -> bool:
        return cls.structbits_variant_id is None and cls.structbits_variant_pat is None


def _check_reachable(root: type[BitEnum], variant: type[BitEnum]) -> None:
    """Reject a variant that no discriminant could ever select."""
    earlier_variants = root.structbits_variants
    for earlier in earlier_variants:
        if earlier.is_catch_all():
            raise UnreachableVariant(
                f"{root.__name__}.{variant.__name__} is declared after the catch-all "
                f"variant {earlier.__name__}"
            )

    variant_id = variant.structbits_variant_id
    if variant_id is not None:
        owner = _claimed_by(earlier_variants, variant_id)
        if owner is not None:
            raise UnreachableVariant(
                f"{root.__name__}.{variant.__name__}: id {variant_id!r} is already "
                f"matched by {owner.__name__}"
            )
        return

    pattern = variant.structbits_variant_pat
    if pattern is None or callable(pattern):
        return
    if isinstance(pattern, range) and pattern.step == 1 and len(pattern):
        for earlier in earlier_variants:
            covering = earlier.structbits_variant_pat
            if (
                earlier.structbits_variant_id is None
                and isinstance(covering, range)
                and pattern[0] in covering
                and pattern[-1] in covering
                and covering.step == 1
            ):
                raise UnreachableVariant(
                    f"{root.__name__}.{variant.__name__}: pattern {pattern!r} is already "
                    f"matched by {earlier.__name__}"
                )
    # Stops at the first value no earlier variant claims
    if all(_claimed_by(earlier_variants, value) is not None for value in pattern):
        raise UnreachableVariant(
            f"{root.__name__}.{variant.__name__}: every value of pattern {pattern!r} is "
            f"already matched by earlier variants"
        )


def _claimed_by(variants: tuple[type[BitEnum], ...], value: Any) -> Optional[type[BitEnum]]:
    """First variant statically known to match ``value``."""
    for earlier in variants:
        pattern = earlier.structbits_variant_pat
        if earlier.structbits_variant_id == value or (
            earlier.structbits_variant_id is None
            and pattern is not None
            and not callable(pattern)
            and value in pattern
        ):
            return earlier
    return None
