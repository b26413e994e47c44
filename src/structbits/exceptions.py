"""Exception hierarchy for structbits.

This module defines all custom exceptions used throughout the package.
All exceptions inherit from StructbitsError for easy catching of any
structbits-specific error.

Every error carries the dotted path of the field that was being processed
(outermost first) and the bit offset at which the failure happened, when
those are known.
"""

from __future__ import annotations

from typing import Any


class StructbitsError(Exception):
    """Base exception for all structbits errors.

    Attributes:
        message: Human readable description of the failure
        path: Field names from the outermost container to the failing field
        bit_offset: Stream position (in bits) where the failure happened
    """

    def __init__(
        self, message: str = "", *, field: str | None = None, bit_offset: int | None = None
    ) -> None:
        super().__init__(message)
        self.message = message
        self.path: tuple[str, ...] = (field,) if field else ()
        self.bit_offset = bit_offset

    @property
    def field(self) -> str | None:
        """Dotted field path, or None when the error is not tied to a field."""
        return ".".join(self.path) or None

    def at(self, field: str, bit_offset: int | None = None) -> StructbitsError:
        """Attach positional context while the error travels outwards.

        The innermost bit offset wins; field names are prepended so the
        final path reads from the outermost container inwards.
        """
        self.path = (field,) + self.path
        if self.bit_offset is None:
            self.bit_offset = bit_offset
        return self

    def __str__(self) -> str:
        location = []
        if self.path:
            location.append(f"field '{self.field}'")
        if self.bit_offset is not None:
            location.append(f"bit offset {self.bit_offset}")
        if not location:
            return self.message
        return f"{self.message} ({', '.join(location)})"


class SchemaError(StructbitsError):
    """Raised when a schema is invalid or incompatible.

    Examples:
        - Both bits= and bytes= set on the same field
        - Sequence field without a count
        - Nested schema requiring context that cannot be supplied
    """

    pass


class UnreachableVariant(SchemaError):
    """Raised when an enum variant can never be selected.

    Detected when the variant class is defined, e.g. a variant declared
    after the catch-all or an id already claimed by an earlier variant.
    """

    pass


class DecodeError(StructbitsError):
    """Raised when decoding binary data fails.

    Examples:
        - Truncated data (insufficient bits)
        - Invalid field value (unknown enum member, non 0/1 boolean)
        - Decoded values rejected by the model
    """

    pass


class InsufficientData(DecodeError):
    """Raised when the stream ends before the required bits were read."""

    pass


class TrailingData(DecodeError):
    """Raised by strict decoding when input is left unconsumed."""

    pass


class InvalidCount(DecodeError):
    """Raised when a count expression does not yield a non-negative integer."""

    pass


class MapError(DecodeError):
    """Raised when a field's map transform fails."""

    pass


class UnknownVariant(DecodeError):
    """Raised when a discriminant matches no variant and no catch-all exists."""

    def __init__(self, discriminant: Any, enum_name: str = "") -> None:
        target = f" of {enum_name}" if enum_name else ""
        super().__init__(f"No variant{target} matches discriminant {discriminant!r}")
        self.discriminant = discriminant


class EncodeError(StructbitsError):
    """Raised when encoding a value fails.

    Examples:
        - Field type mismatch or missing value
        - Pattern variant carrying a discriminant outside its pattern
        - Encoded size exceeds structbits_max_bytes
    """

    pass


class ValueOverflow(EncodeError):
    """Raised when a value does not fit in its declared bit width."""

    pass


class HookError(StructbitsError):
    """Raised when a user supplied hook (reader, writer, update, ...) fails.

    The original exception is available as ``__cause__``.
    """

    pass
