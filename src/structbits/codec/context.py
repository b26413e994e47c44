"""Context environment threaded through one decode/encode call."""

from __future__ import annotations

from typing import Any, Iterable, Iterator, Mapping, Optional, Union

from .bitpack import BitReader, BitWriter

Stream = Union[BitReader, BitWriter]


class Scope:
    """Ordered, append-only set of named values visible to hook expressions.

    A scope holds the context parameters a schema received from its caller,
    followed by every field decoded (or encoded) so far in the current
    container. Binding a name returns a new scope; existing scopes are never
    modified, so a nested schema can only see what was explicitly forwarded.

    Values are reachable as attributes or items, the latest binding of a name
    winning:

        >>> scope = Scope().bind("count", 2)
        >>> scope.count, scope["count"]
        (2, 2)

    ``stream`` is the live reader (decode) or writer (encode), so hooks may
    query ``scope.stream.bit_position()`` or ``scope.stream.remaining_bits()``.
    """

    __slots__ = ("_bindings", "stream")

    def __init__(
        self, bindings: Iterable[tuple[str, Any]] = (), stream: Optional[Stream] = None
    ) -> None:
        self._bindings = tuple(bindings)
        self.stream = stream

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any], stream: Optional[Stream] = None) -> Scope:
        return cls(values.items(), stream)

    def bind(self, name: str, value: Any) -> Scope:
        """Return a new scope extended with ``name``."""
        return Scope(self._bindings + ((name, value),), self.stream)

    def _lookup(self, name: str) -> Any:
        for key, value in reversed(self._bindings):
            if key == name:
                return value
        raise KeyError(name)

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_"):
            raise AttributeError(name)
        try:
            return self._lookup(name)
        except KeyError:
            raise AttributeError(f"'{name}' is not defined in this scope") from None

    def __getitem__(self, name: str) -> Any:
        return self._lookup(name)

    def __contains__(self, name: object) -> bool:
        return any(key == name for key, _ in self._bindings)

    def __iter__(self) -> Iterator[str]:
        return iter(self.as_dict())

    def get(self, name: str, default: Any = None) -> Any:
        try:
            return self._lookup(name)
        except KeyError:
            return default

    def as_dict(self) -> dict[str, Any]:
        """Latest value of every bound name, in first-binding order."""
        result: dict[str, Any] = {}
        for key, value in self._bindings:
            result[key] = value
        return result

    def __repr__(self) -> str:
        return f"Scope({self.as_dict()!r})"
