"""Scope set value type shared by every protocol flow."""

from __future__ import annotations

from typing import Iterable, Iterator


class ScopeSet:
    """Immutable, unordered set of permission strings."""

    __slots__ = ("_scopes",)

    def __init__(self, scopes: Iterable[str] = ()) -> None:
        self._scopes = frozenset(scope for scope in scopes if scope)

    @classmethod
    def parse(cls, raw: str | None) -> "ScopeSet":
        """Build a scope set from a space-separated parameter value."""
        if not raw:
            return cls()
        return cls(raw.split())

    def union(self, other: Iterable[str]) -> "ScopeSet":
        return ScopeSet(self._scopes.union(other))

    def difference(self, other: Iterable[str]) -> "ScopeSet":
        return ScopeSet(self._scopes.difference(other))

    def issubset(self, other: Iterable[str]) -> bool:
        return self._scopes.issubset(other)

    def issuperset(self, other: Iterable[str]) -> bool:
        return self._scopes.issuperset(other)

    def to_list(self) -> list[str]:
        return sorted(self._scopes)

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(self._scopes))

    def __contains__(self, scope: object) -> bool:
        return scope in self._scopes

    def __len__(self) -> int:
        return len(self._scopes)

    def __bool__(self) -> bool:
        return bool(self._scopes)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, ScopeSet):
            return self._scopes == other._scopes
        if isinstance(other, (set, frozenset)):
            return self._scopes == other
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._scopes)

    def __str__(self) -> str:
        return " ".join(self.to_list())

    def __repr__(self) -> str:
        return f"ScopeSet({self.to_list()!r})"


__all__ = ["ScopeSet"]
