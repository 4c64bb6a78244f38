"""
Narrow request interface consumed by the provider engines.

Any web layer can satisfy ``ProviderRequest`` without inheriting from it;
``SimpleRequest`` is the plain-data implementation used by adapters and tests.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping, Protocol


class ProviderRequest(Protocol):
    """Request capabilities required by the OAuth engines."""

    @property
    def method(self) -> str: ...

    @property
    def params(self) -> Mapping[str, str]: ...

    @property
    def url(self) -> str: ...

    @property
    def scheme(self) -> str: ...

    @property
    def headers(self) -> Mapping[str, str]: ...

    @property
    def is_get(self) -> bool: ...

    @property
    def is_post(self) -> bool: ...


@dataclass(frozen=True)
class SimpleRequest:
    """Immutable request snapshot handed to the engines."""

    method: str = "GET"
    params: Mapping[str, str] = field(default_factory=dict)
    url: str = ""
    scheme: str = "https"
    headers: Mapping[str, str] = field(default_factory=dict)

    @property
    def is_get(self) -> bool:
        return self.method.upper() == "GET"

    @property
    def is_post(self) -> bool:
        return self.method.upper() == "POST"


def get_header(request: ProviderRequest, name: str) -> str | None:
    """Case-insensitive header lookup that works for plain dicts."""
    headers = request.headers
    value = headers.get(name)
    if value is not None:
        return value
    lowered = name.lower()
    for key, candidate in headers.items():
        if key.lower() == lowered:
            return candidate
    return None


__all__ = ["ProviderRequest", "SimpleRequest", "get_header"]
