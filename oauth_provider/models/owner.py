"""Resource owner identity as seen by the provider."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Protocol, runtime_checkable


@runtime_checkable
class ResourceOwner(Protocol):
    """Anything exposing a stable identity key can own authorizations.

    Owners do not grant access themselves; trusted callers use
    ``Provider.grant(owner, client, scopes)`` and grant handlers use
    ``GrantRequest.grant_access(owner)``.
    """

    @property
    def owner_id(self) -> str: ...


@dataclass(frozen=True)
class Owner:
    """Minimal owner reference rebuilt from stored authorizations."""

    owner_id: str


def owner_key(owner: Optional[ResourceOwner]) -> Optional[str]:
    """Identity key of an owner, ``None`` for client-only grants."""
    if owner is None:
        return None
    return str(owner.owner_id)


__all__ = ["Owner", "ResourceOwner", "owner_key"]
