"""
Domain records persisted by the authorization store.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from oauth_provider.core.scopes import ScopeSet


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(slots=True)
class Client:
    """A registered third-party application."""

    client_id: str
    client_secret_hash: str
    name: str
    redirect_uri: str
    grant_types: frozenset[str] = frozenset()
    created_at: datetime = field(default_factory=utcnow)

    def allows_grant(self, grant_type: str) -> bool:
        """An empty allow-list means every grant type the provider supports."""
        return not self.grant_types or grant_type in self.grant_types

    def matches_redirect_uri(self, uri: str, *, allow_prefix: bool = False) -> bool:
        """Exact match, or a prefix match ending on a path boundary when allowed."""
        registered = self.redirect_uri
        if uri == registered:
            return True
        if not allow_prefix or not uri.startswith(registered):
            return False
        return registered.endswith("/") or uri[len(registered)] in "/?#"


@dataclass(slots=True)
class Authorization:
    """Binding of an owner, a client and the scopes granted between them."""

    client_id: str
    owner_id: Optional[str] = None
    scopes: ScopeSet = field(default_factory=ScopeSet)
    code: Optional[str] = None
    code_expires_at: Optional[datetime] = None
    access_token: Optional[str] = None
    access_token_expires_at: Optional[datetime] = None
    refresh_token: Optional[str] = None
    revoked: bool = False
    id: Optional[int] = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    def code_expired(self, now: datetime | None = None) -> bool:
        if self.code_expires_at is None:
            return False
        return self.code_expires_at <= (now or utcnow())

    def access_token_expired(self, now: datetime | None = None) -> bool:
        if self.access_token_expires_at is None:
            return False
        return self.access_token_expires_at <= (now or utcnow())

    def expires_in(self, now: datetime | None = None) -> Optional[int]:
        """Seconds until the access token expires, floored at zero."""
        if self.access_token_expires_at is None:
            return None
        remaining = (self.access_token_expires_at - (now or utcnow())).total_seconds()
        return max(int(remaining), 0)

    def in_scope(self, scopes: ScopeSet) -> bool:
        return scopes.issubset(self.scopes)


__all__ = ["Authorization", "Client", "utcnow"]
