"""
Persistence boundary of the provider.

The engines depend on this protocol only. Implementations must make
``consume_code`` and ``rotate_refresh_token`` atomic compare-and-swap
operations, and ``grant_scopes`` must never leave two live authorizations
for the same (owner, client) pair.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional, Protocol

from oauth_provider.core.scopes import ScopeSet
from oauth_provider.models.records import Authorization, Client


class AuthorizationStore(Protocol):
    def put_client(self, client: Client) -> None: ...

    def get_client(self, client_id: str) -> Optional[Client]: ...

    def grant_scopes(
        self, *, owner_id: Optional[str], client_id: str, scopes: ScopeSet
    ) -> Authorization:
        """Union ``scopes`` into the live authorization, creating it if needed."""
        ...

    def find_live_authorization(
        self, *, owner_id: Optional[str], client_id: str
    ) -> Optional[Authorization]: ...

    def get_authorization(self, authorization_id: int) -> Optional[Authorization]: ...

    def find_by_code(self, code: str) -> Optional[Authorization]: ...

    def find_by_access_token(self, token: str) -> Optional[Authorization]: ...

    def find_by_refresh_token(self, token: str) -> Optional[Authorization]: ...

    def update_authorization(self, authorization_id: int, **fields: Any) -> None: ...

    def consume_code(self, authorization_id: int, code: str) -> bool:
        """Clear ``code`` if it still matches. True for exactly one caller."""
        ...

    def rotate_refresh_token(
        self, authorization_id: int, current: str, replacement: str
    ) -> bool:
        """Swap the refresh token if it still matches. True for exactly one caller."""
        ...

    def destroy_access_token(self, authorization_id: int, token: str) -> None: ...

    def revoke_authorization(self, authorization_id: int, *, at: datetime) -> None: ...


__all__ = ["AuthorizationStore"]
