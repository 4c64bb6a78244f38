"""
Grant primitive: record an owner's consent and mint credentials for it.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import timedelta
from typing import Optional

from oauth_provider.core.scopes import ScopeSet
from oauth_provider.models.owner import ResourceOwner, owner_key
from oauth_provider.models.records import Authorization, Client, utcnow
from oauth_provider.models.store import AuthorizationStore
from oauth_provider.services.credentials import generate_token

logger = logging.getLogger(__name__)


class AuthorizationGrantor:
    """Creates and extends authorizations and issues codes and tokens."""

    def __init__(
        self,
        store: AuthorizationStore,
        *,
        code_ttl_seconds: int = 600,
        access_token_ttl_seconds: int = 3600,
    ) -> None:
        self._store = store
        self._code_ttl = timedelta(seconds=code_ttl_seconds)
        self._access_token_ttl = timedelta(seconds=access_token_ttl_seconds)

    def record_consent(
        self, owner: Optional[ResourceOwner], client: Client, scopes: ScopeSet
    ) -> Authorization:
        """Union ``scopes`` into the owner's live authorization for ``client``."""
        authorization = self._store.grant_scopes(
            owner_id=owner_key(owner),
            client_id=client.client_id,
            scopes=scopes,
        )
        logger.info(
            "Authorization %s for client %s now holds scopes [%s]",
            authorization.id,
            client.client_id,
            authorization.scopes,
        )
        return authorization

    def issue_code(self, authorization: Authorization) -> Authorization:
        """Mint a fresh single-use code, replacing any pending one."""
        code = generate_token()
        expires_at = utcnow() + self._code_ttl
        self._store.update_authorization(
            authorization.id, code=code, code_expires_at=expires_at
        )
        return replace(authorization, code=code, code_expires_at=expires_at)

    def issue_access_token(
        self,
        authorization: Authorization,
        *,
        duration: Optional[int] = None,
        with_refresh_token: bool = False,
    ) -> Authorization:
        """Mint a new access token, and a refresh token when requested and absent."""
        ttl = timedelta(seconds=duration) if duration else self._access_token_ttl
        fields: dict = {
            "access_token": generate_token(),
            "access_token_expires_at": utcnow() + ttl,
        }
        if with_refresh_token and not authorization.refresh_token:
            fields["refresh_token"] = generate_token()
        self._store.update_authorization(authorization.id, **fields)
        return replace(authorization, **fields)

    def issue_refresh_token(self, authorization: Authorization) -> Authorization:
        refresh_token = generate_token()
        self._store.update_authorization(authorization.id, refresh_token=refresh_token)
        return replace(authorization, refresh_token=refresh_token)

    def grant_access(
        self,
        owner: Optional[ResourceOwner],
        client: Client,
        scopes: ScopeSet,
        duration: Optional[int] = None,
    ) -> Authorization:
        """Record consent and issue an access token in one step."""
        authorization = self.record_consent(owner, client, scopes)
        return self.issue_access_token(authorization, duration=duration)

    __call__ = grant_access


__all__ = ["AuthorizationGrantor"]
