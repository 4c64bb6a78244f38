"""
Single entry point tying the classifier, the flow engines and the validator
together around one configuration and one store.
"""

from __future__ import annotations

import logging
from typing import Iterable, Mapping, Optional, Union

from oauth_provider.core.config import ProviderConfig
from oauth_provider.core.errors import OAuth2Error
from oauth_provider.core.scopes import ScopeSet
from oauth_provider.models.owner import ResourceOwner, owner_key
from oauth_provider.models.records import Authorization, Client, utcnow
from oauth_provider.models.request import ProviderRequest
from oauth_provider.models.store import AuthorizationStore
from oauth_provider.services.authorization_flow import (
    AuthorizationFlow,
    AuthorizationResult,
)
from oauth_provider.services.classifier import Flow, classify
from oauth_provider.services.client_registry import ClientRegistry
from oauth_provider.services.credentials import SecretHasher
from oauth_provider.services.grants import AuthorizationGrantor
from oauth_provider.services.responses import ProviderResponse, error_response
from oauth_provider.services.token_exchange import TokenExchange
from oauth_provider.services.token_validator import (
    AccessTokenValidator,
    TokenValidation,
)

logger = logging.getLogger(__name__)


class Provider:
    """OAuth 2.0 authorization server bound to a configuration and a store."""

    def __init__(
        self,
        config: ProviderConfig,
        store: AuthorizationStore,
        *,
        hasher: Optional[SecretHasher] = None,
    ) -> None:
        self.config = config
        self.store = store
        self.clients = ClientRegistry(store, hasher)
        self.grantor = AuthorizationGrantor(
            store,
            code_ttl_seconds=config.code_ttl_seconds,
            access_token_ttl_seconds=config.access_token_ttl_seconds,
        )
        self._authorization_flow = AuthorizationFlow(
            config, self.clients, store, self.grantor
        )
        self._token_exchange = TokenExchange(config, self.clients, store, self.grantor)
        self._validator = AccessTokenValidator(config, store)

    def parse(
        self, owner: Optional[ResourceOwner], request: ProviderRequest
    ) -> Union[AuthorizationResult, ProviderResponse]:
        """Route a protocol request to the front or back channel."""
        try:
            classification = classify(request, self.config.grant_handlers)
        except OAuth2Error as exc:
            logger.warning("Unclassifiable OAuth request: %s", exc.error.value)
            return error_response(exc)
        if classification.flow is Flow.AUTHORIZATION:
            return self._authorization_flow.authorize(owner, request)
        return self._token_exchange.exchange(request, classification)

    def authorize(
        self, owner: Optional[ResourceOwner], request: ProviderRequest
    ) -> AuthorizationResult:
        return self._authorization_flow.authorize(owner, request)

    def grant_access(
        self,
        owner: ResourceOwner,
        client_id: str,
        params: Mapping[str, str],
        *,
        duration: Optional[int] = None,
    ) -> AuthorizationResult:
        return self._authorization_flow.grant_access(
            owner, client_id, params, duration=duration
        )

    def deny_access(
        self,
        owner: Optional[ResourceOwner],
        client_id: str,
        params: Mapping[str, str],
    ) -> AuthorizationResult:
        return self._authorization_flow.deny_access(owner, client_id, params)

    def token(self, request: ProviderRequest) -> ProviderResponse:
        return self._token_exchange.exchange(request)

    def access_token(
        self,
        owner: Optional[ResourceOwner],
        scopes: Iterable[str],
        request: ProviderRequest,
    ) -> TokenValidation:
        return self._validator.validate(owner, scopes, request)

    def grant(
        self,
        owner: Optional[ResourceOwner],
        client: Client,
        scopes: Iterable[str] = (),
        *,
        duration: Optional[int] = None,
    ) -> Authorization:
        """Grant primitive for trusted callers, e.g. first-party provisioning."""
        return self.grantor.grant_access(owner, client, ScopeSet(scopes), duration)

    def revoke_access(self, owner: Optional[ResourceOwner], client_id: str) -> bool:
        """Revoke the owner's live authorization for ``client_id``."""
        authorization = self.store.find_live_authorization(
            owner_id=owner_key(owner), client_id=client_id
        )
        if authorization is None:
            return False
        self.store.revoke_authorization(authorization.id, at=utcnow())
        logger.info(
            "Revoked authorization %s for client %s", authorization.id, client_id
        )
        return True


__all__ = ["Provider"]
