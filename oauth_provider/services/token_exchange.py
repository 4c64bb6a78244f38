"""
Back-channel token exchange.

Authenticates the client, then trades an authorization code, owner
credentials, an assertion or a refresh token for an access token.
"""

from __future__ import annotations

import base64
import logging
from dataclasses import dataclass, field, replace
from http import HTTPStatus
from typing import Callable, Optional
from urllib.parse import unquote_plus

from oauth_provider.core.config import ProviderConfig
from oauth_provider.core.errors import ErrorCode, OAuth2Error
from oauth_provider.core.grant_handlers import (
    AUTHORIZATION_CODE_GRANT,
    PASSWORD_GRANT,
    REFRESH_TOKEN_GRANT,
    GrantRequest,
)
from oauth_provider.core.scopes import ScopeSet
from oauth_provider.core.transport import TransportGuard
from oauth_provider.models.records import Authorization, Client
from oauth_provider.models.request import ProviderRequest, get_header
from oauth_provider.models.store import AuthorizationStore
from oauth_provider.schemas.tokens import TokenResponse
from oauth_provider.services.classifier import Classification, Flow, classify
from oauth_provider.services.client_registry import ClientRegistry
from oauth_provider.services.credentials import generate_token
from oauth_provider.services.grants import AuthorizationGrantor
from oauth_provider.services.responses import (
    ProviderResponse,
    error_response,
    json_response,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _ClientCredentials:
    client_id: str
    client_secret: str = field(repr=False)
    via_basic: bool = False


class TokenExchange:
    """Token endpoint logic for every supported grant type."""

    def __init__(
        self,
        config: ProviderConfig,
        clients: ClientRegistry,
        store: AuthorizationStore,
        grantor: AuthorizationGrantor,
    ) -> None:
        self._config = config
        self._clients = clients
        self._store = store
        self._grantor = grantor
        self._guard = TransportGuard(config.enforce_ssl)

    def exchange(
        self,
        request: ProviderRequest,
        classification: Optional[Classification] = None,
    ) -> ProviderResponse:
        via_basic = False
        try:
            self._guard.require_secure(request)
            if not request.is_post:
                raise OAuth2Error(
                    ErrorCode.INVALID_REQUEST, "Token requests must use POST."
                )
            classification = classification or classify(
                request, self._config.grant_handlers
            )
            if classification.flow is not Flow.TOKEN:
                raise OAuth2Error(
                    ErrorCode.INVALID_REQUEST,
                    "The token endpoint requires a grant_type parameter.",
                )
            credentials = self._client_credentials(request)
            via_basic = credentials.via_basic
            client = self._authenticate_client(credentials)

            grant_key = classification.assertion_type or classification.grant_type
            if not client.allows_grant(grant_key):
                raise OAuth2Error(
                    ErrorCode.UNAUTHORIZED_CLIENT,
                    f"Client is not allowed to use grant type {grant_key}.",
                )
            authorization = self._dispatch(classification)(request, client, classification)
        except OAuth2Error as exc:
            headers = None
            if exc.error is ErrorCode.INVALID_CLIENT and via_basic:
                headers = {"WWW-Authenticate": f'Basic realm="{self._config.realm}"'}
            return error_response(exc, headers=headers)
        return self._token_response(authorization)

    def _dispatch(
        self, classification: Classification
    ) -> Callable[[ProviderRequest, Client, Classification], Authorization]:
        if classification.is_assertion:
            return self._assertion_grant
        return {
            AUTHORIZATION_CODE_GRANT: self._authorization_code_grant,
            PASSWORD_GRANT: self._password_grant,
            REFRESH_TOKEN_GRANT: self._refresh_token_grant,
        }[classification.grant_type]

    # Client authentication

    def _client_credentials(self, request: ProviderRequest) -> _ClientCredentials:
        params = request.params
        header = get_header(request, "Authorization") or ""
        scheme, _, encoded = header.partition(" ")
        if scheme.lower() == "basic" and encoded:
            if params.get("client_secret"):
                raise OAuth2Error(
                    ErrorCode.INVALID_REQUEST,
                    "Use only one method of client authentication.",
                )
            try:
                decoded = base64.b64decode(encoded.strip(), validate=True).decode("utf-8")
            except ValueError as exc:
                raise OAuth2Error(
                    ErrorCode.INVALID_REQUEST, "Malformed Basic credentials."
                ) from exc
            client_id, separator, client_secret = decoded.partition(":")
            if not separator:
                raise OAuth2Error(
                    ErrorCode.INVALID_REQUEST, "Malformed Basic credentials."
                )
            client_id = unquote_plus(client_id)
            supplied_id = params.get("client_id")
            if supplied_id and supplied_id != client_id:
                raise OAuth2Error(
                    ErrorCode.INVALID_REQUEST,
                    "Parameter client_id does not match the Basic credentials.",
                )
            return _ClientCredentials(client_id, unquote_plus(client_secret), True)

        client_id = params.get("client_id")
        client_secret = params.get("client_secret")
        if not client_id or not client_secret:
            raise OAuth2Error(
                ErrorCode.INVALID_CLIENT, "Client authentication is required."
            )
        return _ClientCredentials(client_id, client_secret, False)

    def _authenticate_client(self, credentials: _ClientCredentials) -> Client:
        client = self._clients.authenticate(
            credentials.client_id, credentials.client_secret
        )
        if client is None:
            logger.warning("Client authentication failed for %s", credentials.client_id)
            raise OAuth2Error(
                ErrorCode.INVALID_CLIENT, "The client could not be authenticated."
            )
        return client

    # Grants

    def _authorization_code_grant(
        self, request: ProviderRequest, client: Client, _: Classification
    ) -> Authorization:
        params = request.params
        code = params.get("code")
        if not code:
            raise OAuth2Error(ErrorCode.INVALID_REQUEST, "Missing required parameter code.")

        authorization = self._store.find_by_code(code)
        if (
            authorization is None
            or authorization.client_id != client.client_id
            or authorization.revoked
        ):
            raise OAuth2Error(
                ErrorCode.INVALID_GRANT, "The access grant you supplied is invalid."
            )
        if authorization.code_expired():
            raise OAuth2Error(
                ErrorCode.INVALID_GRANT, "The access grant you supplied has expired."
            )
        redirect_uri = params.get("redirect_uri")
        if redirect_uri and not client.matches_redirect_uri(
            redirect_uri, allow_prefix=self._config.allow_redirect_uri_prefix
        ):
            raise OAuth2Error(
                ErrorCode.INVALID_GRANT,
                "Parameter redirect_uri does not match registered URI.",
            )

        if not self._store.consume_code(authorization.id, code):
            logger.warning(
                "Authorization code for authorization %s was already exchanged",
                authorization.id,
            )
            raise OAuth2Error(
                ErrorCode.INVALID_GRANT, "The access grant you supplied is invalid."
            )
        authorization = replace(authorization, code=None, code_expires_at=None)
        return self._grantor.issue_access_token(authorization, with_refresh_token=True)

    def _password_grant(
        self, request: ProviderRequest, client: Client, _: Classification
    ) -> Authorization:
        params = request.params
        username = params.get("username")
        password = params.get("password")
        if not username or password is None:
            raise OAuth2Error(
                ErrorCode.INVALID_REQUEST,
                "Missing required parameters username and password.",
            )
        handler = self._config.grant_handlers.password_handler
        grant_request = GrantRequest(
            client=client,
            scopes=self._requested_scopes(params),
            grantor=self._grantor,
            username=username,
            password=password,
        )
        return self._finish_handler_grant(handler(grant_request), client)

    def _assertion_grant(
        self, request: ProviderRequest, client: Client, classification: Classification
    ) -> Authorization:
        params = request.params
        assertion = params.get("assertion")
        if not assertion:
            raise OAuth2Error(
                ErrorCode.INVALID_REQUEST, "Missing required parameter assertion."
            )
        handler = self._config.grant_handlers.assertion_handler(
            classification.assertion_type
        )
        if handler is None:
            raise OAuth2Error(
                ErrorCode.UNSUPPORTED_GRANT_TYPE,
                f"The assertion type {classification.assertion_type} is not supported.",
            )
        grant_request = GrantRequest(
            client=client,
            scopes=self._requested_scopes(params),
            grantor=self._grantor,
            assertion_type=classification.assertion_type,
            assertion=assertion,
        )
        return self._finish_handler_grant(handler(grant_request), client)

    def _refresh_token_grant(
        self, request: ProviderRequest, client: Client, _: Classification
    ) -> Authorization:
        params = request.params
        refresh_token = params.get("refresh_token")
        if not refresh_token:
            raise OAuth2Error(
                ErrorCode.INVALID_REQUEST, "Missing required parameter refresh_token."
            )
        authorization = self._store.find_by_refresh_token(refresh_token)
        if (
            authorization is None
            or authorization.client_id != client.client_id
            or authorization.revoked
        ):
            raise OAuth2Error(
                ErrorCode.INVALID_GRANT, "The refresh token you supplied is invalid."
            )
        requested = ScopeSet.parse(params.get("scope"))
        if requested and not requested.issubset(authorization.scopes):
            raise OAuth2Error(
                ErrorCode.INVALID_SCOPE,
                "A refresh may not request scopes beyond the original grant.",
            )

        if self._config.rotate_refresh_tokens:
            replacement = generate_token()
            if not self._store.rotate_refresh_token(
                authorization.id, refresh_token, replacement
            ):
                logger.warning(
                    "Refresh token for authorization %s was already rotated",
                    authorization.id,
                )
                raise OAuth2Error(
                    ErrorCode.INVALID_GRANT, "The refresh token you supplied is invalid."
                )
            authorization = replace(authorization, refresh_token=replacement)
        return self._grantor.issue_access_token(authorization)

    # Helpers

    def _requested_scopes(self, params) -> ScopeSet:
        scopes = ScopeSet.parse(params.get("scope"))
        supported = self._config.scopes_supported
        if supported and not scopes.issubset(supported):
            raise OAuth2Error(
                ErrorCode.INVALID_SCOPE,
                f"Unknown scopes requested: {scopes.difference(supported)}.",
            )
        return scopes

    def _finish_handler_grant(
        self, authorization: Optional[Authorization], client: Client
    ) -> Authorization:
        if authorization is None:
            raise OAuth2Error(
                ErrorCode.INVALID_GRANT, "The access grant you supplied is invalid."
            )
        if authorization.client_id != client.client_id or authorization.revoked:
            logger.warning(
                "Grant handler returned authorization %s not usable by client %s",
                authorization.id,
                client.client_id,
            )
            raise OAuth2Error(
                ErrorCode.INVALID_GRANT, "The access grant you supplied is invalid."
            )
        if not authorization.access_token or authorization.access_token_expired():
            return self._grantor.issue_access_token(
                authorization, with_refresh_token=True
            )
        if not authorization.refresh_token:
            return self._grantor.issue_refresh_token(authorization)
        return authorization

    def _token_response(self, authorization: Authorization) -> ProviderResponse:
        logger.info(
            "Issued access token for authorization %s to client %s",
            authorization.id,
            authorization.client_id,
        )
        payload = TokenResponse(
            access_token=authorization.access_token,
            expires_in=authorization.expires_in() or 0,
            refresh_token=authorization.refresh_token,
            scope=str(authorization.scopes),
        )
        return json_response(payload.model_dump(exclude_none=True), status=HTTPStatus.OK)


__all__ = ["TokenExchange"]
