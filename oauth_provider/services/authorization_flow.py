"""
Front-channel authorization flow.

Resolves the client and redirect URI, decides whether the owner has already
approved the requested scopes, and produces either a redirect carrying a code
or an implicit access token, a consent prompt, or a direct error response.
Errors detected before the redirect URI is verified are never redirected.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from http import HTTPStatus
from typing import Any, Mapping, Optional

from oauth_provider.core.config import ProviderConfig
from oauth_provider.core.errors import ErrorCode, OAuth2Error
from oauth_provider.core.scopes import ScopeSet
from oauth_provider.core.transport import TransportGuard
from oauth_provider.models.owner import ResourceOwner, owner_key
from oauth_provider.models.records import Authorization, Client
from oauth_provider.models.request import ProviderRequest
from oauth_provider.models.store import AuthorizationStore
from oauth_provider.services.client_registry import ClientRegistry
from oauth_provider.services.grants import AuthorizationGrantor
from oauth_provider.services.responses import (
    ProviderResponse,
    append_to_uri,
    error_response,
    redirect_response,
)

logger = logging.getLogger(__name__)

CODE_RESPONSE = "code"
TOKEN_RESPONSE = "token"
_GRANT_FOR_RESPONSE_TYPE = {
    CODE_RESPONSE: "authorization_code",
    TOKEN_RESPONSE: "implicit",
}


@dataclass
class AuthorizationResult:
    """Outcome of a front-channel request.

    Exactly one of three shapes: a redirect (``is_redirect``), a consent
    prompt (``needs_consent``), or a direct error response.
    """

    params: dict[str, str]
    client: Optional[Client] = None
    owner: Optional[ResourceOwner] = None
    scopes: ScopeSet = field(default_factory=ScopeSet)
    unauthorized_scopes: ScopeSet = field(default_factory=ScopeSet)
    redirect_uri: Optional[str] = None
    authorization: Optional[Authorization] = None
    error: Optional[ErrorCode] = None
    error_description: str = ""
    response: Optional[ProviderResponse] = None

    @property
    def is_redirect(self) -> bool:
        return self.response is not None and self.response.is_redirect

    @property
    def needs_consent(self) -> bool:
        return self.response is None

    @property
    def location(self) -> Optional[str]:
        return self.response.location if self.response else None

    @property
    def response_status(self) -> int:
        return self.response.status if self.response else int(HTTPStatus.OK)

    @property
    def response_headers(self) -> dict[str, str]:
        return dict(self.response.headers) if self.response else {}

    @property
    def response_body(self) -> Optional[dict[str, Any]]:
        return self.response.body if self.response else None

    @property
    def response_type(self) -> Optional[str]:
        return self.params.get("response_type")

    @property
    def state(self) -> Optional[str]:
        return self.params.get("state")


class _RedirectableError(OAuth2Error):
    """Raised once the redirect URI is trusted; reported through a redirect."""


@dataclass(frozen=True)
class _ValidatedRequest:
    client: Client
    redirect_uri: str
    response_type: str
    scopes: ScopeSet


class AuthorizationFlow:
    """Drives consent, code issuance and implicit token issuance."""

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

    def authorize(
        self, owner: Optional[ResourceOwner], request: ProviderRequest
    ) -> AuthorizationResult:
        params = dict(request.params)
        result = AuthorizationResult(params=params, owner=owner)
        try:
            self._guard.require_secure(request)
            validated = self._validate(params, result)
        except _RedirectableError as exc:
            return self._redirect_error(result, exc)
        except OAuth2Error as exc:
            return self._direct_error(result, exc)

        existing = None
        if owner is not None:
            existing = self._store.find_live_authorization(
                owner_id=owner_key(owner), client_id=validated.client.client_id
            )
        granted = existing.scopes if existing else ScopeSet()
        result.unauthorized_scopes = validated.scopes.difference(granted)

        if existing is not None and existing.in_scope(validated.scopes):
            return self._complete(result, validated, existing)
        return result

    def grant_access(
        self,
        owner: Optional[ResourceOwner],
        client_id: str,
        params: Mapping[str, str],
        *,
        duration: Optional[int] = None,
    ) -> AuthorizationResult:
        """Record the owner's approval and redirect with a code or token."""
        result = AuthorizationResult(params=dict(params), owner=owner)
        try:
            result.params = self._consent_params(client_id, params)
            validated = self._validate(result.params, result)
            if owner is None:
                raise OAuth2Error(
                    ErrorCode.INVALID_REQUEST,
                    "A resource owner is required to grant access.",
                )
        except _RedirectableError as exc:
            return self._redirect_error(result, exc)
        except OAuth2Error as exc:
            return self._direct_error(result, exc)

        authorization = self._grantor.record_consent(
            owner, validated.client, validated.scopes
        )
        return self._complete(result, validated, authorization, duration=duration)

    def deny_access(
        self,
        owner: Optional[ResourceOwner],
        client_id: str,
        params: Mapping[str, str],
    ) -> AuthorizationResult:
        """Redirect back to the client with ``access_denied``."""
        result = AuthorizationResult(params=dict(params), owner=owner)
        try:
            result.params = self._consent_params(client_id, params)
            self._validate(result.params, result)
        except _RedirectableError as exc:
            return self._redirect_error(result, exc)
        except OAuth2Error as exc:
            return self._direct_error(result, exc)
        logger.info("Owner denied access to client %s", client_id)
        return self._redirect_error(
            result,
            OAuth2Error(
                ErrorCode.ACCESS_DENIED,
                "The user denied you access.",
            ),
        )

    @staticmethod
    def _consent_params(client_id: str, params: Mapping[str, str]) -> dict[str, str]:
        merged = dict(params)
        supplied = merged.get("client_id")
        if supplied and supplied != client_id:
            raise OAuth2Error(
                ErrorCode.INVALID_REQUEST,
                "Parameter client_id does not match the consented client.",
            )
        merged["client_id"] = client_id
        return merged

    def _validate(
        self, params: Mapping[str, str], result: AuthorizationResult
    ) -> _ValidatedRequest:
        client_id = params.get("client_id")
        if not client_id:
            raise OAuth2Error(
                ErrorCode.INVALID_REQUEST, "Missing required parameter client_id."
            )
        client = self._clients.get(client_id)
        if client is None:
            raise OAuth2Error(ErrorCode.INVALID_CLIENT, "Unknown client ID.")
        result.client = client

        requested_uri = params.get("redirect_uri")
        if requested_uri and not client.matches_redirect_uri(
            requested_uri, allow_prefix=self._config.allow_redirect_uri_prefix
        ):
            raise OAuth2Error(
                ErrorCode.INVALID_REQUEST,
                "Parameter redirect_uri does not match registered URI.",
            )
        redirect_uri = requested_uri or client.redirect_uri
        result.redirect_uri = redirect_uri

        response_type = params.get("response_type")
        if not response_type:
            raise _RedirectableError(
                ErrorCode.INVALID_REQUEST, "Missing required parameter response_type."
            )
        if response_type not in _GRANT_FOR_RESPONSE_TYPE:
            raise _RedirectableError(
                ErrorCode.UNSUPPORTED_RESPONSE_TYPE,
                f"Response type {response_type} is not supported.",
            )
        if not client.allows_grant(_GRANT_FOR_RESPONSE_TYPE[response_type]):
            raise _RedirectableError(
                ErrorCode.UNAUTHORIZED_CLIENT,
                f"Client is not allowed to use response type {response_type}.",
            )

        scopes = ScopeSet.parse(params.get("scope"))
        result.scopes = scopes
        supported = self._config.scopes_supported
        if supported and not scopes.issubset(supported):
            unknown = scopes.difference(supported)
            raise _RedirectableError(
                ErrorCode.INVALID_SCOPE, f"Unknown scopes requested: {unknown}."
            )
        return _ValidatedRequest(
            client=client,
            redirect_uri=redirect_uri,
            response_type=response_type,
            scopes=scopes,
        )

    def _complete(
        self,
        result: AuthorizationResult,
        validated: _ValidatedRequest,
        authorization: Authorization,
        *,
        duration: Optional[int] = None,
    ) -> AuthorizationResult:
        state = result.params.get("state")
        if validated.response_type == CODE_RESPONSE:
            authorization = self._grantor.issue_code(authorization)
            location = append_to_uri(
                validated.redirect_uri,
                {"code": authorization.code, "state": state},
            )
        else:
            authorization = self._grantor.issue_access_token(
                authorization, duration=duration
            )
            location = append_to_uri(
                validated.redirect_uri,
                {
                    "access_token": authorization.access_token,
                    "token_type": "bearer",
                    "expires_in": authorization.expires_in(),
                    "scope": str(authorization.scopes),
                    "state": state,
                },
                fragment=True,
            )
        logger.info(
            "Issued %s for authorization %s to client %s",
            validated.response_type,
            authorization.id,
            validated.client.client_id,
        )
        result.authorization = authorization
        result.unauthorized_scopes = ScopeSet()
        result.response = redirect_response(location)
        return result

    def _redirect_error(
        self, result: AuthorizationResult, error: OAuth2Error
    ) -> AuthorizationResult:
        result.error = error.error
        result.error_description = error.description
        location = append_to_uri(
            result.redirect_uri,
            {
                "error": error.error.value,
                "error_description": error.description,
                "state": result.params.get("state"),
            },
            fragment=result.params.get("response_type") == TOKEN_RESPONSE,
        )
        result.response = redirect_response(location)
        return result

    def _direct_error(
        self, result: AuthorizationResult, error: OAuth2Error
    ) -> AuthorizationResult:
        logger.warning(
            "Rejected authorization request without redirect: %s", error.error.value
        )
        result.error = error.error
        result.error_description = error.description
        result.response = error_response(error)
        return result


__all__ = ["AuthorizationFlow", "AuthorizationResult"]
