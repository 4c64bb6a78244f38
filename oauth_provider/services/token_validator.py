"""
Resource-server side validation of bearer tokens.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from http import HTTPStatus
from typing import Iterable, Optional

from oauth_provider.core.config import ProviderConfig
from oauth_provider.core.errors import ErrorCode
from oauth_provider.core.scopes import ScopeSet
from oauth_provider.core.transport import TransportGuard
from oauth_provider.models.owner import Owner, ResourceOwner, owner_key
from oauth_provider.models.records import Authorization
from oauth_provider.models.request import ProviderRequest, get_header
from oauth_provider.models.store import AuthorizationStore
from oauth_provider.services.responses import www_authenticate

logger = logging.getLogger(__name__)

_TOKEN_SCHEMES = ("bearer", "oauth")
_TOKEN_PARAMS = ("access_token", "oauth_token")


@dataclass
class TokenValidation:
    """Verdict for one resource request; check ``is_valid`` before serving."""

    is_valid: bool
    response_status: int = int(HTTPStatus.OK)
    response_headers: dict[str, str] = field(default_factory=dict)
    owner: Optional[ResourceOwner] = None
    scopes: ScopeSet = field(default_factory=ScopeSet)
    authorization: Optional[Authorization] = None
    error: Optional[ErrorCode] = None
    error_description: str = ""


def access_token_from_request(request: ProviderRequest) -> Optional[str]:
    """Read the token from the Authorization header or request parameters."""
    header = get_header(request, "Authorization") or ""
    scheme, _, value = header.strip().partition(" ")
    if scheme.lower() in _TOKEN_SCHEMES and value.strip():
        return value.strip()
    for name in _TOKEN_PARAMS:
        token = request.params.get(name)
        if token:
            return token
    return None


class AccessTokenValidator:
    def __init__(self, config: ProviderConfig, store: AuthorizationStore) -> None:
        self._config = config
        self._store = store
        self._guard = TransportGuard(config.enforce_ssl)

    def validate(
        self,
        owner: Optional[ResourceOwner],
        required_scopes: Iterable[str],
        request: ProviderRequest,
    ) -> TokenValidation:
        required = (
            required_scopes
            if isinstance(required_scopes, ScopeSet)
            else ScopeSet(required_scopes)
        )
        token = access_token_from_request(request)
        authorization = self._store.find_by_access_token(token) if token else None

        if not self._guard.check(request):
            if authorization is not None:
                self._store.destroy_access_token(authorization.id, token)
                logger.warning(
                    "Destroyed access token of authorization %s presented over insecure transport",
                    authorization.id,
                )
            return self._invalid(
                ErrorCode.INVALID_REQUEST,
                "You must make requests to this resource using HTTPS.",
            )

        if token is None:
            return TokenValidation(
                is_valid=False,
                response_status=int(HTTPStatus.UNAUTHORIZED),
                response_headers={
                    "WWW-Authenticate": www_authenticate(self._config.realm)
                },
            )

        if authorization is None or authorization.revoked:
            return self._invalid(
                ErrorCode.INVALID_TOKEN, "The access token is invalid."
            )
        if authorization.access_token_expired():
            return self._invalid(
                ErrorCode.INVALID_TOKEN, "The access token has expired."
            )
        if owner is not None and owner_key(owner) != authorization.owner_id:
            return self._invalid(
                ErrorCode.INVALID_TOKEN,
                "The access token was not issued for this resource owner.",
            )
        if not required.issubset(authorization.scopes):
            return self._invalid(
                ErrorCode.INSUFFICIENT_SCOPE,
                "The access token does not grant the required scope.",
                scope=str(required),
            )

        if owner is None and authorization.owner_id is not None:
            owner = Owner(authorization.owner_id)
        return TokenValidation(
            is_valid=True,
            owner=owner,
            scopes=authorization.scopes,
            authorization=authorization,
        )

    def _invalid(
        self, error: ErrorCode, description: str, *, scope: str = ""
    ) -> TokenValidation:
        challenge = www_authenticate(
            self._config.realm, error=error, description=description, scope=scope
        )
        return TokenValidation(
            is_valid=False,
            response_status=int(error.status),
            response_headers={"WWW-Authenticate": challenge},
            error=error,
            error_description=description,
        )


__all__ = ["AccessTokenValidator", "TokenValidation", "access_token_from_request"]
