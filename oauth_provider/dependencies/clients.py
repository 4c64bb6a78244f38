"""
Factory functions to provide shared services as FastAPI dependencies.
"""

from functools import lru_cache
from typing import Awaitable, Callable, Optional

from fastapi import Depends, HTTPException, Request

from oauth_provider.api.request_adapter import build_provider_request, detect_scheme
from oauth_provider.clients import SQLiteStore
from oauth_provider.core.errors import ErrorCode
from oauth_provider.core.transport import TransportGuard
from oauth_provider.models.owner import Owner, ResourceOwner
from oauth_provider.models.request import SimpleRequest
from oauth_provider.services import Provider, TokenValidation

OWNER_HEADER = "X-Resource-Owner"


@lru_cache()
def get_sqlite_store(db_path: str) -> SQLiteStore:
    """Provide one shared SQLite store per database path."""
    return SQLiteStore(db_path)


def get_provider(request: Request) -> Provider:
    """Provider instance configured at application startup."""
    return request.app.state.provider


def get_current_owner(request: Request) -> Optional[ResourceOwner]:
    """Resolve the signed-in resource owner.

    Host applications override this dependency with their own session lookup;
    the default trusts an upstream authentication proxy to set the header.
    """
    owner_id = request.headers.get(OWNER_HEADER)
    if not owner_id:
        return None
    return Owner(owner_id=owner_id)


def require_owner(
    owner: Optional[ResourceOwner] = Depends(get_current_owner),
) -> ResourceOwner:
    if owner is None:
        raise HTTPException(status_code=401, detail="Resource owner login required.")
    return owner


def require_secure_transport(
    request: Request, provider: Provider = Depends(get_provider)
) -> None:
    """Reject plain HTTP when the provider enforces TLS."""
    settings = request.app.state.settings
    scheme = detect_scheme(request, trust_forwarded=settings.trust_forwarded_proto)
    guard = TransportGuard(provider.config.enforce_ssl)
    if not guard.check(SimpleRequest(scheme=scheme)):
        raise HTTPException(
            status_code=400,
            detail={
                "error": ErrorCode.INVALID_REQUEST.value,
                "error_description": "You must make requests to this endpoint using HTTPS.",
            },
        )


def require_access_token(
    *scopes: str,
) -> Callable[..., Awaitable[TokenValidation]]:
    """Build a dependency that admits requests carrying a valid bearer token."""

    async def _dependency(
        request: Request,
        provider: Provider = Depends(get_provider),
    ) -> TokenValidation:
        settings = request.app.state.settings
        provider_request = await build_provider_request(
            request, trust_forwarded=settings.trust_forwarded_proto
        )
        validation = provider.access_token(None, scopes, provider_request)
        if not validation.is_valid:
            detail = (
                {
                    "error": validation.error.value,
                    "error_description": validation.error_description,
                }
                if validation.error
                else "Access token required."
            )
            raise HTTPException(
                status_code=validation.response_status,
                detail=detail,
                headers=validation.response_headers,
            )
        return validation

    return _dependency


__all__ = [
    "OWNER_HEADER",
    "get_current_owner",
    "get_provider",
    "get_sqlite_store",
    "require_access_token",
    "require_owner",
    "require_secure_transport",
]
