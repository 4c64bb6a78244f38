"""Transport security policy consulted by every provider entry point."""

from __future__ import annotations

from oauth_provider.core.errors import ErrorCode, OAuth2Error
from oauth_provider.models.request import ProviderRequest

_SECURE_SCHEMES = frozenset({"https"})


def is_secure(request: ProviderRequest) -> bool:
    """Return True when the request arrived over a secure channel."""
    return (request.scheme or "").lower() in _SECURE_SCHEMES


class TransportGuard:
    """Stateless predicate combining the enforcement flag and request scheme."""

    def __init__(self, enforce_ssl: bool) -> None:
        self.enforce_ssl = enforce_ssl

    def check(self, request: ProviderRequest) -> bool:
        """True when the request may proceed."""
        return not self.enforce_ssl or is_secure(request)

    def require_secure(self, request: ProviderRequest) -> None:
        if not self.check(request):
            raise OAuth2Error(
                ErrorCode.INVALID_REQUEST,
                "You must make requests to this endpoint using HTTPS.",
            )


__all__ = ["TransportGuard", "is_secure"]
