"""Service layer exports."""

from .authorization_flow import AuthorizationFlow, AuthorizationResult
from .client_registry import ClientRegistry, RegisteredClient
from .credentials import SecretHasher, generate_token
from .grants import AuthorizationGrantor
from .provider import Provider
from .responses import ProviderResponse
from .token_exchange import TokenExchange
from .token_validator import AccessTokenValidator, TokenValidation

__all__ = [
    "AccessTokenValidator",
    "AuthorizationFlow",
    "AuthorizationGrantor",
    "AuthorizationResult",
    "ClientRegistry",
    "Provider",
    "ProviderResponse",
    "RegisteredClient",
    "SecretHasher",
    "TokenExchange",
    "TokenValidation",
    "generate_token",
]
