"""
Registry of caller-supplied grant handlers.

The password handler and the assertion handlers authenticate credentials the
provider cannot verify by itself. They are registered once at startup; the
registry is read-only afterwards.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Callable, Mapping, Optional, Protocol

from oauth_provider.core.scopes import ScopeSet
from oauth_provider.models.owner import ResourceOwner
from oauth_provider.models.records import Authorization, Client

PASSWORD_GRANT = "password"
AUTHORIZATION_CODE_GRANT = "authorization_code"
REFRESH_TOKEN_GRANT = "refresh_token"
ASSERTION_GRANT = "assertion"


class Grantor(Protocol):
    def __call__(
        self,
        owner: Optional[ResourceOwner],
        client: Client,
        scopes: ScopeSet,
        duration: Optional[int] = None,
    ) -> Authorization: ...


@dataclass(frozen=True)
class GrantRequest:
    """Credentials and context handed to a password or assertion handler.

    A handler that accepts the credentials calls ``grant_access`` with the
    authenticated owner (or ``None`` for a client-only grant) and returns the
    resulting authorization. Returning ``None`` rejects the request.
    """

    client: Client
    scopes: ScopeSet
    grantor: Grantor = field(repr=False)
    username: Optional[str] = None
    password: Optional[str] = field(default=None, repr=False)
    assertion_type: Optional[str] = None
    assertion: Optional[str] = field(default=None, repr=False)

    def grant_access(
        self, owner: Optional[ResourceOwner], *, duration: Optional[int] = None
    ) -> Authorization:
        return self.grantor(owner, self.client, self.scopes, duration)


PasswordHandler = Callable[[GrantRequest], Optional[Authorization]]
AssertionHandler = Callable[[GrantRequest], Optional[Authorization]]


class GrantHandlerRegistry:
    """Immutable table of grant-type tokens to authentication callbacks."""

    def __init__(
        self,
        *,
        password: Optional[PasswordHandler] = None,
        assertions: Optional[Mapping[str, AssertionHandler]] = None,
    ) -> None:
        self._password = password
        self._assertions = MappingProxyType(dict(assertions or {}))

    @property
    def password_handler(self) -> Optional[PasswordHandler]:
        return self._password

    @property
    def assertion_handlers(self) -> Mapping[str, AssertionHandler]:
        return self._assertions

    def assertion_handler(self, assertion_type: str) -> Optional[AssertionHandler]:
        return self._assertions.get(assertion_type)

    def supports_password(self) -> bool:
        return self._password is not None

    def supports_assertion(self, assertion_type: Optional[str]) -> bool:
        return bool(assertion_type) and assertion_type in self._assertions


__all__ = [
    "ASSERTION_GRANT",
    "AUTHORIZATION_CODE_GRANT",
    "AssertionHandler",
    "GrantHandlerRegistry",
    "GrantRequest",
    "Grantor",
    "PASSWORD_GRANT",
    "PasswordHandler",
    "REFRESH_TOKEN_GRANT",
]
