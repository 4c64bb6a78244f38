"""Decide which protocol flow an incoming request belongs to."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from oauth_provider.core.errors import ErrorCode, OAuth2Error
from oauth_provider.core.grant_handlers import (
    ASSERTION_GRANT,
    AUTHORIZATION_CODE_GRANT,
    PASSWORD_GRANT,
    REFRESH_TOKEN_GRANT,
    GrantHandlerRegistry,
)
from oauth_provider.models.request import ProviderRequest


class Flow(str, Enum):
    AUTHORIZATION = "authorization"
    TOKEN = "token"


@dataclass(frozen=True)
class Classification:
    flow: Flow
    grant_type: Optional[str] = None
    assertion_type: Optional[str] = None

    @property
    def is_assertion(self) -> bool:
        return self.assertion_type is not None


def classify(
    request: ProviderRequest, registry: GrantHandlerRegistry
) -> Classification:
    """Classify ``request`` or raise ``OAuth2Error``."""
    params = request.params
    response_type = params.get("response_type")
    grant_type = params.get("grant_type")

    if response_type and grant_type:
        raise OAuth2Error(
            ErrorCode.INVALID_REQUEST,
            "Requests may carry response_type or grant_type, not both.",
        )
    if response_type:
        return Classification(flow=Flow.AUTHORIZATION)
    if not grant_type:
        raise OAuth2Error(
            ErrorCode.INVALID_REQUEST,
            "Missing required parameter response_type or grant_type.",
        )

    if grant_type in (AUTHORIZATION_CODE_GRANT, REFRESH_TOKEN_GRANT):
        return Classification(flow=Flow.TOKEN, grant_type=grant_type)

    if grant_type == PASSWORD_GRANT:
        if not registry.supports_password():
            raise OAuth2Error(
                ErrorCode.UNSUPPORTED_GRANT_TYPE,
                "The password grant type is not enabled on this server.",
            )
        return Classification(flow=Flow.TOKEN, grant_type=grant_type)

    if grant_type == ASSERTION_GRANT:
        assertion_type = params.get("assertion_type")
        if not assertion_type:
            raise OAuth2Error(
                ErrorCode.INVALID_REQUEST,
                "Missing required parameter assertion_type.",
            )
    elif ":" in grant_type:
        assertion_type = grant_type
    else:
        raise OAuth2Error(
            ErrorCode.UNSUPPORTED_GRANT_TYPE,
            f"The grant type {grant_type} is not supported.",
        )

    if not registry.supports_assertion(assertion_type):
        raise OAuth2Error(
            ErrorCode.UNSUPPORTED_GRANT_TYPE,
            f"The assertion type {assertion_type} is not supported.",
        )
    return Classification(
        flow=Flow.TOKEN, grant_type=grant_type, assertion_type=assertion_type
    )


__all__ = ["Classification", "Flow", "classify"]
