"""
OAuth 2.0 error taxonomy.

Every protocol failure is expressed as an ``OAuth2Error`` inside the engines
and converted into a response descriptor before it reaches the caller.
"""

from __future__ import annotations

from enum import Enum
from http import HTTPStatus


class ErrorCode(str, Enum):
    """OAuth 2.0 error codes (RFC 6749 section 5.2, RFC 6750 section 3.1)."""

    INVALID_REQUEST = "invalid_request"
    INVALID_CLIENT = "invalid_client"
    INVALID_GRANT = "invalid_grant"
    UNAUTHORIZED_CLIENT = "unauthorized_client"
    UNSUPPORTED_GRANT_TYPE = "unsupported_grant_type"
    UNSUPPORTED_RESPONSE_TYPE = "unsupported_response_type"
    INVALID_SCOPE = "invalid_scope"
    ACCESS_DENIED = "access_denied"
    INSUFFICIENT_SCOPE = "insufficient_scope"
    INVALID_TOKEN = "invalid_token"

    @property
    def status(self) -> HTTPStatus:
        return _STATUS_BY_CODE[self]


_STATUS_BY_CODE: dict[ErrorCode, HTTPStatus] = {
    ErrorCode.INVALID_REQUEST: HTTPStatus.BAD_REQUEST,
    ErrorCode.INVALID_CLIENT: HTTPStatus.UNAUTHORIZED,
    ErrorCode.INVALID_GRANT: HTTPStatus.BAD_REQUEST,
    ErrorCode.UNAUTHORIZED_CLIENT: HTTPStatus.BAD_REQUEST,
    ErrorCode.UNSUPPORTED_GRANT_TYPE: HTTPStatus.BAD_REQUEST,
    ErrorCode.UNSUPPORTED_RESPONSE_TYPE: HTTPStatus.BAD_REQUEST,
    ErrorCode.INVALID_SCOPE: HTTPStatus.BAD_REQUEST,
    # Only ever delivered through a redirect; the status is nominal.
    ErrorCode.ACCESS_DENIED: HTTPStatus.FOUND,
    ErrorCode.INSUFFICIENT_SCOPE: HTTPStatus.FORBIDDEN,
    ErrorCode.INVALID_TOKEN: HTTPStatus.UNAUTHORIZED,
}


class OAuth2Error(Exception):
    """Protocol-level failure carrying an error code and description."""

    def __init__(self, error: ErrorCode, description: str = "") -> None:
        self.error = error
        self.description = description
        super().__init__(f"{error.value}: {description}")

    @property
    def status(self) -> HTTPStatus:
        return self.error.status

    def to_dict(self) -> dict[str, str]:
        return {"error": self.error.value, "error_description": self.description}


__all__ = ["ErrorCode", "OAuth2Error"]
