"""Schemas for token endpoint payloads."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field


class TokenResponse(BaseModel):
    """Successful token endpoint response (RFC 6749 section 5.1)."""

    access_token: str
    token_type: str = Field("bearer", description="Always 'bearer'.")
    expires_in: int = Field(..., description="Seconds until the access token expires.")
    refresh_token: Optional[str] = None
    scope: str = Field("", description="Space-separated granted scopes.")


class ErrorResponse(BaseModel):
    """OAuth 2.0 error object (RFC 6749 section 5.2)."""

    error: str
    error_description: str = ""


__all__ = ["ErrorResponse", "TokenResponse"]
