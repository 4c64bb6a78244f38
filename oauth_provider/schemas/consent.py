"""Schemas exchanged with the host application's consent screen."""

from __future__ import annotations

from pydantic import BaseModel, Field


class ConsentClient(BaseModel):
    client_id: str
    name: str
    redirect_uri: str


class ConsentPrompt(BaseModel):
    """Everything a consent page needs to ask the owner for approval."""

    consent_required: bool = True
    client: ConsentClient
    scopes: list[str] = Field(default_factory=list)
    unauthorized_scopes: list[str] = Field(
        default_factory=list,
        description="Requested scopes the owner has not approved yet.",
    )
    params: dict[str, str] = Field(
        default_factory=dict,
        description="Original request parameters to post back with the decision.",
    )


class ConsentDecision(BaseModel):
    """Owner's answer to a consent prompt."""

    allow: bool
    client_id: str
    params: dict[str, str] = Field(default_factory=dict)
    duration: int | None = Field(
        None, gt=0, description="Optional access token lifetime in seconds."
    )


class RevocationRequest(BaseModel):
    """Owner request to withdraw a client's access."""

    client_id: str = Field(..., min_length=1)


__all__ = ["ConsentClient", "ConsentDecision", "ConsentPrompt", "RevocationRequest"]
