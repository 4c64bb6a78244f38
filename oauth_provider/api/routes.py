"""
FastAPI routes exposing the authorization server.
"""

from __future__ import annotations

import logging
from http import HTTPStatus
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse, RedirectResponse

from oauth_provider.api.request_adapter import build_provider_request
from oauth_provider.core.config import AppSettings
from oauth_provider.dependencies import (
    get_app_settings,
    get_current_owner,
    get_provider,
    require_access_token,
    require_owner,
    require_secure_transport,
)
from oauth_provider.models.owner import ResourceOwner
from oauth_provider.schemas import (
    ConsentClient,
    ConsentDecision,
    ConsentPrompt,
    ErrorResponse,
    RevocationRequest,
    TokenResponse,
)
from oauth_provider.services import Provider, ProviderResponse, TokenValidation

router = APIRouter()
logger = logging.getLogger(__name__)

_ERROR_RESPONSES = {
    HTTPStatus.BAD_REQUEST.value: {"model": ErrorResponse},
    HTTPStatus.UNAUTHORIZED.value: {"model": ErrorResponse},
}


def to_http_response(descriptor: ProviderResponse) -> Response:
    """Render a provider response descriptor with FastAPI response classes."""
    if descriptor.is_redirect:
        headers = {
            key: value
            for key, value in descriptor.headers.items()
            if key.lower() != "location"
        }
        return RedirectResponse(
            url=descriptor.location,
            status_code=descriptor.status,
            headers=headers,
        )
    headers = {
        key: value
        for key, value in descriptor.headers.items()
        if key.lower() != "content-type"
    }
    if descriptor.body is None:
        return Response(status_code=descriptor.status, headers=headers)
    return JSONResponse(
        content=descriptor.body, status_code=descriptor.status, headers=headers
    )


@router.get("/api/health", status_code=HTTPStatus.OK)
async def healthcheck() -> dict:
    """Simple health endpoint for monitoring."""
    return {"status": "ok"}


@router.api_route(
    "/oauth/authorize",
    methods=["GET", "POST"],
    response_model=None,
    responses={HTTPStatus.OK.value: {"model": ConsentPrompt}, **_ERROR_RESPONSES},
)
async def authorize(
    request: Request,
    provider: Annotated[Provider, Depends(get_provider)],
    settings: Annotated[AppSettings, Depends(get_app_settings)],
    owner: Annotated[Optional[ResourceOwner], Depends(get_current_owner)],
) -> Response:
    """
    Front-channel entry point.

    Redirects straight back to the client when the owner already approved
    every requested scope, otherwise returns what a consent page needs.
    """
    provider_request = await build_provider_request(
        request, trust_forwarded=settings.trust_forwarded_proto
    )
    result = provider.authorize(owner, provider_request)
    if not result.needs_consent:
        return to_http_response(result.response)

    prompt = ConsentPrompt(
        client=ConsentClient(
            client_id=result.client.client_id,
            name=result.client.name,
            redirect_uri=result.redirect_uri or result.client.redirect_uri,
        ),
        scopes=result.scopes.to_list(),
        unauthorized_scopes=result.unauthorized_scopes.to_list(),
        params=result.params,
    )
    return JSONResponse(
        content=prompt.model_dump(),
        status_code=HTTPStatus.OK,
        headers={"Cache-Control": "no-store"},
    )


@router.post(
    "/oauth/authorize/decision",
    response_model=None,
    dependencies=[Depends(require_secure_transport)],
)
async def decide(
    decision: ConsentDecision,
    provider: Annotated[Provider, Depends(get_provider)],
    owner: Annotated[ResourceOwner, Depends(require_owner)],
) -> Response:
    """Apply the owner's consent decision and redirect back to the client."""
    if decision.allow:
        result = provider.grant_access(
            owner, decision.client_id, decision.params, duration=decision.duration
        )
    else:
        result = provider.deny_access(owner, decision.client_id, decision.params)
    return to_http_response(result.response)


@router.post(
    "/oauth/token",
    response_model=None,
    responses={HTTPStatus.OK.value: {"model": TokenResponse}, **_ERROR_RESPONSES},
)
async def token(
    request: Request,
    provider: Annotated[Provider, Depends(get_provider)],
    settings: Annotated[AppSettings, Depends(get_app_settings)],
) -> Response:
    """Back-channel token endpoint for every supported grant type."""
    provider_request = await build_provider_request(
        request, trust_forwarded=settings.trust_forwarded_proto
    )
    return to_http_response(provider.token(provider_request))


@router.post(
    "/oauth/revoke",
    status_code=HTTPStatus.OK,
    dependencies=[Depends(require_secure_transport)],
)
async def revoke(
    payload: RevocationRequest,
    provider: Annotated[Provider, Depends(get_provider)],
    owner: Annotated[ResourceOwner, Depends(require_owner)],
) -> dict:
    """Withdraw every grant the signed-in owner gave to a client."""
    revoked = provider.revoke_access(owner, payload.client_id)
    if not revoked:
        logger.info("No live authorization to revoke for client %s", payload.client_id)
    return {"client_id": payload.client_id, "revoked": revoked}


@router.get("/api/token-info", status_code=HTTPStatus.OK)
async def token_info(
    validation: Annotated[TokenValidation, Depends(require_access_token())],
) -> dict:
    """Describe the bearer token presented with the request."""
    authorization = validation.authorization
    return {
        "client_id": authorization.client_id,
        "owner_id": authorization.owner_id,
        "scope": str(validation.scopes),
        "expires_in": authorization.expires_in(),
    }


__all__ = ["router", "to_http_response"]
