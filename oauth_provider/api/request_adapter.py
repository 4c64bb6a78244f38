"""Translate Starlette requests into the provider's request interface."""

from __future__ import annotations

from fastapi import Request

from oauth_provider.models.request import SimpleRequest

_FORM_CONTENT_TYPES = ("application/x-www-form-urlencoded", "multipart/form-data")


def detect_scheme(request: Request, *, trust_forwarded: bool = True) -> str:
    """Scheme the client used, honouring a TLS-terminating proxy when trusted."""
    if trust_forwarded:
        forwarded = request.headers.get("x-forwarded-proto")
        if forwarded:
            return forwarded.split(",")[0].strip().lower()
    return request.url.scheme


async def build_provider_request(
    request: Request, *, trust_forwarded: bool = True
) -> SimpleRequest:
    """Collect query and form parameters into an immutable request snapshot."""
    params: dict[str, str] = dict(request.query_params)
    content_type = request.headers.get("content-type", "").lower()
    if request.method.upper() == "POST" and content_type.startswith(_FORM_CONTENT_TYPES):
        form = await request.form()
        for key, value in form.items():
            if isinstance(value, str):
                params[key] = value
    return SimpleRequest(
        method=request.method.upper(),
        params=params,
        url=str(request.url),
        scheme=detect_scheme(request, trust_forwarded=trust_forwarded),
        headers=dict(request.headers),
    )


__all__ = ["build_provider_request", "detect_scheme"]
