"""Framework-neutral response descriptors produced by the engines."""

from __future__ import annotations

from dataclasses import dataclass, field
from http import HTTPStatus
from typing import Any, Mapping, Optional
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from oauth_provider.core.errors import ErrorCode, OAuth2Error

NO_STORE_HEADERS: Mapping[str, str] = {
    "Cache-Control": "no-store",
    "Pragma": "no-cache",
}


@dataclass(frozen=True)
class ProviderResponse:
    """Status, headers and either a JSON body or a redirect location."""

    status: int
    headers: dict[str, str] = field(default_factory=dict)
    body: Optional[dict[str, Any]] = None
    location: Optional[str] = None

    @property
    def is_redirect(self) -> bool:
        return self.location is not None


def json_response(
    body: dict[str, Any],
    status: int = HTTPStatus.OK,
    headers: Optional[Mapping[str, str]] = None,
) -> ProviderResponse:
    merged = {**NO_STORE_HEADERS, "Content-Type": "application/json"}
    merged.update(headers or {})
    return ProviderResponse(status=int(status), headers=merged, body=body)


def error_response(
    error: OAuth2Error, headers: Optional[Mapping[str, str]] = None
) -> ProviderResponse:
    return json_response(error.to_dict(), status=error.status, headers=headers)


def redirect_response(location: str) -> ProviderResponse:
    return ProviderResponse(
        status=int(HTTPStatus.FOUND),
        headers={**NO_STORE_HEADERS, "Location": location},
        location=location,
    )


def append_to_uri(uri: str, params: Mapping[str, Any], *, fragment: bool = False) -> str:
    """Add ``params`` to the query or fragment of ``uri``, keeping existing ones."""
    parts = urlsplit(uri)
    values = {key: str(value) for key, value in params.items() if value is not None}
    if fragment:
        existing = parse_qsl(parts.fragment, keep_blank_values=True)
        new_fragment = urlencode(existing + list(values.items()))
        return urlunsplit(parts._replace(fragment=new_fragment))
    existing = parse_qsl(parts.query, keep_blank_values=True)
    new_query = urlencode(existing + list(values.items()))
    return urlunsplit(parts._replace(query=new_query))


def www_authenticate(
    realm: str,
    error: Optional[ErrorCode] = None,
    description: str = "",
    scope: str = "",
) -> str:
    """Build a Bearer challenge (RFC 6750 section 3)."""
    attributes = [f'realm="{realm}"']
    if error is not None:
        attributes.append(f'error="{error.value}"')
        if description:
            attributes.append(f'error_description="{description}"')
    if scope:
        attributes.append(f'scope="{scope}"')
    return "Bearer " + ", ".join(attributes)


__all__ = [
    "NO_STORE_HEADERS",
    "ProviderResponse",
    "append_to_uri",
    "error_response",
    "json_response",
    "redirect_response",
    "www_authenticate",
]
