try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

import base64
from concurrent.futures import ThreadPoolExecutor
from datetime import timedelta

import pytest

from oauth_provider.core.grant_handlers import GrantHandlerRegistry
from oauth_provider.models.owner import Owner
from oauth_provider.models.records import utcnow
from oauth_provider.models.request import SimpleRequest

REDIRECT_URI = "https://client.example.com/callback"
JWT_BEARER = "urn:ietf:params:oauth:grant-type:jwt-bearer"
ALICE = Owner("alice")


def _token(provider, *, headers=None, method="POST", scheme="https", **params: str):
    return provider.token(
        SimpleRequest(method=method, params=params, scheme=scheme, headers=headers or {})
    )


def _credentials(registered) -> dict[str, str]:
    return {
        "client_id": registered.client.client_id,
        "client_secret": registered.client_secret,
    }


def _basic(client_id: str, secret: str) -> dict[str, str]:
    raw = base64.b64encode(f"{client_id}:{secret}".encode("utf-8")).decode("ascii")
    return {"Authorization": f"Basic {raw}"}


def _issue_code(provider, registered, scope: str = "read") -> str:
    result = provider.grant_access(
        ALICE,
        registered.client.client_id,
        {"response_type": "code", "scope": scope},
    )
    return result.authorization.code


def test_code_exchange_issues_tokens(provider, registered) -> None:
    code = _issue_code(provider, registered, scope="read write")

    response = _token(
        provider,
        grant_type="authorization_code",
        code=code,
        redirect_uri=REDIRECT_URI,
        **_credentials(registered),
    )

    assert response.status == 200
    assert response.body["token_type"] == "bearer"
    assert response.body["scope"] == "read write"
    assert 3590 <= response.body["expires_in"] <= 3600
    assert response.body["access_token"]
    assert response.body["refresh_token"]
    assert response.headers["Cache-Control"] == "no-store"
    assert response.headers["Pragma"] == "no-cache"


def test_code_is_single_use(provider, registered) -> None:
    code = _issue_code(provider, registered)
    params = dict(grant_type="authorization_code", code=code, **_credentials(registered))

    assert _token(provider, **params).status == 200
    replay = _token(provider, **params)

    assert replay.status == 400
    assert replay.body["error"] == "invalid_grant"


def test_concurrent_code_exchange_has_one_winner(provider, registered) -> None:
    code = _issue_code(provider, registered)
    params = dict(grant_type="authorization_code", code=code, **_credentials(registered))

    with ThreadPoolExecutor(max_workers=6) as pool:
        responses = list(pool.map(lambda _: _token(provider, **params), range(6)))

    statuses = sorted(response.status for response in responses)
    assert statuses == [200] + [400] * 5


def test_code_bound_to_issuing_client(provider, registered) -> None:
    other = provider.clients.register(name="Other", redirect_uri=REDIRECT_URI)
    code = _issue_code(provider, registered)

    response = _token(
        provider,
        grant_type="authorization_code",
        code=code,
        client_id=other.client.client_id,
        client_secret=other.client_secret,
    )

    assert response.body["error"] == "invalid_grant"


def test_expired_code_is_rejected(provider, registered) -> None:
    code = _issue_code(provider, registered)
    authorization = provider.store.find_by_code(code)
    provider.store.update_authorization(
        authorization.id, code_expires_at=utcnow() - timedelta(seconds=1)
    )

    response = _token(
        provider, grant_type="authorization_code", code=code, **_credentials(registered)
    )

    assert response.body["error"] == "invalid_grant"


def test_code_exchange_checks_redirect_uri(provider, registered) -> None:
    code = _issue_code(provider, registered)

    response = _token(
        provider,
        grant_type="authorization_code",
        code=code,
        redirect_uri="https://client.example.com/other",
        **_credentials(registered),
    )

    assert response.body["error"] == "invalid_grant"


def test_wrong_secret_is_invalid_client(provider, registered) -> None:
    code = _issue_code(provider, registered)

    response = _token(
        provider,
        grant_type="authorization_code",
        code=code,
        client_id=registered.client.client_id,
        client_secret="wrong",
    )

    assert response.status == 401
    assert response.body["error"] == "invalid_client"
    assert "WWW-Authenticate" not in response.headers


def test_basic_authentication(provider, registered) -> None:
    code = _issue_code(provider, registered)

    response = _token(
        provider,
        headers=_basic(registered.client.client_id, registered.client_secret),
        grant_type="authorization_code",
        code=code,
    )

    assert response.status == 200


def test_failed_basic_authentication_challenges(provider, registered) -> None:
    response = _token(
        provider,
        headers=_basic(registered.client.client_id, "wrong"),
        grant_type="authorization_code",
        code="whatever",
    )

    assert response.status == 401
    assert response.headers["WWW-Authenticate"] == 'Basic realm="Test Realm"'


def test_two_authentication_methods_are_rejected(provider, registered) -> None:
    response = _token(
        provider,
        headers=_basic(registered.client.client_id, registered.client_secret),
        grant_type="authorization_code",
        code="whatever",
        client_secret=registered.client_secret,
    )

    assert response.body["error"] == "invalid_request"


def test_missing_client_credentials(provider) -> None:
    response = _token(provider, grant_type="authorization_code", code="abc")

    assert response.status == 401
    assert response.body["error"] == "invalid_client"


@pytest.mark.parametrize(
    "method, scheme", [("GET", "https"), ("POST", "http")]
)
def test_token_endpoint_requires_secure_post(provider, registered, method, scheme) -> None:
    response = _token(
        provider,
        method=method,
        scheme=scheme,
        grant_type="authorization_code",
        code="abc",
        **_credentials(registered),
    )

    assert response.status == 400
    assert response.body["error"] == "invalid_request"


def test_response_type_on_token_endpoint(provider, registered) -> None:
    response = _token(provider, response_type="code", **_credentials(registered))

    assert response.body["error"] == "invalid_request"


def _password_handler(grant_request):
    if grant_request.username == "alice" and grant_request.password == "wonderland":
        return grant_request.grant_access(Owner("alice"))
    return None


def test_password_grant(make_provider, registered) -> None:
    provider = make_provider(
        grant_handlers=GrantHandlerRegistry(password=_password_handler)
    )

    response = _token(
        provider,
        grant_type="password",
        username="alice",
        password="wonderland",
        scope="read",
        **_credentials(registered),
    )

    assert response.status == 200
    assert response.body["scope"] == "read"
    assert response.body["refresh_token"]
    validation = provider.access_token(
        Owner("alice"),
        ["read"],
        SimpleRequest(params={"access_token": response.body["access_token"]}),
    )
    assert validation.is_valid


def test_password_grant_rejected_by_handler(make_provider, registered) -> None:
    provider = make_provider(
        grant_handlers=GrantHandlerRegistry(password=_password_handler)
    )

    response = _token(
        provider,
        grant_type="password",
        username="alice",
        password="guess",
        **_credentials(registered),
    )

    assert response.status == 400
    assert response.body["error"] == "invalid_grant"


def test_password_grant_without_handler(provider, registered) -> None:
    response = _token(
        provider,
        grant_type="password",
        username="alice",
        password="wonderland",
        **_credentials(registered),
    )

    assert response.body["error"] == "unsupported_grant_type"


def test_client_grant_type_allow_list(make_provider) -> None:
    provider = make_provider(
        grant_handlers=GrantHandlerRegistry(password=_password_handler)
    )
    restricted = provider.clients.register(
        name="Code only", redirect_uri=REDIRECT_URI, grant_types=["authorization_code"]
    )

    response = _token(
        provider,
        grant_type="password",
        username="alice",
        password="wonderland",
        client_id=restricted.client.client_id,
        client_secret=restricted.client_secret,
    )

    assert response.body["error"] == "unauthorized_client"


def test_assertion_grant(make_provider, registered) -> None:
    seen = []

    def handler(grant_request):
        seen.append((grant_request.assertion_type, grant_request.assertion))
        if grant_request.assertion == "signed-by-idp":
            return grant_request.grant_access(None)
        return None

    provider = make_provider(
        grant_handlers=GrantHandlerRegistry(assertions={JWT_BEARER: handler})
    )

    ok = _token(
        provider, grant_type=JWT_BEARER, assertion="signed-by-idp", **_credentials(registered)
    )
    rejected = _token(
        provider, grant_type=JWT_BEARER, assertion="forged", **_credentials(registered)
    )

    assert ok.status == 200
    assert rejected.body["error"] == "invalid_grant"
    assert seen == [(JWT_BEARER, "signed-by-idp"), (JWT_BEARER, "forged")]


def _tokens_for(provider, registered, scope: str = "read write") -> dict:
    code = _issue_code(provider, registered, scope=scope)
    response = _token(
        provider, grant_type="authorization_code", code=code, **_credentials(registered)
    )
    return response.body


def test_refresh_rotates_refresh_token(provider, registered) -> None:
    first = _tokens_for(provider, registered)

    refreshed = _token(
        provider,
        grant_type="refresh_token",
        refresh_token=first["refresh_token"],
        **_credentials(registered),
    )

    assert refreshed.status == 200
    assert refreshed.body["access_token"] != first["access_token"]
    assert refreshed.body["refresh_token"] != first["refresh_token"]
    assert refreshed.body["scope"] == "read write"

    replay = _token(
        provider,
        grant_type="refresh_token",
        refresh_token=first["refresh_token"],
        **_credentials(registered),
    )
    assert replay.body["error"] == "invalid_grant"


def test_refresh_without_rotation_keeps_token(make_provider, registered) -> None:
    provider = make_provider(rotate_refresh_tokens=False)
    first = _tokens_for(provider, registered)

    refreshed = _token(
        provider,
        grant_type="refresh_token",
        refresh_token=first["refresh_token"],
        **_credentials(registered),
    )

    assert refreshed.body["refresh_token"] == first["refresh_token"]


def test_refresh_scope_must_be_subset(provider, registered) -> None:
    first = _tokens_for(provider, registered, scope="read")

    narrower = _token(
        provider,
        grant_type="refresh_token",
        refresh_token=first["refresh_token"],
        scope="read",
        **_credentials(registered),
    )
    assert narrower.status == 200
    assert narrower.body["scope"] == "read"

    wider = _token(
        provider,
        grant_type="refresh_token",
        refresh_token=narrower.body["refresh_token"],
        scope="read admin",
        **_credentials(registered),
    )
    assert wider.body["error"] == "invalid_scope"


def test_refresh_after_revocation_fails(provider, registered) -> None:
    first = _tokens_for(provider, registered)
    assert provider.revoke_access(ALICE, registered.client.client_id)

    response = _token(
        provider,
        grant_type="refresh_token",
        refresh_token=first["refresh_token"],
        **_credentials(registered),
    )

    assert response.body["error"] == "invalid_grant"


def test_non_ascii_basic_credentials_are_invalid_request(provider) -> None:
    response = _token(
        provider,
        headers={"Authorization": "Basic \xe9t\xe9"},
        grant_type="authorization_code",
        code="x",
    )

    assert response.status == 400
    assert response.body["error"] == "invalid_request"


def test_non_utf8_basic_credentials_are_invalid_request(provider) -> None:
    raw = base64.b64encode(b"\xff\xfe:secret").decode("ascii")

    response = _token(
        provider,
        headers={"Authorization": f"Basic {raw}"},
        grant_type="authorization_code",
        code="x",
    )

    assert response.body["error"] == "invalid_request"


def test_concurrent_refresh_has_one_winner(provider, registered) -> None:
    first = _tokens_for(provider, registered)
    params = dict(
        grant_type="refresh_token",
        refresh_token=first["refresh_token"],
        **_credentials(registered),
    )

    with ThreadPoolExecutor(max_workers=6) as pool:
        responses = list(pool.map(lambda _: _token(provider, **params), range(6)))

    statuses = sorted(response.status for response in responses)
    assert statuses == [200] + [400] * 5
    losers = [response for response in responses if response.status == 400]
    assert all(response.body["error"] == "invalid_grant" for response in losers)
