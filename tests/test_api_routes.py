try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

from pathlib import Path
from urllib.parse import parse_qs, urlsplit

import httpx
import pytest

from oauth_provider.clients import SQLiteStore
from oauth_provider.core.config import AppSettings
from oauth_provider.main import create_app
from oauth_provider.models.owner import Owner

REDIRECT_URI = "https://client.example.com/callback"
OWNER_HEADERS = {"X-Resource-Owner": "alice"}


def _password_handler(grant_request):
    if grant_request.password == "wonderland":
        return grant_request.grant_access(Owner(grant_request.username))
    return None


@pytest.fixture()
def app(tmp_path: Path):
    return create_app(
        AppSettings(),
        store=SQLiteStore(str(tmp_path / "api.db")),
        password_handler=_password_handler,
    )


@pytest.fixture()
def registered(app):
    return app.state.provider.clients.register(
        name="Photo Printer", redirect_uri=REDIRECT_URI
    )


def _client(app, base_url: str = "https://testserver") -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url=base_url)


@pytest.mark.anyio
async def test_health(app):
    async with _client(app) as client:
        response = await client.get("/api/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


@pytest.mark.anyio
async def test_authorize_returns_consent_prompt(app, registered):
    async with _client(app) as client:
        response = await client.get(
            "/oauth/authorize",
            params={
                "client_id": registered.client.client_id,
                "response_type": "code",
                "scope": "photos",
                "state": "xyz",
            },
            headers=OWNER_HEADERS,
        )

    assert response.status_code == 200
    data = response.json()
    assert data["consent_required"] is True
    assert data["client"]["name"] == "Photo Printer"
    assert data["unauthorized_scopes"] == ["photos"]
    assert data["params"]["state"] == "xyz"


@pytest.mark.anyio
async def test_authorize_rejects_mismatched_redirect_without_redirecting(app, registered):
    async with _client(app) as client:
        response = await client.get(
            "/oauth/authorize",
            params={
                "client_id": registered.client.client_id,
                "response_type": "code",
                "redirect_uri": "https://attacker.example.com/",
            },
        )

    assert response.status_code == 400
    assert "location" not in response.headers
    assert response.json()["error"] == "invalid_request"


@pytest.mark.anyio
async def test_full_code_flow_over_http_api(app, registered):
    client_id = registered.client.client_id
    async with _client(app) as client:
        decision = await client.post(
            "/oauth/authorize/decision",
            json={
                "allow": True,
                "client_id": client_id,
                "params": {"response_type": "code", "scope": "photos", "state": "s"},
            },
            headers=OWNER_HEADERS,
        )
        assert decision.status_code == 302
        location = decision.headers["location"]
        assert location.startswith(REDIRECT_URI)
        query = parse_qs(urlsplit(location).query)
        assert query["state"] == ["s"]

        token = await client.post(
            "/oauth/token",
            data={
                "grant_type": "authorization_code",
                "code": query["code"][0],
                "redirect_uri": REDIRECT_URI,
            },
            auth=(client_id, registered.client_secret),
        )
        assert token.status_code == 200
        assert token.headers["cache-control"] == "no-store"
        assert token.headers["pragma"] == "no-cache"
        body = token.json()
        assert body["token_type"] == "bearer"

        info = await client.get(
            "/api/token-info",
            headers={"Authorization": f"Bearer {body['access_token']}"},
        )

    assert info.status_code == 200
    assert info.json()["owner_id"] == "alice"
    assert info.json()["client_id"] == client_id
    assert info.json()["scope"] == "photos"


@pytest.mark.anyio
async def test_decision_requires_owner(app, registered):
    async with _client(app) as client:
        response = await client.post(
            "/oauth/authorize/decision",
            json={"allow": True, "client_id": registered.client.client_id},
        )

    assert response.status_code == 401


@pytest.mark.anyio
async def test_denied_decision_redirects_with_error(app, registered):
    async with _client(app) as client:
        response = await client.post(
            "/oauth/authorize/decision",
            json={
                "allow": False,
                "client_id": registered.client.client_id,
                "params": {"response_type": "code", "state": "s"},
            },
            headers=OWNER_HEADERS,
        )

    assert response.status_code == 302
    query = parse_qs(urlsplit(response.headers["location"]).query)
    assert query["error"] == ["access_denied"]


@pytest.mark.anyio
async def test_password_grant_and_basic_challenge(app, registered):
    async with _client(app) as client:
        ok = await client.post(
            "/oauth/token",
            data={
                "grant_type": "password",
                "username": "alice",
                "password": "wonderland",
                "client_id": registered.client.client_id,
                "client_secret": registered.client_secret,
            },
        )
        bad = await client.post(
            "/oauth/token",
            data={"grant_type": "password", "username": "alice", "password": "x"},
            auth=(registered.client.client_id, "wrong-secret"),
        )

    assert ok.status_code == 200
    assert ok.json()["refresh_token"]
    assert bad.status_code == 401
    assert bad.json()["error"] == "invalid_client"
    assert bad.headers["www-authenticate"] == 'Basic realm="Test Realm"'


@pytest.mark.anyio
async def test_token_endpoint_rejects_plain_http(app, registered):
    async with _client(app, base_url="http://testserver") as client:
        response = await client.post(
            "/oauth/token",
            data={
                "grant_type": "password",
                "username": "alice",
                "password": "wonderland",
                "client_id": registered.client.client_id,
                "client_secret": registered.client_secret,
            },
        )
        proxied = await client.post(
            "/oauth/token",
            data={
                "grant_type": "password",
                "username": "alice",
                "password": "wonderland",
                "client_id": registered.client.client_id,
                "client_secret": registered.client_secret,
            },
            headers={"X-Forwarded-Proto": "https"},
        )

    assert response.status_code == 400
    assert response.json()["error"] == "invalid_request"
    assert proxied.status_code == 200


@pytest.mark.anyio
async def test_token_info_requires_token(app):
    async with _client(app) as client:
        response = await client.get("/api/token-info")

    assert response.status_code == 401
    assert response.headers["www-authenticate"] == 'Bearer realm="Test Realm"'


@pytest.mark.anyio
async def test_revoke_invalidates_tokens(app, registered):
    async with _client(app) as client:
        token = await client.post(
            "/oauth/token",
            data={
                "grant_type": "password",
                "username": "alice",
                "password": "wonderland",
                "client_id": registered.client.client_id,
                "client_secret": registered.client_secret,
            },
        )
        access_token = token.json()["access_token"]

        revoked = await client.post(
            "/oauth/revoke",
            json={"client_id": registered.client.client_id},
            headers=OWNER_HEADERS,
        )
        info = await client.get(
            "/api/token-info", headers={"Authorization": f"Bearer {access_token}"}
        )

    assert revoked.status_code == 200
    assert revoked.json() == {"client_id": registered.client.client_id, "revoked": True}
    assert info.status_code == 401
    assert 'error="invalid_token"' in info.headers["www-authenticate"]


@pytest.mark.asyncio
async def test_owner_dependency_can_be_overridden(app, registered):
    from oauth_provider import dependencies

    app.dependency_overrides[dependencies.get_current_owner] = lambda: Owner("bob")
    try:
        async with _client(app) as client:
            decision = await client.post(
                "/oauth/authorize/decision",
                json={
                    "allow": True,
                    "client_id": registered.client.client_id,
                    "params": {"response_type": "token", "scope": "photos"},
                },
            )
    finally:
        app.dependency_overrides.clear()

    assert decision.status_code == 302
    fragment = parse_qs(urlsplit(decision.headers["location"]).fragment)
    authorization = app.state.provider.store.find_by_access_token(
        fragment["access_token"][0]
    )
    assert authorization.owner_id == "bob"


@pytest.mark.anyio
async def test_decision_over_plain_http_is_rejected(app, registered):
    async with _client(app, base_url="http://testserver") as client:
        response = await client.post(
            "/oauth/authorize/decision",
            json={"allow": True, "client_id": registered.client.client_id},
            headers=OWNER_HEADERS,
        )

    assert response.status_code == 400
    assert response.json()["detail"]["error"] == "invalid_request"
    assert app.state.provider.store.find_live_authorization(
        owner_id="alice", client_id=registered.client.client_id
    ) is None
