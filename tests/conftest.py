"""Pytest configuration shared across the suite."""

try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

from pathlib import Path
from typing import Callable

import pytest

from oauth_provider.clients import SQLiteStore
from oauth_provider.core.config import ProviderConfig
from oauth_provider.core.grant_handlers import GrantHandlerRegistry
from oauth_provider.services import Provider, RegisteredClient, SecretHasher

REDIRECT_URI = "https://client.example.com/callback"


@pytest.fixture
def anyio_backend() -> str:
    """Force AnyIO-powered tests to run against asyncio backend only."""
    return "asyncio"


@pytest.fixture
def fast_hasher() -> SecretHasher:
    """Cheap scrypt parameters keep the suite fast."""
    return SecretHasher(n=2**4)


@pytest.fixture
def store(tmp_path: Path) -> SQLiteStore:
    return SQLiteStore(str(tmp_path / "oauth.db"))


@pytest.fixture
def make_provider(
    store: SQLiteStore, fast_hasher: SecretHasher
) -> Callable[..., Provider]:
    def _factory(**overrides) -> Provider:
        handlers = overrides.pop("grant_handlers", None) or GrantHandlerRegistry()
        config = ProviderConfig(realm="Test Realm", grant_handlers=handlers, **overrides)
        return Provider(config, store, hasher=fast_hasher)

    return _factory


@pytest.fixture
def provider(make_provider) -> Provider:
    return make_provider()


@pytest.fixture
def registered(provider: Provider) -> RegisteredClient:
    return provider.clients.register(name="Photo Printer", redirect_uri=REDIRECT_URI)
