"""
FastAPI application entrypoint for the OAuth 2.0 provider.
"""

from __future__ import annotations

from typing import Mapping, Optional

from fastapi import FastAPI

from oauth_provider.api.routes import router as api_router
from oauth_provider.core.config import AppSettings, ProviderConfig, get_settings
from oauth_provider.core.grant_handlers import AssertionHandler, PasswordHandler
from oauth_provider.core.logging import configure_logging
from oauth_provider.dependencies import get_sqlite_store
from oauth_provider.models.store import AuthorizationStore
from oauth_provider.services import Provider


def create_app(
    settings: Optional[AppSettings] = None,
    *,
    store: Optional[AuthorizationStore] = None,
    password_handler: Optional[PasswordHandler] = None,
    assertion_handlers: Optional[Mapping[str, AssertionHandler]] = None,
) -> FastAPI:
    """Factory for the FastAPI application."""
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    config = ProviderConfig.from_settings(
        settings.provider,
        password_handler=password_handler,
        assertion_handlers=assertion_handlers,
    )
    store = store or get_sqlite_store(settings.storage.db_path)

    app = FastAPI(
        title="OAuth 2.0 Provider",
        version="0.1.0",
        description="Authorization server issuing and validating bearer tokens.",
    )
    app.state.settings = settings
    app.state.provider = Provider(config, store)
    app.include_router(api_router)
    return app


app = create_app()

__all__ = ["app", "create_app"]
