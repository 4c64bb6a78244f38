"""
Application configuration models and helpers.

Environment-driven settings are loaded once at startup and turned into an
immutable ``ProviderConfig`` that is passed into the provider engines.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from functools import lru_cache
from typing import Annotated, Mapping, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from oauth_provider.core.grant_handlers import (
    AssertionHandler,
    GrantHandlerRegistry,
    PasswordHandler,
)

_SETTINGS_CONFIG = SettingsConfigDict(
    env_file=".env",
    env_file_encoding="utf-8",
    populate_by_name=True,
    extra="ignore",
)


class ProviderSettings(BaseSettings):
    """Protocol behaviour of the authorization server."""

    model_config = _SETTINGS_CONFIG

    realm: str = Field("OAuth Provider", validation_alias="OAUTH_REALM")
    enforce_ssl: bool = Field(True, validation_alias="OAUTH_ENFORCE_SSL")
    code_ttl_seconds: int = Field(
        600,
        validation_alias="OAUTH_CODE_TTL",
        description="Lifetime of authorization codes handed to the front channel.",
    )
    access_token_ttl_seconds: int = Field(3600, validation_alias="OAUTH_ACCESS_TOKEN_TTL")
    rotate_refresh_tokens: bool = Field(
        True,
        validation_alias="OAUTH_ROTATE_REFRESH_TOKENS",
        description="Issue a new refresh token on every refresh and invalidate the old one.",
    )
    scopes_supported: Annotated[tuple[str, ...], NoDecode] = Field(
        (),
        validation_alias="OAUTH_SCOPES_SUPPORTED",
        description="Known scopes. Empty accepts any scope string.",
    )
    allow_redirect_uri_prefix: bool = Field(
        False, validation_alias="OAUTH_ALLOW_REDIRECT_URI_PREFIX"
    )

    @field_validator("scopes_supported", mode="before")
    @classmethod
    def _split_scopes(
        cls, value: str | tuple[str, ...] | list[str]
    ) -> tuple[str, ...]:
        """Support providing scopes as a comma-separated string."""
        if isinstance(value, tuple):
            return value
        if isinstance(value, list):
            return tuple(value)
        return tuple(scope.strip() for scope in value.split(",") if scope.strip())


class StorageSettings(BaseSettings):
    """Persistence configuration."""

    model_config = _SETTINGS_CONFIG

    db_path: str = Field("data/oauth_provider.db", validation_alias="OAUTH_DB_PATH")


class AppSettings(BaseSettings):
    """Root settings object for the FastAPI application."""

    model_config = _SETTINGS_CONFIG

    environment: str = Field("development", validation_alias="APP_ENV")
    log_level: str = Field("INFO", validation_alias="APP_LOG_LEVEL")
    trust_forwarded_proto: bool = Field(
        True,
        validation_alias="APP_TRUST_FORWARDED_PROTO",
        description="Honour X-Forwarded-Proto from a TLS-terminating proxy.",
    )
    provider: ProviderSettings = Field(default_factory=ProviderSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)


@lru_cache()
def get_settings() -> AppSettings:
    """Return a cached settings object."""
    return AppSettings()


@dataclass(frozen=True)
class ProviderConfig:
    """Process-wide provider configuration, built once and never mutated."""

    realm: str = "OAuth Provider"
    enforce_ssl: bool = True
    grant_handlers: GrantHandlerRegistry = field(default_factory=GrantHandlerRegistry)
    code_ttl_seconds: int = 600
    access_token_ttl_seconds: int = 3600
    rotate_refresh_tokens: bool = True
    scopes_supported: frozenset[str] = frozenset()
    allow_redirect_uri_prefix: bool = False

    @classmethod
    def from_settings(
        cls,
        settings: ProviderSettings,
        *,
        password_handler: Optional[PasswordHandler] = None,
        assertion_handlers: Optional[Mapping[str, AssertionHandler]] = None,
    ) -> "ProviderConfig":
        return cls(
            realm=settings.realm,
            enforce_ssl=settings.enforce_ssl,
            grant_handlers=GrantHandlerRegistry(
                password=password_handler,
                assertions=assertion_handlers,
            ),
            code_ttl_seconds=settings.code_ttl_seconds,
            access_token_ttl_seconds=settings.access_token_ttl_seconds,
            rotate_refresh_tokens=settings.rotate_refresh_tokens,
            scopes_supported=frozenset(settings.scopes_supported),
            allow_redirect_uri_prefix=settings.allow_redirect_uri_prefix,
        )


__all__ = [
    "AppSettings",
    "ProviderConfig",
    "ProviderSettings",
    "StorageSettings",
    "get_settings",
]
