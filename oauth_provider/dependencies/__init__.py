"""Expose dependency helpers for FastAPI routers."""

from .clients import (
    OWNER_HEADER,
    get_current_owner,
    get_provider,
    get_sqlite_store,
    require_access_token,
    require_owner,
    require_secure_transport,
)
from .config import get_app_settings

__all__ = [
    "OWNER_HEADER",
    "get_app_settings",
    "get_current_owner",
    "get_provider",
    "get_sqlite_store",
    "require_access_token",
    "require_owner",
    "require_secure_transport",
]
