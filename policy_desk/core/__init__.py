"""Core application utilities."""

from .config import Settings, get_settings
from .database import (
    async_session_factory,
    build_engine,
    close_db,
    engine,
    get_session,
    init_db,
)
from .dependencies import (
    ActiveAccountDep,
    AdminDep,
    CurrentActor,
    CurrentActorDep,
    SessionDep,
    get_current_user,
    require_active_account,
    require_admin,
    require_page_access,
)
from .security import (
    create_access_token,
    create_refresh_token,
    decode_token,
    hash_password,
    verify_password,
)

__all__ = [
    # Config
    "Settings",
    "get_settings",
    # Database
    "engine",
    "build_engine",
    "async_session_factory",
    "get_session",
    "init_db",
    "close_db",
    # Dependencies
    "CurrentActor",
    "get_current_user",
    "require_active_account",
    "require_admin",
    "require_page_access",
    "CurrentActorDep",
    "ActiveAccountDep",
    "AdminDep",
    "SessionDep",
    # Security
    "hash_password",
    "verify_password",
    "create_access_token",
    "create_refresh_token",
    "decode_token",
]
