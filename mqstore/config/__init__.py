from .settings import (
    NEVER_EXPIRE,
    DatabaseSettings,
    LoggingSettings,
    PacketTTL,
    PoolSettings,
    Settings,
    TTLSettings,
    load_settings,
)
from .db_url import build_database_url, sanitize_url_for_log

__all__ = [
    "NEVER_EXPIRE",
    "DatabaseSettings",
    "PoolSettings",
    "PacketTTL",
    "TTLSettings",
    "LoggingSettings",
    "Settings",
    "load_settings",
    "build_database_url",
    "sanitize_url_for_log",
]
