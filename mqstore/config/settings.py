from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .db_url import DEFAULT_PORTS, build_database_url, dialect_of

# Any TTL at or below zero (or None) disables expiry for that table
NEVER_EXPIRE = -1

PACKET_TABLES = ("incoming", "outgoing", "retained", "will")

_CONNECTION_KEYS = ("host", "port", "user", "password")


class DatabaseSettings(BaseModel):
    driver: str = "postgresql+asyncpg"
    host: str = "localhost"
    port: Optional[int] = None
    user: Optional[str] = "postgres"
    password: Optional[str] = ""
    name: str = "mqstore"
    url: Optional[str] = None
    echo: bool = False

    def resolved_url(self) -> str:
        if self.url:
            return self.url
        return build_database_url(
            driver=self.driver,
            user=self.user,
            password=self.password,
            host=self.host,
            port=self.port or DEFAULT_PORTS.get(dialect_of(self.driver)),
            name=self.name,
        )

    @property
    def dialect(self) -> str:
        return dialect_of(self.resolved_url())


class PoolSettings(BaseModel):
    size: int = Field(default=10, ge=1)
    max_overflow: int = Field(default=0, ge=0)
    timeout: float = Field(default=30.0, gt=0)
    recycle: int = -1


class PacketTTL(BaseModel):
    incoming: Optional[int] = None
    outgoing: Optional[int] = None
    retained: Optional[int] = None
    will: Optional[int] = None


class TTLSettings(BaseModel):
    packets: PacketTTL = Field(default_factory=PacketTTL)
    subscriptions: Optional[int] = None
    check_interval_seconds: float = Field(default=3600.0, gt=0)

    @field_validator("packets", mode="before")
    @classmethod
    def _expand_shorthand(cls, value: Any) -> Any:
        """A single number applies the same TTL to every packet table."""
        if isinstance(value, bool):
            raise ValueError("ttl.packets must be a number or a mapping")
        if isinstance(value, (int, float)):
            return {name: int(value) for name in PACKET_TABLES}
        if isinstance(value, str):
            try:
                seconds = int(value)
            except ValueError:
                return value
            return {name: seconds for name in PACKET_TABLES}
        return value

    def enabled(self) -> Dict[str, int]:
        """Return ``{table_key: seconds}`` for every table with expiry turned on."""
        ttls: Dict[str, Optional[int]] = {
            "subscriptions": self.subscriptions,
            **{name: getattr(self.packets, name) for name in PACKET_TABLES},
        }
        return {name: int(seconds) for name, seconds in ttls.items() if seconds is not None and seconds > 0}


class LoggingSettings(BaseModel):
    # Persistence() applies level and log_sql only when this is set
    configure: bool = False
    level: str = "INFO"
    log_sql: bool = False


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="MQSTORE_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    pool: PoolSettings = Field(default_factory=PoolSettings)
    ttl: TTLSettings = Field(default_factory=TTLSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    @model_validator(mode="before")
    @classmethod
    def _lift_connection_options(cls, data: Any) -> Any:
        """Accept flat ``host``/``port``/``user``/``password``/``database`` options."""
        if not isinstance(data, dict):
            return data
        data = dict(data)
        database = data.get("database")
        if isinstance(database, str):
            database = {"name": database}
        elif isinstance(database, BaseModel):
            database = database.model_dump()
        else:
            database = dict(database or {})
        for key in _CONNECTION_KEYS:
            if key in data:
                database.setdefault(key, data.pop(key))
        data["database"] = database
        return data


def _load_yaml_overrides(path: str | Path) -> Dict[str, Any]:
    path = Path(path)
    with path.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: expected a mapping at the top level")
    section = data.get("mqstore")
    if isinstance(section, dict):
        return section
    return data


def load_settings(yaml_path: str | Path | None = None, **overrides: Any) -> Settings:
    """Build settings from environment, an optional YAML file and keyword overrides.

    Keyword overrides win over the YAML file, which wins over ``MQSTORE_*``
    environment variables.
    """
    merged: Dict[str, Any] = {}
    if yaml_path is not None:
        merged.update(_load_yaml_overrides(yaml_path))
    merged.update(overrides)
    return Settings(**merged)


__all__ = [
    "NEVER_EXPIRE",
    "PACKET_TABLES",
    "DatabaseSettings",
    "PoolSettings",
    "PacketTTL",
    "TTLSettings",
    "LoggingSettings",
    "Settings",
    "load_settings",
]
