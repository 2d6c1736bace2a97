from __future__ import annotations

from urllib.parse import quote_plus, urlsplit, urlunsplit

DEFAULT_PORTS = {
    "postgresql": 5432,
    "mysql": 3306,
}


def build_database_url(
    *,
    driver: str,
    user: str | None,
    password: str | None,
    host: str,
    port: int | str | None,
    name: str,
) -> str:
    if driver.startswith("sqlite"):
        # name is the database file path; ":memory:" is passed through
        return f"{driver}:///{name}"
    auth = ""
    if user:
        auth = quote_plus(user)
        if password:
            auth = f"{auth}:{quote_plus(password)}"
        auth = f"{auth}@"
    netloc = f"{host}:{port}" if port else host
    return f"{driver}://{auth}{netloc}/{name}"


def dialect_of(url: str) -> str:
    """Return the dialect part of a SQLAlchemy URL ("postgresql+asyncpg" -> "postgresql")."""
    scheme = url.split(":", 1)[0]
    return scheme.split("+", 1)[0].lower()


def sanitize_url_for_log(url: str | None) -> str | None:
    """Sanitize URL for logging by redacting the password."""
    if not url:
        return None
    try:
        parts = urlsplit(url)
        if not parts.password:
            # urlunsplit would drop the empty netloc of sqlite:///path
            return url
        netloc = f"{parts.username}:***@{parts.hostname}"
        if parts.port:
            netloc += f":{parts.port}"
        return urlunsplit((parts.scheme, netloc, parts.path, parts.query, parts.fragment))
    except Exception:
        return "***"


__all__ = [
    "DEFAULT_PORTS",
    "build_database_url",
    "dialect_of",
    "sanitize_url_for_log",
]
