import os
from dataclasses import dataclass


@dataclass(frozen=True)
class Settings:
    secret_key: str
    env: str
    database_url: str

    token_max_age_seconds: int
    event_timezone: str
    notification_page_size: int


def _getenv(name: str, default: str = "") -> str:
    return (os.environ.get(name) or default).strip()


def _getenv_int(name: str, default: int) -> int:
    raw = _getenv(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise RuntimeError(f"{name} must be an integer (got {raw!r}).") from e


def load_settings() -> Settings:
    return Settings(
        secret_key=_getenv("SECRET_KEY", "change-me"),
        env=_getenv("ENV", "development"),
        database_url=_getenv("DATABASE_URL", "sqlite:///campus.db"),
        token_max_age_seconds=_getenv_int("TOKEN_MAX_AGE_SECONDS", 3600),
        event_timezone=_getenv("EVENT_TIMEZONE", "UTC"),
        notification_page_size=_getenv_int("NOTIFICATION_PAGE_SIZE", 50),
    )


def load_config() -> dict:
    s = load_settings()
    return {
        "SECRET_KEY": s.secret_key,
        "ENV": s.env,
        "DATABASE_URL": s.database_url,
        "TOKEN_MAX_AGE_SECONDS": s.token_max_age_seconds,
        "EVENT_TIMEZONE": s.event_timezone,
        "NOTIFICATION_PAGE_SIZE": s.notification_page_size,
        # API only; keep request bodies small
        "MAX_CONTENT_LENGTH": 1 * 1024 * 1024,
    }
