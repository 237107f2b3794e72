import os
from datetime import time

from dotenv import load_dotenv


load_dotenv()


def _get_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _get_list(value: str | None, default: str) -> list[str]:
    raw = value if value is not None else default
    return [item.strip() for item in raw.split(",") if item.strip()]


def _get_time(value: str | None, default: str) -> time:
    return time.fromisoformat((value or default).strip())


APP_ENV = os.getenv("APP_ENV", "development")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
SQL_ECHO = _get_bool(os.getenv("SQL_ECHO"), default=False)

CORS_ALLOWED_ORIGINS = _get_list(os.getenv("CORS_ALLOWED_ORIGINS"), "http://localhost:5173")

JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "change-me")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
JWT_EXPIRES_MINUTES = int(os.getenv("JWT_EXPIRES_MINUTES", "60"))
JWT_AUDIENCE = os.getenv("JWT_AUDIENCE") or None

STAFF_ROLES = frozenset(role.lower() for role in _get_list(os.getenv("STAFF_ROLES"), "staff,admin"))

# Booking rules
DAILY_HOUR_QUOTA = int(os.getenv("DAILY_HOUR_QUOTA", "2"))
BOOKING_WINDOW_DAYS = int(os.getenv("BOOKING_WINDOW_DAYS", "0"))

# On-campus accounts must use these hours as walk-in, they cannot book them online.
WALK_IN_EMAIL_DOMAIN = os.getenv("WALK_IN_EMAIL_DOMAIN", "@ku.th").strip().lower()
WALK_IN_START_HOUR = int(os.getenv("WALK_IN_START_HOUR", "8"))
WALK_IN_END_HOUR = int(os.getenv("WALK_IN_END_HOUR", "16"))

DEFAULT_OPEN_TIME = _get_time(os.getenv("DEFAULT_OPEN_TIME"), "08:00")
DEFAULT_CLOSE_TIME = _get_time(os.getenv("DEFAULT_CLOSE_TIME"), "21:00")
DEFAULT_CLOSURE_REASON = os.getenv("DEFAULT_CLOSURE_REASON", "closed for maintenance")


def validate_runtime_config() -> None:
    if APP_ENV.lower() == "production" and JWT_SECRET_KEY == "change-me":
        raise RuntimeError("JWT_SECRET_KEY must be set in production.")
    if DAILY_HOUR_QUOTA < 1:
        raise RuntimeError("DAILY_HOUR_QUOTA must be at least 1.")
    if not 0 <= WALK_IN_START_HOUR <= WALK_IN_END_HOUR <= 24:
        raise RuntimeError("WALK_IN_START_HOUR/WALK_IN_END_HOUR must describe an hour range within a day.")
    if BOOKING_WINDOW_DAYS < 0:
        raise RuntimeError("BOOKING_WINDOW_DAYS cannot be negative.")
