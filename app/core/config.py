import os
import logging
from pydantic import BaseModel, Field
from typing import Dict, List, Optional
from dotenv import load_dotenv

load_dotenv()


def _optional_days(name: str, default: Optional[float]) -> Optional[float]:
    raw = os.getenv(name)
    if raw is None:
        return default
    raw = raw.strip()
    if raw == "" or raw.lower() in ("none", "unset"):
        return None
    return float(raw)


class SessionSettings(BaseModel):
    # Absolute store-level TTL, refreshed on every read
    ttl_seconds: int = int(os.getenv("SESSION_TTL_SECONDS", str(24 * 60 * 60)))
    # Access-layer inactivity clock, checked against last_activity
    inactivity_seconds: int = int(os.getenv("SESSION_INACTIVITY_SECONDS", str(2 * 60 * 60)))
    max_per_user: int = int(os.getenv("MAX_SESSIONS_PER_USER", "5"))
    cookie_name: str = "sessionId"


class RateLimitSettings(BaseModel):
    auth_limit: int = int(os.getenv("AUTH_RATE_LIMIT", "5"))
    auth_window_seconds: int = int(os.getenv("AUTH_RATE_WINDOW_SECONDS", str(15 * 60)))
    api_limit: int = int(os.getenv("API_RATE_LIMIT", "100"))
    api_window_seconds: int = int(os.getenv("API_RATE_WINDOW_SECONDS", str(15 * 60)))


class Config(BaseModel):
    app_name: str = "Leave Management API"
    environment: str = os.getenv("APP_ENV", "development")
    api_prefix: str = "/api"
    version: str = "1.0.0"
    request_id_header: str = "X-Request-ID"

    # Storage
    database_url: str = os.getenv("DATABASE_URL", "sqlite:///./leave.db")
    redis_url: str = os.getenv("REDIS_URL", "redis://localhost:6379/0")
    redis_socket_timeout: float = float(os.getenv("REDIS_SOCKET_TIMEOUT", "2.0"))

    session: SessionSettings = SessionSettings()
    rate_limit: RateLimitSettings = RateLimitSettings()

    # Days granted when a year's balances are bootstrapped. None means the
    # type is never allocated automatically and HR assigns it by hand.
    leave_allocations: Dict[str, Optional[float]] = Field(
        default_factory=lambda: {
            "ANNUAL": _optional_days("LEAVE_ALLOCATION_ANNUAL", 21.0),
            "SICK": _optional_days("LEAVE_ALLOCATION_SICK", 10.0),
            "PERSONAL": _optional_days("LEAVE_ALLOCATION_PERSONAL", 5.0),
            "EMERGENCY": _optional_days("LEAVE_ALLOCATION_EMERGENCY", 3.0),
            "MATERNITY": _optional_days("LEAVE_ALLOCATION_MATERNITY", None),
            "PATERNITY": _optional_days("LEAVE_ALLOCATION_PATERNITY", None),
        }
    )
    # "reset" grants the allocation afresh each year, "carry_over" adds unused days
    balance_rollover: str = os.getenv("BALANCE_ROLLOVER", "reset")
    carry_over_cap_days: float = float(os.getenv("CARRY_OVER_CAP_DAYS", "5"))

    # Optional first admin, created at startup when no admin exists
    admin_email: Optional[str] = os.getenv("ADMIN_EMAIL")
    admin_password: Optional[str] = os.getenv("ADMIN_PASSWORD")

    cors_origins: List[str] = Field(
        default_factory=lambda: [
            o.strip()
            for o in os.getenv(
                "CORS_ORIGINS",
                "http://localhost:3000,http://localhost:5173,"
                "http://127.0.0.1:3000,http://127.0.0.1:5173",
            ).split(",")
            if o.strip()
        ]
    )

settings = Config()

# --- Startup Validation for Production ---
_logger = logging.getLogger(__name__)
if settings.environment not in ("development", "testing"):
    if settings.admin_email and not settings.admin_password:
        raise RuntimeError(
            "FATAL: ADMIN_EMAIL is set but ADMIN_PASSWORD is missing. "
            "Set both or neither for non-development environments."
        )
    if settings.redis_url.startswith("redis://localhost"):
        _logger.warning("REDIS_URL points at localhost outside development.")
