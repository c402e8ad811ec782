"""
Access-control dependencies.

Resolves the session id carried by the request into a live session and user,
enforces the inactivity timeout, and evaluates capability requirements
declared per endpoint.
"""
import logging
from typing import Callable, Optional

from fastapi import Depends, Request, Response
from redis import Redis
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.exceptions import AuthenticationError, RateLimitExceededError
from app.core.limiter import RateLimitPolicy, SlidingWindowRateLimiter
from app.core.permissions import Capability, ensure_capability
from app.core.redis import get_redis
from app.database import get_db
from app.models.user import User
from app.services.balance_service import BalanceService
from app.services.leave_service import LeaveService
from app.services.session_service import SessionData, SessionService

logger = logging.getLogger(__name__)

API_POLICY = RateLimitPolicy(
    name="api",
    limit=settings.rate_limit.api_limit,
    window_seconds=settings.rate_limit.api_window_seconds,
)
AUTH_POLICY = RateLimitPolicy(
    name="auth",
    limit=settings.rate_limit.auth_limit,
    window_seconds=settings.rate_limit.auth_window_seconds,
    message="Too many authentication attempts, please try again later.",
)


# ---------------------------------------------------------------------------
# Service providers
# ---------------------------------------------------------------------------

def get_session_service(redis_client: Redis = Depends(get_redis)) -> SessionService:
    return SessionService(redis_client)


def get_rate_limiter(redis_client: Redis = Depends(get_redis)) -> SlidingWindowRateLimiter:
    return SlidingWindowRateLimiter(redis_client)


def get_leave_service(db: Session = Depends(get_db)) -> LeaveService:
    return LeaveService(db, BalanceService(db))


# ---------------------------------------------------------------------------
# Rate limiting
# ---------------------------------------------------------------------------

def client_ip(request: Request) -> str:
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


def enforce_rate_limit(
    limiter: SlidingWindowRateLimiter, policy: RateLimitPolicy, identifier: str, response: Optional[Response] = None
) -> None:
    result = limiter.check(identifier, policy.limit, policy.window_seconds)
    if response is not None:
        response.headers["RateLimit-Limit"] = str(result.limit)
        response.headers["RateLimit-Remaining"] = str(max(result.remaining, 0))
        response.headers["RateLimit-Reset"] = str(result.reset_time_ms // 1000)
    if not result.allowed:
        logger.warning(f"Rate limit exceeded for {identifier}", extra={"policy": policy.name})
        raise RateLimitExceededError(retry_after=result.retry_after, message=policy.message)


def api_rate_limit(
    request: Request,
    response: Response,
    limiter: SlidingWindowRateLimiter = Depends(get_rate_limiter),
) -> None:
    enforce_rate_limit(limiter, API_POLICY, f"{API_POLICY.name}:{client_ip(request)}", response)


# ---------------------------------------------------------------------------
# Sessions
# ---------------------------------------------------------------------------

def extract_session_id(request: Request) -> Optional[str]:
    """Session id from the cookie, a bearer Authorization header or X-Session-ID."""
    session_id = request.cookies.get(settings.session.cookie_name)
    if session_id:
        return session_id
    authorization = request.headers.get("Authorization", "")
    if authorization.lower().startswith("bearer "):
        return authorization[7:].strip() or None
    return request.headers.get("X-Session-ID")


def load_active_session(sessions: SessionService, session_id: Optional[str]) -> SessionData:
    """
    Resolve a session id into a live session.

    The inactivity timeout is checked against the stored last_activity before
    the read refreshes it; a stale session is deleted even if its store TTL
    has not run out yet.
    """
    if not session_id:
        raise AuthenticationError("No session provided")

    session = sessions.peek_session(session_id)
    if session is None:
        raise AuthenticationError("Invalid or expired session")

    if sessions.is_inactive(session):
        sessions.delete_session(session_id)
        logger.info("Session expired due to inactivity", extra={"user_id": session.user_id})
        raise AuthenticationError("Session expired due to inactivity")

    refreshed = sessions.get_session(session_id)
    if refreshed is None:
        raise AuthenticationError("Invalid or expired session")
    return refreshed


def get_current_session(
    request: Request,
    sessions: SessionService = Depends(get_session_service),
) -> SessionData:
    session_id = extract_session_id(request)
    session = load_active_session(sessions, session_id)
    request.state.session_id = session_id
    return session


def get_current_user(
    session: SessionData = Depends(get_current_session),
    db: Session = Depends(get_db),
) -> User:
    user = db.get(User, session.user_id)
    if user is None or not user.is_active or not user.is_email_verified:
        logger.warning("Authentication failed: session user missing or disabled", extra={"user_id": session.user_id})
        raise AuthenticationError("Invalid session or user not found")
    return user


# ---------------------------------------------------------------------------
# Capabilities
# ---------------------------------------------------------------------------

def require_capability(capability: Capability) -> Callable:
    """
    Dependency factory that checks the caller's role holds a capability.

    Usage:
        @router.get("/approvals")
        def pending(user: User = Depends(require_capability(Capability.APPROVE_LEAVE))):
            ...
    """
    def capability_checker(current_user: User = Depends(get_current_user)) -> User:
        ensure_capability(current_user.role, capability)
        return current_user
    return capability_checker
