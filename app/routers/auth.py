from datetime import datetime, timezone
import logging

from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.exceptions import AuthenticationError
from app.core.limiter import SlidingWindowRateLimiter
from app.core.schemas import ApiResponse
from app.database import get_db
from app.models.user import User
from app.routers.auth_deps import (
    AUTH_POLICY,
    client_ip,
    enforce_rate_limit,
    extract_session_id,
    get_current_session,
    get_current_user,
    get_rate_limiter,
    get_session_service,
)
from app.schemas.auth import LoginRequest, SessionResponse, UserResponse
from app.services import auth as auth_service
from app.services.session_service import SessionData, SessionService

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/auth",
    tags=["auth"]
)


@router.post("/login")
def login(
    login_data: LoginRequest,
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
    sessions: SessionService = Depends(get_session_service),
    limiter: SlidingWindowRateLimiter = Depends(get_rate_limiter),
):
    ip = client_ip(request)
    enforce_rate_limit(limiter, AUTH_POLICY, f"{AUTH_POLICY.name}:{ip}:{login_data.email.lower()}", response)

    user = auth_service.authenticate_user(db, login_data.email, login_data.password)
    if user is None:
        logger.warning("Failed login", extra={"email": login_data.email, "ip": ip})
        raise AuthenticationError("Invalid email or password")

    session_id, _ = sessions.create_session(
        user_id=user.id,
        email=user.email,
        role=user.role.value,
        first_name=user.first_name,
        last_name=user.last_name,
        ip_address=ip,
        user_agent=request.headers.get("User-Agent"),
        device_id=login_data.device_id,
    )
    response.set_cookie(
        key=settings.session.cookie_name,
        value=session_id,
        max_age=settings.session.ttl_seconds,
        httponly=True,
        secure=settings.environment == "production",
        samesite="lax",
    )
    logger.info(f"User logged in: {user.id}")
    return ApiResponse.ok(
        {"sessionId": session_id, "user": UserResponse.model_validate(user).to_api()},
        message="Login successful",
    ).to_dict()


@router.post("/logout")
def logout(
    request: Request,
    response: Response,
    sessions: SessionService = Depends(get_session_service),
):
    session_id = extract_session_id(request)
    if session_id:
        sessions.delete_session(session_id)
    response.delete_cookie(settings.session.cookie_name)
    return ApiResponse.ok(message="Logged out successfully").to_dict()


@router.get("/me")
def me(current_user: User = Depends(get_current_user)):
    return ApiResponse.ok({"user": UserResponse.model_validate(current_user).to_api()}).to_dict()


def _session_view(session_id: str, session: SessionData, current_id: str) -> dict:
    return SessionResponse(
        session_id=session_id,
        login_time=datetime.fromtimestamp(session.login_time, tz=timezone.utc),
        last_activity=datetime.fromtimestamp(session.last_activity, tz=timezone.utc),
        ip_address=session.ip_address,
        user_agent=session.user_agent,
        device_id=session.device_id,
        is_current=session_id == current_id,
    ).to_api()


@router.get("/sessions")
def list_sessions(
    request: Request,
    session: SessionData = Depends(get_current_session),
    sessions: SessionService = Depends(get_session_service),
):
    current_id = request.state.session_id
    items = sorted(sessions.list_user_sessions(session.user_id), key=lambda item: item[1].last_activity, reverse=True)
    return ApiResponse.ok(
        {"sessions": [_session_view(sid, data, current_id) for sid, data in items]}
    ).to_dict()


@router.delete("/sessions")
def revoke_all_sessions(
    response: Response,
    session: SessionData = Depends(get_current_session),
    sessions: SessionService = Depends(get_session_service),
):
    revoked = sessions.delete_all_user_sessions(session.user_id)
    response.delete_cookie(settings.session.cookie_name)
    return ApiResponse.ok({"revoked": revoked}, message="All sessions revoked").to_dict()
