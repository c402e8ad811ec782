from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from app.core.schemas import ApiResponse
from app.database import get_db
from app.models.user import User
from app.routers.auth_deps import api_rate_limit, get_current_user, get_session_service
from app.schemas.auth import UserResponse
from app.schemas.user import ProfileUpdate
from app.services.session_service import SessionService
from app.services.user_service import UserService

router = APIRouter(
    prefix="/profile",
    tags=["profile"],
    dependencies=[Depends(api_rate_limit)],
)


@router.put("")
def update_profile(
    payload: ProfileUpdate,
    request: Request,
    current_user: User = Depends(get_current_user),
    sessions: SessionService = Depends(get_session_service),
    db: Session = Depends(get_db),
):
    user = UserService(db).update_profile(
        current_user,
        first_name=payload.first_name,
        last_name=payload.last_name,
        phone_number=payload.phone_number,
    )
    # Sessions cache the display name taken at login
    sessions.update_session(request.state.session_id, first_name=user.first_name, last_name=user.last_name)
    return ApiResponse.ok(
        {"user": UserResponse.model_validate(user).to_api()},
        message="Profile updated successfully",
    ).to_dict()
