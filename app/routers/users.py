from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.core.permissions import Capability
from app.core.schemas import ApiResponse, Pagination
from app.database import get_db
from app.models.user import User, UserRole
from app.routers.auth_deps import api_rate_limit, require_capability
from app.schemas.auth import UserResponse
from app.schemas.user import UserCreate
from app.services.user_service import UserService

router = APIRouter(
    prefix="/users",
    tags=["users"],
    dependencies=[Depends(api_rate_limit)],
)


@router.get("")
def list_users(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    role: Optional[UserRole] = None,
    department: Optional[int] = None,
    current_user: User = Depends(require_capability(Capability.MANAGE_USERS)),
    db: Session = Depends(get_db),
):
    users, total = UserService(db).list_users(current_user, page=page, limit=limit, role=role, department_id=department)
    return ApiResponse.ok({
        "users": [UserResponse.model_validate(u).to_api() for u in users],
        "pagination": Pagination.build(page, limit, total).model_dump(),
    }).to_dict()


@router.post("", status_code=201)
def create_user(
    payload: UserCreate,
    current_user: User = Depends(require_capability(Capability.MANAGE_USERS)),
    db: Session = Depends(get_db),
):
    user = UserService(db).create_user(
        current_user,
        email=payload.email,
        password=payload.password,
        first_name=payload.first_name,
        last_name=payload.last_name,
        role=payload.role,
        department_id=payload.department_id,
        approver_id=payload.approver_id,
        phone_number=payload.phone_number,
    )
    return ApiResponse.ok({"user": UserResponse.model_validate(user).to_api()}, message="User created").to_dict()
