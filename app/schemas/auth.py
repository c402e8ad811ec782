from pydantic import BaseModel, EmailStr, Field
from typing import Optional
from datetime import datetime

from app.core.schemas import CamelModel
from app.models.user import UserRole


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)
    device_id: Optional[str] = Field(None, alias="deviceId")


class UserResponse(CamelModel):
    id: int
    email: str
    first_name: str
    last_name: str
    role: UserRole
    is_active: bool
    is_email_verified: bool
    phone_number: Optional[str] = None
    department_id: Optional[int] = None
    department_name: Optional[str] = None
    approver_id: Optional[int] = None
    created_at: Optional[datetime] = None


class SessionResponse(CamelModel):
    session_id: str
    login_time: datetime
    last_activity: datetime
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    device_id: Optional[str] = None
    is_current: bool = False
