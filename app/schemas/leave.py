from pydantic import Field
from datetime import date, datetime
from typing import Optional

from app.core.schemas import CamelModel
from app.models.leave_request import LeaveStatus, LeaveType
from app.models.user import UserRole


class LeaveRequestCreate(CamelModel):
    leave_type: LeaveType
    start_date: date
    end_date: date
    reason: str = Field(..., min_length=1, max_length=2000)
    is_half_day: bool = False
    manager_id: Optional[int] = None


class LeaveDecision(CamelModel):
    comments: Optional[str] = Field(None, max_length=2000)


class PersonSummary(CamelModel):
    id: int
    first_name: str
    last_name: str
    email: Optional[str] = None


class LeaveRequestResponse(CamelModel):
    id: int
    user_id: int
    leave_type: LeaveType
    start_date: date
    end_date: date
    days: float
    balance_year: int
    reason: str
    is_half_day: bool
    status: LeaveStatus
    approver_id: Optional[int] = None
    approved_at: Optional[datetime] = None
    comments: Optional[str] = None
    created_at: Optional[datetime] = None


class LeaveRequestDetail(LeaveRequestResponse):
    user: Optional[PersonSummary] = None
    approver: Optional[PersonSummary] = None


class LeaveBalanceResponse(CamelModel):
    id: int
    user_id: int
    leave_type: LeaveType
    year: int
    total: float
    used: float
    remaining: float


class BalanceAllocation(CamelModel):
    leave_type: LeaveType
    year: int = Field(..., ge=2000, le=2100)
    total: float = Field(..., ge=0)


class ApproverResponse(CamelModel):
    id: int
    first_name: str
    last_name: str
    email: str
    role: UserRole
    department_name: Optional[str] = None
