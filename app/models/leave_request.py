from datetime import datetime, timezone
from sqlalchemy import Column, Integer, Date, Float, Enum, ForeignKey, DateTime, Boolean, Text
from sqlalchemy.orm import relationship
from app.database import Base
import enum

class LeaveType(str, enum.Enum):
    ANNUAL = "ANNUAL"
    SICK = "SICK"
    MATERNITY = "MATERNITY"
    PATERNITY = "PATERNITY"
    PERSONAL = "PERSONAL"
    EMERGENCY = "EMERGENCY"

class LeaveStatus(str, enum.Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"

# Statuses that hold a slot on the calendar
ACTIVE_STATUSES = (LeaveStatus.PENDING, LeaveStatus.APPROVED)

def _utcnow():
    return datetime.now(timezone.utc)

class LeaveRequest(Base):
    __tablename__ = "leave_requests"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    leave_type = Column(Enum(LeaveType), nullable=False, index=True)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    days = Column(Float, nullable=False)
    # Year of the balance row checked at filing and charged on approval
    balance_year = Column(Integer, nullable=False)
    reason = Column(Text, nullable=False)
    is_half_day = Column(Boolean, default=False, nullable=False)
    status = Column(Enum(LeaveStatus), default=LeaveStatus.PENDING, nullable=False, index=True)

    # Pre-assigned at creation or set by whoever resolved the request
    approver_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    approved_at = Column(DateTime(timezone=True), nullable=True)
    comments = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), default=_utcnow, index=True)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    user = relationship("User", foreign_keys=[user_id], back_populates="leave_requests")
    approver = relationship("User", foreign_keys=[approver_id])
