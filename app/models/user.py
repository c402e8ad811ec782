"""
User Model.
Carries the role used for capability checks and the optional default approver.
"""
from datetime import datetime, timezone
from sqlalchemy import Column, Integer, String, Enum, DateTime, Boolean, ForeignKey
from sqlalchemy.orm import relationship
import enum
from app.database import Base


class UserRole(str, enum.Enum):
    """
    User roles.

    - ADMIN: Full access, approves leave, manages users and allocations
    - HR: Approves leave, manages users and allocations
    - MANAGER: Approves leave; cannot file leave requests
    - EMPLOYEE: Files leave requests for themselves
    """
    EMPLOYEE = "EMPLOYEE"
    MANAGER = "MANAGER"
    HR = "HR"
    ADMIN = "ADMIN"


def _utcnow():
    return datetime.now(timezone.utc)


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, index=True, nullable=False)
    hashed_password = Column(String, nullable=False)
    first_name = Column(String, nullable=False, default="")
    last_name = Column(String, nullable=False, default="")
    phone_number = Column(String, nullable=True)

    role = Column(Enum(UserRole), default=UserRole.EMPLOYEE, nullable=False)

    is_active = Column(Boolean, default=True, nullable=False)
    is_email_verified = Column(Boolean, default=False, nullable=False)

    department_id = Column(Integer, ForeignKey("departments.id"), nullable=True)
    # Default approver for this user's leave requests
    approver_id = Column(Integer, ForeignKey("users.id"), nullable=True)

    created_at = Column(DateTime(timezone=True), default=_utcnow)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    # Relationships
    department = relationship("Department", back_populates="employees")
    approver = relationship("User", remote_side=[id])

    leave_requests = relationship(
        "LeaveRequest", foreign_keys="[LeaveRequest.user_id]", back_populates="user", cascade="all, delete-orphan"
    )
    leave_balances = relationship("LeaveBalance", back_populates="user", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<User {self.email} ({self.role.value})>"

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def department_name(self):
        return self.department.name if self.department else None
