# Models package
# Importing modules here ensures they are registered with SQLAlchemy Base
from . import user, department, leave_request, leave_balance

# Explicit class exports for cleaner imports
from .user import User, UserRole
from .department import Department
from .leave_request import LeaveRequest, LeaveStatus, LeaveType
from .leave_balance import LeaveBalance

__all__ = [
    "User",
    "UserRole",
    "Department",
    "LeaveRequest",
    "LeaveStatus",
    "LeaveType",
    "LeaveBalance",
]
