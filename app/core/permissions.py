"""
Declarative capability table.

Every workflow operation names the capability it needs; the roles holding
each capability are listed here and nowhere else.
"""
import enum
from typing import Dict, FrozenSet

from app.core.exceptions import AccessDeniedError
from app.models.user import UserRole


class Capability(str, enum.Enum):
    SUBMIT_LEAVE = "submit_leave"
    VIEW_OWN_LEAVE = "view_own_leave"
    LIST_APPROVERS = "list_approvers"
    APPROVE_LEAVE = "approve_leave"
    VIEW_ALL_HISTORY = "view_all_history"
    ALLOCATE_BALANCE = "allocate_balance"
    MANAGE_USERS = "manage_users"


APPROVER_ROLES: FrozenSet[UserRole] = frozenset({UserRole.MANAGER, UserRole.HR, UserRole.ADMIN})

CAPABILITIES: Dict[Capability, FrozenSet[UserRole]] = {
    Capability.SUBMIT_LEAVE: frozenset({UserRole.EMPLOYEE}),
    Capability.VIEW_OWN_LEAVE: frozenset(UserRole),
    Capability.LIST_APPROVERS: frozenset({UserRole.EMPLOYEE}),
    Capability.APPROVE_LEAVE: APPROVER_ROLES,
    Capability.VIEW_ALL_HISTORY: APPROVER_ROLES,
    Capability.ALLOCATE_BALANCE: frozenset({UserRole.HR, UserRole.ADMIN}),
    Capability.MANAGE_USERS: frozenset({UserRole.HR, UserRole.ADMIN}),
}

_DENIED_MESSAGES = {
    Capability.SUBMIT_LEAVE: "Only employees can submit leave requests.",
    Capability.LIST_APPROVERS: "Only employees can access manager list",
}


def has_capability(role: UserRole, capability: Capability) -> bool:
    return UserRole(role) in CAPABILITIES[capability]


def ensure_capability(role: UserRole, capability: Capability) -> None:
    """Raise AccessDeniedError when the role does not hold the capability."""
    if not has_capability(role, capability):
        raise AccessDeniedError(_DENIED_MESSAGES.get(capability, "Insufficient permissions"))
