from typing import Any, Dict

from sqlalchemy.orm import joinedload

from app.core.permissions import Capability, has_capability
from app.models.leave_request import LeaveRequest, LeaveStatus
from app.models.user import User, UserRole
from app.services.base import BaseService
from app.services.leave_service import LeaveService


class DashboardService(BaseService):
    """Aggregates shown on the landing page; approvers get queue statistics on top."""

    RECENT_REQUESTS = 5
    RECENT_DECISIONS = 10

    def __init__(self, db, leave_service: LeaveService):
        super().__init__(db, leave_service.today)
        self.leaves = leave_service

    def stats(self, user: User) -> Dict[str, Any]:
        balances = self.leaves.balances.list_balances(user.id)
        recent = self.db.query(LeaveRequest).options(joinedload(LeaveRequest.approver)).filter(
            LeaveRequest.user_id == user.id
        ).order_by(LeaveRequest.created_at.desc(), LeaveRequest.id.desc()).limit(self.RECENT_REQUESTS).all()
        pending_count = self.db.query(LeaveRequest).filter(
            LeaveRequest.user_id == user.id,
            LeaveRequest.status == LeaveStatus.PENDING,
        ).count()

        stats: Dict[str, Any] = {
            "leave_balances": balances,
            "recent_requests": recent,
            "pending_requests_count": pending_count,
        }
        if not has_capability(user.role, Capability.APPROVE_LEAVE):
            return stats

        decided = (LeaveStatus.APPROVED, LeaveStatus.REJECTED)
        stats.update({
            "pending_approvals": self.db.query(LeaveRequest).filter(
                LeaveRequest.status == LeaveStatus.PENDING
            ).count(),
            "total_approved": self.db.query(LeaveRequest).filter(
                LeaveRequest.status == LeaveStatus.APPROVED, LeaveRequest.approver_id == user.id
            ).count(),
            "total_rejected": self.db.query(LeaveRequest).filter(
                LeaveRequest.status == LeaveStatus.REJECTED, LeaveRequest.approver_id == user.id
            ).count(),
            "yearly_status_counts": self.leaves.status_counts(user.id, self.today().year),
            "recent_decisions": self.db.query(LeaveRequest).options(joinedload(LeaveRequest.user)).filter(
                LeaveRequest.approver_id == user.id, LeaveRequest.status.in_(decided)
            ).order_by(LeaveRequest.updated_at.desc(), LeaveRequest.id.desc()).limit(self.RECENT_DECISIONS).all(),
            "team_member_count": self._team_member_count(user),
        })
        return stats

    def _team_member_count(self, user: User) -> int:
        query = self.db.query(User).filter(User.role == UserRole.EMPLOYEE, User.is_active.is_(True))
        if user.department_id is not None:
            query = query.filter(User.department_id == user.department_id)
        return query.count()
