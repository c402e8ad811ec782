"""
Leave Service - request creation, approval/rejection and listings.

Lifecycle: PENDING -> APPROVED | REJECTED. Both outcomes are terminal.
Every business rule is checked before anything is written, so a rejected
command never leaves a partial change behind. Approval moves the request and
its balance row together in one transaction; both writes are conditional
(status still PENDING, balance still sufficient) so concurrent approvals of
the same request cannot both succeed.
"""
import math
from datetime import date, datetime, time, timezone
from typing import Callable, List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from app.core.exceptions import (
    InsufficientBalanceError,
    InvalidDateRangeError,
    NotFoundError,
    OverlappingLeaveError,
    PastDateError,
    RequestNotPendingError,
    ValidationError,
)
from app.core.permissions import APPROVER_ROLES, Capability, ensure_capability, has_capability
from app.core.security import sanitize_input
from app.models.leave_request import ACTIVE_STATUSES, LeaveRequest, LeaveStatus, LeaveType
from app.models.user import User
from app.services.balance_service import BalanceService
from app.services.base import BaseService


def calculate_leave_days(start_date: date, end_date: date, is_half_day: bool = False) -> float:
    """
    Inclusive day span of a request.

    A half-day request always counts 0.5 whatever its dates.
    """
    if is_half_day:
        return 0.5
    span_seconds = (end_date - start_date).total_seconds()
    return float(math.ceil(span_seconds / 86400) + 1)


class LeaveService(BaseService):
    def __init__(
        self,
        db: Session,
        balances: Optional[BalanceService] = None,
        today: Callable[[], date] = date.today,
        now: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        super().__init__(db, today)
        self.balances = balances or BalanceService(db, today=today)
        self.now = now

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    def create_request(
        self,
        user: User,
        leave_type: LeaveType,
        start_date: date,
        end_date: date,
        reason: str,
        is_half_day: bool = False,
        manager_id: Optional[int] = None,
    ) -> LeaveRequest:
        ensure_capability(user.role, Capability.SUBMIT_LEAVE)

        if start_date < self.today():
            raise PastDateError()
        if start_date > end_date:
            raise InvalidDateRangeError()

        days = calculate_leave_days(start_date, end_date, is_half_day)

        overlapping = self.find_overlapping(user.id, start_date, end_date)
        if overlapping is not None:
            self.log_warning(
                "Overlapping leave request refused",
                user_id=user.id, existing_request_id=overlapping.id,
            )
            raise OverlappingLeaveError()

        balance_year = self.today().year
        balance = self.balances.get_balance(user.id, leave_type, balance_year)
        if balance is None or balance.remaining < days:
            raise InsufficientBalanceError(available_days=balance.remaining if balance else 0)

        approver_id = self._resolve_approver(user, manager_id)

        leave = LeaveRequest(
            user_id=user.id,
            leave_type=leave_type,
            start_date=start_date,
            end_date=end_date,
            days=days,
            balance_year=balance_year,
            reason=sanitize_input(reason),
            is_half_day=is_half_day,
            status=LeaveStatus.PENDING,
            approver_id=approver_id,
        )
        self.db.add(leave)
        self.db.commit()
        self.db.refresh(leave)

        self.log_info(f"Leave request created: {leave.id} by user {user.id}", leave_request_id=leave.id, days=days)
        return leave

    def find_overlapping(self, user_id: int, start_date: date, end_date: date) -> Optional[LeaveRequest]:
        """First PENDING or APPROVED request of the user whose inclusive span meets [start_date, end_date]."""
        return self.db.query(LeaveRequest).filter(
            LeaveRequest.user_id == user_id,
            LeaveRequest.status.in_(ACTIVE_STATUSES),
            LeaveRequest.start_date <= end_date,
            LeaveRequest.end_date >= start_date,
        ).first()

    def _resolve_approver(self, user: User, manager_id: Optional[int]) -> Optional[int]:
        if manager_id is None:
            return user.approver_id
        approver = self.db.get(User, manager_id)
        if approver is None or not approver.is_active or approver.role not in APPROVER_ROLES:
            raise ValidationError(
                "Selected approver is not an active manager, HR or admin",
                details={"fields": [{"field": "managerId", "msg": "invalid approver"}]},
            )
        return approver.id

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def _load_pending(self, request_id: int) -> LeaveRequest:
        leave = self.db.get(LeaveRequest, request_id)
        if leave is None:
            raise NotFoundError("Leave request not found")
        if leave.status != LeaveStatus.PENDING:
            raise RequestNotPendingError()
        return leave

    def approve(self, approver: User, request_id: int, comments: Optional[str] = None) -> LeaveRequest:
        ensure_capability(approver.role, Capability.APPROVE_LEAVE)
        leave = self._load_pending(request_id)

        try:
            self._resolve(leave, LeaveStatus.APPROVED, approver, comments)
            if not self.balances.deduct(leave.user_id, leave.leave_type, leave.balance_year, leave.days):
                balance = self.balances.get_balance(leave.user_id, leave.leave_type, leave.balance_year)
                raise InsufficientBalanceError(
                    available_days=balance.remaining if balance else 0,
                    message="Insufficient leave balance to approve this request",
                )
            self.db.commit()
        except (RequestNotPendingError, InsufficientBalanceError):
            self.db.rollback()
            raise
        except SQLAlchemyError:
            self.db.rollback()
            self._logger.exception("Approval transaction failed", extra={"leave_request_id": request_id})
            raise

        self.db.refresh(leave)
        self.log_info(f"Leave request approved: {leave.id} by {approver.id}", days=leave.days)
        return leave

    def reject(self, approver: User, request_id: int, comments: Optional[str] = None) -> LeaveRequest:
        ensure_capability(approver.role, Capability.APPROVE_LEAVE)
        leave = self._load_pending(request_id)

        try:
            self._resolve(leave, LeaveStatus.REJECTED, approver, comments)
            self.db.commit()
        except RequestNotPendingError:
            self.db.rollback()
            raise
        except SQLAlchemyError:
            self.db.rollback()
            self._logger.exception("Rejection transaction failed", extra={"leave_request_id": request_id})
            raise

        self.db.refresh(leave)
        self.log_info(f"Leave request rejected: {leave.id} by {approver.id}")
        return leave

    def _resolve(self, leave: LeaveRequest, status: LeaveStatus, approver: User, comments: Optional[str]):
        """
        Move the request out of PENDING with a conditional UPDATE.
        The status filter makes the write fail for a request another approver
        resolved after it was loaded; nothing is committed here.
        """
        updated = self.db.query(LeaveRequest).filter(
            LeaveRequest.id == leave.id,
            LeaveRequest.status == LeaveStatus.PENDING,
        ).update(
            {
                LeaveRequest.status: status,
                LeaveRequest.approver_id: approver.id,
                LeaveRequest.approved_at: self.now(),
                LeaveRequest.comments: sanitize_input(comments),
            },
            synchronize_session=False,
        )
        if updated != 1:
            raise RequestNotPendingError()

    # ------------------------------------------------------------------
    # Listings
    # ------------------------------------------------------------------

    def list_own_requests(
        self, user: User, page: int = 1, limit: int = 10, status: Optional[LeaveStatus] = None
    ) -> Tuple[List[LeaveRequest], int]:
        query = self.db.query(LeaveRequest).filter(LeaveRequest.user_id == user.id)
        if status:
            query = query.filter(LeaveRequest.status == status)
        total = query.count()
        items = query.options(joinedload(LeaveRequest.approver)).order_by(
            LeaveRequest.created_at.desc(), LeaveRequest.id.desc()
        ).offset((page - 1) * limit).limit(limit).all()
        return items, total

    def list_pending(self, approver: User, page: int = 1, limit: int = 10) -> Tuple[List[LeaveRequest], int]:
        ensure_capability(approver.role, Capability.APPROVE_LEAVE)
        query = self.db.query(LeaveRequest).filter(LeaveRequest.status == LeaveStatus.PENDING)
        total = query.count()
        # Oldest first so the queue is worked in arrival order
        items = query.options(joinedload(LeaveRequest.user)).order_by(
            LeaveRequest.created_at.asc(), LeaveRequest.id.asc()
        ).offset((page - 1) * limit).limit(limit).all()
        return items, total

    def history(
        self,
        user: User,
        page: int = 1,
        limit: int = 10,
        status: Optional[LeaveStatus] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> Tuple[List[LeaveRequest], int]:
        """
        Requests filed between start_date and end_date (inclusive, by filing date).
        Employees only see their own requests; approvers see everyone's.
        """
        query = self.db.query(LeaveRequest)
        if not has_capability(user.role, Capability.VIEW_ALL_HISTORY):
            query = query.filter(LeaveRequest.user_id == user.id)
        if status:
            query = query.filter(LeaveRequest.status == status)
        if start_date and end_date:
            query = query.filter(
                LeaveRequest.created_at >= datetime.combine(start_date, time.min),
                LeaveRequest.created_at <= datetime.combine(end_date, time.max),
            )
        total = query.count()
        items = query.options(
            joinedload(LeaveRequest.user), joinedload(LeaveRequest.approver)
        ).order_by(
            LeaveRequest.created_at.desc(), LeaveRequest.id.desc()
        ).offset((page - 1) * limit).limit(limit).all()
        return items, total

    def list_approvers(self, user: User) -> List[User]:
        ensure_capability(user.role, Capability.LIST_APPROVERS)
        return self.db.query(User).options(joinedload(User.department)).filter(
            User.role.in_(APPROVER_ROLES),
            User.is_active.is_(True),
        ).order_by(User.role.asc(), User.first_name.asc()).all()

    def status_counts(self, approver_id: int, year: int) -> dict:
        rows = self.db.query(LeaveRequest.status, func.count(LeaveRequest.id)).filter(
            LeaveRequest.approver_id == approver_id,
            LeaveRequest.created_at >= datetime(year, 1, 1),
            LeaveRequest.created_at < datetime(year + 1, 1, 1),
        ).group_by(LeaveRequest.status).all()
        return {LeaveStatus(status).value: count for status, count in rows}
