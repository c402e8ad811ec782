"""
Leave-balance ledger.

One row per (user, leave type, year) holding total/used/remaining. Rows for
the current year are created lazily on first read from the configured
allocation table; approval is the only operation that moves days from
remaining to used.
"""
from datetime import date
from typing import Callable, Dict, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.exceptions import NotFoundError, ValidationError
from app.core.permissions import Capability, ensure_capability
from app.models.leave_balance import LeaveBalance
from app.models.leave_request import LeaveType
from app.models.user import User
from app.services.base import BaseService


class RolloverStrategy:
    """Decides the opening total of a freshly bootstrapped year."""

    name = "base"

    def opening_total(self, allocation: float, previous: Optional[LeaveBalance]) -> float:
        raise NotImplementedError


class ResetRollover(RolloverStrategy):
    """Every year starts from the configured allocation; unused days lapse."""

    name = "reset"

    def opening_total(self, allocation: float, previous: Optional[LeaveBalance]) -> float:
        return allocation


class CarryOverRollover(RolloverStrategy):
    """Unused days from the previous year are added, up to a cap."""

    name = "carry_over"

    def __init__(self, cap_days: float):
        self.cap_days = cap_days

    def opening_total(self, allocation: float, previous: Optional[LeaveBalance]) -> float:
        if previous is None:
            return allocation
        return allocation + min(max(previous.remaining, 0.0), self.cap_days)


def rollover_from_settings() -> RolloverStrategy:
    if settings.balance_rollover == CarryOverRollover.name:
        return CarryOverRollover(settings.carry_over_cap_days)
    return ResetRollover()


class BalanceService(BaseService):
    def __init__(
        self,
        db: Session,
        allocations: Optional[Dict[str, Optional[float]]] = None,
        rollover: Optional[RolloverStrategy] = None,
        today: Callable[[], date] = date.today,
    ):
        super().__init__(db, today)
        self.allocations = allocations if allocations is not None else settings.leave_allocations
        self.rollover = rollover or rollover_from_settings()

    def allocation_for(self, leave_type: LeaveType) -> Optional[float]:
        return self.allocations.get(LeaveType(leave_type).value)

    def get_balance(self, user_id: int, leave_type: LeaveType, year: int) -> Optional[LeaveBalance]:
        return self.db.query(LeaveBalance).filter(
            LeaveBalance.user_id == user_id,
            LeaveBalance.leave_type == leave_type,
            LeaveBalance.year == year,
        ).first()

    def _rows_for_year(self, user_id: int, year: int) -> List[LeaveBalance]:
        return self.db.query(LeaveBalance).filter(
            LeaveBalance.user_id == user_id,
            LeaveBalance.year == year,
        ).order_by(LeaveBalance.id).all()

    def list_balances(self, user_id: int, year: Optional[int] = None) -> List[LeaveBalance]:
        """
        Return the user's balances for a year (default: the current year).
        The current year is bootstrapped when the user has no rows for it yet;
        existing rows are returned untouched.
        """
        current_year = self.today().year
        year = year or current_year
        rows = self._rows_for_year(user_id, year)
        if rows or year != current_year:
            return rows
        return self.bootstrap_year(user_id, year)

    def bootstrap_year(self, user_id: int, year: int) -> List[LeaveBalance]:
        created = []
        for leave_type in LeaveType:
            allocation = self.allocation_for(leave_type)
            if allocation is None:
                continue
            previous = self.get_balance(user_id, leave_type, year - 1)
            total = float(self.rollover.opening_total(float(allocation), previous))
            row = LeaveBalance(
                user_id=user_id,
                leave_type=leave_type,
                year=year,
                total=total,
                used=0.0,
                remaining=total,
            )
            self.db.add(row)
            created.append(row)

        try:
            self.db.commit()
        except IntegrityError:
            # A concurrent first read bootstrapped the same year
            self.db.rollback()
            self.log_info("Balance bootstrap raced, reusing existing rows", user_id=user_id, year=year)
            return self._rows_for_year(user_id, year)

        self.log_info(
            f"Bootstrapped {len(created)} leave balances",
            user_id=user_id, year=year, rollover=self.rollover.name,
        )
        return self._rows_for_year(user_id, year)

    def allocate(self, actor: User, user_id: int, leave_type: LeaveType, year: int, total: float) -> LeaveBalance:
        """Create or resize a balance row by hand (HR path, e.g. maternity/paternity)."""
        ensure_capability(actor.role, Capability.ALLOCATE_BALANCE)
        if total < 0:
            raise ValidationError("Total days cannot be negative", details={"fields": [{"field": "total", "msg": "must be >= 0"}]})
        if self.db.get(User, user_id) is None:
            raise NotFoundError("User not found")

        row = self.get_balance(user_id, leave_type, year)
        if row is None:
            row = LeaveBalance(user_id=user_id, leave_type=leave_type, year=year, total=total, used=0.0, remaining=total)
            self.db.add(row)
        else:
            if total < row.used:
                raise ValidationError(
                    "Total days cannot be lower than days already used",
                    details={"usedDays": row.used},
                )
            row.total = total
            row.remaining = total - row.used

        self.db.commit()
        self.db.refresh(row)
        self.log_info(
            "Leave balance allocated",
            user_id=user_id, leave_type=LeaveType(leave_type).value, year=year, total=total, actor_id=actor.id,
        )
        return row

    def deduct(self, user_id: int, leave_type: LeaveType, year: int, days: float) -> bool:
        """
        Move days from remaining to used in one guarded UPDATE.
        Does not commit; the caller owns the transaction. Returns False when
        no row exists or the row cannot cover the days.
        """
        updated = self.db.query(LeaveBalance).filter(
            LeaveBalance.user_id == user_id,
            LeaveBalance.leave_type == leave_type,
            LeaveBalance.year == year,
            LeaveBalance.remaining >= days,
        ).update(
            {
                LeaveBalance.used: LeaveBalance.used + days,
                LeaveBalance.remaining: LeaveBalance.remaining - days,
            },
            synchronize_session="fetch",
        )
        return updated == 1
