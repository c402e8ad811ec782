import pytest
from datetime import date

from app.core.exceptions import AccessDeniedError, NotFoundError, ValidationError
from app.models.leave_balance import LeaveBalance
from app.models.leave_request import LeaveType
from app.services.balance_service import BalanceService, CarryOverRollover, ResetRollover


def _balances(db_session, today=date(2024, 3, 1), **kwargs):
    return BalanceService(db_session, today=lambda: today, **kwargs)


def test_first_read_bootstraps_configured_types(db_session, employee):
    rows = _balances(db_session).list_balances(employee.id)

    by_type = {row.leave_type: row for row in rows}
    assert set(by_type) == {LeaveType.ANNUAL, LeaveType.SICK, LeaveType.PERSONAL, LeaveType.EMERGENCY}
    assert by_type[LeaveType.ANNUAL].total == 21
    assert by_type[LeaveType.SICK].total == 10
    assert by_type[LeaveType.PERSONAL].total == 5
    assert by_type[LeaveType.EMERGENCY].total == 3
    for row in rows:
        assert row.year == 2024
        assert row.used == 0
        assert row.remaining == row.total


def test_repeated_reads_do_not_recreate_rows(db_session, employee):
    service = _balances(db_session)
    first = service.list_balances(employee.id)
    row = service.get_balance(employee.id, LeaveType.SICK, 2024)
    row.used, row.remaining = 4, 6
    db_session.commit()

    second = service.list_balances(employee.id)

    assert [r.id for r in first] == [r.id for r in second]
    assert db_session.query(LeaveBalance).filter(LeaveBalance.user_id == employee.id).count() == 4
    assert service.get_balance(employee.id, LeaveType.SICK, 2024).remaining == 6


def test_past_year_read_is_not_bootstrapped(db_session, employee):
    assert _balances(db_session).list_balances(employee.id, 2023) == []


def test_allocation_table_entries_can_be_disabled(db_session, employee):
    service = _balances(db_session, allocations={"ANNUAL": 15, "SICK": None, "MATERNITY": 90})

    rows = service.list_balances(employee.id)

    assert {(r.leave_type, r.total) for r in rows} == {(LeaveType.ANNUAL, 15), (LeaveType.MATERNITY, 90)}


def test_carry_over_adds_capped_unused_days(db_session, employee):
    previous = _balances(db_session, today=date(2023, 6, 1), rollover=ResetRollover())
    previous.list_balances(employee.id)
    annual = previous.get_balance(employee.id, LeaveType.ANNUAL, 2023)
    annual.used, annual.remaining = 10, 11
    sick = previous.get_balance(employee.id, LeaveType.SICK, 2023)
    sick.used, sick.remaining = 8, 2
    db_session.commit()

    rows = _balances(db_session, rollover=CarryOverRollover(cap_days=5)).list_balances(employee.id)

    by_type = {row.leave_type: row for row in rows}
    assert by_type[LeaveType.ANNUAL].total == 26
    assert by_type[LeaveType.SICK].total == 12
    assert by_type[LeaveType.PERSONAL].total == 10


def test_reset_rollover_ignores_previous_year(db_session, employee):
    _balances(db_session, today=date(2023, 6, 1)).list_balances(employee.id)

    rows = _balances(db_session, rollover=ResetRollover()).list_balances(employee.id)

    assert {r.leave_type: r.total for r in rows}[LeaveType.ANNUAL] == 21


def test_allocate_creates_manual_row(db_session, employee, hr_user):
    service = _balances(db_session)

    row = service.allocate(hr_user, employee.id, LeaveType.MATERNITY, 2024, 90)

    assert row.total == 90
    assert row.used == 0
    assert row.remaining == 90


def test_allocate_resizes_and_keeps_used(db_session, employee, hr_user):
    service = _balances(db_session)
    service.list_balances(employee.id)
    row = service.get_balance(employee.id, LeaveType.ANNUAL, 2024)
    row.used, row.remaining = 5, 16
    db_session.commit()

    resized = service.allocate(hr_user, employee.id, LeaveType.ANNUAL, 2024, 25)

    assert resized.total == 25
    assert resized.used == 5
    assert resized.remaining == 20

    with pytest.raises(ValidationError) as exc_info:
        service.allocate(hr_user, employee.id, LeaveType.ANNUAL, 2024, 4)
    assert exc_info.value.details == {"usedDays": 5}


def test_allocate_requires_hr_or_admin(db_session, employee, manager):
    with pytest.raises(AccessDeniedError):
        _balances(db_session).allocate(manager, employee.id, LeaveType.ANNUAL, 2024, 30)


def test_allocate_unknown_user(db_session, hr_user):
    with pytest.raises(NotFoundError):
        _balances(db_session).allocate(hr_user, 9999, LeaveType.ANNUAL, 2024, 30)


def test_deduct_is_guarded(db_session, employee):
    service = _balances(db_session)
    service.list_balances(employee.id)

    assert service.deduct(employee.id, LeaveType.EMERGENCY, 2024, 3) is True
    assert service.deduct(employee.id, LeaveType.EMERGENCY, 2024, 0.5) is False
    assert service.deduct(employee.id, LeaveType.MATERNITY, 2024, 1) is False
    db_session.commit()

    row = service.get_balance(employee.id, LeaveType.EMERGENCY, 2024)
    assert row.used == 3
    assert row.remaining == 0
