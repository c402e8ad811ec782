import pytest
from datetime import date, timedelta
from fastapi import status

from app.models.leave_request import LeaveType
from app.services.balance_service import BalanceService


def _future(days):
    return date.today() + timedelta(days=days)


def _payload(start, end, leave_type="ANNUAL", **extra):
    body = {
        "leaveType": leave_type,
        "startDate": start.isoformat(),
        "endDate": end.isoformat(),
        "reason": "Family trip",
    }
    body.update(extra)
    return body


@pytest.fixture
def funded_employee(db_session, employee, hr_user):
    """Employee with an annual allocation for the current year, which every request is charged to."""
    BalanceService(db_session).allocate(hr_user, employee.id, LeaveType.ANNUAL, date.today().year, 21)
    return employee


def _submit(client, headers, start, end, **extra):
    return client.post("/api/leave/requests", headers=headers, json=_payload(start, end, **extra))


def test_requires_session(client):
    response = client.get("/api/leave/requests")
    assert response.status_code == status.HTTP_401_UNAUTHORIZED
    body = response.json()
    assert body["success"] is False
    assert body["code"] == "AUTH_FAILED"


def test_create_request(client, funded_employee, manager, login):
    headers = login(funded_employee)

    response = _submit(client, headers, _future(10), _future(12))

    assert response.status_code == status.HTTP_201_CREATED
    body = response.json()
    assert body["success"] is True
    request = body["data"]["request"]
    assert request["status"] == "PENDING"
    assert request["days"] == 3
    assert request["balanceYear"] == date.today().year
    assert request["leaveType"] == "ANNUAL"
    assert request["approverId"] == manager.id
    assert "RateLimit-Remaining" in response.headers


def test_manager_cannot_create_request(client, manager, login):
    headers = login(manager)

    response = _submit(client, headers, _future(10), _future(12))

    assert response.status_code == status.HTTP_403_FORBIDDEN
    body = response.json()
    assert body["code"] == "PERMISSION_DENIED"
    assert body["error"] == "Only employees can submit leave requests."


def test_invalid_range_and_past_dates(client, funded_employee, login):
    headers = login(funded_employee)

    backwards = _submit(client, headers, _future(12), _future(10))
    past = _submit(client, headers, date.today() - timedelta(days=1), _future(1))

    assert backwards.status_code == 400
    assert backwards.json()["code"] == "INVALID_DATE_RANGE"
    assert past.status_code == 400
    assert past.json()["code"] == "PAST_DATE"


def test_malformed_body_is_a_validation_error(client, funded_employee, login):
    headers = login(funded_employee)
    body = _payload(_future(10), _future(12))
    del body["reason"]

    response = client.post("/api/leave/requests", headers=headers, json=body)

    assert response.status_code == 400
    payload = response.json()
    assert payload["code"] == "VALIDATION_ERROR"
    assert "reason" in [f["field"] for f in payload["details"]["fields"]]


def test_overlap_and_insufficient_balance(client, funded_employee, login):
    headers = login(funded_employee)
    assert _submit(client, headers, _future(10), _future(12)).status_code == 201

    overlap = _submit(client, headers, _future(11), _future(13))
    too_long = _submit(client, headers, _future(20), _future(49))

    assert overlap.status_code == 400
    assert overlap.json()["code"] == "OVERLAPPING_REQUEST"
    assert too_long.status_code == 400
    assert too_long.json()["code"] == "INSUFFICIENT_BALANCE"
    assert too_long.json()["details"]["availableDays"] == 21


def test_approval_flow_updates_balance(client, funded_employee, manager, login):
    employee_headers = login(funded_employee)
    manager_headers = login(manager)
    start = _future(10)
    created = _submit(client, employee_headers, start, start + timedelta(days=2)).json()["data"]["request"]

    queue = client.get("/api/leave/approvals", headers=manager_headers)
    approved = client.post(
        f"/api/leave/approvals/{created['id']}/approve",
        headers=manager_headers,
        json={"comments": "Have fun"},
    )
    again = client.post(f"/api/leave/approvals/{created['id']}/approve", headers=manager_headers)
    balances = client.get(f"/api/leave/balances?year={date.today().year}", headers=employee_headers)

    assert queue.status_code == 200
    assert [r["id"] for r in queue.json()["data"]["requests"]] == [created["id"]]
    assert queue.json()["data"]["requests"][0]["user"]["email"] == funded_employee.email
    assert approved.status_code == 200
    assert approved.json()["data"]["request"]["status"] == "APPROVED"
    assert approved.json()["data"]["request"]["comments"] == "Have fun"
    assert again.status_code == 400
    assert again.json()["code"] == "NOT_PENDING"
    annual = [b for b in balances.json()["data"]["balances"] if b["leaveType"] == "ANNUAL"][0]
    assert annual["used"] == 3
    assert annual["remaining"] == 18


def test_reject_without_body(client, funded_employee, manager, login):
    employee_headers = login(funded_employee)
    manager_headers = login(manager)
    created = _submit(client, employee_headers, _future(10), _future(10)).json()["data"]["request"]

    response = client.post(f"/api/leave/approvals/{created['id']}/reject", headers=manager_headers)

    assert response.status_code == 200
    assert response.json()["data"]["request"]["status"] == "REJECTED"


def test_unknown_request_is_404(client, manager, login):
    response = client.post("/api/leave/approvals/9999/approve", headers=login(manager))

    assert response.status_code == 404
    assert response.json()["code"] == "NOT_FOUND"


def test_employee_cannot_see_approval_queue(client, employee, login):
    response = client.get("/api/leave/approvals", headers=login(employee))

    assert response.status_code == 403


def test_own_requests_are_paginated(client, funded_employee, login):
    headers = login(funded_employee)
    for offset in (10, 20, 30):
        assert _submit(client, headers, _future(offset), _future(offset)).status_code == 201

    response = client.get("/api/leave/requests?page=1&limit=2", headers=headers)

    data = response.json()["data"]
    assert len(data["requests"]) == 2
    assert data["pagination"] == {"page": 1, "limit": 2, "total": 3, "pages": 2}


def test_balances_are_bootstrapped_on_first_read(client, employee, login):
    headers = login(employee)

    first = client.get("/api/leave/balances", headers=headers).json()["data"]["balances"]
    second = client.get("/api/leave/balances", headers=headers).json()["data"]["balances"]

    assert {b["leaveType"]: b["total"] for b in first} == {"ANNUAL": 21, "SICK": 10, "PERSONAL": 5, "EMERGENCY": 3}
    assert [b["id"] for b in first] == [b["id"] for b in second]


def test_hr_allocates_balance(client, employee, hr_user, login):
    year = date.today().year
    body = {"leaveType": "MATERNITY", "year": year, "total": 90}

    denied = client.put(f"/api/leave/balances/{employee.id}", headers=login(employee), json=body)
    allowed = client.put(f"/api/leave/balances/{employee.id}", headers=login(hr_user), json=body)

    assert denied.status_code == 403
    assert allowed.status_code == 200
    balance = allowed.json()["data"]["balance"]
    assert balance["remaining"] == 90
    assert balance["userId"] == employee.id


def test_manager_list_is_for_employees(client, employee, manager, login):
    listed = client.get("/api/leave/managers", headers=login(employee))
    denied = client.get("/api/leave/managers", headers=login(manager))

    assert listed.status_code == 200
    assert [m["id"] for m in listed.json()["data"]["managers"]] == [manager.id]
    assert denied.status_code == 403
    assert denied.json()["error"] == "Only employees can access manager list"


def test_history_scoping(client, funded_employee, manager, login):
    employee_headers = login(funded_employee)
    _submit(client, employee_headers, _future(10), _future(10))

    own = client.get("/api/leave/history", headers=employee_headers).json()["data"]
    everyone = client.get("/api/leave/history", headers=login(manager)).json()["data"]
    filtered = client.get(
        "/api/leave/history",
        headers=employee_headers,
        params={"startDate": "2000-01-01", "endDate": "2000-12-31"},
    ).json()["data"]

    assert own["pagination"]["total"] == 1
    assert everyone["pagination"]["total"] == 1
    assert filtered["pagination"]["total"] == 0


def test_dashboard_stats(client, funded_employee, manager, login):
    employee_headers = login(funded_employee)
    _submit(client, employee_headers, _future(10), _future(10))

    mine = client.get("/api/dashboard/stats", headers=employee_headers).json()["data"]
    theirs = client.get("/api/dashboard/stats", headers=login(manager)).json()["data"]

    assert mine["pendingRequestsCount"] == 1
    assert len(mine["recentRequests"]) == 1
    assert "pendingApprovals" not in mine
    assert theirs["pendingApprovals"] == 1
    assert theirs["teamMemberCount"] == 1
