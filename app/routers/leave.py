from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query

from app.core.permissions import Capability
from app.core.schemas import ApiResponse, Pagination
from app.models.leave_request import LeaveStatus
from app.models.user import User
from app.routers.auth_deps import api_rate_limit, get_current_user, get_leave_service, require_capability
from app.schemas.leave import (
    ApproverResponse,
    BalanceAllocation,
    LeaveBalanceResponse,
    LeaveDecision,
    LeaveRequestCreate,
    LeaveRequestDetail,
    LeaveRequestResponse,
)
from app.services.leave_service import LeaveService

router = APIRouter(
    prefix="/leave",
    tags=["leave"],
    dependencies=[Depends(api_rate_limit)],
)


def _page(items, total: int, page: int, limit: int) -> dict:
    return {
        "requests": [LeaveRequestDetail.model_validate(item).to_api() for item in items],
        "pagination": Pagination.build(page, limit, total).model_dump(),
    }


@router.get("/requests")
def list_my_requests(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    status: Optional[LeaveStatus] = None,
    current_user: User = Depends(require_capability(Capability.VIEW_OWN_LEAVE)),
    service: LeaveService = Depends(get_leave_service),
):
    items, total = service.list_own_requests(current_user, page=page, limit=limit, status=status)
    return ApiResponse.ok(_page(items, total, page, limit)).to_dict()


@router.post("/requests", status_code=201)
def create_request(
    payload: LeaveRequestCreate,
    current_user: User = Depends(require_capability(Capability.SUBMIT_LEAVE)),
    service: LeaveService = Depends(get_leave_service),
):
    leave = service.create_request(
        current_user,
        leave_type=payload.leave_type,
        start_date=payload.start_date,
        end_date=payload.end_date,
        reason=payload.reason,
        is_half_day=payload.is_half_day,
        manager_id=payload.manager_id,
    )
    return ApiResponse.ok(
        {"request": LeaveRequestResponse.model_validate(leave).to_api()},
        message="Leave request submitted successfully",
    ).to_dict()


@router.get("/balances")
def get_balances(
    year: Optional[int] = Query(None, ge=2000, le=2100),
    current_user: User = Depends(require_capability(Capability.VIEW_OWN_LEAVE)),
    service: LeaveService = Depends(get_leave_service),
):
    balances = service.balances.list_balances(current_user.id, year)
    return ApiResponse.ok(
        {"balances": [LeaveBalanceResponse.model_validate(b).to_api() for b in balances]}
    ).to_dict()


@router.put("/balances/{user_id}")
def allocate_balance(
    user_id: int,
    payload: BalanceAllocation,
    current_user: User = Depends(require_capability(Capability.ALLOCATE_BALANCE)),
    service: LeaveService = Depends(get_leave_service),
):
    balance = service.balances.allocate(current_user, user_id, payload.leave_type, payload.year, payload.total)
    return ApiResponse.ok(
        {"balance": LeaveBalanceResponse.model_validate(balance).to_api()},
        message="Leave balance updated",
    ).to_dict()


@router.get("/approvals")
def pending_approvals(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    current_user: User = Depends(require_capability(Capability.APPROVE_LEAVE)),
    service: LeaveService = Depends(get_leave_service),
):
    items, total = service.list_pending(current_user, page=page, limit=limit)
    return ApiResponse.ok(_page(items, total, page, limit)).to_dict()


@router.post("/approvals/{request_id}/approve")
def approve_request(
    request_id: int,
    payload: Optional[LeaveDecision] = None,
    current_user: User = Depends(require_capability(Capability.APPROVE_LEAVE)),
    service: LeaveService = Depends(get_leave_service),
):
    leave = service.approve(current_user, request_id, payload.comments if payload else None)
    return ApiResponse.ok(
        {"request": LeaveRequestResponse.model_validate(leave).to_api()},
        message="Leave request approved successfully",
    ).to_dict()


@router.post("/approvals/{request_id}/reject")
def reject_request(
    request_id: int,
    payload: Optional[LeaveDecision] = None,
    current_user: User = Depends(require_capability(Capability.APPROVE_LEAVE)),
    service: LeaveService = Depends(get_leave_service),
):
    leave = service.reject(current_user, request_id, payload.comments if payload else None)
    return ApiResponse.ok(
        {"request": LeaveRequestResponse.model_validate(leave).to_api()},
        message="Leave request rejected successfully",
    ).to_dict()


@router.get("/managers")
def list_managers(
    current_user: User = Depends(require_capability(Capability.LIST_APPROVERS)),
    service: LeaveService = Depends(get_leave_service),
):
    managers = service.list_approvers(current_user)
    return ApiResponse.ok(
        {"managers": [ApproverResponse.model_validate(m).to_api() for m in managers]}
    ).to_dict()


@router.get("/history")
def leave_history(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    status: Optional[LeaveStatus] = None,
    start_date: Optional[date] = Query(None, alias="startDate"),
    end_date: Optional[date] = Query(None, alias="endDate"),
    current_user: User = Depends(get_current_user),
    service: LeaveService = Depends(get_leave_service),
):
    items, total = service.history(
        current_user, page=page, limit=limit, status=status, start_date=start_date, end_date=end_date
    )
    return ApiResponse.ok(_page(items, total, page, limit)).to_dict()
