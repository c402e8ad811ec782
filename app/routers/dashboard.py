from fastapi import APIRouter, Depends

from app.core.schemas import ApiResponse
from app.models.user import User
from app.routers.auth_deps import api_rate_limit, get_current_user, get_leave_service
from app.schemas.leave import LeaveBalanceResponse, LeaveRequestDetail
from app.services.dashboard_service import DashboardService
from app.services.leave_service import LeaveService

router = APIRouter(
    prefix="/dashboard",
    tags=["dashboard"],
    dependencies=[Depends(api_rate_limit)],
)

_REQUEST_LISTS = ("recent_requests", "recent_decisions")
_CAMEL_KEYS = {
    "leave_balances": "leaveBalances",
    "recent_requests": "recentRequests",
    "pending_requests_count": "pendingRequestsCount",
    "pending_approvals": "pendingApprovals",
    "total_approved": "totalApproved",
    "total_rejected": "totalRejected",
    "yearly_status_counts": "yearlyStatusCounts",
    "recent_decisions": "recentDecisions",
    "team_member_count": "teamMemberCount",
}


@router.get("/stats")
def dashboard_stats(
    current_user: User = Depends(get_current_user),
    leave_service: LeaveService = Depends(get_leave_service),
):
    stats = DashboardService(leave_service.db, leave_service).stats(current_user)

    data = {}
    for key, value in stats.items():
        if key == "leave_balances":
            value = [LeaveBalanceResponse.model_validate(b).to_api() for b in value]
        elif key in _REQUEST_LISTS:
            value = [LeaveRequestDetail.model_validate(r).to_api() for r in value]
        data[_CAMEL_KEYS[key]] = value
    return ApiResponse.ok(data).to_dict()
