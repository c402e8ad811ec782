import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.exceptions import ValidationError
from app.core.permissions import Capability
from app.core.schemas import ApiResponse
from app.database import get_db
from app.models.department import Department
from app.models.user import User
from app.routers.auth_deps import api_rate_limit, get_current_user, require_capability
from app.schemas.user import DepartmentCreate, DepartmentResponse

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/departments",
    tags=["departments"],
    dependencies=[Depends(api_rate_limit)],
)


@router.get("")
def list_departments(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    departments = db.query(Department).order_by(Department.name).all()
    return ApiResponse.ok(
        {"departments": [DepartmentResponse.model_validate(d).to_api() for d in departments]}
    ).to_dict()


@router.post("", status_code=201)
def create_department(
    payload: DepartmentCreate,
    current_user: User = Depends(require_capability(Capability.MANAGE_USERS)),
    db: Session = Depends(get_db),
):
    if db.query(Department).filter(Department.name == payload.name).first():
        raise ValidationError("Department already exists", details={"fields": [{"field": "name", "msg": "already exists"}]})
    department = Department(name=payload.name, description=payload.description)
    db.add(department)
    db.commit()
    db.refresh(department)
    logger.info(f"Department created: {department.name}", extra={"actor_id": current_user.id})
    return ApiResponse.ok({"department": DepartmentResponse.model_validate(department).to_api()}).to_dict()
