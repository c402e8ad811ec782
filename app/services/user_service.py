from typing import List, Optional, Tuple

from sqlalchemy.orm import joinedload

from app.core.exceptions import ValidationError
from app.core.permissions import APPROVER_ROLES, Capability, ensure_capability
from app.core.security import sanitize_input
from app.models.department import Department
from app.models.user import User, UserRole
from app.services import auth as auth_service
from app.services.base import BaseService


class UserService(BaseService):
    def list_users(
        self,
        actor: User,
        page: int = 1,
        limit: int = 10,
        role: Optional[UserRole] = None,
        department_id: Optional[int] = None,
    ) -> Tuple[List[User], int]:
        ensure_capability(actor.role, Capability.MANAGE_USERS)
        query = self.db.query(User)
        if role:
            query = query.filter(User.role == role)
        if department_id:
            query = query.filter(User.department_id == department_id)
        total = query.count()
        users = query.options(joinedload(User.department)).order_by(
            User.created_at.desc(), User.id.desc()
        ).offset((page - 1) * limit).limit(limit).all()
        return users, total

    def create_user(
        self,
        actor: User,
        email: str,
        password: str,
        first_name: str,
        last_name: str,
        role: UserRole = UserRole.EMPLOYEE,
        department_id: Optional[int] = None,
        approver_id: Optional[int] = None,
        phone_number: Optional[str] = None,
    ) -> User:
        """Create an active, already-verified account on behalf of HR/admin."""
        ensure_capability(actor.role, Capability.MANAGE_USERS)
        email = email.lower()
        if self.db.query(User).filter(User.email == email).first():
            raise ValidationError("A user with this email already exists", details={"fields": [{"field": "email", "msg": "already registered"}]})
        if department_id is not None and self.db.get(Department, department_id) is None:
            raise ValidationError("Department not found", details={"fields": [{"field": "departmentId", "msg": "unknown department"}]})
        if approver_id is not None:
            approver = self.db.get(User, approver_id)
            if approver is None or approver.role not in APPROVER_ROLES:
                raise ValidationError("Approver must be a manager, HR or admin", details={"fields": [{"field": "approverId", "msg": "invalid approver"}]})

        user = User(
            email=email,
            hashed_password=auth_service.get_password_hash(password),
            first_name=first_name,
            last_name=last_name,
            role=role,
            department_id=department_id,
            approver_id=approver_id,
            phone_number=phone_number,
            is_active=True,
            is_email_verified=True,
        )
        self.db.add(user)
        self.db.commit()
        self.db.refresh(user)
        self.log_info(f"User created: {user.email}", user_id=user.id, role=role.value, actor_id=actor.id)
        return user

    def update_profile(
        self,
        user: User,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
        phone_number: Optional[str] = None,
    ) -> User:
        """Self-service edit of the caller's own name and phone; omitted fields are kept."""
        changes = {
            "first_name": first_name,
            "last_name": last_name,
            "phone_number": phone_number,
        }
        changed = []
        for field, value in changes.items():
            if value is None:
                continue
            setattr(user, field, sanitize_input(value))
            changed.append(field)

        self.db.commit()
        self.db.refresh(user)
        self.log_info(f"Profile updated: {user.email}", user_id=user.id, fields=changed)
        return user
