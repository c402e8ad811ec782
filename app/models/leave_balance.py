from sqlalchemy import Column, Integer, Float, Enum, ForeignKey, UniqueConstraint, CheckConstraint
from sqlalchemy.orm import relationship
from app.database import Base
from app.models.leave_request import LeaveType

class LeaveBalance(Base):
    __tablename__ = "leave_balances"
    __table_args__ = (
        UniqueConstraint("user_id", "leave_type", "year", name="uq_leave_balance_user_type_year"),
        CheckConstraint("remaining >= 0", name="ck_leave_balance_remaining_non_negative"),
        CheckConstraint("used >= 0", name="ck_leave_balance_used_non_negative"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    leave_type = Column(Enum(LeaveType), nullable=False, index=True)
    year = Column(Integer, nullable=False)
    # remaining is kept equal to total - used by every writer
    total = Column(Float, default=0.0, nullable=False)
    used = Column(Float, default=0.0, nullable=False)
    remaining = Column(Float, default=0.0, nullable=False)

    user = relationship("User", back_populates="leave_balances")
