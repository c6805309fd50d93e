from sqlalchemy import Column, Integer, String, Date, Float, DateTime, Text, CheckConstraint
from sqlalchemy.orm import validates
from sqlalchemy.sql import func
from hr_leave.database import Base
import enum


class LeaveStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"

    @property
    def is_terminal(self) -> bool:
        return self is not LeaveStatus.PENDING


class LeaveRequest(Base):
    __tablename__ = "leave_requests"
    __table_args__ = (
        CheckConstraint("days_requested > 0", name="ck_leave_request_days_positive"),
        CheckConstraint("end_date >= start_date", name="ck_leave_request_date_order"),
    )

    id = Column(Integer, primary_key=True, index=True)
    employee_id = Column(String, index=True, nullable=False)
    leave_type = Column(String, index=True, nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    days_requested = Column(Float, nullable=False)
    reason = Column(Text, nullable=False, default="")
    # Stored as the enum value string; transitions go through a conditional UPDATE on this column
    status = Column(String(20), nullable=False, default=LeaveStatus.PENDING.value, index=True)
    approved_by = Column(String, nullable=True)
    approved_at = Column(DateTime(timezone=True), nullable=True)
    admin_notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    @validates("status")
    def validate_status(self, key, value):
        return LeaveStatus(value).value

    @validates("days_requested")
    def validate_days_requested(self, key, value):
        if value is None or float(value) <= 0:
            raise ValueError("days_requested must be greater than zero")
        return float(value)

    @property
    def balance_year(self) -> int:
        """Year of the ledger bucket this request draws from."""
        return self.start_date.year

    def __repr__(self):
        return f"<LeaveRequest #{self.id} {self.employee_id} {self.leave_type} {self.status}>"
