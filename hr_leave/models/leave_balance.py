from sqlalchemy import Column, Integer, String, Float, DateTime, UniqueConstraint, CheckConstraint
from sqlalchemy.orm import validates
from sqlalchemy.sql import func
from hr_leave.database import Base


class LeaveBalance(Base):
    """
    One ledger bucket per (employee, leave type, year).

    remaining_days is derived: every write recomputes it from total_days and
    used_days in the same statement.
    """
    __tablename__ = "leave_balances"
    __table_args__ = (
        UniqueConstraint("employee_id", "leave_type", "year", name="uq_leave_balance_bucket"),
        CheckConstraint("used_days >= 0", name="ck_leave_balance_used_non_negative"),
        CheckConstraint("used_days <= total_days", name="ck_leave_balance_used_within_total"),
    )

    id = Column(Integer, primary_key=True, index=True)
    employee_id = Column(String, index=True, nullable=False)
    leave_type = Column(String, index=True, nullable=False)  # LeaveType.name
    year = Column(Integer, nullable=False)
    total_days = Column(Float, nullable=False, default=0.0)
    used_days = Column(Float, nullable=False, default=0.0)
    remaining_days = Column(Float, nullable=False, default=0.0)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    @validates("employee_id", "leave_type")
    def validate_key_part(self, key, value):
        if value is None or not str(value).strip():
            raise ValueError(f"{key} is required")
        return str(value).strip()

    @validates("total_days", "used_days")
    def validate_days(self, key, value):
        if value is None or float(value) < 0:
            raise ValueError(f"{key} must be a non-negative number")
        return float(value)

    @property
    def is_consistent(self) -> bool:
        return (
            0 <= self.used_days <= self.total_days
            and self.remaining_days == self.total_days - self.used_days
        )

    def __repr__(self):
        return (
            f"<LeaveBalance {self.employee_id}/{self.leave_type}/{self.year} "
            f"{self.used_days}/{self.total_days}>"
        )
