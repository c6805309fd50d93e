from sqlalchemy import Column, Integer, String, Boolean, DateTime, Text, CheckConstraint
from sqlalchemy.orm import validates
from sqlalchemy.sql import func
from hr_leave.database import Base


class LeaveType(Base):
    __tablename__ = "leave_types"
    __table_args__ = (
        CheckConstraint("max_days_per_year >= 0", name="ck_leave_type_max_days_non_negative"),
    )

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), unique=True, index=True, nullable=False)
    description = Column(Text, nullable=False, default="")
    max_days_per_year = Column(Integer, nullable=False)
    carry_forward = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    @validates("name")
    def validate_name(self, key, value):
        if not value or not value.strip():
            raise ValueError("Leave type name is required")
        return value.strip()

    @validates("max_days_per_year")
    def validate_max_days(self, key, value):
        if value is None or int(value) < 0:
            raise ValueError("max_days_per_year must be a non-negative integer")
        return int(value)

    def __repr__(self):
        return f"<LeaveType {self.name} ({self.max_days_per_year}d)>"
