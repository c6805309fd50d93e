from pydantic import BaseModel, ConfigDict, Field, model_validator
from datetime import date, datetime
from typing import Optional

from hr_leave.models.leave_request import LeaveStatus


# --- Leave types ---

class LeaveTypeBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: str = ""
    max_days_per_year: int = Field(..., ge=0)
    carry_forward: bool = False


class LeaveTypeCreate(LeaveTypeBase):
    pass


class LeaveTypeUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = None
    max_days_per_year: Optional[int] = Field(None, ge=0)
    carry_forward: Optional[bool] = None


class LeaveTypeResponse(LeaveTypeBase):
    model_config = ConfigDict(from_attributes=True)

    id: int


# --- Balances ---

class LeaveBalanceGrant(BaseModel):
    employee_id: str = Field(..., min_length=1)
    leave_type: str = Field(..., min_length=1)
    year: int = Field(..., ge=1900, le=9999)
    total_days: float = Field(..., ge=0)


class LeaveBalanceCorrection(BaseModel):
    used_days: float = Field(..., ge=0)


class LeaveBalanceResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    employee_id: str
    leave_type: str
    year: int
    total_days: float
    used_days: float
    remaining_days: float


class GrantedLeaveType(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    leave_type: str
    year: int
    total_days: float
    used_days: float
    remaining_days: float


# --- Requests ---

class LeaveRequestCreate(BaseModel):
    # Admin/HR may file on behalf of an employee; otherwise the caller is the employee
    employee_id: Optional[str] = None
    leave_type: str = Field(..., min_length=1)
    start_date: date
    end_date: date
    days_requested: float = Field(..., gt=0)
    reason: str = ""

    @model_validator(mode="after")
    def check_date_order(self):
        if self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self


class LeaveRequestCreated(BaseModel):
    success: bool = True
    id: int


class LeaveRequestResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    employee_id: str
    leave_type: str
    start_date: date
    end_date: date
    days_requested: float
    reason: str
    status: LeaveStatus
    approved_by: Optional[str] = None
    approved_at: Optional[datetime] = None
    admin_notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class LeaveTransitionRequest(BaseModel):
    # Only approved/rejected are valid targets; the coordinator rejects "pending"
    status: LeaveStatus
    admin_notes: Optional[str] = None
