from typing import List, Optional

from fastapi import APIRouter, Depends, status

from hr_leave.dependencies import get_ledger
from hr_leave.routers.auth_deps import get_current_actor, require_admin, require_hr, resolve_employee_scope
from hr_leave.schemas.auth import Actor
from hr_leave.schemas.leave import (
    GrantedLeaveType,
    LeaveBalanceCorrection,
    LeaveBalanceGrant,
    LeaveBalanceResponse,
)
from hr_leave.services.ledger import LeaveLedger

router = APIRouter(prefix="/leave/balances", tags=["Leave Balances"])


@router.get("", response_model=List[LeaveBalanceResponse])
def get_leave_balances(
    employee_id: Optional[str] = None,
    ledger: LeaveLedger = Depends(get_ledger),
    actor: Actor = Depends(get_current_actor),
):
    # Admin and HR can see all leave balances, employees see only their own
    return ledger.list_balances(resolve_employee_scope(actor, employee_id))


@router.get("/granted", response_model=List[GrantedLeaveType])
def get_granted_leave_types(
    ledger: LeaveLedger = Depends(get_ledger),
    actor: Actor = Depends(get_current_actor),
):
    """Leave types the caller can still request (remaining days > 0)."""
    return ledger.granted_leave_types(actor.id)


@router.post("", response_model=LeaveBalanceResponse, status_code=status.HTTP_201_CREATED)
def grant_leave_balance(
    payload: LeaveBalanceGrant,
    ledger: LeaveLedger = Depends(get_ledger),
    actor: Actor = Depends(require_hr()),
):
    return ledger.grant(
        payload.employee_id,
        payload.leave_type,
        payload.year,
        payload.total_days,
        actor=actor,
    )


@router.patch("/{balance_id}", response_model=LeaveBalanceResponse)
def correct_leave_balance(
    balance_id: int,
    payload: LeaveBalanceCorrection,
    ledger: LeaveLedger = Depends(get_ledger),
    actor: Actor = Depends(require_hr()),
):
    return ledger.correct(balance_id, payload.used_days, actor=actor)


@router.delete("/{balance_id}")
def delete_leave_balance(
    balance_id: int,
    ledger: LeaveLedger = Depends(get_ledger),
    actor: Actor = Depends(require_admin()),
):
    ledger.delete(balance_id, actor=actor)
    return {"success": True, "message": "Leave balance deleted successfully"}
