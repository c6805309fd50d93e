from typing import List, Optional

from fastapi import APIRouter, Depends

from hr_leave.core.exceptions import AccessDeniedError
from hr_leave.dependencies import get_coordinator, get_request_store
from hr_leave.models.leave_request import LeaveStatus
from hr_leave.routers.auth_deps import get_current_actor, require_admin, require_hr, resolve_employee_scope
from hr_leave.schemas.auth import Actor
from hr_leave.schemas.leave import (
    LeaveRequestCreate,
    LeaveRequestCreated,
    LeaveRequestResponse,
    LeaveTransitionRequest,
)
from hr_leave.services.coordinator import TransitionCoordinator
from hr_leave.services.leave_requests import LeaveRequestStore


router = APIRouter(prefix="/leave/requests", tags=["Leave Requests"])


@router.post("", response_model=LeaveRequestCreated)
def create_leave_request(
    payload: LeaveRequestCreate,
    store: LeaveRequestStore = Depends(get_request_store),
    actor: Actor = Depends(get_current_actor),
):
    employee_id = payload.employee_id or actor.id
    if employee_id != actor.id and not actor.is_privileged:
        raise AccessDeniedError("Employees can only request leave for themselves")

    leave = store.create(
        employee_id=employee_id,
        leave_type=payload.leave_type,
        start_date=payload.start_date,
        end_date=payload.end_date,
        days_requested=payload.days_requested,
        reason=payload.reason,
    )
    return LeaveRequestCreated(id=leave.id)


@router.get("", response_model=List[LeaveRequestResponse])
def list_leave_requests(
    employee_id: Optional[str] = None,
    status: Optional[LeaveStatus] = None,
    store: LeaveRequestStore = Depends(get_request_store),
    actor: Actor = Depends(get_current_actor),
):
    scope = resolve_employee_scope(actor, employee_id)
    if scope is None:
        return store.list_all(status=status)
    return store.list_for_employee(scope, status=status)


@router.get("/{request_id}", response_model=LeaveRequestResponse)
def get_leave_request(
    request_id: int,
    store: LeaveRequestStore = Depends(get_request_store),
    actor: Actor = Depends(get_current_actor),
):
    leave = store.get(request_id)
    if not actor.is_privileged and leave.employee_id != actor.id:
        raise AccessDeniedError("Employees can only access their own leave records")
    return leave


@router.post("/{request_id}/transition", response_model=LeaveRequestResponse)
def transition_leave_request(
    request_id: int,
    payload: LeaveTransitionRequest,
    coordinator: TransitionCoordinator = Depends(get_coordinator),
    actor: Actor = Depends(require_hr()),
):
    return coordinator.transition(
        request_id,
        payload.status,
        actor=actor,
        admin_notes=payload.admin_notes,
    )


@router.delete("/{request_id}")
def delete_leave_request(
    request_id: int,
    store: LeaveRequestStore = Depends(get_request_store),
    actor: Actor = Depends(require_admin()),
):
    store.delete(request_id, actor=actor)
    return {"success": True, "message": "Leave request deleted successfully"}
