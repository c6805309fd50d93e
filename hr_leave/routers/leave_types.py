from typing import List

from fastapi import APIRouter, Depends, status

from hr_leave.dependencies import get_registry
from hr_leave.routers.auth_deps import get_current_actor, require_admin
from hr_leave.schemas.auth import Actor
from hr_leave.schemas.leave import LeaveTypeCreate, LeaveTypeResponse, LeaveTypeUpdate
from hr_leave.services.leave_types import LeaveTypeRegistry

router = APIRouter(prefix="/leave/types", tags=["Leave Types"])


@router.get("", response_model=List[LeaveTypeResponse])
def list_leave_types(
    registry: LeaveTypeRegistry = Depends(get_registry),
    actor: Actor = Depends(get_current_actor),
):
    return registry.list()


@router.post("", response_model=LeaveTypeResponse, status_code=status.HTTP_201_CREATED)
def create_leave_type(
    payload: LeaveTypeCreate,
    registry: LeaveTypeRegistry = Depends(get_registry),
    actor: Actor = Depends(require_admin()),
):
    return registry.create(
        name=payload.name,
        max_days_per_year=payload.max_days_per_year,
        carry_forward=payload.carry_forward,
        description=payload.description,
    )


@router.put("/{leave_type_id}", response_model=LeaveTypeResponse)
def update_leave_type(
    leave_type_id: int,
    payload: LeaveTypeUpdate,
    registry: LeaveTypeRegistry = Depends(get_registry),
    actor: Actor = Depends(require_admin()),
):
    return registry.update(leave_type_id, payload.model_dump(exclude_unset=True))


@router.delete("/{leave_type_id}")
def delete_leave_type(
    leave_type_id: int,
    registry: LeaveTypeRegistry = Depends(get_registry),
    actor: Actor = Depends(require_admin()),
):
    registry.delete(leave_type_id)
    return {"success": True}
