"""
Actor identity and RBAC dependencies.

Authentication happens upstream; the gateway forwards the caller's id and
role as headers. These dependencies turn them into an Actor and enforce
role requirements per endpoint.
"""
import logging
from typing import Callable, List

from fastapi import Depends, Request

from hr_leave.core.config import settings
from hr_leave.core.exceptions import AccessDeniedError, AuthenticationError
from hr_leave.schemas.auth import Actor, ActorRole

logger = logging.getLogger(__name__)


def get_current_actor(request: Request) -> Actor:
    """
    Resolves the calling actor from the identity headers.
    """
    actor_id = (request.headers.get(settings.actor_id_header) or "").strip()
    raw_role = (request.headers.get(settings.actor_role_header) or "").strip().lower()

    if not actor_id:
        logger.warning("Authentication failed: missing actor id header")
        raise AuthenticationError()
    try:
        role = ActorRole(raw_role)
    except ValueError:
        logger.warning(f"Authentication failed: unknown role '{raw_role}' for actor {actor_id}")
        raise AuthenticationError("Unknown caller role")

    return Actor(id=actor_id, role=role)


def require_role(allowed_roles: List[ActorRole]) -> Callable:
    """
    Dependency factory that checks if the actor has one of the allowed roles.

    Usage:
        @router.delete("/types/{id}")
        def delete_type(actor: Actor = Depends(require_role([ActorRole.ADMIN]))):
            ...
    """
    def role_checker(actor: Actor = Depends(get_current_actor)) -> Actor:
        if actor.role not in allowed_roles:
            raise AccessDeniedError(
                f"Access denied. Required roles: {[r.value for r in allowed_roles]}"
            )
        return actor
    return role_checker


def require_hr():
    """Shorthand for roles that resolve requests and manage balances."""
    return require_role([ActorRole.ADMIN, ActorRole.HR])


def require_admin():
    """Shorthand for requiring admin role only."""
    return require_role([ActorRole.ADMIN])


def resolve_employee_scope(actor: Actor, employee_id: str | None) -> str | None:
    """
    Employees only ever see their own records; admin/HR may filter by any
    employee or omit the filter for the privileged "all" view.
    """
    if actor.is_privileged:
        return employee_id
    if employee_id and employee_id != actor.id:
        raise AccessDeniedError("Employees can only access their own leave records")
    return actor.id
