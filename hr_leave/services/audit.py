from datetime import date, datetime
from enum import Enum
from typing import Any, Optional

from hr_leave.models.audit_log import AuditLog
from hr_leave.schemas.auth import Actor
from hr_leave.services.base import BaseService


def _sanitize(obj: Any) -> Any:
    """Make nested pydantic models, enums and dates JSON-column friendly."""
    if hasattr(obj, "model_dump"):
        return _sanitize(obj.model_dump())
    if isinstance(obj, dict):
        return {k: _sanitize(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [_sanitize(i) for i in obj]
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, (date, datetime)):
        return obj.isoformat()
    return obj


class AuditService(BaseService):
    def log_action(
        self,
        action: str,
        entity_type: str,
        entity_id: Optional[int],
        actor: Optional[Actor],
        details: Optional[dict] = None,
        before_state: Optional[dict] = None,
        after_state: Optional[dict] = None
    ) -> AuditLog:
        """
        Stage an append-only audit entry in the caller's transaction.

        The entry is flushed, not committed: it lands together with the
        mutation it describes, or not at all.
        """
        entry = AuditLog(
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            actor_id=actor.id if actor else None,
            actor_role=actor.role.value if actor else None,
            details=_sanitize(details or {}),
            before_state=_sanitize(before_state),
            after_state=_sanitize(after_state)
        )
        self.db.add(entry)
        self.db.flush()
        return entry
