"""
Approval Transition Coordinator

Resolves a pending leave request and, on approval, debits the ledger in the
same database transaction:

1. Claim: UPDATE ... WHERE id = :id AND status = 'pending'. Only one caller
   can win the claim; everyone else sees zero affected rows.
2. Debit (approval only): Ledger.debit inside the same transaction.
3. Audit entry, then COMMIT. Any failure before the commit rolls back the
   claim too, so a request is never approved without its debit.
4. Best-effort notification, outside the transaction.
"""
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.orm import Session

from hr_leave.core.exceptions import ConcurrentModificationError, InvalidInputError, NotFoundError
from hr_leave.models.leave_request import LeaveRequest, LeaveStatus
from hr_leave.schemas.auth import Actor
from hr_leave.schemas.notification import LeaveEvent
from hr_leave.services.audit import AuditService
from hr_leave.services.base import BaseService
from hr_leave.services.ledger import LeaveLedger
from hr_leave.services.leave_requests import LeaveRequestStore
from hr_leave.services.notification import Notifier, notify_safely


class TransitionCoordinator(BaseService):

    def __init__(
        self,
        db: Session,
        ledger: Optional[LeaveLedger] = None,
        notifier: Optional[Notifier] = None
    ):
        super().__init__(db)
        self.ledger = ledger or LeaveLedger(db)
        self.requests = LeaveRequestStore(db)
        self.audit = AuditService(db)
        self.notifier = notifier

    def transition(
        self,
        request_id: int,
        new_status: LeaveStatus,
        actor: Actor,
        admin_notes: Optional[str] = None
    ) -> LeaveRequest:
        try:
            new_status = LeaveStatus(new_status)
        except ValueError:
            raise InvalidInputError(f"Unknown leave status '{new_status}'")
        if not new_status.is_terminal:
            raise InvalidInputError("A leave request can only be transitioned to approved or rejected")
        if actor is None or not actor.id:
            raise InvalidInputError("Missing actor for leave transition")

        try:
            self._claim(request_id, new_status, actor, admin_notes)
            leave = self.requests.get(request_id)

            balance = None
            if new_status == LeaveStatus.APPROVED:
                balance = self.ledger.debit(
                    leave.employee_id,
                    leave.leave_type,
                    leave.balance_year,
                    leave.days_requested,
                )

            self.audit.log_action(
                action="approve_leave" if new_status == LeaveStatus.APPROVED else "reject_leave",
                entity_type="leave_request",
                entity_id=leave.id,
                actor=actor,
                details={
                    "employee_id": leave.employee_id,
                    "leave_type": leave.leave_type,
                    "days_requested": leave.days_requested,
                    "comment": admin_notes,
                },
                before_state={"status": LeaveStatus.PENDING.value},
                after_state={
                    "status": leave.status,
                    "approved_by": leave.approved_by,
                    "balance": {
                        "used_days": balance.used_days,
                        "remaining_days": balance.remaining_days,
                    } if balance else None,
                },
            )
            self.db.commit()
        except Exception:
            # Undo the claim together with any partial debit
            self.db.rollback()
            raise

        leave = self.requests.get(request_id)
        self.log_info(
            f"Leave request {leave.id} {leave.status} by {actor.id}",
            leave_request_id=leave.id,
            status=leave.status,
        )

        notify_safely(self.notifier, LeaveEvent(
            type=f"leave_request.{leave.status}",
            employee_id=leave.employee_id,
            leave_type=leave.leave_type,
            days=leave.days_requested,
            status=leave.status,
            request_id=leave.id,
        ))
        return leave

    def _claim(self, request_id: int, new_status: LeaveStatus, actor: Actor, admin_notes: Optional[str]) -> None:
        now = datetime.now(timezone.utc)
        values = {
            LeaveRequest.status: new_status.value,
            LeaveRequest.approved_by: actor.id,
            LeaveRequest.updated_at: now,
        }
        if new_status == LeaveStatus.APPROVED:
            values[LeaveRequest.approved_at] = now
        if admin_notes is not None:
            values[LeaveRequest.admin_notes] = admin_notes

        claimed = self.db.query(LeaveRequest).filter(
            LeaveRequest.id == request_id,
            LeaveRequest.status == LeaveStatus.PENDING.value,
        ).update(values, synchronize_session=False)

        if claimed == 0:
            current = self.db.query(LeaveRequest.status).filter(LeaveRequest.id == request_id).scalar()
            if current is None:
                raise NotFoundError("Leave request", request_id)
            self.log_warning(
                f"Leave request {request_id} already {current}; transition to {new_status.value} refused",
                leave_request_id=request_id,
                actor_id=actor.id,
            )
            raise ConcurrentModificationError(request_id, current_status=current)
