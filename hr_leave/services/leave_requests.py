from datetime import date
from typing import List, Optional

from sqlalchemy.orm import Session

from hr_leave.core.exceptions import InvalidInputError, NotFoundError
from hr_leave.models.leave_request import LeaveRequest, LeaveStatus
from hr_leave.schemas.auth import Actor
from hr_leave.schemas.notification import LeaveEvent
from hr_leave.services.audit import AuditService
from hr_leave.services.base import BaseService
from hr_leave.services.notification import Notifier, notify_safely


class LeaveRequestStore(BaseService):
    """
    Employee-submitted leave requests.

    Requests are created pending and only ever leave that state through
    TransitionCoordinator.transition.
    """

    def __init__(self, db: Session, notifier: Optional[Notifier] = None):
        super().__init__(db)
        self.notifier = notifier
        self.audit = AuditService(db)

    def create(
        self,
        employee_id: str,
        leave_type: str,
        start_date: date,
        end_date: date,
        days_requested: float,
        reason: Optional[str] = None
    ) -> LeaveRequest:
        missing = [
            name for name, value in (
                ("employee_id", employee_id),
                ("leave_type", leave_type),
                ("start_date", start_date),
                ("end_date", end_date),
                ("days_requested", days_requested),
            )
            if value in (None, "")
        ]
        if missing:
            raise InvalidInputError(f"Missing fields: {', '.join(missing)}", details={"missing": missing})
        if float(days_requested) <= 0:
            raise InvalidInputError("days_requested must be greater than zero")
        if end_date < start_date:
            raise InvalidInputError("end_date must not be before start_date")

        leave = LeaveRequest(
            employee_id=str(employee_id),
            leave_type=leave_type,
            start_date=start_date,
            end_date=end_date,
            days_requested=days_requested,
            reason=reason or "",
            status=LeaveStatus.PENDING,
        )
        self.db.add(leave)
        self.commit()
        self.db.refresh(leave)
        self.log_info(
            f"Leave request {leave.id} submitted by {leave.employee_id}",
            leave_type=leave.leave_type,
            days_requested=leave.days_requested,
        )

        notify_safely(self.notifier, LeaveEvent(
            type="leave_request.created",
            employee_id=leave.employee_id,
            leave_type=leave.leave_type,
            days=leave.days_requested,
            status=leave.status,
            request_id=leave.id,
        ))
        return leave

    def get(self, request_id: int) -> LeaveRequest:
        leave = (
            self.db.query(LeaveRequest)
            .filter(LeaveRequest.id == request_id)
            .populate_existing()
            .first()
        )
        if not leave:
            raise NotFoundError("Leave request", request_id)
        return leave

    def list_for_employee(self, employee_id: str, status: Optional[LeaveStatus] = None) -> List[LeaveRequest]:
        query = self.db.query(LeaveRequest).filter(LeaveRequest.employee_id == employee_id)
        if status:
            query = query.filter(LeaveRequest.status == LeaveStatus(status).value)
        return query.order_by(LeaveRequest.created_at.desc(), LeaveRequest.id.desc()).all()

    def list_all(self, status: Optional[LeaveStatus] = None) -> List[LeaveRequest]:
        query = self.db.query(LeaveRequest)
        if status:
            query = query.filter(LeaveRequest.status == LeaveStatus(status).value)
        return query.order_by(LeaveRequest.created_at.desc(), LeaveRequest.id.desc()).all()

    def delete(self, request_id: int, actor: Optional[Actor] = None) -> None:
        """Admin removal. Does not touch the ledger, even for approved requests."""
        leave = self.get(request_id)
        before_state = {"status": leave.status, "days_requested": leave.days_requested}
        deleted = self.db.query(LeaveRequest).filter(LeaveRequest.id == request_id).delete(
            synchronize_session=False
        )
        if not deleted:
            self.db.rollback()
            raise NotFoundError("Leave request", request_id)
        self.audit.log_action(
            action="delete_leave_request",
            entity_type="leave_request",
            entity_id=request_id,
            actor=actor,
            before_state=before_state,
        )
        self.commit()
        self.log_info(f"Deleted leave request {request_id}")
