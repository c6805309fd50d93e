"""
Service wiring for FastAPI endpoints.

Services are request-scoped (they hold the request's Session); the
notification dispatcher is process-scoped and lives on app.state.
"""
from fastapi import BackgroundTasks, Depends, Request
from sqlalchemy.orm import Session

from hr_leave.database import get_db
from hr_leave.schemas.notification import LeaveEvent
from hr_leave.services.coordinator import TransitionCoordinator
from hr_leave.services.ledger import LeaveLedger
from hr_leave.services.leave_requests import LeaveRequestStore
from hr_leave.services.leave_types import LeaveTypeRegistry
from hr_leave.services.notification import NotificationDispatcher, Notifier


def get_dispatcher(request: Request) -> NotificationDispatcher:
    return request.app.state.dispatcher


def get_notifier(
    background_tasks: BackgroundTasks,
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
) -> Notifier:
    """Defers delivery until after the response is sent."""
    def enqueue(event: LeaveEvent) -> None:
        background_tasks.add_task(dispatcher.publish, event)
    return enqueue


def get_registry(db: Session = Depends(get_db)) -> LeaveTypeRegistry:
    return LeaveTypeRegistry(db)


def get_ledger(db: Session = Depends(get_db)) -> LeaveLedger:
    return LeaveLedger(db)


def get_request_store(
    db: Session = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
) -> LeaveRequestStore:
    return LeaveRequestStore(db, notifier=notifier)


def get_coordinator(
    db: Session = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
) -> TransitionCoordinator:
    return TransitionCoordinator(db, notifier=notifier)


__all__ = [
    "get_dispatcher",
    "get_notifier",
    "get_registry",
    "get_ledger",
    "get_request_store",
    "get_coordinator",
]
