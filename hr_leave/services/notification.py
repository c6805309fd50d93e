"""
Notification Dispatcher

Fire-and-forget fan-out of LeaveEvents to delivery sinks. A dispatcher is
built once at application start (see hr_leave.main.lifespan) and injected;
nothing here holds module-level delivery state.

Delivery is best-effort: a failing sink is logged and skipped, and never
reaches the workflow that emitted the event.
"""
import logging
from typing import Callable, Iterable, List, Optional

import requests
from sqlalchemy.orm import Session, sessionmaker
from tenacity import Retrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from hr_leave.core.config import DEFAULT_REVIEWER_INBOX, NotificationSettings
from hr_leave.models.notification import Notification
from hr_leave.schemas.notification import LeaveEvent

logger = logging.getLogger(__name__)

Notifier = Callable[[LeaveEvent], None]


def notify_safely(notifier: Optional[Notifier], event: LeaveEvent) -> None:
    """Hand an event to the notifier; delivery problems never propagate."""
    if notifier is None:
        return
    try:
        notifier(event)
    except Exception as e:
        # Don't fail the workflow if notification fails
        logger.warning(f"Notification failed for {event.type}: {e}", exc_info=True)


class NotificationService:
    @staticmethod
    def create_notification(
        db: Session,
        user_id: str,
        title: str,
        message: str,
        type: str = "info",
        event_type: Optional[str] = None,
        request_id: Optional[int] = None
    ) -> Notification:
        """
        Internal utility for creating in-app notifications.
        """
        notification = Notification(
            user_id=user_id,
            title=title,
            message=message,
            type=type,
            event_type=event_type,
            request_id=request_id
        )
        db.add(notification)
        try:
            db.commit()
        except Exception:
            db.rollback()
            raise
        db.refresh(notification)
        return notification

    @staticmethod
    def render(event: LeaveEvent):
        """Title, message and severity shown to the recipient of an event."""
        if event.type == "leave_request.approved":
            return (
                "Leave Approved",
                f"Your {event.leave_type} request for {event.days:g} days has been APPROVED.",
                "success",
            )
        if event.type == "leave_request.rejected":
            return (
                "Leave Rejected",
                f"Your {event.leave_type} request for {event.days:g} days has been REJECTED.",
                "error",
            )
        if event.type == "leave_request.created":
            return (
                "New Leave Request",
                f"{event.employee_id} requested {event.days:g} days of {event.leave_type}; pending review.",
                "info",
            )
        return ("Leave Update", f"Your {event.leave_type} request is now {event.status}.", "info")


class InAppNotificationSink:
    """
    Stores the event as a Notification row for the polling endpoints.

    New requests go to the shared reviewer inbox read by admin and HR;
    resolutions go to the employee.
    """

    name = "in_app"

    def __init__(self, session_factory: sessionmaker, reviewer_inbox: str = DEFAULT_REVIEWER_INBOX):
        self.session_factory = session_factory
        self.reviewer_inbox = reviewer_inbox

    def recipient(self, event: LeaveEvent) -> str:
        if event.type == "leave_request.created":
            return self.reviewer_inbox
        return event.employee_id

    def __call__(self, event: LeaveEvent) -> None:
        title, message, severity = NotificationService.render(event)
        # Runs after the response, outside the request session
        db = self.session_factory()
        try:
            NotificationService.create_notification(
                db,
                user_id=self.recipient(event),
                title=title,
                message=message,
                type=severity,
                event_type=event.type,
                request_id=event.request_id,
            )
        finally:
            db.close()


class WebhookNotificationSink:
    """POSTs the event as JSON to an external delivery service (mail, push)."""

    name = "webhook"

    def __init__(
        self,
        url: str,
        timeout_seconds: float = 3.0,
        max_attempts: int = 2,
        http: Optional[requests.Session] = None
    ):
        self.url = url
        self.timeout_seconds = timeout_seconds
        self.max_attempts = max(1, max_attempts)
        self.http = http or requests.Session()

    def __call__(self, event: LeaveEvent) -> None:
        retrying = Retrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(multiplier=0.2, max=1),
            retry=retry_if_exception_type(requests.exceptions.RequestException),
            reraise=True,
        )
        for attempt in retrying:
            with attempt:
                response = self.http.post(
                    self.url,
                    json=event.model_dump(mode="json"),
                    timeout=self.timeout_seconds,
                )
                response.raise_for_status()

    def close(self) -> None:
        self.http.close()


class NotificationDispatcher:
    def __init__(self, sinks: Iterable[Callable[[LeaveEvent], None]] = ()):
        self.sinks: List[Callable[[LeaveEvent], None]] = list(sinks)

    def publish(self, event: LeaveEvent) -> None:
        for sink in self.sinks:
            sink_name = getattr(sink, "name", type(sink).__name__)
            try:
                sink(event)
            except Exception as e:
                logger.warning(
                    f"Notification sink '{sink_name}' failed for {event.type}: {e}",
                    extra={"sink": sink_name, "event_type": event.type, "leave_request_id": event.request_id},
                )

    __call__ = publish

    def close(self) -> None:
        for sink in self.sinks:
            close = getattr(sink, "close", None)
            if close:
                close()


def build_dispatcher(session_factory: sessionmaker, config: NotificationSettings) -> NotificationDispatcher:
    sinks: List[Callable[[LeaveEvent], None]] = []
    if config.in_app_enabled:
        sinks.append(InAppNotificationSink(session_factory, reviewer_inbox=config.reviewer_inbox))
    if config.webhook_url:
        sinks.append(WebhookNotificationSink(
            config.webhook_url,
            timeout_seconds=config.timeout_seconds,
            max_attempts=config.max_attempts,
        ))
    logger.info(f"Notification dispatcher ready with sinks: {[getattr(s, 'name', s) for s in sinks]}")
    return NotificationDispatcher(sinks)
