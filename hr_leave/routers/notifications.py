from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List

from hr_leave.core.config import settings
from hr_leave.core.exceptions import NotFoundError
from hr_leave.database import get_db
from hr_leave.models.notification import Notification
from hr_leave.routers.auth_deps import get_current_actor
from hr_leave.schemas.auth import Actor
from hr_leave.schemas.notification import NotificationResponse

router = APIRouter(prefix="/notifications", tags=["Notifications"])


def _inboxes(actor: Actor) -> List[str]:
    """Admin and HR also read the shared reviewer inbox (new leave requests)."""
    if actor.is_privileged:
        return [actor.id, settings.notifications.reviewer_inbox]
    return [actor.id]


@router.get("", response_model=List[NotificationResponse])
def get_notifications(
    unread_only: bool = False,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor)
):
    query = db.query(Notification).filter(Notification.user_id.in_(_inboxes(actor)))
    if unread_only:
        query = query.filter(Notification.is_read == False)  # noqa: E712
    return query.order_by(Notification.created_at.desc(), Notification.id.desc()).limit(50).all()


@router.patch("/{notification_id}/read", response_model=NotificationResponse)
def mark_notification_as_read(
    notification_id: int,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor)
):
    notification = db.query(Notification).filter(
        Notification.id == notification_id,
        Notification.user_id.in_(_inboxes(actor))
    ).first()

    if not notification:
        raise NotFoundError("Notification", notification_id)

    notification.is_read = True
    db.commit()
    db.refresh(notification)
    return notification


@router.post("/mark-all-read")
def mark_all_notifications_as_read(
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor)
):
    db.query(Notification).filter(
        Notification.user_id.in_(_inboxes(actor)),
        Notification.is_read == False  # noqa: E712
    ).update({Notification.is_read: True}, synchronize_session=False)
    db.commit()
    return {"message": "All notifications marked as read"}
