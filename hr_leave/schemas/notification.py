from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime, timezone
from typing import Optional


class LeaveEvent(BaseModel):
    """Event handed to the notification dispatcher after a workflow step."""
    type: str  # leave_request.created | leave_request.approved | leave_request.rejected
    employee_id: str
    leave_type: str
    days: float
    status: str
    request_id: Optional[int] = None
    occurred_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class NotificationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: str
    title: str
    message: str
    type: str
    event_type: Optional[str] = None
    request_id: Optional[int] = None
    is_read: bool
    created_at: Optional[datetime] = None
