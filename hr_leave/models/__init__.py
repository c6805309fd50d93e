# Models package
# Importing modules here ensures they are registered with SQLAlchemy Base
from . import (
    leave_type, leave_balance, leave_request, notification, audit_log
)

# Explicit class exports for cleaner imports
from .leave_type import LeaveType
from .leave_balance import LeaveBalance
from .leave_request import LeaveRequest, LeaveStatus
from .notification import Notification
from .audit_log import AuditLog

__all__ = [
    "LeaveType",
    "LeaveBalance",
    "LeaveRequest",
    "LeaveStatus",
    "Notification",
    "AuditLog",
]
