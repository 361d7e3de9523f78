from eventhub.models.user import User
from eventhub.models.event import Event
from eventhub.models.registration import Registration
from eventhub.models.archive import ArchivedRegistration, ArchivedUser
from eventhub.models.audit_log import AuditLog
from eventhub.models.notification import Notification

__all__ = [
    "User", "Event", "Registration",
    "ArchivedRegistration", "ArchivedUser",
    "AuditLog", "Notification",
]
