from eventhub.schemas.event import EventCreate, EventUpdate, EventResponse, EventListResponse
from eventhub.schemas.registration import RegistrationCreate, StatusUpdate, BulkRequest, BulkResult
from eventhub.schemas.archive import IdsRequest, RestoreResult, DeleteResult
from eventhub.schemas.notification import NotificationResponse

__all__ = [
    "EventCreate", "EventUpdate", "EventResponse", "EventListResponse",
    "RegistrationCreate", "StatusUpdate", "BulkRequest", "BulkResult",
    "IdsRequest", "RestoreResult", "DeleteResult",
    "NotificationResponse",
]
