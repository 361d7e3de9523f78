"""
Pydantic schemas for registration requests and responses.
"""

import datetime as dt
from typing import Annotated, Optional

from pydantic import AfterValidator, BaseModel, Field, field_validator

from eventhub.core.config import get_settings
from eventhub.services.transitions import BulkAction, RegistrationStatus

settings = get_settings()


def _check_reason(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    if len(value) > settings.REASON_MAX_LENGTH:
        raise ValueError(f"reason must be at most {settings.REASON_MAX_LENGTH} characters")
    return value or None


Reason = Annotated[Optional[str], AfterValidator(_check_reason)]


class RegistrationCreate(BaseModel):
    event_id: int = Field(..., alias="eventId")

    model_config = {"populate_by_name": True}


class StatusUpdate(BaseModel):
    status: RegistrationStatus
    reason: Reason = None


class BulkRequest(BaseModel):
    ids: list[int] = Field(..., min_length=1)
    action: BulkAction
    reason: Reason = None

    @field_validator("ids")
    @classmethod
    def cap_ids(cls, value: list[int]) -> list[int]:
        if len(value) > settings.BULK_MAX_IDS:
            raise ValueError(f"at most {settings.BULK_MAX_IDS} ids per request")
        return value


class RegistrationCreated(BaseModel):
    ok: bool = True
    status: str


class BulkResult(BaseModel):
    ok: bool = True
    processed: int
    skipped: int
    skippedIds: list[int] = []


class MyRegistration(BaseModel):
    id: int
    event_id: int
    user_id: int
    status: str
    registered_at: Optional[dt.datetime]
    event_title: str
    event_date: dt.date
    event_time: Optional[str]
    event_location: Optional[str]


class AdminRegistration(BaseModel):
    id: int
    event_id: int
    user_id: int
    status: str
    registered_at: Optional[dt.datetime]
    user_name: str
    user_email: str
    event_title: str
    event_date: dt.date
