"""
Pydantic schemas for archive maintenance and bulk id payloads.
"""

import datetime as dt
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from eventhub.core.config import get_settings

settings = get_settings()


class IdsRequest(BaseModel):
    ids: list[int] = Field(..., min_length=1)

    @field_validator("ids")
    @classmethod
    def cap_ids(cls, value: list[int]) -> list[int]:
        if len(value) > settings.BULK_MAX_IDS:
            raise ValueError(f"at most {settings.BULK_MAX_IDS} ids per request")
        return value


class SkippedItem(BaseModel):
    id: str
    reason: str


class RestoreResult(BaseModel):
    ok: bool = True
    requested: int
    restored: int
    skippedCount: int
    skipped: list[SkippedItem] = []


class DeleteResult(BaseModel):
    ok: bool = True
    deleted: int
    skippedCount: int = 0
    registrationsArchived: Optional[int] = None


class ArchivedRegistrationResponse(BaseModel):
    id: int
    registration_id: Optional[int]
    event_id: int
    user_id: int
    status: str
    registered_at: Optional[dt.datetime]
    user_name: Optional[str]
    user_email: Optional[str]
    event_title: Optional[str]
    event_date: Optional[dt.date]
    event_time: Optional[str]
    event_location: Optional[str]
    deleted_at: dt.datetime
    deleted_by: Optional[int]
    deletion_source: Optional[str]

    model_config = {"from_attributes": True}


class ArchivedUserResponse(BaseModel):
    id: int
    user_id: int
    name: str
    email: str
    role: str
    company: Optional[str]
    phone: Optional[str]
    created_at_original: Optional[dt.datetime]
    deleted_at: dt.datetime
    deleted_by: Optional[int]
    deletion_source: Optional[str]

    model_config = {"from_attributes": True}
