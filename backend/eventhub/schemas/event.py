"""
Pydantic schemas for event-related request/response validation.
"""

import datetime as dt
from typing import Literal, Optional

from pydantic import BaseModel, Field, model_validator

EventStatus = Literal["draft", "published", "completed", "cancelled"]


class EventCreate(BaseModel):
    title: str = Field(..., min_length=3, max_length=255)
    description: Optional[str] = Field(None, max_length=5000)
    date: dt.date
    time: Optional[str] = Field(None, max_length=32)
    location: Optional[str] = Field(None, max_length=255)
    total_slots: int = Field(..., ge=1, le=100000)
    available_slots: Optional[int] = Field(None, ge=0)
    image_url: Optional[str] = Field(None, max_length=1024)
    status: EventStatus = "published"


class EventUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=3, max_length=255)
    description: Optional[str] = Field(None, max_length=5000)
    date: Optional[dt.date] = None
    time: Optional[str] = Field(None, max_length=32)
    location: Optional[str] = Field(None, max_length=255)
    total_slots: Optional[int] = Field(None, ge=1, le=100000)
    available_slots: Optional[int] = Field(None, ge=0)
    image_url: Optional[str] = Field(None, max_length=1024)
    status: Optional[EventStatus] = None

    @model_validator(mode="after")
    def not_empty(self):
        if not self.model_fields_set:
            raise ValueError("No fields to update")
        return self


class EventResponse(BaseModel):
    id: int
    title: str
    description: Optional[str]
    date: dt.date
    time: Optional[str]
    location: Optional[str]
    total_slots: int
    available_slots: int
    image_url: Optional[str]
    status: str
    created_at: Optional[dt.datetime] = None

    model_config = {"from_attributes": True}


class ArchivedEventResponse(EventResponse):
    deleted_at: Optional[dt.datetime]
    deleted_by: Optional[int]


class EventListResponse(BaseModel):
    events: list[EventResponse]
    total: int
    page: int
    page_size: int
    cached: bool = False
