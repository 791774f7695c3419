"""
Event-related Pydantic schemas

EventDraft and EventResponse are frozen: services derive new values with
model_copy(update=...) instead of mutating what the caller handed in.
"""

from datetime import datetime
from typing import Optional, List
from uuid import UUID
from pydantic import BaseModel, Field

class EventDraft(BaseModel):
    """Caller-supplied event fields for create and update"""
    title: str = Field(min_length=1, max_length=255)
    description: Optional[str] = Field(default=None, max_length=1000)
    event_date: datetime

    class Config:
        frozen = True

class EventResponse(BaseModel):
    """Fully resolved event as returned by the service"""
    id: UUID
    title: str
    description: Optional[str] = None
    event_date: datetime
    meeting_url: Optional[str] = None
    created_by: str
    created_at: datetime
    modified_by: Optional[str] = None
    modified_at: Optional[datetime] = None

    class Config:
        frozen = True
        from_attributes = True

class EventPayload(BaseModel):
    """Request body for updating an event

    Carries no field constraints: the service validates the resulting draft
    and reports every violation together.
    """
    title: Optional[str] = None
    description: Optional[str] = None
    event_date: Optional[datetime] = None

    def to_draft(self) -> EventDraft:
        return EventDraft.model_construct(
            title=self.title,
            description=self.description,
            event_date=self.event_date
        )

class EventCreate(EventPayload):
    """Request body for creating an event"""
    categories: List[str] = []

class MeetingStart(BaseModel):
    """Schema for starting an event's meeting"""
    meeting_url: Optional[str] = None

class MeetingJoin(BaseModel):
    """Meeting link handed to the owner or a registered learner"""
    event_id: UUID
    meeting_url: str
