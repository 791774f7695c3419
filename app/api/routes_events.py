"""
Event API routes - caller identity taken from the user header
"""

from typing import List, Optional
from uuid import UUID
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.core.db import get_db
from app.schemas.event import EventCreate, EventPayload, MeetingJoin, MeetingStart
from app.services.event_service import EventService
from app.utils.security import get_current_user, get_locale
from app.utils.responses import success_response, error_response

router = APIRouter()

def get_event_service(db: Session = Depends(get_db)) -> EventService:
    return EventService(db)

@router.post("")
def create_event(
    event_data: EventCreate,
    user: str = Depends(get_current_user),
    locale: Optional[str] = Depends(get_locale),
    service: EventService = Depends(get_event_service)
):
    """Create a new event owned by the caller"""
    event = service.create(event_data.categories, user, locale, event_data.to_draft())
    return success_response(
        message="Event created successfully",
        data=event,
        status_code=201
    )

@router.get("")
def list_events(
    category: Optional[List[str]] = Query(None),
    user: str = Depends(get_current_user),
    locale: Optional[str] = Depends(get_locale),
    service: EventService = Depends(get_event_service)
):
    """List upcoming events; filter by repeating ?category=..."""
    events = service.list(user, locale, category)
    return success_response(
        message="Events retrieved",
        data=events
    )

@router.get("/{event_id}")
def get_event(
    event_id: UUID,
    user: str = Depends(get_current_user),
    locale: Optional[str] = Depends(get_locale),
    service: EventService = Depends(get_event_service)
):
    """Get event details"""
    event = service.read(user, event_id, locale)
    if event is None:
        return error_response(
            message="Event not found",
            error_code="not_found",
            status_code=404
        )
    return success_response(
        message="Event retrieved",
        data=event
    )

@router.put("/{event_id}")
def update_event(
    event_id: UUID,
    event_data: EventPayload,
    user: str = Depends(get_current_user),
    locale: Optional[str] = Depends(get_locale),
    service: EventService = Depends(get_event_service)
):
    """Update an owned event, or its overlay when a language is requested"""
    event = service.update(event_id, user, locale, event_data.to_draft())
    return success_response(
        message="Event updated successfully",
        data=event
    )

@router.delete("/{event_id}")
def delete_event(
    event_id: UUID,
    user: str = Depends(get_current_user),
    service: EventService = Depends(get_event_service)
):
    """Delete an owned event and everything attached to it"""
    deleted = service.delete(user, event_id)
    return success_response(
        message="Event deleted successfully",
        data={"deleted": deleted}
    )

@router.post("/{event_id}/register")
def register_for_event(
    event_id: UUID,
    user: str = Depends(get_current_user),
    service: EventService = Depends(get_event_service)
):
    """Register the caller as a learner"""
    registered = service.register(user, event_id)
    return success_response(
        message="Registered successfully",
        data={"registered": registered}
    )

@router.get("/{event_id}/registration")
def get_registration(
    event_id: UUID,
    user: str = Depends(get_current_user),
    service: EventService = Depends(get_event_service)
):
    """Check whether the caller is registered"""
    return success_response(
        message="Registration status retrieved",
        data={"registered": service.is_registered(user, event_id)}
    )

@router.post("/{event_id}/start")
def start_meeting(
    event_id: UUID,
    meeting: MeetingStart,
    user: str = Depends(get_current_user),
    service: EventService = Depends(get_event_service)
):
    """Start the event's meeting"""
    started = service.start(user, event_id, meeting.meeting_url)
    return success_response(
        message="Meeting started",
        data={"started": started}
    )

@router.get("/{event_id}/join")
def join_meeting(
    event_id: UUID,
    user: str = Depends(get_current_user),
    service: EventService = Depends(get_event_service)
):
    """Get the meeting link for the owner or a registered learner"""
    meeting_url = service.join(user, event_id)
    return success_response(
        message="Meeting link retrieved",
        data=MeetingJoin(event_id=event_id, meeting_url=meeting_url)
    )
