"""
Meeting link visibility
"""

from app.schemas.event import EventResponse


def mask_meeting_url(caller: str, event: EventResponse) -> EventResponse:
    """Hide the meeting URL from everyone but the event owner"""
    if caller == event.created_by or event.meeting_url is None:
        return event
    return event.model_copy(update={"meeting_url": None})
