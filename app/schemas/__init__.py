"""
Pydantic schemas package
"""

from .common import *
from .event import *

__all__ = [
    "StandardResponse",
    "ErrorResponse",
    "EventDraft",
    "EventResponse",
    "EventPayload",
    "EventCreate",
    "MeetingStart",
    "MeetingJoin"
]
