"""
Database models package
"""

from .event import Event
from .event_localized import EventLocalized
from .event_category import EventCategory
from .event_tag import EventTag
from .event_learner import EventLearner
from .event_meeting import EventMeeting

__all__ = [
    "Event",
    "EventLocalized",
    "EventCategory",
    "EventTag",
    "EventLearner",
    "EventMeeting",
]
