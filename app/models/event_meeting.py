"""
Event meeting model
"""

from sqlalchemy import Column, String, ForeignKey, Uuid

from app.core.db import Base

class EventMeeting(Base):
    __tablename__ = "events_meeting"

    # One meeting per event: a second start violates the primary key
    event_id = Column(Uuid, ForeignKey("events.id"), primary_key=True)
    meeting_url = Column(String(1024), nullable=False)
