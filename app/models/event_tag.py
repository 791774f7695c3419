"""
Event tag membership

Tags have no write path yet; rows are only removed when their event is deleted.
"""

from sqlalchemy import Column, String, ForeignKey, Uuid

from app.core.db import Base

class EventTag(Base):
    __tablename__ = "events_tag"

    event_id = Column(Uuid, ForeignKey("events.id"), primary_key=True)
    tag_id = Column(String(55), primary_key=True)
