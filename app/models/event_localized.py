"""
Per-language title/description overlay of an event
"""

from sqlalchemy import Column, String, Text, ForeignKey, Uuid

from app.core.db import Base

class EventLocalized(Base):
    __tablename__ = "events_localized"

    event_id = Column(Uuid, ForeignKey("events.id"), primary_key=True)
    locale = Column(String(8), primary_key=True)
    title = Column(String(255), nullable=True)
    description = Column(Text, nullable=True)
