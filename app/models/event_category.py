"""
Event category membership
"""

from sqlalchemy import Column, String, ForeignKey, Uuid

from app.core.db import Base

class EventCategory(Base):
    __tablename__ = "events_category"

    event_id = Column(Uuid, ForeignKey("events.id"), primary_key=True)
    category_id = Column(String(55), primary_key=True, index=True)
