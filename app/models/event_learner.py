"""
Event learner (registered attendee) model
"""

from sqlalchemy import Column, String, ForeignKey, Uuid

from app.core.db import Base

class EventLearner(Base):
    __tablename__ = "events_learner"

    event_id = Column(Uuid, ForeignKey("events.id"), primary_key=True)
    user_handle = Column(String(255), primary_key=True, index=True)
