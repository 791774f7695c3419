"""
Event model
"""

from sqlalchemy import Column, String, Text, DateTime, Uuid

from app.core.db import Base

class Event(Base):
    __tablename__ = "events"

    id = Column(Uuid, primary_key=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    event_date = Column(DateTime, nullable=False, index=True)
    created_by = Column(String(255), nullable=False, index=True)
    created_at = Column(DateTime, nullable=False)
    modified_by = Column(String(255), nullable=True)
    modified_at = Column(DateTime, nullable=True)

    # Child rows are removed by EventService before the event itself,
    # so no ORM cascade is declared here.
