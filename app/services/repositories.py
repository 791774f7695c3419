"""
Repository layer abstracting storage of the event aggregate.

Repositories only flush work into the caller's session; EventService decides
when to commit so that multi-table writes land in one transaction. Inserts go
through Core statements so that duplicate keys always surface as the
database's IntegrityError.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy import Select, insert, or_, select
from sqlalchemy.orm import Session

from app.models import Event, EventCategory, EventLearner, EventLocalized, EventMeeting, EventTag
from app.schemas.event import EventResponse
from app.services.category_filter import category_filter
from app.services.locale_overlay import localized_columns, localized_join


def _delete_all(db: Session, model) -> int:
    return db.query(model).delete(synchronize_session=False)


# -------- Event repository --------

class EventRepo:
    @staticmethod
    def select_resolved(locale: Optional[str] = None) -> Select:
        """Event columns plus the meeting URL, overlaid for ``locale`` when given"""
        if locale is None:
            title, description = Event.title, Event.description
        else:
            title, description = localized_columns()

        query = select(
            Event.id,
            title,
            description,
            Event.event_date,
            EventMeeting.meeting_url,
            Event.created_by,
            Event.created_at,
            Event.modified_by,
            Event.modified_at,
        ).outerjoin(EventMeeting, EventMeeting.event_id == Event.id)

        if locale is not None:
            query = query.outerjoin(EventLocalized, localized_join(locale))
        return query

    @staticmethod
    def get_by_id_sql(db: Session, event_id: UUID, locale: Optional[str] = None) -> Optional[EventResponse]:
        row = db.execute(
            EventRepo.select_resolved(locale).where(Event.id == event_id)
        ).first()
        return EventResponse(**row._mapping) if row else None

    @staticmethod
    def list_accessible_sql(db: Session, user_handle: str, now: datetime, locale: Optional[str] = None) -> List[EventResponse]:
        """Upcoming events owned by or registered to ``user_handle``"""
        query = EventRepo.select_resolved(locale).where(
            Event.event_date > now,
            or_(
                Event.created_by == user_handle,
                Event.id.in_(LearnerRepo.subquery_for(user_handle))
            )
        )
        return [EventResponse(**row._mapping) for row in db.execute(query)]

    @staticmethod
    def list_by_categories_sql(db: Session, categories: List[str], now: datetime, locale: Optional[str] = None) -> List[EventResponse]:
        """Upcoming events tagged with every one of ``categories``"""
        query = EventRepo.select_resolved(locale).where(
            Event.event_date > now,
            Event.id.in_(category_filter(categories))
        )
        return [EventResponse(**row._mapping) for row in db.execute(query)]

    @staticmethod
    def create_sql(db: Session, values: Dict[str, Any]) -> None:
        db.execute(insert(Event).values(**values))

    @staticmethod
    def update_owned_sql(db: Session, event_id: UUID, owner: str, values: Dict[str, Any]) -> int:
        """Update an event only if ``owner`` created it; returns affected rows"""
        return db.query(Event).filter(
            Event.id == event_id,
            Event.created_by == owner
        ).update(values, synchronize_session=False)

    @staticmethod
    def delete_sql(db: Session, event_id: UUID) -> int:
        return db.query(Event).filter(Event.id == event_id).delete(synchronize_session=False)

    @staticmethod
    def delete_all_sql(db: Session) -> int:
        return _delete_all(db, Event)


# -------- Localized overlay repository --------

class LocalizedRepo:
    @staticmethod
    def create_sql(db: Session, event_id: UUID, locale: str, title: str, description: Optional[str]) -> None:
        db.execute(insert(EventLocalized).values(
            event_id=event_id,
            locale=locale,
            title=title,
            description=description
        ))

    @staticmethod
    def update_sql(db: Session, event_id: UUID, locale: str, title: str, description: Optional[str]) -> int:
        return db.query(EventLocalized).filter(
            EventLocalized.event_id == event_id,
            EventLocalized.locale == locale
        ).update({"title": title, "description": description}, synchronize_session=False)

    @staticmethod
    def delete_by_event_sql(db: Session, event_id: UUID) -> int:
        return db.query(EventLocalized).filter(
            EventLocalized.event_id == event_id
        ).delete(synchronize_session=False)

    @staticmethod
    def delete_all_sql(db: Session) -> int:
        return _delete_all(db, EventLocalized)


# -------- Category and tag repositories --------

class CategoryRepo:
    @staticmethod
    def attach_sql(db: Session, event_id: UUID, category: str) -> None:
        db.execute(insert(EventCategory).values(event_id=event_id, category_id=category))

    @staticmethod
    def list_for_event_sql(db: Session, event_id: UUID) -> List[str]:
        return list(db.scalars(
            select(EventCategory.category_id).where(EventCategory.event_id == event_id)
        ))

    @staticmethod
    def delete_by_event_sql(db: Session, event_id: UUID) -> int:
        return db.query(EventCategory).filter(
            EventCategory.event_id == event_id
        ).delete(synchronize_session=False)

    @staticmethod
    def delete_all_sql(db: Session) -> int:
        return _delete_all(db, EventCategory)


class TagRepo:
    @staticmethod
    def delete_by_event_sql(db: Session, event_id: UUID) -> int:
        return db.query(EventTag).filter(
            EventTag.event_id == event_id
        ).delete(synchronize_session=False)

    @staticmethod
    def delete_all_sql(db: Session) -> int:
        return _delete_all(db, EventTag)


# -------- Learner repository --------

class LearnerRepo:
    @staticmethod
    def subquery_for(user_handle: str) -> Select:
        """Ids of events ``user_handle`` is registered for"""
        return select(EventLearner.event_id).where(EventLearner.user_handle == user_handle)

    @staticmethod
    def create_sql(db: Session, event_id: UUID, user_handle: str) -> None:
        db.execute(insert(EventLearner).values(event_id=event_id, user_handle=user_handle))

    @staticmethod
    def exists_sql(db: Session, event_id: UUID, user_handle: str) -> bool:
        return bool(db.query(
            db.query(EventLearner).filter(
                EventLearner.event_id == event_id,
                EventLearner.user_handle == user_handle
            ).exists()
        ).scalar())

    @staticmethod
    def delete_by_event_sql(db: Session, event_id: UUID) -> int:
        return db.query(EventLearner).filter(
            EventLearner.event_id == event_id
        ).delete(synchronize_session=False)

    @staticmethod
    def delete_all_sql(db: Session) -> int:
        return _delete_all(db, EventLearner)


# -------- Meeting repository --------

class MeetingRepo:
    @staticmethod
    def create_sql(db: Session, event_id: UUID, meeting_url: str) -> None:
        db.execute(insert(EventMeeting).values(event_id=event_id, meeting_url=meeting_url))

    @staticmethod
    def get_url_sql(db: Session, event_id: UUID) -> Optional[str]:
        return db.scalar(
            select(EventMeeting.meeting_url).where(EventMeeting.event_id == event_id)
        )

    @staticmethod
    def delete_by_event_sql(db: Session, event_id: UUID) -> int:
        return db.query(EventMeeting).filter(
            EventMeeting.event_id == event_id
        ).delete(synchronize_session=False)

    @staticmethod
    def delete_all_sql(db: Session) -> int:
        return _delete_all(db, EventMeeting)
