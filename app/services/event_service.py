"""
Event lifecycle service.

Owns every rule around an event aggregate: creation with categories and an
optional locale overlay, ownership-scoped update and delete, listing,
learner registration and the meeting start/join workflow.

Design:
- Writes are scoped by ``id AND created_by`` so a non-owner matches zero rows;
  "missing" and "not yours" are reported identically.
- Each mutating call is one transaction; repositories only flush.
- Duplicate registration and double meeting start are left to the primary
  keys of events_learner / events_meeting, and their IntegrityError
  propagates unchanged.
- Every event returned by read/list passes through the visibility mask.
"""

import logging
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from typing import Callable, Iterator, List, Optional
from uuid import UUID, uuid4

from sqlalchemy.orm import Session

from app.core.config import Settings, settings as default_settings
from app.schemas.event import EventDraft, EventResponse
from app.services.category_filter import unique_labels
from app.services.exceptions import ConflictError, EventValidationError, NotFoundError
from app.services.locale_overlay import language_of
from app.services.meeting_policy import can_start
from app.services.repositories import (
    CategoryRepo,
    EventRepo,
    LearnerRepo,
    LocalizedRepo,
    MeetingRepo,
    TagRepo,
)
from app.services.validation import (
    EventValidator,
    check_event_date,
    check_meeting_url,
    violation,
)
from app.services.visibility import mask_meeting_url

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    """Naive UTC timestamp, matching what the DateTime columns store"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


class EventService:
    """
    Service for managing events and their registrations and meetings.

    Usage:
        >>> service = EventService(db_session)
        >>> event = service.create(["c1"], "hari", "de", EventDraft(
        ...     title="HariEvent",
        ...     description="HariDescription",
        ...     event_date=utc_now() + timedelta(days=2)
        ... ))
        >>> service.register("priya", event.id)
        True
    """

    def __init__(
        self,
        db: Session,
        settings: Optional[Settings] = None,
        validator: Optional[EventValidator] = None,
        clock: Optional[Callable[[], datetime]] = None
    ):
        """
        Initialize event service.

        Args:
            db: SQLAlchemy database session
            settings: Event rules (advance days, start window); defaults to app settings
            validator: Field validator for drafts
            clock: Returns the current naive UTC time; injectable for tests
        """
        self.db = db
        self.settings = settings or default_settings
        self.validator = validator or EventValidator()
        self.clock = clock or utc_now

    @contextmanager
    def _transaction(self) -> Iterator[Session]:
        try:
            yield self.db
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

    def _validated(self, draft: EventDraft) -> EventDraft:
        """Return the draft with a naive UTC date, or raise with every violation"""
        event_date = getattr(draft, "event_date", None)
        if isinstance(event_date, datetime):
            draft = draft.model_copy(update={"event_date": to_naive_utc(event_date)})

        violations = self.validator.validate(draft)
        violations |= check_event_date(draft, self.clock(), self.settings.MAX_DAYS_IN_ADVANCE)
        if violations:
            raise EventValidationError(violations)

        return draft.model_copy(update={"event_date": draft.event_date.replace(microsecond=0)})

    def create(
        self,
        categories: List[str],
        user_handle: str,
        locale: Optional[str],
        draft: EventDraft
    ) -> EventResponse:
        """
        Create an event owned by ``user_handle``.

        Args:
            categories: Category labels to attach
            user_handle: Caller identity, recorded as owner
            locale: Language tag; when given the draft text is also stored as its overlay
            draft: Title, description and date

        Returns:
            The created event, resolved for ``locale``

        Raises:
            EventValidationError: If any field or the date window is invalid
        """
        draft = self._validated(draft)
        language = language_of(locale)
        event_id = uuid4()
        now = self.clock()

        with self._transaction() as db:
            EventRepo.create_sql(db, {
                "id": event_id,
                "title": draft.title,
                "description": draft.description,
                "event_date": draft.event_date,
                "created_by": user_handle,
                "created_at": now,
                "modified_by": user_handle,
                "modified_at": now,
            })
            if language is not None:
                LocalizedRepo.create_sql(db, event_id, language, draft.title, draft.description)
            for category in unique_labels(categories):
                CategoryRepo.attach_sql(db, event_id, category)

        logger.info(f"Event {event_id} created by {user_handle}")
        return self.read(user_handle, event_id, locale)

    def read(
        self,
        user_handle: str,
        event_id: UUID,
        locale: Optional[str] = None
    ) -> Optional[EventResponse]:
        """Get an event resolved for ``locale``, or None if it does not exist"""
        event = EventRepo.get_by_id_sql(self.db, event_id, language_of(locale))
        if event is None:
            return None
        return mask_meeting_url(user_handle, event)

    def update(
        self,
        event_id: UUID,
        user_handle: str,
        locale: Optional[str],
        draft: EventDraft
    ) -> EventResponse:
        """
        Update an event the caller owns.

        Without a locale the canonical title, description and date change.
        With a locale only that language's overlay is written (created on
        first use); the canonical row just records who modified it.

        Raises:
            EventValidationError: If any field or the date window is invalid
            NotFoundError: If the event does not exist or is owned by someone else
        """
        draft = self._validated(draft)
        language = language_of(locale)
        now = self.clock()

        with self._transaction() as db:
            if language is None:
                updated = EventRepo.update_owned_sql(db, event_id, user_handle, {
                    "title": draft.title,
                    "description": draft.description,
                    "event_date": draft.event_date,
                    "modified_by": user_handle,
                    "modified_at": now,
                })
            else:
                updated = EventRepo.update_owned_sql(db, event_id, user_handle, {
                    "modified_by": user_handle,
                    "modified_at": now,
                })
                if updated:
                    overlays = LocalizedRepo.update_sql(
                        db, event_id, language, draft.title, draft.description
                    )
                    if not overlays:
                        LocalizedRepo.create_sql(
                            db, event_id, language, draft.title, draft.description
                        )

            if not updated:
                logger.warning(f"Update of event {event_id} by {user_handle} matched no owned event")
                raise NotFoundError("Event", event_id)

        logger.info(f"Event {event_id} updated by {user_handle}")
        return self.read(user_handle, event_id, locale)

    def list(
        self,
        user_handle: str,
        locale: Optional[str] = None,
        categories: Optional[List[str]] = None
    ) -> List[EventResponse]:
        """
        List upcoming events.

        Args:
            user_handle: Caller identity
            locale: Language to resolve titles and descriptions in
            categories: When None, events the caller owns or is registered for;
                otherwise every upcoming event tagged with all of these labels

        Returns:
            Resolved and masked events, in storage order

        Raises:
            EventValidationError: If ``categories`` is an empty list
        """
        language = language_of(locale)
        now = self.clock()

        if categories is None:
            events = EventRepo.list_accessible_sql(self.db, user_handle, now, language)
        else:
            if not categories:
                raise EventValidationError({
                    violation("EventCategory", "At least one category is required", "categories")
                })
            events = EventRepo.list_by_categories_sql(self.db, categories, now, language)

        return [mask_meeting_url(user_handle, event) for event in events]

    def delete(self, user_handle: str, event_id: UUID) -> bool:
        """
        Delete an owned event together with all of its child rows.

        Returns:
            True if exactly one event row was removed

        Raises:
            NotFoundError: If the event does not exist or is owned by someone else
        """
        event = self.read(user_handle, event_id)
        if event is None or event.created_by != user_handle:
            logger.warning(f"Delete of event {event_id} by {user_handle} rejected")
            raise NotFoundError("Event", event_id)

        with self._transaction() as db:
            MeetingRepo.delete_by_event_sql(db, event_id)
            LearnerRepo.delete_by_event_sql(db, event_id)
            CategoryRepo.delete_by_event_sql(db, event_id)
            TagRepo.delete_by_event_sql(db, event_id)
            LocalizedRepo.delete_by_event_sql(db, event_id)
            deleted = EventRepo.delete_sql(db, event_id)

        logger.info(f"Event {event_id} deleted by {user_handle}")
        return deleted == 1

    def delete_all(self) -> None:
        """Remove every event and child row. For administrative resets only."""
        with self._transaction() as db:
            MeetingRepo.delete_all_sql(db)
            LearnerRepo.delete_all_sql(db)
            CategoryRepo.delete_all_sql(db)
            TagRepo.delete_all_sql(db)
            LocalizedRepo.delete_all_sql(db)
            deleted = EventRepo.delete_all_sql(db)

        logger.info(f"All events deleted ({deleted} rows)")

    def register(self, user_handle: str, event_id: UUID) -> bool:
        """
        Register the caller as a learner of someone else's event.

        Raises:
            NotFoundError: If the event does not exist
            ConflictError: If the caller owns the event
            sqlalchemy.exc.IntegrityError: If the caller is already registered
        """
        event = self.read(user_handle, event_id)
        if event is None:
            raise NotFoundError("Event", event_id)
        if event.created_by == user_handle:
            raise ConflictError("Owners cannot register for their own event")

        with self._transaction() as db:
            LearnerRepo.create_sql(db, event_id, user_handle)

        logger.info(f"{user_handle} registered for event {event_id}")
        return True

    def is_registered(self, user_handle: str, event_id: UUID) -> bool:
        return LearnerRepo.exists_sql(self.db, event_id, user_handle)

    def start(self, user_handle: str, event_id: UUID, meeting_url: Optional[str]) -> bool:
        """
        Start the online meeting of an owned event.

        Only allowed within START_WINDOW_MINUTES either side of the event date,
        and only once per event.

        Raises:
            EventValidationError: If the meeting URL is missing or malformed
            NotFoundError: If the event does not exist or is owned by someone else
            ConflictError: If the event is outside its start window
            sqlalchemy.exc.IntegrityError: If the meeting was already started
        """
        violations = check_meeting_url(meeting_url)
        if violations:
            raise EventValidationError(violations)

        event = self.read(user_handle, event_id)
        if event is None or event.created_by != user_handle:
            raise NotFoundError("Event", event_id)

        window = timedelta(minutes=self.settings.START_WINDOW_MINUTES)
        if not can_start(self.clock(), event.event_date, window):
            logger.warning(f"Event {event_id} not ready to start")
            raise ConflictError("Event not ready to start")

        with self._transaction() as db:
            MeetingRepo.create_sql(db, event_id, meeting_url)

        logger.info(f"Meeting for event {event_id} started by {user_handle}")
        return True

    def join(self, user_handle: str, event_id: UUID) -> str:
        """
        Get the meeting URL of a started event.

        Unlike read/list the URL is returned unmasked, but only to the owner
        or a registered learner.

        Raises:
            NotFoundError: If the event does not exist
            ConflictError: If no meeting was started or the caller may not join
        """
        event = self.read(user_handle, event_id)
        if event is None:
            raise NotFoundError("Event", event_id)

        # Rights first, so outsiders learn nothing about the meeting state
        if event.created_by != user_handle and not self.is_registered(user_handle, event_id):
            raise ConflictError("Only the owner or registered learners can join")

        meeting_url = MeetingRepo.get_url_sql(self.db, event_id)
        if meeting_url is None:
            raise ConflictError("Meeting has not been started")

        return meeting_url
