"""
Tests for the event lifecycle service
"""

import uuid
import pytest
from datetime import datetime, timedelta, timezone
from sqlalchemy import create_engine
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import sessionmaker

from app.core.config import Settings
from app.core.db import Base
from app.models import Event, EventLearner, EventLocalized, EventTag
from app.schemas.event import EventDraft
from app.services.event_service import EventService
from app.services.exceptions import ConflictError, EventValidationError, NotFoundError
from app.services.repositories import CategoryRepo, EventRepo, LocalizedRepo

# Test database setup
SQLALCHEMY_DATABASE_URL = "sqlite:///./test_event_service.db"
engine = create_engine(SQLALCHEMY_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

NOW = datetime(2026, 3, 1, 12, 0, 0)
USERNAME_1 = "hari"
USERNAME_2 = "hari2"
CATEGORIES = ["c1", "c2"]
MEETING_URL = "https://github.com/techatpark"

class Clock:
    """Settable clock returning naive UTC times"""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

@pytest.fixture
def db_session():
    """Create test database session"""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)

@pytest.fixture
def clock():
    return Clock(NOW)

@pytest.fixture
def service(db_session, clock):
    return EventService(
        db_session,
        settings=Settings(MAX_DAYS_IN_ADVANCE=20, START_WINDOW_MINUTES=10),
        clock=clock
    )

def an_event(**changes) -> EventDraft:
    draft = EventDraft(
        title="HariEvent",
        description="HariDescription",
        event_date=NOW + timedelta(days=2)
    )
    return draft.model_copy(update=changes) if changes else draft

def move_event(db_session, event_id, event_date):
    """Change an event's date behind the service's back"""
    db_session.query(Event).filter(Event.id == event_id).update({"event_date": event_date})
    db_session.commit()

# -------- create / read --------

def test_create_and_read(service):
    event = service.create(CATEGORIES, USERNAME_1, None, an_event())

    assert event.title == "HariEvent"
    assert event.description == "HariDescription"
    assert event.created_by == USERNAME_1
    assert event.created_at == NOW
    assert event.meeting_url is None

    assert service.read(USERNAME_1, event.id) is not None
    other = service.read("other", event.id)
    assert other is not None
    assert other.meeting_url is None

def test_create_attaches_categories_once(service, db_session):
    event = service.create(["c1", "c2", "c1"], USERNAME_1, None, an_event())

    assert sorted(CategoryRepo.list_for_event_sql(db_session, event.id)) == ["c1", "c2"]

def test_create_rejects_dates_outside_window(service):
    # Past event
    with pytest.raises(EventValidationError):
        service.create(CATEGORIES, USERNAME_1, None, an_event(event_date=NOW - timedelta(days=2)))

    # Beyond 20 days
    with pytest.raises(EventValidationError):
        service.create(CATEGORIES, USERNAME_1, None, an_event(event_date=NOW + timedelta(days=21)))

    # Exactly now is not in the future
    with pytest.raises(EventValidationError):
        service.create(CATEGORIES, USERNAME_1, None, an_event(event_date=NOW))

    assert service.list(USERNAME_1) == []

def test_create_accepts_last_day_of_window(service):
    event = service.create(CATEGORIES, USERNAME_1, None, an_event(event_date=NOW + timedelta(days=20)))

    assert event.event_date == NOW + timedelta(days=20)

def test_create_reports_every_violation(service):
    draft = EventDraft.model_construct(
        title="",
        description="HariDescription",
        event_date=NOW - timedelta(days=1)
    )

    with pytest.raises(EventValidationError) as exc_info:
        service.create(CATEGORIES, USERNAME_1, None, draft)

    fields = {v.field for v in exc_info.value.violations}
    assert fields == {"title", "event_date"}

def test_create_truncates_and_normalises_event_date(service):
    local_zone = timezone(timedelta(hours=2))
    event_date = (NOW + timedelta(days=2, microseconds=654321)).replace(tzinfo=timezone.utc)

    event = service.create(CATEGORIES, USERNAME_1, None, an_event(event_date=event_date.astimezone(local_zone)))

    assert event.event_date == NOW + timedelta(days=2)

def test_create_localized(service):
    event = service.create(CATEGORIES, USERNAME_1, "de", an_event(title="HansiEvent"))

    assert event.title == "HansiEvent"
    assert service.read(USERNAME_1, event.id, "de").title == "HansiEvent"
    assert service.read(USERNAME_1, event.id, "de-AT").title == "HansiEvent"
    assert service.read(USERNAME_1, event.id, None).title == "HansiEvent"

def test_create_is_atomic(service, db_session, monkeypatch):
    attach = CategoryRepo.attach_sql

    def attach_twice(db, event_id, category):
        attach(db, event_id, category)
        attach(db, event_id, category)

    monkeypatch.setattr(CategoryRepo, "attach_sql", staticmethod(attach_twice))

    with pytest.raises(IntegrityError):
        service.create(CATEGORIES, USERNAME_1, "de", an_event())

    assert db_session.query(Event).count() == 0
    assert db_session.query(EventLocalized).count() == 0

def test_read_missing_event(service):
    assert service.read(USERNAME_1, uuid.uuid4()) is None
    assert service.read(USERNAME_1, uuid.uuid4(), "de") is None

def test_read_falls_back_per_field(service, db_session):
    event = service.create(CATEGORIES, USERNAME_1, None, an_event())
    LocalizedRepo.create_sql(db_session, event.id, "fr", "Événement", None)
    db_session.commit()

    french = service.read(USERNAME_1, event.id, "fr")
    assert french.title == "Événement"
    assert french.description == "HariDescription"

    # Overlays in other languages do not hide the event
    german = service.read(USERNAME_1, event.id, "de")
    assert german.title == "HariEvent"

# -------- update --------

def test_update(service):
    event_date = NOW + timedelta(days=4)
    event = service.create(CATEGORIES, USERNAME_1, None, an_event())
    draft = an_event(title="MyTitle2", description="MyDescription2", event_date=event_date)

    updated = service.update(event.id, USERNAME_1, None, draft)

    assert updated.title == "MyTitle2"
    assert updated.description == "MyDescription2"
    assert updated.event_date == event_date
    assert updated.modified_by == USERNAME_1

    # Another id
    with pytest.raises(NotFoundError):
        service.update(uuid.uuid4(), "priya", None, draft)

    # Another user
    with pytest.raises(NotFoundError):
        service.update(event.id, USERNAME_2, None, draft)

    # Past date
    with pytest.raises(EventValidationError):
        service.update(event.id, USERNAME_1, None, draft.model_copy(update={"event_date": NOW - timedelta(days=2)}))

def test_update_localized(service):
    event = service.create(CATEGORIES, USERNAME_1, None, an_event())

    service.update(event.id, USERNAME_1, "de", an_event(title="HansiEvent"))
    assert service.read(USERNAME_1, event.id, "de").title == "HansiEvent"
    assert service.read(USERNAME_1, event.id, None).title == "HariEvent"
    assert service.read(USERNAME_1, event.id, "fr").title == "HariEvent"

    # Second localized write updates the same overlay
    service.update(event.id, USERNAME_1, "de", an_event(title="HansiEvent2"))
    assert service.read(USERNAME_1, event.id, "de").title == "HansiEvent2"

    with pytest.raises(NotFoundError):
        service.update(uuid.uuid4(), USERNAME_1, "de", an_event())

    with pytest.raises(NotFoundError):
        service.update(event.id, USERNAME_2, "de", an_event(title="Hijacked"))
    assert service.read(USERNAME_1, event.id, "de").title == "HansiEvent2"

# -------- list --------

@pytest.mark.parametrize("locale", [None, "de"])
def test_list_user_events(service, locale):
    service.create(CATEGORIES, USERNAME_1, locale, an_event())
    service.create(CATEGORIES, USERNAME_1, locale, an_event())

    events = service.list(USERNAME_1, locale)
    assert len(events) == 2

    assert len(service.list(USERNAME_2, locale)) == 0
    service.register(USERNAME_2, events[0].id)
    assert len(service.list(USERNAME_2, locale)) == 1
    service.create(CATEGORIES, USERNAME_2, locale, an_event())
    assert len(service.list(USERNAME_2, locale)) == 2
    service.register(USERNAME_2, events[1].id)
    assert len(service.list(USERNAME_2, locale)) == 3

@pytest.mark.parametrize("locale", [None, "de"])
def test_list_user_events_ignores_past_events(service, db_session, locale):
    past = service.create(CATEGORIES, USERNAME_1, locale, an_event(title="PastEvent"))
    upcoming = service.create(CATEGORIES, USERNAME_1, locale, an_event())
    service.register(USERNAME_2, past.id)
    service.register(USERNAME_2, upcoming.id)

    move_event(db_session, past.id, NOW - timedelta(days=5))

    assert [e.id for e in service.list(USERNAME_1, locale)] == [upcoming.id]
    assert [e.id for e in service.list(USERNAME_2, locale)] == [upcoming.id]

    # Exactly now no longer counts as upcoming
    move_event(db_session, upcoming.id, NOW)
    assert service.list(USERNAME_1, locale) == []

def test_list_by_categories_ignores_past_events(service, db_session):
    service.create(CATEGORIES, USERNAME_1, None, an_event())
    service.create(CATEGORIES, USERNAME_1, None, an_event())

    events = service.list(USERNAME_1, None, CATEGORIES)
    assert len(events) == 2

    move_event(db_session, events[0].id, NOW - timedelta(days=5))
    assert len(service.list(USERNAME_2, None, CATEGORIES)) == 1

def test_list_by_categories_requires_all(service):
    both = service.create(["c1", "c2"], USERNAME_1, None, an_event())
    only_c1 = service.create(["c1"], USERNAME_1, None, an_event())

    assert [e.id for e in service.list(USERNAME_2, None, ["c1", "c2"])] == [both.id]
    assert {e.id for e in service.list(USERNAME_2, None, ["c1"])} == {both.id, only_c1.id}
    assert {e.id for e in service.list(USERNAME_2, None, ["c1", "c1"])} == {both.id, only_c1.id}
    assert service.list(USERNAME_2, None, ["c3"]) == []

def test_list_by_categories_requires_a_category(service):
    with pytest.raises(EventValidationError):
        service.list(USERNAME_1, None, [])

def test_list_localized(service):
    service.create(CATEGORIES, USERNAME_1, "de", an_event(title="HansiEvent"))
    service.create(CATEGORIES, USERNAME_1, None, an_event())

    assert len(service.list(USERNAME_1, None, CATEGORIES)) == 2

    titles = sorted(e.title for e in service.list(USERNAME_1, "de", CATEGORIES))
    assert titles == ["HansiEvent", "HariEvent"]

# -------- register --------

def test_register(service):
    event = service.create(CATEGORIES, USERNAME_1, None, an_event())

    # Owner registering for own event
    with pytest.raises(ConflictError):
        service.register(USERNAME_1, event.id)

    # Unknown event
    with pytest.raises(NotFoundError):
        service.register(USERNAME_2, uuid.uuid4())

    assert not service.is_registered(USERNAME_2, event.id)
    assert service.register(USERNAME_2, event.id)
    assert service.is_registered(USERNAME_2, event.id)

    # Registering again
    with pytest.raises(IntegrityError):
        service.register(USERNAME_2, event.id)

    # Session is still usable after the failed insert
    assert service.is_registered(USERNAME_2, event.id)

# -------- start / join --------

def test_start(service):
    event = service.create(CATEGORIES, USERNAME_1, None, an_event())

    # Non owner
    with pytest.raises(NotFoundError):
        service.start(USERNAME_2, event.id, MEETING_URL)

    # Missing URL
    with pytest.raises(EventValidationError):
        service.start(USERNAME_1, event.id, None)

    # Malformed URL
    with pytest.raises(EventValidationError):
        service.start(USERNAME_1, event.id, "not a url")

    # Unknown event
    with pytest.raises(NotFoundError):
        service.start(USERNAME_1, uuid.uuid4(), MEETING_URL)

    # Too early
    with pytest.raises(ConflictError):
        service.start(USERNAME_1, event.id, MEETING_URL)

    service.update(event.id, USERNAME_1, None, an_event(event_date=NOW + timedelta(minutes=4)))
    assert service.start(USERNAME_1, event.id, MEETING_URL)

    # Double start
    with pytest.raises(IntegrityError):
        service.start(USERNAME_1, event.id, MEETING_URL)

@pytest.mark.parametrize("offset, allowed", [
    (timedelta(minutes=-11), False),
    (timedelta(minutes=-10), False),
    (timedelta(minutes=-9), True),
    (timedelta(minutes=9), True),
    (timedelta(minutes=10), False),
])
def test_start_window(service, clock, offset, allowed):
    event = service.create(CATEGORIES, USERNAME_1, None, an_event())
    clock.now = event.event_date - offset

    if allowed:
        assert service.start(USERNAME_1, event.id, MEETING_URL)
    else:
        with pytest.raises(ConflictError):
            service.start(USERNAME_1, event.id, MEETING_URL)

def test_join(service, clock):
    event = service.create(CATEGORIES, USERNAME_1, None, an_event())

    # Without registration or meeting
    with pytest.raises(ConflictError):
        service.join(USERNAME_2, event.id)

    # Without event
    with pytest.raises(NotFoundError):
        service.join(USERNAME_2, uuid.uuid4())

    # Owner joining before start
    with pytest.raises(ConflictError):
        service.join(USERNAME_1, event.id)

    clock.now = event.event_date - timedelta(minutes=4)
    service.start(USERNAME_1, event.id, MEETING_URL)

    assert service.join(USERNAME_1, event.id) == MEETING_URL

    # Started, but not registered
    with pytest.raises(ConflictError):
        service.join(USERNAME_2, event.id)

    service.register(USERNAME_2, event.id)
    assert service.join(USERNAME_2, event.id) == MEETING_URL

def test_join_hides_meeting_state_from_outsiders(service, clock):
    event = service.create(CATEGORIES, USERNAME_1, None, an_event())

    with pytest.raises(ConflictError) as before_start:
        service.join("stranger", event.id)

    clock.now = event.event_date - timedelta(minutes=4)
    service.start(USERNAME_1, event.id, MEETING_URL)

    with pytest.raises(ConflictError) as after_start:
        service.join("stranger", event.id)

    assert before_start.value.message == after_start.value.message
    assert "owner or registered learners" in after_start.value.message

def test_join_before_start_for_learner(service):
    event = service.create(CATEGORIES, USERNAME_1, None, an_event())
    service.register(USERNAME_2, event.id)

    with pytest.raises(ConflictError) as exc_info:
        service.join(USERNAME_2, event.id)

    assert "not been started" in exc_info.value.message

def test_meeting_url_masked_for_non_owners(service, clock):
    event = service.create(CATEGORIES, USERNAME_1, "de", an_event())
    clock.now = event.event_date - timedelta(minutes=4)
    service.start(USERNAME_1, event.id, MEETING_URL)
    service.register(USERNAME_2, event.id)

    assert service.read(USERNAME_1, event.id).meeting_url == MEETING_URL
    assert service.read(USERNAME_1, event.id, "de").meeting_url == MEETING_URL
    assert service.read(USERNAME_2, event.id).meeting_url is None
    assert service.read(USERNAME_2, event.id, "de").meeting_url is None

    assert [e.meeting_url for e in service.list(USERNAME_1)] == [MEETING_URL]
    assert [e.meeting_url for e in service.list(USERNAME_2)] == [None]
    assert [e.meeting_url for e in service.list("stranger", None, CATEGORIES)] == [None]

# -------- delete --------

def test_delete(service, clock, db_session):
    event = service.create(CATEGORIES, USERNAME_1, "de", an_event())

    # Not the owner
    with pytest.raises(NotFoundError):
        service.delete(USERNAME_2, event.id)

    # Unknown event
    with pytest.raises(NotFoundError):
        service.delete(USERNAME_1, uuid.uuid4())

    service.register(USERNAME_2, event.id)
    db_session.add(EventTag(event_id=event.id, tag_id="t1"))
    db_session.commit()
    clock.now = event.event_date - timedelta(minutes=4)
    service.start(USERNAME_1, event.id, MEETING_URL)

    assert service.delete(USERNAME_1, event.id)

    assert service.read(USERNAME_1, event.id) is None
    assert not service.is_registered(USERNAME_2, event.id)
    assert CategoryRepo.list_for_event_sql(db_session, event.id) == []
    assert db_session.query(EventTag).count() == 0

def test_delete_is_atomic(service, db_session, monkeypatch):
    event = service.create(CATEGORIES, USERNAME_1, "de", an_event())
    service.register(USERNAME_2, event.id)

    def fail(db, event_id):
        raise RuntimeError("disk full")

    monkeypatch.setattr(EventRepo, "delete_sql", staticmethod(fail))

    with pytest.raises(RuntimeError):
        service.delete(USERNAME_1, event.id)

    assert service.read(USERNAME_1, event.id) is not None
    assert service.is_registered(USERNAME_2, event.id)
    assert sorted(CategoryRepo.list_for_event_sql(db_session, event.id)) == CATEGORIES
    assert db_session.query(EventLocalized).count() == 1

def test_delete_all(service, db_session):
    first = service.create(CATEGORIES, USERNAME_1, "de", an_event())
    service.create(CATEGORIES, USERNAME_2, None, an_event())
    service.register(USERNAME_2, first.id)

    service.delete_all()

    assert db_session.query(Event).count() == 0
    assert db_session.query(EventLearner).count() == 0
    assert service.list(USERNAME_1, None, CATEGORIES) == []
