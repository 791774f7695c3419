"""
Field and domain validation of event drafts.

EventValidator plays the part of the field-level validation engine: it runs
the draft back through its pydantic model, so drafts produced by
model_construct() or model_copy(update=...) are checked too. The service adds
its own domain violations (date window, meeting URL) with violation().
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional, Set

from pydantic import AnyHttpUrl, BaseModel, TypeAdapter
from pydantic import ValidationError as PydanticValidationError


@dataclass(frozen=True)
class Violation:
    """A single failed constraint"""
    entity: str
    message: str
    field: Optional[str] = None

    def __str__(self) -> str:
        if self.field:
            return f"{self.field}: {self.message}"
        return self.message


def violation(entity: str, message: str, field: Optional[str] = None) -> Violation:
    """Build a violation owned by the service rather than the validator."""
    return Violation(entity=entity, message=message, field=field)


class EventValidator:
    """Validates a pydantic draft and reports violations instead of raising"""

    def validate(self, draft: BaseModel) -> Set[Violation]:
        entity = type(draft).__name__
        try:
            type(draft).model_validate(draft.model_dump())
        except PydanticValidationError as exc:
            return {
                violation(
                    entity,
                    error["msg"],
                    ".".join(str(part) for part in error["loc"]) or None
                )
                for error in exc.errors()
            }
        return set()


def check_event_date(draft: BaseModel, now: datetime, max_days: int) -> Set[Violation]:
    """Event date must be after now and at most max_days ahead"""
    event_date = getattr(draft, "event_date", None)
    if not isinstance(event_date, datetime):
        # Missing or mistyped dates are reported by EventValidator
        return set()
    if event_date <= now or event_date > now + timedelta(days=max_days):
        return {
            violation(
                type(draft).__name__,
                f"Event can only be scheduled up to {max_days} days in advance",
                "event_date"
            )
        }
    return set()


_http_url = TypeAdapter(AnyHttpUrl)


def check_meeting_url(meeting_url: Optional[str]) -> Set[Violation]:
    """Meeting URL must be present and an http(s) URL"""
    if not meeting_url:
        return {violation("EventMeeting", "Meeting URL is required", "meeting_url")}
    try:
        _http_url.validate_python(meeting_url)
    except PydanticValidationError:
        return {violation("EventMeeting", "Meeting URL is not a valid http(s) URL", "meeting_url")}
    return set()
