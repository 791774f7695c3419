"""
Locale overlay resolution.

A localized row replaces the canonical title and description field by field:
whichever overlay field is missing falls back to the canonical value.
"""

from typing import Optional

from sqlalchemy import and_, func

from app.models import Event, EventLocalized


def language_of(tag: Optional[str]) -> Optional[str]:
    """Reduce a BCP-47 tag or Accept-Language header to its primary language.

    >>> language_of("de-DE")
    'de'
    >>> language_of("fr-CH, fr;q=0.9, en;q=0.8")
    'fr'
    """
    if not tag:
        return None
    first = tag.split(",")[0].split(";")[0].strip()
    language = first.replace("_", "-").split("-")[0].strip().lower()
    if not language or language == "*":
        return None
    return language


def localized_join(locale: str):
    """Outer-join condition matching only the overlay for ``locale``.

    Putting the locale test in the join (not the WHERE clause) keeps events
    whose overlays are all in other languages, so each id yields one row.
    """
    return and_(EventLocalized.event_id == Event.id, EventLocalized.locale == locale)


def localized_columns():
    """Title and description with per-field fallback to the canonical row"""
    return (
        func.coalesce(EventLocalized.title, Event.title).label("title"),
        func.coalesce(EventLocalized.description, Event.description).label("description"),
    )
