"""
Category intersection filter.

Selects the ids of events that carry every one of the requested categories.
Labels travel as bound parameters; only the placeholder count depends on input.
"""

from typing import Iterable

from sqlalchemy import Select, distinct, func, select

from app.models import EventCategory


def unique_labels(categories: Iterable[str]) -> list[str]:
    """Drop repeated labels, keeping first-seen order"""
    return list(dict.fromkeys(categories))


def category_filter(categories: Iterable[str]) -> Select:
    """Build ``SELECT event_id ... HAVING count(DISTINCT category_id) = n``"""
    labels = unique_labels(categories)
    if not labels:
        raise ValueError("At least one category is required")

    return (
        select(EventCategory.event_id)
        .where(EventCategory.category_id.in_(labels))
        .group_by(EventCategory.event_id)
        .having(func.count(distinct(EventCategory.category_id)) == len(labels))
    )
