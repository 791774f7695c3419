"""
Meeting start window
"""

from datetime import datetime, timedelta

START_WINDOW = timedelta(minutes=10)


def can_start(now: datetime, event_date: datetime, window: timedelta = START_WINDOW) -> bool:
    """True when event_date lies strictly within ``window`` of now"""
    return now - window < event_date < now + window
