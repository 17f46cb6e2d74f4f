"""
Timezone utility functions for the prediction tracker
"""

from datetime import datetime, timezone

import pytz
from flask import current_app, has_app_context


def get_app_timezone():
    """Get the application's configured timezone"""
    if not has_app_context():
        return pytz.UTC
    try:
        timezone_name = current_app.config.get("TIMEZONE", "UTC")
        return pytz.timezone(timezone_name)
    except pytz.UnknownTimeZoneError:
        # Fallback to UTC if timezone is invalid
        return pytz.UTC


def utcnow():
    """Get current time in UTC"""
    return datetime.now(timezone.utc)


def as_utc(dt):
    """Normalize a stored datetime to an aware UTC datetime.

    Naive values come back from SQLite and are assumed to be UTC.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def convert_to_utc(dt):
    """Convert a datetime to UTC"""
    if dt is None:
        return None

    # If datetime is naive, assume it's in the application timezone
    if dt.tzinfo is None:
        app_tz = get_app_timezone()
        dt = app_tz.localize(dt)

    return dt.astimezone(timezone.utc)


def local_date(dt, tz=None):
    """Calendar day of an instant in ``tz`` (application timezone by default)"""
    tz = tz or get_app_timezone()
    return as_utc(dt).astimezone(tz).date()


def parse_datetime(value):
    """Parse an ISO-8601 string (or datetime) into an aware UTC datetime.

    Raises ValueError for anything that is not a valid timestamp.
    """
    if isinstance(value, datetime):
        return convert_to_utc(value)
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"Invalid datetime: {value!r}")

    text = value.strip()
    if text.endswith("Z") or text.endswith("z"):
        text = text[:-1] + "+00:00"
    return convert_to_utc(datetime.fromisoformat(text))


def isoformat(dt):
    """Serialize a stored datetime as ISO-8601 UTC, or None"""
    if dt is None:
        return None
    return as_utc(dt).isoformat()
