"""
Timezone utility functions for the Daily Slate Pick'em application

Every notion of "today" (which slate is current, whether two slates are
consecutive days, prime time) is taken in the reference timezone configured
by TIMEZONE. The clock itself can be replaced with set_clock() so tests and
backfill tooling can run against a fixed instant.
"""

from datetime import datetime, timezone

import pytz
from flask import current_app, has_app_context

DEFAULT_TIMEZONE = "America/New_York"

_clock = None


def set_clock(clock):
    """Install a zero-argument callable returning an aware UTC datetime (None resets)"""
    global _clock
    _clock = clock


def get_app_timezone():
    """Get the application's reference timezone"""
    timezone_name = DEFAULT_TIMEZONE
    if has_app_context():
        timezone_name = current_app.config.get("TIMEZONE", DEFAULT_TIMEZONE)

    try:
        return pytz.timezone(timezone_name)
    except pytz.UnknownTimeZoneError:
        return pytz.timezone(DEFAULT_TIMEZONE)


def get_utc_time():
    """Get current time in UTC"""
    if _clock is not None:
        return _clock()
    return datetime.now(timezone.utc)


def get_current_time():
    """Get current time in the reference timezone"""
    return get_utc_time().astimezone(get_app_timezone())


def get_reference_date():
    """Today's calendar date in the reference timezone"""
    return get_current_time().date()


def ensure_utc(dt):
    """Attach UTC to naive datetimes (the database stores UTC without tzinfo)"""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def convert_to_app_timezone(dt):
    """Convert a datetime to the reference timezone"""
    if dt is None:
        return None
    return ensure_utc(dt).astimezone(get_app_timezone())


def local_hour(dt):
    """Hour of day (0-23) of a datetime in the reference timezone"""
    return convert_to_app_timezone(dt).hour


def local_date(dt):
    return convert_to_app_timezone(dt).date()


def parse_iso_datetime(value):
    """Parse provider ISO-8601 timestamps ("...Z" included) into aware UTC"""
    if not value:
        return None
    if isinstance(value, datetime):
        return ensure_utc(value)

    value = value.strip()
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"

    # ESPN omits seconds ("2025-01-15T00:30+00:00")
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        parsed = datetime.strptime(value, "%Y-%m-%dT%H:%M%z")

    return ensure_utc(parsed)


def format_game_time(dt, format_str="%I:%M %p"):
    """Format a game time in the reference timezone"""
    if dt is None:
        return "TBD"

    return convert_to_app_timezone(dt).strftime(format_str)
