"""
Time helpers.

Timestamps are stored as naive UTC. Calendar days the users talk about
("orders of 2025-03-14") are days in the business timezone.
"""

from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo

from flask import current_app

DEFAULT_TIMEZONE = 'America/Lima'


def utcnow():
    """Current UTC time as a naive datetime, matching the stored columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def business_timezone():
    try:
        name = current_app.config.get('BUSINESS_TIMEZONE', DEFAULT_TIMEZONE)
    except RuntimeError:
        name = DEFAULT_TIMEZONE
    return ZoneInfo(name)


def parse_day(value):
    """Parse a YYYY-MM-DD string into a date, raising ValueError when malformed."""
    if isinstance(value, date):
        return value
    return datetime.strptime(value, '%Y-%m-%d').date()


def local_day_bounds(day):
    """UTC [start, end) of a calendar day in the business timezone."""
    day = parse_day(day)
    tz = business_timezone()
    start = datetime.combine(day, time.min, tzinfo=tz)
    end = start + timedelta(days=1)
    return (
        start.astimezone(timezone.utc).replace(tzinfo=None),
        end.astimezone(timezone.utc).replace(tzinfo=None),
    )


def local_date(value):
    """Calendar day (business timezone) of a stored naive UTC timestamp."""
    return value.replace(tzinfo=timezone.utc).astimezone(business_timezone()).date()


def days_ago(days):
    return utcnow() - timedelta(days=days)


def summary_window_start():
    """Start of the rolling window used by the dashboard summaries"""
    try:
        days = current_app.config.get('SUMMARY_WINDOW_DAYS', 30)
    except RuntimeError:
        days = 30
    return days_ago(days)
