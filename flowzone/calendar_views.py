# flowzone/calendar_views.py

"""
Date-range helpers behind the day, week and month calendar views.

Weeks start on Sunday. All boundaries are computed in UTC, matching how event
times are stored.
"""

import calendar
from datetime import date, datetime, time, timedelta, timezone
from typing import Iterable, List, Optional, Tuple

VIEWS = ("day", "week", "month")


def _start_of(value) -> datetime:
    if isinstance(value, str):
        value = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _event_start(event) -> datetime:
    start = event["startTime"] if isinstance(event, dict) else event.startTime
    return _start_of(start)


def days_in_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def get_week_days(day: date) -> List[date]:
    """The seven dates of the Sunday-started week containing `day`."""
    # date.weekday(): Monday == 0 ... Sunday == 6
    sunday = day - timedelta(days=(day.weekday() + 1) % 7)
    return [sunday + timedelta(days=i) for i in range(7)]


def get_month_days(year: int, month: int) -> List[Optional[date]]:
    """
    Month grid cells, Sunday first. Leading cells before the 1st of the month
    are None so that the first real date lands under its weekday column.
    """
    first = date(year, month, 1)
    leading = (first.weekday() + 1) % 7
    days: List[Optional[date]] = [None] * leading
    days.extend(date(year, month, d) for d in range(1, days_in_month(year, month) + 1))
    return days


def get_day_events(events: Iterable, day: date) -> list:
    """Events whose start falls on the given calendar day."""
    return [event for event in events if _event_start(event).date() == day]


def get_events_at_hour(events: Iterable, day: date, hour: int) -> list:
    return [
        event for event in events
        if _event_start(event).date() == day and _event_start(event).hour == hour
    ]


def view_range(view: str, day: date) -> Tuple[datetime, datetime]:
    """Half-open [start, end) UTC range covered by a day, week or month view."""
    if view == "day":
        start = day
        end = day + timedelta(days=1)
    elif view == "week":
        start = get_week_days(day)[0]
        end = start + timedelta(days=7)
    elif view == "month":
        start = day.replace(day=1)
        end = start + timedelta(days=days_in_month(day.year, day.month))
    else:
        raise ValueError(f"Unknown view '{view}'. Expected one of: {', '.join(VIEWS)}")

    return (
        datetime.combine(start, time.min, tzinfo=timezone.utc),
        datetime.combine(end, time.min, tzinfo=timezone.utc),
    )


def format_hour_label(hour: int) -> str:
    if hour == 0:
        return "12 AM"
    if hour < 12:
        return f"{hour} AM"
    if hour == 12:
        return "12 PM"
    return f"{hour - 12} PM"
