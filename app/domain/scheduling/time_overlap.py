"""
Time overlap utilities for booking slots.

Timezone policy: stored instants are timezone-aware UTC. Naive datetimes are
interpreted in APP_TIMEZONE. Durations are added as elapsed time, so a 2-hour
booking starting just before a DST change still lasts 2 real hours; day
boundaries are local calendar midnights in the datetime's own zone.
"""

import re
from datetime import date, datetime, time, timedelta, timezone
from typing import Iterable, Optional, Union
from zoneinfo import ZoneInfo

from ...config import APP_TIMEZONE, BOOKING_DURATION_HOURS

# Bookable start times offered to customers
STANDARD_SLOTS = ("09:00", "11:00", "14:00", "16:00", "18:00")

TIME_SLOT_PATTERN = re.compile(r"([01]\d|2[0-3]):([0-5]\d)")


def local_zone() -> ZoneInfo:
    return ZoneInfo(APP_TIMEZONE)


def ensure_aware(value: datetime) -> datetime:
    """Attach APP_TIMEZONE to naive datetimes; aware ones are returned unchanged."""
    if value.tzinfo is None:
        return value.replace(tzinfo=local_zone())
    return value


def check_time_overlap(
    selected_start: datetime,
    selected_end: datetime,
    existing_start: datetime,
    existing_end: datetime,
) -> bool:
    """
    Two ranges overlap when selected_start < existing_end and selected_end > existing_start.

    [10:00-12:00] vs [11:00-13:00] -> True
    [10:00-12:00] vs [12:00-14:00] -> False (touching)
    [10:00-12:00] vs [10:00-12:00] -> True
    """
    return selected_start < existing_end and selected_end > existing_start


def calculate_booking_end_time(
    start_time: datetime, duration_hours: Union[int, float] = BOOKING_DURATION_HOURS
) -> datetime:
    """Start plus duration_hours of elapsed time, in the start's timezone (APP_TIMEZONE when naive)."""
    start_time = ensure_aware(start_time)
    end_utc = start_time.astimezone(timezone.utc) + timedelta(hours=duration_hours)
    return end_utc.astimezone(start_time.tzinfo)


def get_day_boundaries(day: Union[date, datetime]) -> tuple[datetime, datetime]:
    """(00:00:00.000, 23:59:59.999) of the same local calendar day."""
    if isinstance(day, datetime):
        tz = day.tzinfo
        day_value = day.date()
    else:
        tz = None
        day_value = day

    start_of_day = datetime.combine(day_value, time(0, 0, 0, 0), tzinfo=tz)
    end_of_day = datetime.combine(day_value, time(23, 59, 59, 999000), tzinfo=tz)
    return start_of_day, end_of_day


def parse_time_slot(day: Union[date, datetime], time_string: str) -> datetime:
    """Combine the calendar day of ``day`` with an "HH:mm" time."""
    match = TIME_SLOT_PATTERN.fullmatch(time_string or "")
    if not match:
        raise ValueError(f'Invalid time slot "{time_string}". Expected HH:mm')

    hours, minutes = int(match.group(1)), int(match.group(2))
    if isinstance(day, datetime):
        return datetime.combine(day.date(), time(hours, minutes), tzinfo=day.tzinfo)
    return datetime.combine(day, time(hours, minutes))


def format_time_range(start: datetime, end: datetime) -> str:
    """'9:00 AM - 11:00 AM'"""

    def format_time(value: datetime) -> str:
        suffix = "PM" if value.hour >= 12 else "AM"
        display_hour = value.hour % 12 or 12
        return f"{display_hour}:{value.minute:02d} {suffix}"

    return f"{format_time(start)} - {format_time(end)}"


def find_conflicts(
    start: datetime,
    end: datetime,
    existing: Iterable,
    duration_hours: Union[int, float] = BOOKING_DURATION_HOURS,
    key=None,
) -> list:
    """
    Return the items of ``existing`` whose booked interval overlaps [start, end).

    Each existing item occupies [scheduled, scheduled + duration_hours). ``key``
    extracts the scheduled datetime from an item (default: the item itself or
    its ``scheduledTime`` attribute).
    """
    start = ensure_aware(start)
    end = ensure_aware(end)
    conflicts = []
    for item in existing:
        scheduled: Optional[datetime] = key(item) if key else getattr(item, "scheduledTime", item)
        if scheduled is None:
            continue
        scheduled = ensure_aware(scheduled)
        if check_time_overlap(
            start, end, scheduled, calculate_booking_end_time(scheduled, duration_hours)
        ):
            conflicts.append(item)
    return conflicts
