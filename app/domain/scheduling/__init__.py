"""
Scheduling Domain

Time-slot arithmetic for bookings: overlap detection, booking end times,
day boundaries and slot parsing.
"""

from .time_overlap import (
    STANDARD_SLOTS,
    calculate_booking_end_time,
    check_time_overlap,
    find_conflicts,
    format_time_range,
    get_day_boundaries,
    parse_time_slot,
)

__all__ = [
    "STANDARD_SLOTS",
    "calculate_booking_end_time",
    "check_time_overlap",
    "find_conflicts",
    "format_time_range",
    "get_day_boundaries",
    "parse_time_slot",
]
