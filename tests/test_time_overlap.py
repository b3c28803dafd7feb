from datetime import date, datetime, timedelta, timezone
from types import SimpleNamespace
from zoneinfo import ZoneInfo

import pytest

from app.domain.scheduling import (
    calculate_booking_end_time,
    check_time_overlap,
    find_conflicts,
    format_time_range,
    get_day_boundaries,
    parse_time_slot,
)

UTC = timezone.utc


def at(hour, minute=0, day=1):
    return datetime(2024, 5, day, hour, minute, tzinfo=UTC)


def test_partial_overlap():
    assert check_time_overlap(at(10), at(12), at(11), at(13))


def test_touching_ranges_do_not_overlap():
    assert not check_time_overlap(at(10), at(12), at(12), at(14))
    assert not check_time_overlap(at(12), at(14), at(10), at(12))


def test_identical_ranges_overlap():
    assert check_time_overlap(at(10), at(12), at(10), at(12))


def test_contained_range_overlaps():
    assert check_time_overlap(at(10), at(14), at(11), at(12))


def test_booking_end_defaults_to_two_hours():
    assert calculate_booking_end_time(at(9)) == at(11)


def test_booking_end_crosses_midnight():
    assert calculate_booking_end_time(at(23)) == at(1, day=2)


def test_booking_end_counts_elapsed_hours_across_dst():
    new_york = ZoneInfo("America/New_York")
    # Clocks jump from 02:00 to 03:00 on 2024-03-10
    start = datetime(2024, 3, 10, 1, 30, tzinfo=new_york)
    end = calculate_booking_end_time(start)
    assert end.hour == 4 and end.minute == 30
    assert end.astimezone(UTC) - start.astimezone(UTC) == timedelta(hours=2)


def test_booking_end_reads_naive_start_in_app_timezone(monkeypatch):
    monkeypatch.setattr("app.domain.scheduling.time_overlap.APP_TIMEZONE", "America/New_York")

    end = calculate_booking_end_time(datetime(2024, 3, 10, 1, 30))

    assert end.tzinfo is not None
    assert (end.hour, end.minute) == (4, 30)
    assert end == datetime(2024, 3, 10, 8, 30, tzinfo=UTC)


def test_day_boundaries_keep_the_calendar_day_and_zone():
    kolkata = ZoneInfo("Asia/Kolkata")
    start, end = get_day_boundaries(datetime(2024, 5, 1, 15, 30, tzinfo=kolkata))
    assert start == datetime(2024, 5, 1, 0, 0, tzinfo=kolkata)
    assert end == datetime(2024, 5, 1, 23, 59, 59, 999000, tzinfo=kolkata)


def test_day_boundaries_for_a_date():
    start, end = get_day_boundaries(date(2024, 5, 1))
    assert start == datetime(2024, 5, 1)
    assert end.date() == date(2024, 5, 1)


def test_parse_time_slot():
    assert parse_time_slot(date(2024, 5, 1), "09:30") == datetime(2024, 5, 1, 9, 30)
    parsed = parse_time_slot(at(18), "14:00")
    assert parsed == at(14)


@pytest.mark.parametrize("bad", ["9:30", "24:00", "12:60", "noon", "", "09:30:00", "09:30\n", " 09:30"])
def test_parse_time_slot_rejects_malformed_input(bad):
    with pytest.raises(ValueError):
        parse_time_slot(date(2024, 5, 1), bad)


@pytest.mark.parametrize(
    "start,end,text",
    [
        (at(9), at(11), "9:00 AM - 11:00 AM"),
        (at(14), at(16), "2:00 PM - 4:00 PM"),
        (at(0), at(12), "12:00 AM - 12:00 PM"),
        (at(11, 30), at(13, 30), "11:30 AM - 1:30 PM"),
    ],
)
def test_format_time_range(start, end, text):
    assert format_time_range(start, end) == text


def test_find_conflicts_uses_two_hour_bookings():
    existing = [
        SimpleNamespace(id="a", scheduledTime=at(9)),  # 09-11
        SimpleNamespace(id="b", scheduledTime=at(14)),  # 14-16
        SimpleNamespace(id="c", scheduledTime=at(16)),  # 16-18, touches 14-16
    ]
    conflicts = find_conflicts(at(10), at(12), existing)
    assert [c.id for c in conflicts] == ["a"]

    assert find_conflicts(at(11), at(13), existing) == []
    assert [c.id for c in find_conflicts(at(15), at(17), existing)] == ["b", "c"]


def test_find_conflicts_with_key():
    existing = [{"start": at(9)}, {"start": at(18)}]
    conflicts = find_conflicts(at(8), at(10), existing, key=lambda b: b["start"])
    assert conflicts == [{"start": at(9)}]
