"""Time Ranges — UTC parsing, inclusive overlap and Madrid calendar helpers.

Tests:
    - Date-only params become midnight UTC; offsets are converted to UTC
    - Overlap includes ranges that only touch
    - Variant ranges use Madrid wall-clock hours across DST
    - Madrid day enumeration and ISO serialisation
"""

from datetime import date, datetime, timezone

from erp.core.time_ranges import (
    DateRange, as_utc, normalize_date_range, parse_datetime_param,
    parse_time_parts, compute_variant_range, enumerate_madrid_days,
    madrid_date, to_iso,
)


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


# ─── Parsing ─────────────────────────────────────────────────────

def test_date_only_is_midnight_utc():
    assert parse_datetime_param("2026-03-10") == utc(2026, 3, 10)


def test_z_suffix_and_offsets_become_utc():
    assert parse_datetime_param("2026-03-10T09:00:00Z") == utc(2026, 3, 10, 9)
    assert parse_datetime_param("2026-03-10T10:00:00+01:00") == utc(2026, 3, 10, 9)


def test_invalid_params_are_none():
    assert parse_datetime_param("mañana") is None
    assert parse_datetime_param("") is None
    assert parse_datetime_param(5) is None
    assert parse_datetime_param("2026-02-30") is None


def test_naive_datetimes_are_read_as_utc():
    assert as_utc(datetime(2026, 1, 1, 12)) == utc(2026, 1, 1, 12)


def test_parse_time_parts():
    assert parse_time_parts("9:05") == (9, 5)
    assert parse_time_parts("09:00:00") == (9, 0)
    assert parse_time_parts("24:00") is None
    assert parse_time_parts("nueve") is None


# ─── Ranges ──────────────────────────────────────────────────────

def test_touching_ranges_overlap():
    first = DateRange(utc(2026, 1, 1, 9), utc(2026, 1, 1, 11))
    second = DateRange(utc(2026, 1, 1, 11), utc(2026, 1, 1, 13))
    assert first.overlaps(second)
    assert second.overlaps(first)


def test_disjoint_ranges_do_not_overlap():
    first = DateRange(utc(2026, 1, 1, 9), utc(2026, 1, 1, 11))
    second = DateRange(utc(2026, 1, 1, 11, 1), utc(2026, 1, 1, 13))
    assert not first.overlaps(second)


def test_normalize_fills_missing_bound():
    start = utc(2026, 1, 1, 9)
    assert normalize_date_range(start, None) == DateRange(start, start)
    assert normalize_date_range(None, start) == DateRange(start, start)
    assert normalize_date_range(None, None) is None


def test_normalize_rejects_inverted_range():
    assert normalize_date_range(utc(2026, 1, 2), utc(2026, 1, 1)) is None


# ─── Variants ────────────────────────────────────────────────────

def test_variant_range_in_winter():
    span = compute_variant_range(date(2026, 1, 15), "09:00", "11:00")
    assert span == DateRange(utc(2026, 1, 15, 8), utc(2026, 1, 15, 10))


def test_variant_range_in_summer():
    span = compute_variant_range(date(2026, 7, 15), "09:00", "13:30")
    assert span == DateRange(utc(2026, 7, 15, 7), utc(2026, 7, 15, 11, 30))


def test_variant_range_defaults_to_nine_to_eleven():
    span = compute_variant_range(date(2026, 1, 15), None, None)
    assert span == DateRange(utc(2026, 1, 15, 8), utc(2026, 1, 15, 10))


def test_variant_range_end_before_start_adds_one_hour():
    span = compute_variant_range(date(2026, 1, 15), "10:00", "09:00")
    assert span == DateRange(utc(2026, 1, 15, 9), utc(2026, 1, 15, 10))


def test_variant_range_uses_utc_date_of_stored_datetime():
    span = compute_variant_range(utc(2026, 1, 15, 23, 30), "09:00", "11:00")
    assert span.start == utc(2026, 1, 15, 8)


def test_variant_without_date_has_no_range():
    assert compute_variant_range(None, "09:00", "11:00") is None


# ─── Madrid calendar ─────────────────────────────────────────────

def test_madrid_date_crosses_midnight():
    assert madrid_date(utc(2026, 1, 14, 23, 30)) == date(2026, 1, 15)


def test_enumerate_madrid_days_is_inclusive():
    span = DateRange(utc(2026, 1, 14, 23, 30), utc(2026, 1, 16, 10))
    assert enumerate_madrid_days(span) == [
        date(2026, 1, 15), date(2026, 1, 16),
    ]


def test_to_iso_uses_z_suffix():
    assert to_iso(utc(2026, 1, 1)) == "2026-01-01T00:00:00Z"
    assert to_iso(datetime(2026, 1, 1)) == "2026-01-01T00:00:00Z"
    assert to_iso(None) is None
