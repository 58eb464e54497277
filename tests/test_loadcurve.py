"""Tests for load curve normalization."""

from datetime import datetime, timedelta

import pytest
from solarsizing import dates, loadcurve
from solarsizing.errors import DimensionMismatchError, MalformedInputError
from solarsizing.models import MISSING_COMMENT, HourlyValue, RawReading


def hourly_readings(start: datetime, count: int, value=1.0) -> list[RawReading]:
    readings = []
    for i in range(count):
        moment = start + timedelta(hours=i)
        readings.append(RawReading(moment, value(moment) if callable(value) else value))
    return readings


def assert_canonical(curve, year):
    assert len(curve.entries) == 8760
    assert curve.dates == dates.year_hours(year)
    for previous, current in zip(curve.dates, curve.dates[1:]):
        assert current > previous
    assert not any(dates.is_february_29th(d) for d in curve.dates)


def test_full_year_passes_through():
    readings = hourly_readings(datetime(2023, 1, 1), 8760, value=lambda d: d.hour)
    curve = loadcurve.normalize_readings(readings, "full")
    assert_canonical(curve, 2023)
    assert curve.missing_hours == 0
    assert curve.values[:3] == [0, 1, 2]


def test_unsorted_input_is_sorted():
    readings = hourly_readings(datetime(2023, 1, 1), 8760, value=lambda d: d.hour)
    curve = loadcurve.normalize_readings(list(reversed(readings)), "reversed")
    assert_canonical(curve, 2023)
    assert curve.values[:3] == [0, 1, 2]


def test_gaps_are_filled_with_marked_zeros():
    readings = hourly_readings(datetime(2023, 1, 1), 8760, value=2.0)
    del readings[100:110]
    curve = loadcurve.normalize_readings(readings, "gaps")
    assert_canonical(curve, 2023)
    assert curve.missing_hours == 10
    assert curve.entries[100].value == 0.0
    assert curve.entries[100].comment == MISSING_COMMENT
    assert curve.total == pytest.approx(2.0 * 8750)


def test_trims_to_last_natural_year_and_rekeys():
    # 18 months ending 2023-06-30 23:00; value encodes the source year
    start = datetime(2022, 1, 1)
    readings = hourly_readings(start, 8760 + 181 * 24, value=lambda d: float(d.year))
    assert readings[-1].date == datetime(2023, 6, 30, 23)

    curve = loadcurve.normalize_readings(readings, "trimmed")
    assert_canonical(curve, 2023)
    by_date = dict(zip(curve.dates, curve.values))
    # July-December comes from 2022, January-June from 2023
    assert by_date[datetime(2023, 7, 1, 0)] == 2022.0
    assert by_date[datetime(2023, 12, 31, 23)] == 2022.0
    assert by_date[datetime(2023, 1, 1, 0)] == 2023.0
    assert curve.missing_hours == 0


def test_leap_year_data_uses_default_reference_year():
    readings = hourly_readings(datetime(2024, 1, 1), 8784)
    curve = loadcurve.normalize_readings(readings, "leap")
    assert_canonical(curve, loadcurve.DEFAULT_REFERENCE_YEAR)
    assert curve.missing_hours == 0


def test_explicit_reference_year():
    readings = hourly_readings(datetime(2021, 1, 1), 8760)
    curve = loadcurve.normalize_readings(readings, "explicit", reference_year=2019)
    assert_canonical(curve, 2019)


def test_leap_reference_year_rejected():
    readings = hourly_readings(datetime(2023, 1, 1), 8760)
    with pytest.raises(MalformedInputError):
        loadcurve.normalize_readings(readings, "bad", reference_year=2024)


def test_empty_input():
    with pytest.raises(MalformedInputError):
        loadcurve.normalize_readings([], "empty")


def test_only_leap_day_input():
    readings = hourly_readings(datetime(2024, 2, 29), 24)
    with pytest.raises(MalformedInputError):
        loadcurve.normalize_readings(readings, "leap-day")


def test_complete_missing_values_is_idempotent_on_full_series():
    readings = hourly_readings(datetime(2023, 1, 1), 8760, value=3.0)
    completed = loadcurve.complete_missing_values(readings)
    assert [e.timestamp for e in completed] == [r.date for r in readings]
    assert all(not e.is_missing for e in completed)

    again = loadcurve.complete_missing_values(
        [RawReading(e.timestamp, e.value, e.comment) for e in completed]
    )
    assert again == completed


def test_complete_missing_values_skips_february_29th():
    readings = hourly_readings(datetime(2024, 2, 28), 24)
    completed = loadcurve.complete_missing_values(readings)
    assert len(completed) == 8760
    assert completed[24].timestamp == datetime(2024, 3, 1)


class TestSequentialDst:
    def test_start_day_counter_moves_past_missing_hour(self):
        day = datetime(2023, 3, 26)
        readings = [RawReading(dates.hour_ending(day.date(), k), float(k)) for k in range(1, 24)]
        corrected = loadcurve.correct_sequential_dst(readings)
        hours = [r.date.hour for r in corrected]
        assert hours == [0, 1] + list(range(3, 24))
        # input is not mutated
        assert readings[2].date == datetime(2023, 3, 26, 2)

    def test_end_day_counter_folds_repeated_hour(self):
        day = datetime(2023, 10, 29)
        readings = [RawReading(dates.hour_ending(day.date(), k), float(k)) for k in range(1, 26)]
        readings.append(RawReading(datetime(2023, 10, 30, 0), 100.0))
        corrected = loadcurve.merge_duplicate_hours(loadcurve.correct_sequential_dst(readings))

        same_day = [r for r in corrected if r.date.date() == day.date()]
        assert [r.date.hour for r in same_day] == list(range(24))
        # counters 3 and 4 both belong to 02:00
        assert same_day[2].value == 3.0 + 4.0
        assert same_day[23].value == 25.0
        assert corrected[-1] == RawReading(datetime(2023, 10, 30, 0), 100.0)
        assert sum(r.value for r in same_day) == sum(range(1, 26))


def test_repeated_dst_hour_moves_second_occurrence():
    end = datetime(2023, 10, 29)
    readings = [
        RawReading(end, 1.0),
        RawReading(end + timedelta(hours=1), 2.0),
        RawReading(end + timedelta(hours=1), 3.0),
        RawReading(end + timedelta(hours=3), 4.0),
    ]
    corrected = loadcurve.correct_repeated_dst_hour(readings)
    assert [r.date.hour for r in corrected] == [0, 1, 2, 3]
    assert [r.value for r in corrected] == [1.0, 2.0, 3.0, 4.0]


def test_merge_duplicate_hours_sums_values():
    moment = datetime(2023, 5, 1, 10)
    merged = loadcurve.merge_duplicate_hours([RawReading(moment, 1.5), RawReading(moment, 2.5)])
    assert merged == [RawReading(moment, 4.0)]


def test_align_rejects_repeated_slot():
    entries = [HourlyValue(datetime(2022, 5, 1, 10), 1.0), HourlyValue(datetime(2023, 5, 1, 10), 1.0)]
    with pytest.raises(DimensionMismatchError):
        loadcurve.align_to_reference_year(entries, 2023)


def test_normalize_by_profile_averages_and_rotates():
    # 2022 data: value depends on weekday only
    readings = hourly_readings(datetime(2022, 1, 1), 8760, value=lambda d: float(d.weekday()))
    curve = loadcurve.normalize_by_profile(readings, "profile", reference_year=2023)
    assert_canonical(curve, 2023)
    # before rotation each hour carries its own weekday average
    first_weekday = readings[0].date.weekday()  # Saturday
    shift = next(i for i, d in enumerate(dates.year_hours(2023)) if d.weekday() == first_weekday)
    assert curve.values[0] == float(dates.year_hours(2023)[shift].weekday())
    assert curve.values[0] == float(first_weekday)


def test_rotate():
    assert loadcurve.rotate([1, 2, 3, 4], 1) == [4, 1, 2, 3]
    assert loadcurve.rotate([1, 2, 3, 4], 0) == [1, 2, 3, 4]
    assert loadcurve.rotate([1, 2, 3, 4], 5) == [4, 1, 2, 3]
    assert loadcurve.rotate([], 3) == []


def test_curve_from_values_requires_full_year():
    with pytest.raises(DimensionMismatchError):
        loadcurve.curve_from_values([0.0] * 10, "short")
    curve = loadcurve.curve_from_values([1.0] * 8760, "flat")
    assert curve.total == 8760.0
    assert curve.dates[0] == datetime(2023, 1, 1)
