"""Normalization of raw consumption readings into 8760-hour load curves.

Raw readings come from collectors in arbitrary order and length. The
standard path is:

1. sort chronologically and drop February 29
2. trim to the last natural year ending at the last reading
3. correct the DST days for the dialect's hour convention
4. merge duplicated civil hours and fill missing ones with placeholders
5. re-key the year onto the reference year so it starts at Jan 1 00:00

``normalize_by_profile`` is the alternative path for reusable reference
profiles: hour x weekday x month averages mapped onto the reference year.
"""

import logging
from collections.abc import Callable, Iterable, Sequence
from datetime import datetime, timedelta

from . import dates
from .errors import DimensionMismatchError, MalformedInputError
from .models import HOURS_PER_YEAR, MISSING_COMMENT, HourlyValue, LoadCurve, RawReading
from .validators import require_non_leap_year

logger = logging.getLogger(__name__)

DEFAULT_REFERENCE_YEAR = 2023

DstCorrection = Callable[[list[RawReading]], list[RawReading]]


def sort_readings(readings: Iterable[RawReading]) -> list[RawReading]:
    """Chronological order; readings sharing a timestamp keep their source order."""
    return sorted(readings, key=lambda r: r.date)


def remove_february_29th(readings: Iterable[RawReading]) -> list[RawReading]:
    """Leap days are never represented in an annual curve."""
    return [r for r in readings if not dates.is_february_29th(r.date)]


def trim_to_last_natural_year(readings: list[RawReading]) -> list[RawReading]:
    """Keep the year that ends at the last reading."""
    if not readings:
        return []
    last = readings[-1].date
    try:
        year_before = last.replace(year=last.year - 1)
    except ValueError:
        # Feb 29 has no counterpart a year earlier
        year_before = last.replace(year=last.year - 1, day=28)
    starting_date = year_before + timedelta(hours=1)
    for index, reading in enumerate(readings):
        if reading.date >= starting_date:
            if index:
                logger.debug("Trimmed %d readings before %s", index, starting_date)
            return readings[index:]
    return []


def correct_sequential_dst(readings: list[RawReading]) -> list[RawReading]:
    """DST correction for dialects that number the hours of each day 1..N.

    On the DST start day the counter runs 1..23, so every reading from the
    third onwards belongs one civil hour later (02:00 does not exist). On
    the DST end day it runs 1..25, so the readings from the fourth onwards
    belong one civil hour earlier (02:00 happens twice).
    """
    result = [RawReading(r.date, r.value, r.comment) for r in readings]
    years = sorted({r.date.year for r in result})

    for year in years:
        start = dates.dst_start(year)
        first_shifted = start + timedelta(hours=2)
        day_end = start + timedelta(hours=23)
        for reading in result:
            if first_shifted <= reading.date < day_end:
                reading.date = dates.shift_hours(reading.date, 1)

        end = dates.dst_end(year)
        end_index = next((i for i, r in enumerate(result) if r.date == end), None)
        if end_index is None:
            continue
        for offset in range(3, 25):
            index = end_index + offset
            if index >= len(result):
                break
            reading = result[index]
            if reading.date != end + timedelta(hours=offset):
                break
            reading.date = dates.shift_hours(reading.date, -1)

    return sort_readings(result)


def correct_repeated_dst_hour(readings: list[RawReading]) -> list[RawReading]:
    """DST correction for dialects that label civil hours.

    Only the repeated hour at the end of DST needs fixing: when the 01:00
    slot of that day appears twice, the second one is moved to 02:00.
    """
    result = [RawReading(r.date, r.value, r.comment) for r in readings]
    years = sorted({r.date.year for r in result})

    for year in years:
        repeated_hour = dates.previous_hour(dates.dst_end(year) + timedelta(hours=2))
        for index in range(len(result) - 1):
            if result[index].date == repeated_hour and result[index + 1].date == repeated_hour:
                result[index + 1].date = dates.shift_hours(repeated_hour, 1)
                break

    return sort_readings(result)


def merge_duplicate_hours(readings: Sequence[RawReading]) -> list[RawReading]:
    """Collapse readings sharing a timestamp into one, summing their energy."""
    merged: list[RawReading] = []
    for reading in readings:
        if merged and merged[-1].date == reading.date:
            previous = merged[-1]
            merged[-1] = RawReading(previous.date, previous.value + reading.value, previous.comment)
        else:
            merged.append(RawReading(reading.date, reading.value, reading.comment))
    if len(merged) != len(readings):
        logger.debug("Merged %d duplicated hours", len(readings) - len(merged))
    return merged


def complete_missing_values(readings: Sequence[RawReading]) -> list[HourlyValue]:
    """Walk the 8760-hour grid from the first reading, filling gaps with zeros.

    Filled hours carry the missing marker. February 29 slots are skipped.
    Readings must be sorted and free of duplicated timestamps.
    """
    if not readings:
        raise MalformedInputError("Cannot build a load curve from an empty set of readings")

    completed: list[HourlyValue] = []
    current = readings[0].date
    j = 0
    while len(completed) < HOURS_PER_YEAR:
        if dates.is_february_29th(current):
            current += timedelta(hours=1)
            continue
        while j < len(readings) and readings[j].date < current:
            j += 1
        if j < len(readings) and readings[j].date == current:
            completed.append(HourlyValue(current, readings[j].value, readings[j].comment))
            j += 1
        else:
            completed.append(HourlyValue(current, 0.0, MISSING_COMMENT))
        current += timedelta(hours=1)

    missing = sum(1 for e in completed if e.is_missing)
    if missing:
        logger.debug("Filled %d missing hours with placeholders", missing)
    return completed


def infer_reference_year(entries: Sequence[HourlyValue]) -> int:
    """Year of the Jan 1 00:00 inside the window, when it is not a leap year."""
    for entry in entries:
        ts = entry.timestamp
        if ts.month == 1 and ts.day == 1 and ts.hour == 0:
            year = ts.year
            break
    else:
        return DEFAULT_REFERENCE_YEAR
    try:
        return require_non_leap_year(year)
    except MalformedInputError:
        return DEFAULT_REFERENCE_YEAR


def align_to_reference_year(entries: Sequence[HourlyValue], year: int) -> list[HourlyValue]:
    """Move every hour onto ``year`` keeping month, day and hour.

    A Feb 29-free 8760-hour window covers each calendar hour exactly once,
    so the result is the full reference year starting at Jan 1 00:00.
    """
    require_non_leap_year(year)
    by_slot = {}
    for entry in entries:
        ts = entry.timestamp
        slot = datetime(year, ts.month, ts.day, ts.hour)
        if slot in by_slot:
            raise DimensionMismatchError(f"Hour {slot:%m-%d %H:00} appears twice in the window")
        by_slot[slot] = HourlyValue(slot, entry.value, entry.comment)
    return [by_slot[slot] for slot in sorted(by_slot)]


def normalize_readings(
    readings: Iterable[RawReading],
    name: str,
    dst_correction: DstCorrection | None = None,
    reference_year: int | None = None,
) -> LoadCurve:
    """Run the standard normalization pipeline over parsed readings."""
    ordered = remove_february_29th(sort_readings(readings))
    if not ordered:
        raise MalformedInputError(f"No readings to normalize for '{name}'")
    logger.debug("Normalizing %d readings for '%s'", len(ordered), name)

    trimmed = trim_to_last_natural_year(ordered)
    if dst_correction is not None:
        trimmed = dst_correction(trimmed)
    completed = complete_missing_values(merge_duplicate_hours(trimmed))

    year = reference_year if reference_year is not None else infer_reference_year(completed)
    return LoadCurve(name=name, entries=tuple(align_to_reference_year(completed, year)))


def normalize_by_profile(
    readings: Iterable[RawReading],
    name: str,
    reference_year: int = DEFAULT_REFERENCE_YEAR,
) -> LoadCurve:
    """Build a curve from hour x weekday x month averages of the readings.

    Used when the readings follow a different calendar than the study
    year (a reusable reference profile). The averaged series is rotated so
    that it starts on the first reference-year hour sharing the weekday of
    the first reading.
    """
    ordered = sort_readings(readings)
    if not ordered:
        raise MalformedInputError(f"No readings to normalize for '{name}'")
    require_non_leap_year(reference_year)

    sums = [[[0.0] * 7 for _ in range(24)] for _ in range(12)]
    counts = [[[0] * 7 for _ in range(24)] for _ in range(12)]
    for reading in ordered:
        d = reading.date
        sums[d.month - 1][d.hour][d.weekday()] += reading.value
        counts[d.month - 1][d.hour][d.weekday()] += 1

    def average(d: datetime) -> float:
        count = counts[d.month - 1][d.hour][d.weekday()]
        return sums[d.month - 1][d.hour][d.weekday()] / count if count else 0.0

    year = dates.year_hours(reference_year)
    values = [average(d) for d in year]

    target_weekday = ordered[0].date.weekday()
    shift = next(i for i, d in enumerate(year) if d.weekday() == target_weekday)
    values = values[shift:] + values[:shift]

    return LoadCurve(name=name, entries=tuple(HourlyValue(d, v) for d, v in zip(year, values)))


def rotate(values: Sequence[float], displacement: int) -> list[float]:
    """Move the last ``displacement`` elements to the front."""
    if not values:
        return []
    displacement %= len(values)
    return list(values[len(values) - displacement:]) + list(values[: len(values) - displacement])


def curve_from_values(
    values: Sequence[float],
    name: str,
    reference_year: int = DEFAULT_REFERENCE_YEAR,
    comments: Sequence[str] | None = None,
) -> LoadCurve:
    """Wrap 8760 plain values (Jan 1 00:00 first) as a curve on the reference year."""
    if len(values) != HOURS_PER_YEAR:
        raise DimensionMismatchError(
            f"'{name}' must have exactly {HOURS_PER_YEAR} values, got {len(values)}"
        )
    year = dates.year_hours(require_non_leap_year(reference_year))
    comments = comments or [""] * HOURS_PER_YEAR
    return LoadCurve(
        name=name,
        entries=tuple(HourlyValue(d, float(v), c) for d, v, c in zip(year, values, comments)),
    )
