"""Infoenergia consumption CSV importer.

CSV format (comma separated, header row):
    CUPS,Fecha,Hora,Consumo_kWh
    ES0021000000000000AA,15/03/2023,1,"0,312"

Dates are D/M/Y and hours are labelled 1..24 as "hour ending at". On the
day DST ends the repeated civil hour is listed twice.
"""

import csv
from collections.abc import Iterable
from datetime import date
from pathlib import Path

from .. import dates
from ..errors import MalformedInputError
from ..loadcurve import correct_repeated_dst_hour, normalize_readings
from ..models import LoadCurve, RawReading
from ..validators import parse_number

SOURCE_NAME = "infoenergia"
DELIMITER = ","


def parse_row(row: list[str], row_number: int = 0) -> RawReading:
    """Parse one data row into a reading at the start of its hour."""
    try:
        day, month, year = (int(part) for part in row[1].strip().split("/"))
        hour = int(row[2])
        value = parse_number(row[3], "consumption")
    except (IndexError, ValueError) as e:
        raise MalformedInputError(f"{SOURCE_NAME} row {row_number}: {e}") from None
    return RawReading(date=dates.hour_ending(date(year, month, day), hour), value=value)


def parse_rows(rows: Iterable[list[str]]) -> list[RawReading]:
    """Parse data rows (header already removed), skipping blank lines."""
    return [parse_row(row, n) for n, row in enumerate(rows, start=2) if any(c.strip() for c in row)]


def parse_csv(csv_path: Path) -> list[RawReading]:
    """Parse an Infoenergia CSV export file."""
    with open(csv_path, newline="", encoding="utf-8-sig") as f:
        reader = csv.reader(f, delimiter=DELIMITER)
        next(reader, None)
        return parse_rows(reader)


def load_curve(csv_path: Path, name: str | None = None, reference_year: int | None = None) -> LoadCurve:
    """Parse and normalize an Infoenergia CSV into an annual load curve."""
    readings = parse_csv(csv_path)
    return normalize_readings(
        readings,
        name=name or Path(csv_path).stem,
        dst_correction=correct_repeated_dst_hour,
        reference_year=reference_year,
    )
