"""SIPS hourly consumption CSV importer.

CSV format (semicolon separated, header row):
    fecha_hora;consumo_kWh
    2023-01-01 01:00;0,245

Timestamps are ISO and mark the end of each hour. SIPS series are already
on a 24-slot civil day, so no DST correction is applied.
"""

import csv
from collections.abc import Iterable
from datetime import datetime
from pathlib import Path

from .. import dates
from ..errors import MalformedInputError
from ..loadcurve import normalize_readings
from ..models import LoadCurve, RawReading
from ..validators import parse_number

SOURCE_NAME = "sips"
DELIMITER = ";"


def parse_row(row: list[str], row_number: int = 0) -> RawReading:
    try:
        timestamp = datetime.fromisoformat(row[0].strip())
        value = parse_number(row[1], "consumption")
    except (IndexError, ValueError) as e:
        raise MalformedInputError(f"{SOURCE_NAME} row {row_number}: {e}") from None
    return RawReading(date=dates.previous_hour(timestamp), value=value)


def parse_rows(rows: Iterable[list[str]]) -> list[RawReading]:
    return [parse_row(row, n) for n, row in enumerate(rows, start=2) if any(c.strip() for c in row)]


def parse_csv(csv_path: Path) -> list[RawReading]:
    with open(csv_path, newline="", encoding="utf-8-sig") as f:
        reader = csv.reader(f, delimiter=DELIMITER)
        next(reader, None)
        return parse_rows(reader)


def load_curve(csv_path: Path, name: str | None = None, reference_year: int | None = None) -> LoadCurve:
    return normalize_readings(
        parse_csv(csv_path),
        name=name or Path(csv_path).stem,
        reference_year=reference_year,
    )
