"""CNMC-format consumption CSV importer (Iberdrola, Union Fenosa).

CSV format (semicolon separated, header row):
    CUPS;Fecha;Hora;AE_kWh;REAL/ESTIMADO
    ES0021000000000000AA;15/03/2023;1;0,312;R

Dates are D/M/Y. The hour column is a counter of the hours of the day,
1..24 normally, 1..23 on the day DST starts and 1..25 on the day it ends.
"""

import csv
from collections.abc import Iterable
from datetime import date
from pathlib import Path

from .. import dates
from ..errors import MalformedInputError
from ..loadcurve import correct_sequential_dst, normalize_readings
from ..models import LoadCurve, RawReading
from ..validators import parse_number

SOURCE_NAME = "cnmc"
DELIMITER = ";"


def parse_row(row: list[str], row_number: int = 0) -> RawReading:
    try:
        day, month, year = (int(part) for part in row[1].strip().split("/"))
        hour = int(row[2])
        value = parse_number(row[3], "consumption")
    except (IndexError, ValueError) as e:
        raise MalformedInputError(f"{SOURCE_NAME} row {row_number}: {e}") from None
    comment = row[4].strip() if len(row) > 4 else ""
    return RawReading(date=dates.hour_ending(date(year, month, day), hour), value=value, comment=comment)


def parse_rows(rows: Iterable[list[str]]) -> list[RawReading]:
    return [parse_row(row, n) for n, row in enumerate(rows, start=2) if any(c.strip() for c in row)]


def parse_csv(csv_path: Path) -> list[RawReading]:
    """Parse a CNMC-format CSV export file."""
    with open(csv_path, newline="", encoding="utf-8-sig") as f:
        reader = csv.reader(f, delimiter=DELIMITER)
        next(reader, None)
        return parse_rows(reader)


def load_curve(csv_path: Path, name: str | None = None, reference_year: int | None = None) -> LoadCurve:
    readings = parse_csv(csv_path)
    return normalize_readings(
        readings,
        name=name or Path(csv_path).stem,
        dst_correction=correct_sequential_dst,
        reference_year=reference_year,
    )
