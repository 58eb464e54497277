"""REE standard consumption profile importer.

The profile is a list of hourly coefficients that add up to one over the
year. Scaling it by an annual consumption gives a synthetic load curve
for supply points without metered data.

CSV format (semicolon separated, header row):
    fecha_hora;coeficiente
    2023-01-01 01:00;0,000121
"""

import csv
from collections.abc import Iterable
from datetime import datetime
from pathlib import Path

from .. import dates
from ..errors import MalformedInputError
from ..loadcurve import normalize_readings
from ..models import LoadCurve, RawReading
from ..validators import parse_number, require_non_negative

SOURCE_NAME = "ree"
DELIMITER = ";"


def parse_rows(rows: Iterable[list[str]], annual_consumption: float) -> list[RawReading]:
    """Parse profile rows, scaling each coefficient by ``annual_consumption`` kWh."""
    require_non_negative(annual_consumption, "annual_consumption")
    readings = []
    for n, row in enumerate(rows, start=2):
        if not any(c.strip() for c in row):
            continue
        try:
            timestamp = datetime.fromisoformat(row[0].strip())
            coefficient = parse_number(row[1], "coefficient")
        except (IndexError, ValueError) as e:
            raise MalformedInputError(f"{SOURCE_NAME} row {n}: {e}") from None
        readings.append(RawReading(date=dates.previous_hour(timestamp), value=coefficient * annual_consumption))
    return readings


def parse_csv(csv_path: Path, annual_consumption: float) -> list[RawReading]:
    with open(csv_path, newline="", encoding="utf-8-sig") as f:
        reader = csv.reader(f, delimiter=DELIMITER)
        next(reader, None)
        return parse_rows(reader, annual_consumption)


def load_curve(
    csv_path: Path,
    annual_consumption: float,
    name: str | None = None,
    reference_year: int | None = None,
) -> LoadCurve:
    return normalize_readings(
        parse_csv(csv_path, annual_consumption),
        name=name or Path(csv_path).stem,
        reference_year=reference_year,
    )
