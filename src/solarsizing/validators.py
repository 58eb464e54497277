"""Composable shape and value checks for vectors and lookup tables.

Each check either returns the cleaned value or raises one of the errors in
``solarsizing.errors``. Checks are plain functions so they can be chained:

    prices = require_length(require_numbers(raw, "prices"), 6, "prices")
"""

import calendar
from collections.abc import Iterable, Sequence

from .errors import DimensionMismatchError, MalformedInputError


def parse_number(value, name: str = "value") -> float:
    """Parse a number that may use a comma as decimal separator."""
    if isinstance(value, bool):
        raise MalformedInputError(f"{name}: expected a number, got {value!r}")
    if isinstance(value, (int, float)):
        return float(value)
    try:
        return float(str(value).strip().replace(",", "."))
    except ValueError:
        raise MalformedInputError(f"{name}: expected a number, got {value!r}") from None


def require_numbers(values: Iterable, name: str, blank_as_zero: bool = False) -> list[float]:
    """Convert every element to float."""
    result = []
    for i, value in enumerate(values):
        if blank_as_zero and (value is None or value == ""):
            result.append(0.0)
        else:
            result.append(parse_number(value, f"{name}[{i}]"))
    return result


def require_length(values: Sequence, expected: int, name: str) -> Sequence:
    if len(values) != expected:
        raise DimensionMismatchError(f"{name}: expected {expected} values, got {len(values)}")
    return values


def numeric_vector(values: Iterable, length: int, name: str) -> list[float]:
    """A list of ``length`` floats."""
    return require_length(require_numbers(values, name), length, name)


def numeric_matrix(rows: Iterable, n_rows: int, n_cols: int, name: str) -> list[list[float]]:
    """A ``n_rows`` x ``n_cols`` table of floats, blank cells read as zero."""
    if isinstance(rows, (str, bytes)) or not isinstance(rows, Iterable):
        raise MalformedInputError(f"{name}: expected a table (list of rows)")
    rows = list(rows)
    require_length(rows, n_rows, name)
    table = []
    for i, row in enumerate(rows):
        if isinstance(row, (str, bytes)) or not isinstance(row, Iterable):
            raise MalformedInputError(f"{name}[{i}]: expected a row of values")
        cells = require_numbers(row, f"{name}[{i}]", blank_as_zero=True)
        table.append(require_length(cells, n_cols, f"{name}[{i}]"))
    return table


def require_non_negative(value: float, name: str) -> float:
    if value < 0:
        raise MalformedInputError(f"{name}: must not be negative, got {value}")
    return value


def require_non_leap_year(year: int) -> int:
    if calendar.isleap(year):
        raise MalformedInputError(f"Reference year {year} is a leap year")
    return year
