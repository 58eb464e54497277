"""Composition of consumer load curves against PV production."""

import logging
from collections.abc import Iterable, Sequence
from datetime import datetime
from enum import Enum

from .. import dates
from ..errors import DimensionMismatchError
from ..loadcurve import rotate
from ..models import HOURS_PER_YEAR, MONTHS_PER_YEAR, EnergyFlows, ProductionCurve
from ..validators import require_length, require_non_negative

logger = logging.getLogger(__name__)

# Share of production used by the inverter at night above which a study is suspicious
INVERTER_CONSUMPTION_WARNING_RATIO = 0.01


class ConsumerKind(str, Enum):
    """The independent load curves that add up to a consumer's total."""

    CONVENTIONAL = "conventional"
    RECURRING = "recurring"
    HEAT_PUMP = "heat_pump"
    EV_CHARGE = "ev_charge"


def _check_series(values: Sequence[float], name: str) -> Sequence[float]:
    return require_length(values, HOURS_PER_YEAR, name)


def jan_first_index(hours: Sequence[datetime]) -> int:
    """Index of Jan 1 00:00 in ``hours`` (0 when absent)."""
    for index, moment in enumerate(hours):
        if moment.month == 1 and moment.day == 1 and moment.hour == 0:
            return index
    return 0


def recurring_load_curve(
    hours: Sequence[datetime],
    hourly: Sequence[float],
    monthly: Sequence[Sequence[float]],
    weekly: Sequence[Sequence[float]],
    seasonal: Sequence[Sequence[float]],
    holidays: Iterable = (),
) -> list[float]:
    """Sum of the four recurring lookup tables for every hour.

    Tables are indexed by hour of day first, then by month (12), weekday
    (7, Monday first) or season/day-type column (8).
    """
    holidays = dates.holiday_set(holidays)
    return [
        hourly[d.hour]
        + monthly[d.hour][d.month - 1]
        + weekly[d.hour][d.weekday()]
        + seasonal[d.hour][dates.day_type_column(d, holidays)]
        for d in hours
    ]


def heat_pump_load_curve(
    profile: Sequence[float], annual_consumption: float, hours: Sequence[datetime]
) -> list[float]:
    """Normalized heat-pump profile scaled by the annual consumption.

    The profile starts at Jan 1 00:00; it is rotated to line up with the
    position of Jan 1 00:00 in ``hours``.
    """
    _check_series(profile, "heat pump profile")
    require_non_negative(annual_consumption, "heat pump annual consumption")
    values = [(p or 0.0) * annual_consumption for p in profile]
    return rotate(values, jan_first_index(hours))


def align_production(
    raw_production: Sequence[float], hours: Sequence[datetime], beta: float = 1.0
) -> ProductionCurve:
    """Line up a Jan 1-based production series with ``hours`` and scale it by ``beta``.

    Negative values are the inverter's own night consumption: they are
    removed from the curve and accumulated separately.
    """
    _check_series(raw_production, "production")
    require_non_negative(beta, "beta")
    displacement = (HOURS_PER_YEAR - jan_first_index(hours)) % HOURS_PER_YEAR

    values = []
    negative = 0.0
    for i in range(HOURS_PER_YEAR):
        produced = raw_production[(i + displacement) % HOURS_PER_YEAR]
        if produced < 0:
            negative += -produced
        values.append(max(0.0, produced) * beta)

    production = ProductionCurve(values=values, inverter_consumption_kwh=negative * beta)
    if production.inverter_consumption_ratio >= INVERTER_CONSUMPTION_WARNING_RATIO:
        logger.warning(
            "Inverter night consumption is %.1f kWh (%.2f%% of production)",
            production.inverter_consumption_kwh,
            production.inverter_consumption_ratio * 100,
        )
    return production


def total_consumption(curves: Iterable[Sequence[float]]) -> list[float]:
    """Elementwise sum of consumer curves."""
    total = [0.0] * HOURS_PER_YEAR
    for curve in curves:
        _check_series(curve, "consumer curve")
        total = [t + v for t, v in zip(total, curve)]
    return total


def compose_flows(curves: dict, production: Sequence[float]) -> EnergyFlows:
    """Split total consumption against production hour by hour.

    ``curves`` maps each ConsumerKind present to its 8760 series.
    """
    _check_series(production, "production")
    unknown = [k for k in curves if not isinstance(k, ConsumerKind)]
    if unknown:
        raise DimensionMismatchError(f"Unknown consumer curves: {unknown}")
    total = total_consumption(curves[kind] for kind in ConsumerKind if kind in curves)

    return EnergyFlows(
        total=total,
        production=list(production),
        self_consumption=[min(t, p) for t, p in zip(total, production)],
        surplus=[max(0.0, p - t) for t, p in zip(total, production)],
        grid_demand=[max(0.0, t - p) for t, p in zip(total, production)],
    )


def hourly_totals(values: Sequence[float], hours: Sequence[datetime]) -> list[float]:
    """Sum of ``values`` for each hour of the day (24)."""
    totals = [0.0] * 24
    for value, moment in zip(values, hours):
        totals[moment.hour] += value
    return totals


def monthly_totals(values: Sequence[float], hours: Sequence[datetime]) -> list[float]:
    """Sum of ``values`` for each month (12)."""
    totals = [0.0] * MONTHS_PER_YEAR
    for value, moment in zip(values, hours):
        totals[moment.month - 1] += value
    return totals


def flow_breakdown(series: dict[str, Sequence[float]], hours: Sequence[datetime]) -> dict:
    """Annual, hourly and monthly totals of each named series."""
    return {
        name: {
            "total": sum(values),
            "hourly": hourly_totals(values, hours),
            "monthly": monthly_totals(values, hours),
        }
        for name, values in series.items()
    }
