"""Hour-by-hour electric vehicle charging simulation.

The vehicle is either plugged in (it charges from PV surplus during the
day, or from the grid up to the contracted power in the cheap night
period) or away (its battery discharges by the day's driving demand,
spread evenly over the away hours). The battery starts full.
"""

import logging
import math
from collections import Counter
from collections.abc import Iterable, Sequence
from datetime import datetime

from .. import dates
from ..config import EVConfig
from ..models import HOURS_PER_YEAR, EVChargeResult, TariffClass
from ..validators import require_length

logger = logging.getLogger(__name__)


def max_charge_powers(
    contracted_powers: Sequence[float], max_charger_power: float, normalized_powers: Sequence[float] = ()
) -> list[float]:
    """Maximum charging power per tariff period.

    The charger is limited by the contracted power, its own rating and the
    largest normalized (standard breaker) power strictly below the
    contracted power.
    """
    limits = []
    for contracted in contracted_powers:
        below = [p for p in normalized_powers if p < contracted]
        normalized = max(below) if below else math.inf
        limits.append(min(contracted, max_charger_power, normalized))
    return limits


def charge_availability(
    hours: Sequence[datetime], grid_usage: Sequence[Sequence[float]], holidays: Iterable = ()
) -> list[bool]:
    """Whether the vehicle is plugged in each hour (24 x 8 usage table)."""
    holidays = dates.holiday_set(holidays)
    return [bool(grid_usage[d.hour][dates.day_type_column(d, holidays)]) for d in hours]


def is_night_period(tariff: TariffClass, period: int) -> bool:
    """Cheap period in which the vehicle charges from the grid."""
    return (tariff is TariffClass.TD_20 and period == 3) or period == 6


def simulate_ev_charging(
    ev: EVConfig,
    hours: Sequence[datetime],
    periods: Sequence[int],
    tariff,
    partial_surplus: Sequence[float],
    partial_grid_demand: Sequence[float],
    holidays: Iterable = (),
) -> EVChargeResult:
    """Run the battery state machine over the year.

    ``partial_surplus`` and ``partial_grid_demand`` are the flows of the
    other consumers, before the vehicle is added.
    """
    tariff = dates.tariff_class(tariff)
    for values, name in (
        (hours, "hours"),
        (periods, "tariff periods"),
        (partial_surplus, "partial surplus"),
        (partial_grid_demand, "partial grid demand"),
    ):
        require_length(values, HOURS_PER_YEAR, name)
    require_length(ev.contracted_powers, tariff.period_count, "contracted powers")

    holidays = dates.holiday_set(holidays)
    available = charge_availability(hours, ev.grid_usage, holidays)
    columns = [dates.day_type_column(d, holidays) for d in hours]
    daily_consumption = ev.daily_consumption
    limits = max_charge_powers(ev.contracted_powers, ev.max_charger_power, ev.normalized_powers)

    away_hours = Counter(d.date() for d, plugged in zip(hours, available) if not plugged)

    days_without_trips = 0
    skipped_demand = 0.0
    seen_days = set()
    for d, column in zip(hours, columns):
        day = d.date()
        if day in seen_days:
            continue
        seen_days.add(day)
        if away_hours[day] == 0:
            days_without_trips += 1
            skipped_demand += daily_consumption[column]
    if skipped_demand > 0:
        logger.warning(
            "EV driving demand of %.1f kWh falls on days with no away hours and is ignored",
            skipped_demand,
        )

    capacity = ev.battery_capacity
    battery = capacity
    unmet = 0.0
    depletions = 0
    charge = []
    levels = []

    for i, d in enumerate(hours):
        if not available[i]:
            battery -= daily_consumption[columns[i]] / away_hours[d.date()]
            if battery < 0:
                unmet += -battery
                depletions += 1
                battery = 0.0
            charge.append(0.0)
        else:
            period = periods[i]
            if is_night_period(tariff, period):
                available_energy = max(0.0, ev.contracted_powers[period - 1] - partial_grid_demand[i])
            else:
                available_energy = min(partial_surplus[i], ev.max_charger_power)
            amount = max(0.0, min(capacity - battery, available_energy, limits[period - 1]))
            battery += amount
            charge.append(amount)
        levels.append(battery)

    if depletions:
        logger.debug("EV battery depleted %d times, %.1f kWh unmet", depletions, unmet)

    return EVChargeResult(
        charge=charge,
        battery_level=levels,
        unmet_energy_kwh=unmet,
        depletion_events=depletions,
        days_without_trips=days_without_trips,
    )
