"""Data models for load curves, tariffs and simulation results."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from .errors import DimensionMismatchError

HOURS_PER_YEAR = 8760
MONTHS_PER_YEAR = 12
MISSING_COMMENT = "missing from source"


class TariffClass(str, Enum):
    """Access tariff of the supply point."""

    TD_20 = "2.0TD"  # low voltage, residential
    TD_30 = "3.0TD"  # medium voltage
    TD_61 = "6.1TD"  # high voltage

    @property
    def period_count(self) -> int:
        return 3 if self is TariffClass.TD_20 else 6

    @property
    def cheapest_period(self) -> int:
        return self.period_count


@dataclass
class RawReading:
    """A single reading as parsed from one source dialect."""

    date: datetime
    value: float
    comment: str = ""


@dataclass(frozen=True)
class HourlyValue:
    """One hour of a canonical annual load curve."""

    timestamp: datetime
    value: float
    comment: str = ""

    @property
    def is_missing(self) -> bool:
        return self.comment == MISSING_COMMENT


@dataclass(frozen=True)
class LoadCurve:
    """An annual hourly load curve (CCH) of exactly 8760 entries."""

    name: str
    entries: tuple[HourlyValue, ...]

    def __post_init__(self):
        if len(self.entries) != HOURS_PER_YEAR:
            raise DimensionMismatchError(
                f"Load curve '{self.name}' must have exactly {HOURS_PER_YEAR} values, "
                f"got {len(self.entries)}"
            )

    @property
    def values(self) -> list[float]:
        return [e.value for e in self.entries]

    @property
    def dates(self) -> list[datetime]:
        return [e.timestamp for e in self.entries]

    @property
    def missing_hours(self) -> int:
        return sum(1 for e in self.entries if e.is_missing)

    @property
    def total(self) -> float:
        return sum(self.values)


@dataclass
class Tariff:
    """Energy prices of an access tariff, per period, plus taxes."""

    name: str
    tariff_class: TariffClass
    prices: list[float]  # EUR/kWh, index 0 = period 1
    vat: float = 0.21
    electricity_tax: float = 0.0511
    compensation_price: float = 0.0

    def __post_init__(self):
        if len(self.prices) != self.tariff_class.period_count:
            raise DimensionMismatchError(
                f"Tariff {self.tariff_class.value} needs {self.tariff_class.period_count} "
                f"prices, got {len(self.prices)}"
            )

    @property
    def taxes(self) -> float:
        """Multiplier applied to every energy cost."""
        return (1 + self.vat) * (1 + self.electricity_tax)


@dataclass
class ProductionCurve:
    """PV production aligned to the study year."""

    values: list[float]
    inverter_consumption_kwh: float  # negative production (inverter standby at night)

    @property
    def total(self) -> float:
        return sum(self.values)

    @property
    def inverter_consumption_ratio(self) -> float:
        total = self.total
        return self.inverter_consumption_kwh / total if total > 0 else 0.0


@dataclass
class EnergyFlows:
    """Hourly aggregate consumption and its split against production."""

    total: list[float]
    production: list[float]
    self_consumption: list[float]
    surplus: list[float]
    grid_demand: list[float]


@dataclass
class EVChargeResult:
    """Outcome of the hour-by-hour electric vehicle simulation."""

    charge: list[float]  # kWh drawn by the charger each hour
    battery_level: list[float]  # kWh at the end of each hour
    unmet_energy_kwh: float = 0.0
    depletion_events: int = 0
    days_without_trips: int = 0

    @property
    def total_charged(self) -> float:
        return sum(self.charge)


@dataclass
class MonthlyBills:
    """Monthly energy-term bills under each compensation policy."""

    no_pv: list[float]
    with_pv: list[float]
    capped: list[float]  # with surplus compensation, never below zero
    uncapped: list[float]  # with unlimited surplus compensation
    compensation: list[float]
    compensable_surplus_kwh: list[float]

    def credit_generation(self, coefficient: float) -> list[float]:
        """Value of the compensation lost to the monthly cap, converted to credits."""
        return [(c - u) * coefficient for c, u in zip(self.capped, self.uncapped)]


@dataclass
class Credit:
    """A deferred compensation unit ("sol") waiting in the credit queue."""

    value: float
    month_of_generation: int


@dataclass
class FluxResult:
    """Result of the multi-year credit queue simulation."""

    final_year_bills: list[float]
    annual_savings: list[float]
    generated: float = 0.0
    consumed: float = 0.0
    expired: float = 0.0
    remaining: float = 0.0
    queue: list[Credit] = field(default_factory=list)
