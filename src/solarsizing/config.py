"""Study configuration loaded from YAML.

Every key is looked up explicitly and validated; unknown keys are ignored.
Relative file paths are resolved against the directory of the YAML file.
"""

import csv
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from . import dates
from .analysis.summary import DEFAULT_EXCEEDING_FACTOR
from .errors import ConfigError, SolarSizingError
from .loadcurve import DEFAULT_REFERENCE_YEAR
from .models import HOURS_PER_YEAR, MONTHS_PER_YEAR, Tariff
from .tariffs import get_tariff_from_db, tariff_from_dict
from .validators import (
    numeric_matrix,
    numeric_vector,
    parse_number,
    require_non_leap_year,
    require_non_negative,
    require_numbers,
)

DIALECTS = ("infoenergia", "cnmc", "datadis", "sips", "ree")


@dataclass
class ConsumptionConfig:
    """Where the conventional (metered) consumption comes from."""

    dialect: str | None = None
    path: Path | None = None
    curve: str | None = None  # name of a curve stored in the database
    annual_consumption: float = 0.0  # REE profiles only
    as_profile: bool = False


@dataclass
class ProductionConfig:
    values: list[float]
    beta: float = 1.0


@dataclass
class RecurringConfig:
    """Recurring consumption lookup tables, indexed by hour first."""

    hourly: list[float] = field(default_factory=lambda: [0.0] * 24)
    monthly: list[list[float]] = field(default_factory=lambda: [[0.0] * 12 for _ in range(24)])
    weekly: list[list[float]] = field(default_factory=lambda: [[0.0] * 7 for _ in range(24)])
    seasonal: list[list[float]] = field(default_factory=lambda: [[0.0] * 8 for _ in range(24)])


@dataclass
class HeatPumpConfig:
    annual_consumption: float
    profile: list[float]


@dataclass
class EVConfig:
    battery_capacity: float  # kWh
    consumption_per_100km: float  # kWh
    daily_km: list[float]  # 8 values: season * 2 + weekend flag
    grid_usage: list[list[float]]  # 24 x 8, 1 when plugged in
    max_charger_power: float  # kW
    contracted_powers: list[float]  # kW, one per tariff period
    normalized_powers: list[float] = field(default_factory=list)

    @property
    def daily_consumption(self) -> list[float]:
        """kWh driven per day for each season/day-type column."""
        return [km * self.consumption_per_100km / 100 for km in self.daily_km]


@dataclass
class FluxConfig:
    coefficient: float
    baseline_annual_bill: float
    years: int = 25
    expiry_months: int = 60


@dataclass
class StudyConfig:
    name: str
    tariff: Tariff
    holidays: frozenset = frozenset()
    reference_year: int = DEFAULT_REFERENCE_YEAR
    monthly_fixed_costs: list[float] = field(default_factory=lambda: [0.0] * MONTHS_PER_YEAR)
    consumption: ConsumptionConfig | None = None
    production: ProductionConfig | None = None
    recurring: RecurringConfig | None = None
    heat_pump: HeatPumpConfig | None = None
    ev: EVConfig | None = None
    flux: FluxConfig | None = None
    exceeding_factor: float = DEFAULT_EXCEEDING_FACTOR


def read_values_file(path: Path, column: str | None = None) -> list[float]:
    """Read numbers from a file with one value per line.

    With ``column``, the file is a ';' separated table with a header row
    and the named column is returned.
    """
    with open(path, newline="", encoding="utf-8-sig") as f:
        if column is None:
            return require_numbers((line.strip() for line in f if line.strip()), str(path))
        reader = csv.DictReader(f, delimiter=";")
        if column not in (reader.fieldnames or []):
            raise ConfigError(f"{path}: no column named {column!r}")
        return require_numbers((row[column] for row in reader), f"{path}:{column}", blank_as_zero=True)


def _section(data: dict, key: str) -> dict | None:
    section = data.get(key)
    if section is None:
        return None
    if not isinstance(section, dict):
        raise ConfigError(f"{key}: expected a mapping")
    return section


def _required(section: dict, key: str, prefix: str):
    if key not in section:
        raise ConfigError(f"{prefix}.{key} is required")
    return section[key]


def _resolve(base_dir: Path, value) -> Path:
    path = Path(value).expanduser()
    return path if path.is_absolute() else base_dir / path


def _series(section: dict, key: str, prefix: str, base_dir: Path, column: str | None = None) -> list[float]:
    """An 8760 series given inline or as a file path."""
    raw = _required(section, key, prefix)
    if isinstance(raw, (str, Path)):
        values = read_values_file(_resolve(base_dir, raw), column)
    else:
        values = raw
    return numeric_vector(values, HOURS_PER_YEAR, f"{prefix}.{key}")


def _parse_tariff(section: dict, db_path: Path | None) -> Tariff:
    """Inline tariff definition, or a reference by name to a stored tariff."""
    if "class" not in section and "name" in section:
        return get_tariff_from_db(str(section["name"]), db_path)
    return tariff_from_dict(section)


def _parse_consumption(section: dict, base_dir: Path) -> ConsumptionConfig:
    config = ConsumptionConfig(curve=section.get("curve"), as_profile=bool(section.get("as_profile", False)))
    if config.curve:
        return config
    dialect = str(_required(section, "dialect", "consumption")).lower()
    if dialect not in DIALECTS:
        raise ConfigError(f"consumption.dialect must be one of {', '.join(DIALECTS)}, got {dialect!r}")
    config.dialect = dialect
    config.path = _resolve(base_dir, _required(section, "path", "consumption"))
    if dialect == "ree":
        config.annual_consumption = require_non_negative(
            parse_number(_required(section, "annual_consumption", "consumption"), "consumption.annual_consumption"),
            "consumption.annual_consumption",
        )
    return config


def _parse_recurring(section: dict) -> RecurringConfig:
    config = RecurringConfig()
    if "hourly" in section:
        config.hourly = numeric_vector(section["hourly"], 24, "recurring.hourly")
    if "monthly" in section:
        config.monthly = numeric_matrix(section["monthly"], 24, 12, "recurring.monthly")
    if "weekly" in section:
        config.weekly = numeric_matrix(section["weekly"], 24, 7, "recurring.weekly")
    if "seasonal" in section:
        config.seasonal = numeric_matrix(section["seasonal"], 24, 8, "recurring.seasonal")
    return config


def _parse_ev(section: dict, tariff: Tariff) -> EVConfig:
    def number(key):
        return require_non_negative(parse_number(_required(section, key, "ev"), f"ev.{key}"), f"ev.{key}")

    normalized = require_numbers(section.get("normalized_powers") or [], "ev.normalized_powers")
    return EVConfig(
        battery_capacity=number("battery_capacity"),
        consumption_per_100km=number("consumption_per_100km"),
        daily_km=numeric_vector(_required(section, "daily_km", "ev"), 8, "ev.daily_km"),
        grid_usage=numeric_matrix(_required(section, "grid_usage", "ev"), 24, 8, "ev.grid_usage"),
        max_charger_power=number("max_charger_power"),
        contracted_powers=numeric_vector(
            _required(section, "contracted_powers", "ev"),
            tariff.tariff_class.period_count,
            "ev.contracted_powers",
        ),
        normalized_powers=sorted(normalized),
    )


def parse_study(data: dict, base_dir: Path | None = None, db_path: Path | None = None) -> StudyConfig:
    """Build a StudyConfig from an already-parsed YAML mapping."""
    if not isinstance(data, dict):
        raise ConfigError("Study configuration must be a mapping")
    base_dir = base_dir or Path.cwd()

    try:
        tariff_data = _section(data, "tariff")
        if tariff_data is None:
            raise ConfigError("tariff section is required")
        tariff = _parse_tariff(tariff_data, db_path)

        config = StudyConfig(name=str(data.get("name") or "study"), tariff=tariff)
        config.holidays = dates.holiday_set(data.get("holidays") or [])

        calendar = _section(data, "calendar") or {}
        config.reference_year = require_non_leap_year(
            int(calendar.get("reference_year", DEFAULT_REFERENCE_YEAR))
        )

        if "monthly_fixed_costs" in tariff_data:
            config.monthly_fixed_costs = numeric_vector(
                tariff_data["monthly_fixed_costs"], MONTHS_PER_YEAR, "tariff.monthly_fixed_costs"
            )

        section = _section(data, "consumption")
        if section is not None:
            config.consumption = _parse_consumption(section, base_dir)

        section = _section(data, "production")
        if section is not None:
            config.production = ProductionConfig(
                values=_series(section, "values", "production", base_dir),
                beta=require_non_negative(parse_number(section.get("beta", 1.0), "production.beta"), "production.beta"),
            )

        section = _section(data, "recurring")
        if section is not None:
            config.recurring = _parse_recurring(section)

        section = _section(data, "heat_pump")
        if section is not None:
            config.heat_pump = HeatPumpConfig(
                annual_consumption=require_non_negative(
                    parse_number(_required(section, "annual_consumption", "heat_pump"), "heat_pump.annual_consumption"),
                    "heat_pump.annual_consumption",
                ),
                profile=_series(section, "profile", "heat_pump", base_dir, section.get("column")),
            )

        section = _section(data, "ev")
        if section is not None:
            config.ev = _parse_ev(section, tariff)

        section = _section(data, "flux")
        if section is not None:
            config.flux = FluxConfig(
                coefficient=parse_number(_required(section, "coefficient", "flux"), "flux.coefficient"),
                baseline_annual_bill=parse_number(
                    _required(section, "baseline_annual_bill", "flux"), "flux.baseline_annual_bill"
                ),
                years=int(section.get("years", 25)),
                expiry_months=int(section.get("expiry_months", 60)),
            )

        section = _section(data, "profile")
        if section is not None and "exceeding_factor" in section:
            config.exceeding_factor = require_non_negative(
                parse_number(section["exceeding_factor"], "profile.exceeding_factor"), "profile.exceeding_factor"
            )
    except SolarSizingError:
        raise
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid study configuration: {e}") from e

    return config


def load_study(path: Path, db_path: Path | None = None) -> StudyConfig:
    """Load a study configuration file."""
    path = Path(path)
    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise ConfigError(f"Cannot read study configuration {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e
    return parse_study(data or {}, base_dir=path.parent, db_path=db_path)
