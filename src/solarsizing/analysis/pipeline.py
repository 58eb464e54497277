"""End-to-end study: consumer curves, flows, bills and credits."""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

from .. import dates, db
from ..collectors import cnmc, datadis, infoenergia, ree, sips
from ..config import StudyConfig
from ..errors import ConfigError
from ..loadcurve import align_to_reference_year, curve_from_values, normalize_by_profile
from ..models import HOURS_PER_YEAR, EnergyFlows, EVChargeResult, FluxResult, LoadCurve, MonthlyBills, ProductionCurve
from .billing import bill_before_credits, compute_bills
from .ev import simulate_ev_charging
from .flows import (
    ConsumerKind,
    align_production,
    compose_flows,
    flow_breakdown,
    heat_pump_load_curve,
    recurring_load_curve,
)
from .flux import simulate_credit_queue
from .summary import consumption_profile

logger = logging.getLogger(__name__)

COLLECTORS = {
    "infoenergia": infoenergia,
    "cnmc": cnmc,
    "datadis": datadis,
    "sips": sips,
    "ree": ree,
}


@dataclass
class StudyContext:
    """State shared by the consumer curve builders."""

    config: StudyConfig
    hours: list[datetime]
    periods: list[int]
    production: ProductionCurve
    db_path: Path | None = None
    curves: dict = field(default_factory=dict)
    conventional: LoadCurve | None = None
    ev: EVChargeResult | None = None


@dataclass
class StudyResult:
    name: str
    config: StudyConfig
    hours: list[datetime]
    curves: dict
    production: ProductionCurve
    flows: EnergyFlows
    bills: MonthlyBills
    before_credits: list[float]
    credit_generation: list[float]
    missing_hours: int = 0
    ev: EVChargeResult | None = None
    flux: FluxResult | None = None
    profile: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        """JSON-friendly summary (no hourly series)."""
        series = {kind.value: self.curves[kind] for kind in ConsumerKind if kind in self.curves}
        series.update({
            "total": self.flows.total,
            "production": self.flows.production,
            "self_consumption": self.flows.self_consumption,
            "surplus": self.flows.surplus,
            "grid_demand": self.flows.grid_demand,
        })
        result = {
            "name": self.name,
            "tariff": self.config.tariff.tariff_class.value,
            "reference_year": self.config.reference_year,
            "missing_hours": self.missing_hours,
            "inverter_consumption_kwh": self.production.inverter_consumption_kwh,
            "inverter_consumption_ratio": self.production.inverter_consumption_ratio,
            "energy": flow_breakdown(series, self.hours),
            "bills": {
                "no_pv": self.bills.no_pv,
                "with_pv": self.bills.with_pv,
                "capped": self.bills.capped,
                "uncapped": self.bills.uncapped,
                "compensation": self.bills.compensation,
                "compensable_surplus_kwh": self.bills.compensable_surplus_kwh,
                "before_credits": self.before_credits,
                "credit_generation": self.credit_generation,
            },
            "ev": None,
            "flux": None,
            "profile": self.profile,
        }
        if self.ev is not None:
            result["ev"] = {
                "total_charged": self.ev.total_charged,
                "unmet_energy_kwh": self.ev.unmet_energy_kwh,
                "depletion_events": self.ev.depletion_events,
                "days_without_trips": self.ev.days_without_trips,
            }
        if self.flux is not None:
            result["flux"] = {
                "final_year_bills": self.flux.final_year_bills,
                "annual_savings": self.flux.annual_savings,
                "generated": self.flux.generated,
                "consumed": self.flux.consumed,
                "expired": self.flux.expired,
                "remaining": self.flux.remaining,
            }
        return result


def load_conventional_curve(config: StudyConfig, db_path: Path | None = None) -> LoadCurve | None:
    """Metered consumption from the configured source, on the reference year."""
    source = config.consumption
    if source is None:
        return None
    year = config.reference_year

    if source.curve:
        stored = db.get_load_curve(source.curve, db_path)
        if stored is None:
            raise ConfigError(f"No load curve named {source.curve!r} in the database")
        return LoadCurve(name=stored.name, entries=tuple(align_to_reference_year(stored.entries, year)))

    collector = COLLECTORS[source.dialect]
    name = source.path.stem
    if source.as_profile:
        if source.dialect == "ree":
            readings = ree.parse_csv(source.path, source.annual_consumption)
        else:
            readings = collector.parse_csv(source.path)
        return normalize_by_profile(readings, name=name, reference_year=year)
    if source.dialect == "ree":
        return ree.load_curve(source.path, source.annual_consumption, name=name, reference_year=year)
    return collector.load_curve(source.path, name=name, reference_year=year)


def _conventional(ctx: StudyContext) -> list[float] | None:
    curve = load_conventional_curve(ctx.config, ctx.db_path)
    ctx.conventional = curve
    return curve.values if curve else None


def _recurring(ctx: StudyContext) -> list[float] | None:
    tables = ctx.config.recurring
    if tables is None:
        return None
    return recurring_load_curve(
        ctx.hours, tables.hourly, tables.monthly, tables.weekly, tables.seasonal, ctx.config.holidays
    )


def _heat_pump(ctx: StudyContext) -> list[float] | None:
    heat_pump = ctx.config.heat_pump
    if heat_pump is None:
        return None
    return heat_pump_load_curve(heat_pump.profile, heat_pump.annual_consumption, ctx.hours)


def _ev_charge(ctx: StudyContext) -> list[float] | None:
    if ctx.config.ev is None:
        return None
    partial = compose_flows(ctx.curves, ctx.production.values)
    ctx.ev = simulate_ev_charging(
        ctx.config.ev,
        ctx.hours,
        ctx.periods,
        ctx.config.tariff.tariff_class,
        partial.surplus,
        partial.grid_demand,
        ctx.config.holidays,
    )
    return ctx.ev.charge


# Built in declaration order: the EV charger needs the other three
CURVE_BUILDERS: dict[ConsumerKind, Callable[[StudyContext], list[float] | None]] = {
    ConsumerKind.CONVENTIONAL: _conventional,
    ConsumerKind.RECURRING: _recurring,
    ConsumerKind.HEAT_PUMP: _heat_pump,
    ConsumerKind.EV_CHARGE: _ev_charge,
}


def run_study(config: StudyConfig, db_path: Path | None = None) -> StudyResult:
    """Build every configured consumer curve and compute flows, bills and credits."""
    hours = dates.year_hours(config.reference_year)
    periods = dates.tariff_periods(hours, config.tariff.tariff_class, config.holidays)

    if config.production is not None:
        production = align_production(config.production.values, hours, config.production.beta)
    else:
        production = ProductionCurve(values=[0.0] * HOURS_PER_YEAR, inverter_consumption_kwh=0.0)

    ctx = StudyContext(config=config, hours=hours, periods=periods, production=production, db_path=db_path)
    for kind in ConsumerKind:
        values = CURVE_BUILDERS[kind](ctx)
        if values is not None:
            ctx.curves[kind] = list(values)
            logger.debug("Built %s curve: %.1f kWh", kind.value, sum(values))

    if not ctx.curves:
        raise ConfigError("The study has no consumption configured")

    flows = compose_flows(ctx.curves, production.values)
    bills = compute_bills(flows, hours, periods, config.tariff)
    before_credits = bill_before_credits(bills, config.monthly_fixed_costs)

    credit_generation = [0.0] * len(before_credits)
    flux = None
    if config.flux is not None:
        credit_generation = bills.credit_generation(config.flux.coefficient)
        flux = simulate_credit_queue(
            before_credits,
            credit_generation,
            config.flux.baseline_annual_bill,
            years=config.flux.years,
            expiry_months=config.flux.expiry_months,
        )

    conventional = ctx.conventional or curve_from_values(
        ctx.curves.get(ConsumerKind.CONVENTIONAL, [0.0] * HOURS_PER_YEAR),
        "conventional",
        config.reference_year,
    )

    return StudyResult(
        name=config.name,
        config=config,
        hours=hours,
        curves=ctx.curves,
        production=production,
        flows=flows,
        bills=bills,
        before_credits=before_credits,
        credit_generation=credit_generation,
        missing_hours=conventional.missing_hours,
        ev=ctx.ev,
        flux=flux,
        profile=consumption_profile(conventional.values, hours, config.exceeding_factor),
    )
