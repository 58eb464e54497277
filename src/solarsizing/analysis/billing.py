"""Monthly energy-term bills under each compensation policy."""

from collections.abc import Sequence
from datetime import datetime

from ..models import HOURS_PER_YEAR, MONTHS_PER_YEAR, EnergyFlows, MonthlyBills, Tariff
from ..tariffs import hourly_costs
from ..validators import numeric_vector, require_length
from .flows import monthly_totals


def monthly_cost(
    values: Sequence[float], hours: Sequence[datetime], periods: Sequence[int], tariff: Tariff
) -> list[float]:
    """Cost of an hourly series, taxes included, summed per month."""
    require_length(values, HOURS_PER_YEAR, "hourly series")
    require_length(periods, HOURS_PER_YEAR, "tariff periods")
    return monthly_totals(hourly_costs(values, periods, tariff), hours)


def compute_bills(
    flows: EnergyFlows, hours: Sequence[datetime], periods: Sequence[int], tariff: Tariff
) -> MonthlyBills:
    """Bills without PV, with PV, and with capped and uncapped surplus compensation.

    The capped compensation never exceeds the month's bill with PV; the
    surplus that was actually compensated is reported in kWh. The uncapped
    variant subtracts the full surplus value and may go negative.
    """
    no_pv = monthly_cost(flows.total, hours, periods, tariff)
    with_pv = monthly_cost(flows.grid_demand, hours, periods, tariff)
    monthly_surplus = monthly_totals(flows.surplus, hours)

    unit_value = tariff.compensation_price * tariff.taxes
    surplus_value = [s * unit_value for s in monthly_surplus]
    compensation = [min(bill, value) for bill, value in zip(with_pv, surplus_value)]

    return MonthlyBills(
        no_pv=no_pv,
        with_pv=with_pv,
        capped=[bill - c for bill, c in zip(with_pv, compensation)],
        uncapped=[bill - value for bill, value in zip(with_pv, surplus_value)],
        compensation=compensation,
        compensable_surplus_kwh=[c / unit_value if unit_value else 0.0 for c in compensation],
    )


def bill_before_credits(bills: MonthlyBills, monthly_fixed_costs: Sequence[float] | None = None) -> list[float]:
    """Capped-compensation bill plus the fixed monthly costs (power term, regulated costs)."""
    if monthly_fixed_costs is None:
        return list(bills.capped)
    fixed = numeric_vector(monthly_fixed_costs, MONTHS_PER_YEAR, "monthly fixed costs")
    return [bill + cost for bill, cost in zip(bills.capped, fixed)]
