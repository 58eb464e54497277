import pytest
from solarsizing.analysis.billing import bill_before_credits, compute_bills, monthly_cost
from solarsizing.errors import DimensionMismatchError
from solarsizing.models import EnergyFlows

# every hour in the cheapest period (0.10 EUR/kWh in the test tariff)
PERIODS = [3] * 8760


def flows(total, grid_demand, surplus):
    n = 8760
    return EnergyFlows(
        total=[total] * n,
        production=[0.0] * n,
        self_consumption=[total - grid_demand] * n,
        surplus=[surplus] * n,
        grid_demand=[grid_demand] * n,
    )


def test_monthly_cost(hours, tariff):
    costs = monthly_cost([1.0] * 8760, hours, PERIODS, tariff)
    assert len(costs) == 12
    assert costs[0] == pytest.approx(744 * 0.10)
    assert costs[1] == pytest.approx(672 * 0.10)


def test_monthly_cost_applies_taxes(hours, tariff):
    tariff.vat = 0.21
    tariff.electricity_tax = 0.05
    costs = monthly_cost([1.0] * 8760, hours, PERIODS, tariff)
    assert costs[0] == pytest.approx(744 * 0.10 * 1.21 * 1.05)


def test_compensation_below_cap(hours, tariff):
    bills = compute_bills(flows(1.0, 0.5, 0.2), hours, PERIODS, tariff)

    assert bills.no_pv[0] == pytest.approx(74.4)
    assert bills.with_pv[0] == pytest.approx(37.2)
    assert bills.compensation[0] == pytest.approx(744 * 0.2 * 0.05)
    assert bills.capped[0] == pytest.approx(37.2 - 7.44)
    assert bills.uncapped == pytest.approx(bills.capped)
    assert bills.compensable_surplus_kwh[0] == pytest.approx(744 * 0.2)
    assert bills.credit_generation(1.0) == pytest.approx([0.0] * 12)


def test_compensation_capped_at_bill(hours, tariff):
    bills = compute_bills(flows(1.0, 0.5, 2.0), hours, PERIODS, tariff)

    assert bills.capped[0] == pytest.approx(0.0)
    assert bills.compensation[0] == pytest.approx(37.2)
    assert bills.uncapped[0] == pytest.approx(37.2 - 74.4)
    # only the surplus that fits under the bill is compensated
    assert bills.compensable_surplus_kwh[0] == pytest.approx(744.0)
    assert bills.credit_generation(0.5)[0] == pytest.approx(18.6)
    assert all(c >= 0 for c in bills.capped)


def test_bill_before_credits(hours, tariff):
    bills = compute_bills(flows(1.0, 0.5, 0.0), hours, PERIODS, tariff)
    assert bill_before_credits(bills) == bills.capped
    with_fixed = bill_before_credits(bills, [10.0] * 12)
    assert with_fixed[0] == pytest.approx(47.2)

    with pytest.raises(DimensionMismatchError):
        bill_before_credits(bills, [10.0] * 11)


def test_series_length_checked(hours, tariff):
    with pytest.raises(DimensionMismatchError):
        monthly_cost([1.0] * 100, hours, PERIODS, tariff)
