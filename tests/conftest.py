"""Shared fixtures."""

import pytest
from solarsizing import dates
from solarsizing.config import EVConfig
from solarsizing.models import Tariff, TariffClass


@pytest.fixture(scope="session")
def hours():
    return dates.year_hours(2023)


@pytest.fixture
def tariff():
    return Tariff(
        name="test 2.0TD",
        tariff_class=TariffClass.TD_20,
        prices=[0.30, 0.20, 0.10],
        vat=0.0,
        electricity_tax=0.0,
        compensation_price=0.05,
    )


@pytest.fixture
def ev_config():
    # away 08:00-18:00 on every day type
    grid_usage = [[0 if 8 <= hour < 18 else 1] * 8 for hour in range(24)]
    return EVConfig(
        battery_capacity=50.0,
        consumption_per_100km=20.0,
        daily_km=[50.0] * 8,
        grid_usage=grid_usage,
        max_charger_power=7.4,
        contracted_powers=[4.6, 4.6, 5.75],
        normalized_powers=[3.45, 4.6, 5.75, 6.9],
    )
