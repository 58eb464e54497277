from datetime import date

import pytest
from solarsizing.analysis.summary import consumption_profile, format_study_summary_text


@pytest.fixture
def profile(hours):
    values = []
    for h in hours:
        if h.date() == date(2023, 1, 3):
            values.append(0.0)
        elif h.date() == date(2023, 1, 2) and h.hour == 12:
            values.append(10.0)
        else:
            values.append(1.0)
    return consumption_profile(values, hours)


def test_monthly_statistics(profile):
    assert profile["monthly"][0] == pytest.approx(31 * 24 - 24 + 9)
    assert profile["monthly"][1] == pytest.approx(28 * 24)
    assert profile["monthly_peak"][0] == 10.0
    assert profile["yearly"] == pytest.approx(sum(profile["monthly"]))


def test_weekday_means_skip_empty_days(profile):
    # Mondays of January 2023: 2 (33 kWh), 9, 16, 23, 30
    assert profile["weekday_daily_means"][0][0] == pytest.approx((33 + 4 * 24) / 5)
    # Tuesday the 3rd has no consumption and is left out
    assert profile["weekday_daily_means"][0][1] == pytest.approx(24.0)


def test_exceeding_values(profile):
    assert profile["exceeding_factor"] == 1.5
    assert profile["exceeding_values"][0][12] == 1
    assert sum(sum(row) for row in profile["exceeding_values"]) == 1


def test_format_study_summary_text():
    energy = {
        name: {"total": total}
        for name, total in [
            ("total", 4000), ("production", 3000), ("self_consumption", 1200),
            ("surplus", 1800), ("grid_demand", 2800),
        ]
    }
    bills = {key: [10.0] * 12 for key in ("no_pv", "with_pv", "capped", "uncapped")}
    text = format_study_summary_text({
        "name": "casa",
        "tariff": "2.0TD",
        "reference_year": 2023,
        "missing_hours": 3,
        "inverter_consumption_kwh": 0.0,
        "inverter_consumption_ratio": 0.0,
        "energy": energy,
        "bills": bills,
        "ev": None,
        "flux": {
            "final_year_bills": [5.0] * 12,
            "annual_savings": [60.0, 60.0],
            "generated": 100.0,
            "consumed": 90.0,
            "expired": 0.0,
        },
    })

    assert "Study: casa (2.0TD, reference year 2023)" in text
    assert "Hours missing from source: 3" in text
    assert "With PV: 120.00 EUR" in text
    assert "Final year savings: 60.00 EUR" in text
    assert "Electric vehicle" not in text
