"""Tests for calendar helpers and tariff periods."""

from datetime import date, datetime

import pytest
from solarsizing import dates
from solarsizing.errors import UndefinedTariffPeriodError
from solarsizing.models import TariffClass


def test_dst_anchors():
    assert dates.dst_start(2023) == datetime(2023, 3, 26)
    assert dates.dst_end(2023) == datetime(2023, 10, 29)
    assert dates.dst_start(2024) == datetime(2024, 3, 31)
    assert dates.dst_end(2024) == datetime(2024, 10, 27)
    assert dates.is_dst_start_date(datetime(2023, 3, 26))
    assert not dates.is_dst_start_date(datetime(2023, 3, 26, 1))
    assert dates.is_dst_end_date(datetime(2023, 10, 29))


def test_last_sunday_of_december_rolls_over_year():
    assert dates.last_sunday_of_month(2023, 12) == datetime(2023, 12, 31)


def test_last_sunday_takes_the_month_it_falls_in():
    assert dates.last_sunday_of_month(2023, 3) == datetime(2023, 3, 26)
    assert dates.last_sunday_of_month(2023, 10) == datetime(2023, 10, 29)
    assert dates.last_sunday_of_month(2023, 4) == datetime(2023, 4, 30)


def test_hour_ending_labels():
    day = date(2023, 5, 10)
    assert dates.hour_ending(day, 1) == datetime(2023, 5, 10, 0)
    assert dates.hour_ending(day, 24) == datetime(2023, 5, 10, 23)
    # a 25th hour belongs to the next day
    assert dates.hour_ending(day, 25) == datetime(2023, 5, 11, 0)


def test_previous_hour_crosses_midnight():
    assert dates.previous_hour(datetime(2023, 1, 1, 0)) == datetime(2022, 12, 31, 23)


def test_seasons_extend_winter_to_november():
    assert dates.season(datetime(2023, 11, 15)) == dates.WINTER
    assert dates.season(datetime(2023, 2, 15)) == dates.WINTER
    assert dates.season(datetime(2023, 3, 1)) == dates.SPRING
    assert dates.season(datetime(2023, 8, 31)) == dates.SUMMER
    assert dates.season(datetime(2023, 10, 31)) == dates.AUTUMN


def test_weekend_or_holiday():
    holidays = ["2023-01-06"]
    assert dates.is_weekend_or_holiday(datetime(2023, 1, 7, 12))  # Saturday
    assert dates.is_weekend_or_holiday(datetime(2023, 1, 6, 12), holidays)
    assert not dates.is_weekend_or_holiday(datetime(2023, 1, 6, 12))
    assert not dates.is_weekend_or_holiday(datetime(2023, 1, 9, 12), holidays)


def test_holiday_set_accepts_mixed_types():
    days = dates.holiday_set([date(2023, 1, 1), datetime(2023, 1, 6, 10), "2023-12-25"])
    assert days == frozenset({date(2023, 1, 1), date(2023, 1, 6), date(2023, 12, 25)})


def test_day_type_column():
    # Tuesday in June: summer weekday
    assert dates.day_type_column(datetime(2023, 6, 6, 10)) == 2
    # Saturday in June: summer weekend
    assert dates.day_type_column(datetime(2023, 6, 10, 10)) == 3
    # Holiday in December: winter weekend column
    assert dates.day_type_column(datetime(2023, 12, 25, 10), ["2023-12-25"]) == 7


class TestTariffPeriod:
    def test_residential_scenarios(self):
        tuesday = datetime(2023, 6, 6)
        saturday = datetime(2023, 6, 10)
        assert dates.tariff_period(tuesday.replace(hour=3), "2.0TD") == 3
        assert dates.tariff_period(tuesday.replace(hour=20), "2.0TD") == 1
        assert dates.tariff_period(saturday.replace(hour=20), "2.0TD") == 3

    def test_residential_shoulder_hours(self):
        tuesday = datetime(2023, 6, 6)
        assert dates.tariff_period(tuesday.replace(hour=8), "2.0TD") == 2
        assert dates.tariff_period(tuesday.replace(hour=23), "2.0TD") == 2
        assert dates.tariff_period(tuesday.replace(hour=10), "2.0TD") == 1

    @pytest.mark.parametrize(
        "month,peak,shoulder",
        [(1, 1, 2), (3, 2, 3), (4, 4, 5), (6, 3, 4), (7, 1, 2), (11, 2, 3)],
    )
    def test_six_period_months(self, month, peak, shoulder):
        # first Wednesday of each month
        day = next(datetime(2023, month, d) for d in range(1, 8) if datetime(2023, month, d).weekday() == 2)
        for tariff in ("3.0TD", "6.1TD"):
            assert dates.tariff_period(day.replace(hour=10), tariff) == peak
            assert dates.tariff_period(day.replace(hour=15), tariff) == shoulder
            assert dates.tariff_period(day.replace(hour=5), tariff) == 6

    def test_holiday_is_cheapest(self):
        epiphany = datetime(2023, 1, 6, 12)
        assert dates.tariff_period(epiphany, "6.1TD", ["2023-01-06"]) == 6
        assert dates.tariff_period(epiphany, "2.0TD", ["2023-01-06"]) == 3

    def test_periods_in_range_over_a_year(self):
        hours = dates.year_hours(2023)
        for tariff in TariffClass:
            periods = dates.tariff_periods(hours, tariff)
            assert len(periods) == 8760
            assert set(periods) <= set(range(1, tariff.period_count + 1))
            for moment, period in zip(hours, periods):
                if moment.weekday() >= 5:
                    assert period == tariff.cheapest_period

    def test_unknown_class(self):
        with pytest.raises(UndefinedTariffPeriodError):
            dates.tariff_period(datetime(2023, 6, 6, 10), "2.1A")


def test_year_hours_skips_leap_day():
    hours = dates.year_hours(2024)
    assert len(hours) == 8760
    assert not any(dates.is_february_29th(h) for h in hours)
    assert hours[0] == datetime(2024, 1, 1)
    assert hours[-1] == datetime(2024, 12, 31, 23)
