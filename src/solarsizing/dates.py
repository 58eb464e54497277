"""Calendar helpers: DST anchors, holidays, seasons and tariff periods.

All datetimes are naive local civil times (peninsular Spain). A civil day
always has 24 hourly slots; DST irregularities in raw data are corrected
by ``solarsizing.loadcurve`` before these helpers see them.
"""

from collections.abc import Iterable
from datetime import date, datetime, timedelta

from .errors import UndefinedTariffPeriodError
from .models import HOURS_PER_YEAR, TariffClass

# Seasons, as used to index the seasonal lookup tables
SPRING = 0
SUMMER = 1
AUTUMN = 2
WINTER = 3

# Winter includes November to reflect the inland climate
SEASON_BY_MONTH = {
    1: WINTER, 2: WINTER, 3: SPRING, 4: SPRING, 5: SPRING, 6: SUMMER,
    7: SUMMER, 8: SUMMER, 9: AUTUMN, 10: AUTUMN, 11: WINTER, 12: WINTER,
}

NIGHT_HOURS = range(0, 8)

# 2.0TD: hours billed at the middle period on working days
TD20_SHOULDER_HOURS = frozenset({8, 9, 14, 15, 16, 17, 22, 23})

# 3.0TD / 6.1TD: hours billed at the cheaper of the two daytime periods
TD6_SHOULDER_HOURS = frozenset({8, 14, 15, 16, 17, 22, 23})

# 3.0TD / 6.1TD: month -> (period for peak hours, period for shoulder hours)
TD6_MONTH_PERIODS = {
    1: (1, 2), 2: (1, 2), 7: (1, 2), 12: (1, 2),
    3: (2, 3), 11: (2, 3),
    4: (4, 5), 5: (4, 5), 10: (4, 5),
    6: (3, 4), 8: (3, 4), 9: (3, 4),
}


def shift_hours(moment: datetime, hours: int) -> datetime:
    """Return ``moment`` moved by ``hours`` (may be negative)."""
    return moment + timedelta(hours=hours)


def previous_hour(moment: datetime) -> datetime:
    """Convert an "hour ending at" timestamp to "hour starting at"."""
    return shift_hours(moment, -1)


def hour_ending(day: date, hour: int) -> datetime:
    """Start of the hour labelled ``hour`` (1-based, "ending at") on ``day``.

    Labels past 24 roll into the following day, which is how sequential
    hour counters describe the long day at the end of DST.
    """
    return datetime(day.year, day.month, day.day) + timedelta(hours=hour - 1)


def last_sunday_of_month(year: int, month: int) -> datetime:
    """Midnight of the last Sunday of ``month``.

    ``month`` is 1-based and names the month the Sunday falls in: pass 3
    for the March DST change, not the month after it.
    """
    if month == 12:
        first_of_next = datetime(year + 1, 1, 1)
    else:
        first_of_next = datetime(year, month + 1, 1)
    # weekday(): Monday=0 .. Sunday=6
    days_back = (first_of_next.weekday() + 1) % 7 or 7
    return first_of_next - timedelta(days=days_back)


def dst_start(year: int) -> datetime:
    """Day DST starts (clocks jump 02:00 -> 03:00), EU rule."""
    return last_sunday_of_month(year, 3)


def dst_end(year: int) -> datetime:
    """Day DST ends (clocks go back 03:00 -> 02:00), EU rule."""
    return last_sunday_of_month(year, 10)


def is_dst_start_date(moment: datetime) -> bool:
    return moment == dst_start(moment.year)


def is_dst_end_date(moment: datetime) -> bool:
    return moment == dst_end(moment.year)


def holiday_set(holidays: Iterable) -> frozenset[date]:
    """Normalize a holiday list (dates, datetimes or ISO strings) to a set of dates."""
    days = set()
    for h in holidays:
        if isinstance(h, datetime):
            days.add(h.date())
        elif isinstance(h, date):
            days.add(h)
        else:
            days.add(date.fromisoformat(str(h)))
    return frozenset(days)


def is_weekend_or_holiday(moment: datetime, holidays: Iterable = ()) -> bool:
    """True on Saturdays, Sundays and national holidays."""
    if moment.weekday() >= 5:
        return True
    if not isinstance(holidays, frozenset):
        holidays = holiday_set(holidays)
    return moment.date() in holidays


def season(moment: datetime) -> int:
    """Season index: 0 spring, 1 summer, 2 autumn, 3 winter (Nov-Feb)."""
    return SEASON_BY_MONTH[moment.month]


def day_type_column(moment: datetime, holidays: Iterable = ()) -> int:
    """Column of a season x day-type table: season*2, +1 on weekends and holidays."""
    return season(moment) * 2 + (1 if is_weekend_or_holiday(moment, holidays) else 0)


def tariff_class(value) -> TariffClass:
    if isinstance(value, TariffClass):
        return value
    try:
        return TariffClass(str(value).strip())
    except ValueError:
        raise UndefinedTariffPeriodError(f"Unknown tariff class: {value!r}") from None


def tariff_period(moment: datetime, tariff, holidays: Iterable = ()) -> int:
    """Time-of-use period (1 = most expensive) for the hour starting at ``moment``.

    Weekends, holidays and the night hours 00-08 always fall in the
    cheapest period: 3 for 2.0TD, 6 for 3.0TD and 6.1TD.
    """
    tariff = tariff_class(tariff)
    hour = moment.hour

    if is_weekend_or_holiday(moment, holidays) or hour in NIGHT_HOURS:
        return tariff.cheapest_period

    if tariff is TariffClass.TD_20:
        return 2 if hour in TD20_SHOULDER_HOURS else 1

    periods = TD6_MONTH_PERIODS.get(moment.month)
    if periods is None:
        raise UndefinedTariffPeriodError(f"No tariff period for {moment} under {tariff.value}")
    peak, shoulder = periods
    return shoulder if hour in TD6_SHOULDER_HOURS else peak


def tariff_periods(dates: Iterable[datetime], tariff, holidays: Iterable = ()) -> list[int]:
    """Tariff period of every hour in ``dates``."""
    tariff = tariff_class(tariff)
    holidays = holiday_set(holidays)
    return [tariff_period(d, tariff, holidays) for d in dates]


def year_hours(year: int) -> list[datetime]:
    """The 8760 hourly timestamps of ``year``, February 29 excluded."""
    hours = []
    moment = datetime(year, 1, 1)
    while len(hours) < HOURS_PER_YEAR:
        if not (moment.month == 2 and moment.day == 29):
            hours.append(moment)
        moment += timedelta(hours=1)
    return hours


def is_february_29th(moment: datetime) -> bool:
    return moment.month == 2 and moment.day == 29
