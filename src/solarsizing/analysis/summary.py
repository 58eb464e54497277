"""Consumption profile statistics and text summaries of study results."""

from collections import defaultdict
from collections.abc import Sequence
from datetime import datetime

from ..models import MONTHS_PER_YEAR

DEFAULT_EXCEEDING_FACTOR = 1.5


def consumption_profile(
    values: Sequence[float], hours: Sequence[datetime], factor: float = DEFAULT_EXCEEDING_FACTOR
) -> dict:
    """Statistics of a conventional consumption curve.

    Weekday daily means exclude days with no consumption. Exceeding
    values count the hours above ``factor`` times the mean of the same
    month and hour.
    """
    by_month = [[] for _ in range(MONTHS_PER_YEAR)]
    by_month_hour = [[[] for _ in range(24)] for _ in range(MONTHS_PER_YEAR)]
    daily = defaultdict(float)

    for value, moment in zip(values, hours):
        by_month[moment.month - 1].append(value)
        by_month_hour[moment.month - 1][moment.hour].append(value)
        daily[moment.date()] += value

    monthly = [sum(v) for v in by_month]
    hourly_means = [[sum(v) / len(v) if v else 0.0 for v in month] for month in by_month_hour]

    weekday_days = [[[] for _ in range(7)] for _ in range(MONTHS_PER_YEAR)]
    for day, total in daily.items():
        if total != 0:
            weekday_days[day.month - 1][day.weekday()].append(total)
    weekday_means = [[sum(v) / len(v) if v else 0.0 for v in month] for month in weekday_days]

    exceeding = [
        [
            sum(1 for x in by_month_hour[m][h] if x > hourly_means[m][h] * factor)
            for h in range(24)
        ]
        for m in range(MONTHS_PER_YEAR)
    ]

    return {
        "yearly": sum(monthly),
        "monthly": monthly,
        "monthly_peak": [max(v) if v else 0.0 for v in by_month],
        "hourly_means": hourly_means,
        "weekday_daily_means": weekday_means,
        "exceeding_factor": factor,
        "exceeding_values": exceeding,
    }


def format_study_summary_text(summary: dict) -> str:
    """Format a study result (as produced by StudyResult.to_dict) as text."""
    energy = summary["energy"]
    lines = [
        f"Study: {summary['name']} ({summary['tariff']}, reference year {summary['reference_year']})",
        "",
        "Energy:",
        f"  - Consumption: {energy['total']['total']:.0f} kWh",
        f"  - Production: {energy['production']['total']:.0f} kWh",
        f"  - Self-consumption: {energy['self_consumption']['total']:.0f} kWh",
        f"  - Surplus: {energy['surplus']['total']:.0f} kWh",
        f"  - Grid demand: {energy['grid_demand']['total']:.0f} kWh",
    ]

    if summary["missing_hours"]:
        lines.append(f"  - Hours missing from source: {summary['missing_hours']}")

    if summary["inverter_consumption_kwh"]:
        lines.append(
            f"  - Inverter night consumption: {summary['inverter_consumption_kwh']:.0f} kWh "
            f"({summary['inverter_consumption_ratio'] * 100:.2f}% of production)"
        )

    ev = summary.get("ev")
    if ev:
        lines.extend([
            "",
            "Electric vehicle:",
            f"  - Charged: {ev['total_charged']:.0f} kWh",
            f"  - Unmet driving demand: {ev['unmet_energy_kwh']:.1f} kWh ({ev['depletion_events']} hours)",
        ])

    bills = summary["bills"]
    lines.extend([
        "",
        "Annual energy bill:",
        f"  - Without PV: {sum(bills['no_pv']):.2f} EUR",
        f"  - With PV: {sum(bills['with_pv']):.2f} EUR",
        f"  - With compensation: {sum(bills['capped']):.2f} EUR",
        f"  - With unlimited compensation: {sum(bills['uncapped']):.2f} EUR",
    ])

    flux = summary.get("flux")
    if flux:
        lines.extend([
            "",
            "Flux Solar:",
            f"  - Final year bill: {sum(flux['final_year_bills']):.2f} EUR",
            f"  - Final year savings: {flux['annual_savings'][-1]:.2f} EUR" if flux["annual_savings"] else "  - No years simulated",
            f"  - Credits generated: {flux['generated']:.2f}, consumed: {flux['consumed']:.2f}, "
            f"expired: {flux['expired']:.2f}",
        ])

    return "\n".join(lines)
