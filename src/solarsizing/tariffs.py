"""Tariff loading and cost calculation."""

from collections.abc import Sequence
from pathlib import Path

import yaml

from . import dates
from .db import get_connection
from .errors import ConfigError
from .models import Tariff
from .validators import numeric_vector, parse_number

DEFAULT_CONFIG_PATH = Path(__file__).parent.parent.parent / "config" / "tariffs.yaml"


def tariff_from_dict(data: dict, name: str | None = None) -> Tariff:
    """Build a Tariff from a YAML mapping (explicit keys, validated)."""
    if not isinstance(data, dict):
        raise ConfigError("tariff: expected a mapping")
    if "class" not in data or "prices" not in data:
        raise ConfigError("tariff: 'class' and 'prices' are required")
    tariff_class = dates.tariff_class(data["class"])
    return Tariff(
        name=name or data.get("name") or tariff_class.value,
        tariff_class=tariff_class,
        prices=numeric_vector(data["prices"], tariff_class.period_count, "tariff.prices"),
        vat=parse_number(data.get("vat", 0.21), "tariff.vat"),
        electricity_tax=parse_number(data.get("electricity_tax", 0.0511), "tariff.electricity_tax"),
        compensation_price=parse_number(data.get("compensation_price", 0.0), "tariff.compensation_price"),
    )


def load_tariffs_from_yaml(config_path: Path | None = None) -> list[Tariff]:
    """Load tariff definitions from YAML config file."""
    path = config_path or DEFAULT_CONFIG_PATH
    with open(path) as f:
        data = yaml.safe_load(f) or {}

    return [tariff_from_dict(t, t.get("name")) for t in data.get("tariffs", [])]


def save_tariffs_to_db(tariffs: list[Tariff], db_path: Path | None = None) -> int:
    """Save tariffs to the database. Returns number of tariffs saved."""
    count = 0
    with get_connection(db_path) as conn:
        for tariff in tariffs:
            conn.execute(
                """INSERT INTO tariffs (name, tariff_class, vat, electricity_tax, compensation_price)
                   VALUES (?, ?, ?, ?, ?)
                   ON CONFLICT(name) DO UPDATE SET
                     tariff_class = excluded.tariff_class,
                     vat = excluded.vat,
                     electricity_tax = excluded.electricity_tax,
                     compensation_price = excluded.compensation_price""",
                (
                    tariff.name,
                    tariff.tariff_class.value,
                    tariff.vat,
                    tariff.electricity_tax,
                    tariff.compensation_price,
                ),
            )
            tariff_id = conn.execute("SELECT id FROM tariffs WHERE name = ?", (tariff.name,)).fetchone()["id"]

            # Replace old prices for this tariff
            conn.execute("DELETE FROM tariff_prices WHERE tariff_id = ?", (tariff_id,))
            conn.executemany(
                "INSERT INTO tariff_prices (tariff_id, period, price_eur_per_kwh) VALUES (?, ?, ?)",
                [(tariff_id, period, price) for period, price in enumerate(tariff.prices, start=1)],
            )
            count += 1
        conn.commit()
    return count


def get_tariff_from_db(name: str, db_path: Path | None = None) -> Tariff:
    with get_connection(db_path) as conn:
        row = conn.execute("SELECT * FROM tariffs WHERE name = ?", (name,)).fetchone()
        if not row:
            raise ConfigError(f"No tariff named {name!r} in the database")
        prices = conn.execute(
            "SELECT price_eur_per_kwh FROM tariff_prices WHERE tariff_id = ? ORDER BY period",
            (row["id"],),
        ).fetchall()

    return Tariff(
        name=row["name"],
        tariff_class=dates.tariff_class(row["tariff_class"]),
        prices=[p["price_eur_per_kwh"] for p in prices],
        vat=row["vat"],
        electricity_tax=row["electricity_tax"],
        compensation_price=row["compensation_price"],
    )


def hourly_costs(values: Sequence[float], periods: Sequence[int], tariff: Tariff) -> list[float]:
    """Cost of every hour given precomputed tariff periods."""
    taxes = tariff.taxes
    return [v * tariff.prices[p - 1] * taxes for v, p in zip(values, periods)]
