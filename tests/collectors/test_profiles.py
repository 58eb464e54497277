"""Tests for the SIPS and REE importers."""

from datetime import datetime, timedelta

import pytest
from solarsizing.collectors import ree, sips
from solarsizing.errors import MalformedInputError


def write_hour_ending_series(path, header, value):
    lines = [header]
    moment = datetime(2023, 1, 1, 1)
    for _ in range(8760):
        lines.append(f"{moment:%Y-%m-%d %H:%M};{value}")
        moment += timedelta(hours=1)
    path.write_text("\n".join(lines) + "\n")


def test_sips_shifts_hour_ending(tmp_path):
    csv_path = tmp_path / "sips.csv"
    write_hour_ending_series(csv_path, "fecha_hora;consumo_kWh", "0,4")

    readings = sips.parse_csv(csv_path)
    assert readings[0].date == datetime(2023, 1, 1, 0)
    assert readings[-1].date == datetime(2023, 12, 31, 23)

    curve = sips.load_curve(csv_path)
    assert curve.missing_hours == 0
    assert curve.total == pytest.approx(0.4 * 8760)


def test_ree_profile_scaled_by_annual_consumption(tmp_path):
    csv_path = tmp_path / "perfil.csv"
    write_hour_ending_series(csv_path, "fecha_hora;coeficiente", f"{1 / 8760:.12f}".replace(".", ","))

    curve = ree.load_curve(csv_path, annual_consumption=3500)
    assert len(curve.entries) == 8760
    assert curve.total == pytest.approx(3500, rel=1e-6)
    assert curve.dates[0] == datetime(2023, 1, 1)


def test_ree_rejects_negative_consumption(tmp_path):
    csv_path = tmp_path / "perfil.csv"
    write_hour_ending_series(csv_path, "fecha_hora;coeficiente", "0,0001")
    with pytest.raises(MalformedInputError):
        ree.parse_csv(csv_path, annual_consumption=-1)


def test_sips_bad_timestamp(tmp_path):
    csv_path = tmp_path / "sips.csv"
    csv_path.write_text("fecha_hora;consumo_kWh\n01/01/2023 01:00;0,4\n")
    with pytest.raises(MalformedInputError, match="sips row 2"):
        sips.parse_csv(csv_path)
