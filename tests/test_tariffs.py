import pytest
from solarsizing import db
from solarsizing.errors import ConfigError
from solarsizing.models import TariffClass
from solarsizing.tariffs import (
    DEFAULT_CONFIG_PATH,
    get_tariff_from_db,
    hourly_costs,
    load_tariffs_from_yaml,
    save_tariffs_to_db,
    tariff_from_dict,
)


@pytest.fixture
def db_path(tmp_path):
    path = tmp_path / "test.db"
    db.init_db(path)
    return path


def test_bundled_tariffs_load():
    tariffs = load_tariffs_from_yaml(DEFAULT_CONFIG_PATH)
    assert {t.tariff_class for t in tariffs} == set(TariffClass)
    for t in tariffs:
        assert len(t.prices) == t.tariff_class.period_count


def test_tariff_from_dict_defaults():
    tariff = tariff_from_dict({"class": "6.1TD", "prices": [6, 5, 4, 3, 2, 1]})
    assert tariff.name == "6.1TD"
    assert tariff.vat == 0.21
    assert tariff.compensation_price == 0.0


def test_tariff_from_dict_requires_class():
    with pytest.raises(ConfigError):
        tariff_from_dict({"prices": [0.1, 0.1, 0.1]})


def test_hourly_costs_include_taxes(tariff):
    tariff.vat = 0.21
    costs = hourly_costs([2.0, 2.0, 1.0], [1, 3, 2], tariff)
    assert costs == pytest.approx([2.0 * 0.30 * 1.21, 2.0 * 0.10 * 1.21, 0.20 * 1.21])


def test_save_and_get_tariff(db_path, tariff):
    assert save_tariffs_to_db([tariff], db_path) == 1
    stored = get_tariff_from_db(tariff.name, db_path)
    assert stored == tariff

    # saving again updates prices in place
    tariff.prices = [0.4, 0.3, 0.2]
    save_tariffs_to_db([tariff], db_path)
    assert get_tariff_from_db(tariff.name, db_path).prices == [0.4, 0.3, 0.2]
    assert db.get_stats(db_path)["tariffs"]["count"] == 1


def test_get_unknown_tariff(db_path):
    with pytest.raises(ConfigError):
        get_tariff_from_db("nope", db_path)
