"""Tests for the CSV-backed pricing settings and add-on catalog loaders."""

import logging

import pytest

from veliz import config
from veliz.schemas.pricing import DEFAULT_SERVICE_TYPE_RATES, RateTable
from veliz.services.addon_catalog import AddonCatalog, load_addon_catalog
from veliz.services.cache import TTLCache
from veliz.services.rate_settings import load_rate_table

CATALOG_HEADER = (
    "sku,label,category,unit_type,rate,min_qty,default_frequency,"
    "frequency_options,amortize_to_monthly,active,show_in_proposals\n"
)


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


@pytest.fixture
def catalog_csv(tmp_path):
    path = tmp_path / "addons.csv"
    path.write_text(
        CATALOG_HEADER
        + "window_interior,Interior window cleaning,cleaning,pane,4.5,10,quarterly,monthly|quarterly,true,true,true\n"
        + "post_construction,Post-construction cleanup,specialty,flat,850,1,one_time,one_time,false,true,false\n"
        + "retired_item,Retired offering,cleaning,visit,60,1,annual,annual,true,false,true\n"
        + "Bad SKU,Broken row,cleaning,visit,10,1,monthly,monthly,false,true,true\n"
        + "mismatch,Default not offered,cleaning,visit,10,1,annual,monthly,false,true,true\n"
        + "window_interior,Duplicate row,cleaning,pane,9,1,monthly,monthly,false,true,true\n"
    )
    return path


class TestRateSettings:
    def test_overrides_and_defaults(self, tmp_path):
        path = tmp_path / "settings.csv"
        path.write_text(
            "Setting , Key , Value\n"
            "service_type_rate,commercial,0.14\n"
            "frequency_multiplier,Bi-Weekly,0.97\n"
            "labor_rate,,40\n"
        )
        rates = load_rate_table(str(path))

        assert rates.service_rate("commercial") == 0.14
        assert rates.service_rate("window") == DEFAULT_SERVICE_TYPE_RATES["window"]
        assert rates.frequency_multiplier("bi_weekly") == 0.97
        assert rates.labor_rate == 40
        assert rates.margin_percentage == 25.0

    def test_bundled_settings_match_defaults(self):
        assert load_rate_table(config.PRICING_SETTINGS_CSV) == RateTable()

    def test_missing_file(self, tmp_path, caplog):
        with caplog.at_level(logging.WARNING):
            rates = load_rate_table(str(tmp_path / "nope.csv"))

        assert rates == RateTable()
        assert "could not load pricing settings" in caplog.text

    def test_missing_columns(self, tmp_path):
        path = tmp_path / "settings.csv"
        path.write_text("name,amount\nlabor_rate,40\n")

        assert load_rate_table(str(path)) == RateTable()

    def test_bad_rows_skipped(self, tmp_path, caplog):
        path = tmp_path / "settings.csv"
        path.write_text(
            "setting,key,value\n"
            "labor_rate,,lots\n"
            "mystery_setting,,3\n"
            "overhead_percentage,,12\n"
        )
        with caplog.at_level(logging.WARNING):
            rates = load_rate_table(str(path))

        assert rates.labor_rate == 35.0
        assert rates.overhead_percentage == 12
        assert "mystery_setting" in caplog.text

    def test_out_of_range_value_falls_back(self, tmp_path):
        path = tmp_path / "settings.csv"
        path.write_text("setting,key,value\nmargin_percentage,,140\n")

        assert load_rate_table(str(path)) == RateTable()


class TestAddonCatalog:
    def test_invalid_rows_skipped(self, catalog_csv, caplog):
        with caplog.at_level(logging.WARNING):
            entries = load_addon_catalog(str(catalog_csv))

        assert [e.sku for e in entries] == ["window_interior", "post_construction", "retired_item"]
        assert "duplicate add-on sku" in caplog.text

        window = entries[0]
        assert window.rate == 4.5
        assert window.min_qty == 10
        assert window.frequency_options == ["monthly", "quarterly"]
        assert window.amortize_to_monthly is True

    def test_missing_file(self, tmp_path):
        assert load_addon_catalog(str(tmp_path / "none.csv")) == []

    def test_bundled_catalog_loads(self):
        entries = load_addon_catalog(config.ADDON_CATALOG_CSV)

        assert len(entries) >= 5
        assert all(e.default_frequency in e.frequency_options for e in entries)

    def test_filters(self, catalog_csv):
        catalog = AddonCatalog(str(catalog_csv))

        assert [e.sku for e in catalog.select()] == ["window_interior", "post_construction"]
        assert [e.sku for e in catalog.select(proposals_only=True)] == ["window_interior"]
        assert len(catalog.select(active_only=False)) == 3
        assert [e.sku for e in catalog.select(category="specialty")] == ["post_construction"]

    def test_get_by_sku(self, catalog_csv):
        catalog = AddonCatalog(str(catalog_csv))

        assert catalog.get(" WINDOW_INTERIOR ").label == "Interior window cleaning"
        assert catalog.get("missing") is None

    def test_cached_until_ttl_expires(self, catalog_csv):
        clock = FakeClock()
        catalog = AddonCatalog(str(catalog_csv), ttl_seconds=300, clock=clock)
        assert len(catalog.entries()) == 3

        catalog_csv.write_text(CATALOG_HEADER)
        clock.now += 299
        assert len(catalog.entries()) == 3

        clock.now += 2
        assert catalog.entries() == []

    def test_invalidate(self, catalog_csv):
        catalog = AddonCatalog(str(catalog_csv), ttl_seconds=300, clock=FakeClock())
        catalog.entries()

        catalog_csv.write_text(CATALOG_HEADER)
        catalog.invalidate()

        assert catalog.entries() == []


class TestTTLCache:
    def test_get_set(self):
        clock = FakeClock()
        cache = TTLCache(ttl_seconds=10, clock=clock)

        assert cache.get() is None
        cache.set(["a"])
        assert cache.get() == ["a"]

        clock.now += 10
        assert cache.get() == ["a"]
        clock.now += 0.5
        assert cache.get() is None

    def test_set_restarts_ttl(self):
        clock = FakeClock()
        cache = TTLCache(ttl_seconds=10, clock=clock)
        cache.set(1)
        clock.now += 8
        cache.set(2)
        clock.now += 8

        assert cache.get() == 2

    def test_invalidate(self):
        cache = TTLCache(ttl_seconds=10, clock=FakeClock())
        cache.set("value")
        cache.invalidate()

        assert cache.get() is None

    def test_ttl_must_be_positive(self):
        with pytest.raises(ValueError):
            TTLCache(ttl_seconds=0)
