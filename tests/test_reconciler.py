from datetime import timedelta

import pytest
from sqlmodel import SQLModel

from conftest import FIXED_TIME, add_asset, make_quote
from models import AssetCategory
from repositories import AssetRepository
from services.errors import StoreWriteError
from services.reconciler import AssetReconciler, build_id_maps, quote_to_row


def snapshot():
    return [asset.model_dump() for asset in AssetRepository.get_all()]


class TestReconcile:

    def test_inserts_new_assets(self, engine):
        summary = AssetReconciler().reconcile([
            make_quote("AAPL", AssetCategory.STOCK, price=190.0, name="Apple Inc."),
            make_quote("BTC-USD", AssetCategory.CRYPTO, price=65000.0),
        ])

        assert summary.count == 2
        apple = AssetRepository.get_by_symbol("aapl")
        assert apple.id == "aapl"
        assert apple.name == "Apple Inc."
        assert apple.category == "stock"
        assert apple.image.endswith("/AAPL.png")
        assert AssetRepository.get_by_symbol("BTC-USD").id == "btc"

    def test_applying_same_quote_twice_is_a_no_op(self, engine):
        quotes = [make_quote("AAPL", AssetCategory.STOCK, price=190.0, volume=12345)]
        reconciler = AssetReconciler()

        reconciler.reconcile(quotes)
        once = snapshot()
        reconciler.reconcile(quotes)

        assert snapshot() == once
        assert len(once) == 1

    def test_zero_price_never_overwrites_a_good_price(self, engine):
        reconciler = AssetReconciler()
        reconciler.reconcile([make_quote("AAPL", AssetCategory.STOCK, price=190.0)])

        later = FIXED_TIME + timedelta(minutes=15)
        summary = reconciler.reconcile([make_quote("AAPL", AssetCategory.STOCK, price=0.0, fetched_at=later)])

        apple = AssetRepository.get_by_symbol("AAPL")
        assert apple.price == 190.0
        assert summary.unpriced_symbols == ["AAPL"]
        assert summary.kept_symbols == ["AAPL"]
        assert summary.count == 0

    def test_count_covers_only_rows_written(self, engine):
        add_asset(engine, "AAPL", AssetCategory.STOCK, price=190.0)

        summary = AssetReconciler().reconcile([
            make_quote("AAPL", AssetCategory.STOCK, price=0.0),
            make_quote("MSFT", AssetCategory.STOCK, price=0.0),
            make_quote("NVDA", AssetCategory.STOCK, price=120.0),
        ])

        assert summary.count == 2
        assert summary.unpriced_symbols == ["AAPL", "MSFT"]
        assert summary.kept_symbols == ["AAPL"]
        assert AssetRepository.get_by_symbol("MSFT").price == 0

    def test_unpriced_new_asset_is_stored_at_zero(self, engine):
        AssetReconciler().reconcile([make_quote("AAPL", AssetCategory.STOCK, price=0.0)])
        assert AssetRepository.get_by_symbol("AAPL").price == 0

    def test_priced_quote_replaces_zero_price(self, engine):
        add_asset(engine, "AAPL", AssetCategory.STOCK, price=0.0)
        AssetReconciler().reconcile([make_quote("AAPL", AssetCategory.STOCK, price=191.0)])
        assert AssetRepository.get_by_symbol("AAPL").price == 191.0

    def test_format_drift_reuses_existing_row(self, engine):
        add_asset(engine, "BTC", AssetCategory.CRYPTO, asset_id="btc", price=60000.0)

        AssetReconciler().reconcile([make_quote("BTC-USD", AssetCategory.CRYPTO, price=65000.0)])

        rows = AssetRepository.get_all()
        assert len(rows) == 1
        assert rows[0].id == "btc"
        assert rows[0].symbol == "BTC-USD"
        assert rows[0].price == 65000.0

    def test_exact_symbol_match_wins(self, engine):
        add_asset(engine, "BTC", AssetCategory.CRYPTO, asset_id="legacy-btc")
        add_asset(engine, "BTC-USD", AssetCategory.CRYPTO, asset_id="btc-usd-row")

        AssetReconciler().reconcile([make_quote("BTC-USD", AssetCategory.CRYPTO, price=1.0)])

        assert AssetRepository.get_by_symbol("BTC-USD").id == "btc-usd-row"
        assert AssetRepository.get_by_symbol("BTC").price == 100.0

    def test_commodity_is_keyed_by_quote_symbol(self, engine):
        AssetReconciler().reconcile([
            make_quote("GC=F", AssetCategory.COMMODITY, price=2300.0, name="Gold"),
        ])
        gold = AssetRepository.get_by_symbol("GC=F")
        assert gold.id == "GC=F"
        assert gold.name == "Gold"
        assert gold.category == "commodity"

    def test_commodity_format_drift_reuses_existing_row(self, engine):
        add_asset(engine, "GC", AssetCategory.COMMODITY, asset_id="gc", price=2000.0)

        AssetReconciler().reconcile([make_quote("GC=F", AssetCategory.COMMODITY, price=2300.0)])

        rows = AssetRepository.get_all()
        assert len(rows) == 1
        assert rows[0].id == "gc"
        assert rows[0].symbol == "GC=F"
        assert rows[0].price == 2300.0

    def test_category_mismatch_is_rejected(self, engine):
        summary = AssetReconciler().reconcile([
            make_quote("AAPL", AssetCategory.CRYPTO),
            make_quote("MSFT", AssetCategory.STOCK),
        ])

        assert summary.count == 1
        assert [r.symbol for r in summary.rejected] == ["AAPL"]
        assert AssetRepository.get_by_symbol("AAPL") is None

    def test_empty_input_touches_nothing(self, engine):
        summary = AssetReconciler().reconcile([])
        assert summary.count == 0
        assert snapshot() == []

    def test_store_failure_raises(self, engine, monkeypatch):
        monkeypatch.setattr(AssetRepository, "get_all", staticmethod(lambda session=None: []))
        SQLModel.metadata.drop_all(engine)
        with pytest.raises(StoreWriteError):
            AssetReconciler().reconcile([make_quote("AAPL", AssetCategory.STOCK)])


class TestIdMaps:

    def test_decorated_row_preferred_for_clean_key(self, engine):
        add_asset(engine, "BTC", AssetCategory.CRYPTO, asset_id="a")
        add_asset(engine, "BTC-USD", AssetCategory.CRYPTO, asset_id="b")

        by_symbol, by_clean = build_id_maps(AssetRepository.get_all())

        assert by_symbol == {"BTC": "a", "BTC-USD": "b"}
        assert by_clean == {"BTC": "b"}

    def test_quote_to_row_uses_capture_time(self):
        row = quote_to_row(make_quote("aapl", AssetCategory.STOCK), "aapl")
        assert row["symbol"] == "AAPL"
        assert row["last_updated"] == FIXED_TIME
        assert row["category"] == "stock"
