import asyncio

from conftest import FakeProvider, add_asset, make_fetcher
from models import SEGMENT_ORDER, AssetCategory
from repositories import AssetRepository
from services.market_view import MarketView, placeholder_record

WATCHLIST = {
    AssetCategory.STOCK: ["AAPL", "MSFT"],
    AssetCategory.COMMODITY: ["GC=F", "SI=F"],
    AssetCategory.CRYPTO: ["BTC-USD"],
}


def by_symbol(grouped):
    return {record["symbol"]: record for records in grouped.values() for record in records}


def test_placeholder_record_shape():
    record = placeholder_record("GC=F", AssetCategory.COMMODITY)
    assert record["name"] == "Gold"
    assert record["chartSymbol"] == "XAUUSD"
    assert record["price"] == 0
    assert record["marketCap"] is None
    assert record["error"] is True


class TestGroupedFromStore:

    def test_missing_symbols_become_placeholders(self, engine):
        add_asset(engine, "AAPL", AssetCategory.STOCK, price=190.0, name="Apple Inc.")

        grouped = MarketView(watchlist=WATCHLIST).grouped_from_store()

        assert list(grouped) == SEGMENT_ORDER
        records = by_symbol(grouped)
        assert records["AAPL"]["error"] is False
        assert records["AAPL"]["price"] == 190.0
        assert records["MSFT"]["error"] is True
        assert records["GC=F"]["name"] == "Gold"
        assert records["BTC-USD"]["chartSymbol"] == "BTCUSD"
        assert grouped["funds"] == []

    def test_stored_assets_outside_watchlist_are_listed(self, engine):
        add_asset(engine, "ETH-USD", AssetCategory.CRYPTO, asset_id="eth")
        grouped = MarketView(watchlist={}).grouped_from_store()
        assert [r["symbol"] for r in grouped["crypto"]] == ["ETH-USD"]

    def test_unknown_stored_category_is_reclassified(self, engine):
        add_asset(engine, "BTC-USD", AssetCategory.CRYPTO, asset_id="btc")
        with engine.begin() as conn:
            conn.exec_driver_sql("UPDATE asset SET category = 'cryptocurrency'")

        grouped = MarketView(watchlist={}).grouped_from_store()

        assert grouped["crypto"][0]["category"] == "crypto"


class TestGroupedLive:

    def test_live_fetch_with_failures(self, engine):
        add_asset(engine, "GC=F", AssetCategory.COMMODITY, asset_id="GC=F", price=2300.0, name="Gold")
        provider = FakeProvider({"MSFT": ConnectionError("rate limited")})
        view = MarketView(fetcher=make_fetcher(provider, max_attempts=1), watchlist=WATCHLIST)

        grouped, failed = asyncio.run(view.grouped_live())

        records = by_symbol(grouped)
        assert records["AAPL"]["error"] is False
        assert records["MSFT"]["error"] is True
        assert [f.symbol for f in failed] == ["MSFT"]
        # Commodities come from the store, not the vendor
        assert records["GC=F"]["price"] == 2300.0
        assert records["SI=F"]["error"] is True
        assert "GC=F" not in provider.calls
        # Fetched quotes were persisted
        assert AssetRepository.get_by_symbol("AAPL") is not None

    def test_unpriced_quote_shows_stored_price(self, engine):
        add_asset(engine, "AAPL", AssetCategory.STOCK, price=188.0)
        provider = FakeProvider({"AAPL": {"symbol": "AAPL", "regularMarketPrice": None}})
        view = MarketView(fetcher=make_fetcher(provider), watchlist={AssetCategory.STOCK: ["AAPL"]})

        grouped, failed = asyncio.run(view.grouped_live())

        assert grouped["stocks"][0]["price"] == 188.0
        assert failed == []
        assert AssetRepository.get_by_symbol("AAPL").price == 188.0

    def test_without_persist_store_is_untouched(self, engine, provider):
        view = MarketView(fetcher=make_fetcher(provider), watchlist={AssetCategory.STOCK: ["AAPL"]})

        grouped, _ = asyncio.run(view.grouped_live(persist=False))

        assert grouped["stocks"][0]["price"] == 100.0
        assert AssetRepository.get_all() == []


class TestQuote:

    def test_quote_classifies_symbol(self, provider):
        view = MarketView(fetcher=make_fetcher(provider), watchlist={})

        record = asyncio.run(view.quote("eth-usd"))

        assert record["symbol"] == "ETH-USD"
        assert record["category"] == "crypto"
        assert record["error"] is False

    def test_failed_quote_is_a_placeholder(self):
        provider = FakeProvider({"EURUSD=X": ConnectionError("down")})
        view = MarketView(fetcher=make_fetcher(provider, max_attempts=1), watchlist={})

        record = asyncio.run(view.quote("EURUSD", AssetCategory.FOREX))

        assert record["symbol"] == "EURUSD=X"
        assert record["chartSymbol"] == "EURUSD"
        assert record["error"] is True
