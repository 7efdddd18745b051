from sqlalchemy import inspect, text

import migrate
from models import AssetCategory

LEGACY_TABLE = """
CREATE TABLE asset (
    id VARCHAR PRIMARY KEY,
    symbol VARCHAR NOT NULL UNIQUE,
    name VARCHAR NOT NULL,
    type VARCHAR,
    price FLOAT DEFAULT 0,
    change FLOAT DEFAULT 0,
    change_percent FLOAT DEFAULT 0,
    volume FLOAT DEFAULT 0,
    day_high FLOAT DEFAULT 0,
    day_low FLOAT DEFAULT 0,
    open_price FLOAT DEFAULT 0,
    previous_close FLOAT DEFAULT 0,
    fifty_two_week_high FLOAT DEFAULT 0,
    fifty_two_week_low FLOAT DEFAULT 0,
    average_volume FLOAT DEFAULT 0,
    market_cap FLOAT,
    last_updated DATETIME
)
"""


def create_legacy_store(engine):
    with engine.begin() as conn:
        conn.execute(text(LEGACY_TABLE))
        conn.execute(text(
            "INSERT INTO asset (id, symbol, name, type) VALUES "
            "('aapl', 'AAPL', 'Apple', 'stocks'), "
            "('btc', 'BTC-USD', 'Bitcoin', NULL), "
            "('GC=F', 'GC=F', 'Gold', 'commodity'), "
            "('spy', 'SPY', 'SPDR S&P 500', 'ETF')"
        ))


def categories(engine):
    with engine.connect() as conn:
        return dict(conn.execute(text("SELECT symbol, category FROM asset")).all())


def test_normalize_category():
    assert migrate.normalize_category("stocks", "AAPL") == AssetCategory.STOCK
    assert migrate.normalize_category("Indices", "^GSPC") == AssetCategory.INDEX
    assert migrate.normalize_category("crypto", "BTC") == AssetCategory.CRYPTO
    assert migrate.normalize_category(None, "EURUSD=X") == AssetCategory.FOREX
    assert migrate.normalize_category("ETF", "SPY") == AssetCategory.FUND


def test_legacy_store_is_migrated(bare_engine):
    create_legacy_store(bare_engine)

    migrate.run_all_migrations(bare_engine)

    columns = {c["name"] for c in inspect(bare_engine).get_columns("asset")}
    assert {"category", "image", "market_cap_rank"} <= columns
    assert categories(bare_engine) == {
        "AAPL": "stock",
        "BTC-USD": "crypto",
        "GC=F": "commodity",
        "SPY": "fund",
    }
    assert inspect(bare_engine).has_table("alert")


def test_migration_is_repeatable(bare_engine):
    create_legacy_store(bare_engine)
    migrate.run_all_migrations(bare_engine)

    migrate.migrate_asset_add_columns(bare_engine)
    assert migrate.migrate_asset_backfill_category(bare_engine) == 0


def test_missing_table_is_skipped(bare_engine):
    migrate.migrate_asset_add_columns(bare_engine)
    assert migrate.migrate_asset_backfill_category(bare_engine) == 0
    assert not inspect(bare_engine).has_table("asset")


def test_category_that_contradicts_the_symbol_is_corrected(bare_engine, capsys):
    create_legacy_store(bare_engine)
    with bare_engine.begin() as conn:
        conn.execute(text(
            "INSERT INTO asset (id, symbol, name, type) VALUES "
            "('gld', 'GLD', 'SPDR Gold Shares', 'commodity')"
        ))

    migrate.run_all_migrations(bare_engine)

    assert categories(bare_engine)["GLD"] == "fund"
    assert "GLD: stored as 'commodity' but classifies as fund" in capsys.readouterr().out


def test_canonical_value_is_still_checked(bare_engine):
    create_legacy_store(bare_engine)
    migrate.run_all_migrations(bare_engine)
    with bare_engine.begin() as conn:
        conn.execute(text("UPDATE asset SET category = 'crypto' WHERE symbol = 'AAPL'"))

    assert migrate.migrate_asset_backfill_category(bare_engine) == 1
    assert categories(bare_engine)["AAPL"] == "stock"
