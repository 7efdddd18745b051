"""Shared fixtures: isolated settings, an in-memory store and a fake quote vendor."""

import os
import sys
import threading
import time
from datetime import datetime, timezone

import pytest
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, create_engine

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

import config  # noqa: E402
import db_engine  # noqa: E402
from models import Asset, AssetCategory  # noqa: E402
from services.market_data import QuoteFetcher, QuoteResult  # noqa: E402

FIXED_TIME = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


def memory_engine():
    return create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )


@pytest.fixture(autouse=True)
def settings(monkeypatch):
    """Fresh settings per test, independent of any local .env."""
    monkeypatch.setattr(config, "_settings", None)
    monkeypatch.delenv("CRON_SECRET", raising=False)
    monkeypatch.setenv("QUOTE_RETRY_DELAY", "0")
    monkeypatch.setenv("QUOTE_BATCH_DELAY", "0")
    return config.get_settings()


@pytest.fixture
def engine(monkeypatch):
    eng = memory_engine()
    monkeypatch.setattr(db_engine, "_engine", eng)
    db_engine.init_db(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def bare_engine(monkeypatch):
    """In-memory engine with no tables created."""
    eng = memory_engine()
    monkeypatch.setattr(db_engine, "_engine", eng)
    yield eng
    eng.dispose()


def add_asset(engine, symbol, category, asset_id=None, price=100.0, name=None, **fields):
    asset = Asset(
        id=asset_id or symbol.lower(),
        symbol=symbol,
        name=name or symbol,
        category=AssetCategory(category).value,
        price=price,
        last_updated=fields.pop("last_updated", FIXED_TIME),
        **fields
    )
    with Session(engine) as session:
        session.add(asset)
        session.commit()
        session.refresh(asset)
    return asset


def make_quote(symbol, category, price=100.0, fetched_at=FIXED_TIME, **fields):
    return QuoteResult(
        symbol=symbol,
        category=AssetCategory(category),
        name=fields.pop("name", symbol),
        price=price,
        fetched_at=fetched_at,
        **fields
    )


class FakeProvider:
    """
    Quote provider returning canned payloads.

    Each entry in `responses` is a payload dict, an exception instance to
    raise, or a list of those consumed one per call. Symbols without an
    entry get a default priced payload.
    """

    def __init__(self, responses=None, delays=None):
        self.responses = dict(responses or {})
        self.delays = dict(delays or {})
        self.calls = []
        self._lock = threading.Lock()

    def get_quote(self, symbol):
        with self._lock:
            self.calls.append(symbol)
            response = self.responses.get(symbol)
            if isinstance(response, list):
                response = response.pop(0) if len(response) > 1 else response[0]
        if symbol in self.delays:
            time.sleep(self.delays[symbol])
        if response is None:
            return {
                "symbol": symbol,
                "shortName": f"{symbol} Inc.",
                "regularMarketPrice": 100.0,
                "regularMarketChange": 1.5,
                "regularMarketChangePercent": 1.52,
                "regularMarketVolume": 1000,
            }
        if isinstance(response, BaseException):
            raise response
        return response

    def call_count(self, symbol):
        return self.calls.count(symbol)


@pytest.fixture
def provider():
    return FakeProvider()


def make_fetcher(provider, **kwargs):
    kwargs.setdefault("retry_delay", 0)
    kwargs.setdefault("batch_delay", 0)
    return QuoteFetcher(provider=provider, **kwargs)
