"""
Read surface for the dashboard.
Groups assets by segment and always returns a well-typed record per
watchlist symbol, substituting an error placeholder when data is missing.
"""

import asyncio
import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from sqlmodel import Session

from models import Asset, AssetCategory, SEGMENT_ORDER
from repositories.asset_repository import AssetRepository
from services.errors import QuoteFetchError, StoreWriteError
from services.market_data import FailedSymbol, QuoteFetcher, QuoteResult
from services.reconciler import AssetReconciler
from services.refresh import validate_watchlist
from services.symbol_tables import DEFAULT_WATCHLIST
from services.symbols import SymbolFormatter, classify, default_formatter

logger = logging.getLogger(__name__)

MarketRecord = Dict[str, Any]


def _zero(value: Optional[float]) -> float:
    return value if value is not None else 0


def placeholder_record(
    symbol: str,
    category: AssetCategory,
    formatter: SymbolFormatter = default_formatter
) -> MarketRecord:
    """Zero-valued, error-flagged record for a symbol with no data."""
    category = AssetCategory(category)
    return {
        'symbol': symbol,
        'name': formatter.display_name(symbol, category),
        'category': category.value,
        'chartSymbol': formatter.to_chart_format(symbol, category),
        'price': 0,
        'change': 0,
        'changePercent': 0,
        'volume': 0,
        'marketCap': None,
        'dayHigh': 0,
        'dayLow': 0,
        'openPrice': 0,
        'previousClose': 0,
        'fiftyTwoWeekHigh': 0,
        'fiftyTwoWeekLow': 0,
        'averageVolume': 0,
        'lastUpdated': None,
        'error': True,
    }


def asset_record(asset: Asset, formatter: SymbolFormatter = default_formatter) -> MarketRecord:
    """Dashboard record for a stored asset row."""
    try:
        category = AssetCategory(asset.category)
    except ValueError:
        category = classify(asset.symbol)
    return {
        'symbol': asset.symbol,
        'name': asset.name,
        'category': category.value,
        'chartSymbol': formatter.to_chart_format(asset.symbol, category),
        'price': _zero(asset.price),
        'change': _zero(asset.change),
        'changePercent': _zero(asset.change_percent),
        'volume': _zero(asset.volume),
        'marketCap': asset.market_cap,
        'dayHigh': _zero(asset.day_high),
        'dayLow': _zero(asset.day_low),
        'openPrice': _zero(asset.open_price),
        'previousClose': _zero(asset.previous_close),
        'fiftyTwoWeekHigh': _zero(asset.fifty_two_week_high),
        'fiftyTwoWeekLow': _zero(asset.fifty_two_week_low),
        'averageVolume': _zero(asset.average_volume),
        'lastUpdated': asset.last_updated.isoformat() if asset.last_updated else None,
        'error': False,
    }


def quote_record(quote: QuoteResult, formatter: SymbolFormatter = default_formatter) -> MarketRecord:
    """Dashboard record for a freshly fetched quote."""
    return {
        'symbol': quote.symbol,
        'name': quote.name,
        'category': quote.category.value,
        'chartSymbol': formatter.to_chart_format(quote.symbol, quote.category),
        'price': quote.price,
        'change': quote.change,
        'changePercent': quote.change_percent,
        'volume': quote.volume,
        'marketCap': quote.market_cap,
        'dayHigh': quote.day_high,
        'dayLow': quote.day_low,
        'openPrice': quote.open_price,
        'previousClose': quote.previous_close,
        'fiftyTwoWeekHigh': quote.fifty_two_week_high,
        'fiftyTwoWeekLow': quote.fifty_two_week_low,
        'averageVolume': quote.average_volume,
        'lastUpdated': quote.fetched_at.isoformat(),
        'error': False,
    }


def empty_segments() -> Dict[str, List[MarketRecord]]:
    return {segment: [] for segment in SEGMENT_ORDER}


class MarketView:
    """Builds the grouped market payload from the store or from live quotes."""

    def __init__(
        self,
        fetcher: Optional[QuoteFetcher] = None,
        watchlist: Optional[Mapping[Any, Iterable[str]]] = None,
        session: Optional[Session] = None,
        store_categories: Iterable[AssetCategory] = (AssetCategory.COMMODITY,)
    ):
        self.fetcher = fetcher
        self.store_categories = frozenset(AssetCategory(c) for c in store_categories)
        self.formatter = fetcher.formatter if fetcher else default_formatter
        self.watchlist = validate_watchlist(
            watchlist if watchlist is not None else DEFAULT_WATCHLIST,
            formatter=self.formatter
        )
        self.session = session

    def _require_fetcher(self) -> QuoteFetcher:
        if self.fetcher is None:
            self.fetcher = QuoteFetcher.from_settings()
        return self.fetcher

    def grouped_from_store(self) -> Dict[str, List[MarketRecord]]:
        """
        Current store contents grouped by segment.

        Watchlist symbols missing from the store appear as error placeholders.
        """
        grouped = empty_segments()
        stored = set()
        for asset in AssetRepository.get_all(session=self.session):
            record = asset_record(asset, self.formatter)
            grouped[AssetCategory(record['category']).segment].append(record)
            stored.add(asset.symbol.upper())

        for category, symbols in self.watchlist.items():
            for symbol in symbols:
                if symbol not in stored:
                    grouped[category.segment].append(placeholder_record(symbol, category, self.formatter))
        return grouped

    async def grouped_live(self, persist: bool = True) -> Tuple[Dict[str, List[MarketRecord]], List[FailedSymbol]]:
        """
        Fetch the watchlist on demand.

        Categories in store_categories (commodities by default) are served from
        the store rather than fetched.

        Args:
            persist: Reconcile the fetched quotes into the store as well

        Returns:
            (grouped records, failed symbols). Failed symbols appear in the
            grouped payload as error placeholders. An unpriced quote is shown
            with the last stored price when the store has one.
        """
        fetcher = self._require_fetcher()
        requests = [
            (symbol, category)
            for category, symbols in self.watchlist.items()
            if category not in self.store_categories
            for symbol in symbols
        ]
        batch = await fetcher.fetch_many(requests)
        failed = list(batch.failed_symbols)

        if persist and batch.quotes:
            try:
                summary = await asyncio.to_thread(AssetReconciler(session=self.session).reconcile, batch.quotes)
                failed.extend(summary.rejected)
            except StoreWriteError as e:
                # Live payload is still served; the next refresh writes it
                logger.error(f"Could not persist live quotes: {e}")

        quotes = {quote.symbol: quote for quote in batch.quotes}
        stored = {asset.symbol.upper(): asset for asset in AssetRepository.get_all(session=self.session)}

        grouped = empty_segments()
        for category, symbols in self.watchlist.items():
            for symbol in symbols:
                quote = quotes.get(symbol)
                if category in self.store_categories:
                    asset = stored.get(symbol)
                    if asset is not None:
                        record = asset_record(asset, self.formatter)
                    else:
                        record = placeholder_record(symbol, category, self.formatter)
                elif quote is None:
                    record = placeholder_record(symbol, category, self.formatter)
                elif not quote.priced and symbol in stored and stored[symbol].price:
                    record = asset_record(stored[symbol], self.formatter)
                else:
                    record = quote_record(quote, self.formatter)
                grouped[category.segment].append(record)
        return grouped, failed

    async def quote(self, symbol: str, category: Optional[AssetCategory] = None) -> MarketRecord:
        """Single on-demand quote; a placeholder when the fetch fails."""
        fetcher = self._require_fetcher()
        category = AssetCategory(category) if category else classify(symbol)
        try:
            quote = await fetcher.fetch_quote(symbol, category)
        except QuoteFetchError as e:
            logger.error(f"Error fetching data for {symbol}: {e}")
            return placeholder_record(self.formatter.to_quote_format(symbol, category), category, self.formatter)
        return quote_record(quote, self.formatter)
