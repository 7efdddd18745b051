"""
Market data service for fetching quotes from the upstream vendor.
Normalizes the vendor payload into QuoteResult records, with per-category
price-field fallback. Enhanced with tenacity for retry logic and resilience.
"""

import asyncio
import logging
import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional, Protocol, Tuple

import yfinance as yf
from tenacity import AsyncRetrying, retry_if_not_exception_type, stop_after_attempt, wait_fixed

from config import get_settings
from models.asset import AssetCategory, utcnow
from services.cache import QuoteCache
from services.errors import QuoteFetchError, QuoteSchemaError
from services.symbols import SymbolFormatter, classify, default_formatter

logger = logging.getLogger(__name__)

# Futures and crypto quotes often leave regularMarketPrice empty
FALLBACK_PRICE_FIELDS = ('currentPrice', 'regularMarketPrice', 'ask', 'bid')
DEFAULT_PRICE_FIELDS = ('regularMarketPrice',)
_FALLBACK_CATEGORIES = (AssetCategory.CRYPTO, AssetCategory.COMMODITY)

# At least one of these must be present for a payload to count as a quote
_IDENTIFYING_FIELDS = (
    'symbol', 'shortName', 'longName', 'regularMarketPrice', 'currentPrice', 'ask', 'bid',
)


class QuoteProvider(Protocol):
    """Anything that returns the raw vendor quote payload for one symbol."""

    def get_quote(self, symbol: str) -> Mapping[str, Any]:
        ...


class YahooQuoteProvider:
    """Quote provider backed by yfinance."""

    def get_quote(self, symbol: str) -> Mapping[str, Any]:
        ticker = yf.Ticker(symbol)
        return ticker.info


@dataclass
class QuoteResult:
    """Normalized quote for one quote-format symbol."""
    symbol: str
    category: AssetCategory
    name: str
    price: float = 0.0
    change: float = 0.0
    change_percent: float = 0.0
    volume: float = 0.0
    day_high: float = 0.0
    day_low: float = 0.0
    open_price: float = 0.0
    previous_close: float = 0.0
    fifty_two_week_high: float = 0.0
    fifty_two_week_low: float = 0.0
    average_volume: float = 0.0
    market_cap: Optional[float] = None
    vendor_symbol: Optional[str] = None  # as echoed by the vendor, may differ in case/format
    fetched_at: datetime = field(default_factory=utcnow)

    @property
    def priced(self) -> bool:
        return self.price > 0


@dataclass
class FailedSymbol:
    """A symbol that could not be quoted, with the raw failure reason."""
    symbol: str
    reason: str
    schema_error: bool = False

    def to_dict(self) -> Dict[str, str]:
        return {'symbol': self.symbol, 'error': self.reason}


@dataclass
class BatchResult:
    quotes: List[QuoteResult] = field(default_factory=list)
    failed_symbols: List[FailedSymbol] = field(default_factory=list)


def _number(value: Any, default: Optional[float] = 0.0) -> Optional[float]:
    """Coerce a vendor value to a finite float, or return the default."""
    if value is None or isinstance(value, bool):
        return default
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    if math.isnan(number) or math.isinf(number):
        return default
    return number


def resolve_price(payload: Mapping[str, Any], category: AssetCategory) -> float:
    """
    Pick the price out of a vendor payload.

    Crypto and commodities fall back through currentPrice, regularMarketPrice,
    ask and bid; every other category only trusts regularMarketPrice.
    Returns 0.0 (unpriced) when no candidate is a positive number.
    """
    fields = FALLBACK_PRICE_FIELDS if AssetCategory(category) in _FALLBACK_CATEGORIES else DEFAULT_PRICE_FIELDS
    for name in fields:
        price = _number(payload.get(name), None)
        if price is not None and price > 0:
            return price
    return 0.0


def validate_payload(symbol: str, payload: Any) -> Mapping[str, Any]:
    """Reject payloads that are not shaped like a quote at all."""
    if not isinstance(payload, Mapping):
        raise QuoteSchemaError(symbol, f"expected a mapping, got {type(payload).__name__}")
    if not any(payload.get(name) is not None for name in _IDENTIFYING_FIELDS):
        raise QuoteSchemaError(symbol, "payload has no quote fields")
    return payload


def build_quote(
    symbol: str,
    category: AssetCategory,
    payload: Mapping[str, Any],
    formatter: SymbolFormatter = default_formatter
) -> QuoteResult:
    """Normalize a validated vendor payload into a QuoteResult."""
    category = AssetCategory(category)
    vendor_name = payload.get('shortName') or payload.get('longName')
    previous_close = payload.get('regularMarketPreviousClose')
    if previous_close is None:
        previous_close = payload.get('previousClose')

    return QuoteResult(
        symbol=symbol,
        category=category,
        name=formatter.display_name(symbol, category, vendor_name),
        price=resolve_price(payload, category),
        change=_number(payload.get('regularMarketChange')),
        change_percent=_number(payload.get('regularMarketChangePercent')),
        volume=_number(payload.get('regularMarketVolume')),
        day_high=_number(payload.get('regularMarketDayHigh')),
        day_low=_number(payload.get('regularMarketDayLow')),
        open_price=_number(payload.get('regularMarketOpen')),
        previous_close=_number(previous_close),
        fifty_two_week_high=_number(payload.get('fiftyTwoWeekHigh')),
        fifty_two_week_low=_number(payload.get('fiftyTwoWeekLow')),
        average_volume=_number(payload.get('averageVolume')),
        market_cap=_number(payload.get('marketCap'), None),
        vendor_symbol=payload.get('symbol'),
    )


class QuoteFetcher:
    """
    Fetches quotes for one or many symbols.

    Each symbol gets a bounded number of attempts with a fixed delay between
    them. Batches run concurrently inside and sequentially across, with a short
    pause between batches for upstream rate limits. One failing symbol never
    aborts a batch.
    """

    def __init__(
        self,
        provider: Optional[QuoteProvider] = None,
        formatter: SymbolFormatter = default_formatter,
        batch_size: int = 10,
        batch_delay: float = 0.1,
        max_attempts: int = 3,
        retry_delay: float = 1.0,
        cache: Optional[QuoteCache] = None
    ):
        self.provider = provider or YahooQuoteProvider()
        self.formatter = formatter
        self.batch_size = max(1, batch_size)
        self.batch_delay = batch_delay
        self.max_attempts = max(1, max_attempts)
        self.retry_delay = retry_delay
        self.cache = cache

    @classmethod
    def from_settings(
        cls,
        provider: Optional[QuoteProvider] = None,
        cache: Optional[QuoteCache] = None
    ) -> "QuoteFetcher":
        settings = get_settings()
        return cls(
            provider=provider,
            batch_size=settings.quote_batch_size,
            batch_delay=settings.quote_batch_delay,
            max_attempts=settings.quote_max_attempts,
            retry_delay=settings.quote_retry_delay,
            cache=cache,
        )

    async def _fetch_payload(self, quote_symbol: str) -> Mapping[str, Any]:
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_fixed(self.retry_delay),
            retry=retry_if_not_exception_type(QuoteSchemaError),
            before_sleep=lambda state: logger.info(
                f"Retrying {quote_symbol} ({state.attempt_number}/{self.max_attempts}) "
                f"after: {state.outcome.exception()}"
            ),
            reraise=True
        )
        async for attempt in retrying:
            with attempt:
                payload = await asyncio.to_thread(self.provider.get_quote, quote_symbol)
                return validate_payload(quote_symbol, payload)

    async def fetch_quote(self, symbol: str, category: Optional[AssetCategory] = None) -> QuoteResult:
        """
        Fetch one quote.

        Args:
            symbol: Clean or quote-format symbol
            category: Asset category; classified from the symbol when omitted

        Returns:
            QuoteResult (price 0.0 when the vendor gave no usable price)

        Raises:
            QuoteSchemaError: the payload was not shaped like a quote
            QuoteFetchError: every attempt failed
        """
        category = AssetCategory(category) if category else classify(symbol)
        quote_symbol = self.formatter.to_quote_format(symbol, category)

        if self.cache is not None:
            cached = self.cache.get(quote_symbol)
            if cached is not None:
                return cached

        try:
            payload = await self._fetch_payload(quote_symbol)
        except QuoteSchemaError as e:
            logger.warning(f"Vendor schema validation error for {quote_symbol}: {e.reason}")
            raise
        except Exception as e:
            logger.error(f"Failed to fetch quote for {quote_symbol} after {self.max_attempts} attempts: {e}")
            raise QuoteFetchError(quote_symbol, str(e) or type(e).__name__) from e

        quote = build_quote(quote_symbol, category, payload, self.formatter)
        if not quote.priced:
            logger.warning(f"No usable price for {quote_symbol}; treating as unpriced")
        if self.cache is not None:
            self.cache.put(quote_symbol, quote)
        return quote

    async def fetch_many(self, requests: Iterable[Tuple[str, AssetCategory]]) -> BatchResult:
        """
        Fetch many quotes in fixed-size concurrent batches.

        Args:
            requests: (symbol, category) pairs

        Returns:
            BatchResult with successful quotes and per-symbol failures
        """
        items = [
            (self.formatter.to_quote_format(symbol, category), AssetCategory(category))
            for symbol, category in requests
        ]
        result = BatchResult()

        for start in range(0, len(items), self.batch_size):
            if start:
                await asyncio.sleep(self.batch_delay)
            batch = items[start:start + self.batch_size]
            logger.info(
                f"Fetching batch {start // self.batch_size + 1} "
                f"({len(batch)} symbols): {', '.join(s for s, _ in batch)}"
            )

            outcomes = await asyncio.gather(
                *(self.fetch_quote(symbol, category) for symbol, category in batch),
                return_exceptions=True
            )
            for (symbol, _), outcome in zip(batch, outcomes):
                if isinstance(outcome, QuoteFetchError):
                    result.failed_symbols.append(FailedSymbol(
                        symbol=symbol,
                        reason=outcome.reason,
                        schema_error=isinstance(outcome, QuoteSchemaError)
                    ))
                elif isinstance(outcome, BaseException):
                    logger.error(f"Unexpected error fetching {symbol}: {outcome!r}")
                    result.failed_symbols.append(FailedSymbol(symbol=symbol, reason=repr(outcome)))
                else:
                    result.quotes.append(outcome)

        logger.info(
            f"Fetched {len(result.quotes)} quotes, {len(result.failed_symbols)} failed"
        )
        return result
