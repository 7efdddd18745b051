"""
Error taxonomy for the market-data pipeline.

Transient upstream failures are retried and then recorded per symbol.
Schema failures mean the vendor payload no longer has the expected shape;
they are reported separately and not retried.
Store write failures end the current refresh cycle; the next run retries.
"""


class MarketDataError(Exception):
    """Base class for market-data pipeline errors."""


class QuoteFetchError(MarketDataError):
    """A quote could not be fetched for a symbol."""

    def __init__(self, symbol: str, reason: str):
        super().__init__(f"{symbol}: {reason}")
        self.symbol = symbol
        self.reason = reason


class QuoteSchemaError(QuoteFetchError):
    """The vendor answered, but the payload does not look like a quote."""


class StoreWriteError(MarketDataError):
    """The asset store rejected a write."""
