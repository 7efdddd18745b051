"""
Services package.
Symbol handling, quote fetching and asset store maintenance.

Store-facing services (reconciler, deduplicator, refresh, market_view) are
imported from their own modules to keep this package free of repository imports.
"""

from services.symbols import (
    classify,
    clean_symbol,
    has_vendor_decoration,
    to_quote_format,
    to_chart_format,
    SymbolClassifier,
    SymbolFormatter,
)
from services.market_data import (
    QuoteFetcher,
    QuoteResult,
    FailedSymbol,
    BatchResult,
    YahooQuoteProvider,
    resolve_price,
)
from services.cache import QuoteCache
from services.errors import (
    MarketDataError,
    QuoteFetchError,
    QuoteSchemaError,
    StoreWriteError,
)

__all__ = [
    # Symbols
    'classify',
    'clean_symbol',
    'has_vendor_decoration',
    'to_quote_format',
    'to_chart_format',
    'SymbolClassifier',
    'SymbolFormatter',
    # Quotes
    'QuoteFetcher',
    'QuoteResult',
    'FailedSymbol',
    'BatchResult',
    'YahooQuoteProvider',
    'resolve_price',
    'QuoteCache',
    # Errors
    'MarketDataError',
    'QuoteFetchError',
    'QuoteSchemaError',
    'StoreWriteError',
]
