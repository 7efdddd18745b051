"""
Symbol utilities: classification, quote/chart formatting and clean-symbol
normalization.

Three spellings of the same instrument circulate through the service:

* the *clean* symbol (``BTC``, ``GC``, ``GSPC``), used as a grouping key,
* the *quote-format* symbol the vendor expects (``BTC-USD``, ``GC=F``, ``^GSPC``),
* the *chart-format* symbol the charting widget expects (``BTCUSD``, ``XAUUSD``, ``SPX``).
"""

from typing import Iterable, Mapping, Optional

from models.asset import AssetCategory
from services import symbol_tables

VENDOR_SUFFIXES = ('-USD', '=X', '=F')
INDEX_PREFIX = '^'

_QUOTE_DECORATIONS = {
    AssetCategory.FOREX: ('', '=X'),
    AssetCategory.CRYPTO: ('', '-USD'),
    AssetCategory.COMMODITY: ('', '=F'),
    AssetCategory.INDEX: (INDEX_PREFIX, ''),
    AssetCategory.STOCK: ('', ''),
    AssetCategory.FUND: ('', ''),
}


def clean_symbol(symbol: str) -> str:
    """
    Strip every vendor decoration from a symbol.

    Examples:
        >>> clean_symbol("btc-usd")
        'BTC'
        >>> clean_symbol("^GSPC")
        'GSPC'
        >>> clean_symbol("GC=F")
        'GC'
    """
    # Repeat until stable so whitespace left behind by a removed prefix or
    # suffix is stripped too.
    cleaned = symbol.upper()
    previous = None
    while cleaned != previous:
        previous = cleaned
        cleaned = cleaned.strip().lstrip(INDEX_PREFIX)
        for suffix in VENDOR_SUFFIXES:
            if cleaned.endswith(suffix):
                cleaned = cleaned[:-len(suffix)]
    return cleaned


def has_vendor_decoration(symbol: str) -> bool:
    """True if the symbol carries a recognized vendor suffix or the index prefix."""
    normalized = symbol.strip().upper()
    return normalized.startswith(INDEX_PREFIX) or normalized.endswith(VENDOR_SUFFIXES)


class SymbolClassifier:
    """
    Derives an asset category from a ticker using whitelists and affix heuristics.

    Classification is total: unknown tickers fall back to ``stock``.
    """

    def __init__(
        self,
        fund_symbols: Iterable[str] = symbol_tables.FUND_SYMBOLS,
        forex_prefixes: Iterable[str] = symbol_tables.FOREX_PREFIXES,
        crypto_prefixes: Iterable[str] = symbol_tables.CRYPTO_PREFIXES,
        commodity_prefixes: Iterable[str] = symbol_tables.COMMODITY_PREFIXES,
    ):
        self.fund_symbols = frozenset(s.upper() for s in fund_symbols)
        self.forex_prefixes = tuple(p.upper() for p in forex_prefixes)
        self.crypto_prefixes = tuple(p.upper() for p in crypto_prefixes)
        self.commodity_prefixes = tuple(p.upper() for p in commodity_prefixes)

    def classify(self, raw_symbol: str) -> AssetCategory:
        symbol = (raw_symbol or '').strip().upper()

        # Precedence matters: "USDT-USD" must not be read as forex, "GLD" is a fund
        if symbol in self.fund_symbols:
            return AssetCategory.FUND
        if symbol.endswith('=X') or symbol.startswith(self.forex_prefixes):
            return AssetCategory.FOREX
        if symbol.endswith('-USD') or symbol.startswith(self.crypto_prefixes):
            return AssetCategory.CRYPTO
        if symbol.startswith(INDEX_PREFIX):
            return AssetCategory.INDEX
        if '=F' in symbol or symbol.startswith(self.commodity_prefixes):
            return AssetCategory.COMMODITY
        return AssetCategory.STOCK


class SymbolFormatter:
    """Converts symbols between quote and chart formats and resolves display names."""

    def __init__(
        self,
        chart_overrides: Mapping[AssetCategory, Mapping[str, str]] = symbol_tables.CHART_SYMBOL_OVERRIDES,
        commodity_names: Mapping[str, str] = symbol_tables.COMMODITY_NAMES,
    ):
        self.chart_overrides = chart_overrides
        self.commodity_names = commodity_names

    def to_quote_format(self, symbol: str, category: AssetCategory) -> str:
        """
        Decorate a symbol the way the quote vendor expects.

        Any existing decoration is stripped first, so the result is the same
        whether a clean or an already-formatted symbol is passed in.

        Examples:
            >>> SymbolFormatter().to_quote_format("GC", AssetCategory.COMMODITY)
            'GC=F'
            >>> SymbolFormatter().to_quote_format("BTC-USD", AssetCategory.CRYPTO)
            'BTC-USD'
        """
        prefix, suffix = _QUOTE_DECORATIONS[AssetCategory(category)]
        return f"{prefix}{clean_symbol(symbol)}{suffix}"

    def to_chart_format(self, quote_symbol: str, category: AssetCategory) -> str:
        category = AssetCategory(category)
        symbol = quote_symbol.strip().upper()

        override = self.chart_overrides.get(category, {}).get(symbol)
        if override:
            return override

        if category == AssetCategory.FOREX:
            return symbol[:-2] if symbol.endswith('=X') else symbol
        if category == AssetCategory.CRYPTO:
            base = symbol[:-4] if symbol.endswith('-USD') else symbol
            return f"BINANCE:{base}USDT"
        return symbol

    def display_name(
        self,
        quote_symbol: str,
        category: AssetCategory,
        vendor_name: Optional[str] = None
    ) -> str:
        """Commodities use the static name table; everything else trusts the vendor."""
        if AssetCategory(category) == AssetCategory.COMMODITY:
            name = self.commodity_names.get(quote_symbol.strip().upper())
            if name:
                return name
        return vendor_name or quote_symbol


default_classifier = SymbolClassifier()
default_formatter = SymbolFormatter()


def classify(raw_symbol: str) -> AssetCategory:
    """Classify a ticker with the default tables."""
    return default_classifier.classify(raw_symbol)


def to_quote_format(symbol: str, category: AssetCategory) -> str:
    """Format a symbol for the quote vendor with the default tables."""
    return default_formatter.to_quote_format(symbol, category)


def to_chart_format(quote_symbol: str, category: AssetCategory) -> str:
    """Format a quote symbol for the charting widget with the default tables."""
    return default_formatter.to_chart_format(quote_symbol, category)


def commodity_name(quote_symbol: str) -> Optional[str]:
    return default_formatter.commodity_names.get(quote_symbol.strip().upper())


def asset_id_for(quote_symbol: str, category: AssetCategory) -> str:
    """
    Default stable id for a new asset row.

    Commodities are keyed by their quote-format symbol; everything else by the
    lowercased clean symbol.
    """
    if AssetCategory(category) == AssetCategory.COMMODITY:
        return quote_symbol.strip().upper()
    return clean_symbol(quote_symbol).lower()


def logo_url(quote_symbol: str) -> str:
    return f"https://storage.googleapis.com/iex/api/logos/{clean_symbol(quote_symbol)}.png"
