"""
Asset store reconciler.
Merges freshly fetched quotes into the asset table with one bulk upsert,
reusing existing ids so a change of symbol format updates the old row
instead of creating a second one.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Tuple

from sqlmodel import Session

from models import Asset, AssetCategory
from models.asset import utcnow
from repositories.asset_repository import AssetRepository
from services.market_data import FailedSymbol, QuoteResult
from services.symbols import (
    SymbolClassifier,
    asset_id_for,
    clean_symbol,
    default_classifier,
    has_vendor_decoration,
    logo_url,
)

logger = logging.getLogger(__name__)


@dataclass
class ReconcileSummary:
    """
    Outcome of one reconcile call.

    count is the number of rows inserted or updated. An unpriced quote for a
    row that already holds a price leaves that row untouched; it is listed in
    kept_symbols and not counted. unpriced_symbols lists every quote that
    arrived without a price, counted or not.
    """
    count: int = 0
    unpriced_symbols: List[str] = field(default_factory=list)
    kept_symbols: List[str] = field(default_factory=list)
    rejected: List[FailedSymbol] = field(default_factory=list)
    timestamp: datetime = field(default_factory=utcnow)


def build_id_maps(rows: Iterable[Asset]) -> Tuple[Dict[str, str], Dict[str, str]]:
    """
    Index existing rows by exact symbol and by clean symbol.

    When several rows share a clean symbol, the first decorated one wins,
    then the first one seen.
    """
    by_symbol: Dict[str, str] = {}
    by_clean: Dict[str, str] = {}
    decorated: Dict[str, bool] = {}
    for row in rows:
        symbol = row.symbol.upper()
        by_symbol[symbol] = row.id
        key = clean_symbol(symbol)
        is_decorated = has_vendor_decoration(symbol)
        if key not in by_clean or (is_decorated and not decorated[key]):
            by_clean[key] = row.id
            decorated[key] = is_decorated
    return by_symbol, by_clean


def resolve_asset_id(
    quote: QuoteResult,
    by_symbol: Dict[str, str],
    by_clean: Dict[str, str]
) -> str:
    """Pick the stable id for a quote's row."""
    symbol = quote.symbol.upper()
    if symbol in by_symbol:
        return by_symbol[symbol]
    return by_clean.get(clean_symbol(symbol), asset_id_for(symbol, quote.category))


def quote_to_row(quote: QuoteResult, asset_id: str) -> Dict[str, Any]:
    """
    Flatten a quote into the column dict the bulk upsert expects.

    last_updated is the quote's capture time, so re-applying a quote is a no-op.
    """
    return {
        'id': asset_id,
        'symbol': quote.symbol.upper(),
        'name': quote.name,
        'category': AssetCategory(quote.category).value,
        'price': quote.price,
        'change': quote.change,
        'change_percent': quote.change_percent,
        'volume': quote.volume,
        'day_high': quote.day_high,
        'day_low': quote.day_low,
        'open_price': quote.open_price,
        'previous_close': quote.previous_close,
        'fifty_two_week_high': quote.fifty_two_week_high,
        'fifty_two_week_low': quote.fifty_two_week_low,
        'average_volume': quote.average_volume,
        'market_cap': quote.market_cap,
        'image': logo_url(quote.symbol),
        'last_updated': quote.fetched_at,
    }


class AssetReconciler:
    """
    Applies quotes to the asset store.

    Conflicts resolve on id. Market fields, name, symbol and category are
    overwritten, except that a zero price never replaces a nonzero one.
    Applying the same quotes twice leaves the store unchanged.
    """

    def __init__(
        self,
        session: Optional[Session] = None,
        classifier: SymbolClassifier = default_classifier
    ):
        self.session = session
        self.classifier = classifier

    def reconcile(self, quotes: Iterable[QuoteResult]) -> ReconcileSummary:
        """
        Upsert quotes into the store.

        Raises:
            StoreWriteError: the bulk upsert was rejected
        """
        summary = ReconcileSummary()
        accepted: List[QuoteResult] = []

        for quote in quotes:
            derived = self.classifier.classify(quote.symbol)
            if derived != quote.category:
                reason = f"symbol classifies as {derived.value}, not {AssetCategory(quote.category).value}"
                logger.warning(f"Not storing {quote.symbol}: {reason}")
                summary.rejected.append(FailedSymbol(symbol=quote.symbol, reason=reason))
                continue
            accepted.append(quote)

        if not accepted:
            return summary

        existing = AssetRepository.get_all(session=self.session)
        by_symbol, by_clean = build_id_maps(existing)
        stored_prices = {row.id: row.price for row in existing}

        rows: Dict[str, Dict[str, Any]] = {}
        for quote in accepted:
            asset_id = resolve_asset_id(quote, by_symbol, by_clean)
            if asset_id in rows:
                logger.warning(f"{quote.symbol} maps to id {asset_id} already in this batch; keeping the latest")
            rows[asset_id] = quote_to_row(quote, asset_id)

        for row in rows.values():
            if row['price'] != 0:
                continue
            summary.unpriced_symbols.append(row['symbol'])
            if stored_prices.get(row['id'], 0) != 0:
                summary.kept_symbols.append(row['symbol'])

        submitted = AssetRepository.upsert_many(list(rows.values()), session=self.session)
        summary.count = submitted - len(summary.kept_symbols)
        logger.info(
            f"Reconciled {summary.count} assets"
            + (f" ({len(summary.unpriced_symbols)} unpriced)" if summary.unpriced_symbols else "")
            + (f"; kept stored prices for {', '.join(summary.kept_symbols)}" if summary.kept_symbols else "")
        )
        return summary
