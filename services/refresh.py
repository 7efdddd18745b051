"""
Refresh job - fetches the watchlist and reconciles it into the asset store.
Categories are refreshed in sequence, one bulk upsert each, under an overall
wall-clock budget. A run cut short by the budget leaves the categories it
finished updated, along with a bulk write that had already started. The next
scheduled run picks up the rest.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional

from config import ConfigurationError, get_settings
from models import AssetCategory
from models.asset import utcnow
from services.errors import StoreWriteError
from services.market_data import FailedSymbol, QuoteFetcher
from services.reconciler import AssetReconciler, ReconcileSummary
from services.symbol_tables import DEFAULT_WATCHLIST
from services.symbols import (
    SymbolClassifier,
    SymbolFormatter,
    default_classifier,
    default_formatter,
)

logger = logging.getLogger(__name__)


def validate_watchlist(
    watchlist: Mapping[Any, Iterable[str]],
    formatter: SymbolFormatter = default_formatter,
    classifier: SymbolClassifier = default_classifier
) -> Dict[AssetCategory, List[str]]:
    """
    Normalize a category -> symbols watchlist into quote format.

    Raises:
        ConfigurationError: a symbol does not classify into its own category
    """
    normalized: Dict[AssetCategory, List[str]] = {}
    for category, symbols in watchlist.items():
        category = AssetCategory(category)
        formatted = []
        for symbol in symbols:
            quote_symbol = formatter.to_quote_format(symbol, category)
            derived = classifier.classify(quote_symbol)
            if derived != category:
                raise ConfigurationError(
                    f"Watchlist symbol {symbol} is listed as {category.value} "
                    f"but classifies as {derived.value}"
                )
            if quote_symbol not in formatted:
                formatted.append(quote_symbol)
        normalized[category] = formatted
    return normalized


@dataclass
class RefreshResult:
    """
    Outcome of one refresh run.

    count is the number of asset rows written. Unpriced quotes that left a
    stored price in place are listed in kept_symbols instead.
    """
    success: bool
    count: int = 0
    failed_symbols: List[FailedSymbol] = field(default_factory=list)
    kept_symbols: List[str] = field(default_factory=list)
    timestamp: datetime = field(default_factory=utcnow)
    timed_out: bool = False
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            'success': self.success,
            'count': self.count,
            'timestamp': self.timestamp.isoformat(),
        }
        if self.failed_symbols:
            data['failedSymbols'] = [f.to_dict() for f in self.failed_symbols]
        if self.kept_symbols:
            data['keptSymbols'] = list(self.kept_symbols)
        if self.timed_out:
            data['timedOut'] = True
        if self.error:
            data['error'] = self.error
        return data


class RefreshJob:
    """Refreshes every watchlist symbol into the asset store."""

    def __init__(
        self,
        fetcher: QuoteFetcher,
        reconciler: Optional[AssetReconciler] = None,
        watchlist: Optional[Mapping[Any, Iterable[str]]] = None,
        budget_seconds: float = 60.0
    ):
        self.fetcher = fetcher
        self.reconciler = reconciler or AssetReconciler()
        self.watchlist = validate_watchlist(
            watchlist if watchlist is not None else DEFAULT_WATCHLIST,
            formatter=fetcher.formatter
        )
        self.budget_seconds = budget_seconds
        self._pending_reconcile: Optional[asyncio.Future] = None

    @classmethod
    def from_settings(cls, fetcher: Optional[QuoteFetcher] = None, **kwargs) -> "RefreshJob":
        settings = get_settings()
        return cls(
            fetcher=fetcher or QuoteFetcher.from_settings(),
            budget_seconds=settings.refresh_budget_seconds,
            **kwargs
        )

    @property
    def symbol_count(self) -> int:
        return sum(len(symbols) for symbols in self.watchlist.values())

    async def _refresh_categories(self, result: RefreshResult) -> None:
        for category, symbols in self.watchlist.items():
            if not symbols:
                continue
            logger.info(f"Processing category: {category.segment} ({len(symbols)} symbols)")

            batch = await self.fetcher.fetch_many((symbol, category) for symbol in symbols)
            result.failed_symbols.extend(batch.failed_symbols)
            if not batch.quotes:
                continue

            # A write already running in its thread outlives a budget
            # timeout; run() waits for it and counts it.
            self._pending_reconcile = asyncio.ensure_future(
                asyncio.to_thread(self.reconciler.reconcile, batch.quotes)
            )
            summary = await asyncio.shield(self._pending_reconcile)
            self._pending_reconcile = None
            self._apply(summary, result)

    @staticmethod
    def _apply(summary: ReconcileSummary, result: RefreshResult) -> None:
        result.count += summary.count
        result.kept_symbols.extend(summary.kept_symbols)
        result.failed_symbols.extend(summary.rejected)

    async def _finish_pending_reconcile(self, result: RefreshResult) -> None:
        """Wait for a reconcile the budget cut off and count what it wrote."""
        pending, self._pending_reconcile = self._pending_reconcile, None
        if pending is None:
            return
        try:
            summary = await pending
        except StoreWriteError as e:
            logger.error(f"Reconcile in flight at the cutoff failed: {e}")
            return
        self._apply(summary, result)

    async def run(self) -> RefreshResult:
        """
        Run one refresh cycle.

        Never raises for upstream or store failures; they are reported in the
        result so the scheduler keeps running.
        """
        result = RefreshResult(success=False)
        self._pending_reconcile = None
        logger.info(f"Starting asset refresh of {self.symbol_count} symbols (budget {self.budget_seconds}s)")

        try:
            await asyncio.wait_for(self._refresh_categories(result), timeout=self.budget_seconds)
        except asyncio.TimeoutError:
            result.timed_out = True
            result.error = f"Refresh exceeded its {self.budget_seconds}s budget"
            await self._finish_pending_reconcile(result)
            logger.error(f"{result.error}; {result.count} assets were updated before the cutoff")
        except StoreWriteError as e:
            result.error = f"Failed to update assets: {e}"
            logger.error(result.error)
        else:
            if result.count == 0 and not result.kept_symbols and self.symbol_count > 0:
                result.error = "Failed to fetch any asset data"
                logger.error(result.error)
            else:
                result.success = True

        if result.failed_symbols:
            logger.warning(
                f"Failed to refresh {len(result.failed_symbols)} symbols: "
                f"{', '.join(f.symbol for f in result.failed_symbols)}"
            )
        logger.info(f"Refresh finished: success={result.success}, count={result.count}")
        return result
