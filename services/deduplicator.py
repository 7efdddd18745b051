"""
Deduplicator - maintenance pass that collapses rows representing the same
instrument under different symbol spellings (e.g. "BTC" and "BTC-USD").

Planning is pure and deletion is a separate, explicit step, so a dry run
can preview exactly what would be removed.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from sqlmodel import Session

from models import Asset
from repositories.asset_repository import AssetRepository
from services.symbols import clean_symbol, has_vendor_decoration

logger = logging.getLogger(__name__)


@dataclass
class DedupPlan:
    """Rows to keep and ids queued for deletion."""
    keep: List[Asset] = field(default_factory=list)
    delete_ids: List[str] = field(default_factory=list)
    deleted_count: int = 0
    dry_run: bool = True


def plan_deduplication(rows: Iterable[Asset]) -> DedupPlan:
    """
    Group rows by clean symbol and choose one survivor per group.

    The first row carrying a vendor decoration (=F, =X, -USD or a leading ^)
    wins. If none in the group is decorated, the first row seen wins. That
    last tie-break is arbitrary but stable.
    """
    groups: Dict[str, List[Asset]] = {}
    for row in rows:
        groups.setdefault(clean_symbol(row.symbol), []).append(row)

    plan = DedupPlan()
    for key, group in groups.items():
        if len(group) == 1:
            plan.keep.append(group[0])
            continue

        survivor = next((row for row in group if has_vendor_decoration(row.symbol)), group[0])
        plan.keep.append(survivor)
        duplicates = [row.id for row in group if row is not survivor]
        plan.delete_ids.extend(duplicates)
        logger.info(f"Duplicate group {key}: keeping {survivor.symbol}, queued {duplicates}")

    return plan


class AssetDeduplicator:
    """Reads the asset table, plans deduplication and optionally applies it."""

    def __init__(self, session: Optional[Session] = None):
        self.session = session

    def run(self, dry_run: bool = False) -> DedupPlan:
        """
        Deduplicate the asset table.

        Args:
            dry_run: Only plan; delete nothing

        Returns:
            DedupPlan describing kept rows and queued ids

        Raises:
            StoreWriteError: the bulk delete was rejected
        """
        rows = AssetRepository.get_all(session=self.session)
        plan = plan_deduplication(rows)
        plan.dry_run = dry_run

        if not plan.delete_ids:
            logger.info("No duplicate assets found")
            return plan

        if dry_run:
            logger.info(f"Dry run: would delete {len(plan.delete_ids)} duplicate assets")
            return plan

        plan.deleted_count = AssetRepository.delete_by_ids(plan.delete_ids, session=self.session)
        logger.info(f"Deleted {plan.deleted_count} duplicate assets")
        return plan
