"""
Background asset refresh using APScheduler.
Runs the refresh job on a fixed interval so the asset table stays fresh
without an external cron caller. Also offers one-shot refresh and
deduplication modes for maintenance.
"""

import asyncio
import logging
import sys
import time

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from config import get_settings
from db_engine import init_db
from services.deduplicator import AssetDeduplicator
from services.refresh import RefreshJob, RefreshResult

logger = logging.getLogger(__name__)


def run_refresh() -> RefreshResult:
    """
    Main job function: one full refresh cycle.
    Called by the scheduler at the configured interval.
    """
    logger.info("=" * 60)
    logger.info("Starting scheduled asset refresh...")
    logger.info("=" * 60)

    result = asyncio.run(RefreshJob.from_settings().run())

    logger.info("=" * 60)
    logger.info(
        f"Asset refresh complete. success={result.success}, count={result.count}, "
        f"failed={len(result.failed_symbols)}"
    )
    logger.info("=" * 60)
    return result


def run_dedupe(dry_run: bool = False) -> int:
    """Run the deduplicator once. Returns the number of ids deleted or queued."""
    plan = AssetDeduplicator().run(dry_run=dry_run)
    if dry_run:
        print(f"Would delete {len(plan.delete_ids)} duplicate assets: {', '.join(plan.delete_ids) or '-'}")
        return len(plan.delete_ids)
    print(f"Deleted {plan.deleted_count} duplicate assets, {len(plan.keep)} remain")
    return plan.deleted_count


def start_refresh_scheduler() -> BackgroundScheduler:
    """
    Start the background scheduler for asset refreshes.
    Runs every refresh_interval_minutes; overlapping runs are skipped.
    """
    settings = get_settings()
    scheduler = BackgroundScheduler()

    scheduler.add_job(
        run_refresh,
        trigger=IntervalTrigger(minutes=settings.refresh_interval_minutes),
        id='asset_refresh',
        name='Asset Refresh',
        max_instances=1,
        coalesce=True,
        replace_existing=True
    )

    logger.info("Running initial asset refresh on startup...")
    run_refresh()

    scheduler.start()
    logger.info(f"Refresh scheduler started. Running every {settings.refresh_interval_minutes} minutes.")

    return scheduler


def main(argv=None) -> int:
    argv = sys.argv[1:] if argv is None else argv
    settings = get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    init_db()

    if "--once" in argv:
        result = run_refresh()
        return 0 if result.success else 1

    if "--dedupe" in argv:
        run_dedupe(dry_run="--dry-run" in argv)
        return 0

    scheduler = None
    try:
        scheduler = start_refresh_scheduler()
        print("\n" + "=" * 60)
        print("Asset refresh scheduler is running...")
        print("Press Ctrl+C to stop.")
        print("=" * 60 + "\n")

        while True:
            time.sleep(1)

    except (KeyboardInterrupt, SystemExit):
        logger.info("Shutting down refresh scheduler...")
        if scheduler is not None:
            scheduler.shutdown()
        logger.info("Refresh scheduler stopped.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
