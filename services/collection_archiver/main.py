"""
Main entry point for the collection archiver service
"""

import logging
import signal
import sys
import threading
from datetime import datetime, timezone

from .archiver import run_archiver
from .config import load
from .errors import ConfigError, RunCancelled

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[
        logging.StreamHandler(sys.stdout)
    ]
)

logger = logging.getLogger(__name__)

EXIT_CANCELLED = 130


def _install_signal_handlers(stop_event: threading.Event) -> None:
    def handle_signal(signum, frame):
        logger.info(f"Received signal {signum}, stopping after the current day")
        stop_event.set()

    for sig in (signal.SIGTERM, signal.SIGINT):
        signal.signal(sig, handle_signal)


def main():
    """Main entry point"""
    logger.info("=" * 80)
    logger.info("Starting Collection Archiver Service")
    logger.info(f"Run time: {datetime.now(timezone.utc).isoformat()}")
    logger.info("=" * 80)

    try:
        cfg = load()
    except ConfigError as e:
        logger.error(f"Invalid configuration: {e}")
        return 1

    logger.info("Configuration:")
    logger.info(f"  Table: {cfg.table} (timestamp column: {cfg.timestamp_column})")
    logger.info(f"  Storage: {cfg.storage_url}")
    logger.info(f"  Retention: {cfg.retention.days} days")
    logger.info(f"  Delay between days: {cfg.delay.total_seconds():g}s")
    logger.info(f"  Delete archived documents: {cfg.delete}")
    logger.info(f"  Ignore existing archives: {cfg.ignore_existing}")

    if cfg.ignore_existing:
        logger.warning("Existing archive files are trusted to be complete - their documents will be deleted without re-checking")

    stop_event = threading.Event()
    _install_signal_handlers(stop_event)

    try:
        stats = run_archiver(cfg, stop_event)
    except RunCancelled as e:
        logger.warning(f"Archiver service cancelled: {e}")
        _log_stats(e.stats)
        return EXIT_CANCELLED
    except Exception as e:
        logger.error(f"Archiver service failed: {e}", exc_info=True)
        return 1

    logger.info("=" * 80)
    logger.info("Archiver Service Complete")
    _log_stats(stats)
    logger.info("=" * 80)
    return 0


def _log_stats(stats: dict[str, int]) -> None:
    logger.info("Statistics:")
    logger.info(f"  Days archived: {stats['days_archived']}")
    logger.info(f"  Days skipped (archive already present): {stats['days_skipped']}")
    logger.info(f"  Documents archived: {stats['documents_archived']}")
    logger.info(f"  Documents deleted: {stats['documents_deleted']}")


if __name__ == "__main__":
    sys.exit(main())
