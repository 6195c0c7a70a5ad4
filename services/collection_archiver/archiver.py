"""
Main archiver service logic
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timedelta, timezone
from typing import Optional

from .config import ArchiverConfig
from .days import as_utc, iter_days
from .db import DocumentDatabase, DocumentSource
from .errors import ArchiverError, DeletionError, RunCancelled, SourceError
from .storage import Store, store_from_url
from .writer import ArchiveWriter

logger = logging.getLogger(__name__)


class Archiver:
    """Moves documents older than a cutoff into daily archive files"""

    def __init__(
        self,
        source: DocumentSource,
        store: Store,
        skip_delete: bool = True,
        ignore_existing: bool = False,
        delay: timedelta = timedelta(seconds=30),
    ):
        self.source = source
        self.store = store
        self.skip_delete = skip_delete
        self.ignore_existing = ignore_existing
        self.delay = delay
        self.writer = ArchiveWriter(source, store, ignore_existing=ignore_existing)

    def run(self, cutoff: datetime, stop_event: Optional[threading.Event] = None) -> dict[str, int]:
        """
        Archive (and optionally delete) one day at a time until the cutoff

        Args:
            cutoff: Exclusive upper bound; the day it falls on is not archived
            stop_event: Checked between days; once set the run stops

        Returns:
            Dictionary with statistics:
            - days_archived: Days fully processed, including skipped ones
            - days_skipped: Days whose archive file already existed
            - documents_archived: Documents written to archive files
            - documents_deleted: Documents removed from the source

        Raises:
            ArchiverError: The first failure, naming its phase and day
            RunCancelled: stop_event was set between two days
        """
        stats = {
            "days_archived": 0,
            "days_skipped": 0,
            "documents_archived": 0,
            "documents_deleted": 0,
        }
        stop_event = stop_event or threading.Event()

        try:
            earliest = self.source.earliest_timestamp()
        except SourceError:
            raise
        except Exception as e:
            raise SourceError(f"failed to get earliest timestamp: {e}") from e

        cutoff = as_utc(cutoff)
        logger.info(f"Archiver running (cutoff={cutoff.isoformat()}, earliest={as_utc(earliest).isoformat()})")

        for day in iter_days(earliest, cutoff):
            logger.info(f"Archiving {day:%Y-%m-%d}")

            self._archive_and_delete(day, stats)
            stats["days_archived"] += 1

            if stop_event.wait(self.delay.total_seconds()):
                logger.warning(f"Stop requested, halting after {day:%Y-%m-%d}")
                raise RunCancelled(stats)

        logger.info(f"Target reached, {stats['days_archived']} days archived")
        return stats

    def _archive_and_delete(self, day: datetime, stats: dict[str, int]) -> None:
        written = self.writer.write_day(day)
        if written is None:
            stats["days_skipped"] += 1
        else:
            stats["documents_archived"] += written

        if self.skip_delete:
            return

        try:
            deleted = self.source.delete_from_day(day)
        except ArchiverError:
            raise
        except Exception as e:
            raise DeletionError(f"failed to delete documents: {e}", day) from e

        stats["documents_deleted"] += deleted
        if written is not None and deleted != written:
            logger.warning(f"Deleted {deleted} documents for {day:%Y-%m-%d} but archived {written}")
        else:
            logger.info(f"Documents deleted for {day:%Y-%m-%d}: {deleted}")


def run_archiver(
    cfg: Optional[ArchiverConfig] = None,
    stop_event: Optional[threading.Event] = None,
) -> dict[str, int]:
    """
    Run the archiver service

    Args:
        cfg: Configuration object (loads from env if not provided)
        stop_event: Set it to stop the run at the next day boundary

    Returns:
        Statistics dictionary
    """
    from .config import load

    if cfg is None:
        cfg = load()

    cutoff = datetime.now(timezone.utc) - cfg.retention
    store = store_from_url(cfg.storage_url, blob_token=cfg.blob_token)
    try:
        with DocumentDatabase(cfg) as db:
            archiver = Archiver(
                db,
                store,
                skip_delete=not cfg.delete,
                ignore_existing=cfg.ignore_existing,
                delay=cfg.delay,
            )
            return archiver.run(cutoff, stop_event)
    finally:
        store.close()
