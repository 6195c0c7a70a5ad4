"""
Archive writer - streams one day of records into a gzipped archive file
"""

from __future__ import annotations

import gzip
import logging
import zlib
from contextlib import closing
from datetime import datetime
from typing import Optional

from .days import archive_path
from .db import DocumentSource
from .errors import (
    ArchiveExistsError,
    ExtractionError,
    StorageError,
    StreamError,
    join_errors,
)
from .storage import Store

logger = logging.getLogger(__name__)

RECORD_SEPARATOR = b"\n"


class ArchiveWriter:
    """Writes a day of documents to the store, one line per document"""

    def __init__(self, source: DocumentSource, store: Store, ignore_existing: bool = False):
        self.source = source
        self.store = store
        self.ignore_existing = ignore_existing

    def write_day(self, day: datetime) -> Optional[int]:
        """
        Archive every document of a day

        The store overwrites on create, so an existing file is treated as a
        conflict unless `ignore_existing` is set, in which case the file is
        trusted to hold the full day and nothing is written.

        Args:
            day: UTC midnight of the day to archive

        Returns:
            Number of documents written, or None when the write was skipped
        """
        path = archive_path(day)

        try:
            exists = self.store.exists(path)
        except Exception as e:
            raise StorageError(f"failed to check if {path} exists: {e}", day) from e

        if exists:
            logger.error(f"Target file already exists: {path}")
            if self.ignore_existing:
                logger.warning(f"Skipping documents write for {day:%Y-%m-%d}, {path} assumed complete")
                return None
            raise ArchiveExistsError(f"target file exists: {path}", day)

        logger.info(f"Writing to file {path}")

        try:
            sink = self.store.create(path)
        except Exception as e:
            raise StorageError(f"failed to create {path}: {e}", day) from e

        written, err = self._copy(day, sink)
        if err is not None:
            if err.day is None:
                err.day = day
            raise err

        logger.info(f"Documents written to {path}: {written}")
        return written

    def _copy(self, day: datetime, sink) -> tuple[int, Optional[BaseException]]:
        """Copy the day's records through gzip into the sink, then close both"""
        written = 0
        err: Optional[BaseException] = None
        result = None
        gz = None

        try:
            try:
                gz = gzip.GzipFile(filename="", mode="wb", fileobj=sink, compresslevel=zlib.Z_DEFAULT_COMPRESSION)
                try:
                    result = self.source.find_from_day(day)
                except Exception as e:
                    raise ExtractionError(f"failed to query documents: {e}", day) from e
                with closing(result):
                    for record in result:
                        gz.write(record)
                        gz.write(RECORD_SEPARATOR)
                        written += 1
            except ExtractionError as e:
                err = e
            except Exception as e:
                err = StreamError(f"failed to write documents: {e}", day)
                err.__cause__ = e
            finally:
                # Closing gzip flushes the trailer but leaves the sink open
                if gz is not None:
                    try:
                        gz.close()
                    except Exception as e:
                        close_err = StreamError(f"failed to close gzip writer: {e}", day)
                        close_err.__cause__ = e
                        err = join_errors(err, close_err)
        finally:
            try:
                sink.close()
            except Exception as e:
                close_err = StorageError(f"failed to close file: {e}", day)
                close_err.__cause__ = e
                err = join_errors(err, close_err)

        if result is not None and result.err is not None:
            extraction_err = ExtractionError(f"failed to read documents: {result.err}", day)
            extraction_err.__cause__ = result.err
            err = join_errors(err, extraction_err)

        return written, err
