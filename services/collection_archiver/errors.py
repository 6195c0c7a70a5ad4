"""
Error types raised by the archiver
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional


class ArchiverError(Exception):
    """Base class for archiver failures"""

    phase = "archive"

    def __init__(self, message: str, day: Optional[datetime] = None):
        if day is not None:
            message = f"{self.phase} error on {day:%Y-%m-%d}: {message}"
        super().__init__(message)
        self.day = day


class ConfigError(ArchiverError):
    phase = "config"


class SourceError(ArchiverError):
    phase = "source"


class ExtractionError(SourceError):
    phase = "extraction"


class DeletionError(SourceError):
    phase = "deletion"


class StorageError(ArchiverError):
    phase = "storage"


class StreamError(ArchiverError):
    phase = "writing"


class ArchiveExistsError(ArchiverError):
    phase = "conflict"


class JoinedError(ArchiverError):
    """Several failures that happened while finishing the same operation"""

    phase = "joined"

    def __init__(self, errors: list[BaseException], day: Optional[datetime] = None):
        self.errors = list(errors)
        Exception.__init__(self, "; ".join(str(e) for e in self.errors))
        self.day = day


class RunCancelled(Exception):
    """The run was stopped between two days"""

    def __init__(self, stats: dict[str, int]):
        super().__init__(f"archive run cancelled after {stats.get('days_archived', 0)} days")
        self.stats = stats


def join_errors(*errors: Optional[BaseException]) -> Optional[BaseException]:
    """
    Combine errors without dropping any of them

    Returns:
        None when nothing failed, the error itself when only one did,
        otherwise a JoinedError holding all of them
    """
    present = [e for e in errors if e is not None]
    if not present:
        return None
    if len(present) == 1:
        return present[0]
    return JoinedError(present)
