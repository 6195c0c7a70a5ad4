"""
Day windows - which calendar days an archive run covers
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Iterator

ONE_DAY = timedelta(days=1)
ARCHIVE_EXTENSION = ".json.gz"


def as_utc(ts: datetime) -> datetime:
    """Naive timestamps are taken to be UTC already"""
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc)


def truncate_day(ts: datetime) -> datetime:
    """Return the UTC midnight starting the day that contains ts"""
    return as_utc(ts).replace(hour=0, minute=0, second=0, microsecond=0)


def iter_days(earliest: datetime, cutoff: datetime) -> Iterator[datetime]:
    """
    Yield every day from the one holding `earliest` up to the cutoff

    Args:
        earliest: Timestamp of the oldest record
        cutoff: Exclusive upper bound, truncated to its day

    Yields:
        UTC midnights in increasing order
    """
    day = truncate_day(earliest)
    end = truncate_day(cutoff)
    while day < end:
        yield day
        day += ONE_DAY


def archive_path(day: datetime) -> str:
    """Archive file path for a day, e.g. 2024/11/01.json.gz"""
    day = as_utc(day)
    return f"{day:%Y}/{day:%m}/{day:%d}{ARCHIVE_EXTENSION}"
