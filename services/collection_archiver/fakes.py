"""
In-memory document source and store used by the tests
"""

from __future__ import annotations

import gzip
import io
from datetime import datetime
from typing import Callable, Iterator, Optional

from .days import ONE_DAY, as_utc, truncate_day
from .errors import SourceError


class FakeStreamingResult:
    def __init__(self, docs: list[bytes], fail_after: Optional[int] = None, error: Optional[BaseException] = None):
        self.err: Optional[BaseException] = None
        self.closed = False
        self._docs = docs
        self._fail_after = fail_after
        self._error = error

    def __iter__(self) -> Iterator[bytes]:
        for i, doc in enumerate(self._docs):
            if self._fail_after is not None and i >= self._fail_after:
                self.err = self._error
                return
            yield doc
        if self._fail_after is not None and self._fail_after >= len(self._docs):
            self.err = self._error

    def close(self) -> None:
        self.closed = True


class FakeDocumentSource:
    """Documents kept as (timestamp, bytes) pairs in insertion order"""

    def __init__(self):
        self.docs: list[tuple[datetime, bytes]] = []
        self.results: list[FakeStreamingResult] = []
        self.deleted_days: list[datetime] = []
        self.find_error: Optional[BaseException] = None
        self.find_error_after: Optional[int] = None
        self.delete_error: Optional[BaseException] = None
        self.on_delete: Optional[Callable[[datetime], None]] = None

    def add(self, ts: datetime, doc: str | bytes) -> None:
        if isinstance(doc, str):
            doc = doc.encode("utf-8")
        self.docs.append((as_utc(ts), doc))

    def _in_day(self, ts: datetime, day: datetime) -> bool:
        start = truncate_day(day)
        return start <= ts < start + ONE_DAY

    def count_on(self, day: datetime) -> int:
        return sum(1 for ts, _ in self.docs if self._in_day(ts, day))

    def find_from_day(self, day: datetime) -> FakeStreamingResult:
        docs = [doc for ts, doc in self.docs if self._in_day(ts, day)]
        result = FakeStreamingResult(docs, fail_after=self.find_error_after, error=self.find_error)
        self.results.append(result)
        return result

    def delete_from_day(self, day: datetime) -> int:
        if self.delete_error is not None:
            raise self.delete_error
        before = len(self.docs)
        self.docs = [(ts, doc) for ts, doc in self.docs if not self._in_day(ts, day)]
        self.deleted_days.append(day)
        if self.on_delete is not None:
            self.on_delete(day)
        return before - len(self.docs)

    def earliest_timestamp(self) -> datetime:
        if not self.docs:
            raise SourceError("no documents found")
        return min(ts for ts, _ in self.docs)


class MemoryFile(io.BytesIO):
    def __init__(self, store: "MemoryStore", path: str):
        super().__init__()
        self._store = store
        self._path = path

    def write(self, data) -> int:
        if self._store.write_error is not None:
            raise self._store.write_error
        return super().write(data)

    def close(self) -> None:
        if self.closed:
            return
        data = self.getvalue()
        super().close()
        if self._store.close_error is not None:
            raise self._store.close_error
        self._store.files[self._path] = data


class MemoryStore:
    def __init__(self):
        self.files: dict[str, bytes] = {}
        self.created: list[str] = []
        self.write_error: Optional[BaseException] = None
        self.close_error: Optional[BaseException] = None
        self.exists_error: Optional[BaseException] = None
        self.closed = False

    def create(self, path: str) -> MemoryFile:
        self.created.append(path)
        return MemoryFile(self, path)

    def exists(self, path: str) -> bool:
        if self.exists_error is not None:
            raise self.exists_error
        return path in self.files

    def close(self) -> None:
        self.closed = True

    def read(self, path: str) -> list[bytes]:
        """Decompress an archive file back into its records"""
        payload = gzip.decompress(self.files[path])
        return payload.splitlines()
