"""
Database operations for the archiver service

The archived table is read through a server-side cursor so a day of records
is never held in memory at once.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Iterator, Optional, Protocol

import psycopg2
import psycopg2.extras
from psycopg2 import sql

from .config import ArchiverConfig
from .days import ONE_DAY, as_utc, truncate_day
from .errors import SourceError, join_errors

logger = logging.getLogger(__name__)

FIND_SQL = sql.SQL(
    """
    SELECT row_to_json(t)::text AS doc
    FROM {table} AS t
    WHERE {column} >= %s AND {column} < %s
    ORDER BY {column}
    """
)

DELETE_SQL = sql.SQL("DELETE FROM {table} WHERE {column} >= %s AND {column} < %s")

EARLIEST_SQL = sql.SQL("SELECT MIN({column}) AS earliest FROM {table}")


class StreamingResult(Protocol):
    """
    Lazy sequence of serialized records for one day

    Iteration never raises for a failed fetch; the failure is kept in `err`,
    which has to be checked once the sequence is drained or abandoned.
    """

    err: Optional[BaseException]

    def __iter__(self) -> Iterator[bytes]: ...

    def close(self) -> None: ...


class DocumentSource(Protocol):
    def find_from_day(self, day: datetime) -> StreamingResult: ...

    def delete_from_day(self, day: datetime) -> int: ...

    def earliest_timestamp(self) -> datetime: ...


class CursorStreamingResult:
    """Streams rows of a query through a named (server-side) cursor"""

    def __init__(self, conn, query: sql.Composable, params: tuple, name: str, fetch_size: int = 1000):
        self.err: Optional[BaseException] = None
        self._conn = conn
        self._query = query
        self._params = params
        self._name = name
        self._fetch_size = fetch_size
        self._records: Optional[Iterator[bytes]] = None

    def __iter__(self) -> Iterator[bytes]:
        if self._records is None:
            self._records = self._stream()
        return self._records

    def _stream(self) -> Iterator[bytes]:
        cur = None
        try:
            cur = self._conn.cursor(name=self._name)
            cur.itersize = self._fetch_size
            cur.execute(self._query, self._params)
            for row in cur:
                doc = row["doc"]
                yield doc.encode("utf-8") if isinstance(doc, str) else bytes(doc)
        except psycopg2.Error as e:
            self.err = join_errors(self.err, e)
        finally:
            self._release(cur)

    def _release(self, cur) -> None:
        # Ends the read transaction so the connection is not left idle in it
        try:
            if cur is not None:
                cur.close()
            self._conn.rollback()
        except psycopg2.Error as e:
            self.err = join_errors(self.err, e)

    def close(self) -> None:
        if self._records is not None:
            self._records.close()


class DocumentDatabase:
    """PostgreSQL table acting as the source of documents to archive"""

    def __init__(self, cfg: ArchiverConfig):
        self.cfg = cfg
        self.conn: Optional[psycopg2.extensions.connection] = None
        self._table = sql.Identifier(*cfg.table.split("."))
        self._column = sql.Identifier(cfg.timestamp_column)

    def connect(self) -> None:
        """Establish database connection"""
        if self.conn is None or self.conn.closed:
            self.conn = psycopg2.connect(
                self.cfg.database_url,
                cursor_factory=psycopg2.extras.RealDictCursor,
                options="-c timezone=UTC",
            )
            logger.info("Connected to database")

    def close(self) -> None:
        """Close database connection"""
        if self.conn and not self.conn.closed:
            self.conn.close()
            logger.info("Closed database connection")

    def __enter__(self):
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def _format(self, query: sql.SQL) -> sql.Composed:
        return query.format(table=self._table, column=self._column)

    def find_from_day(self, day: datetime) -> StreamingResult:
        """
        Stream every document whose timestamp falls on the given day

        Args:
            day: Any timestamp on the day, truncated to UTC midnight

        Returns:
            Records serialized as JSON text, ordered by timestamp
        """
        start = truncate_day(day)
        return CursorStreamingResult(
            self.conn,
            self._format(FIND_SQL),
            (start, start + ONE_DAY),
            name=f"archive_{start:%Y%m%d}",
            fetch_size=self.cfg.fetch_size,
        )

    def delete_from_day(self, day: datetime) -> int:
        """
        Delete every document whose timestamp falls on the given day

        Returns:
            Number of rows deleted
        """
        start = truncate_day(day)
        try:
            with self.conn.cursor() as cur:
                cur.execute(self._format(DELETE_SQL), (start, start + ONE_DAY))
                deleted = cur.rowcount
            self.conn.commit()
        except psycopg2.Error:
            self.conn.rollback()
            raise
        return deleted

    def earliest_timestamp(self) -> datetime:
        """Timestamp of the oldest document in the table"""
        with self.conn.cursor() as cur:
            cur.execute(self._format(EARLIEST_SQL))
            result = cur.fetchone()
        if result is None or result["earliest"] is None:
            raise SourceError(f"no documents found in {self.cfg.table}")
        return as_utc(result["earliest"])
