"""
dbquery/query.py
----------------
Runs parameterized SQL on one connection handle and shapes the result.

Driver and parameter-binding errors raised while executing or fetching are logged and turned
into a failed QueryResult. A closed handle is a connection problem and
raises DBConnectionError instead.
"""

import time
from typing import Any, Callable, Mapping, Optional

import psycopg2
import psycopg2.extensions
from psycopg2.extras import RealDictCursor

from dbquery.connection import ConnectionHandle, mask_dsn
from dbquery.errors import DBConnectionError
from dbquery.results import QueryResult
from utils.logger import get_logger

logger = get_logger(__name__)

Params = Optional[Mapping[str, Any]]

# psycopg2 binds %(name)s placeholders client-side; a missing key or a stray
# "%" surfaces as a plain Python exception rather than psycopg2.Error.
_QUERY_ERRORS = (psycopg2.Error, KeyError, IndexError, TypeError, ValueError)

# Positional rows for column/scalar access, whatever the session default is.
_TUPLE_CURSOR = psycopg2.extensions.cursor


class QueryExecutor:
    """
    Executes statements against the session of a ConnectionHandle.

    Placeholders use psycopg2's named style, e.g. ``%(user_id)s``, and are
    bound by the driver. Not safe for concurrent use; callers sharing an
    executor across threads must serialize access.
    """

    def __init__(self, connection: ConnectionHandle):
        self._connection = connection
        self._last_query_time: Optional[float] = None

    @property
    def connection(self) -> ConnectionHandle:
        return self._connection

    @connection.setter
    def connection(self, connection: ConnectionHandle) -> None:
        self._connection = connection

    @property
    def last_query_time(self) -> Optional[float]:
        """Seconds taken by the most recent query, None before the first one."""
        return self._last_query_time

    def get_last_query_time(self) -> Optional[float]:
        return self._last_query_time

    # ── Execution ─────────────────────────────────────────

    def query(self, sql: str, params: Params = None) -> QueryResult:
        """
        Execute ``sql`` and return the open cursor as ``data``.

        Rows come back in the session's default shape: the cursor factory
        set through ``Attribute.CURSOR_FACTORY``, else dict rows. The caller
        owns the cursor and should close it.

        Raises:
            DBConnectionError: If the bound handle is closed.
        """
        default = getattr(self._connection.session, "cursor_factory", None)
        return self._run(sql, params, default or RealDictCursor)

    def _run(self, sql: str, params: Params, cursor_factory) -> QueryResult:
        if self._connection.closed:
            raise DBConnectionError(
                f"Connection to {mask_dsn(self._connection.dsn)} is closed"
            )

        cur = None
        start = time.perf_counter()
        try:
            cur = self._connection.session.cursor(cursor_factory=cursor_factory)
            cur.execute(sql, params)
        except _QUERY_ERRORS as e:
            elapsed = time.perf_counter() - start
            self._last_query_time = elapsed
            if cur is not None:
                cur.close()
            return self._failed(e, sql, elapsed)

        elapsed = time.perf_counter() - start
        self._last_query_time = elapsed
        logger.debug(f"Query ran in {elapsed:.4f}s, rowcount={cur.rowcount}")
        return QueryResult(data=cur, duration_seconds=elapsed, row_count=cur.rowcount)

    def _fetch(self, sql: str, params: Params, cursor_factory, shape: Callable[[Any], Any]) -> QueryResult:
        """Run the query, apply ``shape`` to its cursor, then close the cursor."""
        result = self._run(sql, params, cursor_factory)
        if not result.ok:
            return result

        cur = result.data
        try:
            result.data = shape(cur)
        except _QUERY_ERRORS as e:
            return self._failed(e, sql, result.duration_seconds)
        finally:
            cur.close()
        return result

    @staticmethod
    def _failed(error: Exception, sql: str, elapsed: Optional[float]) -> QueryResult:
        message = str(error).strip()
        if isinstance(error, KeyError):
            message = f"No value bound for placeholder {message}"
        logger.error(f"Query failed: {message}")
        logger.error(f"Failed SQL (first 200 chars): {sql[:200]}")
        return QueryResult.failure(message, elapsed)

    # ── Result shapes ─────────────────────────────────────

    def query_all(self, sql: str, params: Params = None) -> QueryResult:
        """All rows, each a dict in column order."""
        return self._fetch(
            sql, params, RealDictCursor,
            lambda cur: [dict(row) for row in cur.fetchall()],
        )

    def query_row(self, sql: str, params: Params = None) -> QueryResult:
        """First row as a dict, or None if the query matched nothing."""
        def first_row(cur):
            row = cur.fetchone()
            return dict(row) if row is not None else None

        return self._fetch(sql, params, RealDictCursor, first_row)

    def query_column(self, sql: str, params: Params = None) -> QueryResult:
        """Values of the first column of every row."""
        return self._fetch(
            sql, params, _TUPLE_CURSOR,
            lambda cur: [row[0] for row in cur.fetchall()],
        )

    def query_scalar(self, sql: str, params: Params = None) -> QueryResult:
        """First column of the first row, or None if there are no rows."""
        def first_value(cur):
            row = cur.fetchone()
            return row[0] if row is not None else None

        return self._fetch(sql, params, _TUPLE_CURSOR, first_value)

    def execute(self, sql: str, params: Params = None) -> QueryResult:
        """
        Run a statement that returns no rows (INSERT, UPDATE, DELETE, DDL).

        Returns:
            A QueryResult whose ``data`` is the number of affected rows.
        """
        return self._fetch(sql, params, _TUPLE_CURSOR, lambda cur: cur.rowcount)
