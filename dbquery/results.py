"""
dbquery/results.py
------------------
Typed outcome of a query: either data or a diagnostic, never a bare
boolean, so an empty result set can't be mistaken for a failure.
"""

from dataclasses import dataclass
from typing import Any, Optional

from dbquery.errors import QueryError


@dataclass
class QueryResult:
    """
    Outcome of one statement run through a QueryExecutor.

    Attributes:
        data: The shaped value (cursor, rows, row, column, scalar or count).
        error: Diagnostic message when the query failed, otherwise None.
        duration_seconds: Wall-clock time of the execute call.
        row_count: Driver-reported row count, -1 when unknown.
    """
    data: Any = None
    error: Optional[str] = None
    duration_seconds: Optional[float] = None
    row_count: int = -1

    @classmethod
    def failure(cls, error: str, duration_seconds: Optional[float] = None) -> "QueryResult":
        return cls(error=error, duration_seconds=duration_seconds)

    @property
    def ok(self) -> bool:
        """True if the statement ran without a driver error."""
        return self.error is None

    def unwrap(self) -> Any:
        """
        Return ``data`` or raise.

        Raises:
            QueryError: If this result represents a failed query.
        """
        if self.error is not None:
            raise QueryError(self.error)
        return self.data

    def __str__(self) -> str:
        if not self.ok:
            return f"FAILED | {self.error}"
        timing = f"{self.duration_seconds:.4f}s" if self.duration_seconds is not None else "n/a"
        return f"OK | rows: {self.row_count} | {timing}"
