"""
dbquery/ - Database Access Layer
================================
DSN-keyed PostgreSQL sessions and a query helper that shapes results.
This layer is the lowest in the architecture and has no dependencies on other layers.
"""

from dbquery.connection import (
    Attribute,
    ConnectionHandle,
    ConnectionRegistry,
    close_registry,
    get_registry,
    init_registry,
)
from dbquery.errors import DBConnectionError, QueryError
from dbquery.query import QueryExecutor
from dbquery.results import QueryResult

__all__ = [
    "Attribute",
    "ConnectionHandle",
    "ConnectionRegistry",
    "DBConnectionError",
    "QueryError",
    "QueryExecutor",
    "QueryResult",
    "close_registry",
    "get_registry",
    "init_registry",
]
