"""
dbquery/errors.py
-----------------
Exceptions raised by the access layer.
"""


class DBConnectionError(ConnectionError):
    """
    A session could not be established, re-established or configured,
    or an operation needed a session that is closed.

    The underlying driver exception, if any, is chained as ``__cause__``.
    """


class QueryError(Exception):
    """Raised by ``QueryResult.unwrap()`` when the query failed."""
