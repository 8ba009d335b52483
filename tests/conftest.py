"""Shared test fixtures for the dbquery test suite."""

from unittest.mock import MagicMock

import psycopg2.extensions
import pytest

from dbquery.connection import ConnectionRegistry, close_registry
from dbquery.query import QueryExecutor

TEST_DSN = "postgresql://localhost:5432/test"


# ---------------------------------------------------------------------------
# Driver doubles
# ---------------------------------------------------------------------------

def make_cursor(rows=None, rowcount=None, error=None):
    """Mock cursor returning ``rows``; ``error`` is raised from execute()."""
    rows = list(rows or [])
    cursor = MagicMock()
    cursor.__enter__.return_value = cursor
    cursor.fetchall.return_value = rows
    cursor.fetchone.return_value = rows[0] if rows else None
    cursor.rowcount = len(rows) if rowcount is None else rowcount
    if error is not None:
        cursor.execute.side_effect = error
    return cursor


def make_session(cursor=None):
    """Mock psycopg2 connection whose close() flips ``closed`` like the real one."""
    session = MagicMock(spec=psycopg2.extensions.connection)
    session.closed = 0
    session.cursor_factory = None

    def _close():
        session.closed = 1

    session.close.side_effect = _close
    session.cursor.return_value = cursor if cursor is not None else make_cursor()
    return session


# ---------------------------------------------------------------------------
# Registry / executor fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def connector():
    """Stand-in for psycopg2.connect handing out a fresh session per call."""
    return MagicMock(side_effect=lambda dsn, user=None, password=None: make_session())


@pytest.fixture
def registry(connector):
    reg = ConnectionRegistry(connector=connector, reconnect_existing=True, autocommit=True)
    yield reg
    reg.close_all()


@pytest.fixture
def handle(registry):
    return registry.connect(TEST_DSN, "test", "secret")


@pytest.fixture
def executor(handle):
    return QueryExecutor(handle)


@pytest.fixture
def use_cursor(handle):
    """Install a cursor on the handle's session: ``use_cursor(rows=[...])``."""
    def _install(**kwargs):
        cursor = make_cursor(**kwargs)
        handle.session.cursor.return_value = cursor
        return cursor
    return _install


@pytest.fixture(autouse=True)
def reset_default_registry():
    """Make sure no test leaks the module-level registry into another."""
    yield
    close_registry()
