"""
dbquery/connection.py
---------------------
Manages PostgreSQL sessions keyed by DSN.

A ConnectionRegistry owns every session it creates. Callers hold
ConnectionHandle objects and hand them to QueryExecutor instances, which
never close them.
"""

import re
import threading
from enum import Enum
from typing import Any, Callable, Optional

import psycopg2
import psycopg2.extensions

from config import DB_AUTOCOMMIT, DB_RECONNECT_EXISTING
from dbquery.errors import DBConnectionError
from utils.logger import get_logger

logger = get_logger(__name__)

_URL_PASSWORD = re.compile(r"(://[^:/@]*:)[^/?#]*@")
_KEYWORD_PASSWORD = re.compile(r"(password\s*=\s*)('[^']*'|\S+)", re.IGNORECASE)


def mask_dsn(dsn: str) -> str:
    """Hide any password embedded in a DSN before it reaches the logs."""
    masked = _URL_PASSWORD.sub(r"\1***@", dsn)
    return _KEYWORD_PASSWORD.sub(r"\1***", masked)


class Attribute(Enum):
    """Session settings reachable through set_attribute / get_attribute."""
    AUTOCOMMIT = "autocommit"
    ISOLATION_LEVEL = "isolation_level"
    READONLY = "readonly"
    DEFERRABLE = "deferrable"
    # Row shape returned by QueryExecutor.query().
    CURSOR_FACTORY = "cursor_factory"
    # Server-side setting, in milliseconds.
    STATEMENT_TIMEOUT = "statement_timeout"


class ConnectionHandle:
    """
    One tracked session and the credentials it was opened with.

    Attributes:
        dsn: libpq connection string or URI; also the registry key.
        username: Role name passed alongside the DSN.
        password: Password passed alongside the DSN.
        session: The live psycopg2 connection, or None once closed.
    """

    def __init__(self, dsn: str, username: str = "", password: str = ""):
        self.dsn = dsn
        self.username = username
        self.password = password
        self.session: Optional[psycopg2.extensions.connection] = None

    @property
    def closed(self) -> bool:
        return self.session is None or bool(self.session.closed)

    def __repr__(self) -> str:
        state = "closed" if self.closed else "open"
        return f"<ConnectionHandle {mask_dsn(self.dsn)} user={self.username!r} {state}>"


class ConnectionRegistry:
    """
    DSN-keyed map of connection handles.

    The key is the DSN alone. Connecting twice to the same DSN with other
    credentials replaces the stored credentials and the session.

    Args:
        connector: Callable with the signature of ``psycopg2.connect``.
            Defaults to ``psycopg2.connect``.
        reconnect_existing: When True, ``connect`` re-establishes the
            session of an already tracked DSN on every call. When False,
            a live handle is returned untouched.
        autocommit: Autocommit mode applied to every new session.
    """

    def __init__(
        self,
        connector: Optional[Callable[..., Any]] = None,
        reconnect_existing: bool = DB_RECONNECT_EXISTING,
        autocommit: bool = DB_AUTOCOMMIT,
    ):
        self._connector = connector
        self.reconnect_existing = reconnect_existing
        self.autocommit = autocommit
        self._handles: dict[str, ConnectionHandle] = {}
        self._lock = threading.RLock()

    # ── Lifecycle ─────────────────────────────────────────

    def connect(self, dsn: str, username: str = "", password: str = "") -> ConnectionHandle:
        """
        Return the handle for ``dsn``, creating or re-establishing it.

        Raises:
            DBConnectionError: If the session cannot be established.
        """
        with self._lock:
            handle = self._handles.get(dsn)
            if handle is None:
                handle = ConnectionHandle(dsn, username, password)
                self._establish(handle)
                self._handles[dsn] = handle
                return handle

            if not self.reconnect_existing and not handle.closed:
                logger.debug(f"Reusing open session for {mask_dsn(dsn)}")
                return handle

            handle.username = username
            handle.password = password
            self._establish(handle)
            return handle

    def reconnect(self, handle: ConnectionHandle) -> None:
        """
        Replace the session of ``handle`` with a new one built from its
        stored DSN and credentials.

        Raises:
            DBConnectionError: If the session cannot be established.
        """
        with self._lock:
            self._establish(handle)

    def close(self, handle: ConnectionHandle) -> None:
        """Close the session of ``handle``. Does nothing if already closed."""
        with self._lock:
            session = handle.session
            handle.session = None
            if session is None or session.closed:
                return
            session.close()
            logger.info(f"Closed session for {mask_dsn(handle.dsn)}")

    def close_all(self) -> None:
        """Close every tracked session and forget all handles."""
        with self._lock:
            for handle in self._handles.values():
                self.close(handle)
            self._handles.clear()

    def get(self, dsn: str) -> Optional[ConnectionHandle]:
        return self._handles.get(dsn)

    def __contains__(self, dsn: str) -> bool:
        return dsn in self._handles

    def __len__(self) -> int:
        return len(self._handles)

    def __enter__(self) -> "ConnectionRegistry":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close_all()

    def _establish(self, handle: ConnectionHandle) -> None:
        """
        Open a new session for ``handle``. The previous session, if any,
        is closed only after the new one is ready, so a failed attempt
        leaves it in place.
        """
        connect = self._connector or psycopg2.connect
        try:
            session = connect(
                handle.dsn,
                user=handle.username or None,
                password=handle.password or None,
            )
        except psycopg2.Error as e:
            logger.error(f"Failed to connect to {mask_dsn(handle.dsn)}: {e}")
            raise DBConnectionError(f"Could not connect to {mask_dsn(handle.dsn)}: {e}") from e

        try:
            session.autocommit = self.autocommit
        except psycopg2.Error as e:
            session.close()
            logger.error(f"Failed to configure session for {mask_dsn(handle.dsn)}: {e}")
            raise DBConnectionError(f"Could not configure session: {e}") from e

        previous = handle.session
        handle.session = session
        if previous is not None and not previous.closed:
            previous.close()
        logger.info(f"Connected to {mask_dsn(handle.dsn)}")

    # ── Session operations ────────────────────────────────

    @staticmethod
    def _require_open(handle: ConnectionHandle) -> psycopg2.extensions.connection:
        if handle.closed:
            raise DBConnectionError(f"Connection to {mask_dsn(handle.dsn)} is closed")
        return handle.session

    def get_last_insert_id(self, handle: ConnectionHandle, sequence_name: str = "") -> str:
        """
        Return the last value generated by a sequence in this session.

        Args:
            handle: An open handle.
            sequence_name: Sequence to read. Without it the most recently
                used sequence of the session is read (``lastval()``).

        Raises:
            DBConnectionError: If the handle is closed or no value exists.
        """
        session = self._require_open(handle)
        try:
            with session.cursor(cursor_factory=psycopg2.extensions.cursor) as cur:
                if sequence_name:
                    cur.execute("SELECT currval(%s)", (sequence_name,))
                else:
                    cur.execute("SELECT lastval()")
                return str(cur.fetchone()[0])
        except psycopg2.Error as e:
            raise DBConnectionError(f"Could not read last insert id: {e}") from e

    def set_attribute(self, handle: ConnectionHandle, attribute: Attribute | str, value: Any) -> bool:
        """
        Change a session setting.

        Raises:
            DBConnectionError: If the handle is closed or the driver
                rejects the setting.
        """
        session = self._require_open(handle)
        name = _attribute_name(attribute)
        try:
            if name == Attribute.STATEMENT_TIMEOUT.value:
                with session.cursor(cursor_factory=psycopg2.extensions.cursor) as cur:
                    cur.execute("SET statement_timeout = %s", (int(value),))
            else:
                setattr(session, name, value)
        except (psycopg2.Error, AttributeError, TypeError, ValueError) as e:
            raise DBConnectionError(f"Could not set {name}: {e}") from e
        logger.debug(f"Set {name}={value!r} on {mask_dsn(handle.dsn)}")
        return True

    def get_attribute(self, handle: ConnectionHandle, attribute: Attribute | str) -> Any:
        """
        Read a session setting.

        Raises:
            DBConnectionError: If the handle is closed or the setting is unknown.
        """
        session = self._require_open(handle)
        name = _attribute_name(attribute)
        try:
            if name == Attribute.STATEMENT_TIMEOUT.value:
                with session.cursor(cursor_factory=psycopg2.extensions.cursor) as cur:
                    cur.execute("SHOW statement_timeout")
                    return cur.fetchone()[0]
            return getattr(session, name)
        except (psycopg2.Error, AttributeError) as e:
            raise DBConnectionError(f"Could not read {name}: {e}") from e


def _attribute_name(attribute: Attribute | str) -> str:
    return attribute.value if isinstance(attribute, Attribute) else attribute


# ── Default registry ──────────────────────────────────────

_registry: ConnectionRegistry | None = None


def init_registry(**kwargs) -> ConnectionRegistry:
    """
    Create the process-wide default registry.

    Keyword arguments are passed to ConnectionRegistry. Calling this
    again while a registry exists returns the existing one.
    """
    global _registry
    if _registry is None:
        _registry = ConnectionRegistry(**kwargs)
        logger.info("Connection registry initialized.")
    return _registry


def get_registry() -> ConnectionRegistry:
    """
    Return the default registry.

    Raises:
        RuntimeError: If init_registry() has not been called.
    """
    if _registry is None:
        raise RuntimeError("Connection registry not initialized. Call init_registry() first.")
    return _registry


def close_registry() -> None:
    """Close all sessions of the default registry and drop it."""
    global _registry
    if _registry is not None:
        _registry.close_all()
        _registry = None
        logger.info("Connection registry closed.")
