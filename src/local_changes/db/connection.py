"""
connection.py - SQLite database connection management.

Handles connection creation, PRAGMA configuration, and
registration of the SQL functions the capture rules call.

Every connection that writes to a tracked table needs those functions:
a connection without them fails the write with "no such function",
so a mutation can never succeed without its change log entry.
"""

import logging
import sqlite3
import time
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any, Iterator

from local_changes.config import (
    SQL_FUNCTION_DIFFERS,
    SQL_FUNCTION_LOCAL_DELETE,
    SQL_FUNCTION_LOCAL_INSERT,
    SQL_FUNCTION_LOCAL_UPDATE,
    SQL_FUNCTION_UID,
    SQLITE_PRAGMAS,
)
from local_changes.errors import DatabaseError

if TYPE_CHECKING:
    from local_changes.capture.origin import OriginMarker

logger = logging.getLogger(__name__)


def create_connection(db_path: str) -> sqlite3.Connection:
    """
    Create a new SQLite connection with proper configuration.

    Applies all PRAGMA settings and registers the tracking functions.

    Args:
        db_path: Path to SQLite database file

    Returns:
        Configured sqlite3.Connection

    Raises:
        DatabaseError: If connection fails
    """
    try:
        conn = sqlite3.connect(
            db_path,
            isolation_level=None,  # Manual transaction control
            check_same_thread=False,
        )
    except sqlite3.Error as e:
        raise DatabaseError(
            f"Failed to connect to database: {e}",
            operation="connect",
        ) from e

    _apply_pragmas(conn)
    register_tracking_functions(conn)
    logger.debug("Opened tracking connection to %s", db_path)
    return conn


def _apply_pragmas(conn: sqlite3.Connection) -> None:
    for pragma, value in SQLITE_PRAGMAS.items():
        try:
            conn.execute(f"PRAGMA {pragma} = {value}")
        except sqlite3.Error as e:
            raise DatabaseError(
                f"Failed to set PRAGMA {pragma}: {e}",
                operation="pragma",
                sql=f"PRAGMA {pragma} = {value}",
            ) from e


def register_tracking_functions(conn: sqlite3.Connection) -> "OriginMarker":
    """
    Register the SQL functions used by the capture rules.

    - tracking_uid() -> TEXT, a fresh uid
    - tracking_differs(old, new) -> 0/1, null-safe inequality
    - tracking_is_local_insert(new_activity) -> 0/1
    - tracking_is_local_update(old_activity, new_activity) -> 0/1
    - tracking_is_local_delete() -> 0/1

    Args:
        conn: SQLite connection (opened by this package or not)

    Returns:
        The origin marker now bound to conn
    """
    from local_changes.capture.origin import (
        bind_marker,
        is_local_delete,
        is_local_insert,
        is_local_update,
        values_differ,
    )
    from local_changes.utils.uuid7 import generate_uid

    marker = bind_marker(conn)

    def _uid() -> str:
        return generate_uid()

    def _differs(old: Any, new: Any) -> int:
        return int(values_differ(old, new))

    def _local_insert(new_activity: Any) -> int:
        return int(is_local_insert(marker, new_activity))

    def _local_update(old_activity: Any, new_activity: Any) -> int:
        return int(is_local_update(marker, old_activity, new_activity))

    def _local_delete() -> int:
        return int(is_local_delete(marker))

    # uids must differ per call, so the uid function is not deterministic
    conn.create_function(SQL_FUNCTION_UID, 0, _uid)
    conn.create_function(SQL_FUNCTION_DIFFERS, 2, _differs, deterministic=True)
    conn.create_function(SQL_FUNCTION_LOCAL_INSERT, 1, _local_insert)
    conn.create_function(SQL_FUNCTION_LOCAL_UPDATE, 2, _local_update)
    conn.create_function(SQL_FUNCTION_LOCAL_DELETE, 0, _local_delete)
    return marker


@contextmanager
def atomic(conn: sqlite3.Connection, name: str = "tracking") -> Iterator[None]:
    """
    Run a block inside a savepoint.

    Works with or without an enclosing transaction: on failure only
    the work done inside the block is rolled back.

    Usage:
        with atomic(conn):
            conn.execute(...)
            conn.execute(...)
    """
    savepoint_name = f"sp_{name}_{time.monotonic_ns()}"
    conn.execute(f"SAVEPOINT {savepoint_name}")
    try:
        yield
        conn.execute(f"RELEASE {savepoint_name}")
    except Exception as e:
        logger.error("Atomic block failed, rolling back: %s", e)
        conn.execute(f"ROLLBACK TO {savepoint_name}")
        conn.execute(f"RELEASE {savepoint_name}")
        raise
