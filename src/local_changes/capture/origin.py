"""
origin.py - Classification of writes as local or sync-applied.

Every tracking connection carries an explicit origin marker. It starts
as LOCAL and is switched to SYNC_APPLIED by the sync orchestrator while
it applies remote state (see sync_applied()).

The activity-time heuristic is still honoured on top of the marker:
the orchestrator refreshes the activity column on every write it makes,
so an insert that sets it, or an update that changes it, is sync-applied
even when the marker was left at LOCAL.

The marker belongs to the connection, not to a thread. Connections are
opened with check_same_thread=False, so a sync_applied() block covers
writes from every thread sharing that connection. The orchestrator must
apply remote state on a connection of its own.
"""

import sqlite3
import weakref
from contextlib import contextmanager
from enum import Enum
from typing import Any, Iterator

from local_changes.errors import ValidationError


class Origin(Enum):
    """Where a write against a mirrored table came from."""
    LOCAL = "local"
    SYNC_APPLIED = "sync_applied"


class OriginMarker:
    """
    Mutable origin state bound to a single connection.

    Not thread-local: every thread writing through the connection
    sees the same origin.

    Nesting is supported: the marker only returns to LOCAL once
    every sync_applied() block has exited.
    """

    def __init__(self) -> None:
        self._depth = 0

    @property
    def origin(self) -> Origin:
        return Origin.SYNC_APPLIED if self._depth > 0 else Origin.LOCAL

    @property
    def is_local(self) -> bool:
        return self._depth == 0

    @contextmanager
    def sync_applied(self) -> Iterator[None]:
        self._depth += 1
        try:
            yield
        finally:
            self._depth -= 1


# connection -> marker, filled by register_tracking_functions()
_markers: "weakref.WeakKeyDictionary[sqlite3.Connection, OriginMarker]" = (
    weakref.WeakKeyDictionary()
)


def bind_marker(conn: sqlite3.Connection) -> OriginMarker:
    """Create (or replace) the origin marker for a connection."""
    marker = OriginMarker()
    _markers[conn] = marker
    return marker


def release_marker(conn: sqlite3.Connection) -> None:
    _markers.pop(conn, None)


def get_marker(conn: sqlite3.Connection) -> OriginMarker:
    marker = _markers.get(conn)
    if marker is None:
        raise ValidationError(
            "Connection has no tracking functions registered; "
            "call register_tracking_functions() first",
            field="connection",
        )
    return marker


@contextmanager
def sync_applied(conn: sqlite3.Connection) -> Iterator[None]:
    """
    Mark every write on conn inside the block as sync-applied.

    Usage:
        with sync_applied(conn):
            conn.execute("UPDATE contacts SET name = ? WHERE uid = ?", ...)
    """
    with get_marker(conn).sync_applied():
        yield


def values_differ(old: Any, new: Any) -> bool:
    """
    Null-safe inequality shared by every tracked column.

    Two NULLs are equal, NULL and a value are unequal, anything
    else compares by value.
    """
    if old is None and new is None:
        return False
    if old is None or new is None:
        return True
    return old != new


def is_local_insert(marker: OriginMarker, new_activity: Any) -> bool:
    """A sync-applied insert always carries an activity time."""
    return marker.is_local and new_activity is None


def is_local_update(marker: OriginMarker, old_activity: Any, new_activity: Any) -> bool:
    """A sync-applied update always refreshes the activity time."""
    return marker.is_local and not values_differ(old_activity, new_activity)


def is_local_delete(marker: OriginMarker) -> bool:
    """Deleted rows leave no new state behind, so only the marker decides."""
    return marker.is_local
