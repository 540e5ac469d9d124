"""
store.py - Change log entries and queries.

The sync orchestrator reads pending entries from here, pushes the
matching changes to the remote system and then clears the entries
it has consumed. New entries are only ever written by the capture
triggers.
"""

import sqlite3
from dataclasses import dataclass
from enum import Enum

from local_changes.config import (
    LOCAL_DELETE_TABLE,
    LOCAL_INSERT_TABLE,
    LOCAL_UPDATE_TABLE,
)
from local_changes.errors import DatabaseError


@dataclass(frozen=True, slots=True)
class InsertLogEntry:
    """A uid inserted locally and not yet pushed."""
    table_name: str
    uid: str


@dataclass(frozen=True, slots=True)
class UpdateLogEntry:
    """A field of a row modified locally and not yet pushed."""
    table_name: str
    uid: str
    field_name: str


@dataclass(frozen=True, slots=True)
class DeleteLogEntry:
    """A synced row deleted locally; id is its remote identifier."""
    table_name: str
    uid: str
    id: str | None


class RowState(Enum):
    """Pending state of a single mirrored row."""
    CLEAN = "clean"
    PENDING_INSERT = "pending_insert"
    PENDING_UPDATE = "pending_update"
    PENDING_DELETE = "pending_delete"


@dataclass(frozen=True, slots=True)
class PendingChange:
    state: RowState
    fields: frozenset[str] = frozenset()
    remote_id: str | None = None


@dataclass(frozen=True, slots=True)
class PendingCounts:
    inserts: int
    updates: int
    deletes: int

    @property
    def total(self) -> int:
        return self.inserts + self.updates + self.deletes


class ChangeLog:
    """
    Read and clear access to the three log tables.

    Usage:
        log = ChangeLog(conn)
        for entry in log.get_inserts("contacts"):
            push(entry)
            log.clear_insert(entry.table_name, entry.uid)
    """

    def __init__(self, conn: sqlite3.Connection):
        self._conn = conn

    def get_inserts(self, table_name: str) -> list[InsertLogEntry]:
        rows = self._query(
            f"SELECT table_name, uid FROM {LOCAL_INSERT_TABLE} "
            "WHERE table_name = ? ORDER BY uid",
            (table_name,),
        )
        return [InsertLogEntry(*row) for row in rows]

    def get_updates(self, table_name: str, uid: str | None = None) -> list[UpdateLogEntry]:
        """Dirty fields of a table, optionally narrowed to one row."""
        if uid is None:
            rows = self._query(
                f"SELECT table_name, uid, field_name FROM {LOCAL_UPDATE_TABLE} "
                "WHERE table_name = ? ORDER BY uid, field_name",
                (table_name,),
            )
        else:
            rows = self._query(
                f"SELECT table_name, uid, field_name FROM {LOCAL_UPDATE_TABLE} "
                "WHERE table_name = ? AND uid = ? ORDER BY field_name",
                (table_name, uid),
            )
        return [UpdateLogEntry(*row) for row in rows]

    def get_deletes(self, table_name: str) -> list[DeleteLogEntry]:
        rows = self._query(
            f"SELECT table_name, uid, id FROM {LOCAL_DELETE_TABLE} "
            "WHERE table_name = ? ORDER BY uid",
            (table_name,),
        )
        return [DeleteLogEntry(*row) for row in rows]

    def clear_insert(self, table_name: str, uid: str) -> bool:
        """Remove a pushed insert. Returns False if there was none."""
        return self._delete(
            f"DELETE FROM {LOCAL_INSERT_TABLE} WHERE table_name = ? AND uid = ?",
            (table_name, uid),
        ) > 0

    def clear_update(self, table_name: str, uid: str, field_name: str) -> bool:
        return self._delete(
            f"DELETE FROM {LOCAL_UPDATE_TABLE} "
            "WHERE table_name = ? AND uid = ? AND field_name = ?",
            (table_name, uid, field_name),
        ) > 0

    def clear_updates(self, table_name: str, uid: str) -> int:
        """Remove every dirty field of a row. Returns the number removed."""
        return self._delete(
            f"DELETE FROM {LOCAL_UPDATE_TABLE} WHERE table_name = ? AND uid = ?",
            (table_name, uid),
        )

    def clear_delete(self, table_name: str, uid: str) -> bool:
        return self._delete(
            f"DELETE FROM {LOCAL_DELETE_TABLE} WHERE table_name = ? AND uid = ?",
            (table_name, uid),
        ) > 0

    def pending_state(self, table_name: str, uid: str) -> PendingChange:
        """
        Derive the pending state of one row from the log tables.

        A pending delete wins over everything else, then a pending
        insert (whose later edits travel with the insert), then
        pending field updates.
        """
        delete = self._query(
            f"SELECT id FROM {LOCAL_DELETE_TABLE} WHERE table_name = ? AND uid = ?",
            (table_name, uid),
        )
        if delete:
            return PendingChange(RowState.PENDING_DELETE, remote_id=delete[0][0])

        fields = frozenset(e.field_name for e in self.get_updates(table_name, uid))
        insert = self._query(
            f"SELECT 1 FROM {LOCAL_INSERT_TABLE} WHERE table_name = ? AND uid = ?",
            (table_name, uid),
        )
        if insert:
            return PendingChange(RowState.PENDING_INSERT, fields=fields)
        if fields:
            return PendingChange(RowState.PENDING_UPDATE, fields=fields)
        return PendingChange(RowState.CLEAN)

    def count_pending(self, table_name: str) -> PendingCounts:
        counts = []
        for log_table in (LOCAL_INSERT_TABLE, LOCAL_UPDATE_TABLE, LOCAL_DELETE_TABLE):
            rows = self._query(
                f"SELECT COUNT(*) FROM {log_table} WHERE table_name = ?",
                (table_name,),
            )
            counts.append(rows[0][0])
        return PendingCounts(*counts)

    def _query(self, sql: str, params: tuple) -> list[tuple]:
        try:
            return self._conn.execute(sql, params).fetchall()
        except sqlite3.Error as e:
            raise DatabaseError(
                f"Failed to read change log: {e}",
                operation="read_log",
                sql=sql,
            ) from e

    def _delete(self, sql: str, params: tuple) -> int:
        try:
            return self._conn.execute(sql, params).rowcount
        except sqlite3.Error as e:
            raise DatabaseError(
                f"Failed to clear change log entry: {e}",
                operation="clear_log",
                sql=sql,
            ) from e
