"""
invariants.py - Change log invariant definitions and enforcement.

These invariants follow from the capture rules: a delete clears the
pending insert and update entries of its uid, and a delete entry is
only written when the row had a remote id.

If an invariant is violated, InvariantViolationError is raised.
"""

import sqlite3

from local_changes.config import (
    LOCAL_DELETE_TABLE,
    LOCAL_INSERT_TABLE,
    LOCAL_UPDATE_TABLE,
    UID_COLUMN,
)
from local_changes.db.definition import quote_identifier
from local_changes.errors import InvariantViolationError


class Invariants:
    """
    Invariants that must hold for the change log to be trusted.

    The capture rules never produce a violating log, but the log
    tables are plain tables the orchestrator writes to as well.
    """

    DELETE_SUPERSEDES = "DELETE_SUPERSEDES"
    DELETE_HAS_REMOTE_ID = "DELETE_HAS_REMOTE_ID"

    @staticmethod
    def assert_delete_supersedes(conn: sqlite3.Connection, table_name: str | None = None) -> None:
        """
        A deleted uid has no pending insert or update.

        A uid whose row was re-created by a sync-applied insert after
        the local delete may collect new update entries while the
        delete is still pending, so only uids absent from their
        mirrored table are checked.

        Raises:
            InvariantViolationError: If such a uid exists
        """
        sql = f"""
            SELECT d.table_name, d.uid FROM {LOCAL_DELETE_TABLE} d
            WHERE (? IS NULL OR d.table_name = ?)
            AND (
                EXISTS (SELECT 1 FROM {LOCAL_INSERT_TABLE} i
                        WHERE i.table_name = d.table_name AND i.uid = d.uid)
                OR EXISTS (SELECT 1 FROM {LOCAL_UPDATE_TABLE} u
                           WHERE u.table_name = d.table_name AND u.uid = d.uid)
            )
            ORDER BY d.table_name, d.uid
        """
        for row_table, uid in conn.execute(sql, (table_name, table_name)).fetchall():
            if not _row_exists(conn, row_table, uid):
                raise InvariantViolationError(
                    Invariants.DELETE_SUPERSEDES,
                    f"uid {uid} of table {row_table} is pending deletion "
                    "but still has pending insert or update entries.",
                )

    @staticmethod
    def assert_delete_has_remote_id(conn: sqlite3.Connection, table_name: str | None = None) -> None:
        """
        Delete entries only exist for rows known to the remote system.

        Raises:
            InvariantViolationError: If a delete entry has a NULL id
        """
        row = conn.execute(
            f"SELECT table_name, uid FROM {LOCAL_DELETE_TABLE} "
            "WHERE id IS NULL AND (? IS NULL OR table_name = ?) LIMIT 1",
            (table_name, table_name),
        ).fetchone()
        if row is not None:
            raise InvariantViolationError(
                Invariants.DELETE_HAS_REMOTE_ID,
                f"Delete entry for uid {row[1]} of table {row[0]} has no remote id.",
            )

    @staticmethod
    def assert_log_consistent(conn: sqlite3.Connection, table_name: str | None = None) -> None:
        """Run every change log invariant, optionally for one table."""
        Invariants.assert_delete_supersedes(conn, table_name)
        Invariants.assert_delete_has_remote_id(conn, table_name)


def _row_exists(conn: sqlite3.Connection, table_name: str, uid: str) -> bool:
    """False as well when the mirrored table itself is gone."""
    try:
        row = conn.execute(
            f"SELECT 1 FROM {quote_identifier(table_name)} "
            f"WHERE {quote_identifier(UID_COLUMN)} = ? LIMIT 1",
            (uid,),
        ).fetchone()
    except sqlite3.OperationalError:
        return False
    return row is not None
