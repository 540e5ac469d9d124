"""
helpers.py - Shared test helpers.
"""

import sqlite3


class MirroredTable:
    """Small helper issuing plain SQL writes against a mirrored table."""

    def __init__(self, conn: sqlite3.Connection, table_name: str):
        self.conn = conn
        self.table_name = table_name

    def insert(self, **values) -> str:
        """Insert a row and return its (possibly assigned) uid."""
        columns = ", ".join(values) or "name"
        placeholders = ", ".join("?" for _ in values) or "NULL"
        cursor = self.conn.execute(
            f"INSERT INTO {self.table_name} ({columns}) VALUES ({placeholders})",
            tuple(values.values()),
        )
        return self.conn.execute(
            f"SELECT uid FROM {self.table_name} WHERE rowid = ?", (cursor.lastrowid,)
        ).fetchone()[0]

    def update(self, uid: str, **values) -> None:
        assignments = ", ".join(f"{col} = ?" for col in values)
        self.conn.execute(
            f"UPDATE {self.table_name} SET {assignments} WHERE uid = ?",
            (*values.values(), uid),
        )

    def delete(self, uid: str) -> None:
        self.conn.execute(f"DELETE FROM {self.table_name} WHERE uid = ?", (uid,))

    def get(self, uid: str) -> tuple | None:
        return self.conn.execute(
            f"SELECT * FROM {self.table_name} WHERE uid = ?", (uid,)
        ).fetchone()

    def count(self) -> int:
        return self.conn.execute(f"SELECT COUNT(*) FROM {self.table_name}").fetchone()[0]
