"""
tracker.py - Local changes tracker.

The LocalChangesTracker is the primary public interface:
- Tracking schema provisioning
- Installing/removing capture rules on mirrored tables
- Change log access for the sync orchestrator
- Marking writes as sync-applied
"""

import sqlite3
from contextlib import contextmanager
from typing import Iterator

from local_changes.capture.change_capture import (
    disable_change_capture,
    enable_change_capture,
    get_captured_tables,
    is_capture_enabled,
)
from local_changes.capture.origin import Origin, OriginMarker, get_marker, release_marker
from local_changes.config import DEFAULT_ACTIVITY_COLUMN
from local_changes.db.connection import create_connection, register_tracking_functions
from local_changes.db.definition import TableDefinition
from local_changes.db.provisioning import SchemaProvisioner
from local_changes.errors import TrackingError
from local_changes.invariants import Invariants
from local_changes.log.schema import TRACKING_TABLES, ensure_schema
from local_changes.log.store import ChangeLog
from local_changes.logs import TrackingLogger


class LocalChangesTracker:
    """
    Records local inserts, updates and deletes of mirrored tables.
    """

    def __init__(self, db_path: str, provisioner: SchemaProvisioner | None = None):
        self._db_path = db_path
        self._conn: sqlite3.Connection | None = None
        self._owns_connection = True
        self._provisioner = provisioner
        self._log = TrackingLogger()

    @classmethod
    def from_connection(
        cls, conn: sqlite3.Connection, provisioner: SchemaProvisioner | None = None
    ) -> "LocalChangesTracker":
        """Wrap an existing connection, registering the tracking functions on it."""
        tracker = cls(":memory:", provisioner=provisioner)
        tracker._conn = conn
        register_tracking_functions(conn)
        tracker._owns_connection = False
        return tracker

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def close(self) -> None:
        if self._conn is not None:
            if self._owns_connection:
                release_marker(self._conn)
                self._conn.close()
            self._conn = None

    @property
    def connection(self) -> sqlite3.Connection:
        if self._conn is None:
            self._conn = create_connection(self._db_path)
        return self._conn

    def _origin_marker(self) -> OriginMarker:
        return get_marker(self.connection)

    @property
    def change_log(self) -> ChangeLog:
        return ChangeLog(self.connection)

    @property
    def origin(self) -> Origin:
        return self._origin_marker().origin

    def ensure_schema(self) -> None:
        """Provision the shared log tables. Idempotent."""
        conn = self.connection
        ensure_schema(conn, self._provisioner or SchemaProvisioner(conn))
        self._log.schema_ensured([d.name for d in TRACKING_TABLES])

    def install_tracking(
        self,
        table: str | TableDefinition,
        activity_column: str | None = DEFAULT_ACTIVITY_COLUMN,
    ) -> TableDefinition:
        """
        Provision the log schema and attach the capture rules to a table.

        Safe to call repeatedly; prior rule definitions are replaced.
        Reinstall after altering a table so new columns are tracked.
        """
        table_name = table.name if isinstance(table, TableDefinition) else table
        try:
            definition = enable_change_capture(
                self.connection, table, activity_column, self._provisioner
            )
        except TrackingError as e:
            self._log.tracking_failed(table_name, str(e))
            raise
        self._log.tracking_installed(definition.name, definition.tracked_columns)
        return definition

    def uninstall_tracking(self, table_name: str) -> None:
        """Remove the capture rules; pending log entries are kept."""
        disable_change_capture(self.connection, table_name)
        self._log.tracking_removed(table_name)

    def is_tracking_installed(self, table_name: str) -> bool:
        return is_capture_enabled(self.connection, table_name)

    def get_tracked_tables(self) -> list[str]:
        return get_captured_tables(self.connection)

    @contextmanager
    def sync_applied(self) -> Iterator[None]:
        """
        Mark writes made inside the block as applied by the sync process.

        Applies to every write on this tracker's connection, from any
        thread, so local writers must not share it meanwhile.

        Usage:
            with tracker.sync_applied():
                conn.execute("UPDATE contacts SET name = ? WHERE uid = ?", ...)
        """
        with self._origin_marker().sync_applied():
            yield

    def check_log(self, table_name: str | None = None) -> None:
        """Raise InvariantViolationError if the change log is inconsistent."""
        Invariants.assert_log_consistent(self.connection, table_name)
