"""
local_changes - Local change tracking for mirrored SQLite tables.

Records every locally originated insert, update and delete on tables
mirrored from a remote system, while ignoring writes applied by the
sync process itself, so the orchestrator knows what to push.
"""

from local_changes.tracker import LocalChangesTracker
from local_changes.capture.origin import Origin, sync_applied
from local_changes.db.connection import create_connection, register_tracking_functions
from local_changes.db.definition import ColumnDefinition, TableDefinition
from local_changes.log.store import (
    ChangeLog,
    InsertLogEntry,
    UpdateLogEntry,
    DeleteLogEntry,
    RowState,
    PendingChange,
)
from local_changes.errors import (
    TrackingError,
    SchemaError,
    DatabaseError,
    InstallationError,
    ValidationError,
    InvariantViolationError,
)
from local_changes.logs import configure_logging

__version__ = "0.1.0"
__all__ = [
    # Core
    "LocalChangesTracker",
    "Origin",
    "sync_applied",
    "create_connection",
    "register_tracking_functions",
    "ColumnDefinition",
    "TableDefinition",
    # Change log
    "ChangeLog",
    "InsertLogEntry",
    "UpdateLogEntry",
    "DeleteLogEntry",
    "RowState",
    "PendingChange",
    # Errors
    "TrackingError",
    "SchemaError",
    "DatabaseError",
    "InstallationError",
    "ValidationError",
    "InvariantViolationError",
    # Logging
    "configure_logging",
]
