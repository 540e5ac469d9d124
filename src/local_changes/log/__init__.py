"""
log - Change log tables and queries.
"""

from local_changes.log.schema import (
    TRACKING_TABLES,
    ensure_schema,
    tracking_tables_exist,
)
from local_changes.log.store import (
    ChangeLog,
    InsertLogEntry,
    UpdateLogEntry,
    DeleteLogEntry,
    RowState,
    PendingChange,
    PendingCounts,
)

__all__ = [
    # schema
    "TRACKING_TABLES",
    "ensure_schema",
    "tracking_tables_exist",
    # store
    "ChangeLog",
    "InsertLogEntry",
    "UpdateLogEntry",
    "DeleteLogEntry",
    "RowState",
    "PendingChange",
    "PendingCounts",
]
