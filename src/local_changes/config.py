"""
config.py - Configuration constants for local_changes.

All configuration is immutable and defined at module level.
No mutable global state is permitted.
"""

from typing import Final

# Log tables shared by every mirrored table
LOCAL_INSERT_TABLE: Final[str] = "local_insert"
LOCAL_UPDATE_TABLE: Final[str] = "local_update"
LOCAL_DELETE_TABLE: Final[str] = "local_delete"

# Column lengths of the log tables
TABLE_NAME_LENGTH: Final[int] = 100
UID_LENGTH: Final[int] = 36
FIELD_NAME_LENGTH: Final[int] = 100
REMOTE_ID_LENGTH: Final[int] = 100

# Columns every mirrored table must carry
UID_COLUMN: Final[str] = "uid"
REMOTE_ID_COLUMN: Final[str] = "id"
IDENTIFIER_COLUMNS: Final[frozenset[str]] = frozenset({UID_COLUMN, REMOTE_ID_COLUMN})

# Written only by the sync orchestrator; used to tell local writes apart
DEFAULT_ACTIVITY_COLUMN: Final[str] = "lastActivityTime"

# Rule names are TRG_<table>_<EVENT>
TRIGGER_NAME_TEMPLATE: Final[str] = "TRG_{table_name}_{event}"
EVENT_SET_UUID: Final[str] = "SETUUIDBEFOREINSERT"
EVENT_INSERT: Final[str] = "ONINSERT"
EVENT_UPDATE: Final[str] = "ONUPDATE"
EVENT_DELETE: Final[str] = "ONDELETE"
TRIGGER_EVENTS: Final[tuple[str, ...]] = (
    EVENT_SET_UUID,
    EVENT_INSERT,
    EVENT_UPDATE,
    EVENT_DELETE,
)

# SQLite PRAGMA settings for connections opened by this package
SQLITE_PRAGMAS: Final[dict[str, str]] = {
    "journal_mode": "WAL",
    "synchronous": "NORMAL",
    "foreign_keys": "ON",
    "busy_timeout": "5000",
}

# Tracking cannot be installed on the log tables themselves
RESERVED_TABLE_NAMES: Final[frozenset[str]] = frozenset(
    {
        LOCAL_INSERT_TABLE,
        LOCAL_UPDATE_TABLE,
        LOCAL_DELETE_TABLE,
    }
)

# SQL functions registered on every tracking connection
SQL_FUNCTION_UID: Final[str] = "tracking_uid"
SQL_FUNCTION_DIFFERS: Final[str] = "tracking_differs"
SQL_FUNCTION_LOCAL_INSERT: Final[str] = "tracking_is_local_insert"
SQL_FUNCTION_LOCAL_UPDATE: Final[str] = "tracking_is_local_update"
SQL_FUNCTION_LOCAL_DELETE: Final[str] = "tracking_is_local_delete"

# Environment variable read by the CLI for the default database path
ENV_DB_PATH: Final[str] = "LOCAL_CHANGES_DB_PATH"
