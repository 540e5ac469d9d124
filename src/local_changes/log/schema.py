"""
schema.py - Desired layout of the change log tables.

Three tables are shared by every mirrored table:
- local_insert: uids inserted locally and not yet pushed
- local_update: fields modified locally and not yet pushed
- local_delete: synced uids deleted locally, with their remote id

This module only declares the structure. Applying it is left to
the schema provisioner.
"""

import sqlite3
from typing import Final

from local_changes.config import (
    FIELD_NAME_LENGTH,
    LOCAL_DELETE_TABLE,
    LOCAL_INSERT_TABLE,
    LOCAL_UPDATE_TABLE,
    REMOTE_ID_LENGTH,
    TABLE_NAME_LENGTH,
    UID_LENGTH,
)
from local_changes.db.definition import ColumnDefinition, TableDefinition
from local_changes.db.provisioning import SchemaProvisioner


_TABLE_NAME = ColumnDefinition("table_name", "VARCHAR", nullable=False, length=TABLE_NAME_LENGTH)
_UID = ColumnDefinition("uid", "VARCHAR", nullable=False, length=UID_LENGTH)

LOCAL_UPDATE_DEFINITION: Final[TableDefinition] = TableDefinition(
    name=LOCAL_UPDATE_TABLE,
    columns=(
        _TABLE_NAME,
        _UID,
        ColumnDefinition("field_name", "VARCHAR", nullable=False, length=FIELD_NAME_LENGTH),
    ),
    primary_key=("table_name", "uid", "field_name"),
    activity_column=None,
)

LOCAL_INSERT_DEFINITION: Final[TableDefinition] = TableDefinition(
    name=LOCAL_INSERT_TABLE,
    columns=(_TABLE_NAME, _UID),
    primary_key=("table_name", "uid"),
    activity_column=None,
)

LOCAL_DELETE_DEFINITION: Final[TableDefinition] = TableDefinition(
    name=LOCAL_DELETE_TABLE,
    columns=(
        _TABLE_NAME,
        _UID,
        ColumnDefinition("id", "VARCHAR", nullable=True, length=REMOTE_ID_LENGTH),
    ),
    primary_key=("table_name", "uid"),
    unique_constraints=(("id", "table_name"),),
    activity_column=None,
)

TRACKING_TABLES: Final[tuple[TableDefinition, ...]] = (
    LOCAL_UPDATE_DEFINITION,
    LOCAL_INSERT_DEFINITION,
    LOCAL_DELETE_DEFINITION,
)


def ensure_schema(
    conn: sqlite3.Connection, provisioner: SchemaProvisioner | None = None
) -> None:
    """
    Make sure the three log tables exist with the expected layout.

    Idempotent: can be called any number of times.

    Args:
        conn: SQLite connection
        provisioner: Collaborator applying the definitions; a
            SchemaProvisioner on conn when omitted

    Raises:
        SchemaError: If an existing log table cannot be reconciled
        DatabaseError: If the DDL fails
    """
    provisioner = provisioner or SchemaProvisioner(conn)
    for definition in TRACKING_TABLES:
        provisioner.ensure_or_update_table(definition)


def tracking_tables_exist(conn: sqlite3.Connection) -> bool:
    names = [d.name for d in TRACKING_TABLES]
    placeholders = ", ".join("?" for _ in names)
    cursor = conn.execute(
        f"SELECT COUNT(*) FROM sqlite_master WHERE type = 'table' AND name IN ({placeholders})",
        names,
    )
    return cursor.fetchone()[0] == len(names)
