"""
change_capture.py - Change capture installation.

This module provides the interface for attaching change tracking to
mirrored tables. The capture itself happens in SQLite triggers
rendered by db/triggers.py; this module validates the table,
provisions the shared log tables and installs the rules atomically.
"""

import logging
import sqlite3

from local_changes.capture.origin import get_marker
from local_changes.config import DEFAULT_ACTIVITY_COLUMN, UID_COLUMN
from local_changes.db.connection import atomic
from local_changes.db.definition import TableDefinition, validate_mirrored_table
from local_changes.db.provisioning import SchemaProvisioner
from local_changes.db.triggers import (
    assign_missing_uids,
    get_tracked_table_names,
    has_triggers,
    install_triggers_for_table,
    remove_triggers_for_table,
)
from local_changes.log.schema import ensure_schema

logger = logging.getLogger(__name__)


def resolve_definition(
    conn: sqlite3.Connection,
    table: str | TableDefinition,
    activity_column: str | None = DEFAULT_ACTIVITY_COLUMN,
) -> TableDefinition:
    """Accept a table name or a ready definition."""
    if isinstance(table, TableDefinition):
        return table
    return TableDefinition.from_connection(conn, table, activity_column=activity_column)


def enable_change_capture(
    conn: sqlite3.Connection,
    table: str | TableDefinition,
    activity_column: str | None = DEFAULT_ACTIVITY_COLUMN,
    provisioner: SchemaProvisioner | None = None,
) -> TableDefinition:
    """
    Enable change capture for a mirrored table.

    Provisions the log tables and (re)creates the uid assignment,
    insert, update and delete capture triggers in one savepoint.
    Rows already in the table without a uid are given one as a
    sync-applied write, so they can be edited and deleted later.
    Safe to call repeatedly: prior rule definitions are replaced.

    After calling this, any local write to the table will:
    1. Execute the user's write
    2. Record the matching change log entries (in the same statement)

    Args:
        conn: Connection with tracking functions registered
        table: Table name or definition
        activity_column: Activity column used when table is a name
        provisioner: Collaborator applying the log table definitions

    Returns:
        The definition the rules were generated from

    Raises:
        ValidationError: If the table cannot carry the rules
        SchemaError: If the log tables cannot be provisioned
        InstallationError: If a trigger cannot be created
            or existing rows cannot be given a uid
    """
    definition = resolve_definition(conn, table, activity_column)
    validate_mirrored_table(definition)

    uid_column = definition.get_column(UID_COLUMN)
    if uid_column is not None and not uid_column.nullable:
        logger.warning(
            "Column %s.%s is NOT NULL; rows inserted without a uid will be rejected "
            "before one can be assigned",
            definition.name,
            UID_COLUMN,
        )

    with atomic(conn, "install"):
        ensure_schema(conn, provisioner)
        install_triggers_for_table(conn, definition)
        with get_marker(conn).sync_applied():
            assigned = assign_missing_uids(conn, definition)

    if assigned:
        logger.info("Assigned uids to %d existing rows of %s", assigned, definition.name)

    logger.info(
        "Change capture enabled for %s (%d tracked columns)",
        definition.name,
        len(definition.tracked_columns),
    )
    return definition


def disable_change_capture(conn: sqlite3.Connection, table_name: str) -> None:
    """
    Disable change capture for a mirrored table.

    Removes the capture triggers. Existing log entries are kept
    for the sync orchestrator to consume.
    """
    with atomic(conn, "uninstall"):
        remove_triggers_for_table(conn, table_name)
    logger.info("Change capture disabled for %s", table_name)


def is_capture_enabled(conn: sqlite3.Connection, table_name: str) -> bool:
    """True if all four capture triggers exist on the table."""
    return has_triggers(conn, table_name)


def get_captured_tables(conn: sqlite3.Connection) -> list[str]:
    """Names of tables with change capture installed."""
    return get_tracked_table_names(conn)
