"""
triggers.py - SQLite trigger generation for change capture.

One shared generator renders the four capture rules of a mirrored
table from its TableDefinition. Triggers execute atomically within
the mutating statement, so a failing rule fails the mutation itself.
"""

import sqlite3
from typing import Final

from local_changes.config import (
    EVENT_DELETE,
    EVENT_INSERT,
    EVENT_SET_UUID,
    EVENT_UPDATE,
    LOCAL_DELETE_TABLE,
    LOCAL_INSERT_TABLE,
    LOCAL_UPDATE_TABLE,
    REMOTE_ID_COLUMN,
    RESERVED_TABLE_NAMES,
    SQL_FUNCTION_DIFFERS,
    SQL_FUNCTION_LOCAL_DELETE,
    SQL_FUNCTION_LOCAL_INSERT,
    SQL_FUNCTION_LOCAL_UPDATE,
    SQL_FUNCTION_UID,
    TRIGGER_EVENTS,
    TRIGGER_NAME_TEMPLATE,
    UID_COLUMN,
)
from local_changes.db.definition import (
    TableDefinition,
    quote_identifier,
    quote_literal,
    validate_identifier,
)
from local_changes.errors import DatabaseError, InstallationError, ValidationError


# Assigns a uid to rows inserted without one. SQLite cannot rewrite NEW,
# so the freshly inserted row is updated in place by rowid.
SET_UUID_TRIGGER_TEMPLATE: Final[str] = """
CREATE TRIGGER {trigger_name}
AFTER INSERT ON {table}
FOR EACH ROW
WHEN NEW.{uid} IS NULL OR NEW.{uid} = ''
BEGIN
    UPDATE {table} SET {uid} = {uid_function}()
    WHERE rowid = NEW.rowid AND ({uid} IS NULL OR {uid} = '');
END
"""

# Firing order between triggers on the same event is unspecified, so
# the uid is assigned here too before it is read back by rowid.
INSERT_TRIGGER_TEMPLATE: Final[str] = """
CREATE TRIGGER {trigger_name}
AFTER INSERT ON {table}
FOR EACH ROW
WHEN {local_insert_function}({new_activity})
BEGIN
    UPDATE {table} SET {uid} = {uid_function}()
    WHERE rowid = NEW.rowid AND ({uid} IS NULL OR {uid} = '');

    INSERT OR IGNORE INTO {local_insert} (table_name, uid)
    SELECT {table_literal}, {uid} FROM {table} WHERE rowid = NEW.rowid;

    DELETE FROM {local_delete}
    WHERE table_name = {table_literal}
    AND uid = (SELECT {uid} FROM {table} WHERE rowid = NEW.rowid);

    DELETE FROM {local_update}
    WHERE table_name = {table_literal}
    AND uid = (SELECT {uid} FROM {table} WHERE rowid = NEW.rowid);
END
"""

UPDATE_TRIGGER_TEMPLATE: Final[str] = """
CREATE TRIGGER {trigger_name}
AFTER UPDATE ON {table}
FOR EACH ROW
WHEN {local_update_function}({old_activity}, {new_activity})
BEGIN
{field_statements}
END
"""

UPDATE_FIELD_TEMPLATE: Final[str] = """
    INSERT OR REPLACE INTO {local_update} (table_name, uid, field_name)
    SELECT {table_literal}, NEW.{uid}, {field_literal}
    WHERE {differs_function}(OLD.{column}, NEW.{column});
"""

DELETE_TRIGGER_TEMPLATE: Final[str] = """
CREATE TRIGGER {trigger_name}
BEFORE DELETE ON {table}
FOR EACH ROW
BEGIN
    INSERT OR REPLACE INTO {local_delete} (table_name, uid, id)
    SELECT {table_literal}, OLD.{uid}, OLD.{remote_id}
    WHERE OLD.{remote_id} IS NOT NULL AND {local_delete_function}();

    DELETE FROM {local_insert}
    WHERE table_name = {table_literal} AND uid = OLD.{uid};

    DELETE FROM {local_update}
    WHERE table_name = {table_literal} AND uid = OLD.{uid};
END
"""


def trigger_name(table_name: str, event: str) -> str:
    """Deterministic rule name: TRG_<table>_<EVENT>."""
    return TRIGGER_NAME_TEMPLATE.format(table_name=table_name, event=event)


def render_triggers(definition: TableDefinition) -> dict[str, str]:
    """
    Render the CREATE TRIGGER statements for a mirrored table.

    Args:
        definition: Mirrored table definition (already validated)

    Returns:
        Mapping of event -> CREATE TRIGGER statement, in install order

    Raises:
        ValidationError: If the table has no column the update rule can track
    """
    tracked = definition.tracked_columns
    if not tracked:
        raise ValidationError(
            f"Table '{definition.name}' has no columns besides its identifiers",
            field="table_name",
            value=definition.name,
        )

    table = quote_identifier(definition.name)
    uid = quote_identifier(UID_COLUMN)
    if definition.activity_column is None:
        old_activity = new_activity = "NULL"
    else:
        activity = quote_identifier(definition.activity_column)
        old_activity = f"OLD.{activity}"
        new_activity = f"NEW.{activity}"

    common = {
        "table": table,
        "table_literal": quote_literal(definition.name),
        "uid": uid,
        "uid_function": SQL_FUNCTION_UID,
        "local_insert": LOCAL_INSERT_TABLE,
        "local_update": LOCAL_UPDATE_TABLE,
        "local_delete": LOCAL_DELETE_TABLE,
    }

    field_statements = "".join(
        UPDATE_FIELD_TEMPLATE.format(
            column=quote_identifier(column),
            field_literal=quote_literal(column),
            differs_function=SQL_FUNCTION_DIFFERS,
            **common,
        )
        for column in tracked
    )

    name = definition.name
    return {
        EVENT_SET_UUID: SET_UUID_TRIGGER_TEMPLATE.format(
            trigger_name=quote_identifier(trigger_name(name, EVENT_SET_UUID)),
            **common,
        ),
        EVENT_INSERT: INSERT_TRIGGER_TEMPLATE.format(
            trigger_name=quote_identifier(trigger_name(name, EVENT_INSERT)),
            local_insert_function=SQL_FUNCTION_LOCAL_INSERT,
            new_activity=new_activity,
            **common,
        ),
        EVENT_UPDATE: UPDATE_TRIGGER_TEMPLATE.format(
            trigger_name=quote_identifier(trigger_name(name, EVENT_UPDATE)),
            local_update_function=SQL_FUNCTION_LOCAL_UPDATE,
            old_activity=old_activity,
            new_activity=new_activity,
            field_statements=field_statements.rstrip(),
            **common,
        ),
        EVENT_DELETE: DELETE_TRIGGER_TEMPLATE.format(
            trigger_name=quote_identifier(trigger_name(name, EVENT_DELETE)),
            remote_id=quote_identifier(REMOTE_ID_COLUMN),
            local_delete_function=SQL_FUNCTION_LOCAL_DELETE,
            **common,
        ),
    }


def install_triggers_for_table(conn: sqlite3.Connection, definition: TableDefinition) -> None:
    """
    Install (or replace) the four capture triggers for a table.

    Prior definitions are dropped first, so reinstalling after a
    column change picks up the new column list. Callers wrap this
    in a savepoint so a failure leaves the previous rules in place.

    Raises:
        ValidationError: If the table name is reserved or unsafe
        InstallationError: If trigger creation fails
    """
    _validate_table_name(definition.name)
    statements = render_triggers(definition)

    for event in TRIGGER_EVENTS:
        _drop_trigger(conn, definition.name, event)

    for event, sql in statements.items():
        try:
            conn.execute(sql)
        except sqlite3.Error as e:
            raise InstallationError(
                f"Failed to create {event} trigger for table '{definition.name}': {e}",
                table_name=definition.name,
                sql=sql,
            ) from e


def assign_missing_uids(conn: sqlite3.Connection, definition: TableDefinition) -> int:
    """
    Give every existing row without a uid a fresh one.

    Rows mirrored before tracking was installed never passed through
    the uid rule. Callers run this as a sync-applied write so the
    assignment itself is not logged.

    Returns:
        Number of rows that received a uid
    """
    table = quote_identifier(definition.name)
    uid = quote_identifier(UID_COLUMN)
    sql = f"UPDATE {table} SET {uid} = {SQL_FUNCTION_UID}() WHERE {uid} IS NULL OR {uid} = ''"
    try:
        return conn.execute(sql).rowcount
    except sqlite3.Error as e:
        raise InstallationError(
            f"Failed to assign uids to existing rows of '{definition.name}': {e}",
            table_name=definition.name,
            sql=sql,
        ) from e


def remove_triggers_for_table(conn: sqlite3.Connection, table_name: str) -> None:
    """
    Remove capture triggers from a table.

    Raises:
        DatabaseError: If a trigger cannot be dropped
    """
    _validate_table_name(table_name)
    for event in TRIGGER_EVENTS:
        _drop_trigger(conn, table_name, event)


def _drop_trigger(conn: sqlite3.Connection, table_name: str, event: str) -> None:
    sql = f"DROP TRIGGER IF EXISTS {quote_identifier(trigger_name(table_name, event))}"
    try:
        conn.execute(sql)
    except sqlite3.Error as e:
        raise DatabaseError(
            f"Failed to drop trigger for table '{table_name}': {e}",
            operation="drop_trigger",
            sql=sql,
        ) from e


def _validate_table_name(table_name: str) -> None:
    validate_identifier(table_name, "table_name")
    if table_name in RESERVED_TABLE_NAMES:
        raise ValidationError(
            f"Cannot track changes on reserved table '{table_name}'",
            field="table_name",
            value=table_name,
        )


def has_triggers(conn: sqlite3.Connection, table_name: str) -> bool:
    """
    Check if all capture triggers exist for a table.

    Returns:
        True if all four triggers exist on table_name
    """
    expected = {trigger_name(table_name, event) for event in TRIGGER_EVENTS}
    try:
        cursor = conn.execute(
            "SELECT name FROM sqlite_master WHERE type = 'trigger' AND tbl_name = ?",
            (table_name,),
        )
        return expected.issubset({row[0] for row in cursor.fetchall()})
    except sqlite3.Error:
        return False


def get_tracked_table_names(conn: sqlite3.Connection) -> list[str]:
    """Tables carrying an insert capture trigger, sorted by name."""
    cursor = conn.execute(
        """
        SELECT tbl_name FROM sqlite_master
        WHERE type = 'trigger' AND name = 'TRG_' || tbl_name || '_' || ?
        ORDER BY tbl_name
        """,
        (EVENT_INSERT,),
    )
    return [row[0] for row in cursor.fetchall()]
