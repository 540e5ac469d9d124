"""
definition.py - Declarative table definitions.

A TableDefinition describes a table by name and ordered columns. It is
used both for the desired layout of the log tables and for the
mirrored tables whose columns drive the generated capture rules.
"""

import sqlite3
from dataclasses import dataclass, field

from local_changes.config import (
    DEFAULT_ACTIVITY_COLUMN,
    IDENTIFIER_COLUMNS,
    REMOTE_ID_COLUMN,
    UID_COLUMN,
)
from local_changes.errors import DatabaseError, ValidationError


@dataclass(frozen=True, slots=True)
class ColumnDefinition:
    """A single column: name, declared type and nullability."""
    name: str
    type: str = ""
    nullable: bool = True
    length: int | None = None

    def render(self) -> str:
        """Render the column for CREATE TABLE / ALTER TABLE ADD COLUMN."""
        parts = [quote_identifier(self.name)]
        if self.type:
            parts.append(f"{self.type}({self.length})" if self.length else self.type)
        if not self.nullable:
            parts.append("NOT NULL")
        return " ".join(parts)


@dataclass(frozen=True, slots=True)
class TableDefinition:
    """
    Name and ordered column list of a table.

    For mirrored tables, activity_column names the column the sync
    orchestrator refreshes on every write (None disables the heuristic
    and leaves only the explicit origin marker).
    """
    name: str
    columns: tuple[ColumnDefinition, ...]
    primary_key: tuple[str, ...] = ()
    unique_constraints: tuple[tuple[str, ...], ...] = ()
    activity_column: str | None = DEFAULT_ACTIVITY_COLUMN
    without_rowid: bool = field(default=False, compare=False)

    @property
    def tracked_columns(self) -> list[str]:
        """Columns compared by the update capture rule."""
        return [c.name for c in self.columns if c.name not in IDENTIFIER_COLUMNS]

    def get_column(self, name: str) -> ColumnDefinition | None:
        for column in self.columns:
            if column.name == name:
                return column
        return None

    def has_column(self, name: str) -> bool:
        return self.get_column(name) is not None

    @classmethod
    def from_connection(
        cls,
        conn: sqlite3.Connection,
        table_name: str,
        activity_column: str | None = DEFAULT_ACTIVITY_COLUMN,
    ) -> "TableDefinition":
        """
        Read a table's definition from the database.

        Args:
            conn: SQLite connection
            table_name: Existing table
            activity_column: Activity column to associate with the table

        Returns:
            TableDefinition with columns in declaration order

        Raises:
            ValidationError: If the table does not exist
            DatabaseError: If the schema cannot be read
        """
        validate_identifier(table_name, "table_name")
        try:
            row = conn.execute(
                "SELECT sql FROM sqlite_master WHERE type = 'table' AND name = ?",
                (table_name,),
            ).fetchone()
            if row is None:
                raise ValidationError(
                    f"Table '{table_name}' not found",
                    field="table_name",
                    value=table_name,
                )
            rows = conn.execute(
                f"PRAGMA table_info({quote_identifier(table_name)})"
            ).fetchall()
        except sqlite3.Error as e:
            raise DatabaseError(
                f"Failed to read definition of table '{table_name}': {e}",
                operation="table_info",
            ) from e

        columns = []
        pk = []
        # PRAGMA table_info: cid, name, type, notnull, dflt_value, pk
        for _cid, name, col_type, notnull, _default, pk_index in rows:
            columns.append(ColumnDefinition(name=name, type=col_type or "", nullable=not notnull))
            if pk_index:
                pk.append((pk_index, name))

        create_sql = (row[0] or "").upper()
        return cls(
            name=table_name,
            columns=tuple(columns),
            primary_key=tuple(name for _, name in sorted(pk)),
            activity_column=activity_column,
            without_rowid="WITHOUT ROWID" in " ".join(create_sql.split()),
        )


def validate_identifier(name: str, field_name: str) -> None:
    """
    Reject identifiers that are unsafe to splice into generated SQL.

    Raises:
        ValidationError: If the name is empty or has invalid characters
    """
    if not name:
        raise ValidationError(f"{field_name} cannot be empty", field=field_name)

    if not name.replace("_", "").isalnum() or not name.isascii():
        raise ValidationError(
            f"{field_name} contains invalid characters: '{name}'",
            field=field_name,
            value=name,
        )


def quote_identifier(name: str) -> str:
    return '"' + name.replace('"', '""') + '"'


def quote_literal(value: str) -> str:
    return "'" + value.replace("'", "''") + "'"


def validate_mirrored_table(definition: TableDefinition) -> None:
    """
    Check that a mirrored table can carry the capture rules.

    Raises:
        ValidationError: On missing identifier/activity columns,
            WITHOUT ROWID tables or unsafe column names
    """
    validate_identifier(definition.name, "table_name")
    for column in definition.columns:
        validate_identifier(column.name, "column_name")

    for required in (UID_COLUMN, REMOTE_ID_COLUMN):
        if not definition.has_column(required):
            raise ValidationError(
                f"Table '{definition.name}' has no '{required}' column",
                field="table_name",
                value=definition.name,
            )

    if definition.activity_column is not None and not definition.has_column(
        definition.activity_column
    ):
        raise ValidationError(
            f"Table '{definition.name}' has no activity column "
            f"'{definition.activity_column}'",
            field="activity_column",
            value=definition.activity_column,
        )

    if definition.without_rowid:
        raise ValidationError(
            f"Table '{definition.name}' is WITHOUT ROWID; uid assignment needs a rowid",
            field="table_name",
            value=definition.name,
        )
