"""
provisioning.py - Create or update tables from a desired definition.

The provisioner compares a TableDefinition with what exists in the
database and applies the smallest change that reconciles them:
- missing table: CREATE TABLE
- missing nullable column: ALTER TABLE ADD COLUMN
- missing unique constraint: CREATE UNIQUE INDEX

Changes SQLite cannot make in place (primary key, new NOT NULL
columns) raise SchemaError rather than rebuilding the table.
"""

import logging
import sqlite3

from local_changes.db.definition import (
    TableDefinition,
    quote_identifier,
    validate_identifier,
)
from local_changes.errors import DatabaseError, SchemaError

logger = logging.getLogger(__name__)


class SchemaProvisioner:
    """Applies desired table definitions to a SQLite database."""

    def __init__(self, conn: sqlite3.Connection):
        self._conn = conn

    def ensure_or_update_table(self, definition: TableDefinition) -> None:
        """
        Bring a table in line with its definition.

        Idempotent: a table that already matches is left untouched.

        Raises:
            SchemaError: If the existing table cannot be reconciled
            DatabaseError: If the DDL fails
        """
        validate_identifier(definition.name, "table_name")
        for column in definition.columns:
            validate_identifier(column.name, "column_name")

        existing = self._existing_columns(definition.name)
        if not existing:
            logger.info("Creating table %s", definition.name)
            self._execute(self._create_table_sql(definition), "create_table")
        else:
            self._update_table(definition, existing)

        for columns in definition.unique_constraints:
            self._execute(self._unique_index_sql(definition.name, columns), "create_index")

    def _update_table(self, definition: TableDefinition, existing: dict[str, tuple[bool, int]]) -> None:
        actual_pk = tuple(
            name for name, (_, pk_index) in sorted(existing.items(), key=lambda kv: kv[1][1])
            if pk_index
        )
        if definition.primary_key and actual_pk != definition.primary_key:
            raise SchemaError(
                f"Primary key of table '{definition.name}' does not match",
                expected=definition.primary_key,
                actual=actual_pk,
            )

        for column in definition.columns:
            if column.name in existing:
                continue
            if not column.nullable:
                raise SchemaError(
                    f"Cannot add NOT NULL column '{column.name}' to existing "
                    f"table '{definition.name}'",
                    expected=column.name,
                )
            logger.info("Adding column %s to table %s", column.name, definition.name)
            self._execute(
                f"ALTER TABLE {quote_identifier(definition.name)} ADD COLUMN {column.render()}",
                "add_column",
            )

    def _existing_columns(self, table_name: str) -> dict[str, tuple[bool, int]]:
        """Map column name -> (nullable, pk index); empty if the table is missing."""
        try:
            rows = self._conn.execute(
                f"PRAGMA table_info({quote_identifier(table_name)})"
            ).fetchall()
        except sqlite3.Error as e:
            raise DatabaseError(
                f"Failed to inspect table '{table_name}': {e}",
                operation="table_info",
            ) from e
        return {row[1]: (not row[3], row[5]) for row in rows}

    @staticmethod
    def _create_table_sql(definition: TableDefinition) -> str:
        parts = [column.render() for column in definition.columns]
        if definition.primary_key:
            pk = ", ".join(quote_identifier(c) for c in definition.primary_key)
            parts.append(f"PRIMARY KEY ({pk})")
        body = ",\n    ".join(parts)
        return f"CREATE TABLE IF NOT EXISTS {quote_identifier(definition.name)} (\n    {body}\n)"

    @staticmethod
    def _unique_index_sql(table_name: str, columns: tuple[str, ...]) -> str:
        index_name = "uniq_" + "_".join((table_name,) + columns)
        cols = ", ".join(quote_identifier(c) for c in columns)
        return (
            f"CREATE UNIQUE INDEX IF NOT EXISTS {quote_identifier(index_name)} "
            f"ON {quote_identifier(table_name)} ({cols})"
        )

    def _execute(self, sql: str, operation: str) -> None:
        try:
            self._conn.execute(sql)
        except sqlite3.Error as e:
            raise DatabaseError(
                f"Schema provisioning failed: {e}",
                operation=operation,
                sql=sql,
            ) from e
