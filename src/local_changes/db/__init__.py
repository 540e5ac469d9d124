"""
db - Database layer for local_changes.
"""

from local_changes.db.connection import (
    create_connection,
    register_tracking_functions,
    atomic,
)
from local_changes.db.definition import (
    ColumnDefinition,
    TableDefinition,
)
from local_changes.db.provisioning import SchemaProvisioner
from local_changes.db.triggers import (
    install_triggers_for_table,
    remove_triggers_for_table,
    has_triggers,
    trigger_name,
)

__all__ = [
    # connection
    "create_connection",
    "register_tracking_functions",
    "atomic",
    # definition
    "ColumnDefinition",
    "TableDefinition",
    # provisioning
    "SchemaProvisioner",
    # triggers
    "install_triggers_for_table",
    "remove_triggers_for_table",
    "has_triggers",
    "trigger_name",
]
