"""
conftest.py - pytest fixtures for local_changes tests.
"""

import os
import tempfile
import pytest

from local_changes import LocalChangesTracker

from helpers import MirroredTable


CONTACTS_DDL = """
CREATE TABLE contacts (
    id TEXT,
    uid TEXT,
    name TEXT,
    email TEXT,
    lastActivityTime TEXT
)
"""


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test databases."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield tmpdir


@pytest.fixture
def db_path(temp_dir):
    return os.path.join(temp_dir, "test.db")


@pytest.fixture
def tracker(db_path):
    """Tracker with change tracking installed on a 'contacts' table."""
    tracker = LocalChangesTracker(db_path)
    tracker.connection.execute(CONTACTS_DDL)
    tracker.install_tracking("contacts")
    yield tracker
    tracker.close()


@pytest.fixture
def contacts(tracker):
    return MirroredTable(tracker.connection, "contacts")


@pytest.fixture
def change_log(tracker):
    return tracker.change_log
