"""
test_origin.py - Tests for origin classification.
"""

import gc
import sqlite3
import threading
import weakref
import pytest

from local_changes import LocalChangesTracker
from local_changes.capture.origin import (
    Origin,
    OriginMarker,
    _markers,
    get_marker,
    is_local_delete,
    is_local_insert,
    is_local_update,
    release_marker,
    sync_applied,
    values_differ,
)
from local_changes.db.connection import register_tracking_functions
from local_changes.errors import ValidationError
from local_changes.log.store import InsertLogEntry

from helpers import MirroredTable


class TestValuesDiffer:
    """Null-safe comparison shared by every tracked column."""

    @pytest.mark.parametrize(
        "old, new, expected",
        [
            (None, None, False),
            (None, "A", True),
            ("A", None, True),
            ("A", "A", False),
            ("A", "B", True),
            (1, 1, False),
            (1, 2, True),
            (b"\x00", b"\x00", False),
            (0, None, True),
            ("", None, True),
        ],
    )
    def test_values_differ(self, old, new, expected):
        assert values_differ(old, new) is expected


class TestOriginMarker:
    """Tests for the explicit origin marker."""

    def test_starts_local(self):
        marker = OriginMarker()
        assert marker.origin is Origin.LOCAL
        assert marker.is_local

    def test_sync_applied_block(self):
        marker = OriginMarker()
        with marker.sync_applied():
            assert marker.origin is Origin.SYNC_APPLIED
        assert marker.origin is Origin.LOCAL

    def test_nested_blocks(self):
        marker = OriginMarker()
        with marker.sync_applied():
            with marker.sync_applied():
                pass
            assert marker.origin is Origin.SYNC_APPLIED
        assert marker.origin is Origin.LOCAL

    def test_restored_after_exception(self):
        marker = OriginMarker()
        with pytest.raises(RuntimeError):
            with marker.sync_applied():
                raise RuntimeError("push failed")
        assert marker.is_local


class TestClassification:
    """Marker and activity time together decide the origin."""

    def test_insert(self):
        marker = OriginMarker()
        assert is_local_insert(marker, None)
        assert not is_local_insert(marker, "2024-01-01")
        with marker.sync_applied():
            assert not is_local_insert(marker, None)

    def test_update(self):
        marker = OriginMarker()
        assert is_local_update(marker, None, None)
        assert is_local_update(marker, "t1", "t1")
        assert not is_local_update(marker, "t1", "t2")
        assert not is_local_update(marker, None, "t1")
        with marker.sync_applied():
            assert not is_local_update(marker, "t1", "t1")

    def test_delete(self):
        marker = OriginMarker()
        assert is_local_delete(marker)
        with marker.sync_applied():
            assert not is_local_delete(marker)


class TestConnectionMarker:
    """Markers are bound per connection."""

    def test_sync_applied_requires_registration(self):
        conn = sqlite3.connect(":memory:")
        with pytest.raises(ValidationError):
            with sync_applied(conn):
                pass
        conn.close()

    def test_sync_applied_on_registered_connection(self):
        conn = sqlite3.connect(":memory:")
        marker = register_tracking_functions(conn)
        with sync_applied(conn):
            assert marker.origin is Origin.SYNC_APPLIED
            assert conn.execute("SELECT tracking_is_local_delete()").fetchone()[0] == 0
        assert conn.execute("SELECT tracking_is_local_delete()").fetchone()[0] == 1
        conn.close()

    def test_sql_functions(self):
        conn = sqlite3.connect(":memory:")
        register_tracking_functions(conn)
        row = conn.execute(
            "SELECT tracking_differs(NULL, NULL), tracking_differs(NULL, 1), "
            "tracking_is_local_insert(NULL), tracking_is_local_update('a', 'b'), "
            "length(tracking_uid())"
        ).fetchone()
        assert row == (0, 1, 1, 0, 36)
        conn.close()

    def test_tracker_origin(self, tracker):
        assert tracker.origin is Origin.LOCAL
        with tracker.sync_applied():
            assert tracker.origin is Origin.SYNC_APPLIED
        assert tracker.origin is Origin.LOCAL

    def test_markers_are_keyed_by_connection(self):
        conn = sqlite3.connect(":memory:")
        marker = register_tracking_functions(conn)
        assert _markers[conn] is marker
        release_marker(conn)
        assert conn not in _markers
        conn.close()

    def test_registry_does_not_keep_connections_alive(self):
        conn = sqlite3.connect(":memory:")
        register_tracking_functions(conn)
        conn.close()
        ref = weakref.ref(conn)
        del conn
        gc.collect()
        assert ref() is None

    def test_fresh_connection_has_no_marker(self):
        for _ in range(20):
            conn = sqlite3.connect(":memory:")
            register_tracking_functions(conn)
            conn.close()
            del conn
        gc.collect()

        conn = sqlite3.connect(":memory:")
        with pytest.raises(ValidationError):
            get_marker(conn)
        conn.close()


class TestMarkerScope:
    """A sync_applied() block covers one connection, from any thread."""

    def test_other_connection_stays_local(self, tracker, db_path, contacts, change_log):
        with LocalChangesTracker(db_path) as sync_side:
            pulled = MirroredTable(sync_side.connection, "contacts")
            with sync_side.sync_applied():
                pulled.insert(uid="u-sync", name="pulled")
                contacts.insert(uid="u-local", name="typed")

        assert change_log.get_inserts("contacts") == [InsertLogEntry("contacts", "u-local")]

    def test_shared_connection_is_sync_applied_on_every_thread(self, tracker, contacts, change_log):
        with tracker.sync_applied():
            worker = threading.Thread(
                target=contacts.insert, kwargs={"uid": "u-thread", "name": "A"}
            )
            worker.start()
            worker.join()

        assert contacts.count() == 1
        assert change_log.get_inserts("contacts") == []
