"""
test_invariants.py - Tests for change log invariants.

These tests verify that the capture rules keep the log consistent,
and that hand-written inconsistencies are detected.
"""

import pytest

from local_changes.errors import InvariantViolationError
from local_changes.invariants import Invariants


SYNC_TIME = "2024-01-01 10:00:00"


def exercise(contacts):
    """A mixed workload of local and sync-applied writes."""
    pending = contacts.insert(name="pending")
    contacts.update(pending, email="p@example.com")

    synced = contacts.insert(id="R1", name="synced", lastActivityTime=SYNC_TIME)
    contacts.update(synced, name="edited")

    gone = contacts.insert(id="R2", name="gone", lastActivityTime=SYNC_TIME)
    contacts.update(gone, name="edited")
    contacts.delete(gone)

    never_synced = contacts.insert(name="never synced")
    contacts.delete(never_synced)


class TestDeleteSupersedes:
    """A uid pending deletion has no pending insert or update."""

    def test_holds_after_capture(self, tracker, contacts):
        exercise(contacts)
        Invariants.assert_delete_supersedes(tracker.connection)

    def test_detects_leftover_update(self, tracker):
        conn = tracker.connection
        conn.execute("INSERT INTO local_delete VALUES ('contacts', 'u1', 'R1')")
        conn.execute("INSERT INTO local_update VALUES ('contacts', 'u1', 'name')")

        with pytest.raises(InvariantViolationError) as exc_info:
            Invariants.assert_delete_supersedes(conn)
        assert exc_info.value.invariant == Invariants.DELETE_SUPERSEDES

    def test_detects_leftover_insert(self, tracker):
        conn = tracker.connection
        conn.execute("INSERT INTO local_delete VALUES ('contacts', 'u1', 'R1')")
        conn.execute("INSERT INTO local_insert VALUES ('contacts', 'u1')")

        with pytest.raises(InvariantViolationError):
            Invariants.assert_delete_supersedes(conn)

    def test_scoped_to_table(self, tracker):
        conn = tracker.connection
        conn.execute("INSERT INTO local_delete VALUES ('leads', 'u1', 'R1')")
        conn.execute("INSERT INTO local_insert VALUES ('leads', 'u1')")

        Invariants.assert_delete_supersedes(conn, "contacts")
        with pytest.raises(InvariantViolationError):
            Invariants.assert_delete_supersedes(conn, "leads")

    def test_same_uid_in_other_table_is_fine(self, tracker):
        conn = tracker.connection
        conn.execute("INSERT INTO local_delete VALUES ('contacts', 'u1', 'R1')")
        conn.execute("INSERT INTO local_insert VALUES ('leads', 'u1')")

        Invariants.assert_delete_supersedes(conn)

    def test_holds_after_sync_applied_reinsert(self, tracker, contacts):
        uid = contacts.insert(id="R1", name="synced", lastActivityTime=SYNC_TIME)
        contacts.delete(uid)
        with tracker.sync_applied():
            contacts.insert(uid=uid, id="R1", name="synced", lastActivityTime=SYNC_TIME)
        contacts.update(uid, name="edited")

        Invariants.assert_delete_supersedes(tracker.connection)
        tracker.check_log("contacts")

    def test_detects_leftover_update_of_deleted_row(self, tracker, contacts):
        uid = contacts.insert(id="R1", name="synced", lastActivityTime=SYNC_TIME)
        with tracker.sync_applied():
            contacts.delete(uid)
        conn = tracker.connection
        conn.execute("INSERT INTO local_delete VALUES ('contacts', ?, 'R1')", (uid,))
        conn.execute("INSERT INTO local_update VALUES ('contacts', ?, 'name')", (uid,))

        with pytest.raises(InvariantViolationError):
            Invariants.assert_delete_supersedes(conn)


class TestDeleteHasRemoteId:
    """Delete entries only exist for rows the remote system knows."""

    def test_holds_after_capture(self, tracker, contacts):
        exercise(contacts)
        Invariants.assert_delete_has_remote_id(tracker.connection)

    def test_detects_missing_remote_id(self, tracker):
        conn = tracker.connection
        conn.execute("INSERT INTO local_delete VALUES ('contacts', 'u1', NULL)")

        with pytest.raises(InvariantViolationError) as exc_info:
            Invariants.assert_delete_has_remote_id(conn)
        assert exc_info.value.invariant == Invariants.DELETE_HAS_REMOTE_ID
        assert "u1" in exc_info.value.details


class TestCheckLog:
    """Tracker-level consistency check."""

    def test_consistent_log(self, tracker, contacts):
        exercise(contacts)
        tracker.check_log()
        tracker.check_log("contacts")

    def test_inconsistent_log(self, tracker):
        tracker.connection.execute("INSERT INTO local_delete VALUES ('contacts', 'u1', NULL)")

        with pytest.raises(InvariantViolationError):
            tracker.check_log()
