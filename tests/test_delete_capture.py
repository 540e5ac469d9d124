"""
test_delete_capture.py - Tests for the delete capture rule.
"""

from local_changes.log.store import DeleteLogEntry


SYNC_TIME = "2024-01-01 10:00:00"


class TestDeleteOfSyncedRow:
    """Rows with a remote id must be deleted remotely."""

    def test_delete_is_logged_with_remote_id(self, contacts, change_log):
        uid = contacts.insert(id="R1", name="Alice", lastActivityTime=SYNC_TIME)
        contacts.delete(uid)

        assert change_log.get_deletes("contacts") == [DeleteLogEntry("contacts", uid, "R1")]
        assert change_log.get_inserts("contacts") == []
        assert change_log.get_updates("contacts") == []

    def test_delete_clears_pending_updates(self, contacts, change_log):
        uid = contacts.insert(id="R1", name="Alice", lastActivityTime=SYNC_TIME)
        contacts.update(uid, name="Alicia", email="alicia@example.com")
        assert len(change_log.get_updates("contacts")) == 2

        contacts.delete(uid)

        assert change_log.get_updates("contacts") == []
        assert change_log.get_deletes("contacts") == [DeleteLogEntry("contacts", uid, "R1")]

    def test_delete_clears_pending_insert(self, contacts, change_log):
        uid = contacts.insert(id="R1", name="Alice")
        assert len(change_log.get_inserts("contacts")) == 1

        contacts.delete(uid)

        assert change_log.get_inserts("contacts") == []
        assert change_log.get_deletes("contacts") == [DeleteLogEntry("contacts", uid, "R1")]

    def test_numeric_remote_id_is_stored_as_text(self, contacts, change_log):
        uid = contacts.insert(id=42, name="Alice", lastActivityTime=SYNC_TIME)
        contacts.delete(uid)
        assert change_log.get_deletes("contacts") == [DeleteLogEntry("contacts", uid, "42")]

    def test_delete_is_not_affected_by_activity_time(self, contacts, change_log):
        """Deleted rows leave no new state, so the heuristic cannot apply."""
        uid = contacts.insert(id="R1", name="Alice", lastActivityTime=SYNC_TIME)
        contacts.delete(uid)
        assert len(change_log.get_deletes("contacts")) == 1


class TestDeleteOfUnsyncedRow:
    """Rows never synced have nothing to delete remotely."""

    def test_no_delete_entry_without_remote_id(self, contacts, change_log):
        uid = contacts.insert(name="Alice")
        contacts.delete(uid)
        assert change_log.get_deletes("contacts") == []

    def test_pending_entries_are_still_cleared(self, contacts, change_log):
        uid = contacts.insert(name="Alice")
        contacts.update(uid, name="Alicia")
        assert change_log.get_inserts("contacts") != []
        assert change_log.get_updates("contacts") != []

        contacts.delete(uid)

        assert change_log.get_inserts("contacts") == []
        assert change_log.get_updates("contacts") == []
        assert change_log.get_deletes("contacts") == []

    def test_delete_without_pending_entries_is_a_noop(self, contacts, change_log):
        uid = contacts.insert(name="Alice", lastActivityTime=SYNC_TIME)
        contacts.delete(uid)

        assert contacts.count() == 0
        assert change_log.count_pending("contacts").total == 0


class TestSyncAppliedDelete:
    """Deletes applied by the sync process under the explicit marker."""

    def test_marked_delete_is_not_logged(self, tracker, contacts, change_log):
        uid = contacts.insert(id="R1", name="Alice", lastActivityTime=SYNC_TIME)
        with tracker.sync_applied():
            contacts.delete(uid)
        assert change_log.get_deletes("contacts") == []

    def test_marked_delete_still_clears_pending_entries(self, tracker, contacts, change_log):
        uid = contacts.insert(id="R1", name="Alice", lastActivityTime=SYNC_TIME)
        contacts.update(uid, name="Alicia")

        with tracker.sync_applied():
            contacts.delete(uid)

        assert change_log.get_updates("contacts") == []
