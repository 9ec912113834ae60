"""Tests for the guest-mode local job store."""

import json

import pytest

from jobsync.errors import StorageError, ValidationError
from jobsync.local_store import JOBS_STORAGE_KEY, NOTES_STORAGE_KEY, LocalJobStore

from .conftest import make_job


class BrokenStorage:
    """Storage whose every call fails."""

    def get_item(self, key):
        raise StorageError("disk gone")

    def set_item(self, key, value):
        raise StorageError("quota exceeded")

    def remove_item(self, key):
        raise StorageError("disk gone")


class TestLoadAndSave:
    """Reading and writing the serialized collection."""

    def test_unavailable_storage_reads_empty(self):
        """Without a backing store reads are empty and writes are no-ops."""
        store = LocalJobStore(None)
        assert store.load() == []
        store.save([make_job(1, "Acme", created="2024-01-01T00:00:00")])
        assert store.load() == []

    def test_corrupt_blob_reads_empty(self, local_storage, local):
        """Unparsable or wrongly shaped blobs read as an empty collection."""
        local_storage.set_item(JOBS_STORAGE_KEY, "{not json")
        assert local.load() == []
        local_storage.set_item(JOBS_STORAGE_KEY, json.dumps({"id": 1}))
        assert local.load() == []

    def test_storage_failures_are_swallowed(self):
        """Storage errors never escape load, save or clear."""
        store = LocalJobStore(BrokenStorage())
        assert store.load() == []
        store.save([make_job(1, "Acme", created="2024-01-01T00:00:00")])
        store.clear()

    def test_blob_uses_camel_case_with_embedded_notes(self, local_storage, local):
        """Jobs are stored with camelCase keys and their notes inline."""
        job = local.create({"company": "Acme", "position": "Dev", "status": "applied", "jobUrl": "https://acme.example"})
        local.add_note(job.id, "Sent resume")
        stored = json.loads(local_storage.get_item(JOBS_STORAGE_KEY))
        assert stored[0]["jobUrl"] == "https://acme.example"
        assert stored[0]["notes"][0]["content"] == "Sent resume"
        assert stored[0]["notes"][0]["jobApplicationId"] == job.id


class TestMutations:
    """Create, update, delete and notes."""

    def test_create_allocates_next_id_and_prepends(self, local):
        """New jobs get the next id and go to the head of the list."""
        first = local.create({"company": "Acme", "position": "Dev", "status": "applied"})
        second = local.create({"company": "Globex", "position": "Dev", "status": "interview"})
        assert (first.id, second.id) == (1, 2)
        assert second.notes == []
        assert second.created_at is not None
        assert [job.company for job in local.load()] == ["Globex", "Acme"]

    def test_create_after_delete_uses_max_plus_one(self, local):
        """Ids continue from the highest existing id, not the count."""
        local.save([make_job(7, "Acme", created="2024-01-01T00:00:00"), make_job(3, "Globex", created="2024-01-02T00:00:00")])
        assert local.create({"company": "Initech", "position": "Dev", "status": "applied"}).id == 8

    def test_create_validates(self, local):
        """Invalid input raises and stores nothing."""
        with pytest.raises(ValidationError):
            local.create({"company": "", "position": "Dev", "status": "applied"})
        assert local.load() == []

    def test_update_merges_sent_fields(self, local):
        """Only sent fields change; None clears an optional field."""
        job = local.create({"company": "Acme", "position": "Dev", "status": "applied", "description": "Remote"})
        updated = local.update(job.id, {"status": "offer", "description": None})
        assert updated.status == "offer"
        assert updated.description is None
        assert updated.company == "Acme"
        assert updated.created_at == job.created_at
        assert local.get(job.id).status == "offer"

    def test_update_unknown_job(self, local):
        """Updating a missing job returns None."""
        assert local.update(99, {"status": "offer"}) is None

    def test_delete(self, local):
        """Delete reports whether a job was removed."""
        job = local.create({"company": "Acme", "position": "Dev", "status": "applied"})
        local.add_note(job.id, "first")
        assert local.delete(job.id) is True
        assert local.delete(job.id) is False
        assert local.load() == []

    def test_note_ids_are_per_job(self, local):
        """Note ids count up within each job, newest note first."""
        acme = local.create({"company": "Acme", "position": "Dev", "status": "applied"})
        globex = local.create({"company": "Globex", "position": "Dev", "status": "applied"})
        first = local.add_note(acme.id, "one")
        second = local.add_note(acme.id, "  two  ")
        other = local.add_note(globex.id, "three")
        assert (first.id, second.id, other.id) == (1, 2, 1)
        assert [note.content for note in local.get(acme.id).notes] == ["two", "one"]

    def test_note_for_unknown_job(self, local):
        """Notes on a missing job return None."""
        assert local.add_note(42, "hello") is None


class TestDashboardAndClear:
    """Aggregates and wiping guest data."""

    def test_dashboard_counts_and_recent_order(self, local):
        """Counts group by status and recent is newest created first."""
        local.save(
            [
                make_job(1, "Acme", "applied", created="2024-01-01T00:00:00"),
                make_job(2, "Globex", "interview", created="2024-03-01T00:00:00"),
                make_job(3, "Initech", "applied", created="2024-02-01T00:00:00"),
            ]
        )
        stats = local.dashboard_stats()
        assert stats.total == 3
        assert stats.by_status == {"applied": 2, "interview": 1}
        assert [job.company for job in stats.recent] == ["Globex", "Initech", "Acme"]

    def test_recent_is_capped(self, local_storage):
        """Recent holds at most recent_limit jobs."""
        store = LocalJobStore(local_storage, recent_limit=2)
        for index in range(4):
            store.create({"company": f"Co {index}", "position": "Dev", "status": "applied"})
        assert len(store.dashboard_stats().recent) == 2

    def test_clear_removes_jobs_and_legacy_notes(self, local_storage, local):
        """Clear removes both storage keys."""
        local.create({"company": "Acme", "position": "Dev", "status": "applied"})
        local_storage.set_item(NOTES_STORAGE_KEY, "[]")
        assert local.has_data()
        local.clear()
        assert not local.has_data()
        assert local_storage.get_item(JOBS_STORAGE_KEY) is None
        assert local_storage.get_item(NOTES_STORAGE_KEY) is None
