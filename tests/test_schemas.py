"""Tests for payload decoding and the shared field rules."""

from datetime import datetime, timezone

import pytest

from jobsync.errors import ValidationError, ValidationFailure
from jobsync.schemas import JobApplication, JobCreate, JobUpdate, NoteCreate, decode


class TestJobCreate:
    """Create payload validation."""

    def test_trims_and_normalizes(self):
        """Text is trimmed, blanks become None and dates are parsed."""
        decoded = decode(
            JobCreate,
            {
                "company": "  Acme  ",
                "position": " Backend Engineer ",
                "status": "applied",
                "description": "",
                "jobUrl": " https://acme.example/jobs/1 ",
                "applyDate": "2024-03-01",
            },
        )
        assert decoded.ok
        job = decoded.value
        assert job.company == "Acme"
        assert job.position == "Backend Engineer"
        assert job.description is None
        assert job.job_url == "https://acme.example/jobs/1"
        assert job.apply_date == datetime(2024, 3, 1, tzinfo=timezone.utc)

    @pytest.mark.parametrize(
        "payload, failure, message",
        [
            ({"position": "Dev", "status": "applied"}, ValidationFailure.MISSING_FIELD, "Company is required"),
            ({"company": "  ", "position": "Dev", "status": "applied"}, ValidationFailure.EMPTY_FIELD, "Company is required"),
            ({"company": "Acme", "position": "Dev", "status": "ghosted"}, ValidationFailure.INVALID_STATUS, "Invalid status: ghosted"),
            ({"company": "A" * 121, "position": "Dev", "status": "applied"}, ValidationFailure.TOO_LONG, "Company must be at most 120 characters"),
            ({"company": "Acme", "position": "Dev", "status": "applied", "jobUrl": "ftp://x"}, ValidationFailure.INVALID_URL, None),
            ({"company": "Acme", "position": "Dev", "status": "applied", "applyDate": "someday"}, ValidationFailure.INVALID_DATE, None),
            ({"company": 42, "position": "Dev", "status": "applied"}, ValidationFailure.INVALID_TYPE, "Company must be a string"),
        ],
    )
    def test_failures_are_tagged(self, payload, failure, message):
        """Each rejection carries its failure kind and message."""
        decoded = decode(JobCreate, payload)
        assert not decoded.ok
        assert decoded.failure is failure
        if message:
            assert decoded.message == message

    def test_non_object_body(self):
        """A body that is not an object is a type failure."""
        decoded = decode(JobCreate, ["Acme"])
        assert decoded.failure is ValidationFailure.INVALID_TYPE

    def test_unwrap_raises_validation_error(self):
        """unwrap raises ValidationError with the failure reason."""
        with pytest.raises(ValidationError) as excinfo:
            decode(JobCreate, {"company": "Acme", "status": "applied"}).unwrap()
        assert excinfo.value.reason is ValidationFailure.MISSING_FIELD
        assert excinfo.value.message == "Position is required"
        assert excinfo.value.status_code == 400


class TestJobUpdate:
    """Partial update payloads."""

    def test_only_sent_fields_are_changes(self):
        """changes() holds only the fields that were sent."""
        update = decode(JobUpdate, {"status": "interview"}).unwrap()
        assert update.changes() == {"status": "interview"}

    def test_null_and_blank_clear_optional_fields(self):
        """None or blank clear optional fields."""
        update = decode(JobUpdate, {"description": None, "jobUrl": "", "applyDate": None}).unwrap()
        assert update.changes() == {"description": None, "job_url": None, "apply_date": None}

    def test_required_fields_cannot_be_blanked(self):
        """Required fields cannot be set to None."""
        decoded = decode(JobUpdate, {"company": None})
        assert decoded.failure is ValidationFailure.EMPTY_FIELD
        assert decoded.message == "Company must be a non-empty string"


class TestNoteAndJob:
    """Notes and stored job records."""

    def test_note_content_trimmed(self):
        """Note content is trimmed."""
        assert decode(NoteCreate, {"content": "  called back  "}).unwrap().content == "called back"

    def test_note_content_required(self):
        """Blank note content is rejected."""
        assert decode(NoteCreate, {"content": "   "}).failure is ValidationFailure.EMPTY_FIELD

    def test_job_reads_camel_case_and_naive_dates(self):
        """Stored jobs read camelCase keys and naive dates as UTC."""
        job = JobApplication.model_validate(
            {"id": 3, "company": "Acme", "position": "Dev", "status": "offer", "createdAt": "2024-01-02T10:00:00"}
        )
        assert job.created_at.tzinfo is not None
        assert job.effective_date == job.created_at
        assert job.notes == []
        payload = job.to_payload()
        assert payload["createdAt"].startswith("2024-01-02T10:00:00")
        assert "jobUrl" in payload
