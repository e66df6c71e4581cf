"""
Tests for Data Models and Helpers

Tests cover the Submission state machine, stored record conversion and
the small formatting helpers.
"""

import pytest
import sys
import os

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from data.models import ALLOWED_TRANSITIONS, Submission, SubmissionStatus
from utils.helpers import format_field_name, safe_get, truncate_text


# =============================================================================
# State Machine Tests
# =============================================================================

class TestSubmissionStateMachine:
    """Tests for Submission status transitions."""

    @pytest.mark.parametrize("old,new", [
        (SubmissionStatus.PENDING, SubmissionStatus.APPROVED),
        (SubmissionStatus.PENDING, SubmissionStatus.REJECTED),
        (SubmissionStatus.APPROVED, SubmissionStatus.PUBLISHED),
        (SubmissionStatus.APPROVED, SubmissionStatus.REJECTED),
    ])
    def test_allowed(self, submission_factory, old, new):
        """Transitions on the allowed list succeed."""
        submission = submission_factory(status=old)

        assert submission.transition_to(new) is True
        assert submission.status == new

    @pytest.mark.parametrize("old,new", [
        (SubmissionStatus.PENDING, SubmissionStatus.PUBLISHED),
        (SubmissionStatus.REJECTED, SubmissionStatus.APPROVED),
        (SubmissionStatus.PUBLISHED, SubmissionStatus.REJECTED),
        (SubmissionStatus.APPROVED, SubmissionStatus.PENDING),
    ])
    def test_forbidden(self, submission_factory, old, new):
        """Anything else leaves the status unchanged."""
        submission = submission_factory(status=old)

        assert submission.transition_to(new) is False
        assert submission.status == old

    def test_terminal_states(self):
        """Published and rejected have no way out."""
        assert ALLOWED_TRANSITIONS[SubmissionStatus.PUBLISHED] == frozenset()
        assert ALLOWED_TRANSITIONS[SubmissionStatus.REJECTED] == frozenset()

    def test_mark_published_clears_error(self, submission_factory):
        """A successful publish replaces an earlier failure."""
        submission = submission_factory(status=SubmissionStatus.APPROVED, error="Unknown error")

        submission.mark_published("111_2", "2024-01-01 00:00:00")

        assert submission.status == SubmissionStatus.PUBLISHED
        assert submission.fb_post_id == "111_2"
        assert submission.error is None

    def test_mark_publish_failed_keeps_status(self, submission_factory):
        """A failed publish only records the error."""
        submission = submission_factory(status=SubmissionStatus.APPROVED)

        submission.mark_publish_failed("boom")

        assert submission.status == SubmissionStatus.APPROVED
        assert submission.error == "boom"


# =============================================================================
# Record Conversion Tests
# =============================================================================

class TestSubmissionRecord:
    """Tests for to_dict / from_dict."""

    def test_to_dict_layout(self, submission_factory):
        """The stored record uses plain strings for the status."""
        record = submission_factory().to_dict()

        assert record["status"] == "pending"
        assert record["fb_post_id"] is None
        assert "extras" not in record

    def test_from_dict_requires_id(self):
        """Records without an id are invalid."""
        with pytest.raises(ValueError):
            Submission.from_dict({"status": "pending"})

    def test_from_dict_requires_known_status(self):
        """Records with an unknown status are invalid."""
        with pytest.raises(ValueError):
            Submission.from_dict({"id": "sub_1", "status": "archived"})

    def test_from_dict_rejects_non_object(self):
        """Records must be JSON objects."""
        with pytest.raises(ValueError):
            Submission.from_dict(["sub_1"])


# =============================================================================
# Helper Tests
# =============================================================================

class TestHelpers:
    """Tests for utils.helpers."""

    @pytest.mark.parametrize("raw,label", [
        ("first_name", "First Name"),
        ("email-1", "1"),
        ("textarea-1", "Textarea 1"),
        ("how-did-you-hear", "How Did You Hear"),
    ])
    def test_format_field_name(self, raw, label):
        """Generated field names become readable labels."""
        assert format_field_name(raw) == label

    def test_truncate_text(self):
        """Long text is cut with an ellipsis; short text is unchanged."""
        assert truncate_text("short", 10) == "short"
        assert truncate_text("a long sentence here", 6) == "a long..."

    def test_safe_get(self):
        """Nested lookups fall back to the default."""
        data = {"error": {"message": "bad"}}

        assert safe_get(data, "error", "message") == "bad"
        assert safe_get(data, "error", "code") is None
        assert safe_get(None, "id") is None
