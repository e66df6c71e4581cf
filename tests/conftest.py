"""
Shared Test Fixtures for the Moderation Queue

This module provides common fixtures used across all test modules.
Fixtures include a page table, a temporary submission store, submission
factories, a recording publisher, logging capture and HTTP response mocks.
"""

import pytest
from unittest.mock import MagicMock, patch
from typing import Optional, Dict, Any, List
import sys
import os

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from data.models import PageConfig, PageTable, Submission, SubmissionStatus
from data.store import JSONSubmissionStore
from services.publisher import PublishResult


# =============================================================================
# Page Configuration Fixtures
# =============================================================================

@pytest.fixture
def page_table():
    """
    Two configured pages, page1 being the default.

    page2 wraps messages with a prefix and a suffix.

    Returns:
        PageTable: The test page table.
    """
    return PageTable(
        {
            "page1": PageConfig(
                key="page1",
                name="Main Page",
                page_id="111",
                access_token="token-page1",
            ),
            "page2": PageConfig(
                key="page2",
                name="Questions Page",
                page_id="222",
                access_token="token-page2",
                message_prefix="Q:",
                message_suffix="#tag",
            ),
        },
        default_key="page1",
    )


@pytest.fixture
def pages_document():
    """Raw page configuration document as it appears in pages.json."""
    return {
        "default": "page1",
        "pages": {
            "page1": {"name": "Main Page", "page_id": "111", "access_token": "token-page1"},
            "page2": {
                "name": "Questions Page",
                "page_id": "222",
                "access_token": "token-page2",
                "message_prefix": "Q:",
                "message_suffix": "#tag",
            },
        },
    }


# =============================================================================
# Storage Fixtures
# =============================================================================

@pytest.fixture
def store(tmp_path):
    """
    A JSONSubmissionStore backed by a file in a temporary directory.

    The lock timeout is short so contention tests finish quickly.

    Returns:
        JSONSubmissionStore: An empty store.
    """
    return JSONSubmissionStore(str(tmp_path / "submissions.json"), lock_timeout=0.5)


# =============================================================================
# Data Model Factories
# =============================================================================

@pytest.fixture
def submission_factory():
    """
    Factory fixture for creating Submission test objects.

    Usage:
        def test_something(submission_factory):
            sub = submission_factory("sub_1", status=SubmissionStatus.APPROVED)

    Returns:
        callable: A factory function for creating Submission objects.
    """
    def _create_submission(
        id: str = "sub_1",
        message: str = "Test message",
        status: SubmissionStatus = SubmissionStatus.PENDING,
        target_page_key: Optional[str] = "page1",
        created_at: str = "2024-01-01 12:00:00",
        email: str = "user@example.com",
        form_data: Optional[Dict[str, Any]] = None,
        **kwargs
    ) -> Submission:
        """Create a Submission with sensible defaults."""
        return Submission(
            id=id,
            message=message,
            status=status,
            target_page_key=target_page_key,
            created_at=created_at,
            email=email,
            form_data=form_data if form_data is not None else {"textarea-1": message},
            **kwargs
        )

    return _create_submission


@pytest.fixture
def seeded_store(store, submission_factory):
    """
    A store holding one submission in each status.

    Returns:
        JSONSubmissionStore: The populated store.
    """
    store.save([
        submission_factory("sub_pending", created_at="2024-01-01 10:00:00"),
        submission_factory("sub_approved", status=SubmissionStatus.APPROVED,
                           created_at="2024-01-02 10:00:00"),
        submission_factory("sub_published", status=SubmissionStatus.PUBLISHED,
                           created_at="2024-01-03 10:00:00",
                           fb_post_id="111_999", published_at="2024-01-03 11:00:00"),
        submission_factory("sub_rejected", status=SubmissionStatus.REJECTED,
                           target_page_key="page2", created_at="2024-01-04 10:00:00"),
    ])
    return store


# =============================================================================
# Publisher Fixtures
# =============================================================================

class FakePublisher:
    """Publisher double that records calls and returns scripted results.

    Results are looked up by submission id; ids without a scripted result
    are published successfully as "post_<submission id>".

    Usage:
        def test_publish(fake_publisher):
            fake_publisher.results["sub_2"] = PublishResult.failed("boom")
    """

    def __init__(self):
        """Initialize with no calls and no scripted results."""
        self.calls: List[Submission] = []
        self.results: Dict[str, PublishResult] = {}

    def publish(self, submission: Submission) -> PublishResult:
        self.calls.append(submission)
        if submission.id in self.results:
            return self.results[submission.id]
        return PublishResult.ok(f"post_{submission.id}")

    @property
    def published_ids(self) -> List[str]:
        return [s.id for s in self.calls]


@pytest.fixture
def fake_publisher():
    """
    Provide a FakePublisher implementation of the publisher protocol.

    Returns:
        FakePublisher: A recording publisher.
    """
    return FakePublisher()


# =============================================================================
# Logging Fixtures
# =============================================================================

@pytest.fixture
def capture_logs():
    """
    Capture log messages for assertion in tests.

    Returns:
        list: A list that will contain captured log records.
    """
    import logging

    class LogCapture(logging.Handler):
        def __init__(self):
            super().__init__()
            self.records = []

        def emit(self, record):
            self.records.append(record)

    handler = LogCapture()
    handler.setLevel(logging.DEBUG)

    app_logger = logging.getLogger("moderation_queue")
    original_level = app_logger.level
    app_logger.setLevel(logging.DEBUG)
    app_logger.addHandler(handler)

    yield handler.records

    app_logger.removeHandler(handler)
    app_logger.setLevel(original_level)


# =============================================================================
# HTTP Response Fixtures
# =============================================================================

@pytest.fixture
def mock_http_response():
    """
    Factory fixture for creating mock HTTP responses.

    Usage:
        def test_http_request(mock_http_response):
            response = mock_http_response(
                status_code=200,
                json_data={'id': '111_222'}
            )

    Returns:
        callable: A factory function for creating mock responses.
    """
    def _create_response(
        status_code: int = 200,
        text: str = '',
        json_data: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> MagicMock:
        """
        Create a mock HTTP response object.

        Args:
            status_code: HTTP status code (default 200).
            text: Raw body text.
            json_data: Dictionary to return from response.json().
            headers: Response headers dictionary.

        Returns:
            MagicMock: A mock response object mimicking requests.Response.
        """
        import json

        mock_response = MagicMock()
        mock_response.status_code = status_code
        mock_response.headers = headers or {'Content-Type': 'application/json'}
        mock_response.ok = 200 <= status_code < 300
        mock_response.text = text or (json.dumps(json_data) if json_data is not None else '')

        # Configure json() method
        if json_data is not None:
            mock_response.json.return_value = json_data
        else:
            mock_response.json.side_effect = ValueError("No JSON data")

        return mock_response

    return _create_response


@pytest.fixture
def mock_requests(mock_http_response):
    """
    Mock the requests library for HTTP testing.

    Usage:
        def test_api_call(mock_requests):
            mock_requests.post.return_value = mock_requests.response(
                json_data={'id': '111_222'}
            )

    Returns:
        MagicMock: A mock requests module with response factory attached.
    """
    with patch('requests.post') as mock_post:
        mock_req = MagicMock()
        mock_req.post = mock_post
        mock_req.response = mock_http_response

        yield mock_req
