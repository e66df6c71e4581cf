"""
Publisher Service Module

This module handles posting approved submissions to Facebook Pages through
the Graph API page feed endpoint. Each call is a single attempt: failures
are reported back to the caller as a PublishResult so they can be recorded
on the submission and retried by an admin.
"""

from dataclasses import dataclass
from typing import Optional

import requests

from config import settings
from data.models import PageConfig, PageTable, Submission
from utils.exceptions import PublishFailed, PublishingError, UnknownTargetPage
from utils.helpers import safe_get, truncate_text
from utils.logger import get_logger

logger = get_logger(__name__)

UNKNOWN_ERROR = "Unknown error"


@dataclass
class PublishResult:
    """Outcome of one publish attempt."""
    success: bool
    post_id: Optional[str] = None
    error: Optional[str] = None

    @classmethod
    def ok(cls, post_id: str) -> "PublishResult":
        return cls(success=True, post_id=post_id)

    @classmethod
    def failed(cls, error: str) -> "PublishResult":
        return cls(success=False, error=error)


def format_message(page: PageConfig, message: str) -> str:
    """
    Wrap a message in the page's prefix and suffix.

    Empty prefix or suffix parts are left out entirely, so no stray blank
    lines are added.

    Args:
        page: The target page configuration.
        message: The submission's message.

    Returns:
        str: prefix + blank line + message + blank line + suffix.
    """
    text = message
    if page.message_prefix:
        text = page.message_prefix + "\n\n" + text
    if page.message_suffix:
        text = text + "\n\n" + page.message_suffix
    return text


class FacebookPublisher:
    """Service for posting submissions to Facebook Page feeds."""

    def __init__(self, page_table: PageTable, api_base_url: Optional[str] = None,
                 api_version: Optional[str] = None, timeout: Optional[float] = None):
        """
        Initialize the publisher.

        Args:
            page_table: Configured target pages with their credentials.
            api_base_url: Graph API host. Defaults to settings.GRAPH_API_BASE_URL.
            api_version: Graph API version. Defaults to settings.GRAPH_API_VERSION.
            timeout: Seconds before a publish call is abandoned. Defaults to settings.PUBLISH_TIMEOUT.
        """
        self.page_table = page_table
        self.api_base_url = (api_base_url or settings.GRAPH_API_BASE_URL).rstrip("/")
        self.api_version = api_version or settings.GRAPH_API_VERSION
        self.timeout = timeout or settings.PUBLISH_TIMEOUT

    def feed_url(self, page: PageConfig) -> str:
        """Graph API feed-creation endpoint for a page."""
        return f"{self.api_base_url}/{self.api_version}/{page.page_id}/feed"

    def resolve_page(self, submission: Submission) -> PageConfig:
        """
        Find the page configuration a submission targets.

        Submissions stored before page routing existed have no key and go to
        the default page.

        Raises:
            UnknownTargetPage: If the key is not configured.
        """
        page_key = submission.target_page_key or self.page_table.default_key
        page = self.page_table.get(page_key)
        if page is None:
            raise UnknownTargetPage(page_key)
        return page

    def _post_to_feed(self, page: PageConfig, text: str) -> str:
        """
        Create the feed post and return its id.

        Raises:
            PublishFailed: If the API is unreachable or reports an error.
        """
        try:
            response = requests.post(
                self.feed_url(page),
                data={"message": text, "access_token": page.access_token},
                timeout=self.timeout,
            )
        except requests.Timeout as e:
            raise PublishFailed(f"Request to Facebook timed out after {self.timeout}s") from e
        except requests.RequestException as e:
            raise PublishFailed(f"Could not reach Facebook: {e}") from e

        try:
            data = response.json()
        except ValueError:
            data = None

        post_id = safe_get(data, "id")
        if response.status_code == 200 and post_id:
            return str(post_id)

        error = safe_get(data, "error", "message") or UNKNOWN_ERROR
        logger.warning(f"Facebook rejected post to page '{page.key}' (HTTP {response.status_code}): {error}")
        raise PublishFailed(str(error))

    def publish(self, submission: Submission) -> PublishResult:
        """
        Post a submission's message to its target page.

        Args:
            submission: The submission to post.

        Returns:
            PublishResult: The post id on success, or the error message on failure.
        """
        try:
            page = self.resolve_page(submission)
            text = format_message(page, submission.message)
            logger.info(f"Publishing {submission.id} to page '{page.key}' ({page.name}): "
                        f"{truncate_text(text, 60)!r}")
            post_id = self._post_to_feed(page, text)
        except PublishingError as e:
            logger.error(f"Failed to publish {submission.id}: {e}")
            return PublishResult.failed(str(e))

        logger.info(f"Published {submission.id} as Facebook post {post_id}")
        return PublishResult.ok(post_id)
