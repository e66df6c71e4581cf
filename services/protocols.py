"""
Service Protocol Definitions

This module defines typing.Protocol interfaces for services used by the
Moderation Queue. These protocols enable loose coupling, dependency
injection, and easier testing.

Protocols defined:
- PublisherProtocol: Interface for delivering a submission to its target page
- PageRouterProtocol: Interface for choosing a new submission's target page
"""

from typing import Optional, Protocol

from data.models import Submission
from services.publisher import PublishResult


class PublisherProtocol(Protocol):
    """Protocol defining the interface for publishing services.

    Implementations post one submission to the page it targets and report
    the outcome instead of raising, so batch publishing can record each
    item's result independently.
    """

    def publish(self, submission: Submission) -> PublishResult:
        """Post a submission's message to its target page.

        Args:
            submission: The approved submission to post.

        Returns:
            PublishResult with the post id on success or the error message on failure.
        """
        ...


class PageRouterProtocol(Protocol):
    """Protocol defining the interface for page routing."""

    def resolve(self, page_selector: Optional[str] = None) -> str:
        """Pick the target page key for a new submission.

        Args:
            page_selector: The page requested by the webhook caller, if any.

        Returns:
            A configured page key.
        """
        ...
