"""
Webhook Intake Service

Accepts a form builder's webhook payload, turns it into a pending
Submission routed to a target page, and appends it to the store.
"""

from typing import Any, Iterable, Mapping, Optional

from data.models import Submission, SubmissionStatus
from data.protocols import SubmissionStorage
from services.field_extractor import extract_fields
from services.protocols import PageRouterProtocol
from utils.helpers import generate_submission_id, now_timestamp
from utils.logger import get_logger

logger = get_logger(__name__)


class WebhookIntake:
    """Turns webhook payloads into stored pending submissions."""

    def __init__(self, store: SubmissionStorage, router: PageRouterProtocol,
                 message_field_names: Optional[Iterable[str]] = None):
        """
        Initialize the intake.

        Args:
            store: Where new submissions are appended.
            router: Chooses each submission's target page.
            message_field_names: Exact field names carrying the message, if not the configured ones.
        """
        self.store = store
        self.router = router
        self.message_field_names = message_field_names

    def receive(self, fields: Mapping[str, Any], page_selector: Optional[str] = None,
                ip_address: Optional[str] = None) -> Submission:
        """
        Store one webhook delivery as a pending submission.

        Args:
            fields: Field name to value mapping from the request body.
            page_selector: Requested target page (the ?page= parameter).
            ip_address: Address the request came from.

        Returns:
            Submission: The stored submission.

        Raises:
            NoDataReceived: If fields is empty.
            StorageError: If the submission could not be saved.
        """
        logger.info(f"Webhook received from {ip_address or 'unknown'}")

        extracted = extract_fields(fields, message_field_names=self.message_field_names)

        submission = Submission(
            id=generate_submission_id(),
            message=extracted.message,
            email=extracted.email,
            status=SubmissionStatus.PENDING,
            target_page_key=self.router.resolve(page_selector),
            form_data=extracted.form_data,
            created_at=now_timestamp(),
            ip_address=ip_address or "unknown",
        )

        self.store.append(submission)
        logger.info(f"Submission saved with ID: {submission.id} (page: {submission.target_page_key})")
        return submission
