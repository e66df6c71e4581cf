"""
Moderation Service Module

This module implements the admin side of the queue: the submission status
state machine exposed as single-item and batch operations, plus the
listing queries the admin views are built on.

State machine:
    pending  -> approved | rejected
    approved -> published | rejected
    published, rejected: terminal
Delete is allowed from any status. Illegal transitions and unknown ids are
logged and skipped; they never affect the other submissions in a request.
"""

import math
import threading
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional, Tuple, Union

from config import settings
from data.models import PageTable, Submission, SubmissionStatus
from data.protocols import SubmissionStorage
from services.protocols import PublisherProtocol
from services.publisher import PublishResult
from utils.helpers import now_timestamp
from utils.logger import get_logger

logger = get_logger(__name__)

BATCH_ACTIONS = ("batch_approve", "batch_reject", "batch_publish", "batch_delete")


@dataclass
class SubmissionPage:
    """One page of a filtered, newest-first submission listing."""
    items: List[Submission]
    page: int
    per_page: int
    total: int
    total_pages: int


def parse_status(status: Union[str, SubmissionStatus, None]) -> Optional[SubmissionStatus]:
    """
    Turn a status filter into a SubmissionStatus; None or "all" means no filter.

    Raises:
        ValueError: If the status is not a known status name.
    """
    if status is None or isinstance(status, SubmissionStatus):
        return status
    if status == "all" or status == "":
        return None
    return SubmissionStatus(status)


class ModerationService:
    """Admin operations on the submission queue."""

    def __init__(self, store: SubmissionStorage, publisher: PublisherProtocol, page_table: PageTable):
        """
        Initialize the moderation service.

        Args:
            store: The submission store every mutation goes through.
            publisher: Delivers approved submissions to their target page.
            page_table: Configured pages, used to validate page changes.
        """
        self.store = store
        self.publisher = publisher
        self.page_table = page_table
        self._publishing = set()
        self._publishing_lock = threading.Lock()

    # -------------------------------------------------------------------------
    # Internal helpers
    # -------------------------------------------------------------------------

    def _apply(self, action: str, ids: Iterable[str],
               change: Callable[[Submission], None]) -> List[Submission]:
        """Run change on every requested submission inside one store transaction."""
        wanted = set(ids)

        def mutate(submissions: List[Submission]) -> List[Submission]:
            found = set()
            for submission in submissions:
                if submission.id in wanted:
                    found.add(submission.id)
                    change(submission)
            for missing in sorted(wanted - found):
                logger.warning(f"{action}: skipping unknown submission {missing}")
            return submissions

        return self.store.transact(mutate)

    def _transition(self, action: str, ids: Iterable[str], new_status: SubmissionStatus) -> List[Submission]:
        def change(submission: Submission) -> None:
            old_status = submission.status
            if submission.transition_to(new_status):
                logger.info(f"{action}: {submission.id} {old_status.value} -> {new_status.value}")
            else:
                logger.warning(f"{action}: {submission.id} cannot move from {old_status.value} "
                               f"to {new_status.value}")

        return self._apply(action, ids, change)

    def _effective_page_key(self, submission: Submission) -> str:
        return submission.target_page_key or self.page_table.default_key

    # -------------------------------------------------------------------------
    # Single-item operations
    # -------------------------------------------------------------------------

    def approve(self, submission_id: str) -> List[Submission]:
        """Approve a pending submission."""
        return self._transition("approve", [submission_id], SubmissionStatus.APPROVED)

    def reject(self, submission_id: str) -> List[Submission]:
        """Reject a pending or approved submission."""
        return self._transition("reject", [submission_id], SubmissionStatus.REJECTED)

    def publish(self, submission_id: str) -> List[Submission]:
        """Publish an approved submission; failures are recorded on the submission."""
        return self._publish("publish", [submission_id])

    def delete(self, submission_id: str) -> List[Submission]:
        """Remove a submission whatever its status."""
        return self._delete("delete", [submission_id])

    def change_page(self, submission_id: str, new_page_key: str) -> List[Submission]:
        """
        Retarget a submission that has not been published yet.

        Unknown page keys and published submissions are left untouched.
        """
        if new_page_key not in self.page_table:
            logger.warning(f"change_page: unknown page key '{new_page_key}' for {submission_id}, ignoring")
            return self.store.load()

        def change(submission: Submission) -> None:
            if submission.status == SubmissionStatus.PUBLISHED:
                logger.warning(f"change_page: {submission.id} is already published, page stays "
                               f"'{submission.target_page_key}'")
                return
            logger.info(f"change_page: {submission.id} {submission.target_page_key} -> {new_page_key}")
            submission.target_page_key = new_page_key

        return self._apply("change_page", [submission_id], change)

    # -------------------------------------------------------------------------
    # Batch operations
    # -------------------------------------------------------------------------

    def batch_approve(self, submission_ids: Iterable[str]) -> List[Submission]:
        """Approve every pending submission in the set."""
        return self._transition("batch_approve", submission_ids, SubmissionStatus.APPROVED)

    def batch_reject(self, submission_ids: Iterable[str]) -> List[Submission]:
        """Reject every pending or approved submission in the set."""
        return self._transition("batch_reject", submission_ids, SubmissionStatus.REJECTED)

    def batch_publish(self, submission_ids: Iterable[str]) -> List[Submission]:
        """Publish every approved submission in the set, each independently."""
        return self._publish("batch_publish", submission_ids)

    def batch_delete(self, submission_ids: Iterable[str]) -> List[Submission]:
        """Remove every submission in the set."""
        return self._delete("batch_delete", submission_ids)

    def run_batch(self, action: str, submission_ids: Iterable[str]) -> List[Submission]:
        """
        Dispatch a batch action by name.

        Raises:
            ValueError: If action is not one of BATCH_ACTIONS.
        """
        if action not in BATCH_ACTIONS:
            raise ValueError(f"Unknown batch action: {action}")
        return getattr(self, action)(submission_ids)

    # -------------------------------------------------------------------------
    # Delete and publish
    # -------------------------------------------------------------------------

    def _delete(self, action: str, ids: Iterable[str]) -> List[Submission]:
        wanted = set(ids)

        def mutate(submissions: List[Submission]) -> List[Submission]:
            kept = [s for s in submissions if s.id not in wanted]
            removed = {s.id for s in submissions} & wanted
            for submission_id in sorted(removed):
                logger.info(f"{action}: deleted {submission_id}")
            for missing in sorted(wanted - removed):
                logger.warning(f"{action}: skipping unknown submission {missing}")
            return kept

        return self.store.transact(mutate)

    def _claim_for_publishing(self, action: str, ids: Iterable[str]) -> List[Submission]:
        """Pick the approved submissions to publish and mark them in flight."""
        wanted = set(ids)
        claimed = []
        found = set()

        with self._publishing_lock:
            for submission in self.store.load():
                if submission.id not in wanted:
                    continue
                found.add(submission.id)
                if submission.status != SubmissionStatus.APPROVED:
                    logger.warning(f"{action}: {submission.id} is {submission.status.value}, "
                                   f"only approved submissions can be published")
                elif submission.id in self._publishing:
                    logger.warning(f"{action}: {submission.id} is already being published")
                else:
                    self._publishing.add(submission.id)
                    claimed.append(submission)

        for missing in sorted(wanted - found):
            logger.warning(f"{action}: skipping unknown submission {missing}")
        return claimed

    def _record_publish_results(self, action: str,
                                results: Dict[str, Tuple[str, PublishResult]]) -> List[Submission]:
        """Store each publish outcome on its submission in one transaction."""
        published_at = now_timestamp()

        def mutate(submissions: List[Submission]) -> List[Submission]:
            seen = set()
            for submission in submissions:
                if submission.id not in results:
                    continue
                seen.add(submission.id)
                page_key, result = results[submission.id]

                if submission.status != SubmissionStatus.APPROVED:
                    logger.warning(f"{action}: {submission.id} changed to {submission.status.value} "
                                   f"while publishing; outcome not recorded "
                                   f"(post id: {result.post_id}, error: {result.error})")
                elif result.success:
                    submission.target_page_key = page_key
                    submission.mark_published(result.post_id, published_at)
                else:
                    submission.mark_publish_failed(result.error)

            for gone in sorted(set(results) - seen):
                post_id = results[gone][1].post_id
                logger.warning(f"{action}: {gone} was deleted while publishing (post id: {post_id})")
            return submissions

        return self.store.transact(mutate)

    def _publish(self, action: str, ids: Iterable[str]) -> List[Submission]:
        """
        Publish outside the store lock, then record the outcomes.

        The external call can take up to the publish timeout per item, so the
        store is only locked to record results.
        """
        claimed = self._claim_for_publishing(action, ids)
        if not claimed:
            return self.store.load()

        results = {}
        try:
            for submission in claimed:
                page_key = self._effective_page_key(submission)
                results[submission.id] = (page_key, self.publisher.publish(submission))
        finally:
            try:
                if results:
                    updated = self._record_publish_results(action, results)
            finally:
                with self._publishing_lock:
                    self._publishing.difference_update(s.id for s in claimed)

        succeeded = sum(1 for _, r in results.values() if r.success)
        logger.info(f"{action}: {succeeded} of {len(results)} submissions published")
        return updated

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def get_submission(self, submission_id: str) -> Optional[Submission]:
        """Look up one submission by id."""
        return self.store.get(submission_id)

    def _filtered(self, submissions: List[Submission], status: Optional[SubmissionStatus],
                  page_key: Optional[str]) -> List[Submission]:
        if page_key:
            submissions = [s for s in submissions if self._effective_page_key(s) == page_key]
        if status:
            submissions = [s for s in submissions if s.status == status]
        return submissions

    def list_submissions(self, status: Union[str, SubmissionStatus, None] = None,
                         page_key: Optional[str] = None, page: int = 1,
                         per_page: Optional[int] = None) -> SubmissionPage:
        """
        List submissions newest first, filtered and paginated.

        Args:
            status: Only this status; None or "all" for every status.
            page_key: Only submissions targeting this page.
            page: 1-based page number, clamped to the available pages.
            per_page: Page size. Defaults to settings.SUBMISSIONS_PER_PAGE.

        Returns:
            SubmissionPage: The requested slice and paging totals.
        """
        status = parse_status(status)
        per_page = max(1, min(per_page or settings.SUBMISSIONS_PER_PAGE, settings.MAX_SUBMISSIONS_PER_PAGE))

        # Newest first; among equal timestamps the later stored entry first
        ordered = [s for _, s in sorted(enumerate(self.store.load()),
                                        key=lambda pair: (pair[1].created_at, pair[0]),
                                        reverse=True)]
        matching = self._filtered(ordered, status, page_key)

        total = len(matching)
        total_pages = max(1, math.ceil(total / per_page))
        page = min(max(1, page), total_pages)
        offset = (page - 1) * per_page

        return SubmissionPage(
            items=matching[offset:offset + per_page],
            page=page,
            per_page=per_page,
            total=total,
            total_pages=total_pages,
        )

    def status_counts(self, page_key: Optional[str] = None) -> Dict[str, int]:
        """
        Count submissions per status.

        Args:
            page_key: Only count submissions targeting this page.

        Returns:
            Dict[str, int]: Counts keyed by "all" and each status value.
        """
        submissions = self._filtered(self.store.load(), None, page_key)
        counts = {"all": len(submissions)}
        for status in SubmissionStatus:
            counts[status.value] = sum(1 for s in submissions if s.status == status)
        return counts
