"""
Data Layer Protocol Definitions

This module defines typing.Protocol interfaces for data layer operations.
These protocols enable dependency injection for the submission store,
making services testable without touching the real submissions file.

Protocols defined:
- SubmissionStorage: Interface for loading and mutating the submission list
"""

from typing import Callable, List, Optional, Protocol

from data.models import Submission


class SubmissionStorage(Protocol):
    """Protocol defining the interface for submission storage operations.

    Implementations should provide methods for:
    - Loading and atomically replacing the whole submission list
    - Appending a new submission without losing concurrent writes
    - Running a read-modify-write cycle under exclusive access

    This protocol abstracts the persistence layer, allowing services to work
    with any compatible backend (JSON file, embedded database, in-memory fake).
    """

    def load(self) -> List[Submission]:
        """Read every stored submission.

        Returns:
            The stored submissions in stored order; empty if nothing is stored.
        """
        ...

    def save(self, submissions: List[Submission]) -> None:
        """Atomically replace the stored submissions.

        Args:
            submissions: The complete new submission list.
        """
        ...

    def append(self, submission: Submission) -> None:
        """Add one submission at the end of the list.

        Args:
            submission: The new submission; its id must not already be stored.
        """
        ...

    def transact(self, fn: Callable[[List[Submission]], List[Submission]]) -> List[Submission]:
        """Load, apply fn and save under exclusive access.

        Args:
            fn: Receives the current list and returns the list to store.

        Returns:
            The list that was stored.
        """
        ...

    def get(self, submission_id: str) -> Optional[Submission]:
        """Look up one submission by id.

        Args:
            submission_id: The id to look for.

        Returns:
            The submission, or None if no such id is stored.
        """
        ...
