"""
Data Models for the Moderation Queue

This module contains the data classes used throughout the application:
the persisted Submission record with its status state machine, and the
read-only page configuration the router and publisher are built from.
"""

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Iterator, Mapping, Optional, Tuple

from utils.exceptions import ConfigurationError


class SubmissionStatus(str, Enum):
    """Workflow status of a submission."""
    PENDING = "pending"
    APPROVED = "approved"
    PUBLISHED = "published"
    REJECTED = "rejected"


# Published and rejected are terminal
ALLOWED_TRANSITIONS = {
    SubmissionStatus.PENDING: frozenset({SubmissionStatus.APPROVED, SubmissionStatus.REJECTED}),
    SubmissionStatus.APPROVED: frozenset({SubmissionStatus.PUBLISHED, SubmissionStatus.REJECTED}),
    SubmissionStatus.PUBLISHED: frozenset(),
    SubmissionStatus.REJECTED: frozenset(),
}

# Serialization order of the stored record
SUBMISSION_FIELDS = (
    "id", "message", "email", "status", "target_page_key", "form_data",
    "created_at", "ip_address", "fb_post_id", "published_at", "error",
)

# Marks a known key that the stored record did not have
_ABSENT = object()


@dataclass
class Submission:
    """One form entry flowing through the moderation pipeline."""
    id: str
    message: str
    status: SubmissionStatus
    target_page_key: Optional[str]
    created_at: str
    email: str = ""
    form_data: Dict[str, Any] = field(default_factory=dict)
    ip_address: str = "unknown"
    fb_post_id: Optional[str] = None   # Graph API id, "{page-id}_{post-id}"
    published_at: Optional[str] = None
    error: Optional[str] = None
    extras: Dict[str, Any] = field(default_factory=dict)  # unknown keys kept from disk
    # known keys loaded as a substitute value: key -> (stored value, substitute)
    stored_as: Dict[str, Tuple[Any, Any]] = field(default_factory=dict, compare=False, repr=False)

    def can_transition_to(self, new_status: SubmissionStatus) -> bool:
        """Check whether the state machine allows moving to new_status."""
        return new_status in ALLOWED_TRANSITIONS[self.status]

    def transition_to(self, new_status: SubmissionStatus) -> bool:
        """
        Move to new_status if the state machine allows it.

        Returns:
            bool: True if the status changed, False if the move was illegal.
        """
        if not self.can_transition_to(new_status):
            return False
        self.status = new_status
        return True

    def mark_published(self, post_id: str, published_at: str) -> None:
        """Record a successful publish attempt."""
        self.status = SubmissionStatus.PUBLISHED
        self.fb_post_id = post_id
        self.published_at = published_at
        self.error = None

    def mark_publish_failed(self, error: str) -> None:
        """Record a failed publish attempt; the status stays approved for a retry."""
        self.error = error

    def to_dict(self) -> Dict[str, Any]:
        """
        Serialize to the stored JSON layout, known keys first in fixed order.

        A known key that was missing or null on load, and still holds the
        value substituted for it, is written back the way it was stored.
        """
        data = {}
        for key in SUBMISSION_FIELDS:
            value = getattr(self, key)
            if key in self.stored_as:
                stored, substitute = self.stored_as[key]
                if value == substitute:
                    if stored is _ABSENT:
                        continue
                    value = stored
            data[key] = value
        data["status"] = self.status.value
        data.update(self.extras)
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Submission":
        """
        Build a Submission from a stored record.

        Records written before multi-page support have no target_page_key;
        it is left as None and resolved to the default page when publishing.
        Missing or null fields get their usual defaults; to_dict() writes them
        back as stored unless they have been changed since.

        Raises:
            ValueError: If the record has no usable id or status.
        """
        if not isinstance(data, Mapping):
            raise ValueError(f"submission record must be an object, got {type(data).__name__}")

        sub_id = data.get("id")
        if not isinstance(sub_id, str) or not sub_id:
            raise ValueError("submission record has no id")

        try:
            status = SubmissionStatus(data.get("status"))
        except ValueError:
            raise ValueError(f"submission {sub_id} has invalid status {data.get('status')!r}")

        form_data = data.get("form_data") or {}
        if not isinstance(form_data, Mapping):
            raise ValueError(f"submission {sub_id} has invalid form_data")

        submission = cls(
            id=sub_id,
            message=data.get("message") or "",
            email=data.get("email") or "",
            status=status,
            target_page_key=data.get("target_page_key"),
            form_data=dict(form_data),
            created_at=data.get("created_at") or "",
            ip_address=data.get("ip_address") or "unknown",
            fb_post_id=data.get("fb_post_id"),
            published_at=data.get("published_at"),
            error=data.get("error"),
            extras={k: v for k, v in data.items() if k not in SUBMISSION_FIELDS},
        )

        for key in SUBMISSION_FIELDS:
            stored = data.get(key, _ABSENT)
            if stored is _ABSENT or stored != getattr(submission, key):
                loaded = getattr(submission, key)
                submission.stored_as[key] = (stored, dict(loaded) if isinstance(loaded, dict) else loaded)
        return submission


@dataclass(frozen=True)
class PageConfig:
    """Posting rules and credentials for one target page."""
    key: str
    name: str
    page_id: str
    access_token: str
    message_prefix: str = ""
    message_suffix: str = ""


class PageTable:
    """
    Immutable mapping of page key to PageConfig, plus the default key.

    The default key must name a configured page; this is checked once here
    rather than on every lookup.
    """

    def __init__(self, pages: Mapping[str, PageConfig], default_key: str):
        if not pages:
            raise ConfigurationError("No target pages configured")
        if default_key not in pages:
            raise ConfigurationError(
                f"Default page key '{default_key}' is not one of the configured pages: "
                f"{', '.join(pages)}"
            )
        self._pages = MappingProxyType(dict(pages))
        self._default_key = default_key

    @property
    def default_key(self) -> str:
        return self._default_key

    @property
    def default_page(self) -> PageConfig:
        return self._pages[self._default_key]

    def get(self, key: Optional[str]) -> Optional[PageConfig]:
        if key is None:
            return None
        return self._pages.get(key)

    def keys(self):
        return self._pages.keys()

    def values(self):
        return self._pages.values()

    def __contains__(self, key) -> bool:
        return key in self._pages

    def __iter__(self) -> Iterator[str]:
        return iter(self._pages)

    def __len__(self) -> int:
        return len(self._pages)

    def __repr__(self) -> str:
        return f"PageTable(pages={list(self._pages)}, default_key={self._default_key!r})"
