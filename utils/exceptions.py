"""
Custom Exception Classes for the Moderation Queue

This module defines custom exceptions for better error handling and
categorization of failures across the application.
"""


class ModerationQueueError(Exception):
    """Base exception for all Moderation Queue application errors."""
    pass


# =============================================================================
# Configuration Errors
# =============================================================================

class ConfigurationError(ModerationQueueError):
    """Raised when configuration validation fails or required settings are missing."""
    pass


# =============================================================================
# Storage Errors
# =============================================================================

class StorageError(ModerationQueueError):
    """Base exception for submission store errors."""
    pass


class StorageIOError(StorageError):
    """Raised when the submissions file cannot be read or written."""
    pass


class StorageCorrupt(StorageError):
    """Raised when the submissions file exists but does not hold a valid submission list."""
    pass


class StorageBusy(StorageError):
    """Raised when the store lock cannot be acquired within the configured timeout."""
    pass


class DuplicateSubmissionError(StorageError):
    """Raised when a write would store two submissions with the same id."""
    pass


# =============================================================================
# Intake Errors
# =============================================================================

class IntakeError(ModerationQueueError):
    """Base exception for webhook intake errors."""
    pass


class NoDataReceived(IntakeError):
    """Raised when a webhook delivers no form fields at all."""
    pass


# =============================================================================
# Publishing Errors
# =============================================================================

class PublishingError(ModerationQueueError):
    """Base exception for errors while publishing to a target page."""
    pass


class UnknownTargetPage(PublishingError):
    """Raised when a submission points at a page key missing from the page table."""

    def __init__(self, page_key):
        self.page_key = page_key
        super().__init__(f"Invalid target page: {page_key}")


class PublishFailed(PublishingError):
    """Raised when the posting API rejects the post or cannot be reached."""
    pass
