"""
Helper Utility Module

This module provides various helper functions used throughout the Moderation Queue.
"""

import os
import uuid
from datetime import datetime
from typing import Any, Dict

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"

# Prefixes the form builder puts in front of its generated field names
FIELD_NAME_PREFIXES = ['text-', 'email-', 'name-', 'phone-', 'select-', 'radio-', 'checkbox-']


def generate_submission_id() -> str:
    """Return a new opaque submission id."""
    return f"sub_{uuid.uuid4().hex}"


def now_timestamp() -> str:
    """Return the current local time in the store's timestamp format."""
    return datetime.now().strftime(TIMESTAMP_FORMAT)


def truncate_text(text: str, max_length: int = 100, add_ellipsis: bool = True) -> str:
    """
    Truncate text to a maximum length.

    Args:
        text: The text to truncate
        max_length: Maximum length
        add_ellipsis: Whether to add an ellipsis if text is truncated

    Returns:
        str: Truncated text
    """
    if not text or len(text) <= max_length:
        return text

    truncated = text[:max_length].rstrip()
    if add_ellipsis:
        truncated += "..."

    return truncated


def format_field_name(field_name: str) -> str:
    """
    Turn a generated form field name into a readable label.

    "text-1" becomes "1", "first_name" becomes "First Name".

    Args:
        field_name: The raw field name

    Returns:
        str: Human readable label
    """
    for prefix in FIELD_NAME_PREFIXES:
        field_name = field_name.replace(prefix, '')
    words = field_name.replace('-', ' ').replace('_', ' ').split(' ')
    return ' '.join(word[:1].upper() + word[1:] for word in words)


def safe_get(data: Dict[str, Any], *keys, default: Any = None) -> Any:
    """
    Safely get a value from a nested dictionary.

    Args:
        data: The dictionary to search
        *keys: The keys to follow
        default: Default value if key doesn't exist

    Returns:
        The value at the specified keys or the default value
    """
    for key in keys:
        try:
            data = data[key]
        except (KeyError, TypeError, IndexError):
            return default
    return data


def ensure_dir_exists(directory: str) -> None:
    """
    Ensure a directory exists, creating it if necessary.

    Args:
        directory: The directory path to check/create
    """
    if directory and not os.path.exists(directory):
        os.makedirs(directory, exist_ok=True)
