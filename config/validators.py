"""
Configuration Validation for the Moderation Queue

This module contains configuration validation logic.
Kept apart from settings.py so settings stays a plain list of constants.
"""

import os

from utils.exceptions import ConfigurationError


def validate_settings():
    """
    Validate that all required settings are properly configured.

    Raises:
        ConfigurationError: If required settings are missing or invalid.
    """
    # Import settings here to avoid circular imports
    from config import settings
    from config.pages import load_page_table

    errors = []

    # Data file directory must exist or be creatable by the store
    data_dir = os.path.dirname(os.path.abspath(settings.DATA_FILE))
    if os.path.exists(data_dir) and not os.access(data_dir, os.W_OK):
        errors.append(f"Data directory is not writable: {data_dir}")

    if os.path.isdir(settings.DATA_FILE):
        errors.append(f"DATA_FILE points at a directory: {settings.DATA_FILE}")

    # Page table must load and its default must be a configured page
    try:
        load_page_table()
    except ConfigurationError as e:
        errors.append(str(e))

    if not settings.MESSAGE_FIELD_NAMES:
        errors.append("MESSAGE_FIELD_NAMES must list at least one field name")

    # Validate numeric settings are within reasonable bounds
    numeric_validations = [
        ("SUBMISSIONS_PER_PAGE", settings.SUBMISSIONS_PER_PAGE, 1, settings.MAX_SUBMISSIONS_PER_PAGE),
        ("WEB_PORT", settings.WEB_PORT, 1, 65535),
    ]

    for name, value, min_val, max_val in numeric_validations:
        if value < min_val or value > max_val:
            errors.append(f"{name} must be between {min_val} and {max_val}, got {value}")

    # Validate timeout values are positive
    timeout_settings = [
        ("PUBLISH_TIMEOUT", settings.PUBLISH_TIMEOUT),
        ("STORE_LOCK_TIMEOUT", settings.STORE_LOCK_TIMEOUT),
    ]

    for name, value in timeout_settings:
        if value <= 0:
            errors.append(f"{name} must be positive, got {value}")

    # Raise all errors at once
    if errors:
        error_msg = "Configuration validation failed:\n" + "\n".join(f"  - {e}" for e in errors)
        raise ConfigurationError(error_msg)

    return True


def get_config_summary() -> dict:
    """
    Returns a summary of current configuration (without sensitive values).
    Useful for logging startup state.
    """
    # Import settings here to avoid circular imports
    from config import settings

    return {
        "storage": {
            "data_file": str(settings.DATA_FILE),
            "lock_timeout": settings.STORE_LOCK_TIMEOUT,
        },
        "pages": {
            "pages_file": str(settings.PAGES_FILE),
            "default_override": settings.DEFAULT_PAGE_KEY,
        },
        "graph_api": {
            "base_url": settings.GRAPH_API_BASE_URL,
            "version": settings.GRAPH_API_VERSION,
            "timeout": settings.PUBLISH_TIMEOUT,
        },
        "field_detection": {
            "message_substring": settings.MESSAGE_FIELD_SUBSTRING,
            "message_fields": list(settings.MESSAGE_FIELD_NAMES),
            "message_fallback_fields": list(settings.MESSAGE_FALLBACK_FIELDS),
            "email_substring": settings.EMAIL_FIELD_SUBSTRING,
        },
        "web": {
            "host": settings.WEB_HOST,
            "port": settings.WEB_PORT,
        },
        "debug_mode": settings.DEBUG_MODE,
    }
