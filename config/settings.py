"""
Configuration Settings for the Moderation Queue

This module centralizes all configuration settings for the Moderation Queue,
including environment variables, file locations, and application constants.
Validation lives in config.validators; the page table is loaded by config.pages.
"""

import os
from pathlib import Path
from dotenv import load_dotenv

# Determine the application root directory
APP_ROOT = Path(__file__).resolve().parent.parent

# Load environment variables from .env file
load_dotenv(dotenv_path=os.path.join(APP_ROOT, '.env'))


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_list(name: str, default: list) -> list:
    value = os.getenv(name)
    if not value:
        return list(default)
    return [item.strip() for item in value.split(",") if item.strip()]


# =============================================================================
# Storage Settings
# =============================================================================

DATA_FILE = os.getenv("DATA_FILE", os.path.join(APP_ROOT, "submissions.json"))
STORE_LOCK_TIMEOUT = float(os.getenv("STORE_LOCK_TIMEOUT", "10"))   # Seconds to wait for the store lock

# =============================================================================
# Target Page Settings
# =============================================================================

PAGES_FILE = os.getenv("PAGES_FILE", os.path.join(APP_ROOT, "pages.json"))
DEFAULT_PAGE_KEY = os.getenv("DEFAULT_PAGE_KEY") or None   # Overrides "default" in PAGES_FILE
PAGE_TOKEN_ENV_PREFIX = "FB_ACCESS_TOKEN_"                 # FB_ACCESS_TOKEN_PAGE1 etc.

# =============================================================================
# Facebook Graph API Settings
# =============================================================================

GRAPH_API_BASE_URL = os.getenv("GRAPH_API_BASE_URL", "https://graph.facebook.com")
GRAPH_API_VERSION = os.getenv("GRAPH_API_VERSION", "v21.0")
PUBLISH_TIMEOUT = float(os.getenv("PUBLISH_TIMEOUT", "15"))   # Seconds before a publish call is abandoned

# =============================================================================
# Field Detection Settings
# =============================================================================

# A field whose name contains this substring carries the message
MESSAGE_FIELD_SUBSTRING = "textarea"
# Exact field names that also carry the message (last match wins, like the substring)
MESSAGE_FIELD_NAMES = _env_list("MESSAGE_FIELD_NAMES", ["message", "text-1"])
# Checked in this order only when no message was found above; first present field wins
MESSAGE_FALLBACK_FIELDS = _env_list("MESSAGE_FALLBACK_FIELDS",
                                    ["textarea-1", "text-1", "message", "question", "content"])
# A field whose name contains this substring carries the contact email
EMAIL_FIELD_SUBSTRING = "email"

# =============================================================================
# Admin Listing Settings
# =============================================================================

SUBMISSIONS_PER_PAGE = int(os.getenv("SUBMISSIONS_PER_PAGE", "10"))
MAX_SUBMISSIONS_PER_PAGE = 100

# =============================================================================
# Web Server Settings
# =============================================================================

WEB_HOST = os.getenv("WEB_HOST", "127.0.0.1")
WEB_PORT = int(os.getenv("WEB_PORT", "5000"))

# =============================================================================
# Logging Settings
# =============================================================================

DEBUG_MODE = _env_bool("DEBUG_MODE", False)
LOG_FILE = os.getenv("LOG_FILE", os.path.join(APP_ROOT, "moderation_queue.log"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG" if DEBUG_MODE else "INFO").upper()
