"""
Target Page Configuration Loader

Builds the immutable PageTable from a JSON file of the form:

    {
        "default": "page1",
        "pages": {
            "page1": {
                "name": "Main Page",
                "page_id": "1234567890",
                "access_token": "EAAB...",
                "message_prefix": "",
                "message_suffix": "#community"
            }
        }
    }

Access tokens may be left out of the file and supplied through the
environment as FB_ACCESS_TOKEN_<KEY> (key upper-cased, dashes as underscores).
"""

import json
import os
from typing import Any, Dict, Optional

from config import settings
from data.models import PageConfig, PageTable
from utils.exceptions import ConfigurationError
from utils.logger import get_logger

logger = get_logger(__name__)


def token_env_name(page_key: str) -> str:
    """Name of the environment variable holding a page's access token."""
    return settings.PAGE_TOKEN_ENV_PREFIX + page_key.upper().replace("-", "_")


def build_page_table(document: Dict[str, Any], default_key: Optional[str] = None) -> PageTable:
    """
    Build a PageTable from an already parsed configuration document.

    Args:
        document: Parsed page configuration.
        default_key: Overrides the document's "default" entry when given.

    Returns:
        PageTable: The validated page table.

    Raises:
        ConfigurationError: If the document is malformed or the default key is unknown.
    """
    if not isinstance(document, dict):
        raise ConfigurationError("Page configuration must be a JSON object")

    raw_pages = document.get("pages")
    if not isinstance(raw_pages, dict) or not raw_pages:
        raise ConfigurationError("Page configuration has no 'pages' object")

    pages = {}
    for key, entry in raw_pages.items():
        if not isinstance(entry, dict):
            raise ConfigurationError(f"Page '{key}' must be a JSON object")

        page_id = entry.get("page_id")
        if not page_id:
            raise ConfigurationError(f"Page '{key}' has no page_id")

        access_token = entry.get("access_token") or os.getenv(token_env_name(key), "")
        if not access_token:
            logger.warning(f"No access token configured for page '{key}' "
                           f"(set access_token or {token_env_name(key)})")

        pages[key] = PageConfig(
            key=key,
            name=entry.get("name") or key,
            page_id=str(page_id),
            access_token=access_token,
            message_prefix=entry.get("message_prefix") or "",
            message_suffix=entry.get("message_suffix") or "",
        )

    default = default_key or document.get("default")
    if not default:
        raise ConfigurationError("No default page key configured (set 'default' or DEFAULT_PAGE_KEY)")

    return PageTable(pages, default)


def load_page_table(path: Optional[str] = None, default_key: Optional[str] = None) -> PageTable:
    """
    Load the page table from a JSON file.

    Args:
        path: Configuration file. Defaults to settings.PAGES_FILE.
        default_key: Default page override. Defaults to settings.DEFAULT_PAGE_KEY.

    Returns:
        PageTable: The validated page table.

    Raises:
        ConfigurationError: If the file is missing, unreadable or invalid.
    """
    path = path or settings.PAGES_FILE
    default_key = default_key or settings.DEFAULT_PAGE_KEY

    try:
        with open(path, "r", encoding="utf-8") as f:
            document = json.load(f)
    except FileNotFoundError:
        raise ConfigurationError(f"Page configuration file not found: {path}")
    except (OSError, ValueError) as e:
        raise ConfigurationError(f"Could not read page configuration {path}: {e}") from e

    table = build_page_table(document, default_key)
    logger.info(f"Loaded {len(table)} target pages from {path} (default: {table.default_key})")
    return table
