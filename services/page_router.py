"""
Page Router Module

Decides which target page a new submission belongs to.
"""

from typing import Optional

from data.models import PageTable
from utils.logger import get_logger

logger = get_logger(__name__)


class PageRouter:
    """Resolves the target page key for incoming submissions."""

    def __init__(self, page_table: PageTable):
        """
        Initialize the router.

        Args:
            page_table: The configured pages; its default key is the fallback.
        """
        self.page_table = page_table

    def resolve(self, page_selector: Optional[str] = None) -> str:
        """
        Pick the target page key for a submission.

        Args:
            page_selector: The page requested by the caller (the ?page= parameter).

        Returns:
            str: page_selector if it names a configured page, else the default key.
        """
        if page_selector and page_selector in self.page_table:
            logger.info(f"Target page set to: {page_selector} (from URL parameter)")
            return page_selector

        default_key = self.page_table.default_key
        if page_selector:
            logger.warning(f"Using default page: {default_key} (invalid parameter: {page_selector})")
        else:
            logger.info(f"Using default page: {default_key} (no parameter provided)")
        return default_key
