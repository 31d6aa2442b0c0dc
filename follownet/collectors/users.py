"""
User Collector

Retrieves accounts for several keyword variants, drops false positives and
duplicates. The search API matches loosely (e.g. "citizen of the world,
science addict" comes back for "citizen science"), so every result is
checked for a literal keyword in its screen name, name or description.
"""

import logging
import re
from typing import Iterable, List, Optional

from follownet.collectors.base import BaseCollector
from follownet.config import get_settings
from follownet.services.types import Account
from follownet.services.x_client import XClient

logger = logging.getLogger(__name__)


def keyword_pattern(keywords: Iterable[str]) -> re.Pattern:
    """Case-insensitive alternation matching any keyword literally."""
    keywords = [k for k in keywords if k]
    if not keywords:
        raise ValueError("At least one keyword is required")
    return re.compile("|".join(re.escape(k) for k in keywords), re.IGNORECASE)


def matches_keywords(account: Account, pattern: re.Pattern) -> bool:
    text = f"{account.screen_name} {account.name} {account.description}"
    return pattern.search(text) is not None


def deduplicate(accounts: Iterable[Account]) -> List[Account]:
    """Keep the first occurrence of each user_id, preserving order."""
    seen = set()
    unique = []
    for account in accounts:
        if account.user_id in seen:
            continue
        seen.add(account.user_id)
        unique.append(account)
    return unique


class UserCollector(BaseCollector):
    """Collects accounts matching a set of keyword variants."""

    def __init__(self, client: Optional[XClient] = None, max_results: Optional[int] = None):
        super().__init__(client)
        self.max_results = max_results or get_settings().search_max_results

    def get_name(self) -> str:
        return "users"

    def search(self, keyword: str) -> List[Account]:
        """Search one keyword variant. Failures yield an empty list."""
        try:
            return self.client.search_users(keyword, self.max_results)
        except Exception as e:
            logger.warning(f"Search failed for '{keyword}': {e}")
            return []

    def collect(self, keywords: Optional[List[str]] = None) -> List[Account]:
        """
        Search every keyword, then filter and deduplicate.

        Args:
            keywords: Keyword variants (default: settings.search_keywords)

        Returns:
            Unique matching accounts in retrieval order
        """
        keywords = keywords or get_settings().search_keywords
        pattern = keyword_pattern(keywords)

        retrieved: List[Account] = []
        for keyword in keywords:
            results = self.search(keyword)
            logger.info(f"'{keyword}': {len(results)} accounts")
            retrieved.extend(results)

        matching = [a for a in retrieved if matches_keywords(a, pattern)]
        unique = deduplicate(matching)

        logger.info(
            f"Accounts: {len(retrieved)} retrieved, {len(matching)} matching, "
            f"{len(unique)} unique"
        )
        return unique


def collect_users(keywords: Optional[List[str]] = None, client: Optional[XClient] = None) -> List[Account]:
    """
    Collect keyword-matched accounts.

    Args:
        keywords: Keyword variants (default: settings.search_keywords)
        client: X API client (default: one built from settings)

    Returns:
        Unique matching accounts
    """
    collector = UserCollector(client)
    if not collector.client.is_configured():
        logger.warning("X_BEARER_TOKEN not configured, no accounts collected")
        return []
    return collector.collect(keywords)
