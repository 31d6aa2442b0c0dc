"""
Follower Link Collector

Builds the follower/followee links among collected accounts. A link A -> B
can be traced either through A's followees or through B's followers, so
only followers are fetched: one followers/ids crawl per account.

The loop is incremental and resumable:
- accounts are processed in order, from a start index
- ids already completed in an earlier run are skipped
- each account's links are handed to a callback as soon as they are known
- after every account the followers/ids window is checked and, once
  exhausted, the loop sleeps until it resets
- accounts that fail are retried in extra passes at the end
"""

import logging
import time
from datetime import datetime
from typing import Callable, Iterable, List, Optional, Set, Tuple

from follownet.collectors.base import BaseCollector
from follownet.config import get_settings
from follownet.services.rate_limit import wait_for_reset
from follownet.services.types import Account, FollowerLink, LinkCollectionReport, RateLimitStatus
from follownet.services.x_client import FOLLOWERS_IDS_PATH, XClient

logger = logging.getLogger(__name__)

AccountCallback = Callable[[Account, List[FollowerLink]], None]


class FollowerLinkCollector(BaseCollector):
    """Collects follower links for a list of accounts, one account at a time."""

    def __init__(
        self,
        client: Optional[XClient] = None,
        retry_passes: Optional[int] = None,
        dataset_only: bool = False,
        on_account: Optional[AccountCallback] = None,
    ):
        """
        Initialize the collector.

        Args:
            client: X API client (default: one built from settings)
            retry_passes: Extra passes over failed accounts (default: settings.link_retry_passes)
            dataset_only: Keep only links whose follower is one of the accounts
            on_account: Called with each account and its links once fetched
        """
        super().__init__(client)
        settings = get_settings()
        self.retry_passes = settings.link_retry_passes if retry_passes is None else retry_passes
        self.dataset_only = dataset_only
        self.on_account = on_account
        self.rate_limit_margin = settings.rate_limit_margin

    def get_name(self) -> str:
        return "follower_links"

    def collect(
        self,
        accounts: List[Account],
        start_at: int = 0,
        completed: Iterable[str] = (),
    ) -> Tuple[List[FollowerLink], LinkCollectionReport]:
        """
        Collect follower links for every account.

        Args:
            accounts: Accounts whose followers are fetched (link targets)
            start_at: Index of the first account to process
            completed: Account ids already collected in an earlier run

        Returns:
            Tuple of (links, report)
        """
        completed = set(completed)
        dataset_ids = {a.user_id for a in accounts} if self.dataset_only else set()
        report = LinkCollectionReport()
        links: List[FollowerLink] = []

        started = time.time()
        logger.info(f"Starting at {datetime.now().isoformat(timespec='seconds')}")

        pending = [
            (i, account)
            for i, account in enumerate(accounts)
            if i >= start_at and account.user_id not in completed
        ]
        if len(pending) < len(accounts):
            logger.info(f"Skipping {len(accounts) - len(pending)} accounts already done or before #{start_at + 1}")

        failed = self._run_pass(pending, dataset_ids, links, report)

        for retry in range(self.retry_passes):
            if not failed:
                break
            logger.info(f"Retry pass {retry + 1}: {len(failed)} failed accounts")
            failed = self._run_pass(failed, dataset_ids, links, report)

        report.failed = [account.user_id for _, account in failed]
        report.elapsed_seconds = time.time() - started

        logger.info(f"Time elapsed: {report.elapsed_seconds / 60:.2f} mins")
        if report.failed:
            logger.warning(f"Links missing for {len(report.failed)} accounts: {', '.join(report.failed)}")

        return links, report

    def _run_pass(
        self,
        items: List[Tuple[int, Account]],
        dataset_ids: Set[str],
        links: List[FollowerLink],
        report: LinkCollectionReport,
    ) -> List[Tuple[int, Account]]:
        """Process accounts once, returning those that failed."""
        failed = []

        for i, account in items:
            logger.info(f"User #{i + 1} ---> Start")

            if account.followers_count == 0:
                report.skipped += 1
                logger.info(f"User #{i + 1} ---> Done (no followers)")
                continue

            account_links = self._collect_account(account, dataset_ids, report)
            if account_links is None:
                failed.append((i, account))
            else:
                links.extend(account_links)
                report.links += len(account_links)
                report.processed += 1
                if self.on_account:
                    self.on_account(account, account_links)
                logger.info(f"User #{i + 1} ---> Done")

            self._respect_rate_limit()

        return failed

    def _collect_account(
        self,
        account: Account,
        dataset_ids: Set[str],
        report: LinkCollectionReport,
    ) -> Optional[List[FollowerLink]]:
        try:
            followers = self.client.get_follower_ids(account.user_id)
        except Exception as e:
            logger.warning(f"Failed to fetch followers of @{account.screen_name}: {e}")
            return None

        if followers is None:
            logger.warning(f"No followers fetched for @{account.screen_name} ({account.user_id})")
            return None

        if followers.truncated and account.user_id not in report.truncated:
            report.truncated.append(account.user_id)

        return [
            FollowerLink(source=follower_id, target=account.user_id)
            for follower_id in followers.ids
            if not dataset_ids or follower_id in dataset_ids
        ]

    def _respect_rate_limit(self) -> None:
        """Sleep until the followers/ids window resets if it is used up."""
        status: Optional[RateLimitStatus] = self.client.rate_limits.get(FOLLOWERS_IDS_PATH)
        if status is None:
            status = self.client.get_rate_limit("followers", "/followers/ids")
        wait_for_reset(status, self.rate_limit_margin)


def collect_follower_links(
    accounts: List[Account],
    client: Optional[XClient] = None,
    start_at: int = 0,
    completed: Iterable[str] = (),
    dataset_only: bool = False,
    on_account: Optional[AccountCallback] = None,
) -> Tuple[List[FollowerLink], LinkCollectionReport]:
    """
    Collect follower links for accounts.

    Args:
        accounts: Accounts whose followers are fetched
        client: X API client (default: one built from settings)
        start_at: Index of the first account to process
        completed: Account ids to skip
        dataset_only: Keep only links between accounts
        on_account: Checkpoint callback per account

    Returns:
        Tuple of (links, report)
    """
    collector = FollowerLinkCollector(client, dataset_only=dataset_only, on_account=on_account)
    return collector.collect(accounts, start_at=start_at, completed=completed)
