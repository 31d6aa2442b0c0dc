"""
Workflow Orchestration

Coordinates the network study, one task per step:
1. Account collection (keyword search, filtering, deduplication)
2. Coding sheet export for manual coding
3. Descriptive statistics over the coded sheet
4. Follower link collection (rate limited, resumable)
5. Graph export (codes merged onto accounts, GEXF for Gephi)

Step 2 is done by hand between steps 1 and 3, so each task reads its
inputs from and writes its outputs to the output directory.
"""

import logging
import os
from datetime import date
from typing import Dict, List, Optional

import networkx as nx

from follownet.analysis.coding import merge_codes, read_codes, write_coding_sheet
from follownet.analysis.stats import describe_codes, render_report
from follownet.collectors.links import collect_follower_links
from follownet.collectors.users import collect_users
from follownet.config import get_settings
from follownet.export.graph import build_graph, write_graph
from follownet.services.types import Account, FollowerLink, LinkCollectionReport
from follownet.services.x_client import XClient
from follownet.storage.tables import (
    accounts_to_frame,
    append_completed,
    append_links,
    completed_targets,
    load_accounts,
    load_completed,
    load_links,
    save_accounts,
)

logger = logging.getLogger(__name__)

ACCOUNTS_FILE = "accounts.csv"
CODING_SHEET_FILE = "accounts_to_code.csv"
LINKS_FILE = "links.csv"
COMPLETED_FILE = "completed.csv"
GRAPH_FILE = "network.gexf"


def output_path(name: str, output_dir: Optional[str] = None) -> str:
    return os.path.join(output_dir or get_settings().output_dir, name)


def collect_accounts(
    keywords: Optional[List[str]] = None,
    output_dir: Optional[str] = None,
    client: Optional[XClient] = None,
) -> List[Account]:
    """
    Collect matching accounts and write them with a coding sheet.

    Args:
        keywords: Keyword variants (default: settings.search_keywords)
        output_dir: Where accounts.csv and the coding sheet go
        client: X API client (default: one built from settings)

    Returns:
        The collected accounts
    """
    accounts = collect_users(keywords, client)
    if not accounts:
        logger.warning("No accounts collected, nothing written")
        return accounts

    save_accounts(accounts, output_path(ACCOUNTS_FILE, output_dir))
    write_coding_sheet(accounts, output_path(CODING_SHEET_FILE, output_dir))
    return accounts


def summarize_codes(codes_path: str) -> str:
    """Read a coded sheet and render its descriptive statistics."""
    codes = read_codes(codes_path)
    return render_report(describe_codes(codes))


def collect_links(
    output_dir: Optional[str] = None,
    resume: bool = False,
    start_at: int = 0,
    dataset_only: bool = False,
    client: Optional[XClient] = None,
) -> LinkCollectionReport:
    """
    Collect follower links for every account in accounts.csv.

    Links are appended to links.csv and the account id to completed.csv
    after each account, so an interrupted run can be resumed without
    fetching finished accounts again, including those that gave no links.

    Args:
        output_dir: Directory holding accounts.csv and links.csv
        resume: Skip accounts in completed.csv or present as targets in links.csv
        start_at: Index of the first account to process
        dataset_only: Keep only links whose follower is in the dataset
        client: X API client (default: one built from settings)

    Returns:
        LinkCollectionReport for this run

    Raises:
        ValueError: If the API token is not configured
    """
    settings = get_settings()
    client = client or XClient()
    if not client.is_configured():
        raise ValueError("X_BEARER_TOKEN is not configured")

    accounts = load_accounts(output_path(ACCOUNTS_FILE, output_dir))
    links_path = output_path(LINKS_FILE, output_dir)
    completed_path = output_path(COMPLETED_FILE, output_dir)

    largest = max((a.followers_count for a in accounts), default=0)
    if largest > settings.max_followers_per_account:
        logger.warning(
            f"Largest account has {largest} followers, above the "
            f"{settings.max_followers_per_account} fetched per account"
        )

    completed = set()
    if resume:
        completed = completed_targets(links_path) | load_completed(completed_path)
        logger.info(f"Resuming: {len(completed)} accounts already done")
    else:
        for path in (links_path, completed_path):
            if os.path.exists(path):
                logger.warning(f"Starting over, replacing {path}")
                os.remove(path)

    def checkpoint(account: Account, links: List[FollowerLink]) -> None:
        append_links(links, links_path)
        append_completed(account.user_id, completed_path)

    _, report = collect_follower_links(
        accounts,
        client=client,
        start_at=start_at,
        completed=completed,
        dataset_only=dataset_only,
        on_account=checkpoint,
    )

    logger.info(
        f"Links: {report.links} from {report.processed} accounts "
        f"({report.skipped} without followers, {len(report.failed)} failed)"
    )
    return report


def export_graph(
    output_dir: Optional[str] = None,
    codes_path: Optional[str] = None,
    snapshot_date: Optional[date] = None,
    graph_path: Optional[str] = None,
) -> nx.DiGraph:
    """
    Build the follower graph and write it as GEXF.

    Args:
        output_dir: Directory holding accounts.csv and links.csv
        codes_path: Coded sheet; when given only coded accounts become nodes
        snapshot_date: Download date closing every node's time range
        graph_path: Destination (default: <output_dir>/network.gexf)

    Returns:
        The graph as written
    """
    settings = get_settings()
    accounts = load_accounts(output_path(ACCOUNTS_FILE, output_dir))
    links = load_links(output_path(LINKS_FILE, output_dir))

    if codes_path:
        nodes = merge_codes(accounts, read_codes(codes_path))
    else:
        logger.info("No codes given, exporting uncoded accounts")
        nodes = accounts_to_frame(accounts)

    graph = build_graph(nodes, links, snapshot_date or settings.snapshot_date)
    write_graph(graph, graph_path or output_path(GRAPH_FILE, output_dir))
    return graph


def describe_run(report: LinkCollectionReport) -> Dict:
    """Summary of a link collection run for display."""
    return {
        "processed": report.processed,
        "skipped": report.skipped,
        "failed": report.failed,
        "truncated": report.truncated,
        "links": report.links,
        "elapsed_minutes": round(report.elapsed_seconds / 60, 2),
    }
