"""
Command line entry point.

    follownet collect-users
    follownet stats --codes data/accounts_coded.csv
    follownet collect-links --resume
    follownet export-graph --codes data/accounts_coded.csv
"""

import argparse
import json
import logging
import sys
from datetime import date
from typing import List, Optional

from follownet.orchestration.tasks import (
    collect_accounts,
    collect_links,
    describe_run,
    export_graph,
    summarize_codes,
)

logger = logging.getLogger("follownet")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="follownet",
        description="Collect keyword-matched accounts and export their follower network",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    parser.add_argument("-o", "--output-dir", help="Directory for CSV and GEXF files (default: settings.output_dir)")
    sub = parser.add_subparsers(dest="command", required=True)

    users = sub.add_parser("collect-users", help="Search accounts and write the coding sheet")
    users.add_argument("keywords", nargs="*", help="Keyword variants (default: settings.search_keywords)")

    stats = sub.add_parser("stats", help="Descriptive statistics over a coded sheet")
    stats.add_argument("--codes", required=True, help="Coded CSV")

    links = sub.add_parser("collect-links", help="Fetch follower links for collected accounts")
    links.add_argument("--resume", action="store_true", help="Skip accounts already in completed.csv or links.csv")
    links.add_argument("--start-at", type=int, default=1, help="1-based number of the first account")
    links.add_argument("--dataset-only", action="store_true", help="Keep only followers that are in the dataset")

    graph = sub.add_parser("export-graph", help="Write the GEXF network")
    graph.add_argument("--codes", help="Coded CSV; only coded accounts become nodes")
    graph.add_argument("--snapshot-date", type=date.fromisoformat, help="Download date, YYYY-MM-DD (default: today)")
    graph.add_argument("--output", help="GEXF path (default: <output-dir>/network.gexf)")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    try:
        if args.command == "collect-users":
            accounts = collect_accounts(args.keywords or None, args.output_dir)
            print(f"{len(accounts)} accounts collected")
        elif args.command == "stats":
            print(summarize_codes(args.codes))
        elif args.command == "collect-links":
            report = collect_links(
                args.output_dir,
                resume=args.resume,
                start_at=max(args.start_at - 1, 0),
                dataset_only=args.dataset_only,
            )
            print(json.dumps(describe_run(report), indent=2))
        elif args.command == "export-graph":
            graph = export_graph(args.output_dir, args.codes, args.snapshot_date, args.output)
            print(f"{graph.number_of_nodes()} nodes, {graph.number_of_edges()} edges")
    except (FileNotFoundError, ValueError) as e:
        logger.error(str(e))
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
