"""
GEXF export of the follower network.

Nodes are the (coded) accounts, edges the follower links between them.
Each node lives from its account creation date to the download date, so
the network can be replayed over time in Gephi.
"""

import logging
import os
from datetime import date
from typing import Iterable, Optional

import networkx as nx
import pandas as pd

from follownet.services.types import FollowerLink

logger = logging.getLogger(__name__)

TEXT_ATTRIBUTES = [
    "description",
    "url",
    "location",
    "lang",
    "screen_name",
    "type1",
    "type2",
    "field",
    "gender",
]
COUNT_ATTRIBUTES = ["followers_count", "friends_count", "statuses_count"]


def _text(value) -> str:
    if value is None or (isinstance(value, float) and pd.isna(value)):
        return ""
    return str(value)


def _count(value) -> int:
    if value is None or value == "" or (isinstance(value, float) and pd.isna(value)):
        return 0
    return int(float(value))


def _start_date(value) -> Optional[str]:
    if value is None or value == "" or (isinstance(value, float) and pd.isna(value)):
        return None
    try:
        return pd.to_datetime(value, utc=True).date().isoformat()
    except (ValueError, TypeError):
        logger.debug(f"Unparseable created_at {value!r}, node gets no start date")
        return None


def build_graph(
    nodes: pd.DataFrame,
    links: Iterable[FollowerLink],
    snapshot_date: Optional[date] = None,
) -> nx.DiGraph:
    """
    Build the dynamic directed follower graph.

    Args:
        nodes: One row per account (account columns, code columns optional)
        links: Follower links; only those between two nodes are kept
        snapshot_date: End of every node's time range (default: today)

    Returns:
        networkx DiGraph; node start/end switch the GEXF writer to dynamic mode
    """
    end = (snapshot_date or date.today()).isoformat()

    graph = nx.DiGraph()

    for record in nodes.to_dict(orient="records"):
        user_id = _text(record.get("user_id"))
        if not user_id:
            continue
        attributes = {"label": _text(record.get("name"))}
        for column in TEXT_ATTRIBUTES:
            attributes[column] = _text(record.get(column))
        for column in COUNT_ATTRIBUTES:
            attributes[column] = _count(record.get(column))

        start = _start_date(record.get("created_at"))
        if start is not None:
            attributes["start"] = start
        attributes["end"] = end

        graph.add_node(user_id, **attributes)

    kept = dropped = 0
    for link in links:
        if link.source in graph and link.target in graph:
            graph.add_edge(link.source, link.target)
            kept += 1
        else:
            dropped += 1

    logger.info(
        f"Graph: {graph.number_of_nodes()} nodes, {graph.number_of_edges()} edges "
        f"({kept} links inside the dataset, {dropped} outside)"
    )
    return graph


def write_graph(graph: nx.DiGraph, path: str) -> None:
    """Write the graph as GEXF 1.2."""
    parent = os.path.dirname(path)
    if parent:
        os.makedirs(parent, exist_ok=True)
    nx.write_gexf(graph, path, version="1.2draft")
    logger.info(f"Wrote {path}")
