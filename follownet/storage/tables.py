"""
CSV interchange for the collected tables.

Every table is read back with all columns as text: account ids are large
integers that spreadsheet tools and float parsing silently round.
"""

import logging
import os
from typing import Iterable, List, Optional, Set

import pandas as pd

from follownet.services.types import Account, FollowerLink

logger = logging.getLogger(__name__)

ACCOUNT_COLUMNS = list(Account.model_fields)
LINK_COLUMNS = ["source", "target"]

_COUNT_COLUMNS = ("followers_count", "friends_count", "statuses_count")


def read_table(path: str) -> pd.DataFrame:
    """Read a CSV with every column as string and blanks kept as ''."""
    if not os.path.exists(path):
        raise FileNotFoundError(f"No such table: {path}")
    return pd.read_csv(path, dtype=str, keep_default_na=False)


def ensure_parent(path: str) -> None:
    parent = os.path.dirname(path)
    if parent:
        os.makedirs(parent, exist_ok=True)


def accounts_to_frame(accounts: Iterable[Account]) -> pd.DataFrame:
    rows = [a.model_dump(mode="json") for a in accounts]
    return pd.DataFrame(rows, columns=ACCOUNT_COLUMNS)


def frame_to_accounts(df: pd.DataFrame) -> List[Account]:
    """Convert a text-typed frame back to accounts. Blank optional cells become None."""
    accounts = []
    for record in df.to_dict(orient="records"):
        data = {k: v for k, v in record.items() if k in ACCOUNT_COLUMNS}
        for key in ("url", "location", "lang", "created_at"):
            if data.get(key) == "":
                data[key] = None
        for key in _COUNT_COLUMNS:
            if data.get(key) in ("", None):
                data[key] = 0
            else:
                # pandas may have written counts as "12.0"
                data[key] = int(float(data[key]))
        accounts.append(Account(**data))
    return accounts


def save_accounts(accounts: Iterable[Account], path: str) -> None:
    ensure_parent(path)
    df = accounts_to_frame(accounts)
    df.to_csv(path, index=False)
    logger.info(f"Wrote {len(df)} accounts to {path}")


def load_accounts(path: str) -> List[Account]:
    df = read_table(path)
    missing = [c for c in ("user_id", "screen_name") if c not in df.columns]
    if missing:
        raise ValueError(f"{path} is missing columns: {', '.join(missing)}")
    return frame_to_accounts(df)


def links_to_frame(links: Iterable[FollowerLink]) -> pd.DataFrame:
    return pd.DataFrame([link.model_dump() for link in links], columns=LINK_COLUMNS)


def save_links(links: Iterable[FollowerLink], path: str) -> None:
    ensure_parent(path)
    df = links_to_frame(links)
    df.to_csv(path, index=False)
    logger.info(f"Wrote {len(df)} links to {path}")


def append_links(links: Iterable[FollowerLink], path: str) -> None:
    """Append links, writing the header only when the file is new."""
    ensure_parent(path)
    df = links_to_frame(links)
    new_file = not os.path.exists(path) or os.path.getsize(path) == 0
    df.to_csv(path, mode="a", header=new_file, index=False)


def load_links(path: str) -> List[FollowerLink]:
    df = read_table(path)
    missing = [c for c in LINK_COLUMNS if c not in df.columns]
    if missing:
        raise ValueError(f"{path} is missing columns: {', '.join(missing)}")
    df = df[(df["source"] != "") & (df["target"] != "")]
    return [FollowerLink(source=s, target=t) for s, t in zip(df["source"], df["target"])]


def completed_targets(path: Optional[str]) -> Set[str]:
    """Account ids that already have links recorded in a links file."""
    if not path or not os.path.exists(path) or os.path.getsize(path) == 0:
        return set()
    df = read_table(path)
    if "target" not in df.columns:
        return set()
    return set(df["target"]) - {""}


def append_completed(user_id: str, path: str) -> None:
    """Record an account whose followers were fetched, links or not."""
    ensure_parent(path)
    new_file = not os.path.exists(path) or os.path.getsize(path) == 0
    pd.DataFrame({"user_id": [user_id]}).to_csv(path, mode="a", header=new_file, index=False)


def load_completed(path: Optional[str]) -> Set[str]:
    """Account ids recorded by append_completed."""
    if not path or not os.path.exists(path) or os.path.getsize(path) == 0:
        return set()
    df = read_table(path)
    if "user_id" not in df.columns:
        return set()
    return set(df["user_id"]) - {""}
