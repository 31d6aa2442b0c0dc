"""
Manual coding workflow.

Collected accounts are exported as a sheet, coded by hand in a spreadsheet
(type1, type2, field, gender) and read back. Ids must stay text end to end:
a spreadsheet that imports them as numbers rounds them with scientific
notation and the join silently loses rows.
"""

import logging
from typing import Iterable, List

import pandas as pd

from follownet.services.types import Account, AccountCodes
from follownet.storage.tables import ensure_parent, accounts_to_frame, read_table

logger = logging.getLogger(__name__)

CODE_COLUMNS = ["type1", "type2", "field", "gender"]


def write_coding_sheet(accounts: Iterable[Account], path: str) -> pd.DataFrame:
    """
    Write accounts with empty code columns for manual coding.

    Args:
        accounts: Collected accounts
        path: Destination CSV

    Returns:
        The sheet as written
    """
    sheet = accounts_to_frame(accounts)
    for column in CODE_COLUMNS:
        sheet[column] = ""
    ensure_parent(path)
    sheet.to_csv(path, index=False)
    logger.info(f"Wrote coding sheet with {len(sheet)} accounts to {path}")
    return sheet


def read_codes(path: str) -> pd.DataFrame:
    """
    Read a coded sheet.

    Args:
        path: CSV with at least user_id and the code columns

    Returns:
        Frame with user_id and code columns, all text, stripped

    Raises:
        ValueError: If a required column is missing or a user_id is not numeric
    """
    df = read_table(path)
    missing = [c for c in ["user_id"] + CODE_COLUMNS if c not in df.columns]
    if missing:
        raise ValueError(f"{path} is missing columns: {', '.join(missing)}")

    codes = df[["user_id"] + CODE_COLUMNS].apply(lambda col: col.str.strip())
    codes = codes[codes["user_id"] != ""]

    duplicated = codes["user_id"].duplicated()
    if duplicated.any():
        logger.warning(f"{int(duplicated.sum())} duplicate user_id rows in {path}, keeping the first")
        codes = codes[~duplicated]

    rows = [c.model_dump() for c in codes_from_frame(codes)]
    logger.info(f"Read codes for {len(rows)} accounts from {path}")
    return pd.DataFrame(rows, columns=["user_id"] + CODE_COLUMNS)


def codes_from_frame(codes: pd.DataFrame) -> List[AccountCodes]:
    """Validate code rows. Raises ValueError on a malformed user_id."""
    return [AccountCodes(**record) for record in codes[["user_id"] + CODE_COLUMNS].to_dict(orient="records")]


def merge_codes(accounts: Iterable[Account], codes: pd.DataFrame) -> pd.DataFrame:
    """
    Join codes onto accounts by user_id.

    Only accounts present in both tables are kept.

    Args:
        accounts: Collected accounts
        codes: Output of read_codes

    Returns:
        Account columns followed by the code columns
    """
    frame = accounts_to_frame(accounts)
    merged = frame.merge(codes[["user_id"] + CODE_COLUMNS], on="user_id", how="inner")

    uncoded = len(frame) - len(merged)
    if uncoded:
        logger.warning(f"{uncoded} accounts have no codes and are left out")
    unknown = len(set(codes["user_id"]) - set(frame["user_id"]))
    if unknown:
        logger.warning(f"{unknown} coded ids match no collected account")

    return merged
