"""
Descriptive statistics over coded accounts.

All tables are percentages. Subsets that come out empty produce empty
tables rather than errors, so a partially coded sheet can still be
summarised.
"""

import logging
from collections import OrderedDict
from typing import Dict, Optional, Union

import pandas as pd

logger = logging.getLogger(__name__)

INDIVIDUAL = "individual"
ORGANIZATION = "organization"
SCIENCE_PROFESSIONS = ("scientist", "science")
OUTREACH = "outreach"
CS_PROJECT = "CS_project"

Table = Union[pd.Series, pd.DataFrame]


def proportion_table(values: pd.Series, digits: Optional[int] = 0) -> pd.Series:
    """
    Percentage share of each category.

    Args:
        values: Categorical values; blanks count as their own category
        digits: Rounding, None for no rounding

    Returns:
        Series indexed by category, sorted by label
    """
    if values.empty:
        return pd.Series(dtype=float)
    shares = values.value_counts(normalize=True).sort_index() * 100
    if digits is not None:
        shares = shares.round(digits)
    return shares


def crosstab_share(codes: pd.DataFrame, row: str, column: str, digits: Optional[int] = 0) -> pd.DataFrame:
    """
    Contingency table of row by column, each column summing to 100.

    Args:
        codes: Coded accounts
        row: Column whose categories form the rows
        column: Column whose categories form the columns
        digits: Rounding, None for no rounding
    """
    if codes.empty:
        return pd.DataFrame()
    table = pd.crosstab(codes[row], codes[column], normalize="columns") * 100
    if digits is not None:
        table = table.round(digits)
    return table


def describe_codes(codes: pd.DataFrame) -> Dict[str, Table]:
    """Compute the standard set of tables over a coded sheet."""
    individuals = codes[codes["type1"] == INDIVIDUAL]
    organizations = codes[codes["type1"] == ORGANIZATION]

    tables: Dict[str, Table] = OrderedDict()
    tables["Individuals vs. organizations (%)"] = proportion_table(codes["type1"])
    tables["Professions of individuals (%)"] = proportion_table(individuals["type2"])
    tables["Fields of scientists and science professions (%)"] = proportion_table(
        codes.loc[codes["type2"].isin(SCIENCE_PROFESSIONS), "field"]
    )
    tables["Fields of outreach professions (%)"] = proportion_table(
        codes.loc[codes["type2"] == OUTREACH, "field"]
    )
    tables["Subtypes of organizations (%)"] = proportion_table(organizations["type2"])
    tables["Fields of citizen science projects (%)"] = proportion_table(
        codes.loc[codes["type2"] == CS_PROJECT, "field"]
    )
    tables["Gender of individuals (%)"] = proportion_table(individuals["gender"], digits=None)
    tables["Gender of scientists (%)"] = proportion_table(
        codes.loc[codes["type2"] == "scientist", "gender"], digits=None
    )
    tables["Gender across professions (%)"] = crosstab_share(individuals, "gender", "type2")
    tables["Gender across fields (%)"] = crosstab_share(individuals, "gender", "field")

    logger.debug(f"Computed {len(tables)} tables over {len(codes)} coded accounts")
    return tables


def render_report(tables: Dict[str, Table]) -> str:
    blocks = []
    for title, table in tables.items():
        body = "(no data)" if table.empty else table.to_string()
        blocks.append(f"{title}\n{'-' * len(title)}\n{body}")
    return "\n\n".join(blocks) + "\n"
