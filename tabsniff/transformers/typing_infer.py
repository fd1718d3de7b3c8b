"""
Type inference for sniffed columns.

Inference rules — applied in this order to every non-null cell value:

  1. Integer   — matches r'^[+-]?\\d+$'
  2. Float     — a decimal point or exponent: r'^[+-]?(\\d+\\.\\d*|\\.\\d+|\\d+)([eE][+-]?\\d+)?$'
  3. Boolean   — true/false, yes/no, t/f, y/n (any case)
  4. DateTime  — calendar-shaped token with a time component, accepted by
                 ``dateutil.parser``
  5. Date      — calendar-shaped token without a time component, accepted
                 by ``dateutil.parser``
  6. Text      — fallback

Only calendar-shaped tokens (numeric day/month/year groups, or a month
name next to digits) are handed to dateutil; on its own it happily turns
"3" or "may" into a date.  The day/month preference decides how dateutil
reads ambiguous tokens such as ``03/04/2024``.

Column-level resolution
-----------------------
Two resolvers are provided:

``infer_column_type`` — strict consensus over the data rows, used for the
final schema:
  - All Integer → Integer.
  - Integer and Float only → Float.
  - Date and DateTime only → DateTime (Date when no cell has a time).
  - Boolean only, with at most two distinct literals → Boolean.
  - Anything else, or all cells null → Text.

``profile_column_type`` — tolerant majority vote, used to build the column
profile that row-role emissions are scored against before the rows are
labeled.
"""

from __future__ import annotations

import re
from collections import Counter
from functools import lru_cache
from typing import Iterable, Literal

from dateutil import parser as dateparser

from tabsniff.models.models import FieldSpec, FieldType

CellType = Literal["Integer", "Float", "Boolean", "Date", "DateTime", "Text", "NULL"]


# Compiled patterns

_INT_RE = re.compile(r"^[+-]?\d+$")
_FLOAT_RE = re.compile(r"^[+-]?(\d+\.\d*|\.\d+|\d+)([eE][+-]?\d+)?$")
_NUMERIC_DATE_RE = re.compile(r"^\d{1,4}[-/.]\d{1,2}[-/.]\d{1,4}")
_MONTH_NAME_RE = re.compile(
    r"\b(jan|feb|mar|apr|may|jun|jul|aug|sep|sept|oct|nov|dec)[a-z]*\.?\b",
    re.IGNORECASE,
)
_TIME_RE = re.compile(r"(\d{1,2}:\d{2})|(\dT\d)")

_BOOL_LITERALS = frozenset({"true", "false", "yes", "no", "t", "f", "y", "n"})

# Share of non-null cells a type needs to win the profile vote.
_PROFILE_MAJORITY = 0.8



# Cell-level inference


def _looks_calendar(value: str) -> bool:
    if _NUMERIC_DATE_RE.match(value):
        return True
    return bool(_MONTH_NAME_RE.search(value)) and any(ch.isdigit() for ch in value)


@lru_cache(maxsize=65536)
def infer_cell_type(value: str, prefer_dmy: bool = False) -> CellType:
    """
    Infer the type of a single cell value.

    Args:
        value:      Raw string cell value.  Empty and whitespace-only strings
                    return ``'NULL'`` (excluded from column consensus).
        prefer_dmy: Read ambiguous dates day-first.

    Returns:
        One of ``'Integer'``, ``'Float'``, ``'Boolean'``, ``'Date'``,
        ``'DateTime'``, ``'Text'``, or ``'NULL'``.
    """
    stripped = value.strip()

    if not stripped:
        return "NULL"

    if _INT_RE.match(stripped):
        return "Integer"

    if _FLOAT_RE.match(stripped):
        return "Float"

    if stripped.lower() in _BOOL_LITERALS:
        return "Boolean"

    if _looks_calendar(stripped):
        try:
            dateparser.parse(stripped, dayfirst=prefer_dmy, fuzzy=False)
        except (ValueError, OverflowError):
            return "Text"
        return "DateTime" if _TIME_RE.search(stripped) else "Date"

    return "Text"


def cell_matches(cell_type: CellType, column_type: FieldType) -> bool:
    """
    Return True if a cell of ``cell_type`` is consistent with a column
    typed ``column_type``.  Nulls fit anywhere; Text columns take anything.
    """
    if cell_type == "NULL" or column_type == "Text":
        return True
    if column_type == "Float":
        return cell_type in ("Integer", "Float")
    if column_type == "DateTime":
        return cell_type in ("Date", "DateTime")
    return cell_type == column_type



# Column-level inference


def infer_column_type(values: Iterable[str], prefer_dmy: bool = False) -> FieldType:
    """
    Determine the type for a column from all its observed values.

    Args:
        values:     Raw cell strings for this column, one per data row.
        prefer_dmy: Read ambiguous dates day-first.

    Returns:
        The strict-consensus ``FieldType`` (see module docstring).
    """
    cell_types: set[CellType] = set()
    bool_literals: set[str] = set()

    for v in values:
        t = infer_cell_type(v, prefer_dmy)
        if t == "NULL":
            continue  # skip nulls
        cell_types.add(t)
        if t == "Boolean":
            bool_literals.add(v.strip().lower())

    if not cell_types:
        return "Text"

    if cell_types == {"Integer"}:
        return "Integer"

    if cell_types <= {"Integer", "Float"}:
        return "Float"

    if cell_types == {"Boolean"}:
        return "Boolean" if len(bool_literals) <= 2 else "Text"

    if cell_types <= {"Date", "DateTime"}:
        # If any cell has a time component, promote the column to DateTime.
        return "DateTime" if "DateTime" in cell_types else "Date"

    # Any other mixture → Text
    return "Text"


def profile_column_type(values: Iterable[str], prefer_dmy: bool = False) -> FieldType:
    """
    Majority-vote column type, tolerant of a stray header or comment cell.

    A type wins when it covers at least 80% of the non-null cells (Integer
    and Float are pooled as numeric, Date and DateTime as temporal).
    """
    counts: Counter[CellType] = Counter()
    for v in values:
        t = infer_cell_type(v, prefer_dmy)
        if t != "NULL":
            counts[t] += 1

    total = sum(counts.values())
    if not total:
        return "Text"

    numeric = counts["Integer"] + counts["Float"]
    if numeric / total >= _PROFILE_MAJORITY:
        return "Float" if counts["Float"] else "Integer"

    temporal = counts["Date"] + counts["DateTime"]
    if temporal / total >= _PROFILE_MAJORITY:
        return "DateTime" if counts["DateTime"] else "Date"

    if counts["Boolean"] / total >= _PROFILE_MAJORITY:
        return "Boolean"

    return "Text"



# Schema assembly


def infer_schema(
    names: list[str],
    rows: Iterable[list[str]],
    num_fields: int,
    prefer_dmy: bool = False,
) -> tuple[FieldSpec, ...]:
    """
    Build the ordered ``FieldSpec`` tuple for the data rows.

    Args:
        names:      Column names, one per field.
        rows:       Data rows only (no header, no preamble).  Short rows
                    contribute nulls to their missing columns; cells beyond
                    ``num_fields`` are ignored.
        num_fields: Field count agreed by the dialect inference.
        prefer_dmy: Read ambiguous dates day-first.
    """
    columns: list[list[str]] = [[] for _ in range(num_fields)]
    for row in rows:
        for i, cell in enumerate(row[:num_fields]):
            columns[i].append(cell)

    return tuple(
        FieldSpec(name=names[i], inferred_type=infer_column_type(columns[i], prefer_dmy))
        for i in range(num_fields)
    )
