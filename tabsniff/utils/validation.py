"""
Validation helpers for invocation parameters and row structure.

Parameter checks run before any acquisition so an invalid invocation never
touches the filesystem or the network.

All functions raise the appropriate exception on failure rather than returning
a boolean — callers are expected to let exceptions propagate to the CLI,
which renders them.
"""

from __future__ import annotations

import math

from tabsniff.configs.exceptions import InputError, SourceIOError

# Spellings accepted for a tab delimiter on the command line.
_TAB_ALIASES = {"\\t", "tab", "\t"}


def validate_sample_size(sample_size: float) -> None:
    """
    Assert that the requested sample size is usable.

    Raises:
        InputError: If ``sample_size`` is negative, NaN or infinite.
    """
    if not math.isfinite(sample_size):
        raise InputError(
            f"Sample size must be a finite number, got {sample_size}.",
            parameter="sample",
        )
    if sample_size < 0:
        raise InputError(
            "Sample size must be greater than or equal to zero.",
            parameter="sample",
        )


def normalize_delimiter(raw: str | None) -> str | None:
    """
    Turn a user-supplied delimiter into a single character.

    ``\\t`` and ``tab`` both mean the tab character.

    Raises:
        InputError: If the delimiter is not a single ASCII character.
    """
    if raw is None:
        return None
    if raw in _TAB_ALIASES:
        return "\t"
    if len(raw) != 1 or not raw.isascii():
        raise InputError(
            f"Delimiter must be a single ascii character, got {raw!r}.",
            parameter="delimiter",
        )
    return raw


def validate_row_alignment(
    row: list[str],
    expected_field_count: int,
    row_number: int,
    source_path: str | None = None,
) -> None:
    """
    Assert that a row has exactly the expected number of fields.

    Args:
        row:                  The parsed row as a list of strings.
        expected_field_count: Number of fields in the first row.
        row_number:           1-based row number for error reporting.
        source_path:          Path of the file being read.

    Raises:
        SourceIOError: If ``len(row) != expected_field_count``.
    """
    actual = len(row)
    if actual != expected_field_count:
        raise SourceIOError(
            f"Row {row_number} has {actual} fields, expected {expected_field_count}.",
            source=source_path,
        )
