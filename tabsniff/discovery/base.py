"""
Capability interface for tabular reader/writer configurations.

Anything that can open a row reader, open a row writer and count data rows
satisfies ``TabularConfig``.  The acquirer, inferencer and estimator work
exclusively against this protocol, so they never depend on how a concrete
configuration resolves encodings or dialects.

Usage:
    conf = CSVConfig(path, delimiter=";")
    with conf.open_reader(flexible=True) as rows:
        for row in rows:
            process(row)
    n = conf.count_rows()
"""

from __future__ import annotations

import csv
from contextlib import AbstractContextManager
from typing import Iterator, Protocol, runtime_checkable


@runtime_checkable
class TabularConfig(Protocol):
    """
    Three primitives shared by every dataset operation.

    Implementations are plain classes; no inheritance is required.
    """

    def open_reader(self, flexible: bool = True) -> AbstractContextManager[Iterator[list[str]]]:
        """
        Open a row reader.

        With ``flexible=False`` every row must have as many fields as the
        first row; a ragged row raises.
        """

    def open_writer(self, quoting: int = csv.QUOTE_ALL) -> AbstractContextManager:
        """Open a ``csv.writer``-like object using the given quoting convention."""

    def count_rows(self) -> int:
        """Return the number of data rows, treating the first row as the header."""
