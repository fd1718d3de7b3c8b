"""
Record count reconciliation.

Complete sources (local files, stdin, remote bodies downloaded in full
with a known size) have an exact row count from a direct scan.  Prefix
samples of remote sources only know how many bytes the dataset has, so
the count is estimated as ``size // avg_record_len``.

Both figures count the first row as a header.  They are then adjusted by
the inferred layout: one row is added back when there is no header, and
preamble rows are subtracted.
"""

from __future__ import annotations

import logging

from tabsniff.configs.exceptions import EmptyDatasetError
from tabsniff.models.models import DialectMetadata, SampleSource

logger = logging.getLogger(__name__)


def estimate_record_count(
    source: SampleSource,
    dialect: DialectMetadata,
    avg_record_len: int,
    counted_rows: int | None = None,
) -> tuple[int, bool]:
    """
    Return ``(record_count, estimated)`` for ``source``.

    Args:
        source:         The acquired sample and its provenance.
        dialect:        Inferred dialect (header and preamble layout).
        avg_record_len: Average bytes per record in the sample.
        counted_rows:   Rows after the first, from a direct scan.  Required
                        when ``source.complete`` is True.

    Raises:
        EmptyDatasetError: If the adjusted count is zero or less.
        ValueError:        If a complete source has no ``counted_rows``.
    """
    if source.complete:
        if counted_rows is None:
            raise ValueError("counted_rows is required for a complete source")
        rowcount, estimated = counted_rows, False
    else:
        rowcount = source.size_basis // max(avg_record_len, 1)
        estimated = True
        logger.debug(
            "Estimating %d rows from %d bytes at %d bytes/record",
            rowcount, source.size_basis, avg_record_len,
        )

    if not dialect.header_present:
        rowcount += 1
    rowcount -= dialect.preamble_row_count

    if rowcount <= 0:
        raise EmptyDatasetError("Empty file", record_count=rowcount)
    return rowcount, estimated
