"""
Pipeline orchestrator for a single sniff.

Wires the phases in order and owns cleanup of the temporary store:

  1. Validate parameters  → negative sample / bad delimiter fail before any I/O
  2. Acquire              → local path, remote sample, or stdin copy
  3. Count                → exact row count for complete sources (empty → fail)
  4. Infer                → dialect, schema, average record length
  5. Reconcile            → exact or estimated record count
  6. Synthesize           → immutable ``SniffResult``

Cleanup policy:
  - A temporary store (remote sample, stdin copy) is released exactly once,
    in a ``finally`` block, whether the sniff succeeded or failed.
  - Any ``SniffError`` aborts the sniff; no partial result is returned.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import BinaryIO

from tabsniff.configs.config import SniffConfig
from tabsniff.configs.exceptions import EmptyDatasetError
from tabsniff.discovery.acquire import acquire
from tabsniff.discovery.csv_reader import CSVConfig
from tabsniff.discovery.rowcount import estimate_record_count
from tabsniff.inference.dialect import InferenceOutcome, infer
from tabsniff.models.models import SampleSource, SniffResult
from tabsniff.utils.files import release_store, save_copy
from tabsniff.utils.validation import normalize_delimiter, validate_sample_size

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Public entry point
# ---------------------------------------------------------------------------

def sniff(
    designator: str | None,
    config: SniffConfig,
    stdin: BinaryIO | None = None,
) -> SniffResult:
    """
    Sniff one dataset.

    Args:
        designator: Local path, http(s) URL, or ``None`` for standard input.
        config:     Sniff configuration, resolved once by the caller.
        stdin:      Binary stream to read instead of ``sys.stdin.buffer``.

    Returns:
        ``SniffResult``.

    Raises:
        InputError:        Invalid sample size or delimiter (no I/O attempted).
        SourceIOError:     Acquisition failed.
        InferenceError:    No viable labeling of the sample.
        EmptyDatasetError: No data records.
    """
    validate_sample_size(config.sample_size)
    delimiter = normalize_delimiter(config.delimiter)
    timestamp = datetime.now(timezone.utc).isoformat()

    source = acquire(designator, config, stdin=stdin)
    try:
        return _sniff_source(source, config, delimiter, timestamp)
    finally:
        release_store(source)


def resolve_sample(
    sample_size: float,
    source: SampleSource,
    counted_rows: int | None,
) -> tuple[bool, int | None]:
    """
    Decide how many records the inferencer examines.

    Returns:
        ``(sample_all, max_records)``.  Remote samples are already bounded
        by the download, so they are always examined in full.
    """
    if source.origin == "remote" or sample_size == 0:
        return True, None

    if sample_size < 1:
        size = sample_size * (counted_rows or 0)
    else:
        size = sample_size
    max_records = round(size)

    if counted_rows is not None and max_records > counted_rows:
        return True, None
    return False, max_records


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _sniff_source(
    source: SampleSource,
    config: SniffConfig,
    delimiter: str | None,
    timestamp: str,
) -> SniffResult:
    conf = CSVConfig(source.store_path, delimiter=delimiter)

    counted_rows: int | None = None
    if source.complete:
        counted_rows = conf.count_rows()
        if counted_rows == 0:
            raise EmptyDatasetError("Empty file", record_count=0)
    elif source.downloaded_records == 0:
        raise EmptyDatasetError("Empty file", record_count=0)

    sample_all, max_records = resolve_sample(config.sample_size, source, counted_rows)

    if config.save_urlsample:
        if source.origin == "remote":
            save_copy(source.store_path, config.save_urlsample)
            logger.info("Saved URL sample to %s", config.save_urlsample)
        else:
            logger.warning("--save-urlsample is only valid for URL input; ignoring.")

    outcome = infer(
        conf,
        max_records=max_records,
        sample_all=sample_all,
        delimiter=delimiter,
        prefer_dmy=config.prefer_dmy,
    )

    if counted_rows is not None and _dialect_changed(conf, outcome):
        # quoted line breaks only count correctly under the real dialect
        counted_rows = CSVConfig(
            source.store_path,
            delimiter=outcome.dialect.delimiter,
            quote=outcome.dialect.quote,
            encoding=conf.encoding,
        ).count_rows()

    # a rewritten remote sample is larger than the bytes it came from
    avg_record_len = source.raw_record_len or outcome.avg_record_len
    record_count, estimated = estimate_record_count(
        source,
        outcome.dialect,
        avg_record_len,
        counted_rows,
    )

    return SniffResult(
        display_id=source.display_id,
        timestamp=timestamp,
        retrieved_size=source.retrieved_size,
        total_size=source.size_basis,
        dialect=outcome.dialect,
        schema=outcome.schema,
        sampled_records=min(outcome.sampled_records, record_count),
        record_count=record_count,
        estimated=estimated,
        avg_record_len=avg_record_len,
    )


def _dialect_changed(conf: CSVConfig, outcome: InferenceOutcome) -> bool:
    return (conf.delimiter, conf.quote) != (outcome.dialect.delimiter, outcome.dialect.quote)
