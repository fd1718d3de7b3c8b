"""
Source acquisition: turn a path, URL or standard input into a ``SampleSource``.

Local path
    Used in place.  Sizes come from filesystem metadata; nothing is copied.

Remote URL (http/https)
    Streamed with ``requests``.  The sample size is turned into a line
    threshold and the download stops as soon as more lines than that have
    arrived, so a huge remote file is never fetched in full just to be
    sniffed.  The partial download is then rewritten into a fresh temporary
    store: first row plus exactly N complete data rows, every field quoted.
    Only that normalized store reaches inference, so a row cut off
    mid-stream can never be sniffed.  A body that ends on its own is kept
    whole.

Standard input
    Copied verbatim into a temporary store; a pipe cannot be sampled and
    then re-read.

Line threshold for remote inputs:
  - ``sample >= 1``       → ``round(sample)`` lines
  - ``sample == 0``       → unbounded (whole body)
  - ``0 < sample < 1``    → ``(total_size // 100) * sample`` when the size is
                            known (assumes ~100 bytes per line, a rough guess),
                            otherwise unbounded
"""

from __future__ import annotations

import logging
import shutil
import sys
from dataclasses import dataclass, replace
from pathlib import Path
from typing import BinaryIO, Callable, Iterable
from urllib.parse import urlparse

import requests
from tqdm import tqdm

from tabsniff.configs.config import (
    BYTES_PER_LINE_ESTIMATE,
    DEFAULT_SAMPLE_SIZE,
    DOWNLOAD_CHUNK_SIZE,
    MIN_SAMPLE_RECORDS,
    SniffConfig,
)
from tabsniff.configs.exceptions import InferenceError, SourceIOError
from tabsniff.discovery.csv_reader import CSVConfig, average_record_len
from tabsniff.inference.dialect import best_labeling, read_sample_text
from tabsniff.models.models import SampleSource
from tabsniff.utils.files import new_temp_store, remove_quietly

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Streaming fold
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class StreamState:
    """
    Accumulator for the chunked download.

    Attributes:
        bytes_received: Bytes written so far, capped at the known total size.
        lines_received: Newline bytes seen so far.
        stopped_early:  True if the fold stopped before the stream ended.
    """

    bytes_received: int = 0
    lines_received: int = 0
    stopped_early: bool = False

    @property
    def sample_lines(self) -> int:
        """Lines received, not counting the header line."""
        return max(self.lines_received - 1, 0)


def advance(state: StreamState, chunk: bytes, total_size: int | None) -> StreamState:
    """Fold one chunk into ``state``."""
    received = state.bytes_received + len(chunk)
    if total_size is not None:
        received = min(received, total_size)
    return replace(
        state,
        bytes_received=received,
        lines_received=state.lines_received + chunk.count(b"\n"),
    )


def should_stop(state: StreamState, threshold: int | None) -> bool:
    """True once more lines than ``threshold`` have arrived.  ``None`` never stops."""
    return threshold is not None and state.lines_received > threshold


def consume_stream(
    chunks: Iterable[bytes],
    sink: BinaryIO,
    threshold: int | None,
    total_size: int | None,
    observer: Callable[[int], object] | None = None,
) -> StreamState:
    """
    Write ``chunks`` to ``sink`` until the stream ends or ``should_stop``.

    Once the threshold is crossed one more chunk is pulled (never written)
    to tell a stream that ended from one that was cut short.

    Args:
        chunks:     Byte chunks in arrival order.
        sink:       Binary file the raw download is written to.
        threshold:  Line threshold; ``None`` consumes everything.
        total_size: Known dataset size, used to cap the byte counter.
        observer:   Called with each chunk's length (progress display).
    """
    state = StreamState()
    it = iter(chunks)
    for chunk in it:
        if not chunk:
            continue
        sink.write(chunk)
        state = advance(state, chunk, total_size)
        if observer is not None:
            observer(len(chunk))
        if should_stop(state, threshold):
            # a threshold crossed on the last chunk is still a full download
            if next((rest for rest in it if rest), None) is None:
                return state
            return replace(state, stopped_early=True)
    return state


def line_threshold(sample_size: float, total_size: int | None) -> int | None:
    """
    Translate a requested sample size into a remote line threshold.

    Returns:
        Lines to download, or ``None`` for the whole body.  Bounded
        thresholds are raised to the 20-record floor.
    """
    if sample_size >= 1:
        threshold = round(sample_size)
    elif sample_size == 0:
        return None
    elif total_size is None:
        # no size to take a fraction of
        return None
    else:
        threshold = int((total_size // BYTES_PER_LINE_ESTIMATE) * sample_size)
    return max(threshold, MIN_SAMPLE_RECORDS)


# ---------------------------------------------------------------------------
# Public entry point
# ---------------------------------------------------------------------------

def is_remote(designator: str) -> bool:
    """True if ``designator`` parses as an http(s) URL with a host."""
    try:
        parsed = urlparse(designator)
    except ValueError:
        return False
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def acquire(
    designator: str | None,
    config: SniffConfig,
    stdin: BinaryIO | None = None,
) -> SampleSource:
    """
    Produce a ``SampleSource`` for a local path, URL, or standard input.

    Args:
        designator: Path or URL; ``None`` or ``"-"`` reads standard input.
        config:     Sniff configuration (sample size, timeout, delimiter,
                    progress toggle).
        stdin:      Binary stream to read instead of ``sys.stdin.buffer``.

    Raises:
        SourceIOError: On any filesystem or network failure.
    """
    if designator is None or designator == "-":
        return acquire_stdin(stdin if stdin is not None else sys.stdin.buffer)
    if is_remote(designator):
        return acquire_remote(designator, config)
    return acquire_local(designator)


def acquire_local(path_str: str) -> SampleSource:
    """Pass a local file through with its size."""
    path = Path(path_str)
    try:
        stat = path.stat()
        canonical = path.resolve(strict=True)
    except OSError as e:
        raise SourceIOError(f"Cannot get metadata for file '{path_str}'", source=path_str) from e
    if not path.is_file():
        raise SourceIOError(f"Not a regular file: '{path_str}'", source=path_str)

    logger.info("Sniffing local file %s (%d bytes)", canonical, stat.st_size)
    return SampleSource(
        origin="local",
        display_id=str(canonical),
        store_path=path,
        retrieved_size=stat.st_size,
        total_size=stat.st_size,
        is_temporary=False,
        complete=True,
    )


def acquire_stdin(stream: BinaryIO) -> SampleSource:
    """Copy ``stream`` verbatim into a temporary store."""
    store = new_temp_store()
    try:
        with store.open("wb") as f:
            shutil.copyfileobj(stream, f, DOWNLOAD_CHUNK_SIZE)
        size = store.stat().st_size
    except OSError as e:
        remove_quietly(store)
        raise SourceIOError(f"Cannot copy stdin to a temporary file: {e}", source="stdin") from e

    logger.info("Sniffing stdin (%d bytes)", size)
    return SampleSource(
        origin="stdin",
        display_id="stdin",
        store_path=store,
        retrieved_size=size,
        total_size=size,
        is_temporary=True,
        complete=True,
    )


def acquire_remote(url: str, config: SniffConfig) -> SampleSource:
    """
    Download a bounded sample of ``url`` and normalize it.

    Raises:
        SourceIOError: If the request fails, times out, returns an error
            status, or the sample cannot be written.
    """
    raw_store = new_temp_store(".part")
    try:
        state, total_size, threshold = _download(url, config, raw_store)
        if state.stopped_early:
            _drop_partial_line(raw_store)
        # a stream that ended on its own keeps every row it delivered
        keep = threshold if state.stopped_early else None
        sample_store, records, raw_record_len = _normalize_sample(raw_store, keep, config.delimiter)
    finally:
        remove_quietly(raw_store)

    complete = not state.stopped_early and total_size is not None
    logger.info(
        "Downloaded %d bytes (%d sample lines) from %s%s",
        state.bytes_received,
        state.sample_lines,
        url,
        " (stopped at threshold)" if state.stopped_early else "",
    )
    return SampleSource(
        origin="remote",
        display_id=url,
        store_path=sample_store,
        retrieved_size=state.bytes_received,
        total_size=total_size,
        is_temporary=True,
        complete=complete,
        downloaded_records=records,
        raw_record_len=raw_record_len,
    )


# ---------------------------------------------------------------------------
# Internals
# ---------------------------------------------------------------------------

def _download(
    url: str,
    config: SniffConfig,
    raw_store: Path,
) -> tuple[StreamState, int | None, int | None]:
    headers = {"User-Agent": config.user_agent, "Accept-Encoding": "gzip, deflate"}
    try:
        with requests.get(url, headers=headers, stream=True, timeout=config.timeout) as response:
            response.raise_for_status()
            total_size = _content_length(response)
            threshold = line_threshold(config.sample_size, total_size)

            label = f"{threshold:,}" if threshold is not None else "all"
            with tqdm(
                total=total_size,
                unit="B",
                unit_scale=True,
                desc=f"Downloading {label} samples...",
                disable=not config.progressbar,
                file=sys.stderr,
            ) as progress, raw_store.open("wb") as sink:
                state = consume_stream(
                    response.iter_content(chunk_size=DOWNLOAD_CHUNK_SIZE),
                    sink,
                    threshold,
                    total_size,
                    observer=progress.update,
                )
                progress.set_description(f"Downloaded {state.sample_lines:,} samples.")
    except requests.Timeout as e:
        raise SourceIOError(f"Timed out after {config.timeout}s fetching '{url}'", source=url) from e
    except requests.RequestException as e:
        raise SourceIOError(f"Failed to GET from '{url}': {e}", source=url) from e
    except OSError as e:
        raise SourceIOError(f"Error while writing downloaded sample: {e}", source=url) from e

    return state, total_size, threshold


def _content_length(response: requests.Response) -> int | None:
    raw = response.headers.get("Content-Length")
    if raw is None:
        return None
    try:
        length = int(raw)
    except ValueError:
        logger.warning("Ignoring malformed Content-Length %r", raw)
        return None
    return length if length >= 0 else None


def _drop_partial_line(raw_store: Path) -> None:
    """Truncate ``raw_store`` just after its last newline."""
    with raw_store.open("rb+") as f:
        data = f.read()
        cut = data.rfind(b"\n")
        if cut >= 0:
            f.truncate(cut + 1)


def _normalize_sample(
    raw_store: Path,
    threshold: int | None,
    delimiter: str | None,
) -> tuple[Path, int, int | None]:
    """
    Rewrite the raw download into a fresh store: first row plus the first
    ``threshold`` data rows (all when ``None``), every field quoted.

    Returns:
        ``(sample_store, data_rows_written, raw_record_len)``.  The record
        length is measured on the raw bytes of the rows copied, since
        quoting every field inflates the rewritten store.
    """
    raw_conf = CSVConfig(raw_store, delimiter=delimiter)
    quote: str | None = '"'
    if delimiter is None:
        dialect_lines = int(DEFAULT_SAMPLE_SIZE)
        if threshold is not None:
            dialect_lines = min(threshold + 1, dialect_lines)
        try:
            candidate = best_labeling(read_sample_text(raw_conf, dialect_lines)).candidate
            delimiter, quote = candidate.delimiter, candidate.quote
        except InferenceError as e:
            logger.warning("Could not infer the downloaded sample's dialect (%s); assuming CSV", e)
            delimiter = ","
    raw_conf = CSVConfig(raw_store, delimiter=delimiter, quote=quote, encoding=raw_conf.encoding)

    sample_store = new_temp_store()
    out_conf = CSVConfig(sample_store, delimiter=delimiter, quote='"', encoding=raw_conf.encoding)
    written = 0
    try:
        with raw_conf.open_metered_reader() as (rows, meter), out_conf.open_writer() as writer:
            for row in rows:
                writer.writerow(row)
                written += 1
                if threshold is not None and written > threshold:  # first row plus threshold rows
                    break
            raw_bytes = meter.nbytes
    except SourceIOError:
        remove_quietly(sample_store)
        raise
    except OSError as e:
        remove_quietly(sample_store)
        raise SourceIOError(f"Cannot write normalized sample: {e}") from e

    if written == 0:
        return sample_store, 0, None
    records = written - 1
    return sample_store, records, average_record_len(raw_bytes, written)
