"""
CSV reader/writer configuration implementing ``TabularConfig``.

Handles:
- UTF-8 with or without BOM (``utf-8-sig``); other encodings detected by chardet.
- Windows CRLF and Unix LF line endings (``newline=''``).
- Ragged-row tolerance — flexible readers accept any field count, strict
  readers raise on the first misaligned row.
- Fresh reader per call so the file can be read more than once.
- Blank lines are skipped; they are neither records nor rows to count.
"""

from __future__ import annotations

import codecs
import csv
import logging
from contextlib import contextmanager
from pathlib import Path
from typing import IO, Iterable, Iterator

import chardet

from tabsniff.configs.config import ENCODING_SAMPLE_BYTES
from tabsniff.configs.csv_dialect import SAMPLE_DIALECT_NAME, build_dialect, register_dialect
from tabsniff.configs.exceptions import SourceIOError
from tabsniff.utils.validation import validate_row_alignment

logger = logging.getLogger(__name__)


def detect_encoding(path: Path | str, sample_bytes: int = ENCODING_SAMPLE_BYTES) -> tuple[str, bool]:
    """
    Work out how to decode ``path``.

    Returns:
        ``(encoding, utf8_valid)``.  UTF-8 input (BOM or not) is reported as
        ``utf-8-sig`` so a BOM never leaks into the first header cell.
        Anything else is handed to chardet; ``latin-1`` is the last resort
        because it decodes every byte sequence.

    Raises:
        SourceIOError: If the file cannot be read.
    """
    path = Path(path)
    try:
        with path.open("rb") as f:
            raw = f.read(sample_bytes)
    except OSError as e:
        raise SourceIOError(f"Cannot read {path}: {e}", source=str(path)) from e

    # final=False so a multi-byte character cut at the sample boundary is not an error
    decoder = codecs.getincrementaldecoder("utf-8")()
    try:
        decoder.decode(raw, final=len(raw) < sample_bytes)
        return "utf-8-sig", True
    except UnicodeDecodeError:
        pass

    res = chardet.detect(raw)
    encoding = (res.get("encoding") or "latin-1").lower()
    logger.info(
        "%s is not UTF-8; detected %s (confidence: %.2f)",
        path.name, encoding, res.get("confidence") or 0.0,
    )
    try:
        codecs.lookup(encoding)
    except LookupError:
        encoding = "latin-1"
    return encoding, False


def encoded_size(text: str, encoding: str) -> int:
    """Size of ``text`` in bytes once encoded, without a BOM."""
    if encoding == "utf-8-sig":
        encoding = "utf-8"
    return len(text.encode(encoding, errors="replace"))


def average_record_len(nbytes: int, records: int) -> int:
    """Bytes per record rounded to the nearest byte, never below 1."""
    if records <= 0:
        return 1
    return max(round(nbytes / records), 1)


class MeteredLines:
    """
    Iterate text lines while totalling their encoded size.

    ``csv.reader`` pulls lines only as each record needs them, so after a
    record is returned ``nbytes`` covers exactly the lines read so far.
    """

    def __init__(self, lines: Iterable[str], encoding: str) -> None:
        self._lines = iter(lines)
        self._encoding = encoding
        self.nbytes = 0

    def __iter__(self) -> MeteredLines:
        return self

    def __next__(self) -> str:
        line = next(self._lines)
        self.nbytes += encoded_size(line, self._encoding)
        return line


class CSVConfig:
    """
    Reader/writer configuration for one delimited file.

    Args:
        path:      Path to the file.
        delimiter: Field separator.  Defaults to ``,``.
        quote:     Quote character, or ``None`` for no quote handling.
        encoding:  Text encoding.  Detected on first use when omitted.
    """

    def __init__(
        self,
        path: Path | str,
        delimiter: str | None = None,
        quote: str | None = '"',
        encoding: str | None = None,
    ) -> None:
        self.path = Path(path)
        self.delimiter = delimiter or ","
        self.quote = quote
        self._encoding = encoding
        self._utf8_valid: bool | None = None if encoding is None else encoding.startswith("utf-8")

    # ── encoding ─────────────────────────────────────────────────────────

    @property
    def encoding(self) -> str:
        if self._encoding is None:
            self._encoding, self._utf8_valid = detect_encoding(self.path)
        return self._encoding

    @property
    def utf8_valid(self) -> bool:
        if self._utf8_valid is None:
            self._encoding, self._utf8_valid = detect_encoding(self.path)
        return self._utf8_valid

    @contextmanager
    def open_text(self, mode: str = "r") -> Iterator[IO[str]]:
        """
        Open the file as text with the resolved encoding.

        Raises:
            SourceIOError: If the file cannot be opened.
        """
        if "r" in mode:
            encoding = self.encoding
        else:
            # never write a BOM into a rewritten sample
            encoding = "utf-8" if self._encoding in (None, "utf-8-sig") else self._encoding
        try:
            f = open(  # noqa: WPS515
                self.path,
                mode,
                encoding=encoding,
                errors="replace",
                newline="",
            )
        except OSError as e:
            raise SourceIOError(f"Cannot open {self.path}: {e}", source=str(self.path)) from e
        try:
            yield f
        finally:
            f.close()

    # ── TabularConfig interface ──────────────────────────────────────────

    @contextmanager
    def open_reader(self, flexible: bool = True) -> Iterator[Iterator[list[str]]]:
        """
        Yield an iterator over the rows of the file, header included.

        Raises:
            SourceIOError: On a malformed row, or a ragged row when
                ``flexible`` is False.
        """
        dialect = build_dialect(self.delimiter, self.quote)
        with self.open_text() as f:
            yield self._rows(csv.reader(f, dialect=dialect), flexible)

    @contextmanager
    def open_metered_reader(self) -> Iterator[tuple[Iterator[list[str]], MeteredLines]]:
        """Flexible ``open_reader`` that also reports the raw bytes consumed."""
        dialect = build_dialect(self.delimiter, self.quote)
        with self.open_text() as f:
            meter = MeteredLines(f, self.encoding)
            yield self._rows(csv.reader(meter, dialect=dialect), True), meter

    @contextmanager
    def open_writer(self, quoting: int = csv.QUOTE_ALL):
        """
        Yield a ``csv.writer`` over a truncated file at ``path``.

        The file is written in the configured encoding (UTF-8 by default) so
        a rewritten sample keeps the byte-level character of its source.
        """
        register_dialect()
        with self.open_text("w") as f:
            yield csv.writer(
                f,
                dialect=SAMPLE_DIALECT_NAME,
                delimiter=self.delimiter,
                quotechar=self.quote or '"',
                quoting=quoting,
            )

    def count_rows(self) -> int:
        """
        Count data rows, treating the first row as the header.

        Raises:
            SourceIOError: Titled ``count rows error`` if the file cannot be parsed.
        """
        try:
            with self.open_reader(flexible=True) as rows:
                total = sum(1 for _ in rows)
        except SourceIOError as e:
            raise SourceIOError(str(e), title="count rows error") from e
        return max(total - 1, 0)

    # ── internals ────────────────────────────────────────────────────────

    def _rows(self, reader, flexible: bool) -> Iterator[list[str]]:
        expected: int | None = None
        try:
            for row_number, row in enumerate(reader, start=1):
                if not row:
                    continue
                if not flexible:
                    if expected is None:
                        expected = len(row)
                    validate_row_alignment(
                        row,
                        expected_field_count=expected,
                        row_number=row_number,
                        source_path=str(self.path),
                    )
                yield row
        except csv.Error as e:
            raise SourceIOError(
                f"Malformed row in {self.path}: {e}",
                source=str(self.path),
            ) from e
