"""
Sniff configuration.

All tuneable constants live here. Import from this module everywhere —
never hardcode sample floors, chunk sizes, or candidate delimiters inline.

Usage:
    from tabsniff.configs.config import SniffConfig
    cfg = SniffConfig()                 # env-backed defaults
    cfg = SniffConfig(sample_size=0.2)  # sample 20 percent of the rows

Environment overrides are read once, when the config object is built.
Nothing downstream consults ``os.environ`` again.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Literal

VERSION: str = "0.4.0"


# Sampling
MIN_SAMPLE_RECORDS: int = 20
"""Floor on the number of records examined when not sampling everything."""

DEFAULT_SAMPLE_SIZE: float = 1000
"""Default ``--sample`` value: first 1000 records."""

BYTES_PER_LINE_ESTIMATE: int = 100
"""Rough bytes-per-line guess used to turn a fractional remote sample into lines."""


# Download
DOWNLOAD_CHUNK_SIZE: int = 64 * 1024
"""Bytes requested per ``iter_content`` chunk while streaming a remote sample."""

DEFAULT_TIMEOUT: int = 30
"""Seconds before a remote request is abandoned."""


# Inference
CANDIDATE_DELIMITERS: tuple[str, ...] = (",", "\t", ";", "|", ":", " ")
"""Delimiters considered when no override is given, in tie-break order."""

CANDIDATE_QUOTES: tuple[str, ...] = ('"', "'")
"""Quote characters considered, in tie-break order.  No quoting is always a candidate."""

ENCODING_SAMPLE_BYTES: int = 1024 * 1024
"""Bytes handed to chardet when the sample is not valid UTF-8."""


OutputMode = Literal["text", "json", "pretty-json"]


def _env_flag(key: str) -> bool:
    """A toggle is on when the variable is set at all, whatever its value."""
    return key in os.environ


def _env_delimiter() -> str | None:
    raw = os.environ.get("TABSNIFF_DELIMITER")
    return raw or None


@dataclass(slots=True)
class SniffConfig:
    """
    Runtime configuration for a single sniff invocation.

    Attributes:
        sample_size: 0 samples every record; a value in (0, 1) is a fraction of
            the records; a value >= 1 is an absolute record count.
        prefer_dmy: Parse ambiguous dates day-first instead of month-first.
        delimiter: Explicit single-character delimiter.  Skips delimiter
            inference; quoting, header, preamble and types are still inferred.
        timeout: Seconds before a remote request is abandoned.
        progressbar: Show a download progress bar (remote inputs only).
        output: ``text``, ``json`` or ``pretty-json``.
        save_urlsample: Where to persist the normalized remote sample, if anywhere.
        user_agent: ``User-Agent`` header sent with remote requests.
    """

    sample_size: float = field(
        default_factory=lambda: float(
            os.environ.get("TABSNIFF_SAMPLE", str(DEFAULT_SAMPLE_SIZE))
        )
    )
    prefer_dmy: bool = field(default_factory=lambda: _env_flag("TABSNIFF_PREFER_DMY"))
    delimiter: str | None = field(default_factory=_env_delimiter)
    timeout: int = field(
        default_factory=lambda: int(os.environ.get("TABSNIFF_TIMEOUT", str(DEFAULT_TIMEOUT)))
    )
    progressbar: bool = field(default_factory=lambda: _env_flag("TABSNIFF_PROGRESSBAR"))
    output: OutputMode = "text"
    save_urlsample: str | None = None
    user_agent: str = field(
        default_factory=lambda: os.environ.get("TABSNIFF_USER_AGENT", f"tabsniff/{VERSION}")
    )

    @property
    def structured(self) -> bool:
        """True when results and errors are rendered as JSON."""
        return self.output in ("json", "pretty-json")
