"""
Dialect and schema inference.

Treats the sample as one sequence and labels every record jointly rather
than deciding row by row:

1. Build candidate dialects — every candidate delimiter that occurs in the
   sample (or just the override) crossed with every quote character that
   occurs, plus no quoting.
2. Parse the sample under each candidate.  For each plausible steady field
   count ``k`` (the most common field counts), score every record's fit as
   preamble, header or data, and run Viterbi over the whole sequence.
3. Keep the candidate whose best path has the highest per-record
   log-likelihood, adjusted by a field-count prior.  Ties keep the earlier
   candidate, so delimiter and quote preference order decide.
4. Read the labeled path: leading preamble records, an optional header,
   then data records, from which field names and types are taken.

A quoted field that contains the delimiter, or a short run of comment
lines, only resolves when the consistency of the whole sample is weighed;
that is what the joint decoding buys over per-row heuristics.
"""

from __future__ import annotations

import csv
import io
import logging
import math
from collections import Counter
from dataclasses import dataclass

import numpy as np

from tabsniff.configs.config import (
    CANDIDATE_DELIMITERS,
    CANDIDATE_QUOTES,
    MIN_SAMPLE_RECORDS,
)
from tabsniff.configs.csv_dialect import build_dialect
from tabsniff.configs.exceptions import InferenceError
from tabsniff.discovery.csv_reader import CSVConfig, average_record_len, encoded_size
from tabsniff.inference.viterbi import DATA, HEADER, PREAMBLE, ROLES, decode
from tabsniff.models.models import DialectMetadata, FieldSpec, FieldType, RowRole
from tabsniff.transformers.typing_infer import (
    cell_matches,
    infer_cell_type,
    infer_schema,
    profile_column_type,
)

logger = logging.getLogger(__name__)

# How many of the most common field counts are tried as the steady count.
_MAX_FIELD_COUNT_CANDIDATES = 3

# Dialect prior: single-column readings explain anything, so they must
# clearly beat every multi-column reading to win.
_SINGLE_FIELD_PENALTY = 1.5
_FIELD_COUNT_BONUS = 0.01
_DELIMITER_ORDER_PENALTY = 0.05

_NEG_INF = float("-inf")


@dataclass(frozen=True, slots=True)
class Candidate:
    """A delimiter/quote pair to parse the sample with."""

    delimiter: str
    quote: str | None


@dataclass(slots=True)
class Labeling:
    """
    Best role labeling found for one candidate dialect.

    Attributes:
        candidate:  The delimiter/quote pair.
        num_fields: Steady field count ``k``.
        score:      Per-record log-likelihood plus the dialect prior.
        roles:      One role per record.
        records:    Records parsed under ``candidate``.
    """

    candidate: Candidate
    num_fields: int
    score: float
    roles: list[RowRole]
    records: list[list[str]]

    @property
    def preamble_rows(self) -> int:
        count = 0
        for role in self.roles:
            if role != "preamble":
                break
            count += 1
        return count

    @property
    def header_index(self) -> int | None:
        try:
            return self.roles.index("header")
        except ValueError:
            return None

    @property
    def data_records(self) -> list[list[str]]:
        return [rec for rec, role in zip(self.records, self.roles) if role == "data"]


@dataclass(frozen=True, slots=True)
class InferenceOutcome:
    """
    Everything the inferencer learned from one sample.

    Attributes:
        dialect:          Inferred ``DialectMetadata``.
        schema:           Ordered ``FieldSpec`` tuple.
        avg_record_len:  Sample bytes per record (at least 1).
        sampled_records: Data records examined.
    """

    dialect: DialectMetadata
    schema: tuple[FieldSpec, ...]
    avg_record_len: int
    sampled_records: int


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def infer(
    conf: CSVConfig,
    *,
    max_records: int | None = None,
    sample_all: bool = False,
    delimiter: str | None = None,
    prefer_dmy: bool = False,
) -> InferenceOutcome:
    """
    Infer dialect, schema and average record length from a stored sample.

    Args:
        conf:        Reader configuration for the sample store.  Only its
                     path and encoding are used; the dialect is inferred.
        max_records: Records to examine.  Raised to the 20-record floor.
        sample_all:  Examine every record, ignoring ``max_records``.
        delimiter:   Explicit delimiter; skips delimiter inference only.
        prefer_dmy:  Read ambiguous dates day-first.

    Returns:
        ``InferenceOutcome``.

    Raises:
        InferenceError: If the sample is empty or no labeling is viable.
        SourceIOError:  If the sample cannot be read.
    """
    if sample_all:
        limit = None
        logger.info("Sniffing ALL rows...")
    else:
        limit = max(max_records or 0, MIN_SAMPLE_RECORDS)
        logger.info("Sniffing %d rows...", limit)

    # header and preamble lines come out of the slack, not the data budget
    text = read_sample_text(conf, None if limit is None else limit + MIN_SAMPLE_RECORDS)
    nbytes = encoded_size(text, conf.encoding)

    labeling = best_labeling(text, delimiter=delimiter, prefer_dmy=prefer_dmy)
    return _outcome(labeling, nbytes, conf.utf8_valid, prefer_dmy, limit)


def read_sample_text(conf: CSVConfig, max_lines: int | None) -> str:
    """Read at most ``max_lines`` physical lines (all when ``None``) as text."""
    lines: list[str] = []
    with conf.open_text() as f:
        for line in f:
            if max_lines is not None and len(lines) >= max_lines:
                break
            lines.append(line)
    return "".join(lines)


def candidate_dialects(text: str, delimiter: str | None = None) -> list[Candidate]:
    """
    Candidate delimiter/quote pairs for ``text``, in tie-break order.

    Delimiters that never occur are dropped; when none occur the sample is
    read as a single comma-separated column.
    """
    if delimiter:
        delimiters = [delimiter]
    else:
        delimiters = [d for d in CANDIDATE_DELIMITERS if d in text] or [","]

    quotes: list[str | None] = [q for q in CANDIDATE_QUOTES if q in text]
    quotes.append(None)

    return [Candidate(d, q) for d in delimiters for q in quotes]


def best_labeling(
    text: str,
    delimiter: str | None = None,
    prefer_dmy: bool = False,
) -> Labeling:
    """
    Run the joint inference over every candidate and return the winner.

    Raises:
        InferenceError: If ``text`` holds no records or every candidate
            yields an impossible labeling.
    """
    if not text.strip():
        raise InferenceError("Empty sample: no records to sniff.", records=0)

    best: Labeling | None = None
    for candidate in candidate_dialects(text, delimiter):
        records = parse_records(text, candidate)
        if records is None or not records:
            continue
        for num_fields in _field_count_candidates(records):
            labeling = label_records(records, candidate, num_fields, prefer_dmy)
            if labeling is None:
                continue
            logger.debug(
                "candidate delimiter=%r quote=%r k=%d score=%.4f",
                candidate.delimiter, candidate.quote, num_fields, labeling.score,
            )
            if best is None or labeling.score > best.score:
                best = labeling

    if best is None:
        raise InferenceError("Could not infer a consistent dialect from the sample.")

    logger.info(
        "Chose delimiter=%r quote=%r fields=%d (score %.4f)",
        best.candidate.delimiter, best.candidate.quote, best.num_fields, best.score,
    )
    return best


def parse_records(text: str, candidate: Candidate) -> list[list[str]] | None:
    """
    Parse ``text`` under ``candidate``, skipping blank lines.

    Returns ``None`` if the csv module rejects the text.
    """
    dialect = build_dialect(candidate.delimiter, candidate.quote)
    try:
        return [rec for rec in csv.reader(io.StringIO(text, newline=""), dialect=dialect) if rec]
    except csv.Error as e:
        logger.debug("candidate %r rejected: %s", candidate, e)
        return None


def label_records(
    records: list[list[str]],
    candidate: Candidate,
    num_fields: int,
    prefer_dmy: bool = False,
) -> Labeling | None:
    """
    Label ``records`` with their most likely roles for a steady field count.

    Returns:
        ``Labeling``, or ``None`` when no role path is possible.
    """
    profile = _column_profile(records, num_fields, prefer_dmy)
    emissions = np.array(
        [_emission(rec, num_fields, profile, prefer_dmy) for rec in records],
        dtype=float,
    )
    log_likelihood, path = decode(emissions)
    if log_likelihood == _NEG_INF:
        return None

    score = log_likelihood / len(records) + _dialect_prior(candidate, num_fields)
    return Labeling(
        candidate=candidate,
        num_fields=num_fields,
        score=score,
        roles=[ROLES[state] for state in path],
        records=records,
    )


# ---------------------------------------------------------------------------
# Emission model
# ---------------------------------------------------------------------------

def _emission(
    record: list[str],
    num_fields: int,
    profile: list[FieldType],
    prefer_dmy: bool,
) -> list[float]:
    """Log-probabilities of ``record`` under each role, indexed by state."""
    out = [0.0, 0.0, 0.0]
    width = len(record)
    matches = width == num_fields

    out[PREAMBLE] = math.log(0.02) if matches else math.log(0.85)

    header_base = math.log(0.9) if matches else math.log(0.01)
    likeness = _header_likeness(record, profile, prefer_dmy)
    out[HEADER] = header_base + math.log(0.05 + 0.9 * likeness)

    data_base = math.log(0.95) if matches else math.log(0.05 / (1 + abs(width - num_fields)))
    fit = _type_fit(record, profile, prefer_dmy)
    out[DATA] = data_base + math.log(0.5 + 0.5 * fit)
    return out


def _type_fit(record: list[str], profile: list[FieldType], prefer_dmy: bool) -> float:
    """Share of non-null cells consistent with their column's profiled type."""
    checked = consistent = 0
    for cell, column_type in zip(record, profile):
        cell_type = infer_cell_type(cell, prefer_dmy)
        if cell_type == "NULL":
            continue
        checked += 1
        if cell_matches(cell_type, column_type):
            consistent += 1
    return consistent / checked if checked else 1.0


def _header_likeness(record: list[str], profile: list[FieldType], prefer_dmy: bool) -> float:
    """
    How much ``record`` looks like a header over ``profile``, in [0, 1].

    Text cells over typed columns are strong evidence; text over text
    columns is mild evidence; empty or duplicate names count against.
    """
    cells = record[: len(profile)]
    if not cells:
        return 0.0

    total = 0.0
    for cell, column_type in zip(cells, profile):
        cell_type = infer_cell_type(cell, prefer_dmy)
        if cell_type == "NULL":
            continue
        if column_type == "Text":
            total += 0.6 if cell_type == "Text" else 0.1
        elif cell_type == "Text":
            total += 1.0
        elif not cell_matches(cell_type, column_type):
            total += 0.5
    likeness = total / len(cells)

    names = [c.strip() for c in cells if c.strip()]
    if len(set(names)) < len(names):
        likeness *= 0.5
    return likeness


def _column_profile(
    records: list[list[str]],
    num_fields: int,
    prefer_dmy: bool,
) -> list[FieldType]:
    """
    Majority column types over the steady-width records, skipping the first
    (the likeliest header) so it cannot vote on its own columns.
    """
    steady = [rec for rec in records if len(rec) == num_fields]
    body = steady[1:] or steady
    columns = list(zip(*body)) if body else []
    if len(columns) < num_fields:
        return ["Text"] * num_fields
    return [profile_column_type(col, prefer_dmy) for col in columns]


def _field_count_candidates(records: list[list[str]]) -> list[int]:
    widths = Counter(len(rec) for rec in records)
    return [k for k, _ in widths.most_common(_MAX_FIELD_COUNT_CANDIDATES)]


def _dialect_prior(candidate: Candidate, num_fields: int) -> float:
    prior = -_DELIMITER_ORDER_PENALTY * _delimiter_rank(candidate.delimiter)
    if num_fields <= 1:
        return prior - _SINGLE_FIELD_PENALTY
    return prior + _FIELD_COUNT_BONUS * math.log(num_fields)


def _delimiter_rank(delimiter: str) -> int:
    try:
        return CANDIDATE_DELIMITERS.index(delimiter)
    except ValueError:
        return 0  # explicit override outside the candidate list


# ---------------------------------------------------------------------------
# Outcome assembly
# ---------------------------------------------------------------------------

def _outcome(
    labeling: Labeling,
    nbytes: int,
    utf8_valid: bool,
    prefer_dmy: bool,
    limit: int | None = None,
) -> InferenceOutcome:
    k = labeling.num_fields
    data = labeling.data_records
    if not data:
        raise InferenceError(
            "Sample has no data rows after the header and preamble.",
            records=len(labeling.records),
        )
    if limit is not None:
        data = data[:limit]
    logger.debug(
        "Labeled %d records: %d preamble, header=%s, %d data examined",
        len(labeling.records), labeling.preamble_rows,
        labeling.header_index is not None, len(data),
    )

    header_index = labeling.header_index
    header = labeling.records[header_index] if header_index is not None else []
    names = _field_names(header, k)

    dialect = DialectMetadata(
        delimiter=labeling.candidate.delimiter,
        quote=labeling.candidate.quote,
        header_present=header_index is not None,
        preamble_row_count=labeling.preamble_rows,
        flexible=any(len(rec) != k for rec in data),
        utf8_valid=utf8_valid,
    )
    schema = infer_schema(names, data, k, prefer_dmy)

    return InferenceOutcome(
        dialect=dialect,
        schema=schema,
        avg_record_len=average_record_len(nbytes, len(labeling.records)),
        sampled_records=len(data),
    )


def _field_names(header: list[str], num_fields: int) -> list[str]:
    names = []
    for i in range(num_fields):
        name = header[i].strip() if i < len(header) else ""
        names.append(name or f"field_{i + 1}")
    return names
