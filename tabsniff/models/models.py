"""
Core data models for the sniff pipeline.

SampleSource    — where the sample lives locally and how much of the dataset it covers.
DialectMetadata — delimiter, quoting, header/preamble layout, raggedness, encoding.
FieldSpec       — name and inferred type of one column.
SniffResult     — the immutable aggregate handed back to callers.

Unknown sizes
-------------
``SampleSource.total_size`` is ``None`` when a server does not report a
``Content-Length``.  It is never replaced by a large number or zero;
arithmetic on it must check for ``None`` first.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal


# Origins a sample can be acquired from.
Origin = Literal["local", "remote", "stdin"]

# Field type labels used across the pipeline.
FieldType = Literal["Integer", "Float", "Boolean", "Date", "DateTime", "Text"]

# Row roles assigned by the Viterbi labeling.
RowRole = Literal["preamble", "header", "data"]


@dataclass(slots=True)
class SampleSource:
    """
    A bounded, local, seekable copy (or the original) of the dataset.

    Attributes:
        origin:             ``local``, ``remote`` or ``stdin``.
        display_id:         Canonical path, URL, or ``"stdin"``.
        store_path:         Local file the inferencer and estimator read.
        retrieved_size:     Bytes actually fetched.
        total_size:         Bytes in the full dataset, ``None`` when unknown.
        is_temporary:       True if ``store_path`` must be deleted when done.
        complete:           True if ``store_path`` holds every record of the dataset.
        downloaded_records: Data records copied into a remote sample (0 otherwise).
        raw_record_len:     Average bytes per record of the rows copied into a remote
                            sample, measured before rewriting; ``None`` otherwise.
        released:           Set once the temporary store has been deleted.
    """

    origin: Origin
    display_id: str
    store_path: Path
    retrieved_size: int
    total_size: int | None
    is_temporary: bool = False
    complete: bool = True
    downloaded_records: int = 0
    raw_record_len: int | None = None
    released: bool = field(default=False, compare=False)

    @property
    def size_basis(self) -> int:
        """Best available byte size of the full dataset."""
        if self.total_size is None:
            return self.retrieved_size
        return self.total_size


@dataclass(frozen=True, slots=True)
class DialectMetadata:
    """
    Syntactic conventions of the sniffed file.

    Attributes:
        delimiter:          Single field separator character.
        quote:              Quote character, or ``None`` when fields are never quoted.
        header_present:     True if a header row precedes the data.
        preamble_row_count: Non-tabular rows before the header/data.
        flexible:           True if data rows have varying field counts.
        utf8_valid:         True if the sample decodes as UTF-8.
    """

    delimiter: str
    quote: str | None
    header_present: bool
    preamble_row_count: int
    flexible: bool
    utf8_valid: bool


@dataclass(frozen=True, slots=True)
class FieldSpec:
    """One column: its name and inferred type."""

    name: str
    inferred_type: FieldType


@dataclass(frozen=True, slots=True)
class SniffResult:
    """
    Everything learned about one dataset.  Built once, never mutated.

    Attributes:
        display_id:       Path, URL or ``"stdin"``.
        timestamp:        RFC 3339 time the sniff ran (UTC).
        retrieved_size:   Bytes fetched.
        total_size:       Bytes in the full dataset (retrieved size when unknown).
        dialect:          Inferred ``DialectMetadata``.
        schema:           Ordered ``FieldSpec`` tuple, one per column.
        sampled_records:  Data records the inferencer examined.
        record_count:     Exact or estimated data records in the dataset.
        estimated:        True if ``record_count`` is an estimate.
        avg_record_len:   Average bytes per record in the sample.
    """

    display_id: str
    timestamp: str
    retrieved_size: int
    total_size: int
    dialect: DialectMetadata
    schema: tuple[FieldSpec, ...]
    sampled_records: int
    record_count: int
    estimated: bool
    avg_record_len: int

    def __post_init__(self) -> None:
        if self.record_count <= 0:
            raise ValueError("SniffResult.record_count must be positive")
        if self.sampled_records > self.record_count:
            raise ValueError(
                f"sampled_records {self.sampled_records} exceeds "
                f"record_count {self.record_count}"
            )

    @property
    def num_fields(self) -> int:
        return len(self.schema)

    @property
    def field_names(self) -> list[str]:
        return [f.name for f in self.schema]

    @property
    def field_types(self) -> list[str]:
        return [f.inferred_type for f in self.schema]
