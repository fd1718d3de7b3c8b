"""
Custom exceptions for the sniff pipeline.

Hierarchy:
    SniffError
    ├── InputError          Invalid invocation parameters; raised before any I/O.
    ├── SourceIOError       Filesystem or network failure while acquiring the sample.
    ├── InferenceError      The dialect/schema inference found no viable labeling.
    └── EmptyDatasetError   The adjusted record count is zero.

Every error carries a short ``title`` and a ``detail`` string so the CLI
can render it through the same output mode as a successful result.
"""

from __future__ import annotations


class SniffError(Exception):
    """
    Base class for all sniff errors.

    Args:
        message: Human-readable description; becomes ``detail``.
        title: Short category label used in structured error output.
    """

    title: str = "sniff error"

    def __init__(self, message: str, title: str | None = None) -> None:
        super().__init__(message)
        if title is not None:
            self.title = title

    @property
    def detail(self) -> str:
        return str(self)


class InputError(SniffError):
    """
    Raised when invocation parameters are invalid.

    Args:
        message: Human-readable description.
        parameter: Name of the offending parameter, if known.
    """

    def __init__(self, message: str, parameter: str | None = None) -> None:
        super().__init__(message)
        self.parameter = parameter


class SourceIOError(SniffError):
    """
    Raised when the input cannot be opened, read, downloaded or copied.

    Args:
        message: Human-readable description.
        source: Path or URL being acquired when the error occurred.
        title: Overrides the default ``sniff error`` title.
    """

    def __init__(
        self,
        message: str,
        source: str | None = None,
        title: str | None = None,
    ) -> None:
        super().__init__(message, title)
        self.source = source

    def __str__(self) -> str:
        base = super().__str__()
        if self.source:
            return f"{base} | source={self.source}"
        return base


class InferenceError(SniffError):
    """
    Raised when no dialect/row labeling can be inferred from the sample.

    Args:
        message: Human-readable description.
        records: Number of records that were examined, if known.
    """

    def __init__(self, message: str, records: int | None = None) -> None:
        super().__init__(message)
        self.records = records

    def __str__(self) -> str:
        base = super().__str__()
        if self.records is not None:
            return f"{base} | records={self.records}"
        return base


class EmptyDatasetError(SniffError):
    """
    Raised when the dataset holds no data records once header and preamble
    rows are accounted for.

    Args:
        message: Human-readable description.
        record_count: The adjusted count that triggered the error.
    """

    def __init__(self, message: str = "Empty file", record_count: int | None = None) -> None:
        super().__init__(message)
        self.record_count = record_count
