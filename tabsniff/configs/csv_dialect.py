"""
CSV dialect configuration for the sniff pipeline.

Registers the normalized sample dialect (``tabsniff_sample``) that every
remote sample is rewritten with:
- Every field quoted (``QUOTE_ALL``) so quoting is consistent throughout.
- ``\\n`` line terminator so byte lengths stay close to the source.

Also builds ad-hoc dialects for the candidate delimiter/quote pairs the
inferencer tries.

Usage:
    import csv
    from tabsniff.configs.csv_dialect import register_dialect, SAMPLE_DIALECT_NAME

    register_dialect()
    writer = csv.writer(f, dialect=SAMPLE_DIALECT_NAME)

BOM Handling:
    Open files with ``encoding='utf-8-sig'`` to strip the UTF-8 BOM.  The
    dialect itself does not handle this — it is an encoding concern.
"""

from __future__ import annotations

import csv

SAMPLE_DIALECT_NAME: str = "tabsniff_sample"


class NormalizedSampleDialect(csv.excel):
    """
    Dialect for rewritten remote samples.

    Inherits from ``csv.excel`` (comma-delimited, double-quote) and quotes
    every field.  The delimiter is replaced per sample by ``build_dialect``
    when the source uses something other than a comma.
    """

    quoting: int = csv.QUOTE_ALL
    lineterminator: str = "\n"


def register_dialect() -> None:
    """
    Register the ``tabsniff_sample`` dialect with the ``csv`` module.

    Safe to call multiple times — re-registration is a no-op if the
    dialect is already registered.
    """
    existing = csv.list_dialects()
    if SAMPLE_DIALECT_NAME not in existing:
        csv.register_dialect(SAMPLE_DIALECT_NAME, NormalizedSampleDialect)


def build_dialect(
    delimiter: str,
    quote: str | None,
    quoting: int | None = None,
) -> type[csv.Dialect]:
    """
    Build a dialect class for a delimiter/quote pair.

    Args:
        delimiter: Single field separator character.
        quote:     Quote character, or ``None`` to disable quote handling.
        quoting:   Explicit ``csv.QUOTE_*`` constant.  Defaults to
                   ``QUOTE_MINIMAL`` with a quote char, ``QUOTE_NONE`` without.

    Returns:
        A ``csv.Dialect`` subclass usable with ``csv.reader`` / ``csv.writer``.
    """
    if quoting is None:
        quoting = csv.QUOTE_MINIMAL if quote else csv.QUOTE_NONE

    attrs = {
        "delimiter": delimiter,
        "quotechar": quote or '"',
        "doublequote": True,
        "skipinitialspace": False,
        "lineterminator": "\n",
        "quoting": quoting,
        "strict": False,
    }
    return type("CandidateDialect", (csv.Dialect,), attrs)
