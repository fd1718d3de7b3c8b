"""
tabsniff — infer the dialect, schema and size of a delimited text file.

    tabsniff data/contacts.csv
    tabsniff --json https://example.com/big.csv
    cat data.tsv | tabsniff --sample 0 --pretty-json

Input is a local path, an http(s) URL, or standard input when omitted
(or ``-``).  Remote files are sampled: only enough lines to satisfy
``--sample`` are downloaded.

Environment variables (overridden by the matching flag):
    TABSNIFF_SAMPLE       Default --sample value
    TABSNIFF_DELIMITER    Default --delimiter value
    TABSNIFF_TIMEOUT      Default --timeout value
    TABSNIFF_PREFER_DMY   Set to parse ambiguous dates day-first
    TABSNIFF_PROGRESSBAR  Set to show the download progress bar
    TABSNIFF_USER_AGENT   User-Agent header for remote requests

Exit codes:
    0  Success
    1  Sniff failed (bad input, I/O failure, no viable dialect, empty file)
    2  Argument error
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import Sequence

from tabsniff.configs.config import VERSION, SniffConfig
from tabsniff.configs.exceptions import SniffError
from tabsniff.pipeline import sniff
from tabsniff.render import render_error, render_json, render_text

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        level=level,
        stream=sys.stderr,
    )


# ---------------------------------------------------------------------------
# Config: CLI flags over env vars over defaults
# ---------------------------------------------------------------------------

def _build_config(args: argparse.Namespace) -> SniffConfig:
    """
    Priority order for each setting:
      1. CLI flag
      2. TABSNIFF_* environment variable
      3. SniffConfig default
    """
    kwargs: dict = {}

    if args.sample is not None:    kwargs["sample_size"] = args.sample
    if args.delimiter is not None: kwargs["delimiter"]   = args.delimiter
    if args.timeout is not None:   kwargs["timeout"]     = args.timeout
    if args.prefer_dmy:            kwargs["prefer_dmy"]  = True
    if args.progressbar:           kwargs["progressbar"] = True

    if args.pretty_json:
        kwargs["output"] = "pretty-json"
    elif args.json:
        kwargs["output"] = "json"

    if args.save_urlsample:
        kwargs["save_urlsample"] = args.save_urlsample

    return SniffConfig(**kwargs)


# ---------------------------------------------------------------------------
# Argument parser (importable for tests)
# ---------------------------------------------------------------------------

def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tabsniff",
        description="Quickly sniff the dialect, schema and record count of a CSV.",
        epilog=(
            "--sample 0 sniffs every record; a value between 0 and 1 is a\n"
            "fraction of the records; anything else is a record count."
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("input", nargs="?", default=None,
                        help="Path or http(s) URL.  Reads stdin when omitted or '-'.")
    parser.add_argument("--sample", type=float, default=None,
                        help="Records to sample (default 1000).")
    parser.add_argument("--prefer-dmy", action="store_true", dest="prefer_dmy",
                        help="Parse ambiguous dates as day/month/year.")
    parser.add_argument("-d", "--delimiter", default=None,
                        help="Single-character delimiter; 'tab' or '\\t' for tab.")
    parser.add_argument("--json", action="store_true", help="Output as JSON.")
    parser.add_argument("--pretty-json", action="store_true", dest="pretty_json",
                        help="Output as pretty-printed JSON.")
    parser.add_argument("--save-urlsample", default=None, dest="save_urlsample",
                        help="Save the downloaded sample of a URL input to this file.")
    parser.add_argument("--timeout", type=int, default=None,
                        help="Seconds before a remote request is abandoned (default 30).")
    parser.add_argument("-p", "--progressbar", action="store_true",
                        help="Show a download progress bar for URL inputs.")
    parser.add_argument("--verbose", "-v", action="store_true")
    parser.add_argument("--version", action="version", version=f"%(prog)s {VERSION}")
    return parser


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def run(argv: Sequence[str] | None = None) -> int:
    """Parse ``argv``, sniff, print, and return the exit code."""
    parser = _build_parser()
    args = parser.parse_args(argv)
    _setup_logging(args.verbose)

    try:
        config = _build_config(args)
    except ValueError as e:
        # malformed TABSNIFF_* value; no config yet, so the flags pick the mode
        err = SniffError(str(e), title="configuration error")
        print(
            render_error(err, structured=args.json or args.pretty_json, pretty=args.pretty_json),
            file=sys.stderr,
        )
        return 2

    try:
        result = sniff(args.input, config)
    except SniffError as e:
        logger.debug("Sniff failed", exc_info=True)
        print(
            render_error(e, structured=config.structured, pretty=config.output == "pretty-json"),
            file=sys.stderr,
        )
        return 1

    if config.structured:
        print(render_json(result, pretty=config.output == "pretty-json"))
    else:
        print(render_text(result))
    return 0


def main() -> None:
    sys.exit(run())


if __name__ == "__main__":
    main()
