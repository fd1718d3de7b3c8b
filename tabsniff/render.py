"""
Output rendering for sniff results and errors.

Structured mode (``--json`` / ``--pretty-json``) emits one JSON object with
stable key names.  Text mode emits one ``Label: value`` line per property
followed by an aligned ``index: type name`` field table.

Errors render through the same mode as results:
    JSON  → {"errors": [{"title": ..., "detail": ...}]}
    text  → a single plain line
"""

from __future__ import annotations

import json
from typing import Any

from tabsniff.configs.exceptions import SniffError
from tabsniff.models.models import SniffResult


def to_dict(result: SniffResult) -> dict[str, Any]:
    """Flatten ``result`` into the structured output mapping."""
    dialect = result.dialect
    return {
        "path": result.display_id,
        "sniff_timestamp": result.timestamp,
        "delimiter_char": dialect.delimiter,
        "header_row": dialect.header_present,
        "preamble_rows": dialect.preamble_row_count,
        "quote_char": dialect.quote if dialect.quote is not None else "none",
        "flexible": dialect.flexible,
        "is_utf8": dialect.utf8_valid,
        "retrieved_size": result.retrieved_size,
        "file_size": result.total_size,
        "sampled_records": result.sampled_records,
        "estimated": result.estimated,
        "num_records": result.record_count,
        "avg_record_len": result.avg_record_len,
        "num_fields": result.num_fields,
        "fields": result.field_names,
        "types": result.field_types,
    }


def render_json(result: SniffResult, pretty: bool = False) -> str:
    return json.dumps(to_dict(result), indent=2 if pretty else None, ensure_ascii=False)


def render_text(result: SniffResult) -> str:
    """Human-readable report, one property per line."""
    d = to_dict(result)
    delimiter = "tab" if d["delimiter_char"] == "\t" else d["delimiter_char"]

    lines = [
        f"Path: {d['path']}",
        f"Sniff Timestamp: {d['sniff_timestamp']}",
        f"Delimiter: {delimiter}",
        f"Header Row: {_bool(d['header_row'])}",
        f"Preamble Rows: {d['preamble_rows']:,}",
        f"Quote Char: {d['quote_char']}",
        f"Flexible: {_bool(d['flexible'])}",
        f"Is UTF8: {_bool(d['is_utf8'])}",
        f"Retrieved Size (bytes): {d['retrieved_size']:,}",
        f"File Size (bytes): {d['file_size']:,}",
        f"Sampled Records: {d['sampled_records']:,}",
        f"Estimated: {_bool(d['estimated'])}",
        f"Num Records: {d['num_records']:,}",
        f"Avg Record Len (bytes): {d['avg_record_len']:,}",
        f"Num Fields: {d['num_fields']:,}",
        "Fields:",
    ]
    lines.extend(_field_table(result))
    return "\n".join(lines)


def render_error(err: SniffError, structured: bool = False, pretty: bool = False) -> str:
    """Render ``err`` in the active output mode."""
    if structured:
        payload = {"errors": [{"title": err.title, "detail": err.detail}]}
        return json.dumps(payload, indent=2 if pretty else None, ensure_ascii=False)
    return f"{err.title}: {err.detail}"


# ── helpers ─────────────────────────────────────────────────────────────────

def _bool(value: bool) -> str:
    return "true" if value else "false"


def _field_table(result: SniffResult) -> list[str]:
    indexes = [f"{i}:" for i in range(result.num_fields)]
    if not indexes:
        return []
    idx_width = max(len(i) for i in indexes)
    type_width = max(len(t) for t in result.field_types)
    return [
        f"    {idx:<{idx_width}}  {spec.inferred_type:<{type_width}}  {spec.name}"
        for idx, spec in zip(indexes, result.schema)
    ]
