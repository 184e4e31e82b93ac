"""Row encoders for response payloads."""

from __future__ import annotations

import csv
import io
import json
from collections.abc import Sequence
from typing import Any

from deferred_query.core.enums import ResultFormat
from deferred_query.core.escaping import NULL_MARKER, escape


def _tsv_field(value: Any) -> str:
    if value is None:
        return NULL_MARKER
    if isinstance(value, bytes):
        value = value.decode("utf-8", errors="replace")
    return escape(str(value))


def _encode_tab_separated(
    columns: Sequence[str], rows: Sequence[Sequence[Any]], with_names: bool
) -> str:
    lines: list[str] = []
    if with_names:
        lines.append("\t".join(escape(name) for name in columns))
    for row in rows:
        lines.append("\t".join(_tsv_field(value) for value in row))
    return "".join(f"{line}\n" for line in lines)


def _encode_csv(columns: Sequence[str], rows: Sequence[Sequence[Any]]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerows(["" if value is None else value for value in row] for row in rows)
    return buffer.getvalue()


def _encode_json_each_row(columns: Sequence[str], rows: Sequence[Sequence[Any]]) -> str:
    return "".join(
        json.dumps(dict(zip(columns, row, strict=True)), default=str) + "\n" for row in rows
    )


def encode_rows(
    columns: Sequence[str],
    rows: Sequence[Sequence[Any]],
    format: ResultFormat,  # noqa: A002
) -> bytes:
    """Encode *rows* as the UTF-8 payload of *format*."""
    if format in (ResultFormat.TAB_SEPARATED, ResultFormat.TAB_SEPARATED_WITH_NAMES):
        text = _encode_tab_separated(columns, rows, format.has_header)
    elif format is ResultFormat.CSV:
        text = _encode_csv(columns, rows)
    elif format is ResultFormat.JSON_EACH_ROW:
        text = _encode_json_each_row(columns, rows)
    else:
        raise ValueError(f"Unsupported result format: {format}")
    return text.encode("utf-8")
