"""Server-reported execution summary of a single operation.

Summaries arrive as a JSON object (the format of the ``X-ClickHouse-Summary``
style header) whose counters may be encoded as strings. Fields the server did
not report stay ``None``, which is distinct from a reported zero.
"""

from __future__ import annotations

import json
from typing import Any

from pydantic import BaseModel, ConfigDict, ValidationError

from deferred_query.core.exceptions import SummaryParseError


class OperationSummary(BaseModel):
    """Immutable execution statistics attached to a resolved response."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    read_rows: int | None = None
    read_bytes: int | None = None
    written_rows: int | None = None
    written_bytes: int | None = None
    total_rows_to_read: int | None = None
    result_rows: int | None = None
    result_bytes: int | None = None
    elapsed_ns: int | None = None
    query_id: str | None = None

    @classmethod
    def from_header(cls, header: str | None, query_id: str | None = None) -> OperationSummary:
        """Parse a JSON summary header.

        An empty or missing header yields a summary with no counters.

        Raises:
            SummaryParseError: If the header is not a JSON object of counters.
        """
        data: dict[str, Any] = {}
        if header:
            try:
                parsed = json.loads(header)
            except json.JSONDecodeError as e:
                raise SummaryParseError(str(e)) from e
            if not isinstance(parsed, dict):
                raise SummaryParseError(f"expected a JSON object, got {type(parsed).__name__}")
            data.update(parsed)
        if query_id is not None:
            data["query_id"] = query_id
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise SummaryParseError(str(e)) from e

    def get(self, field: str) -> int | None:
        """Return the counter named *field*, or None if it was not reported."""
        value = getattr(self, field, None)
        return value if isinstance(value, int) else None
