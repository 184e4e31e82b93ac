"""Enumerations shared across DeferredQuery."""

from __future__ import annotations

from enum import Enum


class DatabaseBackend(Enum):
    """Supported database backends."""

    SQLITE = "sqlite"


class ResultFormat(Enum):
    """Payload formats a response stream can be encoded in."""

    TAB_SEPARATED = "TabSeparated"
    TAB_SEPARATED_WITH_NAMES = "TabSeparatedWithNames"
    CSV = "CSV"
    JSON_EACH_ROW = "JSONEachRow"

    @property
    def has_header(self) -> bool:
        return self is ResultFormat.TAB_SEPARATED_WITH_NAMES
