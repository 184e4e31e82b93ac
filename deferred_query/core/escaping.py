"""Escaping helpers for SQL string literals and identifiers.

The escape table is built once at import time and never modified.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from types import MappingProxyType
from typing import TypeVar

from deferred_query.core.exceptions import InvalidArgumentError

T = TypeVar("T")

NULL_MARKER = "\\N"

ESCAPE_MAPPING = MappingProxyType(
    {
        "\\": "\\\\",
        "\n": "\\n",
        "\t": "\\t",
        "\b": "\\b",
        "\f": "\\f",
        "\r": "\\r",
        "\0": "\\0",
        "'": "\\'",
        "`": "\\`",
    }
)

_TRANSLATION = str.maketrans(dict(ESCAPE_MAPPING))


def escape(text: str | None) -> str:
    """Escape control and quote characters in *text*.

    ``None`` becomes the two-character NULL marker ``\\N``.
    """
    if text is None:
        return NULL_MARKER
    return text.translate(_TRANSLATION)


def quote_identifier(text: str | None) -> str:
    """Escape *text* and wrap it in backticks.

    Raises:
        InvalidArgumentError: If *text* is ``None``.
    """
    if text is None:
        raise InvalidArgumentError("Can't quote None as identifier")
    return f"`{escape(text)}`"


def flatten_parameters(parameter_groups: Iterable[Sequence[T]]) -> list[T]:
    """Concatenate batches of parameter values, preserving their order."""
    result: list[T] = []
    for group in parameter_groups:
        result.extend(group)
    return result
