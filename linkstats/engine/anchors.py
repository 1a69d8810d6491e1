"""Anchor normalization.

Anchors are frequently re-hydrated from an array-like text column and carry
serialization debris (braces, quotes, escaped quotes, brackets). The rules
below are applied in a loop until the value stops changing, so any nesting of
that debris collapses to the same canonical phrase.
"""

from __future__ import annotations

import re
from typing import Any, Callable, Iterable, List

_ESCAPED_QUOTE_RE = re.compile(r"\\+([\"'`])")
_LEADING_BRACES_RE = re.compile(r"^\{+")
_TRAILING_BRACES_RE = re.compile(r"\}+$")
_LEADING_QUOTES_RE = re.compile(r"^[\"'`]+")
_TRAILING_QUOTES_RE = re.compile(r"[\"'`]+$")
_LEADING_BRACKETS_RE = re.compile(r"^\[+")
_TRAILING_BRACKETS_RE = re.compile(r"\]+$")

_RULES: List[Callable[[str], str]] = [
    str.strip,
    lambda value: _ESCAPED_QUOTE_RE.sub(r"\1", value),
    lambda value: _LEADING_BRACES_RE.sub("", value),
    lambda value: _TRAILING_BRACES_RE.sub("", value),
    lambda value: _LEADING_QUOTES_RE.sub("", value),
    lambda value: _TRAILING_QUOTES_RE.sub("", value),
    lambda value: _LEADING_BRACKETS_RE.sub("", value),
    lambda value: _TRAILING_BRACKETS_RE.sub("", value),
    str.strip,
]


def normalize(raw: Any) -> str:
    """Return the canonical form of ``raw`` or ``""`` for non-string input."""

    if not isinstance(raw, str):
        return ""

    value = raw
    while True:
        previous = value
        for rule in _RULES:
            value = rule(value)
        if value == previous:
            return value


def normalize_all(values: Iterable[Any]) -> List[str]:
    """Normalize each value, dropping empty results but keeping order."""

    cleaned: List[str] = []
    for value in values:
        anchor = normalize(value)
        if anchor:
            cleaned.append(anchor)
    return cleaned
