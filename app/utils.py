"""Utility helpers for the Hawk metadata service.

``build_cache_key`` and ``first_number`` are used internally. ``strip_markup``,
``format_count`` and ``stable_numeric_id`` are public helpers for consumers
that render records. Synopses are stored with their upstream markup.
"""

from __future__ import annotations

import re
from typing import Any
from urllib.parse import quote


MARKUP_RE = re.compile(r"<[^>]*>?")
DIGITS_RE = re.compile(r"\d+")


def build_cache_key(operation: str, **params: Any) -> str:
    """Return a deterministic cache key for an operation and its parameters.

    Parameters are ordered by name so call sites cannot produce two spellings
    of the same query. ``None`` is rendered as an empty value.
    """

    parts = [quote(operation, safe="")]
    for name in sorted(params):
        value = params[name]
        rendered = "" if value is None else str(value)
        parts.append(f"{quote(name, safe='')}={quote(rendered, safe='')}")
    return "|".join(parts)


def strip_markup(text: str | None) -> str:
    """Remove HTML-ish tags from a synopsis."""

    if not text:
        return ""
    return MARKUP_RE.sub("", text).strip()


def first_number(text: str | None) -> int | None:
    """Return the first run of digits in ``text`` as an integer."""

    if not text:
        return None
    match = DIGITS_RE.search(text)
    if not match:
        return None
    return int(match.group(0))


def format_count(value: int) -> str:
    """Return a compact label for catalog counters (``18000`` -> ``18k``)."""

    if value >= 1000:
        return f"{int(value / 1000 + 0.5)}k"
    return str(value)


def stable_numeric_id(value: str | int) -> int:
    """Return a numeric identifier for ``value``.

    Numeric strings are parsed as-is. Anything else is hashed with the 31-based
    string hash used by the watchlist front-end so both sides agree on the id.
    """

    if isinstance(value, int):
        return value
    text = str(value).strip()
    try:
        return int(text)
    except ValueError:
        pass

    digest = 0
    for char in text:
        digest = ((digest << 5) - digest + ord(char)) & 0xFFFFFFFF
    if digest >= 0x80000000:
        digest -= 0x100000000
    return abs(digest)
