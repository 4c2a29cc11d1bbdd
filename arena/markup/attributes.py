"""Attribute grammar for pseudo-component tags.

Scans an attribute-list substring (everything between the tag name and the
closing ``>``) for ``name = value`` tokens.  A value is one of:

- a brace expression ``{...}`` (non-greedy; nested braces are NOT supported,
  the scan stops at the first ``}``),
- a double-quoted string,
- a single-quoted string.

Spread props, shorthand and value-less boolean attributes are skipped.
Expressions are never evaluated: the inner source text is kept literally.
"""

from __future__ import annotations

import re

_NAME = r"[a-zA-Z_:][a-zA-Z0-9_:.-]*"
_BRACE_VALUE = r"\{[^}]*\}"
_DOUBLE_QUOTED = r'"[^"]*"'
_SINGLE_QUOTED = r"'[^']*'"

_ATTRIBUTE_RE = re.compile(
    rf"({_NAME})\s*=\s*({_BRACE_VALUE}|{_DOUBLE_QUOTED}|{_SINGLE_QUOTED})"
)
_CLASS_NOISE_RE = re.compile(r"[`\"'{}]")

_ESCAPES = (
    ("&", "&amp;"),
    ('"', "&quot;"),
    ("<", "&lt;"),
    (">", "&gt;"),
)


def unwrap_attribute_value(value: str) -> str:
    """Strip the outer delimiter from a raw attribute value.

    Brace- or parenthesis-wrapped values are also trimmed inside; quoted
    values keep their inner whitespace.
    """
    trimmed = value.strip()
    if not trimmed:
        return ""
    if (trimmed.startswith("{") and trimmed.endswith("}")) or (
        trimmed.startswith("(") and trimmed.endswith(")")
    ):
        return trimmed[1:-1].strip()
    if len(trimmed) >= 2 and (
        (trimmed.startswith('"') and trimmed.endswith('"'))
        or (trimmed.startswith("'") and trimmed.endswith("'"))
    ):
        return trimmed[1:-1]
    return trimmed


def parse_attributes(source: str) -> dict[str, str]:
    """Return an ordered ``name -> value`` mapping for *source*.

    The first occurrence of a name wins; later duplicates are ignored.
    """
    attrs: dict[str, str] = {}
    for match in _ATTRIBUTE_RE.finditer(source or ""):
        key, raw_value = match.group(1), match.group(2)
        if key not in attrs:
            attrs[key] = unwrap_attribute_value(raw_value)
    return attrs


def split_classes(value: str | None) -> list[str]:
    """Split a class value into tokens, dropping leftover quotes and braces."""
    if not value:
        return []
    return _CLASS_NOISE_RE.sub(" ", value).split()


def escape_attribute(value: str) -> str:
    for raw, escaped in _ESCAPES:
        value = value.replace(raw, escaped)
    return value
