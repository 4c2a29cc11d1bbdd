"""Text-level rewrite stages of the normalization pipeline.

Each stage is a plain ``str -> str`` function.  The pipeline order is fixed:
:func:`strip_jsx_artifacts` → :func:`convert_class_bindings` →
component rewrite → :func:`sanitize_markup`.
"""

from __future__ import annotations

import re

FRAGMENT_CLASS = "arena-fragment"

# ---------------------------------------------------------------------------
# JSX artifacts
# ---------------------------------------------------------------------------
_BLOCK_COMMENT_RE = re.compile(r"\{\s*/\*.*?\*/\s*\}", re.DOTALL)
_EMPTY_STRING_RE = re.compile(r"\{\s*(?:\"\"|''|``|[\"'`])\s*\}")
# Single pass, no nesting: ``{`a {b}`}`` is left partly braced.
_INLINE_STRING_RES = (
    re.compile(r"\{\s*`([^`]+)`\s*\}"),
    re.compile(r'\{\s*"([^"]+)"\s*\}'),
    re.compile(r"\{\s*'([^']+)'\s*\}"),
)
_FRAGMENT_OPEN = "<>"
_FRAGMENT_CLOSE = "</>"

# ---------------------------------------------------------------------------
# Class bindings
# ---------------------------------------------------------------------------
_CLASSNAME_ATTR = "className="
_CLASS_LITERAL_RES = (
    re.compile(r"class=\{\s*`([^`]+)`\s*\}"),
    re.compile(r'class=\{\s*"([^"]+)"\s*\}'),
    re.compile(r"class=\{\s*'([^']+)'\s*\}"),
)
_CLASS_EXPR_RE = re.compile(r"class=\{\s*([^}]+)\s*\}")
_CLASS_EXPR_SPLIT_RE = re.compile(r"[\s+|]+")
_QUOTE_CHARS_RE = re.compile(r"[\"'`]")

# ---------------------------------------------------------------------------
# Sanitizer
# ---------------------------------------------------------------------------
# An attribute name may follow whitespace, ``/``, a closing quote or brace,
# but never another name character (``data-onboarding``, ``data-style``).
_ATTR_START = r"[\s/]?(?<![\w:.-])"
_ATTR_VALUE = r"(?:\"[^\"]*\"|'[^']*'|\{[^}]*\}|[^\s>\"'{]*)"

_UNSAFE_RES = (
    re.compile(r"<script.*?</script\s*>", re.IGNORECASE | re.DOTALL),
    # Unterminated or stray script tags left after block removal.
    re.compile(r"</?script[^>]*>?", re.IGNORECASE),
    re.compile(_ATTR_START + r"on[a-z]+\s*=\s*" + _ATTR_VALUE, re.IGNORECASE),
    re.compile(_ATTR_START + r"style\s*=\s*" + _ATTR_VALUE, re.IGNORECASE),
)


def strip_jsx_artifacts(source: str) -> str:
    """Remove templating-only constructs without touching literal content."""
    output = _BLOCK_COMMENT_RE.sub("", source)
    output = _EMPTY_STRING_RE.sub(" ", output)
    for pattern in _INLINE_STRING_RES:
        output = pattern.sub(lambda m: m.group(1), output)
    output = output.replace(_FRAGMENT_OPEN, f'<div class="{FRAGMENT_CLASS}">')
    return output.replace(_FRAGMENT_CLOSE, "</div>")


def _flatten_class_expression(match: re.Match[str]) -> str:
    tokens = (
        _QUOTE_CHARS_RE.sub("", token).strip()
        for token in _CLASS_EXPR_SPLIT_RE.split(match.group(1))
    )
    return 'class="' + " ".join(t for t in tokens if t) + '"'


def convert_class_bindings(source: str) -> str:
    """Collapse every class-list spelling into a literal ``class="..."``.

    Conditional or joined expressions are not evaluated; identifier-like
    fragments are extracted and joined with single spaces.
    """
    output = source.replace(_CLASSNAME_ATTR, "class=")
    for pattern in _CLASS_LITERAL_RES:
        output = pattern.sub(lambda m: f'class="{m.group(1)}"', output)
    return _CLASS_EXPR_RE.sub(_flatten_class_expression, output)


def sanitize_markup(source: str) -> str:
    """Strip script blocks, inline event handlers and inline styles.

    Attributes are removed in every value form (quoted, braced, unquoted)
    and also when they follow the previous attribute with no whitespace,
    as in ``<a href="x"onclick="...">``.  Removal repeats until the text
    stops changing so that fragments joined by an earlier removal
    (``<scr<script></script>ipt>``) are caught too.
    The result is a fixed point: sanitizing it again is a no-op.
    """
    output = source
    while True:
        previous = output
        for pattern in _UNSAFE_RES:
            output = pattern.sub("", output)
        if output == previous:
            return output
