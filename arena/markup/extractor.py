"""Primary section extraction: the entry point of the normalization engine.

Given a raw model completion, picks the candidate section to render and
runs it through the fixed stage order::

    strip_jsx_artifacts → convert_class_bindings → rewrite_components → sanitize_markup

Candidate priority:

1. ``<section ... id="hero">...</section>`` (quote-agnostic, case-insensitive)
2. the first ``<main>...</main>``
3. the trimmed response

The function is pure and total: it never raises and holds no state, so it
can be called from any number of threads at once.
"""

from __future__ import annotations

import re

from arena.markup.components import rewrite_components
from arena.markup.models import ExtractionResult
from arena.markup.stages import convert_class_bindings, sanitize_markup, strip_jsx_artifacts

_HERO_SECTION_RE = re.compile(
    r"<section[^>]*id=([\"'])hero\1.*?</section>", re.IGNORECASE | re.DOTALL
)
_MAIN_SECTION_RE = re.compile(r"<main.*?</main>", re.IGNORECASE | re.DOTALL)


def select_candidate_section(response_text: str) -> str:
    """Return the substring of *response_text* that should be rendered."""
    hero = _HERO_SECTION_RE.search(response_text)
    if hero:
        return hero.group(0)
    main = _MAIN_SECTION_RE.search(response_text)
    if main:
        return main.group(0)
    return response_text.strip()


def normalize_section(section: str) -> str:
    """Run the four rewrite stages over *section*."""
    if not section:
        return ""
    output = strip_jsx_artifacts(section)
    output = convert_class_bindings(output)
    output = rewrite_components(output)
    return sanitize_markup(output)


def extract_primary_section(response_text: str | None) -> ExtractionResult:
    """Produce the sanitized fragment and the raw candidate for *response_text*.

    Fenced code markers around the HTML are tolerated; they are simply part
    of the trimmed fallback when no hero or main element is present.
    """
    text = response_text or ""
    raw_section = select_candidate_section(text)
    return ExtractionResult(
        sanitized_html=normalize_section(raw_section),
        raw_section=raw_section,
    )
