"""Value types for the markup normalization pipeline."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class PolicyKind(str, Enum):
    STRIP_NAMED = "strip"
    KEEP_ONLY = "keep"


@dataclass(frozen=True)
class AttributePolicy:
    """Which attributes of a pseudo-component survive the rewrite.

    ``STRIP_NAMED`` removes the listed names and keeps everything else;
    ``KEEP_ONLY`` removes everything that is not listed.  A ``KEEP_ONLY``
    policy with an empty name list keeps everything.
    """

    kind: PolicyKind = PolicyKind.STRIP_NAMED
    names: tuple[str, ...] = ()

    @classmethod
    def strip(cls, *names: str) -> AttributePolicy:
        return cls(PolicyKind.STRIP_NAMED, tuple(names))

    @classmethod
    def keep_only(cls, *names: str) -> AttributePolicy:
        return cls(PolicyKind.KEEP_ONLY, tuple(names))

    def apply(self, attrs: dict[str, str]) -> dict[str, str]:
        """Return a filtered copy of *attrs*."""
        if self.kind is PolicyKind.KEEP_ONLY:
            if not self.names:
                return dict(attrs)
            return {k: v for k, v in attrs.items() if k in self.names}
        return {k: v for k, v in attrs.items() if k not in self.names}


@dataclass(frozen=True)
class ComponentRule:
    """One row of the component rewrite catalog."""

    source_name: str
    target_tag: str
    base_class: str
    policy: AttributePolicy = AttributePolicy()
    self_closing: bool = False


@dataclass(frozen=True)
class ExtractionResult:
    """Output of :func:`~arena.markup.extractor.extract_primary_section`.

    ``sanitized_html`` is safe to insert into a live DOM node;
    ``raw_section`` is the untouched candidate section for sandboxed frames.
    """

    sanitized_html: str
    raw_section: str

    def to_dict(self) -> dict[str, str]:
        return {"sanitizedHtml": self.sanitized_html, "rawSection": self.raw_section}
