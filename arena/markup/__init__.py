"""Markup normalization engine: model output to embeddable HTML."""

from arena.markup.extractor import extract_primary_section
from arena.markup.models import AttributePolicy, ComponentRule, ExtractionResult

__all__ = ["extract_primary_section", "ExtractionResult", "ComponentRule", "AttributePolicy"]
