"""Markup normalization endpoint.

Routes
------
POST /api/extract    Body: {"text": "<raw model output>"}
                     → {"sanitizedHtml": "...", "rawSection": "..."}
"""

from __future__ import annotations

from fastapi import APIRouter
from pydantic import BaseModel

from arena.markup import extract_primary_section

router = APIRouter()


class ExtractRequest(BaseModel):
    text: str = ""


class ExtractResponse(BaseModel):
    sanitizedHtml: str
    rawSection: str


@router.post("/extract", response_model=ExtractResponse)
def extract(body: ExtractRequest) -> dict[str, str]:
    """Run the normalization pipeline over *text*; never fails on odd input."""
    return extract_primary_section(body.text).to_dict()
