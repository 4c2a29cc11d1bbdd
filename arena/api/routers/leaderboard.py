"""Vote results endpoints.

Routes
------
GET /api/votes/recent           Newest raw votes
GET /api/leaderboard?limit=     Wins grouped by provider/model + vote stats
GET /api/battles?limit=         Recent battles with both sides described

Variant ids are resolved through the loaded catalog first.  Ids whose run
is no longer on disk are described from the key itself.
"""

from __future__ import annotations

import re
from typing import Any, Optional

from fastapi import APIRouter, Request

from arena.api.routers.meta import configured_models
from arena.api.state import VariantCatalog
from arena.benchmark.loader import parse_variant_key
from arena.db.votes import get_vote_stats, list_battle_history, list_leaderboard, list_recent_votes

router = APIRouter()

_VERSION_SUFFIX_RE = re.compile(r"-(\d+)-(\d+)$")
_RUN_STAMP_RE = re.compile(r"^(\d{4}-\d{2}-\d{2})T(\d{2})-(\d{2})-(\d{2})-(\d{3})Z")


# ---------------------------------------------------------------------------
# Variant description
# ---------------------------------------------------------------------------

def _run_timestamp_from_folder(run_folder: str) -> Optional[str]:
    """``2025-01-02T03-04-05-678Z-abc123`` → ``2025-01-02T03:04:05.678Z``."""
    match = _RUN_STAMP_RE.match(run_folder)
    if not match:
        return None
    day, hh, mm, ss, ms = match.groups()
    return f"{day}T{hh}:{mm}:{ss}.{ms}Z"


def _infer_from_label(label: str) -> tuple[Optional[str], str]:
    """Guess ``(provider, display_label)`` from a sanitized label."""
    lowered = label.lower()
    if "claude" in lowered:
        return "Anthropic", _VERSION_SUFFIX_RE.sub(r".\1.\2", label)
    if "gpt" in lowered:
        return "OpenAI", re.sub(r"\b(\w)", lambda m: m.group(1).upper(), label.replace("-", " "))
    return None, label


def describe_variant(catalog: VariantCatalog, variant_id: str) -> dict[str, Any]:
    variant = catalog.get(variant_id)
    if variant is not None:
        return {
            "variantId": variant_id,
            "label": variant.metadata.display_label,
            "provider": variant.metadata.provider or None,
            "model": variant.metadata.model or None,
            "description": variant.run_meta.description or None,
            "runTimestamp": variant.run_timestamp or None,
        }

    parsed = parse_variant_key(variant_id)
    if parsed is not None:
        provider, label = _infer_from_label(parsed.label)
        return {
            "variantId": variant_id,
            "label": label,
            "provider": provider,
            "model": parsed.label,
            "description": None,
            "runTimestamp": _run_timestamp_from_folder(parsed.run_folder),
        }

    return {
        "variantId": variant_id,
        "label": variant_id,
        "provider": None,
        "model": None,
        "description": None,
        "runTimestamp": None,
    }


def build_leaderboard(
    catalog: VariantCatalog,
    rows: list[Any],
    models: list[dict[str, Any]],
) -> list[dict[str, Any]]:
    """Group win rows by ``provider::model`` and pad with zero-win models."""
    grouped: dict[str, dict[str, Any]] = {}
    for row in rows:
        entry = describe_variant(catalog, row.variant_id)
        entry["wins"] = row.wins
        key = f"{entry['provider'] or 'unknown'}::{entry['model'] or entry['label']}"
        existing = grouped.get(key)
        if existing is None:
            grouped[key] = entry
            continue
        existing["wins"] += entry["wins"]
        existing["description"] = existing["description"] or entry["description"]
        existing["runTimestamp"] = existing["runTimestamp"] or entry["runTimestamp"]

    for model in models:
        key = f"{model.get('provider') or 'unknown'}::{model.get('model') or model.get('label')}"
        grouped.setdefault(
            key,
            {
                "variantId": f"config-{model.get('model')}",
                "wins": 0,
                "label": model.get("label") or model.get("model"),
                "provider": model.get("provider"),
                "model": model.get("model"),
                "description": None,
                "runTimestamp": None,
            },
        )

    return sorted(grouped.values(), key=lambda e: (-e["wins"], e["label"] or ""))


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.get("/votes/recent")
def recent_votes(request: Request) -> dict[str, Any]:
    votes = list_recent_votes(request.app.state.db)
    return {"votes": [v.to_dict() for v in votes]}


@router.get("/leaderboard")
def leaderboard(request: Request, limit: int = 100) -> dict[str, Any]:
    conn = request.app.state.db
    limit = limit if limit > 0 else 100
    rows = list_leaderboard(conn, limit)
    entries = build_leaderboard(request.app.state.catalog, rows, configured_models())
    return {"entries": entries, "stats": get_vote_stats(conn).to_dict()}


@router.get("/battles")
def battles(request: Request, limit: int = 50) -> dict[str, Any]:
    catalog = request.app.state.catalog
    limit = limit if limit > 0 else 50

    def _side(variant_id: str) -> dict[str, Any]:
        described = describe_variant(catalog, variant_id)
        return {k: described[k] for k in ("variantId", "label", "provider", "model")}

    return {
        "battles": [
            {
                "id": b.id,
                "createdAt": b.created_at,
                "left": _side(b.left_variant_id),
                "right": _side(b.right_variant_id),
                "winner": _side(b.winner_variant_id) if b.winner_variant_id else None,
                "selection": b.selection,
                "notes": b.notes,
            }
            for b in list_battle_history(request.app.state.db, limit)
        ]
    }
