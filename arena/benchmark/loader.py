"""Load persisted benchmark runs into :class:`BenchmarkVariant` objects.

Every unreadable artifact is skipped rather than raised: a half-written run
directory must never take the arena down.
"""

from __future__ import annotations

import hashlib
import json
import logging
import re
from pathlib import Path
from typing import Any, NamedTuple, Optional

from arena.benchmark.models import BenchmarkVariant, RunMeta, VariantMetadata
from arena.benchmark.prompt import sanitize_label
from arena.markup import extract_primary_section

logger = logging.getLogger(__name__)

_VARIANT_KEY_RE = re.compile(r"^([^/]+)/(.+)-([a-f0-9]{12})$")


class VariantKeyParts(NamedTuple):
    run_folder: str
    label: str
    hash: str


# ---------------------------------------------------------------------------
# Variant keys
# ---------------------------------------------------------------------------

def compute_variant_key(run_folder: str, provider: str, model: str, label: str) -> str:
    """Return ``<run>/<label>-<12 hex sha1>`` for one variant."""
    composite = f"{run_folder}:{provider}:{model}:{label}"
    digest = hashlib.sha1(composite.encode("utf-8")).hexdigest()[:12]
    return f"{run_folder}/{label}-{digest}"


def parse_variant_key(variant_key: str) -> Optional[VariantKeyParts]:
    match = _VARIANT_KEY_RE.match(variant_key)
    if not match:
        return None
    return VariantKeyParts(*match.groups())


def variant_key_for(run_folder: str, metadata: VariantMetadata, variant_dir: Path) -> str:
    label = sanitize_label(metadata.label or metadata.model or variant_dir.name)
    return compute_variant_key(run_folder, metadata.provider, metadata.model, label)


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _read_json(path: Path) -> Optional[dict[str, Any]]:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        return None
    return data if isinstance(data, dict) else None


def _read_text(path: Path) -> Optional[str]:
    try:
        return path.read_text(encoding="utf-8")
    except OSError:
        return None


def _subdirs(path: Path) -> list[Path]:
    try:
        return sorted(p for p in path.iterdir() if p.is_dir())
    except OSError:
        return []


def build_variant(run_meta: RunMeta, run_folder: str, variant_dir: Path) -> Optional[BenchmarkVariant]:
    """Build one variant, or ``None`` when its artifacts are missing."""
    response_path = variant_dir / "response.txt"
    response_text = _read_text(response_path)
    raw_metadata = _read_json(variant_dir / "metadata.json")
    if not response_text or raw_metadata is None:
        return None

    metadata = VariantMetadata.from_json(raw_metadata)
    extraction = extract_primary_section(response_text)
    return BenchmarkVariant(
        variant_key=variant_key_for(run_folder, metadata, variant_dir),
        run_id=run_meta.run_id or run_folder,
        run_timestamp=run_meta.timestamp,
        run_meta=run_meta,
        metadata=metadata,
        response_text_path=response_path,
        primary_html=extraction.sanitized_html,
        primary_raw=extraction.raw_section,
        source_text=response_text,
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def load_variants(runs_dir: Path) -> list[BenchmarkVariant]:
    """Return every loadable variant under *runs_dir*, oldest run first."""
    variants: list[BenchmarkVariant] = []
    for run_dir in _subdirs(Path(runs_dir)):
        raw_meta = _read_json(run_dir / "meta.json")
        if raw_meta is None:
            logger.debug("skipping run without meta.json: %s", run_dir)
            continue
        run_meta = RunMeta.from_json(raw_meta, fallback_run_id=run_dir.name)
        for variant_dir in _subdirs(run_dir):
            variant = build_variant(run_meta, run_dir.name, variant_dir)
            if variant is not None:
                variants.append(variant)

    variants.sort(key=lambda v: v.run_timestamp or "")
    return variants
