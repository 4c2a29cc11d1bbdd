"""Benchmark config loading and prompt / identifier helpers."""

from __future__ import annotations

import json
import re
import secrets
from datetime import datetime, timezone
from pathlib import Path

from arena.benchmark.models import BenchmarkConfig

PRODUCT_NAME_TOKEN = "[PRODUCT NAME]"
VALUE_PROP_TOKEN = "[1-sentence value proposition]"

_LABEL_INVALID_RE = re.compile(r"[^a-z0-9\-_]")
_LABEL_DASHES_RE = re.compile(r"-+")


def load_config(config_path: Path) -> BenchmarkConfig:
    """Read and validate ``benchmark.config.json``.

    Raises:
        FileNotFoundError: If *config_path* does not exist.
        pydantic.ValidationError: If the file does not match the schema.
    """
    data = json.loads(Path(config_path).read_text(encoding="utf-8"))
    return BenchmarkConfig.model_validate(data)


def render_prompt(template: str, description: str) -> str:
    """Fill the product placeholders of *template* from *description*.

    ``"Acme - Rockets for everyone"`` yields product ``Acme`` and value
    proposition ``Rockets for everyone``; a description without `` - ``
    fills both placeholders with the whole text.
    """
    parts = description.split(" - ")
    product_name = parts[0] or description
    value_prop = parts[1] if len(parts) > 1 and parts[1] else description
    return template.replace(PRODUCT_NAME_TOKEN, product_name).replace(
        VALUE_PROP_TOKEN, value_prop
    )


def build_user_message(description: str, notes: str | None = None) -> str:
    if notes:
        return f"{description}\n\nAdditional notes: {notes}"
    return description


def build_run_id(now: datetime | None = None) -> str:
    """Return a sortable, filesystem-safe run identifier."""
    now = now or datetime.now(timezone.utc)
    stamp = now.strftime("%Y-%m-%dT%H:%M:%S.") + f"{now.microsecond // 1000:03d}Z"
    stamp = stamp.replace(":", "-").replace(".", "-")
    return f"{stamp}-{secrets.token_hex(3)}"


def sanitize_label(label: str) -> str:
    """Lowercase *label* and reduce it to ``[a-z0-9-_]``."""
    slug = _LABEL_INVALID_RE.sub("-", label.lower())
    slug = _LABEL_DASHES_RE.sub("-", slug)
    return slug.strip("-")
