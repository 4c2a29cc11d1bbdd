"""Benchmark run orchestration: prompt every configured model, persist outputs.

Layout on disk::

    <outputDir>/<runId>/
        prompt.md
        meta.json
        <label>/
            response.txt      raw completion (input to the markup engine)
            response.json     provider payload
            metadata.json     provider / model / label / sampling settings
            error.log         only when the call failed
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Optional

from arena.benchmark.models import BenchmarkConfig, ModelConfig, ModelResult, RunMeta, VariantMetadata
from arena.benchmark.prompt import build_run_id, build_user_message, render_prompt, sanitize_label
from arena.benchmark.providers import ChunkCallback, call_model
from arena.config import settings

logger = logging.getLogger(__name__)

DRY_RUN_TEXT = "[dry-run] skipped model invocation."


@dataclass
class RunContext:
    """A freshly created run directory and everything needed to fill it."""

    run_id: str
    output_dir: Path
    config: BenchmarkConfig
    description: str
    notes: str
    system_prompt: str
    user_message: str

    def model_dir(self, model: ModelConfig) -> Path:
        return self.output_dir / sanitize_label(model.display_label)


def _write_json(path: Path, payload: Any) -> None:
    path.write_text(json.dumps(payload, indent=2, default=str), encoding="utf-8")


def start_run(
    config: BenchmarkConfig,
    description: str,
    notes: str = "",
    root_dir: Optional[Path] = None,
) -> RunContext:
    """Create the run directory and write ``prompt.md`` and ``meta.json``.

    Relative ``promptPath`` / ``outputDir`` values resolve against
    *root_dir* (``settings.root_dir`` by default).
    """
    root = root_dir or settings.root_dir
    template = (root / config.prompt_path).read_text(encoding="utf-8")
    system_prompt = render_prompt(template, description)

    run_id = build_run_id()
    output_dir = root / config.output_dir / run_id
    output_dir.mkdir(parents=True, exist_ok=True)

    (output_dir / "prompt.md").write_text(system_prompt, encoding="utf-8")
    meta = RunMeta(
        benchmark=config.benchmark_name,
        run_id=run_id,
        timestamp=datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
        description=description,
        notes=notes,
        temperature=config.temperature,
        max_output_tokens=config.max_output_tokens,
        models=[m.model_dump(by_alias=True, exclude_none=True) for m in config.models],
    )
    _write_json(output_dir / "meta.json", meta.to_json())

    return RunContext(
        run_id=run_id,
        output_dir=output_dir,
        config=config,
        description=description,
        notes=notes,
        system_prompt=system_prompt,
        user_message=build_user_message(description, notes),
    )


def persist_result(
    model_dir: Path,
    result: ModelResult,
    model: ModelConfig,
    description: str,
    notes: str = "",
) -> None:
    """Write the three artifacts for one model's completion."""
    model_dir.mkdir(parents=True, exist_ok=True)
    (model_dir / "response.txt").write_text(result.output_text or "", encoding="utf-8")
    _write_json(model_dir / "response.json", result.raw_response or {})
    metadata = VariantMetadata(
        provider=model.provider,
        model=model.model,
        label=model.label,
        temperature=model.temperature,
        max_output_tokens=model.max_output_tokens,
        description=description,
        notes=notes,
    )
    _write_json(model_dir / "metadata.json", metadata.to_json())


def write_error(model_dir: Path, message: str) -> None:
    model_dir.mkdir(parents=True, exist_ok=True)
    (model_dir / "error.log").write_text(message, encoding="utf-8")


def run_model(
    run: RunContext,
    model: ModelConfig,
    on_chunk: Optional[ChunkCallback] = None,
    dry_run: bool = False,
) -> ModelResult:
    """Call one model and persist its output into the run directory.

    Provider errors propagate after ``error.log`` has been written.
    """
    model_dir = run.model_dir(model)
    try:
        if dry_run:
            result = ModelResult(output_text=DRY_RUN_TEXT, raw_response={"skipped": True})
        else:
            result = call_model(model, run.system_prompt, run.user_message, run.config, on_chunk)
    except Exception as exc:
        write_error(model_dir, str(exc))
        raise
    persist_result(model_dir, result, model, run.description, run.notes)
    return result


def run_benchmark(
    config: BenchmarkConfig,
    description: str,
    notes: str = "",
    dry_run: bool = False,
    root_dir: Optional[Path] = None,
    echo: Callable[[str], None] = logger.info,
) -> RunContext:
    """Run every configured model in order; one failure does not stop the run."""
    run = start_run(config, description, notes, root_dir=root_dir)
    echo(
        f"Starting benchmark '{config.benchmark_name}' for "
        f"{len(config.models)} models (run {run.run_id})."
    )

    for model in config.models:
        try:
            run_model(run, model, dry_run=dry_run)
            echo(f"✔ Saved output for {model.provider}:{model.model}")
        except Exception as exc:  # noqa: BLE001
            logger.exception("model %s:%s failed", model.provider, model.model)
            echo(f"✖ Failed {model.provider}:{model.model} – {exc}")

    echo(f"Run complete. Artifacts saved to {run.output_dir}")
    return run
