"""Data models for benchmark configuration and persisted run artifacts."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------------
# benchmark.config.json
# ---------------------------------------------------------------------------

class ModelConfig(BaseModel):
    """One model entry under ``models`` in the benchmark config."""

    model_config = ConfigDict(populate_by_name=True)

    provider: str
    model: str
    label: Optional[str] = None
    temperature: Optional[float] = None
    max_output_tokens: Optional[int] = Field(default=None, alias="maxOutputTokens")

    @property
    def display_label(self) -> str:
        return self.label or self.model


class BenchmarkConfig(BaseModel):
    """Top-level benchmark configuration file."""

    model_config = ConfigDict(populate_by_name=True)

    benchmark_name: str = Field(default="html-design", alias="benchmarkName")
    prompt_path: str = Field(default="prompts/landing-page.md", alias="promptPath")
    output_dir: str = Field(default="runs/html-design", alias="outputDir")
    temperature: float = 0.7
    max_output_tokens: int = Field(default=16000, alias="maxOutputTokens")
    models: list[ModelConfig] = Field(default_factory=list)

    def temperature_for(self, model: ModelConfig) -> float:
        return model.temperature if model.temperature is not None else self.temperature

    def max_tokens_for(self, model: ModelConfig) -> int:
        if model.max_output_tokens is not None:
            return model.max_output_tokens
        return self.max_output_tokens


# ---------------------------------------------------------------------------
# Provider results
# ---------------------------------------------------------------------------

@dataclass
class ModelResult:
    """Text produced by a provider plus the raw payload it came with."""

    output_text: str
    raw_response: Any = None


# ---------------------------------------------------------------------------
# Persisted run artifacts (meta.json / metadata.json)
# ---------------------------------------------------------------------------

@dataclass
class RunMeta:
    benchmark: str
    run_id: str
    timestamp: str
    description: str = ""
    product_name: Optional[str] = None  # legacy runs
    value_prop: Optional[str] = None  # legacy runs
    notes: Optional[str] = None
    temperature: Optional[float] = None
    max_output_tokens: Optional[int] = None
    models: Any = None

    @classmethod
    def from_json(cls, data: dict[str, Any], fallback_run_id: str = "") -> RunMeta:
        return cls(
            benchmark=data.get("benchmark", ""),
            run_id=data.get("runId") or fallback_run_id,
            timestamp=data.get("timestamp", ""),
            description=data.get("description") or "",
            product_name=data.get("productName"),
            value_prop=data.get("valueProp"),
            notes=data.get("notes"),
            temperature=data.get("temperature"),
            max_output_tokens=data.get("maxOutputTokens"),
            models=data.get("models"),
        )

    def to_json(self) -> dict[str, Any]:
        return {
            "benchmark": self.benchmark,
            "runId": self.run_id,
            "timestamp": self.timestamp,
            "description": self.description,
            "notes": self.notes,
            "temperature": self.temperature,
            "maxOutputTokens": self.max_output_tokens,
            "models": self.models,
        }

    @property
    def display_description(self) -> str:
        if self.description:
            return self.description
        return f"{self.product_name or ''} - {self.value_prop or ''}"


@dataclass
class VariantMetadata:
    provider: str
    model: str
    label: Optional[str] = None
    temperature: Optional[float] = None
    max_output_tokens: Optional[int] = None
    description: Optional[str] = None
    notes: Optional[str] = None

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> VariantMetadata:
        return cls(
            provider=data.get("provider", ""),
            model=data.get("model", ""),
            label=data.get("label"),
            temperature=data.get("temperature"),
            max_output_tokens=data.get("maxOutputTokens"),
            description=data.get("description"),
            notes=data.get("notes"),
        )

    def to_json(self) -> dict[str, Any]:
        return {
            "provider": self.provider,
            "model": self.model,
            "label": self.label,
            "temperature": self.temperature,
            "maxOutputTokens": self.max_output_tokens,
            "description": self.description,
            "notes": self.notes,
        }

    @property
    def display_label(self) -> str:
        return self.label or self.model or "Unknown"


@dataclass
class BenchmarkVariant:
    """One model's output for one run, ready to be shown in the arena."""

    variant_key: str
    run_id: str
    run_timestamp: str
    run_meta: RunMeta
    metadata: VariantMetadata
    response_text_path: Path
    primary_html: str
    primary_raw: str
    source_text: str
