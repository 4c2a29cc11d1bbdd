"""Benchmark package: prompt models, persist runs, load variants."""

from arena.benchmark.loader import compute_variant_key, load_variants, parse_variant_key
from arena.benchmark.models import BenchmarkConfig, BenchmarkVariant, ModelConfig, ModelResult
from arena.benchmark.prompt import load_config, sanitize_label
from arena.benchmark.providers import UnsupportedProviderError, call_model
from arena.benchmark.runner import run_benchmark

__all__ = [
    "BenchmarkConfig",
    "BenchmarkVariant",
    "ModelConfig",
    "ModelResult",
    "UnsupportedProviderError",
    "call_model",
    "compute_variant_key",
    "load_config",
    "load_variants",
    "parse_variant_key",
    "run_benchmark",
    "sanitize_label",
]
