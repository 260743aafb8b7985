from __future__ import annotations

from riemann_gpu.integration.evaluators import HEAVY_TERMS, exact_polynomial_integral, heavy, polynomial
from riemann_gpu.integration.metrics import rows_checksum_sha256, speedup
from riemann_gpu.integration.parallel import integrate_parallel
from riemann_gpu.integration.sequential import integrate_sequential, warmup_sequential
from riemann_gpu.integration.types import (
    AccuracyCheck,
    BenchmarkRow,
    EvaluatorMode,
    Interval,
    LaunchGeometry,
    SampleGrid,
    TimingSample,
)

__all__ = [
    "AccuracyCheck",
    "BenchmarkRow",
    "EvaluatorMode",
    "HEAVY_TERMS",
    "Interval",
    "LaunchGeometry",
    "SampleGrid",
    "TimingSample",
    "exact_polynomial_integral",
    "heavy",
    "integrate_parallel",
    "integrate_sequential",
    "polynomial",
    "rows_checksum_sha256",
    "speedup",
    "warmup_sequential",
]
