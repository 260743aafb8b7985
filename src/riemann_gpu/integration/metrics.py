from __future__ import annotations

import hashlib
import math
import statistics
from typing import Iterable, Sequence

from riemann_gpu.integration.types import BenchmarkRow, TimingSample


def speedup(cpu: TimingSample | float, gpu: TimingSample | float) -> float:
    """cpu / gpu, or 0.0 when the GPU time is zero. Never NaN, never infinite."""
    cpu_s = float(cpu.elapsed_s) if isinstance(cpu, TimingSample) else float(cpu)
    gpu_s = float(gpu.elapsed_s) if isinstance(gpu, TimingSample) else float(gpu)
    if not (math.isfinite(cpu_s) and math.isfinite(gpu_s)):
        return 0.0
    if gpu_s <= 0.0:
        return 0.0
    ratio = max(0.0, cpu_s) / gpu_s
    return ratio if math.isfinite(ratio) else 0.0


def accuracy_errors(exact: float, computed: float) -> tuple[float, float]:
    """Absolute error and percentage error relative to ``exact`` (NaN when exact is 0)."""
    abs_error = abs(float(computed) - float(exact))
    if float(exact) == 0.0:
        return abs_error, float("nan")
    return abs_error, abs_error / abs(float(exact)) * 100.0


def median_finite(values: Iterable[float]) -> float:
    finite = [float(x) for x in values if isinstance(x, (int, float)) and math.isfinite(float(x))]
    if not finite:
        return float("nan")
    return float(statistics.median(finite))


def _stable_float_token(x: float) -> str:
    v = float(x)
    if math.isfinite(v):
        return f"{v:.10g}"
    return "nan"


def rows_checksum_sha256(rows: Sequence[BenchmarkRow]) -> str:
    """Checksum of the computed values (timings excluded) for run-to-run comparison."""
    h = hashlib.sha256()
    for row in rows:
        h.update(str(int(row.n)).encode("utf-8"))
        h.update(b",")
        h.update(_stable_float_token(row.reference_value).encode("utf-8"))
        h.update(b",")
        h.update(_stable_float_token(row.gpu_value).encode("utf-8"))
        h.update(b"\n")
    return h.hexdigest().upper()
