from __future__ import annotations

from importlib import metadata

from riemann_gpu.errors import DeviceFailure, InvalidDomain, RiemannGpuError
from riemann_gpu.integration import EvaluatorMode, Interval, integrate_parallel, integrate_sequential
from riemann_gpu.benchmark import check_accuracy, run_benchmark, run_suite, write_artifacts
from riemann_gpu.config import BenchConfig, load_bench_config

try:
    __version__ = metadata.version("riemann-gpu")
except metadata.PackageNotFoundError:
    __version__ = "0.1.0"

__all__ = [
    "BenchConfig",
    "DeviceFailure",
    "EvaluatorMode",
    "Interval",
    "InvalidDomain",
    "RiemannGpuError",
    "check_accuracy",
    "integrate_parallel",
    "integrate_sequential",
    "load_bench_config",
    "run_benchmark",
    "run_suite",
    "write_artifacts",
]
