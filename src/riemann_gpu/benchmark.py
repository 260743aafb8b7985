from __future__ import annotations

import csv
import hashlib
import json
import os
import platform
import subprocess
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List

import numba
import numpy as np
from tqdm import tqdm

from riemann_gpu.config import BenchConfig
from riemann_gpu.integration import device
from riemann_gpu.integration.evaluators import HEAVY_TERMS, exact_polynomial_integral
from riemann_gpu.integration.metrics import accuracy_errors, median_finite, rows_checksum_sha256, speedup
from riemann_gpu.integration.parallel import integrate_parallel
from riemann_gpu.integration.sequential import integrate_sequential, warmup_sequential
from riemann_gpu.integration.timing import time_host, timed
from riemann_gpu.integration.types import AccuracyCheck, BenchmarkRow, EvaluatorMode, Interval, SampleGrid
from riemann_gpu.report import render_report_md

SCHEMA_VERSION = "riemann_gpu_benchmark.v1"
CSV_FIELDS = ["n", "cpu_time_s", "gpu_time_s", "speedup", "cpu_result", "gpu_result"]


@dataclass(frozen=True, slots=True)
class BenchmarkReport:
    accuracy: AccuracyCheck
    rows: List[BenchmarkRow]
    interval: Interval
    mode: EvaluatorMode
    device_name: str
    phase_seconds: Dict[str, float] = field(default_factory=dict)


def check_accuracy(
    interval: Interval,
    n: int,
    *,
    block_size: int = device.DEFAULT_BLOCK_SIZE,
) -> AccuracyCheck:
    """Run the parallel engine once with the polynomial and compare with the closed form."""
    computed, _ = integrate_parallel(interval, n, EvaluatorMode.POLYNOMIAL, block_size=block_size)
    exact = exact_polynomial_integral(interval)
    abs_error, rel_error_pct = accuracy_errors(exact, computed)
    return AccuracyCheck(
        interval=interval,
        n=int(n),
        exact=float(exact),
        computed=float(computed),
        abs_error=float(abs_error),
        rel_error_pct=float(rel_error_pct),
    )


def benchmark_size(
    interval: Interval,
    n: int,
    mode: EvaluatorMode,
    *,
    block_size: int = device.DEFAULT_BLOCK_SIZE,
    heavy_terms: int = HEAVY_TERMS,
) -> BenchmarkRow:
    cpu_value, cpu_time = time_host(lambda: integrate_sequential(interval, n, mode, heavy_terms=heavy_terms))
    gpu_value, gpu_time = integrate_parallel(interval, n, mode, block_size=block_size, heavy_terms=heavy_terms)
    return BenchmarkRow(
        n=int(n),
        cpu_time_s=float(cpu_time.elapsed_s),
        gpu_time_s=float(gpu_time.elapsed_s),
        speedup=speedup(cpu_time, gpu_time),
        reference_value=float(cpu_value),
        gpu_value=float(gpu_value),
    )


def run_benchmark(cfg: BenchConfig, *, progress: bool = True) -> List[BenchmarkRow]:
    """One row per configured size, in order. Sizes share no state."""
    interval = cfg.interval
    rows: List[BenchmarkRow] = []
    for n in tqdm(cfg.sizes, total=len(cfg.sizes), desc="benchmark", disable=not progress, leave=True):
        rows.append(
            benchmark_size(
                interval,
                int(n),
                cfg.mode,
                block_size=int(cfg.block_size),
                heavy_terms=int(cfg.heavy_terms),
            )
        )
    return rows


def run_suite(cfg: BenchConfig, *, progress: bool = True) -> BenchmarkReport:
    interval = cfg.interval
    accuracy_interval = cfg.accuracy_interval
    # Reject bad inputs before anything reaches the device.
    for n in cfg.sizes:
        SampleGrid.build(interval, n)
    SampleGrid.build(accuracy_interval, cfg.accuracy_n)
    device.launch_geometry(1, cfg.block_size)

    device.require_device()
    phases: Dict[str, float] = {}
    if cfg.warmup:
        with timed("warmup", phases):
            warmup_sequential()
            device.warmup_kernel(int(cfg.block_size))
    with timed("accuracy", phases):
        accuracy = check_accuracy(accuracy_interval, int(cfg.accuracy_n), block_size=int(cfg.block_size))
    with timed("benchmark", phases):
        rows = run_benchmark(cfg, progress=progress)
    return BenchmarkReport(
        accuracy=accuracy,
        rows=rows,
        interval=interval,
        mode=cfg.mode,
        device_name=device.device_name(),
        phase_seconds=phases,
    )


def _git_sha_fallback() -> str | None:
    if os.environ.get("GITHUB_SHA"):
        return os.environ["GITHUB_SHA"]
    try:
        res = subprocess.run(["git", "rev-parse", "HEAD"], capture_output=True, check=True, text=True)
        return res.stdout.strip()
    except (OSError, subprocess.CalledProcessError):
        return None


def _sha256_of_file(path: Path) -> str:
    h = hashlib.sha256()
    with path.open("rb") as f:
        for chunk in iter(lambda: f.read(8192), b""):
            h.update(chunk)
    return h.hexdigest()


def _compute_file_infos(out_dir: Path, *, skip_names: set[str] | None = None) -> List[Dict[str, object]]:
    skip = skip_names or set()
    infos: List[Dict[str, object]] = []
    for path in sorted(out_dir.rglob("*")):
        if path.is_dir():
            continue
        rel = path.relative_to(out_dir).as_posix()
        if path.name in skip:
            continue
        infos.append({"path": f"./{rel}", "size_bytes": path.stat().st_size, "sha256": _sha256_of_file(path)})
    return infos


def _write_benchmark_csv(path: Path, rows: List[BenchmarkRow]) -> None:
    with path.open("w", encoding="utf-8", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=CSV_FIELDS)
        writer.writeheader()
        for row in rows:
            writer.writerow(
                {
                    "n": int(row.n),
                    "cpu_time_s": f"{row.cpu_time_s:.6f}",
                    "gpu_time_s": f"{row.gpu_time_s:.6f}",
                    "speedup": f"{row.speedup:.4f}",
                    "cpu_result": repr(float(row.reference_value)),
                    "gpu_result": repr(float(row.gpu_value)),
                }
            )


def _summary_metadata(report: BenchmarkReport, cfg: BenchConfig) -> Dict[str, object]:
    acc = report.accuracy
    speedups = [float(r.speedup) for r in report.rows]
    return {
        "schema_version": SCHEMA_VERSION,
        "device": report.device_name,
        "mode": report.mode.name.lower(),
        "interval": [float(report.interval.lower), float(report.interval.upper)],
        "sizes": [int(r.n) for r in report.rows],
        "block_size": int(cfg.block_size),
        "heavy_terms": int(cfg.heavy_terms),
        "accuracy": {
            "interval": [float(acc.interval.lower), float(acc.interval.upper)],
            "n": int(acc.n),
            "exact": float(acc.exact),
            "computed": float(acc.computed),
            "abs_error": float(acc.abs_error),
            "rel_error_pct": float(acc.rel_error_pct),
        },
        "speedup_median": median_finite(speedups),
        "speedup_max": max(speedups) if speedups else 0.0,
        "result_checksum": rows_checksum_sha256(report.rows),
        "phase_seconds": {k: float(v) for k, v in sorted(report.phase_seconds.items())},
    }


def _write_manifest(out_dir: Path, *, cfg: BenchConfig, files: List[Dict[str, object]]) -> None:
    from riemann_gpu import __version__

    payload: Dict[str, object] = {
        "tool_version": __version__,
        "git_sha": _git_sha_fallback(),
        "python_version": platform.python_version(),
        "numpy_version": np.__version__,
        "numba_version": numba.__version__,
        "timestamp_utc": datetime.now(timezone.utc).replace(microsecond=0).isoformat(),
        "config": cfg.to_dict(),
        "files": sorted(files, key=lambda x: str(x.get("path", ""))),
    }
    (out_dir / "manifest.json").write_text(
        json.dumps(payload, ensure_ascii=False, sort_keys=True, indent=2) + "\n", encoding="utf-8"
    )


def _write_checksums(out_dir: Path, file_infos: List[Dict[str, object]]) -> None:
    lines: List[str] = []
    for info in file_infos:
        sha = str(info.get("sha256") or "")
        rel = str(info.get("path") or "").removeprefix("./")
        if not sha or not rel:
            continue
        lines.append(f"{sha}  {rel}")
    (out_dir / "checksums.sha256").write_text("\n".join(lines) + ("\n" if lines else ""), encoding="utf-8")


def write_artifacts(report: BenchmarkReport, cfg: BenchConfig, out_dir: Path) -> Path:
    """
    Write the benchmark evidence pack into ``out_dir``:
    benchmark.csv, summary_metadata.json, report.md (+ assets), manifest.json, checksums.sha256.
    """
    out_dir = Path(out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)

    _write_benchmark_csv(out_dir / "benchmark.csv", report.rows)
    meta = _summary_metadata(report, cfg)
    (out_dir / "summary_metadata.json").write_text(
        json.dumps(meta, ensure_ascii=False, sort_keys=True, indent=2) + "\n", encoding="utf-8"
    )
    render_report_md(report, out_path=out_dir / "report.md", assets_dir=out_dir / "report_assets")

    file_infos = _compute_file_infos(out_dir, skip_names={"manifest.json", "checksums.sha256"})
    _write_manifest(out_dir, cfg=cfg, files=file_infos)
    # recompute after manifest to include it in checksums
    _write_checksums(out_dir, _compute_file_infos(out_dir, skip_names={"checksums.sha256"}))
    return out_dir
