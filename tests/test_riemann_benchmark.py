from __future__ import annotations

import csv
import json
import math
import os
from pathlib import Path

import pytest

from riemann_gpu import benchmark
from riemann_gpu.benchmark import benchmark_size, check_accuracy, run_benchmark, run_suite, write_artifacts
from riemann_gpu.config import BenchConfig
from riemann_gpu.errors import DeviceFailure, InvalidDomain
from riemann_gpu.integration.types import EvaluatorMode, Interval


def _small_cfg(**kw) -> BenchConfig:
    base = dict(
        sizes=(100, 1000),
        heavy_terms=6,
        accuracy_n=1000,
        block_size=128,
    )
    base.update(kw)
    return BenchConfig(**base)


def test_check_accuracy_reports_error_as_data() -> None:
    acc = check_accuracy(Interval(10.0, 40.0), 10000)
    assert acc.n == 10000
    assert acc.abs_error == pytest.approx(abs(acc.computed - acc.exact))
    assert 0.0 <= acc.rel_error_pct < 0.1


def test_benchmark_size_row() -> None:
    row = benchmark_size(Interval(1.0, 20.0), 200, EvaluatorMode.HEAVY, heavy_terms=5)
    assert row.n == 200
    assert row.cpu_time_s >= 0.0 and row.gpu_time_s >= 0.0
    assert math.isfinite(row.speedup) and row.speedup >= 0.0
    if row.gpu_time_s == 0.0:
        assert row.speedup == 0.0
    assert row.reference_value == pytest.approx(row.gpu_value, rel=1e-9, abs=1e-9)


def test_run_benchmark_one_row_per_size_in_order() -> None:
    rows = run_benchmark(_small_cfg(), progress=False)
    assert [r.n for r in rows] == [100, 1000]
    for r in rows:
        assert r.cpu_time_s >= 0.0 and r.gpu_time_s >= 0.0
        assert math.isfinite(r.speedup) and r.speedup >= 0.0


@pytest.mark.skipif(
    os.environ.get("RIEMANN_GPU_SLOW_TESTS") != "1",
    reason="full size sweep is slow on the CUDA simulator; set RIEMANN_GPU_SLOW_TESTS=1",
)
def test_reference_scenario_full_size_sweep() -> None:
    cfg = BenchConfig(sizes=(100, 1000, 10000, 100000), heavy_terms=2, warmup=True)
    rows = run_benchmark(cfg, progress=False)
    assert [r.n for r in rows] == [100, 1000, 10000, 100000]
    for r in rows:
        assert r.cpu_time_s >= 0.0 and r.gpu_time_s >= 0.0
        assert math.isfinite(r.speedup) and r.speedup >= 0.0


def test_run_suite_collects_accuracy_rows_and_phases() -> None:
    report = run_suite(_small_cfg(), progress=False)
    assert report.mode is EvaluatorMode.HEAVY
    assert [r.n for r in report.rows] == [100, 1000]
    assert report.accuracy.n == 1000
    assert set(report.phase_seconds) == {"warmup", "accuracy", "benchmark"}
    assert report.device_name == "CUDA simulator"


def test_run_suite_without_warmup() -> None:
    report = run_suite(_small_cfg(warmup=False, sizes=(50,)), progress=False)
    assert "warmup" not in report.phase_seconds


@pytest.mark.parametrize("kw", [dict(sizes=(100, 0)), dict(lower=3.0, upper=1.0), dict(accuracy_n=-1), dict(block_size=0)])
def test_run_suite_rejects_bad_input_before_touching_device(monkeypatch, kw) -> None:
    def _no_device():
        raise AssertionError("device touched")

    monkeypatch.setattr(benchmark.device, "require_device", _no_device)
    with pytest.raises(InvalidDomain):
        run_suite(_small_cfg(**kw), progress=False)


def test_run_suite_propagates_device_failure(monkeypatch) -> None:
    def _fail():
        raise DeviceFailure("CUDA not available")

    monkeypatch.setattr(benchmark.device, "require_device", _fail)
    with pytest.raises(DeviceFailure):
        run_suite(_small_cfg(), progress=False)


def _read_csv(path: Path) -> list[dict[str, str]]:
    with path.open("r", encoding="utf-8", newline="") as f:
        return list(csv.DictReader(f))


def test_write_artifacts_evidence_pack(tmp_path: Path) -> None:
    cfg = _small_cfg(sizes=(64, 128))
    report = run_suite(cfg, progress=False)
    out_dir = write_artifacts(report, cfg, tmp_path / "out")

    for name in ["benchmark.csv", "summary_metadata.json", "report.md", "manifest.json", "checksums.sha256"]:
        assert (out_dir / name).exists(), name
    assert (out_dir / "report_assets" / "speedup.png").exists()

    rows = _read_csv(out_dir / "benchmark.csv")
    assert [int(r["n"]) for r in rows] == [64, 128]
    assert float(rows[0]["cpu_result"]) == report.rows[0].reference_value

    meta = json.loads((out_dir / "summary_metadata.json").read_text(encoding="utf-8"))
    assert meta["schema_version"] == "riemann_gpu_benchmark.v1"
    assert meta["sizes"] == [64, 128]
    assert meta["mode"] == "heavy"
    assert meta["accuracy"]["n"] == 1000
    assert len(meta["result_checksum"]) == 64

    manifest = json.loads((out_dir / "manifest.json").read_text(encoding="utf-8"))
    files = {f["path"] for f in manifest["files"]}
    assert {"./benchmark.csv", "./summary_metadata.json", "./report.md"} <= files
    assert manifest["config"]["sizes"] == [64, 128]

    checksummed = {line.split("  ", 1)[1] for line in (out_dir / "checksums.sha256").read_text(encoding="utf-8").splitlines()}
    assert "manifest.json" in checksummed
    assert "report_assets/speedup.png" in checksummed

    md = (out_dir / "report.md").read_text(encoding="utf-8")
    assert "| N | CPU time (s) | GPU time (s) | speedup (x) | CPU result | GPU result |" in md
    assert "report_assets/speedup.png" in md


def test_result_checksum_is_reproducible(tmp_path: Path) -> None:
    cfg = _small_cfg(sizes=(40, 80), warmup=False)
    a = write_artifacts(run_suite(cfg, progress=False), cfg, tmp_path / "a")
    b = write_artifacts(run_suite(cfg, progress=False), cfg, tmp_path / "b")
    meta_a = json.loads((a / "summary_metadata.json").read_text(encoding="utf-8"))
    meta_b = json.loads((b / "summary_metadata.json").read_text(encoding="utf-8"))
    assert meta_a["result_checksum"] == meta_b["result_checksum"]


def test_run_suite_warms_up_host_and_device(monkeypatch) -> None:
    calls: list[str] = []
    monkeypatch.setattr(benchmark, "warmup_sequential", lambda: calls.append("host"))
    monkeypatch.setattr(benchmark.device, "warmup_kernel", lambda block_size: calls.append(f"device:{block_size}"))
    run_suite(_small_cfg(sizes=(16,)), progress=False)
    assert calls == ["host", "device:128"]
