from __future__ import annotations

import math
from pathlib import Path
from typing import TYPE_CHECKING, List, Sequence

import matplotlib.pyplot as plt

from riemann_gpu.integration.timing import format_sec
from riemann_gpu.integration.types import AccuracyCheck, BenchmarkRow

if TYPE_CHECKING:
    from riemann_gpu.benchmark import BenchmarkReport

TABLE_HEADER = ("N", "CPU time (s)", "GPU time (s)", "speedup (x)", "CPU result")


def format_accuracy(acc: AccuracyCheck) -> List[str]:
    return [
        f"Checking correctness with polynomial over [{acc.interval.lower:g}, {acc.interval.upper:g}] (n={acc.n})...",
        f"Real val: {acc.exact:f}",
        f"GPU val:  {acc.computed:f}",
        f"Error %:  {acc.rel_error_pct:f}",
    ]


def format_table(rows: Sequence[BenchmarkRow]) -> List[str]:
    cells = [list(TABLE_HEADER)]
    for row in rows:
        cells.append(
            [
                f"{row.n:d}",
                f"{row.cpu_time_s:.4f}",
                f"{row.gpu_time_s:.4f}",
                f"{row.speedup:.2f} x",
                f"{row.reference_value:.2f}",
            ]
        )
    widths = [max(len(r[i]) for r in cells) for i in range(len(TABLE_HEADER))]
    return ["  ".join(c.rjust(w) for c, w in zip(r, widths)) for r in cells]


def render_console(report: "BenchmarkReport") -> str:
    lines = [f"Device: {report.device_name}", ""]
    lines.extend(format_accuracy(report.accuracy))
    lines.extend(
        [
            "",
            f"Benchmark ({report.mode.name.lower()} evaluator over "
            f"[{report.interval.lower:g}, {report.interval.upper:g}])...",
        ]
    )
    lines.extend(format_table(report.rows))
    return "\n".join(lines) + "\n"


def _plot_timings(rows: Sequence[BenchmarkRow], path: Path) -> None:
    ns = [int(r.n) for r in rows]
    fig, (ax_t, ax_s) = plt.subplots(1, 2, figsize=(10, 4))
    ax_t.loglog(ns, [max(r.cpu_time_s, 1e-9) for r in rows], marker="o", label="CPU")
    ax_t.loglog(ns, [max(r.gpu_time_s, 1e-9) for r in rows], marker="s", label="GPU (kernel)")
    ax_t.set_xlabel("N")
    ax_t.set_ylabel("time (s)")
    ax_t.legend()
    ax_s.semilogx(ns, [r.speedup for r in rows], marker="o", color="tab:green")
    ax_s.set_xlabel("N")
    ax_s.set_ylabel("speedup (x)")
    fig.tight_layout()
    path.parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(path, dpi=120)
    plt.close(fig)


def render_report_md(
    report: "BenchmarkReport",
    *,
    out_path: str | Path = "report.md",
    assets_dir: str | Path | None = None,
) -> str:
    out_file = Path(out_path).resolve()
    assets_dir_path = Path(assets_dir) if assets_dir is not None else out_file.with_name(f"{out_file.stem}_assets")
    acc = report.accuracy

    lines = [
        "# Riemann sum benchmark (riemann_gpu_benchmark.v1)",
        "",
        "## Accuracy",
        f"- Interval: [{acc.interval.lower:g}, {acc.interval.upper:g}], n={acc.n}, evaluator=polynomial",
        f"- Exact: {acc.exact:.6f}",
        f"- GPU: {acc.computed:.6f}",
        f"- Abs error: {acc.abs_error:.6g}",
        f"- Error %: {acc.rel_error_pct:.6g}" if math.isfinite(acc.rel_error_pct) else "- Error %: n/a (exact value is 0)",
        "",
        "## Benchmark",
        f"- Device: {report.device_name}",
        f"- Evaluator: {report.mode.name.lower()}",
        f"- Interval: [{report.interval.lower:g}, {report.interval.upper:g}]",
        "",
        "| N | CPU time (s) | GPU time (s) | speedup (x) | CPU result | GPU result |",
        "| --- | --- | --- | --- | --- | --- |",
    ]
    for row in report.rows:
        lines.append(
            f"| {row.n} | {row.cpu_time_s:.4f} | {row.gpu_time_s:.4f} | {row.speedup:.2f} | "
            f"{row.reference_value:.6f} | {row.gpu_value:.6f} |"
        )

    if report.phase_seconds:
        lines.extend(["", "## Phases"])
        for name, sec in sorted(report.phase_seconds.items()):
            lines.append(f"- {name}: {format_sec(sec)}")

    if report.rows:
        png = assets_dir_path / "speedup.png"
        _plot_timings(report.rows, png)
        rel = png.resolve().relative_to(out_file.parent) if png.resolve().is_relative_to(out_file.parent) else png
        lines.extend(["", f"![timings]({Path(rel).as_posix()})"])

    text = "\n".join(lines) + "\n"
    out_file.parent.mkdir(parents=True, exist_ok=True)
    out_file.write_text(text, encoding="utf-8")
    return text
