from __future__ import annotations

import argparse
import sys
from pathlib import Path

from riemann_gpu.benchmark import run_suite, write_artifacts
from riemann_gpu.config import BenchConfig, load_bench_config, override_bench_config
from riemann_gpu.errors import DeviceFailure, InvalidDomain
from riemann_gpu.report import render_console

EXIT_DEVICE_FAILURE = 1
EXIT_USAGE = 2


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    ap = argparse.ArgumentParser(
        description="Riemann-sum integration on CPU vs CUDA: accuracy check + timing benchmark."
    )
    ap.add_argument("--config", default="", help="JSON/YAML bench config (optional `bench:` section).")
    ap.add_argument("--lower", type=float, default=None, help="Benchmark interval lower bound (default: 1).")
    ap.add_argument("--upper", type=float, default=None, help="Benchmark interval upper bound (default: 20).")
    ap.add_argument("--sizes", type=int, nargs="+", default=None, help="Sample counts to benchmark, in order.")
    ap.add_argument(
        "--mode",
        choices=["polynomial", "heavy"],
        default=None,
        help="Evaluator for the benchmark sweep (default: heavy).",
    )
    ap.add_argument("--block_size", type=int, default=None, help="Threads per block (default: 256).")
    ap.add_argument("--heavy_terms", type=int, default=None, help="Inner iterations of the heavy evaluator (default: 30000).")
    ap.add_argument("--accuracy_lower", type=float, default=None, help="Accuracy check lower bound (default: 10).")
    ap.add_argument("--accuracy_upper", type=float, default=None, help="Accuracy check upper bound (default: 40).")
    ap.add_argument("--accuracy_n", type=int, default=None, help="Accuracy check sample count (default: 10000).")
    ap.add_argument("--no_warmup", action="store_true", help="Skip the untimed warm-up launch.")
    ap.add_argument("--out_dir", default="", help="Write benchmark.csv, summary_metadata.json, report.md, manifest.")
    ap.add_argument("--no_progress", action="store_true", help="Disable the progress bar on stderr.")
    return ap.parse_args(argv)


def _build_config(args: argparse.Namespace) -> BenchConfig:
    cfg = load_bench_config(args.config) if args.config else BenchConfig()
    return override_bench_config(
        cfg,
        lower=args.lower,
        upper=args.upper,
        sizes=args.sizes,
        mode=args.mode,
        block_size=args.block_size,
        heavy_terms=args.heavy_terms,
        accuracy_lower=args.accuracy_lower,
        accuracy_upper=args.accuracy_upper,
        accuracy_n=args.accuracy_n,
        warmup=False if args.no_warmup else None,
    )


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    try:
        cfg = _build_config(args)
    except (OSError, ValueError) as exc:
        sys.stderr.write(f"ERROR: invalid configuration: {exc}\n")
        return EXIT_USAGE

    try:
        report = run_suite(cfg, progress=not args.no_progress)
    except InvalidDomain as exc:
        sys.stderr.write(f"ERROR: invalid domain: {exc}\n")
        return EXIT_USAGE
    except DeviceFailure as exc:
        sys.stderr.write(f"Error: {exc}\n")
        return EXIT_DEVICE_FAILURE

    sys.stdout.write(render_console(report))
    if args.out_dir:
        out_dir = write_artifacts(report, cfg, Path(args.out_dir).resolve())
        sys.stdout.write(f"Artifacts: {out_dir}\n")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
