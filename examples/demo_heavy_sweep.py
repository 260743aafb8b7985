from __future__ import annotations

import sys
from pathlib import Path

from riemann_gpu import BenchConfig, DeviceFailure, __version__, run_suite, write_artifacts
from riemann_gpu.report import render_console


def main() -> int:
    out_dir = Path(sys.argv[1]) if len(sys.argv) > 1 else Path("riemann_demo_out")
    # Lighter than the reference run so the demo finishes quickly on any device.
    cfg = BenchConfig(sizes=(100, 1000, 10000), heavy_terms=3000)
    try:
        report = run_suite(cfg)
    except DeviceFailure as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    sys.stdout.write(render_console(report))
    write_artifacts(report, cfg, out_dir)
    print(f"Wrote {out_dir} (riemann-gpu v{__version__})")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
