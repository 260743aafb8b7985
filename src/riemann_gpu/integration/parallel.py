from __future__ import annotations

from typing import Sequence

import numpy as np

from riemann_gpu.errors import InvalidDomain
from riemann_gpu.integration import device
from riemann_gpu.integration.evaluators import HEAVY_TERMS
from riemann_gpu.integration.timing import device_timer
from riemann_gpu.integration.types import EvaluatorMode, Interval, SampleGrid, TimingSample


def reduce_contributions(values: np.ndarray | Sequence[float]) -> float:
    """Sum in ascending index order, the same order the sequential integrator uses."""
    total = 0.0
    for v in np.asarray(values, dtype=np.float64).tolist():
        total += v
    return total


def integrate_parallel(
    interval: Interval,
    n: int,
    mode: EvaluatorMode,
    *,
    block_size: int = device.DEFAULT_BLOCK_SIZE,
    heavy_terms: int = HEAVY_TERMS,
) -> tuple[float, TimingSample]:
    """
    Left Riemann sum with one device thread per sample.

    Returns the reduced value and the kernel execution time measured with
    CUDA events. Allocation and the device-to-host copy are outside the timed
    window. Domain errors are raised before the device is touched; CUDA
    failures surface as DeviceFailure and are not retried.
    """
    grid = SampleGrid.build(interval, n)
    geometry = device.launch_geometry(grid.n, block_size)
    mode = EvaluatorMode.parse(mode)
    if int(heavy_terms) < 0:
        raise InvalidDomain(f"heavy_terms must be >= 0, got {heavy_terms}")

    device.require_device()
    with device.ContributionBuffer(grid.n) as buf:
        with device_timer() as timer:
            device.launch_contributions(
                buf.array,
                geometry,
                lower=grid.interval.lower,
                width=grid.width,
                mode=mode,
                heavy_terms=int(heavy_terms),
            )
            device.synchronize()
        host = buf.copy_to_host()

    return reduce_contributions(host), timer.sample
