from __future__ import annotations

from numba import njit

from riemann_gpu.errors import InvalidDomain
from riemann_gpu.integration.evaluators import HEAVY_TERMS, heavy_host, polynomial_host
from riemann_gpu.integration.types import EvaluatorMode, Interval, SampleGrid

_POLYNOMIAL = int(EvaluatorMode.POLYNOMIAL)


@njit
def left_riemann_sum(lower, width, n, mode, heavy_terms):
    total = 0.0
    for i in range(n):
        x = lower + i * width
        if mode == _POLYNOMIAL:
            y = polynomial_host(x)
        else:
            y = heavy_host(x, heavy_terms)
        total += y * width
    return total


def _run(lower: float, width: float, n: int, mode: EvaluatorMode, heavy_terms: int) -> float:
    # Fixed argument types keep a single compiled signature.
    return float(left_riemann_sum(float(lower), float(width), int(n), int(mode), int(heavy_terms)))


def integrate_sequential(
    interval: Interval,
    n: int,
    mode: EvaluatorMode,
    *,
    heavy_terms: int = HEAVY_TERMS,
) -> float:
    """
    Left Riemann sum on the host, compiled to native code.

    Contributions are accumulated in ascending index order into one running
    total, so the result is bit-reproducible for a fixed ``n`` and evaluator.
    The first call compiles; run warmup_sequential() before timing.
    """
    grid = SampleGrid.build(interval, n)
    mode = EvaluatorMode.parse(mode)
    if int(heavy_terms) < 0:
        raise InvalidDomain(f"heavy_terms must be >= 0, got {heavy_terms}")
    return _run(grid.interval.lower, grid.width, grid.n, mode, heavy_terms)


def warmup_sequential() -> None:
    """Compile the host loop on a one-sample call so compilation stays out of timed windows."""
    _run(0.0, 1.0, 1, EvaluatorMode.POLYNOMIAL, 0)
