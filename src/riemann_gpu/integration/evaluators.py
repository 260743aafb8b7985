from __future__ import annotations

import math
from functools import partial
from typing import Callable

from numba import njit

from riemann_gpu.integration.types import EvaluatorMode, Interval

# Inner-loop length of the heavy evaluator. Only sets the per-sample cost.
HEAVY_TERMS = 30000


def polynomial(x):
    return 10.0 * x * x * x + 2.0 * x * x - 7.0 * x + 6.0


def heavy(x, terms):
    val = 0.0
    for k in range(terms):
        val += math.sin(1.2 * k) * math.cos(x + k)
    return val


# Native host builds of the same bodies; no fastmath, so results match the
# interpreted functions bit for bit.
polynomial_host = njit(polynomial)
heavy_host = njit(heavy)


def polynomial_antiderivative(x: float) -> float:
    x = float(x)
    return 2.5 * x**4 + (2.0 / 3.0) * x**3 - 3.5 * x**2 + 6.0 * x


def exact_polynomial_integral(interval: Interval) -> float:
    return polynomial_antiderivative(interval.upper) - polynomial_antiderivative(interval.lower)


def host_evaluator(mode: EvaluatorMode, *, heavy_terms: int = HEAVY_TERMS) -> Callable[[float], float]:
    """Return the interpreted scalar function selected by ``mode`` (reference path)."""
    mode = EvaluatorMode.parse(mode)
    if mode == EvaluatorMode.POLYNOMIAL:
        return polynomial
    if int(heavy_terms) < 0:
        raise ValueError(f"heavy_terms must be >= 0, got {heavy_terms}")
    return partial(heavy, terms=int(heavy_terms))
