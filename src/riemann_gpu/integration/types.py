from __future__ import annotations

import math
import numbers
from dataclasses import dataclass
from enum import IntEnum
from typing import Literal

from riemann_gpu.errors import InvalidDomain


class EvaluatorMode(IntEnum):
    # Values are the codes passed to the device kernel.
    POLYNOMIAL = 0
    HEAVY = 1

    @classmethod
    def parse(cls, value: "str | int | EvaluatorMode") -> "EvaluatorMode":
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            key = value.strip().upper()
            if key in cls.__members__:
                return cls[key]
            raise ValueError(f"Unknown evaluator mode: {value!r}")
        return cls(int(value))


@dataclass(frozen=True, slots=True)
class Interval:
    lower: float
    upper: float

    @classmethod
    def validated(cls, lower: float, upper: float) -> "Interval":
        lo = float(lower)
        up = float(upper)
        if not (math.isfinite(lo) and math.isfinite(up)):
            raise InvalidDomain(f"interval bounds must be finite, got [{lo}, {up}]")
        if lo >= up:
            raise InvalidDomain(f"interval lower bound must be < upper bound, got [{lo}, {up}]")
        return cls(lower=lo, upper=up)

    @property
    def length(self) -> float:
        return float(self.upper) - float(self.lower)


@dataclass(frozen=True, slots=True)
class SampleGrid:
    interval: Interval
    n: int
    width: float

    @classmethod
    def build(cls, interval: Interval, n: int) -> "SampleGrid":
        """Validate the domain and derive the uniform left-endpoint grid."""
        checked = Interval.validated(interval.lower, interval.upper)
        if isinstance(n, bool) or not isinstance(n, numbers.Integral):
            raise InvalidDomain(f"sample count must be an integer, got {n!r}")
        n = int(n)
        if n <= 0:
            raise InvalidDomain(f"sample count must be positive, got {n}")
        return cls(interval=checked, n=int(n), width=checked.length / float(n))

    def abscissa(self, i: int) -> float:
        return self.interval.lower + i * self.width


@dataclass(frozen=True, slots=True)
class TimingSample:
    """Elapsed time in one clock domain. Only durations are comparable, never epochs."""

    elapsed_s: float
    clock: Literal["host", "device"]

    def __lt__(self, other: "TimingSample") -> bool:
        return float(self.elapsed_s) < float(other.elapsed_s)

    def __le__(self, other: "TimingSample") -> bool:
        return float(self.elapsed_s) <= float(other.elapsed_s)


@dataclass(frozen=True, slots=True)
class LaunchGeometry:
    n: int
    block_size: int
    blocks: int

    @property
    def threads(self) -> int:
        return int(self.blocks) * int(self.block_size)


@dataclass(frozen=True, slots=True)
class BenchmarkRow:
    n: int
    cpu_time_s: float
    gpu_time_s: float
    speedup: float
    reference_value: float
    gpu_value: float


@dataclass(frozen=True, slots=True)
class AccuracyCheck:
    interval: Interval
    n: int
    exact: float
    computed: float
    abs_error: float
    rel_error_pct: float
