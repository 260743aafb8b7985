from __future__ import annotations

import time
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Callable, Iterator, MutableMapping, TypeVar

from numba import cuda

from riemann_gpu.integration.device import device_errors
from riemann_gpu.integration.types import TimingSample

T = TypeVar("T")


def format_sec(x: float) -> str:
    x = float(x)
    if x < 0:
        x = 0.0
    if x < 60:
        return f"{x:.3f}s"
    m = int(x // 60)
    s = x - 60 * m
    if m < 60:
        return f"{m:d}m {s:.1f}s"
    h = int(m // 60)
    mm = int(m - 60 * h)
    return f"{h:d}h {mm:d}m {s:.0f}s"


@contextmanager
def timed(name: str, acc: MutableMapping[str, float]) -> Iterator[None]:
    """Add the wall time of the block to ``acc[name]``."""
    t0 = time.perf_counter()
    try:
        yield
    finally:
        dt = time.perf_counter() - t0
        acc[name] = float(acc.get(name, 0.0)) + float(dt)


def time_host(fn: Callable[[], T]) -> tuple[T, TimingSample]:
    """Run ``fn`` to completion on the host and measure it with the wall clock."""
    t0 = time.perf_counter()
    out = fn()
    dt = time.perf_counter() - t0
    return out, TimingSample(elapsed_s=max(0.0, float(dt)), clock="host")


@dataclass
class DeviceTimerResult:
    elapsed_s: float = float("nan")

    @property
    def sample(self) -> TimingSample:
        return TimingSample(elapsed_s=float(self.elapsed_s), clock="device")


@contextmanager
def device_timer() -> Iterator[DeviceTimerResult]:
    """
    Measure the enclosed device work with CUDA events.

    The stop event is synchronized before the elapsed time is read; reading it
    earlier would report only the time taken to enqueue the work.
    """
    result = DeviceTimerResult()
    with device_errors("CUDA event record"):
        start = cuda.event()
        end = cuda.event()
        start.record()
    yield result
    with device_errors("CUDA event synchronization"):
        end.record()
        end.synchronize()
        elapsed_ms = start.elapsed_time(end)
    result.elapsed_s = max(0.0, float(elapsed_ms) / 1000.0)


def time_device(fn: Callable[[], T]) -> tuple[T, TimingSample]:
    with device_timer() as timer:
        out = fn()
    return out, timer.sample
