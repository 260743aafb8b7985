from __future__ import annotations

import os
from contextlib import contextmanager
from typing import Iterator

import numpy as np
from numba import cuda
from numba.cuda.cudadrv import driver as cuda_driver
from numba.cuda.cudadrv import error as cuda_error

from riemann_gpu.errors import DeviceFailure, InvalidDomain
from riemann_gpu.integration.evaluators import heavy, polynomial
from riemann_gpu.integration.types import EvaluatorMode, LaunchGeometry

DEFAULT_BLOCK_SIZE = 256
MAX_BLOCK_SIZE = 1024

CUDA_SIMULATION = os.environ.get("NUMBA_ENABLE_CUDASIM") == "1"

# The simulator swaps in reduced driver/error modules, so look the classes up by name.
_DEVICE_ERRORS = tuple(
    getattr(mod, name)
    for mod, name in (
        (cuda_error, "CudaSupportError"),
        (cuda_error, "CudaDriverError"),
        (cuda_error, "CudaRuntimeError"),
        (cuda_driver, "CudaAPIError"),
    )
    if isinstance(getattr(mod, name, None), type)
)
_POLYNOMIAL = int(EvaluatorMode.POLYNOMIAL)

# Same bodies as the host evaluators, compiled for the device.
polynomial_device = cuda.jit(device=True)(polynomial)
heavy_device = cuda.jit(device=True)(heavy)


@cuda.jit
def contributions_kernel(lower, width, n, mode, heavy_terms, out):
    i = cuda.grid(1)
    # Grid is rounded up to a whole number of blocks; surplus threads write nothing.
    if i < n:
        x = lower + i * width
        if mode == _POLYNOMIAL:
            y = polynomial_device(x)
        else:
            y = heavy_device(x, heavy_terms)
        out[i] = y * width


def ceil_div(a: int, b: int) -> int:
    return -(-int(a) // int(b))


def launch_geometry(n: int, block_size: int = DEFAULT_BLOCK_SIZE) -> LaunchGeometry:
    n = int(n)
    block_size = int(block_size)
    if n <= 0:
        raise InvalidDomain(f"sample count must be positive, got {n}")
    if block_size <= 0 or block_size > MAX_BLOCK_SIZE:
        raise InvalidDomain(f"block_size must be in [1, {MAX_BLOCK_SIZE}], got {block_size}")
    return LaunchGeometry(n=n, block_size=block_size, blocks=ceil_div(n, block_size))


@contextmanager
def device_errors(action: str) -> Iterator[None]:
    """Re-raise CUDA runtime errors raised inside the block as DeviceFailure."""
    try:
        yield
    except _DEVICE_ERRORS as exc:
        raise DeviceFailure(f"{action} failed: {exc}") from exc


def require_device() -> None:
    with device_errors("CUDA device check"):
        available = bool(cuda.is_available())
    if not available:
        raise DeviceFailure("CUDA not available")


SIMULATOR_DEVICE_NAME = "CUDA simulator"


def device_name() -> str:
    if CUDA_SIMULATION:
        return SIMULATOR_DEVICE_NAME
    with device_errors("CUDA device query"):
        dev = cuda.current_context().device
    name = getattr(dev, "name", "unknown")
    if isinstance(name, bytes):
        return name.decode("utf-8", errors="replace")
    return str(name)


def _flush_deallocations() -> None:
    # Numba queues frees of collected device arrays; flush the queue here.
    if CUDA_SIMULATION:
        return
    with device_errors("device deallocation"):
        cuda.current_context().deallocations.clear()


class ContributionBuffer:
    """
    Device array of ``n`` float64 contributions, owned by one integration call.

    Use as a context manager; the device memory is released on every exit
    path, including when the body raises.
    """

    def __init__(self, n: int) -> None:
        self.n = int(n)
        if self.n <= 0:
            raise InvalidDomain(f"buffer length must be positive, got {self.n}")
        with device_errors("device allocation"):
            self._array = cuda.device_array(self.n, dtype=np.float64)

    @property
    def array(self):
        if self._array is None:
            raise RuntimeError("contribution buffer already released")
        return self._array

    def copy_to_host(self) -> np.ndarray:
        host = np.empty(self.n, dtype=np.float64)
        with device_errors("device-to-host copy"):
            self.array.copy_to_host(host)
        return host

    def release(self) -> None:
        if self._array is None:
            return
        self._array = None
        _flush_deallocations()

    def __enter__(self) -> "ContributionBuffer":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()


def launch_contributions(
    out,
    geometry: LaunchGeometry,
    *,
    lower: float,
    width: float,
    mode: EvaluatorMode,
    heavy_terms: int,
) -> None:
    """Dispatch one thread per sample. Asynchronous: call synchronize() before reading ``out``."""
    with device_errors("kernel launch"):
        contributions_kernel[geometry.blocks, geometry.block_size](
            float(lower),
            float(width),
            int(geometry.n),
            int(mode),
            int(heavy_terms),
            out,
        )


def synchronize() -> None:
    with device_errors("device synchronization"):
        cuda.synchronize()


def warmup_kernel(block_size: int = DEFAULT_BLOCK_SIZE) -> None:
    """Launch once on a single sample so JIT compilation stays out of timed windows."""
    geometry = launch_geometry(1, block_size)
    with ContributionBuffer(1) as buf:
        launch_contributions(
            buf.array,
            geometry,
            lower=0.0,
            width=1.0,
            mode=EvaluatorMode.POLYNOMIAL,
            heavy_terms=0,
        )
        synchronize()
