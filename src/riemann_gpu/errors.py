from __future__ import annotations


class RiemannGpuError(Exception):
    """Base class for riemann_gpu errors."""


class InvalidDomain(RiemannGpuError, ValueError):
    """Bad interval, sample count or launch shape. Raised before any allocation."""


class DeviceFailure(RiemannGpuError, RuntimeError):
    """Allocation, launch or synchronization failure reported by the CUDA runtime."""
