import math
from types import SimpleNamespace

import numpy as np
import pytest
from numba import cuda

from riemann_gpu.errors import InvalidDomain
from riemann_gpu.integration import device
from riemann_gpu.integration.evaluators import polynomial
from riemann_gpu.integration.types import EvaluatorMode


@pytest.mark.parametrize(
    "a,b,expected",
    [(1, 256, 1), (256, 256, 1), (257, 256, 2), (100, 256, 1), (100000, 256, 391), (10, 3, 4)],
)
def test_ceil_div(a: int, b: int, expected: int) -> None:
    assert device.ceil_div(a, b) == expected


def test_launch_geometry_covers_every_sample_with_less_than_one_spare_block() -> None:
    for block_size in (1, 32, 128, 256, 1024):
        for n in (1, 2, 31, 100, 255, 256, 257, 1000, 10000, 100001):
            geometry = device.launch_geometry(n, block_size)
            assert geometry.blocks == device.ceil_div(n, block_size)
            assert geometry.threads >= n
            assert geometry.threads - n < block_size


@pytest.mark.parametrize("block_size", [0, -32, 1025])
def test_launch_geometry_rejects_bad_block_size(block_size: int) -> None:
    with pytest.raises(InvalidDomain):
        device.launch_geometry(100, block_size)


def test_launch_geometry_rejects_empty_grid() -> None:
    with pytest.raises(InvalidDomain):
        device.launch_geometry(0)


@pytest.mark.parametrize("n,block_size", [(100, 256), (257, 256), (5, 4)])
def test_out_of_range_threads_write_nothing(n: int, block_size: int) -> None:
    geometry = device.launch_geometry(n, block_size)
    # Buffer padded to the full thread count and prefilled with a sentinel.
    host = np.full(geometry.threads + 8, np.nan, dtype=np.float64)
    d_out = cuda.to_device(host)
    lower, width = 1.0, 0.5

    device.launch_contributions(d_out, geometry, lower=lower, width=width, mode=EvaluatorMode.POLYNOMIAL, heavy_terms=0)
    device.synchronize()
    out = d_out.copy_to_host()

    for i in range(n):
        assert out[i] == pytest.approx(polynomial(lower + i * width) * width, rel=1e-12)
    assert np.all(np.isnan(out[n:]))


def test_contribution_buffer_releases_on_exit() -> None:
    with device.ContributionBuffer(16) as buf:
        assert buf.array.shape == (16,)
    with pytest.raises(RuntimeError):
        _ = buf.array
    # Releasing twice is harmless.
    buf.release()


def test_contribution_buffer_releases_when_body_raises() -> None:
    holder = {}
    with pytest.raises(KeyError):
        with device.ContributionBuffer(8) as buf:
            holder["buf"] = buf
            raise KeyError("boom")
    with pytest.raises(RuntimeError):
        _ = holder["buf"].array


def test_contribution_buffer_copy_to_host_shape() -> None:
    with device.ContributionBuffer(3) as buf:
        geometry = device.launch_geometry(3, 32)
        device.launch_contributions(buf.array, geometry, lower=0.0, width=1.0, mode=EvaluatorMode.POLYNOMIAL, heavy_terms=0)
        device.synchronize()
        host = buf.copy_to_host()
    assert host.dtype == np.float64
    assert host.shape == (3,)
    assert all(math.isfinite(v) for v in host.tolist())


def test_warmup_kernel_runs() -> None:
    device.warmup_kernel(64)


def test_device_name_is_text() -> None:
    assert isinstance(device.device_name(), str)


def test_device_name_under_simulator() -> None:
    assert device.CUDA_SIMULATION
    assert device.device_name() == device.SIMULATOR_DEVICE_NAME


def test_device_name_reads_current_context(monkeypatch) -> None:
    class _Ctx:
        device = SimpleNamespace(name=b"Tesla T4")

    monkeypatch.setattr(device, "CUDA_SIMULATION", False)
    monkeypatch.setattr(device, "cuda", SimpleNamespace(current_context=lambda: _Ctx()))
    assert device.device_name() == "Tesla T4"
