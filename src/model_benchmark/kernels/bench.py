"""
Timing of registered kernel adapters on random inputs.
"""

from typing import Dict, Optional, Sequence

import torch

from ..core.metrics import Timer, summarize_times
from ..core.tensors import TensorScope, TensorStats
from .backend import TorchBackend
from .registry import KernelRegistry


def benchmark_kernel(
    registry: KernelRegistry,
    kernel_name: str,
    backend: TorchBackend,
    shape: Sequence[int] = (1024, 1024),
    warmup_runs: int = 3,
    benchmark_runs: int = 10,
    stats: Optional[TensorStats] = None,
) -> Dict[str, float]:
    """Time a binary kernel on two random tensors.

    Args:
        registry: Registry holding the kernel
        kernel_name: Kernel to time
        backend: Backend executing the kernel
        shape: Shape of both inputs
        warmup_runs: Number of untimed calls
        benchmark_runs: Number of timed calls
        stats: Tensor counters to update

    Returns:
        Average, median and minimum time in milliseconds
    """
    if benchmark_runs < 1:
        raise ValueError(f"benchmark_runs must be >= 1, got {benchmark_runs}")

    timer = Timer(backend.device)
    times = []
    with TensorScope(stats) as scope:
        inputs = {
            "a": scope.track(torch.rand(tuple(shape), device=backend.device)),
            "b": scope.track(torch.rand(tuple(shape), device=backend.device)),
        }

        for _ in range(warmup_runs):
            with TensorScope(scope.stats) as call_scope:
                call_scope.track(registry.run(kernel_name, inputs, backend))

        for _ in range(benchmark_runs):
            with TensorScope(scope.stats) as call_scope:
                with timer.measure() as measurement:
                    call_scope.track(registry.run(kernel_name, inputs, backend))
            times.append(measurement.elapsed_ms)

    return summarize_times(times)
