"""
Tests for the kernel adapters.
"""

import pytest
import torch

from model_benchmark.core.errors import KernelNotFoundError
from model_benchmark.core.tensors import TensorStats
from model_benchmark.kernels import (
    KernelConfig,
    KernelRegistry,
    TorchBackend,
    benchmark_kernel,
    create_tensors_type_op_attr,
    default_registry,
)


@pytest.fixture
def registry():
    return default_registry()


@pytest.fixture
def backend():
    return TorchBackend(torch.device("cpu"))


class TestBinaryKernels:
    """Tests for Minimum and Maximum."""

    def test_minimum(self, registry, backend):
        a = torch.tensor([1.0, 5.0, -2.0])
        b = torch.tensor([3.0, 4.0, -7.0])

        out = registry.run("Minimum", {"a": a, "b": b}, backend)

        assert torch.equal(out, torch.tensor([1.0, 4.0, -7.0]))
        assert backend.num_executions == 1

    def test_maximum(self, registry, backend):
        a = torch.tensor([1, 5, -2])
        b = torch.tensor([3, 4, -7])

        out = registry.run("Maximum", {"a": a, "b": b}, backend)

        assert torch.equal(out, torch.tensor([3, 5, -2]))

    def test_dtype_upcast(self, registry, backend):
        """Test mixed dtypes are upcast before execution."""
        a = torch.tensor([1, 2, 3], dtype=torch.int32)
        b = torch.tensor([1.5, 1.5, 1.5], dtype=torch.float32)

        out = registry.run("Minimum", {"a": a, "b": b}, backend)

        assert out.dtype == torch.float32
        assert torch.equal(out, torch.tensor([1.0, 1.5, 1.5]))

    def test_attrs_do_not_override_dtype(self, registry, backend):
        """Test T always comes from the input dtypes."""
        a = torch.tensor([1, 4], dtype=torch.int64)
        b = torch.tensor([0.5, 5.0], dtype=torch.float64)

        out = registry.run("Maximum", {"a": a, "b": b}, backend, {"T": torch.int8})

        assert out.dtype == torch.float64
        assert torch.equal(out, torch.tensor([1.0, 5.0], dtype=torch.float64))

    def test_adapter_receives_backend_and_attrs(self, backend):
        calls = []
        registry = KernelRegistry()
        registry.register(
            KernelConfig(
                "Echo",
                "torch",
                lambda inputs, be, attrs: calls.append((be, attrs)) or inputs["x"],
            )
        )

        registry.run("Echo", {"x": torch.ones(1)}, backend, {"axis": 0})
        registry.run("Echo", {"x": torch.ones(1)}, backend)

        assert calls == [(backend, {"axis": 0}), (backend, {})]

    def test_broadcasting(self, registry, backend):
        a = torch.zeros(2, 3)
        b = torch.tensor([-1.0, 0.5, 2.0])

        out = registry.run("Minimum", {"a": a, "b": b}, backend)

        assert out.shape == (2, 3)
        assert torch.equal(out[1], torch.tensor([-1.0, 0.0, 0.0]))


class TestKernelRegistry:
    """Tests for KernelRegistry."""

    def test_list_kernels(self, registry):
        assert registry.list_kernels() == ["Maximum", "Minimum"]
        assert registry.list_kernels("torch") == ["Maximum", "Minimum"]
        assert registry.list_kernels("webgl") == []

    def test_unknown_kernel(self, registry, backend):
        with pytest.raises(KernelNotFoundError, match="Sqrt"):
            registry.run("Sqrt", {"x": torch.ones(1)}, backend)

    def test_unknown_backend_op(self, backend):
        """Test a kernel forwarding to an op the backend lacks."""
        registry = KernelRegistry()
        registry.register(
            KernelConfig(
                kernel_name="Sqrt",
                backend_name="torch",
                kernel_func=lambda inputs, be, attrs: be.execute_single_output(
                    "Sqrt", [], [inputs["x"]]
                ),
            )
        )

        with pytest.raises(KernelNotFoundError, match="no op Sqrt"):
            registry.run("Sqrt", {"x": torch.ones(1)}, backend)

    def test_type_attr(self):
        attr = create_tensors_type_op_attr("T", torch.float64)
        assert attr.name == "T"
        assert attr.type == "type"
        assert attr.value == torch.float64


def test_benchmark_kernel(registry, backend):
    """Test kernel timing and tensor release."""
    stats = TensorStats()

    timings = benchmark_kernel(
        registry,
        "Minimum",
        backend,
        shape=(16, 16),
        warmup_runs=2,
        benchmark_runs=4,
        stats=stats,
    )

    assert timings["min_time_ms"] <= timings["average_time_ms"]
    assert backend.num_executions == 6
    assert stats.allocated == 2 + 6
    assert stats.live == 0
