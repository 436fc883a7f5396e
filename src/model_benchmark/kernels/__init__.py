"""
Kernel adapters forwarding tensor arguments to an execution backend.
"""

from .backend import OpAttr, TorchBackend, create_tensors_type_op_attr
from .bench import benchmark_kernel
from .binary import maximum_config, minimum_config, register_binary_kernels
from .registry import KernelConfig, KernelRegistry


def default_registry() -> KernelRegistry:
    """Registry with every built-in kernel adapter."""
    registry = KernelRegistry()
    register_binary_kernels(registry)
    return registry


__all__ = [
    "KernelConfig",
    "KernelRegistry",
    "OpAttr",
    "TorchBackend",
    "benchmark_kernel",
    "create_tensors_type_op_attr",
    "default_registry",
    "maximum_config",
    "minimum_config",
    "register_binary_kernels",
]
