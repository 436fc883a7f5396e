"""
Adapters for element-wise binary kernels.
"""

from typing import Any, Dict

import torch

from .backend import TorchBackend, create_tensors_type_op_attr
from .registry import KernelConfig, KernelRegistry

MINIMUM = "Minimum"
MAXIMUM = "Maximum"


def _binary_kernel(op_name: str):
    def kernel_func(
        inputs: Dict[str, torch.Tensor], backend: TorchBackend, attrs: Dict[str, Any]
    ) -> torch.Tensor:
        a, b = inputs["a"], inputs["b"]
        dtype = torch.promote_types(a.dtype, b.dtype)
        op_attrs = [create_tensors_type_op_attr("T", dtype)]
        return backend.execute_single_output(op_name, op_attrs, [a, b])

    return kernel_func


minimum_config = KernelConfig(
    kernel_name=MINIMUM,
    backend_name=TorchBackend.backend_name,
    kernel_func=_binary_kernel(MINIMUM),
)

maximum_config = KernelConfig(
    kernel_name=MAXIMUM,
    backend_name=TorchBackend.backend_name,
    kernel_func=_binary_kernel(MAXIMUM),
)


def register_binary_kernels(registry: KernelRegistry) -> None:
    """Register all binary kernels with the registry."""
    registry.register(minimum_config)
    registry.register(maximum_config)
