"""
PyTorch execution backend for kernel adapters.

Kernels describe an operation by name, a list of typed attributes and a list
of input tensors; the backend resolves the name to a PyTorch op and executes
it on its device.
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Sequence

import torch

from ..core.errors import KernelNotFoundError


@dataclass(frozen=True)
class OpAttr:
    """A named, typed attribute passed alongside an op's inputs."""

    name: str
    type: str
    value: Any


def create_tensors_type_op_attr(name: str, dtype: torch.dtype) -> OpAttr:
    """Build the dtype attribute (conventionally ``T``) of an op."""
    return OpAttr(name=name, type="type", value=dtype)


class TorchBackend:
    """Execute named ops with PyTorch."""

    backend_name = "torch"

    # op name -> PyTorch function
    OPS: Dict[str, Callable[..., torch.Tensor]] = {
        "Minimum": torch.minimum,
        "Maximum": torch.maximum,
    }

    def __init__(self, device: torch.device = torch.device("cpu")):
        self.device = device
        self.num_executions = 0

    def execute_single_output(
        self, op_name: str, op_attrs: Sequence[OpAttr], inputs: List[torch.Tensor]
    ) -> torch.Tensor:
        """Run an op that produces exactly one output.

        Inputs are moved to the backend device and cast to the dtype given by
        a ``type`` attribute, if any.

        Raises:
            KernelNotFoundError: If the backend has no such op
        """
        op = self.OPS.get(op_name)
        if op is None:
            raise KernelNotFoundError(
                f"Backend '{self.backend_name}' has no op {op_name}"
            )

        dtype = None
        for attr in op_attrs:
            if attr.type == "type":
                dtype = attr.value

        tensors = [
            t.to(device=self.device, dtype=dtype if dtype is not None else t.dtype)
            for t in inputs
        ]
        self.num_executions += 1
        return op(*tensors)
