"""
Kernel registry mapping (kernel name, backend name) to adapter functions.
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple

import torch

from ..core.errors import KernelNotFoundError

KernelFunc = Callable[[Dict[str, torch.Tensor], Any, Dict[str, Any]], torch.Tensor]


@dataclass(frozen=True)
class KernelConfig:
    """Adapter for one kernel on one backend."""

    kernel_name: str
    backend_name: str
    kernel_func: KernelFunc


class KernelRegistry:
    """Registered kernel adapters."""

    def __init__(self):
        self._kernels: Dict[Tuple[str, str], KernelConfig] = {}

    def register(self, config: KernelConfig) -> None:
        """Register a kernel, replacing any previous one for the same key."""
        self._kernels[(config.kernel_name, config.backend_name)] = config

    def get(self, kernel_name: str, backend_name: str) -> KernelConfig:
        """Look up a kernel.

        Raises:
            KernelNotFoundError: If nothing is registered for the key
        """
        try:
            return self._kernels[(kernel_name, backend_name)]
        except KeyError:
            raise KernelNotFoundError(
                f"Kernel '{kernel_name}' is not registered for backend "
                f"'{backend_name}'"
            ) from None

    def list_kernels(self, backend_name: Optional[str] = None) -> List[str]:
        """List registered kernel names, optionally for one backend."""
        return sorted(
            name
            for name, backend in self._kernels
            if backend_name is None or backend == backend_name
        )

    def run(
        self,
        kernel_name: str,
        inputs: Dict[str, torch.Tensor],
        backend,
        attrs: Optional[Dict[str, Any]] = None,
    ) -> torch.Tensor:
        """Dispatch a kernel to the adapter registered for the backend."""
        config = self.get(kernel_name, backend.backend_name)
        return config.kernel_func(inputs, backend, attrs or {})
