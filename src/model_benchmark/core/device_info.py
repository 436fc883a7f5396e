"""
Environment information for benchmark runs.
"""

import platform
import subprocess
from typing import Any, Dict, Optional

import numpy as np
import pynvml
import torch

from .. import __version__


class DeviceInfo:
    """Collect the execution environment and library versions."""

    def __init__(self):
        """Initialize device info collector."""
        self._cuda_available = torch.cuda.is_available()
        if self._cuda_available:
            pynvml.nvmlInit()

    @property
    def cuda_available(self) -> bool:
        """Check if CUDA is available."""
        return self._cuda_available

    @property
    def device_count(self) -> int:
        """Get number of available GPUs."""
        if not self._cuda_available:
            return 0
        return torch.cuda.device_count()

    def get_device_info(self, device_id: int = 0) -> Dict[str, Any]:
        """Get GPU device information.

        Args:
            device_id: GPU device ID

        Returns:
            Dictionary containing device information
        """
        if not self._cuda_available:
            raise RuntimeError("CUDA is not available")

        if device_id >= self.device_count:
            raise ValueError(f"Invalid device ID {device_id}")

        device_props = torch.cuda.get_device_properties(device_id)
        info = {
            "deviceId": device_id,
            "name": device_props.name,
            "computeCapability": f"{device_props.major}.{device_props.minor}",
            "totalMemory": device_props.total_memory,
            "multiProcessorCount": device_props.multi_processor_count,
        }

        try:
            handle = pynvml.nvmlDeviceGetHandleByIndex(device_id)
            info["graphicsClock"] = pynvml.nvmlDeviceGetClockInfo(
                handle, pynvml.NVML_CLOCK_GRAPHICS
            )
            info["memoryClock"] = pynvml.nvmlDeviceGetClockInfo(
                handle, pynvml.NVML_CLOCK_MEM
            )
        except pynvml.NVMLError:
            pass

        return info

    def get_cuda_version(self) -> Optional[str]:
        """Get CUDA version."""
        if not self._cuda_available:
            return None
        return torch.version.cuda

    def get_driver_version(self) -> Optional[str]:
        """Get NVIDIA driver version."""
        try:
            result = subprocess.run(
                [
                    "nvidia-smi",
                    "--query-gpu=driver_version",
                    "--format=csv,noheader,nounits",
                ],
                capture_output=True,
                text=True,
                check=True,
            )
            return result.stdout.strip().split("\n")[0]
        except (subprocess.CalledProcessError, FileNotFoundError):
            return None

    def get_system_info(self) -> Dict[str, str]:
        """Get system information."""
        return {
            "operatingSystem": platform.system(),
            "platform": platform.platform(),
            "systemInfo": " ".join(platform.uname()),
            "pythonVersion": platform.python_version(),
            "torchVersion": torch.__version__,
        }

    def get_environment_info(self, device: torch.device) -> Dict[str, Any]:
        """Describe the environment benchmarks run in.

        Args:
            device: Device the benchmarks execute on

        Returns:
            Environment info record, ready for the datastore
        """
        uses_cuda = device.type == "cuda"
        info: Dict[str, Any] = {
            "type": f"python-pytorch-{'cuda' if uses_cuda else 'cpu'}",
            **self.get_system_info(),
            "torchUsesCUDA": uses_cuda,
        }

        if uses_cuda:
            device_id = device.index if device.index is not None else 0
            info["cudaVersion"] = self.get_cuda_version()
            info["cudaGPUInfo"] = self.get_device_info(device_id)
            driver_version = self.get_driver_version()
            if driver_version:
                info["driverVersion"] = driver_version

        return info

    def get_version_set(self) -> Dict[str, Any]:
        """Versions of the libraries active during a run."""
        return {
            "versions": {
                "model-benchmarks": __version__,
                "torch": torch.__version__,
                "numpy": np.__version__,
            }
        }
