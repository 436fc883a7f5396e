"""
Harness configuration.
"""

from dataclasses import dataclass
from typing import Optional

import torch

from .resources import join_location

DEFAULT_DATA_ROOT = "./data"
SUITE_LOG_FILENAME = "benchmarks.json"


def default_device() -> str:
    return "cuda" if torch.cuda.is_available() else "cpu"


@dataclass
class HarnessConfig:
    """Settings for one benchmark run."""

    data_root: str = DEFAULT_DATA_ROOT
    datastore_url: Optional[str] = None  # None selects the in-memory datastore
    device: Optional[str] = None  # None selects cuda when available
    request_timeout: float = 60.0  # seconds, per HTTP request
    run_timeout: float = 600.0  # seconds, budget for the whole run
    task_type: str = "model"
    log_level: str = "INFO"

    @property
    def suite_log_source(self) -> str:
        return join_location(self.data_root, SUITE_LOG_FILENAME)

    @property
    def torch_device(self) -> torch.device:
        return torch.device(self.device or default_device())
