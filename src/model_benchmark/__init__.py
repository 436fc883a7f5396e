"""
Model Benchmarks

Replays a reference benchmark suite log against the local PyTorch install
and records the timings in a results datastore.
"""

__version__ = "0.1.0"

from .core.benchmark_runner import BenchmarkRunner, RunContext, RunReport
from .core.config import HarnessConfig
from .core.device_info import DeviceInfo
from .core.metrics import BenchmarkRun
from .core.suite_log import SuiteLog, chronological_model_names, load_suite_log

__all__ = [
    "BenchmarkRun",
    "BenchmarkRunner",
    "DeviceInfo",
    "HarnessConfig",
    "RunContext",
    "RunReport",
    "SuiteLog",
    "chronological_model_names",
    "load_suite_log",
]
