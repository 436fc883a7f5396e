"""
Core benchmark infrastructure.
"""

from .benchmark_runner import BenchmarkRunner, RunContext, RunReport
from .device_info import DeviceInfo
from .errors import (
    BatchSizeError,
    BenchmarkError,
    DatastoreError,
    IterationCountError,
    KernelNotFoundError,
    MissingTaskError,
    ModelLoadError,
    SuiteLogError,
    TrainingConfigError,
)
from .metrics import BenchmarkRun, Timer, compare_runs
from .suite_log import ModelFunction, SuiteLog

__all__ = [
    "BatchSizeError",
    "BenchmarkError",
    "BenchmarkRun",
    "BenchmarkRunner",
    "DatastoreError",
    "DeviceInfo",
    "IterationCountError",
    "KernelNotFoundError",
    "MissingTaskError",
    "ModelFunction",
    "ModelLoadError",
    "RunContext",
    "RunReport",
    "SuiteLog",
    "SuiteLogError",
    "Timer",
    "TrainingConfigError",
    "compare_runs",
]
