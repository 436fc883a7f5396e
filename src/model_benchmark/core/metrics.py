"""
Benchmark run records, timing and comparison utilities.
"""

import time
from contextlib import contextmanager
from dataclasses import dataclass, field, fields, replace
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Tuple

import numpy as np
import torch

# python attribute -> JSON key used by the suite log and the datastore
_JSON_KEYS = {
    "batch_size": "batchSize",
    "num_warm_up_iterations": "numWarmUpIterations",
    "num_benchmarked_iterations": "numBenchmarkedIterations",
    "average_time_ms": "averageTimeMs",
    "times_ms": "timesMs",
    "median_time_ms": "medianTimeMs",
    "min_time_ms": "minTimeMs",
    "ending_timestamp_ms": "endingTimestampMs",
    "task_id": "taskId",
    "task_type": "taskType",
    "model_name": "modelName",
    "function_name": "functionName",
    "version_set_id": "versionSetId",
    "environment_id": "environmentId",
    "loss": "loss",
    "optimizer": "optimizer",
}


@dataclass(frozen=True)
class BenchmarkRun:
    """One timing record for a (model, function) pair.

    Reference runs come from the suite log; measured runs are built by the
    runner. Instances are never mutated, annotated copies are made with
    :meth:`with_ids`.
    """

    batch_size: int
    num_warm_up_iterations: int
    num_benchmarked_iterations: int
    average_time_ms: float
    times_ms: Optional[Tuple[float, ...]] = None  # per-iteration, predict() only
    median_time_ms: Optional[float] = None
    min_time_ms: Optional[float] = None
    ending_timestamp_ms: Optional[float] = None  # epoch milliseconds
    task_id: Optional[str] = None
    task_type: Optional[str] = None
    model_name: Optional[str] = None
    function_name: Optional[str] = None
    version_set_id: Optional[str] = None
    environment_id: Optional[str] = None
    loss: Optional[str] = None  # training runs only
    optimizer: Optional[str] = None  # training runs only
    extra: Dict[str, Any] = field(default_factory=dict, hash=False)

    def __post_init__(self):
        if self.times_ms is not None:
            object.__setattr__(self, "times_ms", tuple(self.times_ms))

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BenchmarkRun":
        """Build a run from its camelCase JSON form.

        Keys without a matching attribute are kept in ``extra`` so they
        survive a round trip to the datastore.

        Raises:
            KeyError: If a required key is missing
        """
        known = {json_key: attr for attr, json_key in _JSON_KEYS.items()}
        kwargs = {}
        extra = {}
        for key, value in data.items():
            if key in known:
                kwargs[known[key]] = value
            else:
                extra[key] = value

        for attr in (
            "batch_size",
            "num_warm_up_iterations",
            "num_benchmarked_iterations",
            "average_time_ms",
        ):
            if attr not in kwargs:
                raise KeyError(_JSON_KEYS[attr])

        if "ending_timestamp_ms" in kwargs:
            kwargs["ending_timestamp_ms"] = parse_timestamp_ms(
                kwargs["ending_timestamp_ms"]
            )

        return cls(extra=extra, **kwargs)

    def to_dict(self) -> Dict[str, Any]:
        """Return the camelCase JSON form, omitting unset fields."""
        data = dict(self.extra)
        for f in fields(self):
            if f.name == "extra":
                continue
            value = getattr(self, f.name)
            if isinstance(value, tuple):
                value = list(value)
            if value is not None:
                data[_JSON_KEYS[f.name]] = value
        return data

    def with_ids(self, **ids: Optional[str]) -> "BenchmarkRun":
        """Return a copy with cross-reference identifiers filled in."""
        return replace(self, **ids)


def parse_timestamp_ms(value: Any) -> float:
    """Normalize an epoch-millisecond number or ISO-8601 string.

    Raises:
        ValueError: If the value is neither
    """
    if isinstance(value, bool):
        raise ValueError(f"Invalid timestamp: {value!r}")
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            pass
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed.timestamp() * 1000
    raise ValueError(f"Invalid timestamp: {value!r}")


def now_ms() -> float:
    """Current wall-clock time in epoch milliseconds."""
    return time.time() * 1000


def summarize_times(times_ms: List[float]) -> Dict[str, float]:
    """Compute mean, median and minimum of per-iteration timings.

    Raises:
        ValueError: If no timings were recorded
    """
    if not times_ms:
        raise ValueError("Cannot summarize an empty list of timings")

    return {
        "average_time_ms": float(np.mean(times_ms)),
        "median_time_ms": float(np.median(times_ms)),
        "min_time_ms": float(np.min(times_ms)),
    }


class Measurement:
    """Elapsed time of one timed block, filled in when the block exits."""

    def __init__(self):
        self.elapsed_ms: Optional[float] = None


class Timer:
    """Wall-clock timer that synchronizes the device around each block."""

    def __init__(self, device: torch.device):
        """Initialize timer.

        Args:
            device: Device whose queued work must finish before a block ends
        """
        self.device = device
        self.num_measurements = 0

    def synchronize(self) -> None:
        """Wait for all queued work on the device."""
        if self.device.type == "cuda":
            torch.cuda.synchronize(self.device)

    @contextmanager
    def measure(self):
        """Context manager timing the enclosed block in milliseconds."""
        measurement = Measurement()

        self.synchronize()
        start_time = time.perf_counter()

        yield measurement

        self.synchronize()
        measurement.elapsed_ms = (time.perf_counter() - start_time) * 1000
        self.num_measurements += 1


def compare_runs(
    reference_runs: Iterable[BenchmarkRun], measured_runs: Iterable[BenchmarkRun]
) -> Dict[Tuple[str, str], Dict[str, float]]:
    """Compare measured runs against their reference runs.

    Args:
        reference_runs: Runs from the suite log
        measured_runs: Runs timed locally

    Returns:
        Mapping of (model name, function name) to reference average,
        measured average and speedup (reference / measured)
    """
    references = {(r.model_name, r.function_name): r for r in reference_runs}

    comparisons = {}
    for run in measured_runs:
        key = (run.model_name, run.function_name)
        reference = references.get(key)
        if reference is None:
            continue

        speedup = (
            reference.average_time_ms / run.average_time_ms
            if run.average_time_ms > 0
            else float("inf")
        )
        comparisons[key] = {
            "reference_time_ms": reference.average_time_ms,
            "measured_time_ms": run.average_time_ms,
            "speedup": speedup,
        }

    return comparisons
