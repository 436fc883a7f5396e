"""
Exception types raised by the benchmark harness.
"""


class BenchmarkError(Exception):
    """Base class for all harness failures."""


class BatchSizeError(BenchmarkError, ValueError):
    """Batch size is not a positive integer."""


class MissingTaskError(BenchmarkError):
    """A model entry in the suite log has no recorded functions."""


class SuiteLogError(BenchmarkError):
    """The suite log could not be fetched or parsed."""


class ModelLoadError(BenchmarkError):
    """A model could not be fetched or deserialized."""


class DatastoreError(BenchmarkError):
    """A datastore request failed."""


class KernelNotFoundError(BenchmarkError, KeyError):
    """No kernel is registered for the requested name and backend."""


class IterationCountError(BenchmarkError, ValueError):
    """Warm-up or benchmarked iteration count is invalid."""


class TrainingConfigError(BenchmarkError, ValueError):
    """The reference run names a loss or optimizer with no local equivalent."""
