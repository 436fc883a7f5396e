"""
Benchmark runner replaying a reference suite log against local PyTorch.
"""

import gc
import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Tuple

import requests
import torch

from ..storage.datastore import Datastore, InMemoryDatastore, RestDatastore
from .config import HarnessConfig
from .device_info import DeviceInfo
from .errors import BenchmarkError, IterationCountError, TrainingConfigError
from .metrics import BenchmarkRun, Timer, compare_runs, now_ms, summarize_times
from .model_loader import LoadedModel, ModelLoader
from .suite_log import (
    ModelFunction,
    SuiteLog,
    chronological_model_names,
    load_suite_log,
)
from .tensors import (
    TensorScope,
    TensorStats,
    Tensors,
    check_batch_size,
    flatten,
    random_inputs_and_outputs,
    sync_data,
)

logger = logging.getLogger(__name__)

# Keras/TensorFlow names used by reference runs -> (optimizer class, kwargs)
OPTIMIZER_MAP: Dict[str, Tuple[type, dict]] = {
    "AdamOptimizer": (torch.optim.Adam, {"lr": 1e-3}),
    "RMSPropOptimizer": (torch.optim.RMSprop, {"lr": 1e-3}),
    "GradientDescentOptimizer": (torch.optim.SGD, {"lr": 1e-2}),
    "adam": (torch.optim.Adam, {"lr": 1e-3}),
    "rmsprop": (torch.optim.RMSprop, {"lr": 1e-3}),
    "sgd": (torch.optim.SGD, {"lr": 1e-2}),
}

LOSS_MAP: Dict[str, Callable[[], torch.nn.Module]] = {
    "mean_squared_error": torch.nn.MSELoss,
    "categorical_crossentropy": torch.nn.CrossEntropyLoss,
}


@dataclass
class RunContext:
    """State of one pipeline run, passed through every step."""

    task_type: str
    environment_id: Optional[str] = None
    reference_environment_id: Optional[str] = None
    version_set_id: Optional[str] = None
    tensor_stats: TensorStats = field(default_factory=TensorStats)
    timed_calls: int = 0
    models_processed: int = 0
    started_at_ms: float = field(default_factory=now_ms)


@dataclass
class RunReport:
    """Outcome of a completed pipeline run."""

    context: RunContext
    measured_runs: List[BenchmarkRun]
    reference_runs: List[BenchmarkRun]

    @property
    def comparisons(self) -> Dict[Tuple[str, str], Dict[str, float]]:
        return compare_runs(self.reference_runs, self.measured_runs)


def call_model(module: torch.nn.Module, xs: Tensors):
    """Invoke a model on one input tensor or a list of input tensors."""
    if isinstance(xs, list):
        return module(*xs)
    return module(xs)


def check_iterations(reference: BenchmarkRun) -> None:
    """Validate warm-up and benchmarked iteration counts.

    Raises:
        IterationCountError: If a count is not an integer, is negative, or
            no iterations are benchmarked
    """
    for name, value, minimum in (
        ("numWarmUpIterations", reference.num_warm_up_iterations, 0),
        ("numBenchmarkedIterations", reference.num_benchmarked_iterations, 1),
    ):
        if isinstance(value, bool) or not isinstance(value, int) or value < minimum:
            raise IterationCountError(
                f"Expected {name} to be an integer >= {minimum}, but got {value!r}"
            )


def build_loss_and_optimizer(
    reference: BenchmarkRun, module: torch.nn.Module
) -> Tuple[torch.nn.Module, torch.optim.Optimizer]:
    """Map the reference run's loss and optimizer names to PyTorch objects.

    Raises:
        TrainingConfigError: If either name has no PyTorch equivalent
    """
    if reference.loss not in LOSS_MAP:
        raise TrainingConfigError(f"Unsupported loss: {reference.loss!r}")
    if reference.optimizer not in OPTIMIZER_MAP:
        raise TrainingConfigError(f"Unsupported optimizer: {reference.optimizer!r}")

    optimizer_cls, optimizer_kwargs = OPTIMIZER_MAP[reference.optimizer]
    return LOSS_MAP[reference.loss](), optimizer_cls(
        module.parameters(), **optimizer_kwargs
    )


class BenchmarkRunner:
    """Replay a suite log's tasks locally and persist the results."""

    def __init__(
        self,
        datastore: Datastore,
        data_root: str,
        device: Optional[torch.device] = None,
        task_type: str = "model",
        request_timeout: float = 60,
        run_timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
    ):
        """Initialize benchmark runner.

        Args:
            datastore: Where environment info, tasks and runs are written
            data_root: URL or directory holding the suite log and models
            device: Device to run models on, cuda when available by default
            task_type: Task type recorded for every task id
            request_timeout: HTTP request timeout in seconds
            run_timeout: Time budget for a run in seconds, only reported
            session: Session to reuse for HTTP fetches
        """
        if device is None:
            device = torch.device("cuda" if torch.cuda.is_available() else "cpu")

        self.datastore = datastore
        self.data_root = data_root
        self.device = device
        self.task_type = task_type
        self.request_timeout = request_timeout
        self.run_timeout = run_timeout
        self.session = session or requests.Session()
        self.device_info = DeviceInfo()
        self.timer = Timer(device)
        self.model_loader = ModelLoader(
            data_root, device, timeout=request_timeout, session=self.session
        )
        self._benchmarks: Dict[ModelFunction, Callable[..., dict]] = {
            ModelFunction.PREDICT: self._benchmark_predict,
            ModelFunction.FIT: self._benchmark_fit,
        }

    @classmethod
    def from_config(cls, config: HarnessConfig) -> "BenchmarkRunner":
        """Create a runner, selecting the datastore from the configuration."""
        if config.datastore_url:
            datastore = RestDatastore(
                config.datastore_url, timeout=config.request_timeout
            )
        else:
            datastore = InMemoryDatastore()

        return cls(
            datastore=datastore,
            data_root=config.data_root,
            device=config.torch_device,
            task_type=config.task_type,
            request_timeout=config.request_timeout,
            run_timeout=config.run_timeout,
        )

    def clear_cache(self) -> None:
        """Clear GPU memory cache."""
        gc.collect()
        if self.device.type == "cuda":
            torch.cuda.empty_cache()
            torch.cuda.synchronize(self.device)

    def load_suite_log(self, source: str) -> SuiteLog:
        return load_suite_log(
            source, timeout=self.request_timeout, session=self.session
        )

    def run(self, suite_log_source: str) -> RunReport:
        """Run the full pipeline for a suite log.

        Args:
            suite_log_source: URL or path of the suite log JSON

        Returns:
            RunReport with the measured and reference runs that were persisted
        """
        return self.run_suite(self.load_suite_log(suite_log_source))

    def run_suite(self, suite_log: SuiteLog) -> RunReport:
        """Benchmark every model of a loaded suite log.

        Raises:
            MissingTaskError: If a model has no recorded functions, before
                anything is written to the datastore
            SuiteLogError: If the models cannot be ordered, also before any
                datastore write
            BenchmarkError: On any other failure, aborting the run
        """
        suite_log.check_tasks()
        model_names = chronological_model_names(suite_log)

        context = RunContext(task_type=self.task_type)
        context.environment_id = self.datastore.add_environment_info(
            self.device_info.get_environment_info(self.device)
        )
        context.version_set_id = self.datastore.add_version_set(
            self.device_info.get_version_set()
        )
        context.reference_environment_id = self.datastore.add_environment_info(
            suite_log.environment_info
        )
        logger.info(
            "environmentId=%s; versionSetId=%s; referenceEnvironmentId=%s",
            context.environment_id,
            context.version_set_id,
            context.reference_environment_id,
        )

        measured_runs: List[BenchmarkRun] = []
        reference_runs: List[BenchmarkRun] = []

        for i, model_name in enumerate(model_names):
            logger.info("%d/%d: %s", i + 1, len(model_names), model_name)
            model = self.model_loader.load(model_name)

            for function_name, reference in suite_log.data[model_name].items():
                result = self.benchmark_task(context, model, function_name, reference)
                if result is None:
                    continue
                measured, annotated_reference = result
                measured_runs.append(measured)
                reference_runs.append(annotated_reference)

            del model
            self.clear_cache()
            context.models_processed += 1

        runs = measured_runs + reference_runs
        logger.info("Writing %d benchmark runs to the datastore...", len(runs))
        self.datastore.add_benchmark_runs(runs)

        elapsed_s = (now_ms() - context.started_at_ms) / 1000
        if self.run_timeout is not None and elapsed_s > self.run_timeout:
            logger.warning(
                "Run took %.1f s, over the %.0f s budget", elapsed_s, self.run_timeout
            )
        logger.info("Done.")

        return RunReport(
            context=context, measured_runs=measured_runs, reference_runs=reference_runs
        )

    def benchmark_task(
        self,
        context: RunContext,
        model: LoadedModel,
        function_name: str,
        reference: BenchmarkRun,
    ) -> Optional[Tuple[BenchmarkRun, BenchmarkRun]]:
        """Benchmark one function of a model.

        Args:
            context: Run context
            model: Loaded model
            function_name: Function name from the suite log
            reference: Reference run for this function

        Returns:
            (measured run, reference run annotated with ids), or None if the
            function is not benchmarked
        """
        function = ModelFunction.from_name(function_name)
        benchmark = self._benchmarks.get(function)
        if benchmark is None:
            logger.warning(
                'Skipping task "%s" of model "%s"', function_name, model.name
            )
            return None

        task_id = self.datastore.add_or_get_task_id(
            context.task_type, model.name, function_name
        )

        check_batch_size(reference.batch_size)
        check_iterations(reference)

        with TensorScope(context.tensor_stats) as scope:
            xs, ys = random_inputs_and_outputs(
                model.input_shapes,
                model.output_shapes,
                reference.batch_size,
                self.device,
                scope,
            )
            timings = benchmark(context, model, reference, xs, ys)

        measured = BenchmarkRun(
            task_id=task_id,
            task_type=context.task_type,
            model_name=model.name,
            function_name=function_name,
            batch_size=reference.batch_size,
            version_set_id=context.version_set_id,
            environment_id=context.environment_id,
            num_warm_up_iterations=reference.num_warm_up_iterations,
            num_benchmarked_iterations=reference.num_benchmarked_iterations,
            ending_timestamp_ms=now_ms(),
            **timings,
        )
        logger.info(
            "  (taskId=%s) %s(): averageTimeMs: py=%.3f, local=%.3f",
            task_id,
            function_name,
            reference.average_time_ms,
            measured.average_time_ms,
        )

        annotated_reference = reference.with_ids(
            task_id=task_id,
            task_type=context.task_type,
            environment_id=context.reference_environment_id,
        )
        return measured, annotated_reference

    def _predict_once(self, context: RunContext, module, xs) -> None:
        with TensorScope(context.tensor_stats) as scope:
            sync_data(scope.track(call_model(module, xs)))

    def _benchmark_predict(
        self,
        context: RunContext,
        model: LoadedModel,
        reference: BenchmarkRun,
        xs: Tensors,
        ys: Tensors,
    ) -> dict:
        """Time individual predict() calls after warm-up calls."""
        module = model.module
        module.eval()

        times = []
        with torch.no_grad():
            for _ in range(reference.num_warm_up_iterations):
                self._predict_once(context, module, xs)

            for _ in range(reference.num_benchmarked_iterations):
                with self.timer.measure() as measurement:
                    self._predict_once(context, module, xs)
                times.append(measurement.elapsed_ms)
                context.timed_calls += 1

        return {"times_ms": times, **summarize_times(times)}

    def _fit(
        self,
        module: torch.nn.Module,
        xs: Tensors,
        ys: Tensors,
        loss_fn: torch.nn.Module,
        optimizer: torch.optim.Optimizer,
        epochs: int,
    ) -> None:
        for _ in range(epochs):
            optimizer.zero_grad()
            outputs = flatten(call_model(module, xs))
            targets = flatten(ys)
            if len(outputs) != len(targets):
                raise BenchmarkError(
                    f"Model returned {len(outputs)} outputs for {len(targets)} targets"
                )
            loss = sum(loss_fn(out, y) for out, y in zip(outputs, targets))
            loss.backward()
            optimizer.step()

    def _benchmark_fit(
        self,
        context: RunContext,
        model: LoadedModel,
        reference: BenchmarkRun,
        xs: Tensors,
        ys: Tensors,
    ) -> dict:
        """Time one fit() call of numBenchmarkedIterations epochs."""
        module = model.module
        module.train()
        loss_fn, optimizer = build_loss_and_optimizer(reference, module)

        # warm-up
        self._fit(module, xs, ys, loss_fn, optimizer, reference.num_warm_up_iterations)

        epochs = reference.num_benchmarked_iterations
        with self.timer.measure() as measurement:
            self._fit(module, xs, ys, loss_fn, optimizer, epochs)
        context.timed_calls += 1

        return {"average_time_ms": measurement.elapsed_ms / epochs}
