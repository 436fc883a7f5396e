"""
Command-line interface for the model benchmarks.
"""

import json
from typing import List, Optional

import torch
import typer
from rich import print as rprint
from rich.console import Console
from rich.table import Table

from ..core.benchmark_runner import BenchmarkRunner, RunReport
from ..core.config import DEFAULT_DATA_ROOT, HarnessConfig, default_device
from ..core.device_info import DeviceInfo
from ..core.errors import BenchmarkError
from ..core.suite_log import chronological_model_names, load_suite_log
from ..kernels import TorchBackend, benchmark_kernel, default_registry
from ..logger import configure_logging

app = typer.Typer(
    help="Model Benchmarks - replay reference benchmark runs on local PyTorch"
)
console = Console()

DataRootOption = typer.Option(
    DEFAULT_DATA_ROOT,
    "--data-root",
    envvar="MODEL_BENCH_DATA_ROOT",
    help="URL or directory holding benchmarks.json and the models",
)
DeviceOption = typer.Option(
    None,
    "--device",
    "-d",
    envvar="MODEL_BENCH_DEVICE",
    help="Device to run on (cpu, cuda, cuda:N)",
)
LogLevelOption = typer.Option(
    "INFO", "--log-level", envvar="MODEL_BENCH_LOG_LEVEL", help="Log level"
)


@app.command()
def run(
    data_root: str = DataRootOption,
    datastore_url: Optional[str] = typer.Option(
        None,
        "--datastore-url",
        envvar="MODEL_BENCH_DATASTORE_URL",
        help="Results service URL; results stay in memory when omitted",
    ),
    device: Optional[str] = DeviceOption,
    request_timeout: float = typer.Option(
        60.0,
        "--request-timeout",
        envvar="MODEL_BENCH_REQUEST_TIMEOUT",
        help="HTTP request timeout in seconds",
    ),
    run_timeout: float = typer.Option(
        600.0,
        "--run-timeout",
        envvar="MODEL_BENCH_RUN_TIMEOUT",
        help="Time budget for the run in seconds",
    ),
    log_level: str = LogLevelOption,
) -> None:
    """Benchmark every model in the suite log and persist the results."""
    config = HarnessConfig(
        data_root=data_root,
        datastore_url=datastore_url,
        device=device,
        request_timeout=request_timeout,
        run_timeout=run_timeout,
        log_level=log_level,
    )
    configure_logging(config.log_level)

    try:
        runner = BenchmarkRunner.from_config(config)
        rprint(f"[green]Running benchmarks on {runner.device}[/green]")
        report = runner.run(config.suite_log_source)
    except BenchmarkError as e:
        rprint(f"[red]Benchmark run failed: {e}[/red]")
        raise typer.Exit(code=1)

    if report.measured_runs:
        _print_comparison_table(report)
    else:
        rprint("[yellow]No results to display[/yellow]")


@app.command()
def order(
    data_root: str = DataRootOption,
    log_level: str = LogLevelOption,
) -> None:
    """Print the models of the suite log in chronological order."""
    config = HarnessConfig(data_root=data_root, log_level=log_level)
    configure_logging(config.log_level)

    try:
        suite_log = load_suite_log(
            config.suite_log_source, timeout=config.request_timeout
        )
        model_names = chronological_model_names(suite_log)
    except BenchmarkError as e:
        rprint(f"[red]Error loading suite log: {e}[/red]")
        raise typer.Exit(code=1)

    for i, model_name in enumerate(model_names):
        rprint(f"{i + 1:>4}. {model_name}")


@app.command()
def env_info(device: Optional[str] = DeviceOption) -> None:
    """Display the environment info and version set recorded for runs."""
    device_info = DeviceInfo()
    torch_device = torch.device(device or default_device())

    table = Table(title="Environment Information")
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="green")

    info = device_info.get_environment_info(torch_device)
    for key, value in info.items():
        if isinstance(value, dict):
            value = json.dumps(value)
        table.add_row(key, str(value))
    for library, version in device_info.get_version_set()["versions"].items():
        table.add_row(f"version:{library}", str(version))

    console.print(table)


@app.command()
def kernels(
    names: Optional[List[str]] = typer.Option(
        None, "--kernel", "-k", help="Kernels to time, all when omitted"
    ),
    size: int = typer.Option(1024, "--size", help="Side of the square inputs"),
    device: Optional[str] = DeviceOption,
    warmup: int = typer.Option(3, "--warmup", help="Number of warmup runs"),
    runs: int = typer.Option(10, "--runs", help="Number of benchmark runs"),
) -> None:
    """Time the registered kernel adapters on random inputs."""
    registry = default_registry()
    backend = TorchBackend(torch.device(device or default_device()))

    table = Table(title=f"Kernels on {backend.device} ({size}x{size})")
    table.add_column("Kernel", style="cyan")
    table.add_column("Avg (ms)", style="yellow")
    table.add_column("Median (ms)", style="yellow")
    table.add_column("Min (ms)", style="magenta")

    try:
        for name in names or registry.list_kernels(backend.backend_name):
            timings = benchmark_kernel(
                registry,
                name,
                backend,
                shape=(size, size),
                warmup_runs=warmup,
                benchmark_runs=runs,
            )
            table.add_row(
                name,
                f"{timings['average_time_ms']:.3f}",
                f"{timings['median_time_ms']:.3f}",
                f"{timings['min_time_ms']:.3f}",
            )
    except BenchmarkError as e:
        rprint(f"[red]Error timing kernels: {e}[/red]")
        raise typer.Exit(code=1)

    console.print(table)


def _print_comparison_table(report: RunReport) -> None:
    """Print reference vs. measured averages for each task."""
    table = Table(title="Reference vs. Local")
    table.add_column("Model", style="cyan")
    table.add_column("Function", style="green")
    table.add_column("Reference (ms)", style="yellow")
    table.add_column("Local (ms)", style="yellow")
    table.add_column("Speedup", style="magenta")

    for (model_name, function_name), metrics in report.comparisons.items():
        table.add_row(
            model_name,
            function_name,
            f"{metrics['reference_time_ms']:.3f}",
            f"{metrics['measured_time_ms']:.3f}",
            f"{metrics['speedup']:.2f}x",
        )

    console.print(table)


def main() -> None:
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
