"""
Replay Basics Example: Benchmarking Against a Reference Suite Log

This example builds a tiny data root on disk and replays it:
- Two TorchScript models with their model.json metadata
- A benchmarks.json suite log with reference timings for predict() and fit()
- A run against the in-memory datastore

Learning objectives:
1. Understand the layout of a data root
2. See how reference runs drive warm-up and benchmarked iterations
3. Inspect what gets written to the datastore
"""

import json
import tempfile
import time
from pathlib import Path

import torch

from model_benchmark import BenchmarkRunner
from model_benchmark.logger import configure_logging
from model_benchmark.storage import InMemoryDatastore


def build_data_root(root: Path) -> str:
    """Write two models and a suite log under root."""
    print("\n  Writing models...")
    dense = torch.nn.Sequential(
        torch.nn.Linear(64, 32), torch.nn.ReLU(), torch.nn.Linear(32, 10)
    )
    models = {
        "dense": (dense, 64, 10),
        "tiny": (torch.nn.Linear(8, 2), 8, 2),
    }
    for name, (module, in_features, out_features) in models.items():
        model_dir = root / name
        model_dir.mkdir(parents=True)
        torch.jit.save(torch.jit.script(module), str(model_dir / "model.pt"))
        (model_dir / "model.json").write_text(
            json.dumps(
                {
                    "format": "torchscript",
                    "weightsPath": "model.pt",
                    "inputShapes": [[None, in_features]],
                    "outputShapes": [[None, out_features]],
                }
            )
        )
        print(f"   {name}: [{in_features}] -> [{out_features}]")

    now_ms = time.time() * 1000
    suite_log = {
        "environmentInfo": {"type": "python-tensorflow-cpu", "pythonVersion": "3.11"},
        "data": {
            "dense": {
                "predict": {
                    "batchSize": 32,
                    "numWarmUpIterations": 2,
                    "numBenchmarkedIterations": 10,
                    "averageTimeMs": 0.5,
                    "endingTimestampMs": now_ms - 1000,
                },
                "fit": {
                    "batchSize": 32,
                    "numWarmUpIterations": 1,
                    "numBenchmarkedIterations": 5,
                    "averageTimeMs": 2.0,
                    "endingTimestampMs": now_ms - 900,
                    "loss": "categorical_crossentropy",
                    "optimizer": "AdamOptimizer",
                },
            },
            "tiny": {
                "predict": {
                    "batchSize": 8,
                    "numWarmUpIterations": 1,
                    "numBenchmarkedIterations": 5,
                    "averageTimeMs": 0.1,
                    "endingTimestampMs": now_ms - 5000,
                },
            },
        },
    }
    (root / "benchmarks.json").write_text(json.dumps(suite_log, indent=2))
    return str(root / "benchmarks.json")


def demonstrate_replay():
    """Replay the suite log and print what was recorded."""
    print("=" * 60)
    print("REPLAY BASICS: Reference vs. Local")
    print("=" * 60)

    configure_logging("INFO")

    with tempfile.TemporaryDirectory() as tmp:
        source = build_data_root(Path(tmp))

        datastore = InMemoryDatastore()
        runner = BenchmarkRunner(datastore=datastore, data_root=tmp)
        print(f"\n  Running on {runner.device}...")
        report = runner.run(source)

    # models run oldest first: "tiny" ended before "dense" in the reference run
    print("\n  Measured runs:")
    for run in report.measured_runs:
        print(
            f"   {run.model_name:>6}.{run.function_name:<8} "
            f"{run.average_time_ms:8.3f} ms (batch {run.batch_size})"
        )

    print("\n  Speedup vs. reference:")
    for (model_name, function_name), metrics in report.comparisons.items():
        print(f"   {model_name:>6}.{function_name:<8} {metrics['speedup']:6.2f}x")

    print("\n  Datastore contents:")
    print(f"   Environments:   {len(datastore.environments)}")
    print(f"   Version sets:   {len(datastore.version_sets)}")
    print(f"   Tasks:          {len(datastore.tasks)}")
    print(f"   Benchmark runs: {len(datastore.benchmark_runs)}")
    print(f"   Tensors left:   {report.context.tensor_stats.live}")


if __name__ == "__main__":
    demonstrate_replay()
