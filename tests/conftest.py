"""
Shared fixtures: tiny TorchScript models and suite logs on disk.
"""

import json

import pytest
import torch

from model_benchmark.core.benchmark_runner import BenchmarkRunner, RunContext
from model_benchmark.storage.datastore import InMemoryDatastore


def write_model(root, name, module, input_shapes, output_shapes):
    """Script a module and write it with its metadata under root/name."""
    model_dir = root / name
    model_dir.mkdir(parents=True, exist_ok=True)
    torch.jit.save(torch.jit.script(module), str(model_dir / "model.pt"))
    (model_dir / "model.json").write_text(
        json.dumps(
            {
                "format": "torchscript",
                "weightsPath": "model.pt",
                "inputShapes": input_shapes,
                "outputShapes": output_shapes,
            }
        )
    )


def write_suite_log(root, data, environment_info=None):
    """Write benchmarks.json under root and return its path as a string."""
    path = root / "benchmarks.json"
    path.write_text(
        json.dumps(
            {
                "data": data,
                "environmentInfo": environment_info
                or {"type": "python-tensorflow-cpu", "pythonVersion": "3.11.4"},
            }
        )
    )
    return str(path)


def predict_run(batch_size=32, warm_up=2, benchmarked=5, average=10.2, ts=1000):
    return {
        "batchSize": batch_size,
        "numWarmUpIterations": warm_up,
        "numBenchmarkedIterations": benchmarked,
        "averageTimeMs": average,
        "endingTimestampMs": ts,
    }


@pytest.fixture
def data_root(tmp_path):
    return tmp_path


@pytest.fixture
def datastore():
    return InMemoryDatastore()


@pytest.fixture
def runner(datastore, data_root):
    return BenchmarkRunner(
        datastore=datastore, data_root=str(data_root), device=torch.device("cpu")
    )


@pytest.fixture
def context():
    return RunContext(task_type="model", environment_id="env", version_set_id="vs")
