"""
Tests for the datastore clients.
"""

import pytest
import requests
from unittest.mock import Mock

from model_benchmark.core.errors import DatastoreError
from model_benchmark.core.metrics import BenchmarkRun
from model_benchmark.storage.datastore import InMemoryDatastore, RestDatastore


class TestInMemoryDatastore:
    """Tests for InMemoryDatastore."""

    @pytest.fixture
    def datastore(self):
        return InMemoryDatastore()

    def test_environment_info_is_deduplicated(self, datastore):
        first = datastore.add_environment_info({"type": "python-pytorch-cpu", "a": 1})
        second = datastore.add_environment_info({"a": 1, "type": "python-pytorch-cpu"})
        other = datastore.add_environment_info({"type": "python-pytorch-cuda"})

        assert first == second
        assert other != first
        assert len(datastore.environments) == 2

    def test_task_ids(self, datastore):
        predict_id = datastore.add_or_get_task_id("model", "mnist", "predict")
        fit_id = datastore.add_or_get_task_id("model", "mnist", "fit")

        assert datastore.add_or_get_task_id("model", "mnist", "predict") == predict_id
        assert fit_id != predict_id

    def test_benchmark_runs_batch(self, datastore):
        runs = [BenchmarkRun(1, 0, 1, 1.0, task_id="t"), BenchmarkRun(2, 0, 1, 2.0)]

        datastore.add_benchmark_runs(runs)

        assert datastore.benchmark_runs[0]["taskId"] == "t"
        assert datastore.benchmark_runs[1]["batchSize"] == 2
        assert datastore.num_requests == 1


class TestRestDatastore:
    """Tests for RestDatastore with a mocked HTTP session."""

    @pytest.fixture
    def datastore(self):
        datastore = RestDatastore("http://results.local/api/", timeout=5)
        datastore.session = Mock()
        return datastore

    @staticmethod
    def ok_response(payload):
        response = Mock(status_code=200, content=b"{}")
        response.json.return_value = payload
        return response

    def test_add_environment_info(self, datastore):
        datastore.session.post.return_value = self.ok_response({"id": "env-1"})

        environment_id = datastore.add_environment_info({"type": "python-pytorch-cpu"})

        assert environment_id == "env-1"
        datastore.session.post.assert_called_once_with(
            "http://results.local/api/environments",
            json={"type": "python-pytorch-cpu"},
            timeout=5,
        )

    def test_add_or_get_task_id(self, datastore):
        datastore.session.post.return_value = self.ok_response({"id": 42})

        task_id = datastore.add_or_get_task_id("model", "mnist", "predict")

        assert task_id == "42"
        _, kwargs = datastore.session.post.call_args
        assert kwargs["json"] == {
            "taskType": "model",
            "modelName": "mnist",
            "functionName": "predict",
        }

    def test_add_benchmark_runs(self, datastore):
        datastore.session.post.return_value = self.ok_response({})

        datastore.add_benchmark_runs([BenchmarkRun(1, 0, 1, 1.5)])

        args, kwargs = datastore.session.post.call_args
        assert args[0] == "http://results.local/api/benchmarkRuns:batch"
        assert kwargs["json"]["runs"][0]["averageTimeMs"] == 1.5

    def test_missing_id(self, datastore):
        datastore.session.post.return_value = self.ok_response({})

        with pytest.raises(DatastoreError, match="no 'id'"):
            datastore.add_version_set({"versions": {}})

    def test_request_failure(self, datastore):
        datastore.session.post.side_effect = requests.ConnectionError("refused")

        with pytest.raises(DatastoreError, match="refused"):
            datastore.add_version_set({"versions": {}})

        assert datastore.session.post.call_count == 1

    def test_http_error(self, datastore):
        response = self.ok_response({})
        response.raise_for_status.side_effect = requests.HTTPError("500 Server Error")
        datastore.session.post.return_value = response

        with pytest.raises(DatastoreError, match="500"):
            datastore.add_environment_info({})
