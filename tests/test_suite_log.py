"""
Tests for suite log loading and chronological ordering.
"""

import json
import random
from unittest.mock import Mock

import pytest
import requests

from model_benchmark.core.errors import MissingTaskError, SuiteLogError
from model_benchmark.core.suite_log import (
    ModelFunction,
    SuiteLog,
    chronological_model_names,
    load_suite_log,
)

from conftest import predict_run, write_suite_log


def make_suite_log(timestamps):
    """Suite log with one predict task per model, ending at the given times."""
    return SuiteLog.from_dict(
        {
            "data": {
                name: {"predict": predict_run(ts=ts)} for name, ts in timestamps.items()
            }
        }
    )


class TestModelFunction:
    """Tests for ModelFunction parsing."""

    def test_known_names(self):
        assert ModelFunction.from_name("predict") is ModelFunction.PREDICT
        assert ModelFunction.from_name("fit") is ModelFunction.FIT
        assert ModelFunction.from_name("fitDataset") is ModelFunction.FIT_DATASET

    def test_unknown_names(self):
        assert ModelFunction.from_name("evaluate") is ModelFunction.UNKNOWN
        assert ModelFunction.from_name("unknown") is ModelFunction.UNKNOWN
        assert ModelFunction.from_name("Predict") is ModelFunction.UNKNOWN


class TestChronologicalOrdering:
    """Tests for chronological_model_names."""

    def test_sorted_by_first_function_timestamp(self):
        """Test ascending order of ending timestamps."""
        suite_log = make_suite_log({"c": 300, "a": 100, "b": 200})
        assert chronological_model_names(suite_log) == ["a", "b", "c"]

    def test_uses_first_recorded_function(self):
        """Test that only the first function's timestamp counts."""
        suite_log = SuiteLog.from_dict(
            {
                "data": {
                    "x": {"predict": predict_run(ts=500), "fit": predict_run(ts=1)},
                    "y": {"fit": predict_run(ts=100), "predict": predict_run(ts=900)},
                }
            }
        )
        assert chronological_model_names(suite_log) == ["y", "x"]

    def test_ties_keep_suite_log_order(self):
        """Test the explicit tie-break on original position."""
        suite_log = make_suite_log({"m3": 10, "m1": 10, "m2": 5, "m0": 10})
        assert chronological_model_names(suite_log) == ["m2", "m3", "m1", "m0"]

    def test_models_without_functions_are_skipped(self):
        """Test that empty task groups are left out of the order."""
        suite_log = SuiteLog.from_dict(
            {"data": {"empty": {}, "full": {"predict": predict_run(ts=1)}}}
        )
        assert chronological_model_names(suite_log) == ["full"]

    def test_iso_timestamps(self):
        """Test ISO-8601 ending timestamps."""
        suite_log = make_suite_log(
            {"late": "2019-03-01T00:00:00Z", "early": "2019-01-01T00:00:00Z"}
        )
        assert chronological_model_names(suite_log) == ["early", "late"]

    @pytest.mark.parametrize("seed", range(5))
    def test_permutation_property(self, seed):
        """Test the result is a sorted permutation of the model names."""
        rng = random.Random(seed)
        timestamps = {f"model_{i}": rng.randint(0, 5) for i in range(20)}
        names = list(timestamps)

        ordered = chronological_model_names(make_suite_log(timestamps))

        assert sorted(ordered) == sorted(names)
        keys = [(timestamps[n], names.index(n)) for n in ordered]
        assert keys == sorted(keys)

    def test_missing_timestamp(self):
        """Test a first function without an ending timestamp."""
        run = predict_run()
        del run["endingTimestampMs"]
        suite_log = SuiteLog.from_dict({"data": {"m": {"predict": run}}})

        with pytest.raises(SuiteLogError, match="endingTimestampMs"):
            chronological_model_names(suite_log)


class TestSuiteLog:
    """Tests for SuiteLog parsing and loading."""

    def test_from_dict(self):
        """Test runs are parsed and annotated with their names."""
        suite_log = SuiteLog.from_dict(
            {
                "data": {"mnist": {"predict": predict_run()}},
                "environmentInfo": {"type": "python-tensorflow-cpu"},
            }
        )

        run = suite_log.data["mnist"]["predict"]
        assert run.model_name == "mnist"
        assert run.function_name == "predict"
        assert run.batch_size == 32
        assert suite_log.environment_info == {"type": "python-tensorflow-cpu"}
        assert suite_log.model_names == ["mnist"]

    @pytest.mark.parametrize(
        "document",
        [
            [],
            {},
            {"data": []},
            {"data": {"mnist": []}},
            {"data": {"mnist": {"predict": {"batchSize": 1}}}},
        ],
    )
    def test_malformed_documents(self, document):
        with pytest.raises(SuiteLogError):
            SuiteLog.from_dict(document)

    def test_check_tasks(self):
        """Test a model with zero functions is a hard failure."""
        suite_log = SuiteLog.from_dict(
            {"data": {"ok": {"predict": predict_run()}, "mnist": {}}}
        )
        with pytest.raises(MissingTaskError, match='"mnist"'):
            suite_log.check_tasks()

    def test_load_from_path(self, tmp_path):
        path = write_suite_log(tmp_path, {"mnist": {"predict": predict_run()}})
        suite_log = load_suite_log(path)
        assert suite_log.model_names == ["mnist"]

    def test_load_unparseable_file(self, tmp_path):
        path = tmp_path / "benchmarks.json"
        path.write_text("{not json")
        with pytest.raises(SuiteLogError, match="parse"):
            load_suite_log(str(path))

    def test_load_missing_file(self, tmp_path):
        with pytest.raises(SuiteLogError, match="fetch"):
            load_suite_log(str(tmp_path / "nope.json"))

    def test_load_from_url(self):
        """Test fetching over HTTP with a session."""
        document = {"data": {"mnist": {"predict": predict_run()}}}
        response = Mock(status_code=200, content=json.dumps(document).encode())
        session = Mock()
        session.get.return_value = response

        suite_log = load_suite_log(
            "http://localhost:8090/data/benchmarks.json", timeout=5, session=session
        )

        session.get.assert_called_once_with(
            "http://localhost:8090/data/benchmarks.json", timeout=5
        )
        response.raise_for_status.assert_called_once()
        assert suite_log.model_names == ["mnist"]

    def test_load_unreachable_url(self):
        """Test that a failed fetch is not retried."""
        session = Mock()
        session.get.side_effect = requests.ConnectionError("refused")

        with pytest.raises(SuiteLogError, match="refused"):
            load_suite_log("http://localhost:1/benchmarks.json", session=session)

        assert session.get.call_count == 1
