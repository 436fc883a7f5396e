"""
Datastore clients for benchmark results.

A datastore exposes four calls: environment info and version sets are added
once per run, task ids are looked up (or created) per (task type, model,
function) triple, and benchmark runs are written in a single batch.
"""

import json
import logging
import uuid
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Sequence, Tuple

import requests

from ..core.errors import DatastoreError
from ..core.metrics import BenchmarkRun

logger = logging.getLogger(__name__)


class Datastore(ABC):
    """Abstract base class for benchmark result stores."""

    @abstractmethod
    def add_environment_info(self, environment_info: Dict[str, Any]) -> str:
        """Store environment info and return its id.

        Identical environment info yields the same id.
        """

    @abstractmethod
    def add_version_set(self, version_set: Dict[str, Any]) -> str:
        """Store a version set and return its id."""

    @abstractmethod
    def add_or_get_task_id(
        self, task_type: str, model_name: str, function_name: str
    ) -> str:
        """Return the id of a task, creating the task if needed."""

    @abstractmethod
    def add_benchmark_runs(self, runs: Sequence[BenchmarkRun]) -> None:
        """Write benchmark runs in one batch."""


def _new_id() -> str:
    return uuid.uuid4().hex


class InMemoryDatastore(Datastore):
    """Datastore kept in process memory, used for dry runs and tests."""

    def __init__(self):
        self.environments: Dict[str, Dict[str, Any]] = {}
        self.version_sets: Dict[str, Dict[str, Any]] = {}
        self.tasks: Dict[Tuple[str, str, str], str] = {}
        self.benchmark_runs: List[Dict[str, Any]] = []
        self.num_requests = 0
        self._environment_keys: Dict[str, str] = {}

    def add_environment_info(self, environment_info: Dict[str, Any]) -> str:
        self.num_requests += 1
        key = json.dumps(environment_info, sort_keys=True, default=str)
        if key not in self._environment_keys:
            environment_id = _new_id()
            self._environment_keys[key] = environment_id
            self.environments[environment_id] = dict(environment_info)
        return self._environment_keys[key]

    def add_version_set(self, version_set: Dict[str, Any]) -> str:
        self.num_requests += 1
        version_set_id = _new_id()
        self.version_sets[version_set_id] = dict(version_set)
        return version_set_id

    def add_or_get_task_id(
        self, task_type: str, model_name: str, function_name: str
    ) -> str:
        self.num_requests += 1
        key = (task_type, model_name, function_name)
        if key not in self.tasks:
            self.tasks[key] = _new_id()
        return self.tasks[key]

    def add_benchmark_runs(self, runs: Sequence[BenchmarkRun]) -> None:
        self.num_requests += 1
        self.benchmark_runs.extend(run.to_dict() for run in runs)


class RestDatastore(Datastore):
    """Datastore client for a JSON-over-HTTP results service.

    Endpoints, relative to ``base_url``:

    - ``POST /environments`` -> ``{"id": ...}``
    - ``POST /versionSets`` -> ``{"id": ...}``
    - ``POST /tasks`` (get-or-create) -> ``{"id": ...}``
    - ``POST /benchmarkRuns:batch`` with ``{"runs": [...]}``
    """

    def __init__(self, base_url: str, timeout: float = 60) -> None:
        """Initialise client with base URL and session."""
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = requests.Session()

    def _post(self, path: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        url = f"{self.base_url}/{path}"
        logger.debug("POST %s", url)
        try:
            response = self.session.post(url, json=payload, timeout=self.timeout)
            logger.debug("Response status: %d", response.status_code)
            response.raise_for_status()
            return response.json() if response.content else {}
        except requests.RequestException as e:
            raise DatastoreError(f"Datastore request to {url} failed: {e}") from e
        except ValueError as e:
            raise DatastoreError(f"Invalid datastore response from {url}: {e}") from e

    def _post_for_id(self, path: str, payload: Dict[str, Any]) -> str:
        result = self._post(path, payload)
        if "id" not in result:
            raise DatastoreError(f"Datastore response from /{path} has no 'id'")
        return str(result["id"])

    def add_environment_info(self, environment_info: Dict[str, Any]) -> str:
        return self._post_for_id("environments", environment_info)

    def add_version_set(self, version_set: Dict[str, Any]) -> str:
        return self._post_for_id("versionSets", version_set)

    def add_or_get_task_id(
        self, task_type: str, model_name: str, function_name: str
    ) -> str:
        return self._post_for_id(
            "tasks",
            {
                "taskType": task_type,
                "modelName": model_name,
                "functionName": function_name,
            },
        )

    def add_benchmark_runs(self, runs: Sequence[BenchmarkRun]) -> None:
        self._post("benchmarkRuns:batch", {"runs": [run.to_dict() for run in runs]})
