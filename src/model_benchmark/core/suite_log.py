"""
Reference suite log: loading, validation and chronological ordering.
"""

import enum
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import requests

from .errors import MissingTaskError, SuiteLogError
from .metrics import BenchmarkRun
from .resources import fetch_bytes

logger = logging.getLogger(__name__)


class ModelFunction(enum.Enum):
    """Model function benchmarked by a task."""

    PREDICT = "predict"
    FIT = "fit"
    FIT_DATASET = "fitDataset"
    UNKNOWN = "unknown"

    @classmethod
    def from_name(cls, name: str) -> "ModelFunction":
        """Parse a function name, mapping anything unrecognized to UNKNOWN."""
        for member in cls:
            if member is not cls.UNKNOWN and member.value == name:
                return member
        return cls.UNKNOWN


@dataclass(frozen=True)
class SuiteLog:
    """Reference benchmark runs keyed by model name, then function name."""

    data: Dict[str, Dict[str, BenchmarkRun]]
    environment_info: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, document: Dict[str, Any]) -> "SuiteLog":
        """Build a suite log from its parsed JSON document.

        Raises:
            SuiteLogError: If the document does not have the expected shape
        """
        if not isinstance(document, dict) or not isinstance(
            document.get("data"), dict
        ):
            raise SuiteLogError("Suite log must be an object with a 'data' object")

        data = {}
        for model_name, task_group in document["data"].items():
            if not isinstance(task_group, dict):
                raise SuiteLogError(
                    f"Expected an object of tasks for model '{model_name}'"
                )

            runs = {}
            for function_name, run in task_group.items():
                try:
                    parsed = BenchmarkRun.from_dict(run)
                except (AttributeError, KeyError, TypeError, ValueError) as e:
                    raise SuiteLogError(
                        f"Invalid run for {model_name}.{function_name}: {e}"
                    ) from e
                runs[function_name] = parsed.with_ids(
                    model_name=parsed.model_name or model_name,
                    function_name=parsed.function_name or function_name,
                )
            data[model_name] = runs

        environment_info = document.get("environmentInfo") or {}
        if not isinstance(environment_info, dict):
            raise SuiteLogError("Suite log 'environmentInfo' must be an object")
        return cls(data=data, environment_info=dict(environment_info))

    @property
    def model_names(self) -> List[str]:
        """Model names in suite log order."""
        return list(self.data.keys())

    def check_tasks(self) -> None:
        """Ensure every model has at least one recorded function.

        Raises:
            MissingTaskError: For the first model without functions
        """
        for model_name, task_group in self.data.items():
            if not task_group:
                raise MissingTaskError(f'No task is found for model "{model_name}"')


def load_suite_log(
    source: str,
    timeout: float = 60,
    session: Optional[requests.Session] = None,
) -> SuiteLog:
    """Fetch and parse a suite log.

    Args:
        source: URL or filesystem path of the suite log JSON
        timeout: HTTP request timeout in seconds
        session: Session to reuse for HTTP requests

    Returns:
        Parsed SuiteLog

    Raises:
        SuiteLogError: If the document is unreachable or malformed
    """
    logger.info("Loading suite log from %s", source)
    try:
        document = json.loads(fetch_bytes(source, timeout=timeout, session=session))
    except (requests.RequestException, OSError) as e:
        raise SuiteLogError(f"Failed to fetch suite log {source}: {e}") from e
    except ValueError as e:
        raise SuiteLogError(f"Failed to parse suite log {source}: {e}") from e

    return SuiteLog.from_dict(document)


def chronological_model_names(suite_log: SuiteLog) -> List[str]:
    """Order models by the ending timestamp of their first recorded function.

    Models without recorded functions are skipped. Equal timestamps keep the
    suite log order.

    Args:
        suite_log: Reference suite log

    Returns:
        Model names, oldest first
    """
    keyed = []
    for index, (model_name, task_group) in enumerate(suite_log.data.items()):
        if not task_group:
            continue

        first_run = next(iter(task_group.values()))
        timestamp = first_run.ending_timestamp_ms
        if timestamp is None:
            raise SuiteLogError(
                f"Model '{model_name}' has no endingTimestampMs on its first task"
            )
        keyed.append((timestamp, index, model_name))

    keyed.sort(key=lambda item: (item[0], item[1]))
    return [model_name for _, _, model_name in keyed]
