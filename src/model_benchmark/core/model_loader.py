"""
Loading of benchmarked models from the data root.

Each model lives in its own directory under the data root::

    <data root>/<model name>/model.json   metadata
    <data root>/<model name>/model.pt     TorchScript archive

``model.json`` declares the archive location and the model's input and
output shapes, with ``null`` for the batch dimension::

    {"format": "torchscript", "weightsPath": "model.pt",
     "inputShapes": [[null, 784]], "outputShapes": [[null, 10]]}
"""

import io
import json
import logging
from dataclasses import dataclass
from typing import List, Optional

import requests
import torch

from .errors import ModelLoadError
from .resources import fetch_bytes, join_location
from .tensors import Shape

logger = logging.getLogger(__name__)

MODEL_JSON = "model.json"
DEFAULT_WEIGHTS_PATH = "model.pt"
SUPPORTED_FORMATS = ("torchscript",)


def is_valid_shape(shape) -> bool:
    """A declared shape: a batch dimension followed by positive int dims."""
    if not isinstance(shape, list) or not shape:
        return False
    return all(
        isinstance(dim, int) and not isinstance(dim, bool) and dim > 0
        for dim in shape[1:]
    )


@dataclass
class LoadedModel:
    """A deserialized model together with its declared shapes."""

    name: str
    module: torch.nn.Module
    input_shapes: List[Shape]
    output_shapes: List[Shape]


class ModelLoader:
    """Fetch model metadata and TorchScript archives from a data root."""

    def __init__(
        self,
        data_root: str,
        device: torch.device,
        timeout: float = 60,
        session: Optional[requests.Session] = None,
    ):
        """Initialize model loader.

        Args:
            data_root: URL or directory holding one subdirectory per model
            device: Device the models are mapped onto
            timeout: HTTP request timeout in seconds
            session: Session to reuse for HTTP requests
        """
        self.data_root = data_root
        self.device = device
        self.timeout = timeout
        self.session = session

    def _fetch(self, location: str) -> bytes:
        try:
            return fetch_bytes(location, timeout=self.timeout, session=self.session)
        except (requests.RequestException, OSError) as e:
            raise ModelLoadError(f"Failed to fetch {location}: {e}") from e

    def load_metadata(self, model_name: str) -> dict:
        """Fetch and validate ``model.json`` for a model.

        Raises:
            ModelLoadError: If the metadata is unreachable or invalid
        """
        location = join_location(self.data_root, model_name, MODEL_JSON)
        try:
            metadata = json.loads(self._fetch(location))
        except ValueError as e:
            raise ModelLoadError(f"Failed to parse {location}: {e}") from e

        if not isinstance(metadata, dict):
            raise ModelLoadError(f"{location} must be a JSON object")

        model_format = metadata.get("format", "torchscript")
        if model_format not in SUPPORTED_FORMATS:
            raise ModelLoadError(
                f"Unsupported model format '{model_format}' for {model_name}"
            )

        for key in ("inputShapes", "outputShapes"):
            shapes = metadata.get(key)
            if not isinstance(shapes, list) or not shapes:
                raise ModelLoadError(f"{location} must declare a non-empty '{key}'")
            for shape in shapes:
                if not is_valid_shape(shape):
                    raise ModelLoadError(
                        f"Invalid shape {shape!r} in '{key}' of {location}: "
                        "expected a list of positive integers after the batch "
                        "dimension"
                    )

        return metadata

    def load(self, model_name: str) -> LoadedModel:
        """Load a model by name.

        Raises:
            ModelLoadError: If the model cannot be fetched or deserialized
        """
        metadata = self.load_metadata(model_name)
        weights_location = join_location(
            self.data_root,
            model_name,
            metadata.get("weightsPath", DEFAULT_WEIGHTS_PATH),
        )

        buffer = io.BytesIO(self._fetch(weights_location))
        try:
            module = torch.jit.load(buffer, map_location=self.device)
        except RuntimeError as e:
            raise ModelLoadError(
                f"Failed to deserialize {weights_location}: {e}"
            ) from e

        logger.debug(
            "Loaded %s: inputs=%s outputs=%s",
            model_name,
            metadata["inputShapes"],
            metadata["outputShapes"],
        )
        return LoadedModel(
            name=model_name,
            module=module,
            input_shapes=metadata["inputShapes"],
            output_shapes=metadata["outputShapes"],
        )
