"""
Tensor allocation helpers with scoped release.
"""

from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple, Union

import torch

from .errors import BatchSizeError

Tensors = Union[torch.Tensor, List[torch.Tensor]]
Shape = Sequence[Optional[int]]


@dataclass
class TensorStats:
    """Running count of tensors the harness allocated and released."""

    allocated: int = 0
    released: int = 0

    @property
    def live(self) -> int:
        return self.allocated - self.released


class TensorScope:
    """Track tensors and drop every reference to them when the scope exits.

    The scope releases on both normal exit and exceptions, so callers never
    have to dispose tensors by hand::

        with TensorScope(stats) as scope:
            xs = scope.track(torch.rand(8, 4))
            ...
    """

    def __init__(self, stats: Optional[TensorStats] = None):
        self.stats = stats if stats is not None else TensorStats()
        self._tensors: List[torch.Tensor] = []

    def __enter__(self) -> "TensorScope":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()

    def track(self, tensors):
        """Register one tensor or a sequence of tensors and return it unchanged."""
        for tensor in flatten(tensors):
            self._tensors.append(tensor)
            self.stats.allocated += 1
        return tensors

    @property
    def num_tracked(self) -> int:
        """Tensors held by the scope and not yet released."""
        return len(self._tensors)

    def release(self) -> None:
        """Drop all tracked tensors."""
        self.stats.released += len(self._tensors)
        self._tensors.clear()


def flatten(tensors) -> List[torch.Tensor]:
    """Flatten a tensor, or a (nested) list/tuple/dict of tensors, to a list."""
    if tensors is None:
        return []
    if isinstance(tensors, torch.Tensor):
        return [tensors]
    if isinstance(tensors, dict):
        tensors = list(tensors.values())
    flat = []
    for item in tensors:
        flat.extend(flatten(item))
    return flat


def check_batch_size(batch_size) -> None:
    """Validate that a batch size is a positive integer.

    Raises:
        BatchSizeError: If it is not
    """
    if (
        isinstance(batch_size, bool)
        or not isinstance(batch_size, int)
        or batch_size <= 0
    ):
        raise BatchSizeError(
            f"Expected batch size to be a positive integer, but got {batch_size!r}"
        )


def random_tensors(
    shapes: Sequence[Shape],
    batch_size: int,
    device: torch.device,
    scope: TensorScope,
) -> Tensors:
    """Create uniform random tensors for declared model shapes.

    The leading (batch) dimension of each declared shape is replaced by
    ``batch_size``. A single shape yields a single tensor.
    """
    tensors = []
    for shape in shapes:
        dims = [batch_size] + [int(d) for d in list(shape)[1:]]
        tensors.append(scope.track(torch.rand(dims, device=device)))

    if len(tensors) == 1:
        return tensors[0]
    return tensors


def random_inputs_and_outputs(
    input_shapes: Sequence[Shape],
    output_shapes: Sequence[Shape],
    batch_size: int,
    device: torch.device,
    scope: TensorScope,
) -> Tuple[Tensors, Tensors]:
    """Create random inputs ``xs`` and targets ``ys`` for a model."""
    check_batch_size(batch_size)
    xs = random_tensors(input_shapes, batch_size, device, scope)
    ys = random_tensors(output_shapes, batch_size, device, scope)
    return xs, ys


def sync_data(tensors) -> None:
    """Block until the values of all given tensors are available on the host."""
    for tensor in flatten(tensors):
        tensor.detach().cpu()
