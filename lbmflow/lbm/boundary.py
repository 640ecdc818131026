import enum
import logging
from collections.abc import Callable
from typing import Dict, Optional, Tuple

import chex
import jax
import numpy as np
from jax import numpy as jnp
from multipledispatch import dispatch

from lbmflow.lbm.errors import ConfigurationError
from lbmflow.lbm.grid import Grid

__all__ = [
    "BoundaryType",
    "BoundaryClassification",
    "classify",
    "all_fluid",
    "cylinder_in_channel",
    "cylinder_in_box",
    "get_preset",
    "PRESETS",
]

logger = logging.getLogger(__name__)

Dims = Tuple[int, int, int]


class BoundaryType(enum.IntEnum):
    """Collision behaviour of a node."""

    FLUID = 0
    REFLECTIVE = 1
    INOUTFLOW = 2
    SINK = 3


@chex.dataclass(frozen=True)
class BoundaryClassification:
    """One BoundaryType per node, fixed for the lifetime of a simulation."""

    tags: chex.Array

    @property
    def shape(self):
        return self.tags.shape

    def counts(self) -> Dict[BoundaryType, int]:
        tags = np.asarray(self.tags)
        return {tag: int(np.sum(tags == tag)) for tag in BoundaryType}


def _as_boundary_type(value, node) -> BoundaryType:
    try:
        return BoundaryType(value)
    except ValueError:
        raise ConfigurationError(
            f"Node {node} was classified as {value!r}, which is not a boundary type. "
            f"Expected one of {[t.name for t in BoundaryType]}."
        ) from None


@dispatch(Grid, Callable)
def classify(grid: Grid, preset: Callable) -> BoundaryClassification:
    """Evaluates a preset predicate (x, y, z, dims) -> BoundaryType once per node.

    Args:
        grid (Grid): The grid to classify.
        preset (Callable): The predicate.

    Returns:
        BoundaryClassification: The tag of every node.
    """
    tags = np.empty(grid.shape, dtype=np.int8)
    dims = grid.dimensions()
    for node in np.ndindex(grid.shape):
        tags[node] = _as_boundary_type(preset(*node, dims), node)
    return classify(grid, tags)


@dispatch(Grid, np.ndarray)
def classify(grid: Grid, tags: np.ndarray) -> BoundaryClassification:
    """Validates a ready-made tag array."""
    if tags.shape != grid.shape:
        raise ConfigurationError(
            f"The boundary tags must have the grid shape {grid.shape}, "
            f"but got {tags.shape} instead."
        )
    valid = np.isin(tags, [int(t) for t in BoundaryType])
    if not valid.all():
        node = tuple(int(c) for c in np.argwhere(~valid)[0])
        _as_boundary_type(tags[node], node)
    classification = BoundaryClassification(tags=jnp.asarray(tags, dtype=jnp.int8))
    logger.debug(
        "Classified %d nodes: %s",
        grid.node_count(),
        {t.name: n for t, n in classification.counts().items()},
    )
    return classification


@dispatch(Grid, jax.Array)
def classify(grid: Grid, tags: chex.Array) -> BoundaryClassification:
    return classify(grid, np.asarray(tags))


@dispatch(Grid, str)
def classify(grid: Grid, name: str) -> BoundaryClassification:
    return classify(grid, get_preset(name))


def all_fluid(x: int, y: int, z: int, dims: Dims) -> BoundaryType:
    return BoundaryType.FLUID


def _default_radius(radius: Optional[float], cross_section: Tuple[int, int]) -> float:
    if radius is not None:
        return radius
    return max(1.0, min(cross_section) / 8)


def cylinder_in_channel(radius: Optional[float] = None) -> Callable:
    """Flow past a z-aligned cylinder.

    The x = 0 face imposes the inflow, the x = width - 1 face absorbs it, the
    y and z directions are periodic.
    """

    def preset(x: int, y: int, z: int, dims: Dims) -> BoundaryType:
        width, height, _ = dims
        r = _default_radius(radius, (width, height))
        if x == 0:
            return BoundaryType.INOUTFLOW
        if x == width - 1:
            return BoundaryType.SINK
        if (x - width / 4) ** 2 + (y - height / 2) ** 2 < r**2:
            return BoundaryType.REFLECTIVE
        return BoundaryType.FLUID

    return preset


def cylinder_in_box(radius: Optional[float] = None) -> Callable:
    """Wind tunnel with solid y and z walls around a y-aligned cylinder."""

    def preset(x: int, y: int, z: int, dims: Dims) -> BoundaryType:
        width, height, depth = dims
        r = _default_radius(radius, (width, depth))
        if y == 0 or y == height - 1 or z == 0 or z == depth - 1:
            return BoundaryType.REFLECTIVE
        if x == 0:
            return BoundaryType.INOUTFLOW
        if x == width - 1:
            return BoundaryType.SINK
        if (x - width / 4) ** 2 + (z - depth / 2) ** 2 < r**2:
            return BoundaryType.REFLECTIVE
        return BoundaryType.FLUID

    return preset


PRESETS = {
    "fluid": lambda radius=None: all_fluid,
    "channel": cylinder_in_channel,
    "box": cylinder_in_box,
}


def get_preset(name: str, radius: Optional[float] = None) -> Callable:
    if name not in PRESETS:
        raise ConfigurationError(
            f"Unknown boundary preset '{name}'. Available presets: {sorted(PRESETS)}."
        )
    return PRESETS[name](radius=radius)
