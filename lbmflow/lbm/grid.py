from dataclasses import dataclass
from numbers import Integral
from typing import Tuple, Union

import chex
import numpy as np

from jax import numpy as jnp

from lbmflow.lbm.errors import ConfigurationError

__all__ = ["Grid"]

IndexLike = Union[int, np.ndarray, chex.Array]


@dataclass(frozen=True)
class Grid:
    """Fixed 3D node lattice with x-fastest linear indexing.

    Node (x, y, z) has linear index ``x + y * width + z * width * height``.
    Grid-shaped arrays are laid out with axes (x, y, z, ...), populations
    as (width, height, depth, Q).
    """
    width: int
    height: int
    depth: int

    def __post_init__(self):
        for name in ("width", "height", "depth"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, Integral):
                raise ConfigurationError(
                    f"The grid {name} must be an integer, but got {value!r} instead."
                )
            if value <= 0:
                raise ConfigurationError(
                    f"The grid {name} must be positive, but got {value} instead."
                )

    @property
    def shape(self) -> Tuple[int, int, int]:
        return (self.width, self.height, self.depth)

    def dimensions(self) -> Tuple[int, int, int]:
        return self.shape

    def node_count(self) -> int:
        return self.width * self.height * self.depth

    def contains(self, x: int, y: int, z: int) -> bool:
        return 0 <= x < self.width and 0 <= y < self.height and 0 <= z < self.depth

    def linear_index(self, x: IndexLike, y: IndexLike, z: IndexLike) -> IndexLike:
        if all(isinstance(c, Integral) for c in (x, y, z)) and not self.contains(x, y, z):
            raise IndexError(f"Node ({x}, {y}, {z}) is outside of grid {self.shape}.")
        return x + y * self.width + z * self.width * self.height

    def coordinates(self, index: IndexLike) -> Tuple[IndexLike, IndexLike, IndexLike]:
        if isinstance(index, Integral) and not 0 <= index < self.node_count():
            raise IndexError(
                f"Node index {index} is outside of [0, {self.node_count()})."
            )
        x = index % self.width
        y = (index // self.width) % self.height
        z = index // (self.width * self.height)
        return x, y, z

    @staticmethod
    def population_index(node: IndexLike, i: IndexLike, q: int = 27) -> IndexLike:
        return node * q + i

    def meshgrid(self) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        return np.meshgrid(
            np.arange(self.width),
            np.arange(self.height),
            np.arange(self.depth),
            indexing="ij",
        )

    def to_linear(self, field: chex.Array) -> chex.Array:
        """Flattens a grid-shaped array (W, H, D, ...) into linear node order.

        Trailing axes are kept, e.g. a (W, H, D, 3) velocity field becomes (N, 3).
        """
        if tuple(field.shape[:3]) != self.shape:
            raise ValueError(
                f"Expected an array of shape {self.shape} + (...), got {field.shape}."
            )
        trailing = tuple(field.shape[3:])
        axes = (2, 1, 0) + tuple(range(3, field.ndim))
        return jnp.transpose(field, axes).reshape((self.node_count(),) + trailing)

    def from_linear(self, flat: chex.Array) -> chex.Array:
        if flat.shape[0] != self.node_count():
            raise ValueError(
                f"Expected {self.node_count()} nodes along the first axis, got {flat.shape[0]}."
            )
        trailing = tuple(flat.shape[1:])
        field = jnp.reshape(flat, (self.depth, self.height, self.width) + trailing)
        axes = (2, 1, 0) + tuple(range(3, field.ndim))
        return jnp.transpose(field, axes)
