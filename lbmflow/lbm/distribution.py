from typing import Optional

import chex
import jax
from jax import numpy as jnp

from lbmflow.lbm.grid import Grid
from lbmflow.lbm.lattice import Lattice

__all__ = ["DistributionField"]


@chex.dataclass
class DistributionField:
    """The two population generations of a simulation.

    ``current`` (generation A) holds the post-collision populations a frame
    starts from, ``streamed`` (generation B) the post-streaming populations
    the macroscopic fields and the collision step read. A frame reads one
    generation and writes the other, never both at once.
    """

    current: chex.Array
    streamed: chex.Array

    @classmethod
    def initialize(
        cls,
        lattice: Lattice,
        grid: Grid,
        perturbation: float = 0.0,
        key: Optional[jax.random.PRNGKey] = None,
    ) -> "DistributionField":
        """Every population set to its lattice weight, optionally perturbed by a
        relative uniform noise of the given amplitude to break symmetries.
        """
        shape = grid.shape + (lattice.Q,)
        df = jnp.broadcast_to(lattice.w, shape)
        if perturbation:
            if key is None:
                key = jax.random.PRNGKey(0)
            noise = jax.random.uniform(key, shape=shape, minval=-1.0, maxval=1.0)
            df = df * (1.0 + perturbation * noise)
        df = jnp.array(df)
        return cls(current=df, streamed=jnp.zeros_like(df))

    @property
    def shape(self):
        return self.current.shape

    def set_current(self, df: chex.Array) -> None:
        chex.assert_shape(df, self.shape)
        self.current = jnp.asarray(df, dtype=self.current.dtype)

    def commit(self, streamed: chex.Array, collided: chex.Array) -> None:
        """Stores the generations produced by one frame."""
        chex.assert_equal_shape([streamed, collided, self.current])
        self.streamed = streamed
        self.current = collided

    def total_mass(self) -> float:
        return float(jnp.sum(self.current))
