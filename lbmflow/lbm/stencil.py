import itertools
import string
from functools import partial

import chex
import jax
import numpy as np

from jax import numpy as jnp

__all__ = ["Stencil", "D3Q27"]


def _d3q27_velocities() -> np.ndarray:
    # Rest direction first
    return np.array(list(itertools.product([0, -1, 1], repeat=3)), dtype=np.int32).T


def _d3q27_weights(e: np.ndarray) -> np.ndarray:
    weights_by_norm = {0: 8.0 / 27, 1: 2.0 / 27, 2: 1.0 / 54, 3: 1.0 / 216}
    return np.array([weights_by_norm[int(n)] for n in np.abs(e).sum(axis=0)])


def _opposite(e: np.ndarray) -> np.ndarray:
    """Index map i -> j such that e[:, j] == -e[:, i]."""
    lookup = {tuple(e[:, i]): i for i in range(e.shape[1])}
    return np.array([lookup[tuple(-e[:, i])] for i in range(e.shape[1])])


class Stencil:
    offsets: np.ndarray = np.zeros((0, 0), dtype=np.int32)
    e: chex.Array = jnp.array([])
    w: chex.Array = jnp.array([])
    opposite: chex.Array = jnp.array([])
    cs: float = 0.0
    D: int = 0
    Q: int = 0

    @classmethod
    def shift(cls, i: int) -> tuple:
        """Integer offset of direction i, usable as a static roll shift."""
        return tuple(int(c) for c in cls.offsets[:, i])

    @classmethod
    @partial(jax.jit, static_argnums=(0, 2))
    def get_moment(cls, dist_function: chex.Array, order: int) -> chex.Array:
        """Returns the moment of the distribution function.
        """
        dim = len(dist_function.shape) - 1

        # Create the einsum litteral
        lowercase = string.ascii_lowercase
        uppercase = string.ascii_uppercase

        e_litteral = "".join([f",{lowercase[i%26]}Q" for i in range(order)])
        d_litteral = "".join([f"{uppercase[i%26]}" for i in range(dim)])

        output_litteral = "".join([f"{lowercase[i%26]}" for i in range(order)])

        # The einsum litteral is of the form: "ABC,Qa,Qb->ABCab"
        einsum_litteral = d_litteral + "Q" + e_litteral + "->" + d_litteral + output_litteral

        stacked_e = [cls.e] * order
        return jnp.einsum(einsum_litteral, dist_function, *stacked_e)


_E = _d3q27_velocities()


class D3Q27(Stencil):
    r"""
    Stencil: D3Q27

    Every combination of {-1, 0, 1} along x, y and z. Direction 0 is the
    rest population, followed by the 26 moving directions.

        weights: 8/27 (rest), 2/27 (faces), 1/54 (edges), 1/216 (corners)
    """
    offsets = _E
    e = jnp.array(_E)
    w = jnp.array(_d3q27_weights(_E))
    opposite = jnp.array(_opposite(_E))
    cs = float(1 / np.sqrt(3))
    D = 3
    Q = 27
