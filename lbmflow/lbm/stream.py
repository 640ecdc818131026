from functools import partial

import chex
import jax

from jax import numpy as jnp

from lbmflow.lbm.lattice import Lattice

__all__ = ["stream"]


@partial(jax.jit, static_argnums=(0,))
def stream(lattice: Lattice, df: chex.Array) -> chex.Array:
    """This function advects every population one node along its lattice
    direction. Node x receives, in slot i, the population that sat in slot i
    of node x - e_i. Source lookups outside of the grid wrap around
    (periodic edges); boundary nodes overwrite what wrapped in during the
    collision step.

    Args:
        lattice (Lattice): The lattice on which the streaming is performed.
        df (chex.Array,): The distribution function to be streamed, of shape
            (width, height, depth, Q). It is left untouched.

    Returns:
        Array: The streamed distribution function.
    """
    axes = tuple(range(lattice.D))
    streamed = [df[..., 0]]
    for i in range(1, lattice.Q):
        streamed.append(
            jnp.roll(
                a=df[..., i],
                shift=lattice.stencil.shift(i),
                axis=axes,
            )
        )
    return jnp.stack(streamed, axis=-1)
