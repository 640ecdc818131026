from functools import partial
from typing import Sequence

import chex
import jax
from jax import numpy as jnp

from lbmflow.lbm.boundary import BoundaryType
from lbmflow.lbm.lattice import FluidLattice

__all__ = ["collide"]


@partial(jax.jit, static_argnums=(0,))
def collide(
    lattice: FluidLattice,
    df: chex.Array,
    fluid_state: Sequence[chex.Array],
    tags: chex.Array,
    omega: chex.Scalar,
    inflow_df: chex.Array,
) -> chex.Array:
    """Produces the post-collision populations of every node according to its
    boundary tag.

    Args:
        lattice (FluidLattice): The lattice.
        df (chex.Array): The streamed distribution function, (W, H, D, Q).
        fluid_state (Sequence[chex.Array]): Density and velocity computed from df.
        tags (chex.Array): The BoundaryType of every node, (W, H, D).
        omega (chex.Scalar): Inverse relaxation time 1 / tau.
        inflow_df (chex.Array): Populations imposed on in/out-flow nodes, (Q,).

    Returns:
        chex.Array: The new distribution function. Nodes carrying a tag that is
            not a BoundaryType are filled with NaN.
    """
    eq = lattice.equilibrium(fluid_state.rho, fluid_state.u)

    # BGK relaxation
    fluid = df - omega * (df - eq)
    # Bounce back: whatever arrived in slot i leaves through opposite[i]
    reflective = df[..., lattice.opposite]
    inoutflow = jnp.broadcast_to(inflow_df, df.shape)
    sink = jnp.broadcast_to(lattice.w, df.shape)

    tags = jnp.broadcast_to(tags[..., jnp.newaxis], df.shape)
    return jnp.select(
        [
            tags == int(BoundaryType.FLUID),
            tags == int(BoundaryType.REFLECTIVE),
            tags == int(BoundaryType.INOUTFLOW),
            tags == int(BoundaryType.SINK),
        ],
        [fluid, reflective, inoutflow, sink],
        default=jnp.nan,
    )
