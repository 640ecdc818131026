from collections import namedtuple
from functools import partial
from typing import Sequence, Type

import chex
import jax
from jax import numpy as jnp

from lbmflow.lbm.stencil import Stencil

__all__ = ["Lattice", "FluidLattice"]


class Lattice:
    Macroscopics: namedtuple
    name: str
    _stencil: Type[Stencil]

    def __init__(self, stencil: Type[Stencil], name: str):
        self._stencil = stencil
        self.name = name

    @property
    def stencil(self):
        return self._stencil

    def __getattr__(self, name):
        try:
            return getattr(self.stencil, name)
        except AttributeError:
            raise AttributeError(
                f"'{type(self).__name__}' object has no attribute '{name}'"
            )

    @partial(jax.jit, static_argnums=(0, 2))
    def get_moment(self, dist_function: chex.Array, order: int) -> chex.Array:
        return self.stencil.get_moment(dist_function, order)


class FluidLattice(Lattice):
    Macroscopics = namedtuple("FluidMacroscopics", ("rho", "u"))

    def __init__(self, stencil: Type[Stencil], name: str = "FluidLattice"):
        super().__init__(stencil, name)

    @partial(jax.jit, static_argnums=(0,))
    def equilibrium(self, rho: chex.Array, u: chex.Array) -> chex.Array:
        """Second order equilibrium distribution.

        Args:
            rho (chex.Array): Density, with a trailing axis of size 1.
            u (chex.Array): Velocity, with a trailing axis of size D.

        Returns:
            chex.Array: The equilibrium populations, with a trailing axis of size Q.
        """
        u_norm2 = jnp.sum(u**2, axis=-1, keepdims=True)
        e_dot_u = jnp.einsum("dQ,...d->...Q", self.e, u)

        cs = self.cs

        df_eq = (
            rho
            * self.w
            * (
                1
                + e_dot_u / cs**2
                + 0.5 * e_dot_u**2 / cs**4
                - 0.5 * u_norm2 / cs**2
            )
        )

        return df_eq

    @partial(jax.jit, static_argnums=(0,))
    def clamp_velocity(self, u: chex.Array) -> chex.Array:
        """Rescales velocities faster than the lattice speed of sound down to it."""
        norm = jnp.linalg.norm(u, axis=-1, ord=2, keepdims=True)
        safe_norm = jnp.where(norm > 0, norm, 1.0)
        scale = jnp.where(norm > self.cs, self.cs / safe_norm, 1.0)
        return u * scale

    @partial(jax.jit, static_argnums=(0,))
    def get_macroscopics(self, df: chex.Array) -> Sequence[chex.Array]:
        """Density and velocity of every node.

        The density sums absolute populations so that transient negative
        values cannot drive it to zero. Nodes with zero density get zero
        velocity, and velocities are clamped to the speed of sound.
        """
        rho = self.get_moment(jnp.abs(df), 0)[..., jnp.newaxis]
        momentum = self.get_moment(df, 1)
        safe_rho = jnp.where(rho > 0, rho, 1.0)
        u = jnp.where(rho > 0, momentum / safe_rho, 0.0)
        return self.Macroscopics(rho, self.clamp_velocity(u))
