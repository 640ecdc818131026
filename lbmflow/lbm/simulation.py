import logging
from dataclasses import dataclass
from functools import partial
from typing import Callable, Optional, Sequence, Tuple, Union

import chex
import jax
import numpy as np

from jax import jit
from jax import numpy as jnp

from lbmflow.lbm.boundary import BoundaryClassification, classify, get_preset
from lbmflow.lbm.collisions import collide
from lbmflow.lbm.diagnostics import check_stability
from lbmflow.lbm.distribution import DistributionField
from lbmflow.lbm.errors import ConfigurationError
from lbmflow.lbm.grid import Grid
from lbmflow.lbm.lattice import FluidLattice
from lbmflow.lbm.publisher import FramePublisher, Snapshot
from lbmflow.lbm.stencil import D3Q27
from lbmflow.lbm.stream import stream

__all__ = ["SimulationConfig", "Simulation"]

logger = logging.getLogger(__name__)

BoundarySource = Union[str, Callable, np.ndarray, chex.Array]

# Relaxation times closer than this to 0.5 are accepted but rarely stable
TAU_STABILITY_MARGIN = 1e-3


@dataclass
class SimulationConfig:
    """Construction parameters of a simulation.

    The physical parameters (SI units) only serve to derive the relaxation
    time. A ``tau`` given explicitly takes precedence over the derived one.
    """
    shape: Sequence[int]
    density: float = 1.225
    viscosity: float = 1.8e-5
    speed_of_sound: float = 343.0
    node_spacing: float = 0.02
    tau: Optional[float] = None
    inflow_velocity: Sequence[float] = (0.05, 0.0, 0.0)
    boundary: str = "fluid"
    obstacle_radius: Optional[float] = None
    perturbation: float = 0.0
    seed: int = 0
    check_stability: bool = True

    def __post_init__(self):
        if len(self.shape) != 3:
            raise ConfigurationError(
                f"The grid shape must have 3 dimensions, but got {tuple(self.shape)} instead."
            )
        Grid(*self.shape)
        for name in ("density", "viscosity", "speed_of_sound", "node_spacing"):
            value = getattr(self, name)
            if not value > 0:
                raise ConfigurationError(
                    f"The {name} must be positive, but got {value} instead."
                )
        if len(self.inflow_velocity) != 3:
            raise ConfigurationError(
                f"The inflow velocity must have 3 components, "
                f"but got {tuple(self.inflow_velocity)} instead."
            )
        if np.linalg.norm(self.inflow_velocity) > D3Q27.cs:
            raise ConfigurationError(
                f"The inflow speed must not exceed the lattice speed of sound "
                f"{D3Q27.cs:.4f}, but got {np.linalg.norm(self.inflow_velocity):.4f}."
            )
        if self.obstacle_radius is not None and self.obstacle_radius <= 0:
            raise ConfigurationError(
                f"The obstacle radius must be positive, but got {self.obstacle_radius}."
            )
        if self.perturbation < 0:
            raise ConfigurationError(
                f"The perturbation amplitude must be non-negative, but got {self.perturbation}."
            )
        self.relaxation_time()

    @property
    def time_step(self) -> float:
        """Physical duration of one frame in seconds."""
        return self.node_spacing * D3Q27.cs / self.speed_of_sound

    def relaxation_time(self) -> float:
        if self.tau is not None:
            tau = self.tau
        else:
            kinematic_viscosity = self.viscosity / self.density
            nu = kinematic_viscosity * self.time_step / self.node_spacing**2
            tau = nu / D3Q27.cs**2 + 0.5

        if not tau > 0.5:
            raise ConfigurationError(
                f"The relaxation time must be greater than 0.5 for stability, "
                f"but got {tau} instead."
            )
        return float(tau)


class Simulation:
    """D3Q27 BGK lattice Boltzmann simulation.

    Every call to ``advance`` computes one frame: streaming, macroscopic
    fields, collision, then publication of the macroscopic fields to readers.
    """

    def __init__(
        self,
        config: SimulationConfig,
        boundary: Optional[BoundarySource] = None,
    ) -> None:
        self.config = config
        self.grid = Grid(*config.shape)
        self.lattice = FluidLattice(D3Q27)
        self.tau = config.relaxation_time()
        self.omega = 1.0 / self.tau

        if boundary is None:
            boundary = get_preset(config.boundary, radius=config.obstacle_radius)
        self.classification = boundary

        self.inflow_df = self.lattice.equilibrium(
            jnp.ones((1,)), jnp.asarray(config.inflow_velocity, dtype=jnp.float32)
        )

        self.distributions = DistributionField.initialize(
            self.lattice,
            self.grid,
            perturbation=config.perturbation,
            key=jax.random.PRNGKey(config.seed),
        )
        self.publisher = FramePublisher(self.grid.node_count(), dim=self.lattice.D)
        self.fluid_state = self.lattice.get_macroscopics(self.distributions.current)

        logger.info(
            "Running simulation on %s: grid %s, tau %.6f",
            jax.devices()[0],
            self.grid.shape,
            self.tau,
        )
        if self.tau - 0.5 < TAU_STABILITY_MARGIN:
            logger.warning(
                "tau %.7f is within %g of 0.5, expect the simulation to become unstable",
                self.tau,
                TAU_STABILITY_MARGIN,
            )
        logger.info(
            "Boundary classification: %s",
            {t.name: n for t, n in self.classification.counts().items()},
        )

    def __getattr__(self, name):
        if name == "grid":
            raise AttributeError(name)
        try:
            return getattr(self.grid, name)
        except AttributeError:
            raise AttributeError(
                f"'{type(self).__name__}' object has no attribute {name}"
            )

    @property
    def classification(self) -> BoundaryClassification:
        return self._classification

    @classification.setter
    def classification(self, boundary) -> None:
        """Classifies every node again, rejecting unknown tags."""
        if isinstance(boundary, BoundaryClassification):
            boundary = boundary.tags
        self._classification = classify(self.grid, boundary)

    @property
    def frame(self) -> int:
        return self.publisher.frame

    @property
    def populations(self) -> chex.Array:
        return self.distributions.current

    def set_populations(self, df: chex.Array) -> None:
        """Replaces the populations the next frame starts from."""
        self.distributions.set_current(df)

    def dimensions(self) -> Tuple[int, int, int]:
        return self.grid.dimensions()

    def node_count(self) -> int:
        return self.grid.node_count()

    def snapshot(self) -> Snapshot:
        return self.publisher.read()

    def current_velocity_snapshot(self) -> np.ndarray:
        return self.publisher.velocity()

    def current_density_snapshot(self) -> np.ndarray:
        return self.publisher.density()

    def advance(self) -> None:
        frame = self.frame + 1
        streamed, collided, fluid_state, velocity, density = self._step(
            self.distributions.current, self.classification.tags
        )

        if self.config.check_stability:
            check_stability(frame, collided, fluid_state, self.lattice.cs)

        self.distributions.commit(streamed, collided)
        self.fluid_state = fluid_state
        self.publisher.publish(velocity, density)
        logger.debug("Frame %d done", frame)

    def run(self, steps: int) -> None:
        for _ in range(steps):
            self.advance()

    @partial(jit, static_argnums=(0))
    def _step(self, df: chex.Array, tags: chex.Array):
        streamed = stream(self.lattice, df)
        fluid_state = self.lattice.get_macroscopics(streamed)
        collided = collide(
            self.lattice, streamed, fluid_state, tags, self.omega, self.inflow_df
        )
        velocity = self.grid.to_linear(fluid_state.u)
        density = self.grid.to_linear(fluid_state.rho[..., 0])
        return streamed, collided, fluid_state, velocity, density
