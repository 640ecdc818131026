import logging
from typing import Sequence

import chex
from jax import numpy as jnp

from lbmflow.lbm.errors import NumericalInstabilityError

__all__ = ["check_stability"]

logger = logging.getLogger(__name__)

# Slack on the clamped speed for float32 round-off
SPEED_TOLERANCE = 1e-4


def check_stability(
    frame: int,
    df: chex.Array,
    fluid_state: Sequence[chex.Array],
    cs: float,
) -> None:
    """Raises NumericalInstabilityError if a frame produced unusable values.

    Args:
        frame (int): The frame being checked, used in the error message.
        df (chex.Array): The post-collision distribution function.
        fluid_state (Sequence[chex.Array]): The macroscopic fields of the frame.
        cs (float): The lattice speed of sound, upper bound of the clamped speed.
    """
    try:
        chex.assert_tree_all_finite((df, fluid_state.rho, fluid_state.u))
    except AssertionError as err:
        bad_nodes = int(jnp.sum(~jnp.all(jnp.isfinite(df), axis=-1)))
        logger.error("Frame %d: %d nodes hold non-finite populations", frame, bad_nodes)
        raise NumericalInstabilityError(
            f"Non-finite values in frame {frame} ({bad_nodes} nodes affected).",
            frame=frame,
            bad_nodes=bad_nodes,
        ) from err

    speed = jnp.linalg.norm(fluid_state.u, axis=-1)
    runaway = speed > cs * (1 + SPEED_TOLERANCE)
    if bool(jnp.any(runaway)):
        bad_nodes = int(jnp.sum(runaway))
        logger.error(
            "Frame %d: speed %.4f exceeds the speed of sound %.4f",
            frame,
            float(jnp.max(speed)),
            cs,
        )
        raise NumericalInstabilityError(
            f"Velocity runaway in frame {frame} ({bad_nodes} nodes faster than cs).",
            frame=frame,
            bad_nodes=bad_nodes,
        )
