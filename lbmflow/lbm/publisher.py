import logging
from collections import namedtuple

import chex
import numpy as np

__all__ = ["FramePublisher", "Snapshot"]

logger = logging.getLogger(__name__)

Snapshot = namedtuple("Snapshot", ("frame", "velocity", "density"))

# What readers load: the frame, the slot holding it, and the slot sequence
# number the frame was written under.
_Handle = namedtuple("_Handle", ("frame", "slot", "sequence"))


def _read_only(array: np.ndarray) -> np.ndarray:
    array.flags.writeable = False
    return array


class FramePublisher:
    """Hands the latest macroscopic fields to any number of reader threads.

    Two buffers per field are preallocated. A frame is written into the slot
    that is not published, then the handle is replaced by a single attribute
    assignment. Each slot carries a sequence number that is odd while the
    slot is being written and even otherwise (a seqlock). ``read`` copies the
    published slot and checks that its sequence number did not move during
    the copy, retrying otherwise, so a reader never returns a frame mixed
    with a later one and never blocks the writer.
    """

    def __init__(self, node_count: int, dim: int = 3, dtype=np.float32):
        self._velocity = [np.zeros((node_count, dim), dtype=dtype) for _ in range(2)]
        self._density = [np.zeros((node_count,), dtype=dtype) for _ in range(2)]
        self._sequence = [0, 0]
        self._slot = 0
        self._handle = _Handle(0, 0, 0)

    @property
    def frame(self) -> int:
        return self._handle.frame

    def read(self) -> Snapshot:
        """Copies the latest complete frame.

        Returns:
            Snapshot: The frame number with read-only copies of its velocity
                (N, dim) and density (N,).
        """
        while True:
            handle = self._handle
            velocity = self._velocity[handle.slot].copy()
            density = self._density[handle.slot].copy()
            if self._sequence[handle.slot] == handle.sequence:
                return Snapshot(handle.frame, _read_only(velocity), _read_only(density))
            logger.debug("Frame %d was overwritten while reading, retrying", handle.frame)

    def latest(self) -> Snapshot:
        return self.read()

    def velocity(self) -> np.ndarray:
        return self.read().velocity

    def density(self) -> np.ndarray:
        return self.read().density

    def publish(self, velocity: chex.Array, density: chex.Array) -> int:
        """Copies one frame into the unpublished slot and makes it visible.

        Args:
            velocity (chex.Array): Velocities in linear node order, (N, 3).
            density (chex.Array): Densities in linear node order, (N,) or (N, 1).

        Returns:
            int: The number of the newly published frame.
        """
        slot = 1 - self._slot
        velocity = np.asarray(velocity)
        density = np.asarray(density).reshape(-1)
        if velocity.shape != self._velocity[slot].shape:
            raise ValueError(
                f"Expected velocities of shape {self._velocity[slot].shape}, "
                f"but got {velocity.shape} instead."
            )
        if density.shape != self._density[slot].shape:
            raise ValueError(
                f"Expected densities of shape {self._density[slot].shape}, "
                f"but got {density.shape} instead."
            )

        self._sequence[slot] += 1
        np.copyto(self._velocity[slot], velocity)
        np.copyto(self._density[slot], density)
        self._sequence[slot] += 1

        frame = self._handle.frame + 1
        self._slot = slot
        self._handle = _Handle(frame, slot, self._sequence[slot])
        logger.debug("Published frame %d from slot %d", frame, slot)
        return frame
