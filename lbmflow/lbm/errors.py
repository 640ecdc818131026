__all__ = ["LBMError", "ConfigurationError", "NumericalInstabilityError"]


class LBMError(Exception):
    """Base class for errors raised by the solver."""


class ConfigurationError(LBMError, ValueError):
    """Invalid simulation setup: dimensions, relaxation time, boundary tags.

    Raised while constructing a simulation, before anything is published.
    """


class NumericalInstabilityError(LBMError, RuntimeError):
    """Non-finite populations or a velocity runaway detected after a frame."""

    def __init__(self, message: str, frame: int = None, bad_nodes: int = None):
        super().__init__(message)
        self.frame = frame
        self.bad_nodes = bad_nodes
