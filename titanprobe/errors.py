# titanprobe/errors.py


class TitanProbeError(Exception):
    """Base class for every error raised by the package."""


class ConfigurationError(TitanProbeError, ValueError):
    """Invalid parameters or inputs supplied by the caller."""


class BodyNotFoundError(ConfigurationError):
    """A required body is missing from the body table."""

    def __init__(self, name):
        super().__init__(f"Body {name!r} not found in body table")
        self.name = name


class GeneError(ConfigurationError):
    """A gene vector has the wrong shape or non-finite entries."""


class InsufficientFuelError(TitanProbeError, ValueError):
    """A burn asks for more delta-V than the remaining fuel can give."""


class SimulationError(TitanProbeError, RuntimeError):
    """Numerical failure: non-convergence, truncated run, non-finite state."""
