"""
Exceptions raised by the ABP simulator.

Protocol-level failures (lost or corrupted frames, stale ACKs) are
ordinary simulation data and never raise.
"""


class SimulationError(Exception):
    """Base class for simulator errors."""


class ConfigurationError(SimulationError, ValueError):
    """Invalid simulation parameters."""


class EventOrderError(SimulationError):
    """An event or clock update would move simulated time backwards."""


class NoProgressError(SimulationError, RuntimeError):
    """
    The run hit its idle-round or simulated-time ceiling.

    Attributes:
        result: Partial SimulationResult at the moment the run was stopped
    """

    def __init__(self, message: str, result=None):
        super().__init__(message)
        self.result = result
