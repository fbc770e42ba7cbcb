"""
Exceptions raised by the orbit and transfer computations.

Every failure is local to a single computation (one body, one planning call).
"""


class OrbitError(Exception):
    """Base class for orbit and transfer computation failures."""


class InvalidOrbitError(OrbitError, ValueError):
    """Raised when orbital elements or a gravitational parameter are outside their valid domain."""


class ConvergenceError(OrbitError):
    """Raised when an iterative solve does not settle within its iteration budget."""


class TransferInfeasibleError(OrbitError):
    """Raised when no valid transfer orbit exists for the requested maneuver."""


class TransferConvergenceError(TransferInfeasibleError, ConvergenceError):
    """Raised when the transfer root search brackets a solution but fails to converge on it."""
