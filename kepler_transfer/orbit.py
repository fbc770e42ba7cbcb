"""
Orbital elements representation for bodies moving on planar Keplerian orbits.
"""
import math
from typing import NamedTuple

from .exceptions import InvalidOrbitError


class Orbit(NamedTuple):
    """
    Keplerian orbital elements of a body about its parent.

    Orbits are coplanar with the parent's reference plane. All angular
    quantities are in radians.

    Attributes:
        semi_major_axis: Semi-major axis (length units). Zero denotes a body
            fixed at its parent's position.
        eccentricity: Eccentricity (dimensionless, 0 <= e < 1)
        argument_of_periapsis: Angle from the reference direction to periapsis (radians)
        initial_mean_anomaly: Mean anomaly clock value at time 0 (radians)

    Note:
        The argument of periapsis is folded into the mean anomaly clock:
        M(t) = initial_mean_anomaly + argument_of_periapsis + n * t.
        Every computation in this package uses that convention.
    """
    semi_major_axis: float
    eccentricity: float = 0.0
    argument_of_periapsis: float = 0.0
    initial_mean_anomaly: float = 0.0

    @property
    def is_fixed(self) -> bool:
        """True for the degenerate orbit that pins a body to its parent."""
        return self.semi_major_axis == 0.0

    @property
    def is_circular(self) -> bool:
        return self.eccentricity == 0.0

    @property
    def periapsis(self) -> float:
        return self.semi_major_axis * (1.0 - self.eccentricity)

    @property
    def apoapsis(self) -> float:
        return self.semi_major_axis * (1.0 + self.eccentricity)

    @property
    def semi_latus_rectum(self) -> float:
        return self.semi_major_axis * (1.0 - self.eccentricity**2)


def validate_orbit(orbit: Orbit) -> Orbit:
    """
    Check that an orbit lies inside the supported domain.

    Fixed orbits (semi_major_axis == 0) only need a zero semi-major axis; the
    remaining elements are ignored for them.

    Raises:
        InvalidOrbitError: If the semi-major axis is negative or non-finite,
            the eccentricity is outside [0, 1), or an angle is non-finite.
    """
    a = orbit.semi_major_axis
    if not math.isfinite(a) or a < 0.0:
        raise InvalidOrbitError(f"semi_major_axis must be finite and non-negative, got {a}")
    if a == 0.0:
        return orbit

    e = orbit.eccentricity
    if not math.isfinite(e) or not (0.0 <= e < 1.0):
        raise InvalidOrbitError(f"eccentricity must be in [0, 1) for an elliptical orbit, got {e}")
    if not math.isfinite(orbit.argument_of_periapsis):
        raise InvalidOrbitError(f"argument_of_periapsis must be finite, got {orbit.argument_of_periapsis}")
    if not math.isfinite(orbit.initial_mean_anomaly):
        raise InvalidOrbitError(f"initial_mean_anomaly must be finite, got {orbit.initial_mean_anomaly}")
    return orbit


def validate_gravitational_parameter(gravitational_parameter: float) -> float:
    """Return ``gravitational_parameter`` as a float, rejecting non-positive or non-finite values."""
    mu = float(gravitational_parameter)
    if not math.isfinite(mu) or mu <= 0.0:
        raise InvalidOrbitError(f"gravitational parameter must be positive and finite, got {gravitational_parameter}")
    return mu
