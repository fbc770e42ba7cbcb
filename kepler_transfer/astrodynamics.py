"""
Position and velocity of bodies on planar Keplerian orbits.

Positions are expressed in the parent's reference frame: the orbit lies in the
x-y plane with the parent at the focus, and bodies move counter-clockwise
when seen from +z.
"""
import math

import jax
import jax.numpy as jnp
from jax import jit
import numpy as np

from .cartesian_state import CartesianState
from .constants import TWO_PI, KEPLER_TOL, KEPLER_MAX_ITER
from .exceptions import ConvergenceError, InvalidOrbitError
from .kepler import solve_kepler, solve_eccentric_anomaly, eccentric_to_true_anomaly
from .orbit import Orbit, validate_orbit, validate_gravitational_parameter


def orbital_period(semi_major_axis, gravitational_parameter):
    """
    Orbital period from Kepler's third law: T = 2*pi*sqrt(a^3/mu).
    """
    return TWO_PI * np.sqrt(semi_major_axis**3 / gravitational_parameter)


def mean_motion(period):
    """Average angular speed n = 2*pi / T."""
    return TWO_PI / period


def mean_anomaly_at(orbit: Orbit, gravitational_parameter: float, time: float) -> float:
    """
    Mean anomaly of ``orbit`` at ``time``, wrapped to [0, 2*pi).

    The argument of periapsis is folded into the anomaly clock:
    M(t) = initial_mean_anomaly + argument_of_periapsis + n * t.
    """
    n = mean_motion(orbital_period(orbit.semi_major_axis, gravitational_parameter))
    M = orbit.initial_mean_anomaly + orbit.argument_of_periapsis + n * time
    return float(np.mod(M, TWO_PI))


def initial_mean_anomaly_for(mean_anomaly: float, argument_of_periapsis: float,
                             n: float, time: float) -> float:
    """
    Back-solve the initial mean anomaly that puts an orbit at ``mean_anomaly`` at ``time``.

    This is the inverse of mean_anomaly_at for an orbit with mean motion ``n``.
    """
    return float(np.mod(mean_anomaly - argument_of_periapsis - n * time, TWO_PI))


def true_anomaly_at(orbit: Orbit, gravitational_parameter: float, time: float,
                    tol: float = KEPLER_TOL, max_iter: int = KEPLER_MAX_ITER) -> float:
    """True anomaly of ``orbit`` at ``time`` in [0, 2*pi)."""
    M = mean_anomaly_at(orbit, gravitational_parameter, time)
    E = solve_eccentric_anomaly(orbit.eccentricity, M, tol=tol, max_iter=max_iter)
    return float(eccentric_to_true_anomaly(orbit.eccentricity, E))


def radius_at_true_anomaly(orbit: Orbit, true_anomaly: float) -> float:
    """Distance from the focus, r = p / (1 + e*cos(nu))."""
    return orbit.semi_latus_rectum / (1.0 + orbit.eccentricity * math.cos(true_anomaly))


def state_from_true_anomaly(orbit: Orbit, gravitational_parameter: float,
                            true_anomaly: float) -> CartesianState:
    """
    Cartesian state of a body at a given true anomaly on ``orbit``.

    The position sits at polar angle nu + omega; the velocity is the perifocal
    velocity sqrt(mu/p) * (-sin(nu), e + cos(nu)) rotated by omega.
    """
    e = orbit.eccentricity
    omega = orbit.argument_of_periapsis
    p = orbit.semi_latus_rectum

    r_mag = p / (1.0 + e * math.cos(true_anomaly))
    theta = true_anomaly + omega
    h = math.sqrt(gravitational_parameter / p)

    r = jnp.array([r_mag * math.cos(theta), r_mag * math.sin(theta), 0.0])
    v = jnp.array([
        -h * (math.sin(theta) + e * math.sin(omega)),
        h * (math.cos(theta) + e * math.cos(omega)),
        0.0
    ])
    return CartesianState(r=r, v=v)


def state_at_time(orbit: Orbit, gravitational_parameter: float, time: float,
                  tol: float = KEPLER_TOL, max_iter: int = KEPLER_MAX_ITER) -> CartesianState:
    """
    Convert orbital elements to Cartesian state at time t.

    A fixed orbit (semi_major_axis == 0) is at rest at the origin whatever its
    other elements or the gravitational parameter are.

    Args:
        orbit: Orbital elements of the body
        gravitational_parameter: mu of the parent body
        time: Absolute simulation time
        tol: Kepler solver tolerance
        max_iter: Kepler solver iteration budget

    Returns:
        CartesianState relative to the parent

    Raises:
        InvalidOrbitError: If the elements, mu or time are outside their domain.
        ConvergenceError: If Kepler's equation cannot be solved.
    """
    if orbit.semi_major_axis == 0.0:
        return CartesianState(r=jnp.zeros(3), v=jnp.zeros(3))

    validate_orbit(orbit)
    mu = validate_gravitational_parameter(gravitational_parameter)
    if not math.isfinite(time):
        raise InvalidOrbitError(f"time must be finite, got {time}")

    nu = true_anomaly_at(orbit, mu, time, tol=tol, max_iter=max_iter)
    return state_from_true_anomaly(orbit, mu, nu)


def position_at_time(orbit: Orbit, gravitational_parameter: float, time: float,
                     tol: float = KEPLER_TOL, max_iter: int = KEPLER_MAX_ITER) -> jnp.ndarray:
    """
    Position [x, y, z] of a body on ``orbit`` at ``time``, relative to its parent.

    This is the per-tick entry point used by a host after maneuvers have been applied.
    """
    if orbit.semi_major_axis == 0.0:
        return jnp.zeros(3)
    return state_at_time(orbit, gravitational_parameter, time, tol=tol, max_iter=max_iter).r


@jit
def _positions_kernel(a, e, omega, M0, mu, times, tol, max_iter):
    n = jnp.sqrt(mu / a**3)
    M = jnp.mod(M0 + omega + n * times, TWO_PI)

    E, _, step = jax.vmap(solve_kepler, in_axes=(0, None, None, None))(M, e, tol, max_iter)

    nu = eccentric_to_true_anomaly(e, E)
    r_mag = a * (1.0 - e * jnp.cos(E))
    theta = nu + omega

    positions = jnp.stack([r_mag * jnp.cos(theta), r_mag * jnp.sin(theta), jnp.zeros_like(theta)], axis=1)
    return positions, step


def positions_at_times(orbit: Orbit, gravitational_parameter: float, times,
                       tol: float = KEPLER_TOL, max_iter: int = KEPLER_MAX_ITER) -> jnp.ndarray:
    """
    Vectorized positions of a body at many times.

    Parameters
    ----------
    orbit : Orbit
        Orbital elements of the body
    gravitational_parameter : float
        mu of the parent body
    times : array_like
        Absolute simulation times
    tol, max_iter : optional
        Kepler solver settings

    Returns
    -------
    positions : jnp.ndarray
        Array of shape (n_times, 3)
    """
    times = jnp.atleast_1d(jnp.asarray(times, dtype=float))
    if orbit.semi_major_axis == 0.0:
        return jnp.zeros((times.shape[0], 3))

    validate_orbit(orbit)
    mu = validate_gravitational_parameter(gravitational_parameter)

    positions, step = _positions_kernel(
        orbit.semi_major_axis, orbit.eccentricity, orbit.argument_of_periapsis,
        orbit.initial_mean_anomaly, mu, times, tol, max_iter
    )
    if not bool(jnp.all(jnp.abs(step) <= tol)) or not bool(jnp.all(jnp.isfinite(positions))):
        raise ConvergenceError(f"Kepler's equation did not converge for every time sample of {orbit}")
    return positions


def rephase_orbit(orbit: Orbit, old_gravitational_parameter: float,
                  new_gravitational_parameter: float, time: float) -> Orbit:
    """
    Keep a body in place when its parent's gravitational parameter changes.

    Changing mu changes the mean motion, which would make the body jump along
    its orbit. The returned orbit has an initial mean anomaly chosen so that
    the mean anomaly at ``time`` is the same under the new mu as it was under
    the old one.
    """
    if orbit.semi_major_axis == 0.0:
        return orbit
    validate_orbit(orbit)
    old_mu = validate_gravitational_parameter(old_gravitational_parameter)
    new_mu = validate_gravitational_parameter(new_gravitational_parameter)

    M = mean_anomaly_at(orbit, old_mu, time)
    n_new = mean_motion(orbital_period(orbit.semi_major_axis, new_mu))
    return orbit._replace(
        initial_mean_anomaly=initial_mean_anomaly_for(M, orbit.argument_of_periapsis, n_new, time)
    )


# ---------------------------------------------------------------------------
# Ellipse geometry for hosts that draw orbits
# ---------------------------------------------------------------------------


def semi_minor_axis(orbit: Orbit) -> float:
    return orbit.semi_major_axis * math.sqrt(1.0 - orbit.eccentricity**2)


def ellipse_center(orbit: Orbit) -> jnp.ndarray:
    """
    Geometric centre of the orbit ellipse relative to the focus.

    Orbits are focus-centred; the centre lies a*e away from the focus, on the
    side opposite periapsis.
    """
    offset = orbit.semi_major_axis * orbit.eccentricity
    omega = orbit.argument_of_periapsis
    return jnp.array([-offset * math.cos(omega), -offset * math.sin(omega), 0.0])


def orbit_curve(orbit: Orbit, gravitational_parameter: float, num_points: int = 64) -> jnp.ndarray:
    """Positions over one full period, sampled uniformly in time. Shape (num_points, 3)."""
    if orbit.semi_major_axis == 0.0:
        return jnp.zeros((num_points, 3))
    mu = validate_gravitational_parameter(gravitational_parameter)
    period = orbital_period(orbit.semi_major_axis, mu)
    times = np.linspace(0.0, period, num_points, endpoint=False)
    return positions_at_times(orbit, mu, times)
