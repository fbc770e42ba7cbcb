"""
Impulsive transfer planning between coplanar orbits that share a focus.

Two algorithms are provided:

* ``hohmann_transfer`` -- the closed-form Hohmann transfer between two circular
  orbits.
* ``tangential_transfer`` -- the general case. The transfer orbit has an apsis
  at the departure point and is tangent to the target orbit at arrival. The
  arrival point is found by a root search on k = r_arrival / a_target, which
  is bounded by the target's periapsis and apoapsis: k in [1 - e, 1 + e].

``plan_transfer`` picks between them.
"""
import logging
import math
from typing import List, NamedTuple, Optional, Tuple

import jax
import jax.numpy as jnp
from jax import jit
import numpy as np

from kepler_transfer.astrodynamics import (
    orbital_period,
    mean_motion,
    true_anomaly_at,
    radius_at_true_anomaly,
    initial_mean_anomaly_for,
)
from kepler_transfer.constants import TWO_PI, TRANSFER_TOL, TRANSFER_MAX_ITER, TRANSFER_SAMPLE_COUNT
from kepler_transfer.exceptions import InvalidOrbitError, TransferInfeasibleError, TransferConvergenceError
from kepler_transfer.kepler import true_to_mean_anomaly
from kepler_transfer.maneuver import Maneuver, Transfer
from kepler_transfer.orbit import Orbit, validate_orbit, validate_gravitational_parameter

logger = logging.getLogger(__name__)

# Relative size below which the transfer eccentricity denominator is treated as zero
_DENOMINATOR_EPS = 1.0e-12

# Two arrival candidates closer than this (in k and in polar angle) are the same point
_DUPLICATE_EPS = 1.0e-8


class _Arrival(NamedTuple):
    """A candidate arrival point on the target orbit."""
    k: float  # arrival radius / target semi-major axis
    target_true_anomaly: float  # true anomaly on the target orbit at arrival (rad)
    sweep: float  # polar angle swept from departure to arrival, in [0, 2*pi)
    transfer_eccentricity: float  # signed: negative when departure is the transfer apoapsis


def plan_transfer(start_orbit: Orbit, target_orbit: Orbit, gravitational_parameter: float,
                  execution_time: float, tol: float = TRANSFER_TOL,
                  max_iter: int = TRANSFER_MAX_ITER,
                  sample_count: int = TRANSFER_SAMPLE_COUNT) -> Transfer:
    """
    Plan the maneuvers that move a body from ``start_orbit`` onto ``target_orbit``.

    Circular-to-circular transfers use the closed-form Hohmann transfer; every
    other combination uses the tangential transfer. The function is pure:
    identical inputs always produce identical transfers.

    Args:
        start_orbit: Orbit the body is on at ``execution_time``
        target_orbit: Orbit to end up on
        gravitational_parameter: mu of the common parent body
        execution_time: Absolute simulation time of the first impulse
        tol: Tangency tolerance of the general-case root search (rad)
        max_iter: Iteration budget of the general-case root search
        sample_count: Grid points per branch used to bracket roots

    Returns:
        Transfer with two maneuvers, or a single zero delta-v maneuver when an
        eccentric start orbit already has the target's size, shape and
        orientation

    Raises:
        InvalidOrbitError: If either orbit, mu or the time is invalid.
        TransferInfeasibleError: If no valid transfer orbit exists.
        TransferConvergenceError: If the root search does not converge.
    """
    if start_orbit.eccentricity == 0.0 and target_orbit.eccentricity == 0.0:
        transfer = hohmann_transfer(start_orbit, target_orbit, gravitational_parameter, execution_time)
    elif start_orbit[:3] == target_orbit[:3]:
        # Already on the target ellipse; the body keeps its own phase
        _check_transfer_inputs(start_orbit, target_orbit, gravitational_parameter, execution_time)
        transfer = Transfer(maneuvers=(Maneuver.create(start_orbit, start_orbit, execution_time),))
    else:
        transfer = tangential_transfer(
            start_orbit, target_orbit, gravitational_parameter, execution_time,
            tol=tol, max_iter=max_iter, sample_count=sample_count
        )

    logger.info(
        "Planned transfer a=%.6g -> a=%.6g: depart t=%.6g, arrive t=%.6g",
        start_orbit.semi_major_axis, target_orbit.semi_major_axis,
        transfer.departure_time, transfer.arrival_time,
    )
    return transfer


def hohmann_transfer(start_orbit: Orbit, target_orbit: Orbit, gravitational_parameter: float,
                     execution_time: float) -> Transfer:
    """
    Hohmann transfer between two circular orbits.

    The transfer ellipse has semi-major axis a_t = (a_start + a_target) / 2.
    When raising the orbit the departure point is the transfer periapsis; when
    lowering it, the transfer apoapsis. The second impulse happens half a
    transfer period later, at the opposite side of the parent, where the body
    is placed on the target orbit.

    Args:
        start_orbit: Circular orbit at departure
        target_orbit: Circular orbit to arrive on
        gravitational_parameter: mu of the parent body
        execution_time: Time of the departure impulse

    Returns:
        Transfer with two maneuvers
    """
    mu = _check_transfer_inputs(start_orbit, target_orbit, gravitational_parameter, execution_time)
    if not (start_orbit.is_circular and target_orbit.is_circular):
        raise InvalidOrbitError("hohmann_transfer requires two circular orbits")

    a_start = start_orbit.semi_major_axis
    a_target = target_orbit.semi_major_axis
    _, departure_angle = _departure_point(start_orbit, mu, execution_time)

    transfer_semi_major_axis = (a_start + a_target) / 2.0
    transfer_eccentricity = abs(1.0 - a_start / transfer_semi_major_axis)
    transfer_period = float(orbital_period(transfer_semi_major_axis, mu))
    transfer_mean_motion = float(mean_motion(transfer_period))

    # Departure is the transfer periapsis when raising, the apoapsis when lowering
    departure_mean_anomaly = 0.0 if a_start < transfer_semi_major_axis else math.pi
    transfer_argument_of_periapsis = float(np.mod(departure_angle - departure_mean_anomaly, TWO_PI))
    transfer_orbit = Orbit(
        semi_major_axis=transfer_semi_major_axis,
        eccentricity=transfer_eccentricity,
        argument_of_periapsis=transfer_argument_of_periapsis,
        initial_mean_anomaly=initial_mean_anomaly_for(
            departure_mean_anomaly, transfer_argument_of_periapsis, transfer_mean_motion, execution_time
        ),
    )

    arrival_time = execution_time + transfer_period / 2.0
    target_mean_motion = float(mean_motion(orbital_period(a_target, mu)))
    arrival_angle = departure_angle + math.pi
    actual_target_orbit = Orbit(
        semi_major_axis=a_target,
        eccentricity=target_orbit.eccentricity,
        argument_of_periapsis=0.0,
        initial_mean_anomaly=initial_mean_anomaly_for(arrival_angle, 0.0, target_mean_motion, arrival_time),
    )

    return Transfer(maneuvers=(
        Maneuver.create(start_orbit, transfer_orbit, execution_time),
        Maneuver.create(transfer_orbit, actual_target_orbit, arrival_time),
    ))


def tangential_transfer(start_orbit: Orbit, target_orbit: Orbit, gravitational_parameter: float,
                        execution_time: float, tol: float = TRANSFER_TOL,
                        max_iter: int = TRANSFER_MAX_ITER,
                        sample_count: int = TRANSFER_SAMPLE_COUNT) -> Transfer:
    """
    Two-impulse transfer that is tangent to the target orbit at arrival.

    The transfer orbit has an apsis at the departure point, so its periapsis
    (or apoapsis) radius is the start orbit's radius at ``execution_time``.
    For a circular target the arrival is directly opposite the departure
    point. For an eccentric target the arrival radius k * a_target is found by
    a root search on the flight-path-angle mismatch between the transfer and
    target orbits; when several tangent arrivals exist the one with the
    shortest time of flight is used.

    Raises:
        TransferInfeasibleError: If no tangent elliptical transfer exists or
            the result is not finite.
        TransferConvergenceError: If a bracketed root cannot be refined within
            ``max_iter`` iterations and no other root is available.
    """
    mu = _check_transfer_inputs(start_orbit, target_orbit, gravitational_parameter, execution_time)
    departure_radius, departure_angle = _departure_point(start_orbit, mu, execution_time)

    if target_orbit.is_circular:
        arrivals = [_opposite_arrival(departure_radius, departure_angle, target_orbit)]
    else:
        arrivals = _tangent_arrivals(departure_radius, departure_angle, target_orbit,
                                     tol=tol, max_iter=max_iter, sample_count=sample_count)

    legs = []
    for arrival in arrivals:
        transfer_orbit, time_of_flight = _transfer_leg(
            departure_radius, departure_angle, arrival, mu, execution_time
        )
        if time_of_flight > 0.0:
            legs.append((time_of_flight, arrival, transfer_orbit))
    if not legs:
        raise TransferInfeasibleError(
            f"No elliptical transfer from a={start_orbit.semi_major_axis} reaches "
            f"a={target_orbit.semi_major_axis}, e={target_orbit.eccentricity}"
        )

    time_of_flight, arrival, transfer_orbit = min(legs, key=lambda leg: leg[0])
    arrival_time = execution_time + time_of_flight

    e_target = target_orbit.eccentricity
    arrival_mean_anomaly = float(true_to_mean_anomaly(e_target, arrival.target_true_anomaly))
    target_mean_motion = float(mean_motion(orbital_period(target_orbit.semi_major_axis, mu)))
    actual_target_orbit = Orbit(
        semi_major_axis=target_orbit.semi_major_axis,
        eccentricity=e_target,
        argument_of_periapsis=target_orbit.argument_of_periapsis,
        initial_mean_anomaly=initial_mean_anomaly_for(
            arrival_mean_anomaly, target_orbit.argument_of_periapsis, target_mean_motion, arrival_time
        ),
    )

    for orbit in (transfer_orbit, actual_target_orbit):
        if not all(math.isfinite(x) for x in orbit):
            raise TransferInfeasibleError(f"Transfer produced non-finite orbital elements: {orbit}")
    if not math.isfinite(arrival_time):
        raise TransferInfeasibleError(f"Transfer produced a non-finite arrival time: {arrival_time}")

    logger.debug(
        "Tangential transfer: k=%.9f, sweep=%.6f rad, transfer a=%.6g e=%.6g, tof=%.6g",
        arrival.k, arrival.sweep, transfer_orbit.semi_major_axis,
        transfer_orbit.eccentricity, time_of_flight,
    )

    return Transfer(maneuvers=(
        Maneuver.create(start_orbit, transfer_orbit, execution_time),
        Maneuver.create(transfer_orbit, actual_target_orbit, arrival_time),
    ))


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _check_transfer_inputs(start_orbit: Orbit, target_orbit: Orbit,
                           gravitational_parameter: float, execution_time: float) -> float:
    validate_orbit(start_orbit)
    validate_orbit(target_orbit)
    if start_orbit.is_fixed or target_orbit.is_fixed:
        raise InvalidOrbitError("Transfers require orbits with a positive semi-major axis")
    if not math.isfinite(execution_time):
        raise InvalidOrbitError(f"execution_time must be finite, got {execution_time}")
    return validate_gravitational_parameter(gravitational_parameter)


def _departure_point(start_orbit: Orbit, mu: float, execution_time: float) -> Tuple[float, float]:
    """Radius and polar angle of the body on ``start_orbit`` at ``execution_time``."""
    nu = true_anomaly_at(start_orbit, mu, execution_time)
    radius = radius_at_true_anomaly(start_orbit, nu)
    angle = float(np.mod(nu + start_orbit.argument_of_periapsis, TWO_PI))
    return radius, angle


def _opposite_arrival(departure_radius: float, departure_angle: float, target_orbit: Orbit) -> _Arrival:
    """Arrival half a revolution after departure on a circular target."""
    r = target_orbit.semi_major_axis
    return _Arrival(
        k=1.0,
        target_true_anomaly=float(np.mod(departure_angle + math.pi - target_orbit.argument_of_periapsis, TWO_PI)),
        sweep=math.pi,
        transfer_eccentricity=(r - departure_radius) / (departure_radius + r),
    )


def _transfer_leg(departure_radius: float, departure_angle: float, arrival: _Arrival,
                  mu: float, execution_time: float) -> Tuple[Orbit, float]:
    """
    Transfer orbit with an apsis at the departure point, and its time of flight to ``arrival``.
    """
    eps = arrival.transfer_eccentricity
    if eps >= 0.0:
        # departure is the transfer periapsis
        departure_true_anomaly = 0.0
        argument_of_periapsis = departure_angle
    else:
        departure_true_anomaly = math.pi
        argument_of_periapsis = departure_angle + math.pi
    argument_of_periapsis = float(np.mod(argument_of_periapsis, TWO_PI))
    arrival_true_anomaly = float(np.mod(arrival.sweep + departure_true_anomaly, TWO_PI))

    e = abs(eps)
    semi_major_axis = departure_radius / (1.0 - eps)
    n = float(mean_motion(orbital_period(semi_major_axis, mu)))

    # 0 and pi are fixed points of the true -> mean anomaly map
    departure_mean_anomaly = departure_true_anomaly
    arrival_mean_anomaly = float(true_to_mean_anomaly(e, arrival_true_anomaly))
    time_of_flight = float(np.mod(arrival_mean_anomaly - departure_mean_anomaly, TWO_PI)) / n

    transfer_orbit = Orbit(
        semi_major_axis=semi_major_axis,
        eccentricity=e,
        argument_of_periapsis=argument_of_periapsis,
        initial_mean_anomaly=initial_mean_anomaly_for(
            departure_mean_anomaly, argument_of_periapsis, n, execution_time
        ),
    )
    return transfer_orbit, time_of_flight


def _arrival_geometry(k, branch, r_d, theta_d, a_t, e_t, omega_t):
    """
    Geometry of the transfer orbit that reaches the target at radius k * a_t.

    ``branch`` (+1 or -1) selects the ascending or descending half of the
    target orbit. Returns the target true anomaly, the swept polar angle, the
    transfer eccentricity denominator and the signed transfer eccentricity.
    """
    cos_nu = jnp.clip(((1.0 - e_t**2) / k - 1.0) / e_t, -1.0, 1.0)
    nu_t = branch * jnp.arccos(cos_nu)
    r = k * a_t
    sweep = jnp.mod(omega_t + nu_t - theta_d, TWO_PI)

    # Apsis at departure: r_d*(1 + eps) = r*(1 + eps*cos(sweep))
    denominator = r_d - r * jnp.cos(sweep)
    eps = (r - r_d) / denominator
    return nu_t, sweep, denominator, eps


def _tangency_residual(k, branch, r_d, theta_d, a_t, e_t, omega_t):
    """Flight-path angle of the transfer orbit minus that of the target orbit at arrival."""
    nu_t, sweep, _, eps = _arrival_geometry(k, branch, r_d, theta_d, a_t, e_t, omega_t)
    gamma_transfer = jnp.arctan2(eps * jnp.sin(sweep), 1.0 + eps * jnp.cos(sweep))
    gamma_target = jnp.arctan2(e_t * jnp.sin(nu_t), 1.0 + e_t * jnp.cos(nu_t))
    return gamma_transfer - gamma_target


_residual = jit(_tangency_residual)
_residual_dk = jit(jax.grad(_tangency_residual))
_residual_vec = jit(jax.vmap(_tangency_residual, in_axes=(0, None, None, None, None, None, None)))
_geometry_vec = jit(jax.vmap(_arrival_geometry, in_axes=(0, None, None, None, None, None, None)))


def _is_valid(denominator: float, eps: float, r_d: float) -> bool:
    """An arrival is usable when the transfer orbit is a finite, closed ellipse."""
    return (math.isfinite(eps) and abs(eps) < 1.0
            and abs(denominator) > _DENOMINATOR_EPS * r_d)


def _make_arrival(k: float, branch: float, args: tuple) -> Optional[_Arrival]:
    nu_t, sweep, denominator, eps = (float(x) for x in _arrival_geometry(k, branch, *args))
    if not _is_valid(denominator, eps, args[0]):
        return None
    return _Arrival(k=k, target_true_anomaly=float(np.mod(nu_t, TWO_PI)),
                    sweep=sweep, transfer_eccentricity=eps)


def _refine_root(k_lo: float, k_hi: float, f_lo: float, branch: float, args: tuple,
                 tol: float, max_iter: int) -> Tuple[float, str]:
    """
    Safeguarded Newton iteration inside a sign-change bracket.

    Newton steps use the derivative from jax.grad; a step that leaves the
    bracket or has no finite derivative is replaced by bisection.

    Returns:
        (k, status) where status is 'root' when |F(k)| <= tol, 'discontinuity'
        when the bracket collapsed onto a jump of F rather than a root, and
        'budget' when max_iter was exhausted first.
    """
    k = 0.5 * (k_lo + k_hi)
    for _ in range(max_iter):
        f = float(_residual(k, branch, *args))
        if math.isfinite(f) and abs(f) <= tol:
            return k, 'root'
        if not math.isfinite(f):
            return k, 'discontinuity'

        if (f < 0.0) == (f_lo < 0.0):
            k_lo, f_lo = k, f
        else:
            k_hi = k

        if k_hi - k_lo <= 4.0 * np.finfo(float).eps * max(1.0, abs(k_hi)):
            return k, 'discontinuity'

        dfdk = float(_residual_dk(k, branch, *args))
        k_next = k - f / dfdk if math.isfinite(dfdk) and dfdk != 0.0 else math.nan
        if not (k_lo < k_next < k_hi):
            k_next = 0.5 * (k_lo + k_hi)
        k = k_next

    f = float(_residual(k, branch, *args))
    if math.isfinite(f) and abs(f) <= tol:
        return k, 'root'
    return k, 'budget'


def _tangent_arrivals(departure_radius: float, departure_angle: float, target_orbit: Orbit,
                      tol: float, max_iter: int, sample_count: int) -> List[_Arrival]:
    """
    Every arrival point where a transfer orbit with an apsis at departure is
    tangent to the eccentric ``target_orbit``.
    """
    e_t = target_orbit.eccentricity
    args = (departure_radius, departure_angle, target_orbit.semi_major_axis,
            e_t, target_orbit.argument_of_periapsis)
    k_grid = np.linspace(1.0 - e_t, 1.0 + e_t, max(int(sample_count), 2))

    arrivals: List[_Arrival] = []
    unconverged = 0

    def add(arrival: Optional[_Arrival]) -> None:
        if arrival is None:
            return
        angle = arrival.target_true_anomaly
        for other in arrivals:
            d_angle = abs(np.mod(angle - other.target_true_anomaly + math.pi, TWO_PI) - math.pi)
            if abs(arrival.k - other.k) <= _DUPLICATE_EPS and d_angle <= _DUPLICATE_EPS:
                return
        arrivals.append(arrival)

    for branch in (1.0, -1.0):
        F = np.asarray(_residual_vec(k_grid, branch, *args))
        _, _, denominators, eps = (np.asarray(x) for x in _geometry_vec(k_grid, branch, *args))
        valid = [_is_valid(float(d), float(x), departure_radius) for d, x in zip(denominators, eps)]

        for i, k in enumerate(k_grid):
            if valid[i] and abs(F[i]) <= tol:
                add(_make_arrival(float(k), branch, args))

        for i in range(len(k_grid) - 1):
            if not (valid[i] and valid[i + 1]):
                continue
            if abs(F[i]) <= tol or abs(F[i + 1]) <= tol or F[i] * F[i + 1] > 0.0:
                continue
            k, status = _refine_root(float(k_grid[i]), float(k_grid[i + 1]), float(F[i]),
                                     branch, args, tol, max_iter)
            logger.debug("Root search on branch %+.0f in [%.6f, %.6f]: k=%.12f (%s)",
                         branch, k_grid[i], k_grid[i + 1], k, status)
            if status == 'root':
                add(_make_arrival(k, branch, args))
            elif status == 'budget':
                unconverged += 1

    if not arrivals and unconverged:
        raise TransferConvergenceError(
            f"Tangent arrival search did not converge within {max_iter} iterations "
            f"({unconverged} bracket(s) unresolved)"
        )
    if not arrivals:
        raise TransferInfeasibleError(
            f"No elliptical transfer orbit is tangent to the target orbit "
            f"a={target_orbit.semi_major_axis}, e={e_t}"
        )
    return arrivals
