"""
Kepler's equation solver and anomaly conversions.

The numerical kernels are written with jax so that they can be jit-compiled,
vectorised with vmap and differentiated. The checked entry point
``solve_eccentric_anomaly`` wraps the kernel for scalar use and reports
failures as exceptions.
"""
import math

import jax
import jax.numpy as jnp
from jax import jit

from .constants import TWO_PI, KEPLER_TOL, KEPLER_MAX_ITER, HIGH_ECCENTRICITY
from .exceptions import ConvergenceError, InvalidOrbitError


@jit
def solve_kepler(M, e, tol=KEPLER_TOL, max_iter=KEPLER_MAX_ITER):
    """
    Solve Kepler's equation M = E - e*sin(E) for eccentric anomaly E
    using Newton-Raphson iteration with jax.lax.while_loop.

    Iteration stops once the Newton step drops below ``tol`` or after
    ``max_iter`` steps, whichever comes first.

    Parameters
    ----------
    M : float or jnp.ndarray
        Mean anomaly (radians), expected in [0, 2*pi)
    e : float
        Eccentricity in [0, 1)
    tol : float, optional
        Newton step size at which the iteration is considered converged
    max_iter : int, optional
        Maximum number of Newton steps

    Returns
    -------
    E : jnp.ndarray
        Eccentric anomaly (radians)
    iterations : jnp.ndarray
        Number of Newton steps taken
    step : jnp.ndarray
        Size of the last Newton step; ``abs(step) <= tol`` means converged
    """
    M = jnp.asarray(M, dtype=float)

    # E = M is a good start for moderate eccentricity, E = pi always converges
    E0 = jnp.where(e < HIGH_ECCENTRICITY, M, jnp.pi * jnp.ones_like(M))

    def cond_fn(carry):
        _, i, step = carry
        return (jnp.abs(step) > tol) & (i < max_iter)

    def body_fn(carry):
        E, i, _ = carry
        f = E - e * jnp.sin(E) - M
        fp = 1.0 - e * jnp.cos(E)
        step = f / fp
        return E - step, i + 1, step

    init = (E0, jnp.int32(0), jnp.full_like(E0, jnp.inf))
    E, iterations, step = jax.lax.while_loop(cond_fn, body_fn, init)
    return E, iterations, step


# Vectorized version using vmap
# Note: vmap over first two arguments (M and e arrays), broadcast tol and max_iter
_solve_kepler_vec = jax.vmap(solve_kepler, in_axes=(0, 0, None, None))


def solve_kepler_vec(M, e, tol=KEPLER_TOL, max_iter=KEPLER_MAX_ITER):
    """
    Vectorized version of solve_kepler that handles arrays of M and e.

    Parameters
    ----------
    M : jnp.ndarray
        Array of mean anomalies
    e : float or jnp.ndarray
        Eccentricity, or an array of eccentricities matching M
    tol : float, optional
        Tolerance for convergence
    max_iter : int, optional
        Maximum number of iterations

    Returns
    -------
    E, iterations, step : jnp.ndarray
        Per-element results of solve_kepler
    """
    M = jnp.atleast_1d(jnp.asarray(M, dtype=float))
    e = jnp.broadcast_to(jnp.asarray(e, dtype=float), M.shape)
    return _solve_kepler_vec(M, e, tol, max_iter)


def solve_eccentric_anomaly(eccentricity: float, mean_anomaly: float,
                            tol: float = KEPLER_TOL, max_iter: int = KEPLER_MAX_ITER) -> float:
    """
    Solve Kepler's equation for a single orbit and check the result.

    The mean anomaly may be any real number. It is reduced to [0, 2*pi) before
    iterating and the removed multiple of 2*pi is added back, so that
    E - e*sin(E) == mean_anomaly holds for the returned value.

    Args:
        eccentricity: Eccentricity in [0, 1)
        mean_anomaly: Mean anomaly (radians)
        tol: Newton step size at which the solve is considered converged
        max_iter: Newton iteration budget

    Returns:
        Eccentric anomaly (radians)

    Raises:
        InvalidOrbitError: If the eccentricity is outside [0, 1) or the mean
            anomaly is not finite.
        ConvergenceError: If the iteration does not converge within max_iter
            steps or produces a non-finite value.
    """
    e = float(eccentricity)
    if not math.isfinite(e) or not (0.0 <= e < 1.0):
        raise InvalidOrbitError(f"eccentricity must be in [0, 1), got {eccentricity}")
    M = float(mean_anomaly)
    if not math.isfinite(M):
        raise InvalidOrbitError(f"mean anomaly must be finite, got {mean_anomaly}")

    M_reduced = M % TWO_PI
    E, iterations, step = solve_kepler(M_reduced, e, tol, max_iter)
    E = float(E)
    step = float(step)
    if not math.isfinite(E) or not abs(step) <= tol:
        raise ConvergenceError(
            f"Kepler's equation did not converge for e={e}, M={M} "
            f"after {int(iterations)} iterations (last step {step:.3e})"
        )
    return E + (M - M_reduced)


def eccentric_to_true_anomaly(e, E):
    """
    True anomaly from eccentric anomaly, wrapped to [0, 2*pi).

    Uses the half-angle relation, which keeps the result continuous over the
    whole period: the branch is chosen by the half of the orbit E lies in.
    """
    nu = 2.0 * jnp.arctan2(
        jnp.sqrt(1.0 + e) * jnp.sin(E / 2.0),
        jnp.sqrt(1.0 - e) * jnp.cos(E / 2.0)
    )
    return jnp.mod(nu, TWO_PI)


def true_to_eccentric_anomaly(e, nu):
    """Eccentric anomaly from true anomaly, wrapped to [0, 2*pi)."""
    E = 2.0 * jnp.arctan2(
        jnp.sqrt(1.0 - e) * jnp.sin(nu / 2.0),
        jnp.sqrt(1.0 + e) * jnp.cos(nu / 2.0)
    )
    return jnp.mod(E, TWO_PI)


def eccentric_to_mean_anomaly(e, E):
    """Kepler's equation evaluated forward, wrapped to [0, 2*pi)."""
    return jnp.mod(E - e * jnp.sin(E), TWO_PI)


def true_to_mean_anomaly(e, nu):
    """Mean anomaly from true anomaly, wrapped to [0, 2*pi)."""
    return eccentric_to_mean_anomaly(e, true_to_eccentric_anomaly(e, nu))
