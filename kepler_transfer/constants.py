"""
Numerical constants for kepler_transfer.

This module contains the constants shared by the Kepler solver, the position
calculator and the transfer planner.
"""

import numpy as np

TWO_PI = 2.0 * np.pi

# Gravitational parameter used for orbits that have no parent body to supply one
DEFAULT_GRAVITATIONAL_PARAMETER = 1.0e12

# Kepler solver
KEPLER_TOL = 1.0e-12  # Newton step size at which the solve is considered converged (rad)
KEPLER_MAX_ITER = 50
HIGH_ECCENTRICITY = 0.8  # at or above this, Newton iteration is seeded at E = pi

# Tangential transfer root search
TRANSFER_TOL = 1.0e-9  # flight-path-angle mismatch accepted as tangency (rad)
TRANSFER_MAX_ITER = 100
TRANSFER_SAMPLE_COUNT = 64  # grid points per true-anomaly branch used to bracket roots
