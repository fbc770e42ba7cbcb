# Configure JAX to use double precision (64-bit floats) throughout the package
import jax
jax.config.update("jax_enable_x64", True)

from .orbit import Orbit
from .cartesian_state import CartesianState

from .constants import (
    # Constants
    TWO_PI,
    DEFAULT_GRAVITATIONAL_PARAMETER,
    KEPLER_TOL,
    KEPLER_MAX_ITER,
    TRANSFER_TOL,
    TRANSFER_MAX_ITER,
)

from .exceptions import (
    OrbitError,
    InvalidOrbitError,
    ConvergenceError,
    TransferInfeasibleError,
    TransferConvergenceError,
)

from .kepler import (
    # Kepler's equation
    solve_kepler,
    solve_kepler_vec,
    solve_eccentric_anomaly,
    eccentric_to_true_anomaly,
    true_to_eccentric_anomaly,
    eccentric_to_mean_anomaly,
    true_to_mean_anomaly,
)

from .astrodynamics import (
    # Functions
    orbital_period,
    mean_motion,
    mean_anomaly_at,
    true_anomaly_at,
    state_at_time,
    position_at_time,
    positions_at_times,
    rephase_orbit,
    ellipse_center,
    orbit_curve,
)

from .maneuver import Maneuver, Transfer
from .planner import plan_transfer, hohmann_transfer, tangential_transfer
from .schedule import ScheduleState, TransferSchedule
from .bodies import Body
from .config import SimulationConfig, make_simulation_config
from .hierarchy import topological_order, resolve_world_positions
from .simulation import Simulation, TickResult
from .scenario import BodySpec, TransferSpec, Scenario, DEMO_SCENARIOS

__all__ = [
    # Constants
    "TWO_PI",
    "DEFAULT_GRAVITATIONAL_PARAMETER",
    "KEPLER_TOL",
    "KEPLER_MAX_ITER",
    "TRANSFER_TOL",
    "TRANSFER_MAX_ITER",

    # Exceptions
    "OrbitError",
    "InvalidOrbitError",
    "ConvergenceError",
    "TransferInfeasibleError",
    "TransferConvergenceError",

    # Named tuples
    "Orbit",
    "CartesianState",

    # Kepler's equation
    "solve_kepler",
    "solve_kepler_vec",
    "solve_eccentric_anomaly",
    "eccentric_to_true_anomaly",
    "true_to_eccentric_anomaly",
    "eccentric_to_mean_anomaly",
    "true_to_mean_anomaly",

    # Functions
    "orbital_period",
    "mean_motion",
    "mean_anomaly_at",
    "true_anomaly_at",
    "state_at_time",
    "position_at_time",
    "positions_at_times",
    "rephase_orbit",
    "ellipse_center",
    "orbit_curve",

    # Transfers
    "Maneuver",
    "Transfer",
    "plan_transfer",
    "hohmann_transfer",
    "tangential_transfer",
    "ScheduleState",
    "TransferSchedule",

    # Simulation
    "Body",
    "SimulationConfig",
    "make_simulation_config",
    "topological_order",
    "resolve_world_positions",
    "Simulation",
    "TickResult",
    "BodySpec",
    "TransferSpec",
    "Scenario",
    "DEMO_SCENARIOS",
]
