from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from kepler_transfer.constants import (
    DEFAULT_GRAVITATIONAL_PARAMETER,
    KEPLER_TOL,
    KEPLER_MAX_ITER,
    TRANSFER_TOL,
    TRANSFER_MAX_ITER,
    TRANSFER_SAMPLE_COUNT,
)

# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------
DEFAULT_MU = DEFAULT_GRAVITATIONAL_PARAMETER  # mu for bodies without a parent
DEFAULT_KEPLER_TOL = KEPLER_TOL
DEFAULT_KEPLER_MAX_ITER = KEPLER_MAX_ITER
DEFAULT_TRANSFER_TOL = TRANSFER_TOL
DEFAULT_TRANSFER_MAX_ITER = TRANSFER_MAX_ITER
DEFAULT_TRANSFER_SAMPLE_COUNT = TRANSFER_SAMPLE_COUNT


@dataclass(frozen=True, slots=True)
class SimulationConfig:
    default_gravitational_parameter: float = DEFAULT_MU
    kepler_tol: float = DEFAULT_KEPLER_TOL
    kepler_max_iter: int = DEFAULT_KEPLER_MAX_ITER
    transfer_tol: float = DEFAULT_TRANSFER_TOL
    transfer_max_iter: int = DEFAULT_TRANSFER_MAX_ITER
    transfer_sample_count: int = DEFAULT_TRANSFER_SAMPLE_COUNT


def _positive(value: Optional[float], default: float) -> float:
    if value is None or not value > 0:
        return default
    return float(value)


def _positive_int(value: Optional[int], default: int) -> int:
    if value is None or int(value) <= 0:
        return default
    return int(value)


def make_simulation_config(
    default_gravitational_parameter: Optional[float] = None,
    *,
    kepler_tol: Optional[float] = None,
    kepler_max_iter: Optional[int] = None,
    transfer_tol: Optional[float] = None,
    transfer_max_iter: Optional[int] = None,
    transfer_sample_count: Optional[int] = None,
) -> SimulationConfig:
    """Build a SimulationConfig, replacing missing or non-positive settings with the defaults."""
    sample_count = _positive_int(transfer_sample_count, DEFAULT_TRANSFER_SAMPLE_COUNT)
    return SimulationConfig(
        default_gravitational_parameter=_positive(default_gravitational_parameter, DEFAULT_MU),
        kepler_tol=_positive(kepler_tol, DEFAULT_KEPLER_TOL),
        kepler_max_iter=_positive_int(kepler_max_iter, DEFAULT_KEPLER_MAX_ITER),
        transfer_tol=_positive(transfer_tol, DEFAULT_TRANSFER_TOL),
        transfer_max_iter=_positive_int(transfer_max_iter, DEFAULT_TRANSFER_MAX_ITER),
        # a grid needs both end points of the radius range
        transfer_sample_count=max(sample_count, 2),
    )
