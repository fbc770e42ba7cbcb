"""
Maneuver and Transfer representation using Pydantic models.

A Maneuver replaces a body's orbit at an absolute simulation time. A Transfer
is the ordered sequence of maneuvers that moves a body from one orbit onto
another.
"""
import math
from pathlib import Path
from typing import Tuple

import jax.numpy as jnp
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from kepler_transfer.astrodynamics import state_at_time
from kepler_transfer.orbit import Orbit, validate_orbit


class Maneuver(BaseModel):
    """
    An impulsive orbit change.

    At ``execution_time`` the body's orbit is overwritten, all four elements
    at once, with ``target_orbit``.
    """
    model_config = ConfigDict(frozen=True)

    start_orbit: Orbit = Field(..., description="Orbit the body is on before the maneuver")
    target_orbit: Orbit = Field(..., description="Orbit the body is on after the maneuver")
    execution_time: float = Field(..., description="Absolute simulation time of the impulse")

    @field_validator('start_orbit', 'target_orbit')
    @classmethod
    def validate_elements(cls, v: Orbit) -> Orbit:
        return validate_orbit(v)

    @field_validator('execution_time')
    @classmethod
    def validate_execution_time(cls, v: float) -> float:
        if not math.isfinite(v):
            raise ValueError(f"execution_time must be finite, got {v}")
        return v

    def delta_v(self, gravitational_parameter: float) -> float:
        """
        Magnitude of the velocity change applied by this maneuver.

        Both orbits are evaluated at the execution time about a parent with
        the given gravitational parameter.
        """
        before = state_at_time(self.start_orbit, gravitational_parameter, self.execution_time)
        after = state_at_time(self.target_orbit, gravitational_parameter, self.execution_time)
        return float(jnp.linalg.norm(after.v - before.v))

    @staticmethod
    def create(start_orbit: Orbit, target_orbit: Orbit, execution_time: float) -> 'Maneuver':
        """
        Create a maneuver.

        Args:
            start_orbit: Orbit before the impulse
            target_orbit: Orbit after the impulse
            execution_time: Absolute simulation time of the impulse

        Returns:
            Maneuver object
        """
        return Maneuver(
            start_orbit=start_orbit,
            target_orbit=target_orbit,
            execution_time=execution_time
        )


class Transfer(BaseModel):
    """
    Ordered sequence of maneuvers, front to back in execution order.
    """
    model_config = ConfigDict(frozen=True)

    maneuvers: Tuple[Maneuver, ...] = Field(
        ...,
        min_length=1,
        description="Maneuvers in execution order"
    )

    @model_validator(mode='after')
    def validate_execution_order(self):
        for i in range(1, len(self.maneuvers)):
            if self.maneuvers[i].execution_time < self.maneuvers[i-1].execution_time:
                raise ValueError(
                    f"Maneuver execution times must be non-decreasing. "
                    f"Found {self.maneuvers[i].execution_time} < {self.maneuvers[i-1].execution_time} "
                    f"at maneuvers {i} and {i-1}"
                )
        return self

    def __len__(self) -> int:
        return len(self.maneuvers)

    @property
    def departure_time(self) -> float:
        return self.maneuvers[0].execution_time

    @property
    def arrival_time(self) -> float:
        return self.maneuvers[-1].execution_time

    @property
    def initial_orbit(self) -> Orbit:
        return self.maneuvers[0].start_orbit

    @property
    def final_orbit(self) -> Orbit:
        return self.maneuvers[-1].target_orbit

    def total_delta_v(self, gravitational_parameter: float) -> float:
        """Sum of the delta-v magnitudes of every maneuver."""
        return sum(m.delta_v(gravitational_parameter) for m in self.maneuvers)

    def save(self, filepath: str | Path) -> None:
        """
        Save the transfer to a JSON file.

        Parameters
        ----------
        filepath : str | Path
            Path to the file where the transfer will be saved.
        """
        filepath = Path(filepath)
        with open(filepath, 'w') as f:
            f.write(self.model_dump_json(indent=2))

    @classmethod
    def load(cls, filepath: str | Path) -> 'Transfer':
        """Load a transfer previously written by ``save``."""
        filepath = Path(filepath)
        with open(filepath, 'r') as f:
            return cls.model_validate_json(f.read())
