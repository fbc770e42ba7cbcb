import logging
import math
from typing import Optional

import pydantic
from pydantic import ConfigDict, Field, field_validator

from kepler_transfer.astrodynamics import orbital_period
from kepler_transfer.maneuver import Maneuver
from kepler_transfer.orbit import Orbit, validate_orbit
from kepler_transfer.schedule import TransferSchedule

logger = logging.getLogger(__name__)


class Body(pydantic.BaseModel):
    """
    A body in the simulated hierarchy.

    Attributes:
        name: Display name of the body (e.g., "Sun", "Ship")
        id: Unique identifier for the body
        mass: Mass, used directly as the gravitational parameter of the body's children
        parent: Id of the body this one orbits, or None for a root body
        orbit: Orbital elements about the parent, or None for a body sitting at its parent's origin
        schedule: Transfers queued for this body
    """
    model_config = ConfigDict(arbitrary_types_allowed=True, validate_assignment=True)  # Allow TransferSchedule

    name: str
    id: int
    mass: float = Field(0.0, ge=0.0)
    parent: Optional[int] = None
    orbit: Optional[Orbit] = None
    schedule: TransferSchedule = Field(default_factory=TransferSchedule, exclude=True)

    @field_validator('mass')
    @classmethod
    def validate_mass(cls, v: float) -> float:
        if not math.isfinite(v):
            raise ValueError(f"mass must be finite, got {v}")
        return v

    @field_validator('orbit')
    @classmethod
    def validate_elements(cls, v: Optional[Orbit]) -> Optional[Orbit]:
        if v is not None:
            validate_orbit(v)
        return v

    def apply_due_maneuver(self, time: float) -> Optional[Maneuver]:
        """
        Execute the front maneuver of the schedule if it is due.

        The body's orbit is replaced, all elements at once, by the maneuver's
        target orbit.

        Returns:
            The executed maneuver, or None if nothing was due
        """
        maneuver = self.schedule.advance(time)
        if maneuver is not None:
            self.orbit = maneuver.target_orbit
            logger.info("%s: maneuver at t=%.6g -> a=%.6g, e=%.6g",
                        self.name, maneuver.execution_time,
                        maneuver.target_orbit.semi_major_axis, maneuver.target_orbit.eccentricity)
        return maneuver

    def get_period(self, gravitational_parameter: float) -> Optional[float]:
        """Orbital period about a parent with the given mu, or None for a body without a moving orbit."""
        if self.orbit is None or self.orbit.is_fixed:
            return None
        return float(orbital_period(self.orbit.semi_major_axis, gravitational_parameter))

    def __str__(self) -> str:
        return self.name
