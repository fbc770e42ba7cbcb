"""
Scenario files describing a body hierarchy and the transfers planned for it.

Scenarios are pydantic models stored as JSON. Bodies refer to their parent by
name, and a parent must be declared before its children.
"""
import math
from pathlib import Path
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from kepler_transfer.config import SimulationConfig
from kepler_transfer.orbit import Orbit, validate_orbit
from kepler_transfer.simulation import Simulation


class BodySpec(BaseModel):
    """A body as it appears in a scenario file."""
    name: str = Field(..., min_length=1)
    mass: float = Field(0.0, ge=0.0, description="Mass, used as mu for the body's children")
    parent: Optional[str] = Field(None, description="Name of the body this one orbits")
    orbit: Optional[Orbit] = Field(None, description="Orbit about the parent")

    @field_validator('orbit')
    @classmethod
    def validate_elements(cls, v: Optional[Orbit]) -> Optional[Orbit]:
        if v is not None:
            validate_orbit(v)
        return v


class TransferSpec(BaseModel):
    """A transfer to plan for a body once the scenario is loaded."""
    body: str
    target_orbit: Orbit
    execution_time: float

    @field_validator('target_orbit')
    @classmethod
    def validate_elements(cls, v: Orbit) -> Orbit:
        return validate_orbit(v)

    @field_validator('execution_time')
    @classmethod
    def validate_execution_time(cls, v: float) -> float:
        if not math.isfinite(v):
            raise ValueError(f"execution_time must be finite, got {v}")
        return v


class Scenario(BaseModel):
    """
    A complete simulation setup.

    Examples:
        >>> scenario = Scenario.load('transfer.json')
        >>> sim = scenario.build_simulation()
        >>> result = sim.tick(0.0)
    """
    name: str
    description: str = ''
    bodies: List[BodySpec] = Field(..., min_length=1)
    transfers: List[TransferSpec] = Field(default_factory=list)

    @model_validator(mode='after')
    def validate_references(self):
        seen = set()
        for spec in self.bodies:
            if spec.name in seen:
                raise ValueError(f"Duplicate body name {spec.name!r}")
            if spec.parent is not None and spec.parent not in seen:
                raise ValueError(
                    f"Body {spec.name!r} names parent {spec.parent!r}, which is not declared before it"
                )
            seen.add(spec.name)
        for transfer in self.transfers:
            if transfer.body not in seen:
                raise ValueError(f"Transfer refers to unknown body {transfer.body!r}")
        return self

    def build_simulation(self, config: Optional[SimulationConfig] = None) -> Simulation:
        """
        Create a Simulation holding the scenario's bodies with its transfers queued.

        Raises:
            OrbitError: If a transfer cannot be planned.
        """
        sim = Simulation(config)
        ids: Dict[str, int] = {}
        for spec in self.bodies:
            parent = ids[spec.parent] if spec.parent is not None else None
            body = sim.add_body(spec.name, mass=spec.mass, parent=parent, orbit=spec.orbit)
            ids[spec.name] = body.id
        for transfer in self.transfers:
            sim.plan_transfer(ids[transfer.body], transfer.target_orbit, transfer.execution_time)
        return sim

    def save(self, filepath: str | Path) -> None:
        """
        Save the scenario to a JSON file.

        Parameters
        ----------
        filepath : str | Path
            Path to the file where the scenario will be saved.
        """
        filepath = Path(filepath)
        with open(filepath, 'w') as f:
            f.write(self.model_dump_json(indent=2))

    @classmethod
    def load(cls, filepath: str | Path) -> 'Scenario':
        filepath = Path(filepath)
        with open(filepath, 'r') as f:
            return cls.model_validate_json(f.read())


DEMO_SCENARIOS: Dict[str, Scenario] = {
    'basic': Scenario(
        name='basic',
        description='A planet on a circular orbit around a sun',
        bodies=[
            BodySpec(name='Sun', mass=1.0e12),
            BodySpec(name='Planet', parent='Sun', orbit=Orbit(4.0)),
        ],
    ),
    'transfer': Scenario(
        name='transfer',
        description='Hohmann transfer from a circular orbit of radius 2 to one of radius 4 at t=2',
        bodies=[
            BodySpec(name='Sun', mass=1.0e11),
            BodySpec(name='Ship', parent='Sun', orbit=Orbit(2.0)),
        ],
        transfers=[
            TransferSpec(body='Ship', target_orbit=Orbit(4.0), execution_time=2.0),
        ],
    ),
    'moons': Scenario(
        name='moons',
        description='Sun, planet and moon hierarchy',
        bodies=[
            BodySpec(name='Sun', mass=1.0e12),
            BodySpec(name='Earth', mass=1.0e10, parent='Sun', orbit=Orbit(4.0)),
            BodySpec(name='Moon', parent='Earth', orbit=Orbit(1.0)),
        ],
    ),
    'eccentric': Scenario(
        name='eccentric',
        description='Tangential transfer from an eccentric orbit onto a rotated eccentric orbit',
        bodies=[
            BodySpec(name='Sun', mass=1.0e11),
            BodySpec(name='Ship', parent='Sun', orbit=Orbit(2.0, 0.2)),
        ],
        transfers=[
            TransferSpec(body='Ship', target_orbit=Orbit(4.0, 0.25, math.pi / 2), execution_time=0.0),
        ],
    ),
}


def load_scenario(name_or_path: str | Path) -> Scenario:
    """Return a built-in scenario by name, or load one from a JSON file."""
    if str(name_or_path) in DEMO_SCENARIOS:
        return DEMO_SCENARIOS[str(name_or_path)]
    return Scenario.load(name_or_path)
