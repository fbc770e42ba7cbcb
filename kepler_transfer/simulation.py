"""
Reference host that owns a hierarchy of bodies and advances it through time.

Each tick runs in two passes:

1. every body's transfer schedule applies at most one due maneuver, which
   replaces the body's orbit;
2. positions are recomputed for every body, parents before children, from the
   possibly-updated orbits.
"""
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

import jax.numpy as jnp

from kepler_transfer import planner
from kepler_transfer.astrodynamics import position_at_time, rephase_orbit
from kepler_transfer.bodies import Body
from kepler_transfer.config import SimulationConfig
from kepler_transfer.exceptions import InvalidOrbitError, OrbitError
from kepler_transfer.hierarchy import topological_order, resolve_world_positions
from kepler_transfer.maneuver import Maneuver, Transfer
from kepler_transfer.orbit import Orbit

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TickResult:
    """Outcome of a single ``Simulation.tick``."""
    time: float
    applied: Dict[int, Maneuver] = field(default_factory=dict)
    positions: Dict[int, jnp.ndarray] = field(default_factory=dict)
    failures: Dict[int, OrbitError] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failures


class Simulation:
    """
    Tick-driven simulation of bodies on Keplerian orbits.

    A body's gravitational parameter is its parent's mass. A body without a
    parent orbits a virtual centre with ``config.default_gravitational_parameter``.
    """

    def __init__(self, config: Optional[SimulationConfig] = None):
        self.config = config if config is not None else SimulationConfig()
        self.bodies: Dict[int, Body] = {}
        self.time: Optional[float] = None
        self.positions: Dict[int, jnp.ndarray] = {}

    def __len__(self) -> int:
        return len(self.bodies)

    def add_body(self, name: str, mass: float = 0.0, parent: Optional[int] = None,
                 orbit: Optional[Orbit] = None, body_id: Optional[int] = None) -> Body:
        """
        Add a body to the hierarchy.

        Args:
            name: Display name
            mass: Mass of the body, used as mu for its children
            parent: Id of an existing body to orbit, or None
            orbit: Orbit about the parent, or None to sit at the parent's origin
            body_id: Explicit id; the next free id is used when omitted

        Returns:
            The new Body
        """
        if parent is not None and parent not in self.bodies:
            raise ValueError(f"Unknown parent body id {parent}")
        if body_id is None:
            body_id = max(self.bodies, default=-1) + 1
        elif body_id in self.bodies:
            raise ValueError(f"Body id {body_id} is already in use")

        body = Body(name=name, id=body_id, mass=mass, parent=parent, orbit=orbit)
        self.bodies[body_id] = body
        return body

    def body(self, body_id: int) -> Body:
        try:
            return self.bodies[body_id]
        except KeyError:
            raise KeyError(f"Unknown body id {body_id}") from None

    def find(self, name: str) -> Body:
        """Look up a body by name."""
        for body in self.bodies.values():
            if body.name == name:
                return body
        raise KeyError(f"No body named {name!r}")

    def parents(self) -> Dict[int, Optional[int]]:
        return {body_id: body.parent for body_id, body in self.bodies.items()}

    def children(self, body_id: int) -> List[Body]:
        return [b for b in self.bodies.values() if b.parent == body_id]

    def gravitational_parameter(self, body_id: int) -> float:
        """mu that governs ``body_id``'s orbit: the parent's mass, or the configured default."""
        body = self.body(body_id)
        if body.parent is None:
            return self.config.default_gravitational_parameter
        return self.body(body.parent).mass

    def execute_maneuvers(self, time: float) -> Dict[int, Maneuver]:
        """Apply at most one due maneuver per body. Returns the applied maneuvers by body id."""
        applied = {}
        for body_id in sorted(self.bodies):
            maneuver = self.bodies[body_id].apply_due_maneuver(time)
            if maneuver is not None:
                applied[body_id] = maneuver
        return applied

    def compute_positions(self, time: float):
        """
        Positions of every body relative to its parent at ``time``.

        A body whose position cannot be computed keeps its previous position
        (the origin if it never had one); the error is logged and returned.

        Returns:
            (positions, failures) dictionaries keyed by body id
        """
        positions: Dict[int, jnp.ndarray] = {}
        failures: Dict[int, OrbitError] = {}
        for body_id in topological_order(self.parents()):
            body = self.bodies[body_id]
            if body.orbit is None:
                positions[body_id] = jnp.zeros(3)
                continue
            try:
                positions[body_id] = position_at_time(
                    body.orbit, self.gravitational_parameter(body_id), time,
                    tol=self.config.kepler_tol, max_iter=self.config.kepler_max_iter
                )
            except OrbitError as exc:
                logger.warning("%s: position at t=%.6g failed: %s", body.name, time, exc)
                failures[body_id] = exc
                positions[body_id] = self.positions.get(body_id, jnp.zeros(3))
        return positions, failures

    def tick(self, time: float) -> TickResult:
        """
        Advance the simulation to ``time``.

        Raises:
            ValueError: If ``time`` is earlier than the previous tick.
        """
        if self.time is not None and time < self.time:
            raise ValueError(f"Simulation time cannot decrease: {time} < {self.time}")

        applied = self.execute_maneuvers(time)
        positions, failures = self.compute_positions(time)
        self.time = time
        self.positions.update(positions)
        return TickResult(time=time, applied=applied, positions=positions, failures=failures)

    def world_positions(self) -> Dict[int, jnp.ndarray]:
        """World positions from the most recent tick."""
        return resolve_world_positions(self.positions, self.parents())

    def set_mass(self, body_id: int, mass: float, time: float) -> None:
        """
        Change a body's mass without making its children jump.

        Each child's initial mean anomaly is adjusted so its position at
        ``time`` is the same under the new gravitational parameter. Transfers
        already queued for the children keep the elements they were planned with.
        """
        body = self.body(body_id)
        old_mass = body.mass
        body.mass = mass
        if old_mass <= 0.0 or mass <= 0.0:
            return
        for child in self.children(body_id):
            if child.orbit is not None and not child.orbit.is_fixed:
                child.orbit = rephase_orbit(child.orbit, old_mass, mass, time)
                logger.debug("%s: rephased for parent mass %.6g -> %.6g", child.name, old_mass, mass)

    def plan_transfer(self, body_id: int, target_orbit: Orbit, execution_time: float) -> Transfer:
        """
        Plan a transfer for a body and queue it.

        Planning starts from the orbit the body will be on once every transfer
        already queued has finished.

        Raises:
            ValueError: If ``execution_time`` is before the last queued maneuver.
            InvalidOrbitError: If the body has no orbit to depart from.
        """
        body = self.body(body_id)
        start_orbit = body.schedule.final_orbit
        if start_orbit is None:
            start_orbit = body.orbit
        else:
            queued_until = body.schedule.final_execution_time
            if execution_time < queued_until:
                raise ValueError(
                    f"Transfer for {body.name} must start at or after t={queued_until}, "
                    f"the end of its queued transfers"
                )
        if start_orbit is None:
            raise InvalidOrbitError(f"{body.name} has no orbit to transfer from")

        transfer = planner.plan_transfer(
            start_orbit, target_orbit, self.gravitational_parameter(body_id), execution_time,
            tol=self.config.transfer_tol,
            max_iter=self.config.transfer_max_iter,
            sample_count=self.config.transfer_sample_count,
        )
        body.schedule.push_transfer(transfer)
        return transfer
