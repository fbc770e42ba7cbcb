"""
Cartesian state representation of a body relative to its parent.
"""
from typing import NamedTuple
import jax.numpy as jnp


class CartesianState(NamedTuple):
    """
    Cartesian state of a body in its parent's reference frame.

    Orbits lie in the parent's x-y plane, so the z components are always zero.
    The state is compatible with JAX transformations.

    Attributes:
        r: Position vector [x, y, z] relative to the parent
        v: Velocity vector [vx, vy, vz] relative to the parent

    Examples:
        >>> import jax.numpy as jnp
        >>> state = CartesianState(
        ...     r=jnp.array([2.0, 0.0, 0.0]),
        ...     v=jnp.array([0.0, 1.0, 0.0])
        ... )
        >>> print(state.r)
        [2. 0. 0.]
    """
    r: jnp.ndarray  # position [x, y, z]
    v: jnp.ndarray  # velocity [vx, vy, vz]

    @property
    def speed(self) -> float:
        return float(jnp.linalg.norm(self.v))

    @property
    def radius(self) -> float:
        return float(jnp.linalg.norm(self.r))
