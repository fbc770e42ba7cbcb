"""
Parent/child ordering and world-space composition of body positions.

The hierarchy is an id-indexed forest: every body names at most one parent.
Positions are computed relative to the parent, so the world position of a body
is the sum of the local positions along its chain of ancestors.
"""
from collections import deque
from typing import Dict, List, Mapping, Optional

import jax.numpy as jnp


def topological_order(parents: Mapping[int, Optional[int]]) -> List[int]:
    """
    Order body ids so that every parent comes before its children.

    Siblings keep ascending id order, so the result is deterministic.

    Args:
        parents: Mapping of body id to parent id (None for root bodies)

    Returns:
        Body ids, parents first

    Raises:
        ValueError: If a body names an unknown parent or the parents form a cycle.
    """
    children: Dict[int, List[int]] = {body_id: [] for body_id in parents}
    roots = []
    for body_id in sorted(parents):
        parent = parents[body_id]
        if parent is None:
            roots.append(body_id)
        elif parent not in parents:
            raise ValueError(f"Body {body_id} names unknown parent {parent}")
        else:
            children[parent].append(body_id)

    order = []
    queue = deque(roots)
    while queue:
        body_id = queue.popleft()
        order.append(body_id)
        queue.extend(children[body_id])

    if len(order) != len(parents):
        cyclic = sorted(set(parents) - set(order))
        raise ValueError(f"Body hierarchy contains a cycle through {cyclic}")
    return order


def resolve_world_positions(local_positions: Mapping[int, jnp.ndarray],
                            parents: Mapping[int, Optional[int]]) -> Dict[int, jnp.ndarray]:
    """
    Compose positions relative to the parent into world positions.

    Args:
        local_positions: Position of each body relative to its parent
        parents: Mapping of body id to parent id (None for root bodies)

    Returns:
        World position of every body in ``local_positions``
    """
    world: Dict[int, jnp.ndarray] = {}
    for body_id in topological_order(parents):
        if body_id not in local_positions:
            continue
        parent = parents[body_id]
        local = jnp.asarray(local_positions[body_id])
        if parent is None or parent not in world:
            world[body_id] = local
        else:
            world[body_id] = world[parent] + local
    return world
