"""
Per-body queue of planned transfers.

Only the front transfer is active. Its maneuvers are consumed in order as
simulation time passes their execution times, one maneuver per ``advance``
call, and a transfer is dropped once its last maneuver has executed.
"""
import logging
from collections import deque
from enum import Enum
from typing import Deque, List, Optional

from kepler_transfer.maneuver import Maneuver, Transfer
from kepler_transfer.orbit import Orbit

logger = logging.getLogger(__name__)


class ScheduleState(str, Enum):
    IDLE = 'idle'
    ACTIVE = 'active'


class TransferSchedule:
    """
    Ordered queue of Transfers for a single body.

    Examples:
        >>> schedule = TransferSchedule()
        >>> schedule.push_transfer(transfer)
        >>> maneuver = schedule.advance(time)
        >>> if maneuver is not None:
        ...     orbit = maneuver.target_orbit
    """

    def __init__(self):
        self._transfers: Deque[Deque[Maneuver]] = deque()

    def __len__(self) -> int:
        """Number of queued transfers, including a partially executed one."""
        return len(self._transfers)

    def __repr__(self) -> str:
        return (f"TransferSchedule(state={self.state.value}, transfers={len(self)}, "
                f"maneuvers={self.pending_maneuvers})")

    @property
    def state(self) -> ScheduleState:
        return ScheduleState.ACTIVE if self._transfers else ScheduleState.IDLE

    @property
    def is_idle(self) -> bool:
        return not self._transfers

    @property
    def pending_maneuvers(self) -> int:
        return sum(len(maneuvers) for maneuvers in self._transfers)

    @property
    def next_execution_time(self) -> Optional[float]:
        """Execution time of the maneuver that will run next, or None when idle."""
        if not self._transfers:
            return None
        return self._transfers[0][0].execution_time

    @property
    def final_orbit(self) -> Optional[Orbit]:
        """Orbit the body will be on once every queued maneuver has executed."""
        if not self._transfers:
            return None
        return self._transfers[-1][-1].target_orbit

    @property
    def final_execution_time(self) -> Optional[float]:
        if not self._transfers:
            return None
        return self._transfers[-1][-1].execution_time

    def maneuvers(self) -> List[Maneuver]:
        """Every maneuver still to execute, in execution order."""
        return [m for maneuvers in self._transfers for m in maneuvers]

    def push_transfer(self, transfer: Transfer) -> None:
        """
        Append a transfer behind everything already queued.

        The transfer's start orbit is not checked against the orbit the body
        will be on when the transfer begins.
        """
        self._transfers.append(deque(transfer.maneuvers))
        logger.debug("Queued transfer of %d maneuver(s) departing t=%.6g",
                     len(transfer), transfer.departure_time)

    def advance(self, time: float) -> Optional[Maneuver]:
        """
        Consume the front maneuver if it is due at ``time``.

        At most one maneuver is returned per call; further overdue maneuvers
        are returned by subsequent calls. The caller replaces the body's orbit
        with the returned maneuver's ``target_orbit``.

        Args:
            time: Current simulation time

        Returns:
            The executed maneuver, or None if nothing was due
        """
        if not self._transfers:
            return None

        active = self._transfers[0]
        if time < active[0].execution_time:
            return None

        maneuver = active.popleft()
        if not active:
            self._transfers.popleft()
        return maneuver

    def clear(self) -> int:
        """
        Cancel every maneuver that has not executed yet.

        Returns:
            Number of maneuvers cancelled
        """
        cancelled = self.pending_maneuvers
        self._transfers.clear()
        if cancelled:
            logger.info("Cancelled %d pending maneuver(s)", cancelled)
        return cancelled
