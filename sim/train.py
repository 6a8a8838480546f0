"""
sim/train.py
============
Train entity and its route queue.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from typing import Any, Deque, Dict, Iterable, List, Optional, Tuple

from sim.physics import speed


@dataclass
class Route:
    """Ordered hops still to be visited, ending at ``destination``."""

    hops: Deque[int]
    destination: int

    @classmethod
    def from_hops(cls, hops: Iterable[int]) -> "Route":
        queue = deque(hops)
        return cls(hops=queue, destination=queue[-1])

    @property
    def next_hop(self) -> Optional[int]:
        return self.hops[0] if self.hops else None

    def pop(self) -> int:
        return self.hops.popleft()


@dataclass
class Train:
    """A single train.

    Attributes
    ----------
    id : int
        Entity id allocated by :class:`~sim.world.World`.
    x, y : float
        World-space position.
    vx, vy, ax, ay : float
        Velocity and acceleration vectors.
    route : Route or None
        Set while en route.
    in_station : int or None
        Junction id of the station the train is idle in.
    destination : int or None
        Travel intent waiting for the planner.
    current_limit, upcoming_limit : float or None
        Speed limits imposed by the signal system.
    block_signal : int or None
        Junction id of the signalled block the train physically occupies.
    station_target : tuple or None
        Intra-station repositioning point.
    """

    id: int
    x: float
    y: float
    vmax: float
    amax: float
    vx: float = 0.0
    vy: float = 0.0
    ax: float = 0.0
    ay: float = 0.0
    route: Optional[Route] = None
    in_station: Optional[int] = None
    destination: Optional[int] = None
    current_limit: Optional[float] = None
    upcoming_limit: Optional[float] = None
    block_signal: Optional[int] = None
    station_target: Optional[Tuple[float, float]] = field(default=None, repr=False)

    @property
    def speed(self) -> float:
        return speed(self.vx, self.vy)

    def signal_hops_ahead(self, has_signal: Any, limit: int = 2) -> List[int]:
        """First *limit* signal-bearing hops left on the route, in order."""
        if self.route is None:
            return []
        found: List[int] = []
        for hop in self.route.hops:
            if has_signal(hop):
                found.append(hop)
                if len(found) == limit:
                    break
        return found

    def stop(self) -> None:
        self.vx = self.vy = 0.0
        self.ax = self.ay = 0.0

    def as_dict(self) -> Dict[str, Any]:
        """Serialisable snapshot for renderers and the API."""
        return {
            "id": self.id,
            "x": self.x,
            "y": self.y,
            "speed": self.speed,
            "in_station": self.in_station,
            "next_hop": self.route.next_hop if self.route else None,
            "destination": (
                self.route.destination if self.route else self.destination
            ),
            "current_limit": self.current_limit,
            "upcoming_limit": self.upcoming_limit,
        }
