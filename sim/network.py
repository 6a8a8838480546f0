"""
sim/network.py
==============
Rail-network topology.

Defines :class:`Signal`, :class:`Junction` and :class:`JunctionGraph` — a
lightweight undirected graph of junctions indexed by integer ids.  Some
junctions are terminals (mines, plants) where trains start and end their
trips; some carry a :class:`Signal` guarding the block behind them.

:func:`default_network` builds the demo layout: a coal mine feeding two
power plants over a two-way signalled line.
"""

from __future__ import annotations

import enum
import logging
import math
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Tuple

from sim.errors import HandoffError, ReleaseError, ReservationConflict

log = logging.getLogger("network")


class SignalState(enum.Enum):
    DARK = "DARK"
    HALT = "HALT"
    SLOW = "SLOW"
    GO = "GO"


class JunctionRole(enum.Enum):
    COAL_MINE = "COAL_MINE"
    POWER_PLANT = "POWER_PLANT"
    WAYPOINT = "WAYPOINT"


# ── Signal ────────────────────────────────────────────────────────────────────

@dataclass
class Signal:
    """Mutual-exclusion gate for the block behind a junction.

    ``reserved_for`` and ``occupied_by`` are plain train ids, never owning
    references.  All mutation goes through the methods below, which refuse
    any request that would put two different trains on the same signal.
    """

    junction_id: int
    state: SignalState = SignalState.DARK
    reserved_for: Optional[int] = None
    occupied_by: Optional[int] = None

    def is_free_for(self, train_id: int) -> bool:
        """True when neither a reservation nor an occupant belongs to another train."""
        return (
            self.reserved_for in (None, train_id)
            and self.occupied_by in (None, train_id)
        )

    def reserve(self, train_id: int) -> None:
        if self.reserved_for == train_id:
            return
        if not self.is_free_for(train_id):
            holder = self.reserved_for if self.reserved_for is not None else self.occupied_by
            raise ReservationConflict(
                f"signal {self.junction_id} held by train {holder}, "
                f"refused to train {train_id}",
                self.junction_id, train_id, holder,
            )
        self.reserved_for = train_id

    def release_reservation(self, train_id: int) -> None:
        if self.reserved_for != train_id:
            raise ReleaseError(
                f"train {train_id} released signal {self.junction_id} "
                f"reserved for {self.reserved_for}",
                self.junction_id, train_id, self.reserved_for,
            )
        self.reserved_for = None

    def occupy(self, train_id: int) -> None:
        """Turn this train's reservation into physical occupancy."""
        if self.reserved_for != train_id or self.occupied_by not in (None, train_id):
            raise HandoffError(
                f"train {train_id} entered block {self.junction_id} "
                f"(reserved_for={self.reserved_for}, occupied_by={self.occupied_by})",
                self.junction_id, train_id, self.occupied_by,
            )
        self.reserved_for = None
        self.occupied_by = train_id

    def release_block(self, train_id: int) -> None:
        if self.occupied_by != train_id:
            raise ReleaseError(
                f"train {train_id} left block {self.junction_id} "
                f"occupied by {self.occupied_by}",
                self.junction_id, train_id, self.occupied_by,
            )
        self.occupied_by = None


# ── Junction node ─────────────────────────────────────────────────────────────

@dataclass
class Junction:
    """A single point on the rail network.

    Parameters
    ----------
    id : int
        Opaque identifier allocated by :class:`JunctionGraph`.
    x, y : float
        World-space position.
    is_terminal : bool
        True only for real origins/destinations (mines, plants).
    role : JunctionRole
        What sits at this junction.
    """

    id: int
    x: float
    y: float
    is_terminal: bool = False
    role: JunctionRole = JunctionRole.WAYPOINT
    neighbors: List[int] = field(default_factory=list)
    signal: Optional[Signal] = None


# ── Junction graph ────────────────────────────────────────────────────────────

class JunctionGraph:
    """Undirected graph of junctions.

    Provides helpers used by :class:`~sim.world.World`, the planner and
    the dispatcher:

    * **connect** — symmetric edge insertion.
    * **neighbors** — ordered adjacency, part of the planner's contract.
    * **resolve_or_create** — map an editor endpoint onto a junction.
    """

    def __init__(self) -> None:
        self.junctions: Dict[int, Junction] = {}
        self._next_id = 0

    # ── construction ──────────────────────────────────────────────────────

    def add_junction(
        self,
        x: float,
        y: float,
        *,
        terminal: bool = False,
        role: JunctionRole = JunctionRole.WAYPOINT,
        signal: bool = False,
    ) -> int:
        jid = self._next_id
        self._next_id += 1
        node = Junction(id=jid, x=float(x), y=float(y), is_terminal=terminal, role=role)
        if signal:
            node.signal = Signal(junction_id=jid)
        self.junctions[jid] = node
        return jid

    def connect(self, a: int, b: int) -> None:
        """Add an undirected edge between *a* and *b*.

        Connecting an already-connected pair leaves the adjacency unchanged.
        """
        if a == b:
            log.warning("refusing to connect junction %d to itself", a)
            return
        left = self.junctions[a]
        right = self.junctions[b]
        if b not in left.neighbors:
            left.neighbors.append(b)
        if a not in right.neighbors:
            right.neighbors.append(a)

    # ── queries ───────────────────────────────────────────────────────────

    def neighbors(self, jid: int) -> List[int]:
        return list(self.junctions[jid].neighbors)

    def is_terminal(self, jid: int) -> bool:
        return self.junctions[jid].is_terminal

    def has_signal(self, jid: int) -> bool:
        return self.junctions[jid].signal is not None

    def signal(self, jid: int) -> Optional[Signal]:
        return self.junctions[jid].signal

    def signals(self) -> Iterator[Signal]:
        """All signals in junction-id order."""
        for jid in sorted(self.junctions):
            sig = self.junctions[jid].signal
            if sig is not None:
                yield sig

    def position(self, jid: int) -> Tuple[float, float]:
        node = self.junctions[jid]
        return node.x, node.y

    def terminals(self) -> List[int]:
        return [jid for jid, node in sorted(self.junctions.items()) if node.is_terminal]

    def nearest(self, x: float, y: float, radius: float) -> Optional[int]:
        """Closest junction within *radius* of *(x, y)*, or ``None``."""
        best: Optional[int] = None
        best_d = radius
        for jid in sorted(self.junctions):
            node = self.junctions[jid]
            d = math.hypot(node.x - x, node.y - y)
            if d <= best_d:
                best, best_d = jid, d
        return best

    # ── rail editing ──────────────────────────────────────────────────────

    def resolve_or_create(self, x: float, y: float, snap_radius: float) -> int:
        jid = self.nearest(x, y, snap_radius)
        if jid is None:
            jid = self.add_junction(x, y)
            log.info("created waypoint junction %d at (%.1f, %.1f)", jid, x, y)
        return jid

    def add_rail_segment(
        self,
        start: Tuple[float, float],
        end: Tuple[float, float],
        snap_radius: float,
    ) -> Tuple[int, int]:
        """Connect the junctions at (or created for) both segment endpoints."""
        a = self.resolve_or_create(start[0], start[1], snap_radius)
        b = self.resolve_or_create(end[0], end[1], snap_radius)
        self.connect(a, b)
        return a, b


# ── Default layout ────────────────────────────────────────────────────────────

def default_network() -> Tuple[JunctionGraph, Dict[str, int]]:
    """Build the demo layout.

    A coal mine connects to the bottom power plant over two parallel
    tracks (outbound 1→4, inbound 8→5).  The top power plant only has its
    own approach junction and is unreachable, so trains sent there are
    dropped by the planner.

    Returns
    -------
    tuple
        ``(graph, names)`` where *names* maps ``"coal_mine"``,
        ``"bottom_power_plant"`` and ``"top_power_plant"`` to junction ids.
    """
    g = JunctionGraph()
    coal_mine = g.add_junction(10.0, 15.0, terminal=True, role=JunctionRole.COAL_MINE)
    bottom_pp = g.add_junction(600.0, 460.0, terminal=True, role=JunctionRole.POWER_PLANT)
    top_pp = g.add_junction(600.0, 180.0, terminal=True, role=JunctionRole.POWER_PLANT)

    # One junction in front of each terminal
    j_cm = g.add_junction(20.0, 25.0)
    g.connect(j_cm, coal_mine)
    j_bpp = g.add_junction(590.0, 450.0)
    g.connect(j_bpp, bottom_pp)
    j_tpp = g.add_junction(590.0, 190.0)
    g.connect(j_tpp, top_pp)

    # Track coal mine -> bottom power plant
    j_1 = g.add_junction(20.0, 35.0)
    g.connect(j_cm, j_1)
    j_2 = g.add_junction(140.0, 160.0, signal=True)
    g.connect(j_1, j_2)
    j_3 = g.add_junction(190.0, 200.0, signal=True)
    g.connect(j_2, j_3)
    j_4 = g.add_junction(580.0, 450.0, signal=True)
    g.connect(j_3, j_4)
    g.connect(j_4, j_bpp)

    # Track bottom power plant -> coal mine (5 is next to 1, 6 to 2, ...)
    j_5 = g.add_junction(30.0, 25.0, signal=True)
    g.connect(j_cm, j_5)
    j_6 = g.add_junction(150.0, 150.0, signal=True)
    g.connect(j_5, j_6)
    j_7 = g.add_junction(200.0, 190.0, signal=True)
    g.connect(j_6, j_7)
    j_8 = g.add_junction(590.0, 440.0)
    g.connect(j_7, j_8)
    g.connect(j_8, j_bpp)

    names = {
        "coal_mine": coal_mine,
        "bottom_power_plant": bottom_pp,
        "top_power_plant": top_pp,
    }
    return g, names
