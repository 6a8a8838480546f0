#!/usr/bin/env python3
"""
sim/world.py
============
Entity-based rail world.

The :class:`World` owns the junction graph, the train table and the
per-tick pipeline::

    editor events → RoutePlanner → Navigator → SignalDispatcher
        → KinematicsController → ReservationCleaner → commit

Every component reads what earlier phases committed in the same tick.
Trains are only created or removed in the commit phase so no component
ever iterates over a half-built or half-removed train.
"""

from __future__ import annotations

import itertools
import logging
from typing import Any, Dict, List, Optional, Tuple

import config
from bus.event_bus import (
    EventBus,
    TOPIC_FAULT,
    TOPIC_RAIL_SEGMENT,
    TOPIC_TRAIN_ARRIVED,
    TOPIC_TRAIN_DOOMED,
)
from sim.commands import CommandQueue
from sim.errors import SignalProtocolError
from sim.kinematics import KinematicsController
from sim.navigator import Navigator
from sim.network import JunctionGraph, default_network
from sim.rail_policy import RailPolicy
from sim.routing import RoutePlanner
from sim.signals import ReservationCleaner, SignalDispatcher
from sim.train import Train

log = logging.getLogger("world")

DEFAULT_VMAX: float = config.DEFAULT_TRAIN_VMAX
DEFAULT_AMAX: float = config.DEFAULT_TRAIN_AMAX


class World:
    """Rail network plus the trains running on it.

    Parameters
    ----------
    graph : JunctionGraph or None
        The rail layout.  Uses :func:`default_network` when *None*.
    policy : RailPolicy or None
        Tunable constants; uses defaults when *None*.
    bus : EventBus or None
        Event transport shared with the editor and renderer.  A private
        bus is created when *None*.
    """

    def __init__(
        self,
        graph: Optional[JunctionGraph] = None,
        policy: Optional[RailPolicy] = None,
        bus: Optional[EventBus] = None,
    ) -> None:
        self.policy = policy or RailPolicy()
        self.landmarks: Dict[str, int] = {}
        if graph is None:
            graph, self.landmarks = default_network()
        self.graph = graph
        self.bus = bus or EventBus()
        self.trains: Dict[int, Train] = {}
        self.commands = CommandQueue()
        self.faults: int = 0
        self._ids = itertools.count(1)
        self._tick_count: int = 0
        self._elapsed: float = 0.0

        self.planner = RoutePlanner(self.graph, self.policy)
        self.navigator = Navigator(self.graph, self.policy, on_fault=self._report_fault)
        self.dispatcher = SignalDispatcher(self.graph, self.policy, on_fault=self._report_fault)
        self.kinematics = KinematicsController(self.graph, self.policy)
        self.cleaner = ReservationCleaner(self.graph, on_fault=self._report_fault)

    # ── operator commands ─────────────────────────────────────────────────

    def spawn_train(
        self,
        at: int,
        destination: int,
        vmax: Optional[float] = None,
        amax: Optional[float] = None,
    ) -> int:
        """Queue a new train in the station at terminal *at*.

        The id is returned at once; the train joins the world at the end
        of the next tick and is planned on the tick after.
        """
        if not self.graph.is_terminal(at):
            raise ValueError(f"junction {at} is not a terminal")
        if destination not in self.graph.junctions:
            raise KeyError(destination)
        x, y = self.graph.position(at)
        train = Train(
            id=next(self._ids),
            x=x,
            y=y,
            vmax=DEFAULT_VMAX if vmax is None else float(vmax),
            amax=DEFAULT_AMAX if amax is None else float(amax),
            in_station=at,
            destination=destination,
        )
        self.commands.spawn(train)
        log.info("train %d queued at %d bound for %d", train.id, at, destination)
        return train.id

    def dispatch_train(self, train_id: int, destination: int) -> None:
        """Give an idle station train its next trip."""
        train = self.trains[train_id]
        if destination not in self.graph.junctions:
            raise KeyError(destination)
        if train.in_station is None:
            raise ValueError(f"train {train_id} is not in a station")
        train.destination = destination
        log.info("train %d dispatched from %d to %d", train_id, train.in_station, destination)

    def add_rail_segment(
        self,
        start: Tuple[float, float],
        end: Tuple[float, float],
    ) -> Tuple[int, int]:
        return self.graph.add_rail_segment(start, end, self.policy.snap_radius)

    # ── tick ──────────────────────────────────────────────────────────────

    def update(self, dt: float) -> None:
        """Advance the whole simulation by *dt* seconds."""
        self._tick_count += 1
        self._elapsed += dt
        self._drain_editor_events()

        self.planner.assign_routes(self.trains.values(), self.commands)
        for train_id in self.navigator.update(self.trains):
            train = self.trains[train_id]
            self.bus.publish(
                TOPIC_TRAIN_ARRIVED, "world",
                {"train": train_id, "station": train.in_station},
            )
        self.dispatcher.update(self.trains)
        self.kinematics.update(self.trains, dt)
        self.cleaner.update(self.trains)
        self.commands.apply(self)

        if self._tick_count % 100 == 1:
            log.debug(
                "=== TICK %d t=%.2f trains=%d faults=%d ===",
                self._tick_count, self._elapsed, len(self.trains), self.faults,
            )

    def _drain_editor_events(self) -> None:
        for msg in self.bus.poll(TOPIC_RAIL_SEGMENT):
            try:
                start = tuple(msg.payload["start"])
                end = tuple(msg.payload["end"])
                a, b = self.add_rail_segment(start, end)
            except (KeyError, TypeError, ValueError) as exc:
                log.warning("ignoring malformed rail segment %s: %r", msg.id, exc)
                continue
            log.info("rail segment %d <-> %d from %s", a, b, msg.sender)

    def _report_fault(self, exc: SignalProtocolError) -> None:
        self.faults += 1
        log.warning("fault #%d: %s", self.faults, exc)
        self.bus.publish(
            TOPIC_FAULT, "world",
            {
                "kind": type(exc).__name__,
                "message": str(exc),
                "junction": exc.junction_id,
                "train": exc.train_id,
            },
        )

    # ── commit hooks (called by CommandQueue) ─────────────────────────────

    def _insert_train(self, train: Train) -> None:
        self.trains[train.id] = train

    def _remove_train(self, train_id: int, reason: str) -> None:
        train = self.trains.pop(train_id, None)
        if train is None:
            log.warning("despawn of unknown train %d ignored", train_id)
            return
        self.cleaner.release_all(train)
        log.info("train %d removed: %s", train_id, reason)
        self.bus.publish(TOPIC_TRAIN_DOOMED, "world", {"train": train_id, "reason": reason})

    # ── queries ───────────────────────────────────────────────────────────

    @property
    def tick_count(self) -> int:
        return self._tick_count

    @property
    def elapsed(self) -> float:
        return self._elapsed

    def train_states(self) -> List[Dict[str, Any]]:
        return [train.as_dict() for train in self.trains.values()]

    def junction_states(self) -> List[Dict[str, Any]]:
        """Positions and signal display states for renderers."""
        out: List[Dict[str, Any]] = []
        for jid in sorted(self.graph.junctions):
            node = self.graph.junctions[jid]
            sig = node.signal
            out.append({
                "id": jid,
                "x": node.x,
                "y": node.y,
                "terminal": node.is_terminal,
                "role": node.role.value,
                "neighbors": list(node.neighbors),
                "signal": sig.state.value if sig is not None else None,
                "reserved_for": sig.reserved_for if sig is not None else None,
                "occupied_by": sig.occupied_by if sig is not None else None,
            })
        return out
