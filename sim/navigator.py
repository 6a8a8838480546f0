"""
sim/navigator.py
================
Moves each train's hop pointer along its route.

When a train comes within the arrival threshold of its next hop the hop
is consumed.  Entering a signalled junction turns the train's reservation
into occupancy of that block and frees the block it leaves; reaching the
destination parks the train in the station.  This is the only place a
block becomes occupied.
"""

from __future__ import annotations

import logging
from typing import List, Mapping, Optional

from sim.errors import ReleaseError, SignalProtocolError
from sim.network import JunctionGraph, Signal
from sim.physics import distance
from sim.rail_policy import RailPolicy
from sim.signals import FaultHandler, log_fault
from sim.train import Train

log = logging.getLogger("navigator")


class Navigator:
    def __init__(
        self,
        graph: JunctionGraph,
        policy: Optional[RailPolicy] = None,
        on_fault: Optional[FaultHandler] = None,
    ) -> None:
        self.graph = graph
        self.policy = policy or RailPolicy()
        self._on_fault = on_fault or log_fault

    def update(self, trains: Mapping[int, Train]) -> List[int]:
        """Advance every routed train.

        Returns
        -------
        list of int
            Ids of trains that reached their destination this tick.
        """
        arrived: List[int] = []
        for train in trains.values():
            route = train.route
            if route is None or route.next_hop is None:
                continue
            here = route.next_hop
            hx, hy = self.graph.position(here)
            if distance(train.x, train.y, hx, hy) >= self.policy.arrival_threshold:
                continue

            sig = self.graph.signal(here)
            if sig is not None:
                try:
                    self._hand_off(train, sig)
                except SignalProtocolError as exc:
                    # Hop stays queued; the hand-off is retried next tick.
                    self._on_fault(exc)
                    continue

            route.pop()
            if here == route.destination:
                self._arrive(train, here)
                arrived.append(train.id)
        return arrived

    def _hand_off(self, train: Train, sig: Signal) -> None:
        sig.occupy(train.id)
        prev = train.block_signal
        if prev is not None and prev != sig.junction_id:
            prev_sig = self.graph.signal(prev)
            try:
                if prev_sig is None:
                    raise ReleaseError(
                        f"train {train.id} recorded block {prev} without a signal",
                        prev, train.id,
                    )
                prev_sig.release_block(train.id)
            except ReleaseError as exc:
                self._on_fault(exc)
        train.block_signal = sig.junction_id
        train.current_limit = train.upcoming_limit
        train.upcoming_limit = None
        log.debug(
            "train %d entered block %d (left %s, limit %s)",
            train.id, sig.junction_id, prev, train.current_limit,
        )

    def _arrive(self, train: Train, station: int) -> None:
        train.route = None
        train.in_station = station
        train.current_limit = None
        train.upcoming_limit = None
        train.station_target = self.graph.position(station)
        log.info("train %d arrived at station %d", train.id, station)
