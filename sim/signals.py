"""
sim/signals.py
==============
Block reservation protocol and signal state derivation.

:class:`SignalDispatcher` hands out forward reservations two signals
ahead of every en-route train and derives what each signal displays.
A train is only waved through a signal when the *next* signalled block
on its route is also reserved for it, or when no further signal lies
between it and its destination, so it can never be forced to stop in
the middle of a block.

:class:`ReservationCleaner` releases whatever a train still holds once it
has stopped in a station.
"""

from __future__ import annotations

import logging
from typing import Callable, Dict, Mapping, Optional

from sim.errors import ReleaseError, ReservationConflict, SignalProtocolError
from sim.network import JunctionGraph, SignalState
from sim.physics import distance, signal_speed_limit
from sim.rail_policy import RailPolicy
from sim.train import Train

log = logging.getLogger("signals")

FaultHandler = Callable[[SignalProtocolError], None]


def log_fault(exc: SignalProtocolError) -> None:
    log.warning("signal fault: %s", exc)


class SignalDispatcher:
    """Grants reservations (phase A) and sets signal states (phase B).

    Parameters
    ----------
    graph : JunctionGraph
        Network whose signals are managed.
    policy : RailPolicy or None
        Speed-limit constants; defaults when *None*.
    on_fault : callable or None
        Receives every protocol violation; logs a warning when *None*.
    """

    def __init__(
        self,
        graph: JunctionGraph,
        policy: Optional[RailPolicy] = None,
        on_fault: Optional[FaultHandler] = None,
    ) -> None:
        self.graph = graph
        self.policy = policy or RailPolicy()
        self._on_fault = on_fault or log_fault

    def update(self, trains: Mapping[int, Train]) -> None:
        go_eligible = self._grant_reservations(trains)
        self._derive_states(trains, go_eligible)

    # ── phase A ───────────────────────────────────────────────────────────

    def _grant_reservations(self, trains: Mapping[int, Train]) -> Dict[int, int]:
        """Reserve up to two signals ahead of each train, in route order.

        The first signal may show GO once every signal ahead is held.  When
        only one signal is left on the route the block beyond it ends at
        the destination terminal, so holding that single signal is enough
        and no block speed limit is derived for it.

        Returns
        -------
        dict
            Signal junction id → train id for signals allowed to show GO.
        """
        go_eligible: Dict[int, int] = {}
        for train in trains.values():
            ahead = train.signal_hops_ahead(self.graph.has_signal)
            if not ahead:
                continue
            held = 0
            for jid in ahead:
                sig = self.graph.signal(jid)
                if not sig.is_free_for(train.id):
                    break
                try:
                    sig.reserve(train.id)
                except ReservationConflict as exc:
                    self._on_fault(exc)
                    break
                held += 1
            if held < len(ahead):
                continue

            first = ahead[0]
            go_eligible[first] = train.id
            # A single signal ahead leads straight to the destination;
            # no block limit is derived for it.
            if len(ahead) < 2 or train.upcoming_limit is not None:
                continue
            ax, ay = self.graph.position(first)
            bx, by = self.graph.position(ahead[1])
            limit = signal_speed_limit(
                distance(ax, ay, bx, by),
                self.policy.limit_margin,
                self.policy.assumed_deceleration,
                self.policy.assumed_cruise_speed,
            )
            if limit < self.policy.assumed_cruise_speed:
                train.upcoming_limit = limit
                log.debug("train %d staged limit %.2f before signal %d", train.id, limit, first)
        return go_eligible

    # ── phase B ───────────────────────────────────────────────────────────

    def _derive_states(self, trains: Mapping[int, Train], go_eligible: Dict[int, int]) -> None:
        for sig in self.graph.signals():
            if sig.occupied_by is not None:
                state = SignalState.HALT
            elif sig.reserved_for is not None:
                if go_eligible.get(sig.junction_id) == sig.reserved_for:
                    holder = trains.get(sig.reserved_for)
                    limit = holder.upcoming_limit if holder is not None else None
                    if limit is not None and limit < self.policy.slow_threshold:
                        state = SignalState.SLOW
                    else:
                        state = SignalState.GO
                else:
                    state = SignalState.HALT
            else:
                state = SignalState.DARK
            if state is not sig.state:
                log.debug(
                    "signal %d %s -> %s (reserved_for=%s occupied_by=%s)",
                    sig.junction_id, sig.state.value, state.value,
                    sig.reserved_for, sig.occupied_by,
                )
                sig.state = state


class ReservationCleaner:
    """Releases blocks and reservations still held by trains in a station."""

    def __init__(self, graph: JunctionGraph, on_fault: Optional[FaultHandler] = None) -> None:
        self.graph = graph
        self._on_fault = on_fault or log_fault

    def update(self, trains: Mapping[int, Train]) -> None:
        for train in trains.values():
            if train.in_station is not None:
                self.release_all(train)

    def release_all(self, train: Train) -> None:
        """Drop every hold *train* has on any signal."""
        if train.block_signal is not None:
            sig = self.graph.signal(train.block_signal)
            try:
                if sig is None:
                    raise ReleaseError(
                        f"train {train.id} recorded block {train.block_signal} without a signal",
                        train.block_signal, train.id,
                    )
                sig.release_block(train.id)
            except ReleaseError as exc:
                self._on_fault(exc)
            train.block_signal = None

        for sig in self.graph.signals():
            if sig.occupied_by == train.id:
                sig.release_block(train.id)
                log.debug("released stale block %d from train %d", sig.junction_id, train.id)
            if sig.reserved_for == train.id:
                sig.release_reservation(train.id)
                log.debug("released reservation %d from train %d", sig.junction_id, train.id)
