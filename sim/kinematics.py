"""
sim/kinematics.py
=================
Throttle control and motion integration.

Each tick the controller picks one of three actions for every en-route
train: brake at ``-amax``, accelerate at ``+amax`` or coast.  Braking is
triggered by exceeding the current limit or by coming closer to the next
hop than the braking distance for the speed allowed there.  Trains idle
in a station are walked directly onto their platform position.
"""

from __future__ import annotations

import logging
import math
from typing import Dict, Mapping, Optional, Tuple

from sim.network import JunctionGraph, SignalState
from sim.physics import braking_distance, distance, unit_vector
from sim.rail_policy import RailPolicy
from sim.train import Train

log = logging.getLogger("kinematics")

_STOP_STATES = (SignalState.HALT, SignalState.DARK)


class KinematicsController:
    def __init__(self, graph: JunctionGraph, policy: Optional[RailPolicy] = None) -> None:
        self.graph = graph
        self.policy = policy or RailPolicy()

    def update(self, trains: Mapping[int, Train], dt: float) -> None:
        """Set accelerations for every train, then integrate all of them.

        A routed train never moves past its next hop within one step, so
        the navigator sees every hop inside its arrival threshold.
        """
        hop_positions: Dict[int, Tuple[float, float]] = {}
        for train in trains.values():
            if train.route is not None and train.route.next_hop is not None:
                self.drive(train)
                hop_positions[train.id] = self.graph.position(train.route.next_hop)
            elif train.station_target is not None:
                self.maneuver(train, dt)
            else:
                train.ax = train.ay = 0.0
        for train in trains.values():
            self.integrate(train, dt, stop_at=hop_positions.get(train.id))

    # ── control ───────────────────────────────────────────────────────────

    def upcoming_speed(self, train: Train, hop: int) -> float:
        """Highest speed allowed when reaching *hop*."""
        sig = self.graph.signal(hop)
        if sig is not None and (
            sig.state in _STOP_STATES or sig.reserved_for != train.id
        ):
            # A cleared signal only clears the train it is reserved for.
            return 0.0
        if train.route is not None and hop == train.route.destination:
            return self.policy.platform_speed
        if train.upcoming_limit is not None:
            return train.upcoming_limit
        return train.vmax

    def drive(self, train: Train) -> None:
        hop = train.route.next_hop
        hx, hy = self.graph.position(hop)
        ux, uy, dist = unit_vector(train.x, train.y, hx, hy)
        if dist == 0.0:
            # Parked on a hop it may not enter yet.
            train.stop()
            return

        v = train.speed
        # Trains are bound to the rail: velocity follows the segment.
        train.vx, train.vy = ux * v, uy * v

        v_target = train.current_limit if train.current_limit is not None else train.vmax
        if v > v_target:
            self._set_accel(train, ux, uy, -train.amax)
            return

        v_upcoming = self.upcoming_speed(train, hop)
        if v > v_upcoming and dist < braking_distance(
            v, v_upcoming, train.amax, self.policy.safety_margin,
        ):
            self._set_accel(train, ux, uy, -train.amax)
        elif v < min(v_target, v_upcoming):
            self._set_accel(train, ux, uy, train.amax)
        else:
            self._set_accel(train, ux, uy, 0.0)

    def maneuver(self, train: Train, dt: float) -> None:
        """Move a station train straight onto its platform position."""
        tx, ty = train.station_target
        ux, uy, dist = unit_vector(train.x, train.y, tx, ty)
        train.ax = train.ay = 0.0
        if dist < self.policy.station_epsilon:
            train.vx = train.vy = 0.0
            train.station_target = None
            return
        s = self.policy.maneuver_speed
        if dt > 0.0:
            s = min(s, dist / dt)
        train.vx, train.vy = ux * s, uy * s

    @staticmethod
    def _set_accel(train: Train, ux: float, uy: float, a: float) -> None:
        train.ax = ux * a
        train.ay = uy * a

    # ── integration ───────────────────────────────────────────────────────

    @staticmethod
    def integrate(
        train: Train,
        dt: float,
        stop_at: Optional[Tuple[float, float]] = None,
    ) -> None:
        """Symplectic Euler step; braking stops a train rather than reversing it.

        Parameters
        ----------
        train : Train
            Train to advance.
        dt : float
            Step length in seconds.
        stop_at : tuple or None
            Next hop position.  A step that would carry the train past it
            ends on the hop instead, keeping the velocity.
        """
        old_vx, old_vy = train.vx, train.vy
        train.vx += train.ax * dt
        train.vy += train.ay * dt
        braking = train.ax * old_vx + train.ay * old_vy < 0.0
        if braking and train.vx * old_vx + train.vy * old_vy <= 0.0:
            train.stop()
        step_x = train.vx * dt
        step_y = train.vy * dt
        if stop_at is not None:
            remaining = distance(train.x, train.y, stop_at[0], stop_at[1])
            if math.hypot(step_x, step_y) >= remaining:
                train.x, train.y = stop_at
                return
        train.x += step_x
        train.y += step_y
