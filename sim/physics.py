#!/usr/bin/env python3
"""
sim/physics.py
==============
Low-level physics helpers used by :mod:`sim.kinematics`,
:mod:`sim.navigator` and :mod:`sim.signals`.

Keeping these in a separate module avoids circular imports and makes unit
testing straightforward.
"""

from __future__ import annotations

import math
from typing import Tuple


def distance(ax: float, ay: float, bx: float, by: float) -> float:
    """Straight-line distance between two points."""
    return math.hypot(bx - ax, by - ay)


def unit_vector(ax: float, ay: float, bx: float, by: float) -> Tuple[float, float, float]:
    """Direction from *(ax, ay)* to *(bx, by)*.

    Returns
    -------
    tuple
        ``(ux, uy, dist)``; the unit vector is ``(0, 0)`` when both points
        coincide.
    """
    dx = bx - ax
    dy = by - ay
    dist = math.hypot(dx, dy)
    if dist < 1e-9:
        return 0.0, 0.0, 0.0
    return dx / dist, dy / dist, dist


def speed(vx: float, vy: float) -> float:
    return math.hypot(vx, vy)


def braking_distance(
    v_current: float,
    v_upcoming: float,
    amax: float,
    safety_margin: float,
) -> float:
    """Distance needed to slow from *v_current* to *v_upcoming*.

    Parameters
    ----------
    v_current : float
        Current speed.
    v_upcoming : float
        Speed the train must not exceed at the next hop.
    amax : float
        Braking deceleration of the train.
    safety_margin : float
        Fixed extra distance covering physical overrun past a signal.

    Returns
    -------
    float
        ``(v_current - v_upcoming)^2 / amax + safety_margin``.
    """
    a = max(1e-6, amax)
    dv = v_current - v_upcoming
    return (dv * dv) / a + safety_margin


def signal_speed_limit(
    spacing: float,
    margin: float,
    deceleration: float,
    cruise_speed: float,
) -> float:
    """Highest speed at which a train can still stop within *spacing*.

    ``sqrt(max(0, spacing - margin) * deceleration)`` capped at
    *cruise_speed*.
    """
    limit = math.sqrt(max(0.0, spacing - margin) * deceleration)
    return min(limit, cruise_speed)
