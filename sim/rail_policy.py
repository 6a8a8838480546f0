#!/usr/bin/env python3
"""
sim/rail_policy.py
==================
Tunable signalling, routing and physics parameters for the rail
simulation.  Every constant lives in the frozen :class:`RailPolicy`
dataclass so that experiments can swap policies without touching code.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class RailPolicy:
    """Immutable bag of every tunable simulation parameter.

    Groups: navigation, route planning, braking law, signal speed
    limits, station maneuvering, rail editing.
    """

    # ── Navigation ────────────────────────────────────────────────────────
    arrival_threshold: float = 2.0
    """Distance below which a train is considered to have reached a hop."""

    # ── Route planning ────────────────────────────────────────────────────
    hop_budget: int = 32
    """Maximum number of hops a planned route may contain."""

    # ── Braking law ───────────────────────────────────────────────────────
    safety_margin: float = 12.0
    """Extra distance added to every braking distance (overrun past a signal)."""

    platform_speed: float = 3.0
    """Approach speed on the final hop into a destination station."""

    # ── Signal speed limits ───────────────────────────────────────────────
    assumed_deceleration: float = 4.0
    """Deceleration the dispatcher assumes when deriving a block speed limit."""

    assumed_cruise_speed: float = 30.0
    """Derived limits are capped at this speed; limits at the cap are dropped."""

    limit_margin: float = 0.0
    """Distance subtracted from the signal spacing before deriving a limit."""

    slow_threshold: float = 15.0
    """A reserved signal shows SLOW instead of GO below this staged limit."""

    # ── Station maneuvering ───────────────────────────────────────────────
    station_epsilon: float = 0.2
    """Distance below which a repositioning train snaps to a standstill."""

    maneuver_speed: float = 2.0
    """Speed used while repositioning inside a station."""

    # ── Rail editing ──────────────────────────────────────────────────────
    snap_radius: float = 8.0
    """Editor segment endpoints within this radius reuse an existing junction."""
