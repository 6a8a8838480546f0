"""
sim/errors.py
=============
Exception hierarchy for the rail simulation.

:class:`NoRouteFound` is terminal for the requesting train.  The
:class:`SignalProtocolError` family replaces hard assertions: each one
aborts a single component action for one tick and is surfaced as a
fault, leaving the reservation chain untouched.
"""

from __future__ import annotations

from typing import Optional


class RailSimError(Exception):
    """Base class for every simulation error."""


class NoRouteFound(RailSimError):
    """No path exists between two junctions within the hop budget."""

    def __init__(self, origin: int, destination: int) -> None:
        super().__init__(f"no route from junction {origin} to junction {destination}")
        self.origin = origin
        self.destination = destination


class SignalProtocolError(RailSimError):
    """A reservation or hand-off request that would corrupt a signal."""

    def __init__(
        self,
        message: str,
        junction_id: int,
        train_id: int,
        holder: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.junction_id = junction_id
        self.train_id = train_id
        self.holder = holder


class ReservationConflict(SignalProtocolError):
    """The block is already reserved or occupied by another train."""


class HandoffError(SignalProtocolError):
    """A train tried to enter a block it does not hold."""


class ReleaseError(SignalProtocolError):
    """A train tried to release a reservation or block it never held."""
