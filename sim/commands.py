"""
sim/commands.py
===============
Deferred entity creation and removal.

Components running inside a tick never add or remove trains directly;
they queue a command here and :meth:`CommandQueue.apply` runs at the end
of the tick, after every component has finished iterating.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, List, Tuple

from sim.train import Train

if TYPE_CHECKING:
    from sim.world import World


class CommandQueue:
    def __init__(self) -> None:
        self._spawns: List[Train] = []
        self._despawns: List[Tuple[int, str]] = []

    def __len__(self) -> int:
        return len(self._spawns) + len(self._despawns)

    def spawn(self, train: Train) -> None:
        self._spawns.append(train)

    def despawn(self, train_id: int, reason: str = "") -> None:
        self._despawns.append((train_id, reason))

    def apply(self, world: "World") -> None:
        """Commit queued spawns, then queued removals."""
        spawns, self._spawns = self._spawns, []
        despawns, self._despawns = self._despawns, []
        for train in spawns:
            world._insert_train(train)
        for train_id, reason in despawns:
            world._remove_train(train_id, reason)
