"""
sim/routing.py
==============
Route planning across the junction graph.

:class:`RoutePlanner` walks the graph depth-first from a station to a
destination.  At every junction it first tries the neighbors that carry
no signal and only falls back to signal-bearing ones when that finds
nothing, so trains leaving a station do not cut across blocks used by
incoming traffic where a signal-free alternative exists.
"""

from __future__ import annotations

import logging
from collections import deque
from typing import TYPE_CHECKING, Iterable, Iterator, List, Optional, Set

from sim.errors import NoRouteFound
from sim.network import JunctionGraph
from sim.rail_policy import RailPolicy
from sim.train import Route, Train

if TYPE_CHECKING:
    from sim.commands import CommandQueue

log = logging.getLogger("routing")


class RoutePlanner:
    """Depth-first route search with a signal-avoiding bias.

    Parameters
    ----------
    graph : JunctionGraph
        Network to search.
    policy : RailPolicy or None
        Supplies ``hop_budget``; defaults when *None*.
    """

    def __init__(self, graph: JunctionGraph, policy: Optional[RailPolicy] = None) -> None:
        self.graph = graph
        self.policy = policy or RailPolicy()

    def _candidates(self, node: int, prev: Optional[int]) -> Iterator[int]:
        """Neighbors of *node* in visiting order: signal-free first."""
        nbrs = [n for n in self.graph.neighbors(node) if n != prev]
        for n in nbrs:
            if not self.graph.has_signal(n):
                yield n
        for n in nbrs:
            if self.graph.has_signal(n):
                yield n

    def _hops_to(self, origin: int, destination: int, budget: int) -> Optional[int]:
        """Fewest hops from *origin* to *destination*, or ``None`` past *budget*."""
        depth = {origin: 0}
        frontier = deque([origin])
        while frontier:
            node = frontier.popleft()
            if depth[node] >= budget:
                continue
            for n in self.graph.neighbors(node):
                if n in depth:
                    continue
                depth[n] = depth[node] + 1
                if n == destination:
                    return depth[n]
                frontier.append(n)
        return None

    def plan_route(self, origin: int, destination: int) -> List[int]:
        """Find the hop sequence from *origin* to *destination*.

        Returns
        -------
        list of int
            Junctions to visit after *origin*, ending with *destination*.
            Empty when both are the same junction.

        Raises
        ------
        NoRouteFound
            When the destination is unreachable within the hop budget.
        """
        if origin == destination:
            return []
        budget = self.policy.hop_budget
        if self._hops_to(origin, destination, budget) is None:
            # No path of at most `budget` hops exists.
            raise NoRouteFound(origin, destination)
        path: List[int] = [origin]
        on_path: Set[int] = {origin}
        stack: List[Iterator[int]] = [self._candidates(origin, None)]

        while stack:
            nxt = next(stack[-1], None)
            if nxt is None:
                stack.pop()
                on_path.discard(path.pop())
                continue
            if nxt in on_path:
                continue
            if nxt == destination:
                hops = path[1:] + [nxt]
                log.debug("route %d -> %d: %s", origin, destination, hops)
                return hops
            if len(path) >= budget:
                continue
            path.append(nxt)
            on_path.add(nxt)
            stack.append(self._candidates(nxt, path[-2]))

        raise NoRouteFound(origin, destination)

    def assign_routes(self, trains: Iterable[Train], commands: "CommandQueue") -> None:
        """Plan a trip for every station train with a pending destination.

        Trains whose destination is unreachable are queued for removal.
        """
        for train in trains:
            if train.route is not None or train.destination is None:
                continue
            if train.in_station is None:
                continue
            try:
                hops = self.plan_route(train.in_station, train.destination)
            except NoRouteFound as exc:
                log.warning("train %d doomed: %s", train.id, exc)
                commands.despawn(train.id, reason=str(exc))
                continue
            if not hops:
                log.info("train %d already at %d", train.id, train.destination)
                train.destination = None
                continue
            train.route = Route.from_hops(hops)
            log.info(
                "train %d departs %d for %d via %d hops",
                train.id, train.in_station, train.destination, len(hops),
            )
            train.in_station = None
            train.destination = None
            train.station_target = None
