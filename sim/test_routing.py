#!/usr/bin/env python3
"""
Route planner tests: signal-avoiding bias, determinism, hop budget.
"""

from __future__ import annotations

import unittest

from sim.commands import CommandQueue
from sim.errors import NoRouteFound
from sim.network import JunctionGraph, default_network
from sim.rail_policy import RailPolicy
from sim.routing import RoutePlanner
from sim.train import Train


def _fork_graph(signal_on_both: bool = False):
    """Origin -> fork; fork reaches the destination over a signalled branch
    (listed first) and a plain branch (listed second)."""
    g = JunctionGraph()
    origin = g.add_junction(0.0, 0.0, terminal=True)
    fork = g.add_junction(10.0, 0.0)
    signalled = g.add_junction(20.0, 10.0, signal=True)
    plain = g.add_junction(20.0, -10.0, signal=signal_on_both)
    dest = g.add_junction(30.0, 0.0, terminal=True)
    g.connect(origin, fork)
    g.connect(fork, signalled)
    g.connect(fork, plain)
    g.connect(signalled, dest)
    g.connect(plain, dest)
    return g, origin, fork, signalled, plain, dest


class RoutePlannerTests(unittest.TestCase):
    def test_prefers_signal_free_branch(self) -> None:
        g, origin, fork, _signalled, plain, dest = _fork_graph()
        hops = RoutePlanner(g).plan_route(origin, dest)
        self.assertEqual(hops, [fork, plain, dest])

    def test_falls_back_to_signalled_branch(self) -> None:
        g, origin, fork, signalled, _plain, dest = _fork_graph(signal_on_both=True)
        hops = RoutePlanner(g).plan_route(origin, dest)
        # Both branches are signalled: adjacency order decides.
        self.assertEqual(hops, [fork, signalled, dest])

    def test_route_is_deterministic(self) -> None:
        g, names = default_network()
        planner = RoutePlanner(g)
        first = planner.plan_route(names["coal_mine"], names["bottom_power_plant"])
        second = planner.plan_route(names["coal_mine"], names["bottom_power_plant"])
        self.assertEqual(first, second)
        self.assertEqual(first[-1], names["bottom_power_plant"])

    def test_demo_outbound_and_return_use_separate_tracks(self) -> None:
        g, names = default_network()
        planner = RoutePlanner(g)
        out = planner.plan_route(names["coal_mine"], names["bottom_power_plant"])
        back = planner.plan_route(names["bottom_power_plant"], names["coal_mine"])
        out_signals = {j for j in out if g.has_signal(j)}
        back_signals = {j for j in back if g.has_signal(j)}
        self.assertEqual(len(out_signals), 3)
        self.assertEqual(len(back_signals), 3)
        self.assertFalse(out_signals & back_signals)

    def test_unreachable_destination_raises(self) -> None:
        g, names = default_network()
        with self.assertRaises(NoRouteFound):
            RoutePlanner(g).plan_route(names["coal_mine"], names["top_power_plant"])

    def test_hop_budget_bounds_search(self) -> None:
        g = JunctionGraph()
        chain = [g.add_junction(float(i), 0.0, terminal=(i == 0)) for i in range(12)]
        for a, b in zip(chain, chain[1:]):
            g.connect(a, b)
        tight = RoutePlanner(g, RailPolicy(hop_budget=10))
        with self.assertRaises(NoRouteFound):
            tight.plan_route(chain[0], chain[-1])
        loose = RoutePlanner(g, RailPolicy(hop_budget=11))
        self.assertEqual(loose.plan_route(chain[0], chain[-1]), chain[1:])

    def test_cycle_does_not_loop(self) -> None:
        g = JunctionGraph()
        a = g.add_junction(0.0, 0.0, terminal=True)
        b = g.add_junction(1.0, 0.0)
        c = g.add_junction(1.0, 1.0)
        d = g.add_junction(0.0, 1.0)
        island = g.add_junction(9.0, 9.0, terminal=True)
        g.connect(a, b)
        g.connect(b, c)
        g.connect(c, d)
        g.connect(d, b)
        with self.assertRaises(NoRouteFound):
            RoutePlanner(g).plan_route(a, island)

    def test_unreachable_on_dense_grid_fails_fast(self) -> None:
        g = JunctionGraph()
        size = 8
        grid = [[g.add_junction(float(c), float(r), terminal=(r == c == 0))
                 for c in range(size)] for r in range(size)]
        for r in range(size):
            for c in range(size):
                if c + 1 < size:
                    g.connect(grid[r][c], grid[r][c + 1])
                if r + 1 < size:
                    g.connect(grid[r][c], grid[r + 1][c])
        island = g.add_junction(100.0, 100.0, terminal=True)
        with self.assertRaises(NoRouteFound):
            RoutePlanner(g).plan_route(grid[0][0], island)

    def test_assign_routes_dooms_unroutable_train(self) -> None:
        g, names = default_network()
        planner = RoutePlanner(g)
        commands = CommandQueue()
        ok = Train(id=1, x=10.0, y=15.0, vmax=30.0, amax=5.0,
                   in_station=names["coal_mine"], destination=names["bottom_power_plant"])
        doomed = Train(id=2, x=10.0, y=15.0, vmax=30.0, amax=5.0,
                       in_station=names["coal_mine"], destination=names["top_power_plant"])
        planner.assign_routes([ok, doomed], commands)

        self.assertIsNotNone(ok.route)
        self.assertIsNone(ok.in_station)
        self.assertIsNone(ok.destination)
        self.assertEqual(ok.route.destination, names["bottom_power_plant"])
        self.assertIsNone(doomed.route)
        self.assertEqual(len(commands), 1)


if __name__ == "__main__":
    unittest.main()
