#!/usr/bin/env python3
"""
Navigator tests: hop arrival, block hand-off, station arrival.
"""

from __future__ import annotations

import unittest

from sim.errors import HandoffError
from sim.navigator import Navigator
from sim.network import JunctionGraph
from sim.train import Route, Train


def _layout():
    g = JunctionGraph()
    start = g.add_junction(0.0, 0.0, terminal=True)
    s1 = g.add_junction(100.0, 0.0, signal=True)
    s2 = g.add_junction(200.0, 0.0, signal=True)
    end = g.add_junction(300.0, 0.0, terminal=True)
    g.connect(start, s1)
    g.connect(s1, s2)
    g.connect(s2, end)
    return g, start, s1, s2, end


class NavigatorTests(unittest.TestCase):
    def test_no_effect_beyond_threshold(self) -> None:
        g, _start, s1, s2, end = _layout()
        train = Train(id=1, x=97.9, y=0.0, vmax=30.0, amax=5.0,
                      route=Route.from_hops([s1, s2, end]))
        g.signal(s1).reserved_for = 1
        Navigator(g).update({1: train})
        self.assertEqual(train.route.next_hop, s1)
        self.assertEqual(g.signal(s1).reserved_for, 1)
        self.assertIsNone(g.signal(s1).occupied_by)

    def test_handoff_moves_block_and_promotes_limit(self) -> None:
        g, _start, s1, s2, end = _layout()
        train = Train(id=1, x=199.0, y=0.5, vmax=30.0, amax=5.0,
                      route=Route.from_hops([s2, end]))
        g.signal(s1).occupied_by = 1
        train.block_signal = s1
        g.signal(s2).reserved_for = 1
        train.upcoming_limit = 12.5
        train.current_limit = 20.0

        arrived = Navigator(g).update({1: train})

        self.assertEqual(arrived, [])
        self.assertIsNone(g.signal(s1).occupied_by)
        self.assertIsNone(g.signal(s2).reserved_for)
        self.assertEqual(g.signal(s2).occupied_by, 1)
        self.assertEqual(train.block_signal, s2)
        self.assertEqual(train.current_limit, 12.5)
        self.assertIsNone(train.upcoming_limit)
        self.assertEqual(train.route.next_hop, end)

    def test_handoff_without_reservation_is_retried(self) -> None:
        g, _start, s1, s2, end = _layout()
        faults = []
        nav = Navigator(g, on_fault=faults.append)
        train = Train(id=1, x=100.5, y=0.0, vmax=30.0, amax=5.0,
                      route=Route.from_hops([s1, s2, end]))
        g.signal(s1).reserved_for = 2

        nav.update({1: train})
        self.assertEqual(len(faults), 1)
        self.assertIsInstance(faults[0], HandoffError)
        self.assertEqual(train.route.next_hop, s1)
        self.assertEqual(g.signal(s1).reserved_for, 2)
        self.assertIsNone(g.signal(s1).occupied_by)

        g.signal(s1).reserved_for = 1
        nav.update({1: train})
        self.assertEqual(len(faults), 1)
        self.assertEqual(g.signal(s1).occupied_by, 1)
        self.assertEqual(train.route.next_hop, s2)

    def test_final_arrival_parks_train(self) -> None:
        g, _start, _s1, _s2, end = _layout()
        train = Train(id=1, x=298.5, y=0.0, vmax=30.0, amax=5.0,
                      route=Route.from_hops([end]))
        train.current_limit = 10.0

        arrived = Navigator(g).update({1: train})

        self.assertEqual(arrived, [1])
        self.assertIsNone(train.route)
        self.assertEqual(train.in_station, end)
        self.assertIsNone(train.current_limit)
        self.assertEqual(train.station_target, (300.0, 0.0))


if __name__ == "__main__":
    unittest.main()
