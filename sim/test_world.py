#!/usr/bin/env python3
"""
Whole-world tests: end-to-end trips, reservation safety under traffic,
doomed trains, editor events.
"""

from __future__ import annotations

import math
import unittest

from bus.event_bus import TOPIC_RAIL_SEGMENT, TOPIC_TRAIN_ARRIVED, TOPIC_TRAIN_DOOMED
from sim.network import JunctionGraph, JunctionRole, SignalState
from sim.world import World

_DT = 0.05


def _mine_to_plant():
    g = JunctionGraph()
    mine = g.add_junction(10.0, 15.0, terminal=True, role=JunctionRole.COAL_MINE)
    w1 = g.add_junction(60.0, 25.0, signal=True)
    w2 = g.add_junction(330.0, 80.0, signal=True)
    plant = g.add_junction(590.0, 130.0, terminal=True, role=JunctionRole.POWER_PLANT)
    g.connect(mine, w1)
    g.connect(w1, w2)
    g.connect(w2, plant)
    return g, mine, w1, w2, plant


def _compress(states):
    out = []
    for s in states:
        if not out or out[-1] is not s:
            out.append(s)
    return out


class WorldScenarioTests(unittest.TestCase):
    def _run_until_parked(self, world, train_id, station, max_ticks=3000, history=None):
        history = {} if history is None else history
        for _ in range(max_ticks):
            world.update(_DT)
            for jid, seen in history.items():
                seen.append(world.graph.signal(jid).state)
            train = world.trains[train_id]
            if train.in_station == station and train.station_target is None:
                break
        return history

    def test_mine_to_plant_end_to_end(self) -> None:
        g, mine, w1, w2, plant = _mine_to_plant()
        world = World(graph=g)
        history = {jid: [g.signal(jid).state] for jid in (w1, w2)}
        tid = world.spawn_train(mine, plant, vmax=30.0, amax=5.0)
        for _ in range(2):
            world.update(_DT)
            for jid, seen in history.items():
                seen.append(g.signal(jid).state)
        train = world.trains[tid]
        self.assertIsNotNone(train.route)
        self.assertEqual(list(train.route.hops), [w1, w2, plant])

        self._run_until_parked(world, tid, plant, history=history)

        train = world.trains[tid]
        self.assertEqual(train.in_station, plant)
        self.assertLess(math.hypot(train.x - 590.0, train.y - 130.0), 0.2)
        self.assertEqual(train.speed, 0.0)
        for jid in (w1, w2):
            seq = _compress(history[jid])
            self.assertIs(seq[0], SignalState.DARK, msg=f"{jid}: {seq}")
            self.assertIs(seq[-1], SignalState.DARK, msg=f"{jid}: {seq}")
            cleared_then_halt = any(
                a in (SignalState.GO, SignalState.SLOW) and b is SignalState.HALT
                for a, b in zip(seq, seq[1:])
            )
            self.assertTrue(cleared_then_halt, msg=f"{jid}: {seq}")
            sig = g.signal(jid)
            self.assertIsNone(sig.reserved_for)
            self.assertIsNone(sig.occupied_by)

        arrivals = world.bus.poll(TOPIC_TRAIN_ARRIVED)
        self.assertEqual([m.payload for m in arrivals], [{"train": tid, "station": plant}])
        self.assertEqual(world.faults, 0)

        # Second trip back to the mine
        world.dispatch_train(tid, mine)
        self._run_until_parked(world, tid, mine)
        train = world.trains[tid]
        self.assertEqual(train.in_station, mine)
        self.assertLess(math.hypot(train.x - 10.0, train.y - 15.0), 0.2)

    def test_fast_train_does_not_skip_waypoint(self) -> None:
        g = JunctionGraph()
        start = g.add_junction(0.0, 0.0, terminal=True)
        waypoint = g.add_junction(1500.75, 0.0)
        end = g.add_junction(2000.0, 0.0, terminal=True)
        g.connect(start, waypoint)
        g.connect(waypoint, end)
        world = World(graph=g)
        tid = world.spawn_train(start, end, vmax=90.0, amax=5.0)

        self._run_until_parked(world, tid, end)

        train = world.trains[tid]
        self.assertEqual(train.in_station, end)
        self.assertIsNone(train.station_target)
        self.assertLess(math.hypot(train.x - 2000.0, train.y), 0.2)

    def test_doomed_train_is_removed_at_commit(self) -> None:
        world = World()
        tid = world.spawn_train(
            world.landmarks["top_power_plant"], world.landmarks["coal_mine"],
        )
        self.assertNotIn(tid, world.trains)
        world.update(_DT)
        self.assertIn(tid, world.trains)
        world.update(_DT)
        self.assertNotIn(tid, world.trains)
        doomed = world.bus.poll(TOPIC_TRAIN_DOOMED)
        self.assertEqual([m.payload["train"] for m in doomed], [tid])

    def test_traffic_keeps_reservations_exclusive(self) -> None:
        world = World()
        mine = world.landmarks["coal_mine"]
        plant = world.landmarks["bottom_power_plant"]
        first = world.spawn_train(mine, plant)
        returning = world.spawn_train(plant, mine)
        follower = None
        goals = {first: plant, returning: mine}

        for tick in range(6000):
            if tick == 200:
                follower = world.spawn_train(mine, plant)
                goals[follower] = plant
            world.update(_DT)
            self._assert_signal_invariants(world)
            if follower is not None and all(
                tid in world.trains and world.trains[tid].in_station == goal
                for tid, goal in goals.items()
            ):
                break

        for tid, goal in goals.items():
            self.assertEqual(world.trains[tid].in_station, goal, msg=f"train {tid}")
        self.assertEqual(world.faults, 0)

    def _assert_signal_invariants(self, world: World) -> None:
        g = world.graph
        for sig in g.signals():
            if sig.reserved_for is not None and sig.occupied_by is not None:
                self.assertEqual(sig.reserved_for, sig.occupied_by)
            if sig.state in (SignalState.GO, SignalState.SLOW):
                train = world.trains[sig.reserved_for]
                ahead = train.signal_hops_ahead(g.has_signal)
                self.assertEqual(ahead[0], sig.junction_id)
                if len(ahead) > 1:
                    self.assertEqual(g.signal(ahead[1]).reserved_for, train.id)
        holders = {}
        for sig in g.signals():
            for tid in (sig.reserved_for, sig.occupied_by):
                if tid is not None:
                    holders.setdefault(tid, set()).add(sig.junction_id)
        for tid, held in holders.items():
            self.assertLessEqual(len(held), 3, msg=f"train {tid} holds {held}")


class WorldCommandTests(unittest.TestCase):
    def test_spawn_requires_terminal(self) -> None:
        g, _mine, w1, _w2, plant = _mine_to_plant()
        world = World(graph=g)
        with self.assertRaises(ValueError):
            world.spawn_train(w1, plant)
        with self.assertRaises(KeyError):
            world.spawn_train(plant, 999)

    def test_dispatch_requires_station(self) -> None:
        g, mine, _w1, _w2, plant = _mine_to_plant()
        world = World(graph=g)
        tid = world.spawn_train(mine, plant)
        world.update(_DT)
        world.update(_DT)
        with self.assertRaises(ValueError):
            world.dispatch_train(tid, mine)

    def test_editor_segments_extend_network(self) -> None:
        world = World()
        before = len(world.graph.junctions)
        world.bus.publish(TOPIC_RAIL_SEGMENT, "editor", {"start": [591.0, 192.0], "end": [585.0, 300.0]})
        world.bus.publish(TOPIC_RAIL_SEGMENT, "editor", {"start": [585.0, 301.0], "end": [589.0, 448.0]})
        world.bus.publish(TOPIC_RAIL_SEGMENT, "editor", {"start": "bogus"})
        world.update(_DT)

        self.assertEqual(len(world.graph.junctions), before + 1)
        hops = world.planner.plan_route(
            world.landmarks["coal_mine"], world.landmarks["top_power_plant"],
        )
        self.assertEqual(hops[-1], world.landmarks["top_power_plant"])

    def test_snapshots_expose_signal_states(self) -> None:
        world = World()
        states = world.junction_states()
        self.assertEqual(len(states), len(world.graph.junctions))
        signalled = [s for s in states if s["signal"] is not None]
        self.assertEqual(len(signalled), 6)
        self.assertTrue(all(s["signal"] == "DARK" for s in signalled))


if __name__ == "__main__":
    unittest.main()
