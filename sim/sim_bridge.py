"""
sim/sim_bridge.py
=================
Background-thread orchestrator around :class:`sim.world.World`.  A
renderer or control API polls the bridge for the latest snapshot without
blocking the simulation.

Public API consumed by renderers and :mod:`api`
-----------------------------------------------
* ``get_trains()``            → ``List[dict]``
* ``get_junctions()``         → ``List[dict]``
* ``get_status()``            → ``dict``
* ``spawn_train(...)``        → ``int``
* ``dispatch_train(...)``     → ``None``
* ``add_rail_segment(...)``   → ``None``
* ``set_paused(bool)``        → ``None``
"""

from __future__ import annotations

import threading
import time
import logging
from typing import Any, Dict, List, Optional, Tuple

from bus.event_bus import TOPIC_FAULT, TOPIC_TRAIN_ARRIVED, TOPIC_TRAIN_DOOMED
from sim.world import World

log = logging.getLogger("sim_bridge")


class SimBridge:
    """Simulation orchestrator running in a background thread.

    The thread calls :meth:`_tick` at ``tick_rate_hz``, advancing
    :class:`~sim.world.World` and caching snapshots for reader threads.
    Operator commands take the same lock as the tick so they never land
    in the middle of one.

    Parameters
    ----------
    world : World or None
        Simulation to drive.  The default demo network when *None*.
    tick_rate_hz : float
        Simulation ticks per second.
    dt : float or None
        Simulated seconds per tick; ``1 / tick_rate_hz`` when *None*.
    """

    def __init__(
        self,
        world: Optional[World] = None,
        tick_rate_hz: float = 20.0,
        dt: Optional[float] = None,
    ) -> None:
        self._world = world or World()
        self._tick_rate_hz = tick_rate_hz
        self._dt = dt if dt is not None else 1.0 / tick_rate_hz

        self._lock = threading.Lock()

        # Cached snapshots: written by the sim thread, read by renderer and API threads
        self._trains: List[Dict[str, Any]] = []
        self._junctions: List[Dict[str, Any]] = []
        self._arrivals = 0
        self._doomed = 0
        self._refresh_snapshot()

        self._thread: Optional[threading.Thread] = None
        self._running = False
        self._paused = False

    @property
    def world(self) -> World:
        return self._world

    # ── Lifecycle ─────────────────────────────────────────────────────────────

    def start(self) -> None:
        """Spawn the background simulation thread."""
        if self._running:
            return
        self._running = True
        self._thread = threading.Thread(
            target=self._loop, daemon=True, name="SimBridge"
        )
        self._thread.start()
        log.info("SimBridge started at %.1f Hz", self._tick_rate_hz)

    def stop(self) -> None:
        """Signal the thread to stop and wait for it to join."""
        self._running = False
        if self._thread:
            self._thread.join(timeout=2.0)
        log.info("SimBridge stopped")

    def set_paused(self, paused: bool) -> None:
        """Pause / unpause the simulation tick."""
        self._paused = paused

    # ── Reader API ────────────────────────────────────────────────────────────

    def get_trains(self) -> List[Dict[str, Any]]:
        with self._lock:
            return [dict(t) for t in self._trains]

    def get_junctions(self) -> List[Dict[str, Any]]:
        with self._lock:
            return [dict(j) for j in self._junctions]

    def get_status(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "tick": self._world.tick_count,
                "elapsed": self._world.elapsed,
                "trains": len(self._world.trains),
                "faults": self._world.faults,
                "arrivals": self._arrivals,
                "doomed": self._doomed,
                "paused": self._paused,
                "running": self._running,
                "bus": self._world.bus.metrics.report(),
            }

    # ── Operator API ──────────────────────────────────────────────────────────

    def spawn_train(
        self,
        at: int,
        destination: int,
        vmax: Optional[float] = None,
        amax: Optional[float] = None,
    ) -> int:
        with self._lock:
            return self._world.spawn_train(at, destination, vmax=vmax, amax=amax)

    def dispatch_train(self, train_id: int, destination: int) -> None:
        with self._lock:
            self._world.dispatch_train(train_id, destination)

    def add_rail_segment(
        self,
        start: Tuple[float, float],
        end: Tuple[float, float],
    ) -> Tuple[int, int]:
        with self._lock:
            ends = self._world.add_rail_segment(start, end)
            self._junctions = self._world.junction_states()
            return ends

    # ── Background loop ───────────────────────────────────────────────────────

    def _loop(self) -> None:
        period = 1.0 / self._tick_rate_hz
        while self._running:
            t0 = time.perf_counter()
            if not self._paused:
                try:
                    self._tick(self._dt)
                except Exception:
                    log.exception("SimBridge tick error")
            time.sleep(max(0.0, period - (time.perf_counter() - t0)))

    def _tick(self, dt: float) -> None:
        with self._lock:
            self._world.update(dt)
            self._drain_events()
            self._refresh_snapshot()

    def _drain_events(self) -> None:
        """Consume the world's outbound topics so their queues stay empty."""
        bus = self._world.bus
        for msg in bus.poll(TOPIC_TRAIN_ARRIVED):
            self._arrivals += 1
            log.info("train %s arrived at %s", msg.payload["train"], msg.payload["station"])
        for msg in bus.poll(TOPIC_TRAIN_DOOMED):
            self._doomed += 1
            log.info("train %s dropped: %s", msg.payload["train"], msg.payload["reason"])
        for msg in bus.poll(TOPIC_FAULT):
            log.warning("fault: %s", msg.payload["message"])

    def _refresh_snapshot(self) -> None:
        self._trains = self._world.train_states()
        self._junctions = self._world.junction_states()
