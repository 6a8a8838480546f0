#!/usr/bin/env python3
"""
main.py
=======
Headless run of the demo network.

Spawns one train at the coal mine bound for the bottom power plant and
one bound for the unreachable top power plant, then ticks the world and
logs arrivals, dropped trains and faults.

Environment overrides: ``RAILSIM_TICK_RATE_HZ``, ``RAILSIM_DT``,
``RAILSIM_TICKS``, ``RAILSIM_LOG_LEVEL``.  A non-zero tick rate paces the
loop in wall-clock time; ``0`` runs as fast as possible.
"""

import os
import time
import logging

import config
from logging_setup import setup_logging
from bus.event_bus import TOPIC_FAULT, TOPIC_TRAIN_ARRIVED, TOPIC_TRAIN_DOOMED
from sim.world import World


def main():
    level = getattr(logging, os.environ.get("RAILSIM_LOG_LEVEL", config.DEFAULT_LOG_LEVEL).upper(), logging.INFO)
    setup_logging(level)
    log = logging.getLogger("main")

    tick_rate = float(os.environ.get("RAILSIM_TICK_RATE_HZ", config.DEFAULT_TICK_RATE_HZ))
    dt = float(os.environ.get("RAILSIM_DT", config.DEFAULT_DT))
    ticks = int(os.environ.get("RAILSIM_TICKS", config.DEFAULT_TICKS))

    world = World()
    mine = world.landmarks["coal_mine"]
    world.spawn_train(
        mine, world.landmarks["bottom_power_plant"],
        vmax=config.DEFAULT_TRAIN_VMAX, amax=config.DEFAULT_TRAIN_AMAX,
    )
    world.spawn_train(mine, world.landmarks["top_power_plant"])
    log.info("Starting main loop: %d ticks, dt=%.3f", ticks, dt)

    try:
        for _ in range(ticks):
            t0 = time.perf_counter()
            world.update(dt)

            for msg in world.bus.poll(TOPIC_TRAIN_ARRIVED):
                log.info("Train %s arrived at %s", msg.payload["train"], msg.payload["station"])
            for msg in world.bus.poll(TOPIC_TRAIN_DOOMED):
                log.info("Train %s dropped: %s", msg.payload["train"], msg.payload["reason"])
            for msg in world.bus.poll(TOPIC_FAULT):
                log.warning("Fault: %s", msg.payload["message"])

            if tick_rate > 0:
                time.sleep(max(0.0, 1.0 / tick_rate - (time.perf_counter() - t0)))

    except KeyboardInterrupt:
        log.info("Shutting down...")

    for state in world.train_states():
        log.info("Final train state: %s", state)

if __name__ == "__main__":
    main()
