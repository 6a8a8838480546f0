"""
sim — Simulation core
=====================

Modules
-------
world
    :class:`World` train table and per-tick pipeline.
network
    :class:`JunctionGraph`, :class:`Junction`, :class:`Signal`.
routing
    :class:`RoutePlanner` signal-avoiding depth-first search.
navigator
    :class:`Navigator` hop arrival and block hand-off.
signals
    :class:`SignalDispatcher` reservations and signal states,
    :class:`ReservationCleaner`.
kinematics
    :class:`KinematicsController` throttle law and integration.
rail_policy
    :class:`RailPolicy` tunable constants.
sim_bridge
    :class:`SimBridge` background-thread orchestrator.
physics
    Low-level distance and braking helpers.
train
    :class:`Train` entity and its :class:`Route`.
commands
    :class:`CommandQueue` deferred spawns and removals.
errors
    :class:`NoRouteFound` and the signal protocol errors.
"""
