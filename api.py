"""
api.py
======
Optional FastAPI server exposing a running simulation to external
collaborators (rail editor, renderer, operators).

Start the server::

    python api.py          # → http://localhost:8000/trains

Endpoints
---------
``GET /trains``, ``GET /junctions``, ``GET /status`` — read snapshots.
``POST /trains`` — spawn a train at a terminal with a destination.
``POST /trains/{train_id}/dispatch`` — send an idle station train on.
``POST /rail-segments`` — report a newly drawn rail segment.

.. note::

   This server is **not** required to run the simulation.
   It exists for external integrations and testing.
"""

from contextlib import asynccontextmanager
from typing import List, Optional

import uvicorn
from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, Field

import config
from sim.sim_bridge import SimBridge

# ── Pydantic request schemas ─────────────────────────────────────────────────


class SpawnRequest(BaseModel):
    """Train to create in a terminal station."""
    at: int
    destination: int
    vmax: Optional[float] = Field(default=None, gt=0)
    amax: Optional[float] = Field(default=None, gt=0)


class DispatchRequest(BaseModel):
    destination: int


class RailSegmentRequest(BaseModel):
    """Endpoints of a rail segment drawn in the editor."""
    start: List[float] = Field(min_length=2, max_length=2)
    end: List[float] = Field(min_length=2, max_length=2)


# ── FastAPI application ──────────────────────────────────────────────────────


def create_app(bridge: Optional[SimBridge] = None, autostart: bool = True) -> FastAPI:
    """Build the API around *bridge* (a fresh demo bridge when *None*)."""
    bridge = bridge or SimBridge(tick_rate_hz=config.DEFAULT_TICK_RATE_HZ)

    @asynccontextmanager
    async def lifespan(_app: FastAPI):
        if autostart:
            bridge.start()
        yield
        if autostart:
            bridge.stop()

    app = FastAPI(
        title="Rail Traffic Simulation API",
        description="Spawn trains, edit rails and watch signals on a single-track network.",
        version="1.0",
        lifespan=lifespan,
    )
    app.state.bridge = bridge

    @app.get("/trains")
    def list_trains():
        return bridge.get_trains()

    @app.get("/junctions")
    def list_junctions():
        return bridge.get_junctions()

    @app.get("/status")
    def status():
        return bridge.get_status()

    @app.post("/trains", status_code=201)
    def spawn_train(req: SpawnRequest):
        try:
            train_id = bridge.spawn_train(req.at, req.destination, vmax=req.vmax, amax=req.amax)
        except KeyError as exc:
            raise HTTPException(status_code=404, detail=f"unknown junction {exc}")
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc))
        return {"id": train_id}

    @app.post("/trains/{train_id}/dispatch")
    def dispatch_train(train_id: int, req: DispatchRequest):
        try:
            bridge.dispatch_train(train_id, req.destination)
        except KeyError as exc:
            raise HTTPException(status_code=404, detail=f"unknown id {exc}")
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc))
        return {"id": train_id, "destination": req.destination}

    @app.post("/rail-segments", status_code=201)
    def add_rail_segment(req: RailSegmentRequest):
        a, b = bridge.add_rail_segment(tuple(req.start), tuple(req.end))
        return {"start": a, "end": b}

    return app


# ── Standalone entry point ───────────────────────────────────────────────────

if __name__ == "__main__":
    from logging_setup import setup_logging

    setup_logging()
    print(f"Starting rail simulation server on http://{config.API_HOST}:{config.API_PORT} …")
    uvicorn.run(create_app(), host=config.API_HOST, port=config.API_PORT)
