#!/usr/bin/env python3
"""
config.py
=========
Application-wide configuration constants.

Values can be overridden via environment variables (see :mod:`main`).
This module is a thin, import-safe leaf — it never imports from
other project packages.
"""

# ── Simulation defaults ──────────────────────────────────────────────────────
DEFAULT_TICK_RATE_HZ: float = 20.0
DEFAULT_DT: float = 0.05
DEFAULT_TICKS: int = 2000
DEFAULT_LOG_LEVEL: str = "INFO"

# ── Train defaults ───────────────────────────────────────────────────────────
DEFAULT_TRAIN_VMAX: float = 30.0
DEFAULT_TRAIN_AMAX: float = 5.0

# ── Logging ──────────────────────────────────────────────────────────────────
LOG_FILE: str = "railsim.log"
SIGNALS_DEBUG_LOG_FILE: str = "signals_debug.log"

# ── Control API ──────────────────────────────────────────────────────────────
API_HOST: str = "0.0.0.0"
API_PORT: int = 8000
