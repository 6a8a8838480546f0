"""
bus — In-memory event messaging infrastructure
=============================================

Provides a lightweight pub/sub transport layer between the simulation
core and its collaborators (rail editor, renderer, operators) without a
real network stack.

Modules
-------
message
    :class:`BusMessage` dataclass.
event_bus
    :class:`EventBus` publish / poll transport and topic names.
metrics
    :class:`BusMetrics` counter snapshot.
"""

from .message import BusMessage
from .event_bus import (
    EventBus,
    TOPIC_FAULT,
    TOPIC_RAIL_SEGMENT,
    TOPIC_TRAIN_ARRIVED,
    TOPIC_TRAIN_DOOMED,
)
from .metrics import BusMetrics

__all__ = [
    "BusMessage",
    "EventBus",
    "BusMetrics",
    "TOPIC_FAULT",
    "TOPIC_RAIL_SEGMENT",
    "TOPIC_TRAIN_ARRIVED",
    "TOPIC_TRAIN_DOOMED",
]
