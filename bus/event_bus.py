"""
EventBus: In-memory pub/sub between the simulation core and its collaborators.

Supports:
    - Topic-based messaging
    - Bounded per-topic queues (oldest messages discarded first)
    - Logging of events

Intended usage:
    - The rail editor publishes new segments to 'editor.rail_segment'
    - The world polls that topic at the start of every tick
    - The world publishes 'sim.train_arrived', 'sim.train_doomed' and 'sim.fault'
"""

import threading
import time
import uuid
import logging
from typing import Dict, List, Set
from .message import BusMessage
from .metrics import BusMetrics

log = logging.getLogger(__name__)

TOPIC_RAIL_SEGMENT = "editor.rail_segment"
TOPIC_TRAIN_ARRIVED = "sim.train_arrived"
TOPIC_TRAIN_DOOMED = "sim.train_doomed"
TOPIC_FAULT = "sim.fault"


class EventBus:
    """
    Transport layer for simulation events.

    Attributes:
        max_queue (int): Messages kept per topic before the oldest are discarded.
        metrics (BusMetrics): Message counters.
    """

    def __init__(self, max_queue: int = 1000):
        """
        Initialize an EventBus instance.

        Args:
            max_queue (int): Maximum number of undelivered messages kept per topic.
        """
        self._topics: Dict[str, List[BusMessage]] = {}
        self._lock = threading.Lock()
        self._overflowed: Set[str] = set()
        self.max_queue = max_queue
        self.metrics = BusMetrics()

    def publish(self, topic: str, sender: str, payload: dict) -> str:
        """
        Publish a message to a specific topic.

        Args:
            topic (str): The topic name (e.g., 'editor.rail_segment', 'sim.fault').
            sender (str): ID of the sender (e.g., 'editor', 'world').
            payload (dict): Arbitrary data dictionary representing the message contents.

        Returns:
            str: The unique message ID.
        """
        msg_id = str(uuid.uuid4())
        msg = BusMessage(
            id=msg_id,
            topic=topic,
            sender=sender,
            payload=payload,
            ts=time.time(),
        )
        with self._lock:
            queue = self._topics.setdefault(topic, [])
            queue.append(msg)
            overflow = len(queue) - self.max_queue
            if overflow > 0:
                del queue[:overflow]
                self.metrics.discarded += overflow
                if topic not in self._overflowed:
                    self._overflowed.add(topic)
                    log.warning("queue_full topic=%s max_queue=%d, discarding oldest", topic, self.max_queue)
            self.metrics.published += 1

        log.debug("publish topic=%s sender=%s id=%s", topic, sender, msg_id)
        return msg_id

    def poll(self, topic: str) -> List[BusMessage]:
        """
        Retrieve and clear all messages from a given topic.

        Args:
            topic (str): The topic name to poll messages from.

        Returns:
            List[BusMessage]: List of messages published to the topic since the last poll.
        """
        with self._lock:
            msgs = self._topics.get(topic, [])
            self._topics[topic] = []
            self.metrics.delivered += len(msgs)
        return msgs

