"""
BusMessage: Data structure representing a message carried by the EventBus.
"""

from dataclasses import dataclass

@dataclass
class BusMessage:
    """
    Represents a single message sent via the EventBus.

    Attributes:
        id (str): Unique identifier for the message.
        topic (str): The topic of the message (e.g., 'editor.rail_segment', 'sim.fault').
        sender (str): ID of the sender (e.g., 'editor', 'world').
        payload (dict): Arbitrary dictionary containing message contents.
        ts (float): Timestamp (in seconds) when the message was created.
    """
    id: str
    topic: str
    sender: str
    payload: dict
    ts: float
