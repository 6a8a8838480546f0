"""
BusMetrics: Tracks simple statistics for EventBus message flow.
"""

class BusMetrics:
    """
    Tracks metrics for published, delivered and discarded messages.

    Attributes:
        published (int): Total number of messages published.
        delivered (int): Number of messages handed out by poll().
        discarded (int): Number of messages dropped because a topic queue was full.
    """

    def __init__(self):
        """Initialize all counters to zero."""
        self.published = 0
        self.delivered = 0
        self.discarded = 0

    def report(self) -> dict:
        """
        Return a snapshot of current metrics.

        Returns:
            dict: Dictionary containing 'published', 'delivered' and 'discarded' counters.
        """
        return {
            "published": self.published,
            "delivered": self.delivered,
            "discarded": self.discarded,
        }
