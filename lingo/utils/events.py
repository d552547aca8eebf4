"""
In-process notifications for progress mutations

Mutating services publish a ProgressChanged event after committing; the
view cache subscribes to it and drops stale entries.
"""
import logging
from dataclasses import dataclass
from typing import Callable, List, Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProgressChanged:
    """Hearts, points, course selection or challenge progress changed for a user"""
    user_id: str
    reason: str
    lesson_id: Optional[int] = None


Subscriber = Callable[[ProgressChanged], None]


class EventBus:
    """Synchronous publish/subscribe"""

    def __init__(self):
        self._subscribers: List[Subscriber] = []

    def subscribe(self, callback: Subscriber) -> None:
        if callback not in self._subscribers:
            self._subscribers.append(callback)

    def unsubscribe(self, callback: Subscriber) -> None:
        if callback in self._subscribers:
            self._subscribers.remove(callback)

    def publish(self, event: ProgressChanged) -> None:
        """
        Deliver to every subscriber

        The mutation has already committed, so a failing subscriber is
        logged and does not affect the others.
        """
        for callback in list(self._subscribers):
            try:
                callback(event)
            except Exception as e:
                logger.error(f"Subscriber {getattr(callback, '__name__', callback)} failed for {event}: {str(e)}")


# Global instance
event_bus = EventBus()
