"""
In-process publish/subscribe event bus.

Every engine component talks to the outside world through this bus. Delivery
is synchronous and ordered: a publish returns after all subscribers of the
topic have seen the payload. A failing subscriber is logged and skipped so
the remaining subscribers and the publishing operation are unaffected.

Example:
    bus = EventBus()
    unsubscribe = bus.subscribe(Topic.MESSAGE, lambda payload: print(payload))
    bus.publish(Topic.MESSAGE, {"circleId": "c1", "content": "hi"})
    unsubscribe()
"""

import logging
from collections import deque
from enum import Enum
from typing import Any, Callable, Deque, Dict, List, Tuple, Union

from common.utils.exceptions import InvalidArgumentException

logger = logging.getLogger(__name__)


class Topic(str, Enum):
    MESSAGE = "message"
    PRESENCE = "presence"
    TYPING = "typing"
    REACTION = "reaction"
    CHECK_IN = "checkIn"
    GOAL_UPDATE = "goalUpdate"


Payload = Dict[str, Any]
Handler = Callable[[Payload], None]


def _resolve_topic(topic: Union[Topic, str]) -> Topic:
    try:
        return Topic(topic)
    except ValueError:
        raise InvalidArgumentException(
            message=f"Unknown event topic: {topic}",
            code="UNKNOWN_TOPIC",
        )


class EventBus:
    """Typed publish/subscribe dispatcher over a closed set of topics."""

    def __init__(self):
        self._handlers: Dict[Topic, List[Handler]] = {topic: [] for topic in Topic}
        self._queue: Deque[Tuple[Topic, Payload]] = deque()
        self._dispatching = False

    def subscribe(self, topic: Union[Topic, str], handler: Handler) -> Callable[[], None]:
        """
        Register a handler for a topic.

        Returns:
            A function that removes the handler. Calling it more than once
            is harmless.
        """
        resolved = _resolve_topic(topic)
        self._handlers[resolved].append(handler)

        def unsubscribe() -> None:
            handlers = self._handlers[resolved]
            if handler in handlers:
                handlers.remove(handler)

        return unsubscribe

    def publish(self, topic: Union[Topic, str], payload: Payload) -> None:
        """
        Deliver a payload to every current subscriber of the topic.

        Publishes issued from inside a handler are queued behind the event
        being delivered, which keeps per-topic delivery in publish order.
        """
        self._queue.append((_resolve_topic(topic), payload))
        if self._dispatching:
            return

        self._dispatching = True
        try:
            while self._queue:
                current_topic, current_payload = self._queue.popleft()
                self._deliver(current_topic, current_payload)
        finally:
            self._dispatching = False

    def subscriber_count(self, topic: Union[Topic, str]) -> int:
        return len(self._handlers[_resolve_topic(topic)])

    def _deliver(self, topic: Topic, payload: Payload) -> None:
        for handler in list(self._handlers[topic]):
            try:
                handler(payload)
            except Exception:
                logger.exception(f"Error in {topic.value} subscriber {handler!r}")
