# storefront/services/event_bus.py

"""In-process publish/subscribe channel with integer subscription tokens."""

import inspect
import itertools
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

logger = logging.getLogger("storefront.event_bus")

CATALOG_MUTATED = "catalog mutated"

Handler = Callable[[str], Awaitable[None] | None]


@dataclass(frozen=True)
class _Subscription:
    token: int
    topic: str
    handler: Handler


class EventBus:
    """Ordered, in-memory topic broadcast.

    ``publish`` delivers to every handler subscribed at the moment of the
    call, in subscription order.  Coroutine handlers are awaited before the
    next handler runs, so consecutive publishes are observed in the order
    they were issued.
    """

    def __init__(self) -> None:
        self._subscriptions: list[_Subscription] = []
        self._tokens = itertools.count(1)

    def subscribe(self, topic: str, handler: Handler) -> int:
        """Register *handler* for *topic* and return its token."""
        token = next(self._tokens)
        self._subscriptions.append(_Subscription(token, topic, handler))
        logger.debug("Subscribed token %d to '%s'", token, topic)
        return token

    def unsubscribe(self, token: int) -> bool:
        """Drop the subscription for *token*.

        Returns ``False`` when the token is unknown or already removed.
        """
        before = len(self._subscriptions)
        self._subscriptions = [
            s for s in self._subscriptions if s.token != token
        ]
        removed = len(self._subscriptions) < before
        if removed:
            logger.debug("Unsubscribed token %d", token)
        return removed

    def subscriber_count(self, topic: str) -> int:
        """Number of live subscriptions for *topic*."""
        return sum(1 for s in self._subscriptions if s.topic == topic)

    async def publish(self, topic: str) -> int:
        """Deliver *topic* to its subscribers; returns the delivery count.

        A failing handler is logged and does not stop delivery to the rest.
        """
        targets = [s for s in self._subscriptions if s.topic == topic]
        logger.debug(
            "Publishing '%s' to %d subscribers", topic, len(targets)
        )
        delivered = 0
        for sub in targets:
            try:
                result = sub.handler(topic)
                if inspect.isawaitable(result):
                    await result
                delivered += 1
            except Exception:
                logger.error(
                    "Handler for token %d failed on '%s'",
                    sub.token,
                    topic,
                    exc_info=True,
                )
        return delivered
