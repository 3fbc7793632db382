"""
Event Channels
Listener registration with detachable subscriptions
"""

import logging
from typing import Any, Callable, List

logger = logging.getLogger(__name__)


class Subscription:
    """Returned by EventChannel.subscribe(); detach() removes the listener"""

    def __init__(self, channel: "EventChannel", listener: Callable[..., Any]):
        self._channel = channel
        self.listener = listener
        self.active = True

    def detach(self) -> None:
        if self.active:
            self.active = False
            self._channel._remove(self)


class EventChannel:
    """
    Typed-by-convention event hook.

    Every emit() reaches each attached listener exactly once. A failing
    listener is logged and does not block the others.
    """

    def __init__(self, name: str):
        self.name = name
        self._subscriptions: List[Subscription] = []

    def subscribe(self, listener: Callable[..., Any]) -> Subscription:
        subscription = Subscription(self, listener)
        self._subscriptions.append(subscription)
        return subscription

    def emit(self, *args: Any) -> None:
        # Snapshot so listeners may detach while being notified
        for subscription in list(self._subscriptions):
            if not subscription.active:
                continue
            try:
                subscription.listener(*args)
            except Exception:
                logger.exception(f"Listener on '{self.name}' raised")

    def _remove(self, subscription: Subscription) -> None:
        if subscription in self._subscriptions:
            self._subscriptions.remove(subscription)

    def __len__(self) -> int:
        return len(self._subscriptions)
