"""
In-process change feed for the live admission store.

The store publishes one notification per committed insert or delete; any
number of listeners may subscribe. Listeners are called synchronously on the
publishing thread, so they must only hand the notification off (the live
cache posts it to its own event loop).
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Callable

from hospital_analytics.schemas.records import LiveAdmission

logger = logging.getLogger(__name__)


class ChangeType(str, Enum):
    INSERT = "INSERT"
    DELETE = "DELETE"


@dataclass(frozen=True)
class ChangeNotification:
    """INSERT carries the new admission; DELETE only needs the id."""

    type: ChangeType
    admission_id: str
    admission: LiveAdmission | None = None


Listener = Callable[[ChangeNotification], None]
DisconnectListener = Callable[[str], None]


class Subscription:
    def __init__(self, feed: ChangeFeed, listener: Listener, on_disconnect: DisconnectListener | None = None):
        self._feed = feed
        self._listener = listener
        self._on_disconnect = on_disconnect
        self.active = True

    def unsubscribe(self) -> None:
        if self.active:
            self._feed._remove(self)
            self.active = False


class ChangeFeed:
    """Fan-out of admission change notifications to subscribed listeners."""

    def __init__(self, name: str = "live_admissions"):
        self.name = name
        self._subscriptions: list[Subscription] = []
        self._lock = threading.Lock()

    def subscribe(self, listener: Listener, on_disconnect: DisconnectListener | None = None) -> Subscription:
        subscription = Subscription(self, listener, on_disconnect)
        with self._lock:
            self._subscriptions.append(subscription)
        logger.debug("Listener subscribed to feed '%s'", self.name)
        return subscription

    def _remove(self, subscription: Subscription) -> None:
        with self._lock:
            if subscription in self._subscriptions:
                self._subscriptions.remove(subscription)
        logger.debug("Listener unsubscribed from feed '%s'", self.name)

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscriptions)

    def publish(self, notification: ChangeNotification) -> None:
        with self._lock:
            subscriptions = list(self._subscriptions)
        for subscription in subscriptions:
            if not subscription.active:
                continue
            try:
                subscription._listener(notification)
            except Exception:
                logger.exception(
                    "Listener on feed '%s' failed for %s %s",
                    self.name,
                    notification.type.value,
                    notification.admission_id,
                )

    def publish_insert(self, admission: LiveAdmission) -> None:
        self.publish(ChangeNotification(ChangeType.INSERT, admission.id, admission))

    def publish_delete(self, admission_id: str) -> None:
        self.publish(ChangeNotification(ChangeType.DELETE, admission_id))

    def disconnect(self, reason: str = "feed disconnected") -> None:
        """Tell listeners that notifications may have been missed."""
        logger.warning("Feed '%s' interrupted: %s", self.name, reason)
        with self._lock:
            subscriptions = list(self._subscriptions)
        for subscription in subscriptions:
            if subscription.active and subscription._on_disconnect is not None:
                subscription._on_disconnect(reason)
