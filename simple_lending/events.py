"""Ledger event delivery and history."""
from __future__ import annotations

import itertools
import logging
import threading
from collections import deque
from dataclasses import dataclass, field
from typing import Iterable

from .interfaces.listener import EventListener
from .models import EventType, LendingEvent

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_LIMIT = 10_000


@dataclass(eq=False)
class Subscription:
    """Handle returned by :meth:`EventBus.subscribe`."""

    bus: "EventBus"
    listener: EventListener
    event_types: frozenset[EventType] | None = None
    user: str | None = None
    active: bool = field(default=True)

    def matches(self, event: LendingEvent) -> bool:
        if self.event_types is not None and event.event_type not in self.event_types:
            return False
        if self.user is not None and event.user != self.user:
            return False
        return True

    def cancel(self) -> None:
        self.bus.unsubscribe(self)


class EventBus:
    """Delivers ledger events to listeners and keeps them for later queries.

    Listeners run synchronously after the mutation that produced the event
    has committed. A failing listener is logged and skipped; it cannot undo
    the mutation or starve the other listeners.

    History keeps the newest ``history_limit`` events; ``None`` keeps all.
    """

    def __init__(self, history_limit: int | None = DEFAULT_HISTORY_LIMIT) -> None:
        self._lock = threading.Lock()
        self._subscriptions: list[Subscription] = []
        self._history: deque[LendingEvent] = deque(maxlen=history_limit)
        self._sequence = itertools.count(1)

    def subscribe(
        self,
        listener: EventListener,
        event_types: Iterable[EventType] | None = None,
        user: str | None = None,
    ) -> Subscription:
        subscription = Subscription(
            bus=self,
            listener=listener,
            event_types=frozenset(event_types) if event_types is not None else None,
            user=user,
        )
        with self._lock:
            self._subscriptions.append(subscription)
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        with self._lock:
            if subscription in self._subscriptions:
                self._subscriptions.remove(subscription)
        subscription.active = False

    def next_sequence(self) -> int:
        return next(self._sequence)

    def publish(self, event: LendingEvent) -> None:
        with self._lock:
            self._history.append(event)
            targets = [s for s in self._subscriptions if s.matches(event)]

        for subscription in targets:
            try:
                subscription.listener(event)
            except Exception:
                logger.exception(
                    "Listener %r failed on %s event", subscription.listener, event.event_type.value
                )

    def history(
        self,
        user: str | None = None,
        event_types: Iterable[EventType] | None = None,
        limit: int | None = None,
    ) -> list[LendingEvent]:
        """Return recorded events, newest first."""
        wanted = frozenset(event_types) if event_types is not None else None
        with self._lock:
            events = list(reversed(self._history))

        selected = [
            e for e in events
            if (user is None or e.user == user)
            and (wanted is None or e.event_type in wanted)
        ]
        if limit is not None:
            selected = selected[:limit]
        return selected

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscriptions)
