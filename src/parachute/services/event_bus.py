"""
Event Bus - lifecycle event notifier

Implements pub-sub pattern:
- Publishers: publish(event)
- Subscribers: subscribe(event_type, handler, priority, filter_fn)

Delivery is synchronous and in-process: publish() returns only after every
subscriber has seen the event, so subscribers observe events in exactly the
order the shutdown sequence produces them.
"""

import inspect
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from parachute.models.events import Event, EventType
from parachute.utils.logger import get_logger, LogCategory

log = get_logger().for_category(LogCategory.EVENT)


@dataclass
class EventHandler:
    """Event handler registration"""
    handler: Callable[[Event], None]
    priority: int
    filter_fn: Optional[Callable[[Event], bool]]


class EventBus:
    """
    Central event bus for lifecycle events

    Features:
    - Priority-based handler execution (high priority first, FIFO on ties)
    - Per-handler filtering
    - Wildcard subscribers (see every event type)
    - Fault tolerance (one handler crash doesn't stop others, and never
      reaches the publisher)

    Example:
        bus = EventBus()

        bus.subscribe(EventType.TASK_START, lambda e: print(e.title))
        bus.publish(TaskStartEvent("close database"))
    """

    def __init__(self, history_limit: int = 100):
        # Handlers organized by event type; None holds wildcard subscribers
        self._handlers: Dict[Optional[EventType], List[EventHandler]] = {}

        # Event history (circular buffer for debugging/tests)
        self._event_history: List[Event] = []
        self._history_limit = history_limit

    def subscribe(
        self,
        event_type: Optional[EventType],
        handler: Callable[[Event], None],
        priority: int = 0,
        filter_fn: Optional[Callable[[Event], bool]] = None
    ) -> None:
        """
        Subscribe to event type

        Args:
            event_type: Which events to listen for (None = all events)
            handler: Plain callable; coroutine functions are rejected
            priority: Execution priority (higher = called first, default: 0)
            filter_fn: Optional filter (return True = handle, False = skip)

        Raises:
            TypeError: handler is not callable or is a coroutine function
        """
        if not callable(handler):
            raise TypeError(f"Event handler {handler!r} is not callable")
        if inspect.iscoroutinefunction(handler):
            raise TypeError(
                f"Event handler {handler.__name__} is a coroutine function; "
                "event delivery is synchronous"
            )

        entries = self._handlers.setdefault(event_type, [])
        entries.append(EventHandler(handler, priority, filter_fn))

        # Stable sort: equal priorities keep subscription order
        entries.sort(key=lambda h: h.priority, reverse=True)

        log.debug(
            "Event handler subscribed",
            event_type=event_type.value if event_type else "*",
            handler=getattr(handler, "__name__", repr(handler)),
            priority=priority
        )

    def subscribe_all(
        self,
        handler: Callable[[Event], None],
        priority: int = 0
    ) -> None:
        """Subscribe to every event type."""
        self.subscribe(None, handler, priority=priority)

    def unsubscribe(
        self,
        event_type: Optional[EventType],
        handler: Callable[[Event], None]
    ) -> bool:
        """
        Remove a subscription.

        Returns:
            True if the handler was subscribed to event_type
        """
        entries = self._handlers.get(event_type, [])
        for entry in entries:
            if entry.handler == handler:
                entries.remove(entry)
                return True
        return False

    def publish(self, event: Event) -> None:
        """
        Publish event to all subscribers

        Flow:
        1. Save to event history
        2. Lookup handlers for event type and wildcard handlers
        3. Execute both by priority (high → low), typed first on ties
        4. Apply per-handler filters
        5. Catch and log handler exceptions (fault tolerance)

        Args:
            event: Event to publish
        """
        self._event_history.append(event)
        if len(self._event_history) > self._history_limit:
            self._event_history.pop(0)

        # Stable sort: on equal priority typed handlers run before wildcard ones
        handlers = sorted(
            self._handlers.get(event.type, []) + self._handlers.get(None, []),
            key=lambda h: h.priority,
            reverse=True
        )
        if not handlers:
            log.debug("No handlers for event", event_type=event.type.value)
            return

        for handler_entry in handlers:
            if handler_entry.filter_fn and not handler_entry.filter_fn(event):
                continue

            try:
                handler_entry.handler(event)
            except Exception as e:
                log.error(
                    f"Event handler failed: {getattr(handler_entry.handler, '__name__', '?')} "
                    f"for {event.type.value}",
                    exception=repr(e)
                )
                # Continue to next handler (fault tolerance)

    def get_event_history(self, limit: int = 10) -> List[Event]:
        """
        Get recent events from history

        Args:
            limit: Number of recent events to return

        Returns:
            List of recent events (newest last)
        """
        return self._event_history[-limit:]

    def clear_history(self) -> None:
        """Clear event history"""
        self._event_history.clear()
