"""Synchronous publish/subscribe bus used to invalidate cached views.

Services emit a topic after every successful write; data stores and tabs
subscribe and refetch. Delivery is immediate and in registration order.
Listeners of ALL_DATA_CHANGED hear every topic.
"""
import logging
from typing import Callable

logger = logging.getLogger(__name__)

EXPENSES_CHANGED = "expenses_changed"
INCOMES_CHANGED = "incomes_changed"
TRANSFERS_CHANGED = "transfers_changed"
ACCOUNTS_CHANGED = "accounts_changed"
CATEGORIES_CHANGED = "categories_changed"
BUDGETS_CHANGED = "budgets_changed"
GOALS_CHANGED = "goals_changed"
RECURRING_CHANGED = "recurring_changed"
SCHEDULED_CHANGED = "scheduled_changed"
RULES_CHANGED = "rules_changed"
ALL_DATA_CHANGED = "all_data_changed"

TOPICS = (
    EXPENSES_CHANGED, INCOMES_CHANGED, TRANSFERS_CHANGED, ACCOUNTS_CHANGED,
    CATEGORIES_CHANGED, BUDGETS_CHANGED, GOALS_CHANGED, RECURRING_CHANGED,
    SCHEDULED_CHANGED, RULES_CHANGED, ALL_DATA_CHANGED,
)

MOVEMENT_TOPICS = {"income": INCOMES_CHANGED, "expense": EXPENSES_CHANGED, "transfer": TRANSFERS_CHANGED}


class DataEventBus:
    def __init__(self):
        self._listeners: dict[str, list[Callable]] = {}
        # Topic currently being emitted; ALL_DATA_CHANGED listeners can tell a
        # direct broadcast from the echo of a specific topic.
        self.last_event: str | None = None

    def subscribe(self, event: str, callback: Callable) -> Callable[[], None]:
        """Register callback for event; returns a function that unregisters it."""
        if event not in TOPICS:
            raise ValueError(f"Unknown data event: {event}")
        self._listeners.setdefault(event, []).append(callback)

        def unsubscribe():
            listeners = self._listeners.get(event, [])
            if callback in listeners:
                listeners.remove(callback)
        return unsubscribe

    def emit(self, event: str, payload=None):
        logger.debug("emit %s", event)
        self.last_event = event
        self._dispatch(event, payload)
        if event != ALL_DATA_CHANGED:
            self._dispatch(ALL_DATA_CHANGED, payload)

    def emit_for_type(self, type_: str, payload=None):
        self.emit(MOVEMENT_TOPICS[type_], payload)

    def listener_count(self, event: str) -> int:
        return len(self._listeners.get(event, []))

    def clear(self):
        self._listeners.clear()

    def _dispatch(self, event: str, payload):
        # Copy so listeners may unsubscribe while being notified.
        for callback in list(self._listeners.get(event, [])):
            try:
                callback(payload)
            except Exception:
                logger.exception("Listener for %s failed", event)


data_events = DataEventBus()
subscribe = data_events.subscribe
emit = data_events.emit
