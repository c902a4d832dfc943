import sqlite3
from dataclasses import dataclass
from services.app_services import AppServices
from services.data_events import ALL_DATA_CHANGED
from services.data_stores import Stores
from utils.errors import ErrorReporter


@dataclass
class AppContext:
    """What every tab needs: services, cached stores, the error slot and preferences."""
    services: AppServices
    stores: Stores
    errors: ErrorReporter
    date_format: str = "DD-MM-YYYY"
    display_currency: str = "ARS"

    def guarded(self, action, *args, context: str = "", **kwargs) -> bool:
        """Run a service call; report failures to the shared error slot."""
        try:
            action(*args, **kwargs)
        except (ValueError, sqlite3.Error) as exc:
            self.errors.report(exc, context)
            return False
        return True

    def subscribe(self, topics, callback) -> list:
        """Call callback() on any of topics and on direct ALL_DATA_CHANGED broadcasts."""
        events = self.services.events

        def on_all(_payload=None):
            if events.last_event == ALL_DATA_CHANGED:
                callback()

        unsubscribers = [events.subscribe(t, lambda _payload=None: callback()) for t in topics]
        unsubscribers.append(events.subscribe(ALL_DATA_CHANGED, on_all))
        return unsubscribers
