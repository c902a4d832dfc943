import logging
import sqlite3
from dataclasses import dataclass
from datetime import datetime

logger = logging.getLogger(__name__)

DEFAULT_ERROR_MESSAGE = "Ha ocurrido un error"


class FinanceError(ValueError):
    """A user-facing validation or lookup failure raised by the services."""


@dataclass
class ErrorState:
    message: str
    details: str | None = None
    timestamp: str = ""


def format_error(exc: BaseException) -> str:
    if isinstance(exc, ValueError) and str(exc):
        return str(exc)
    if isinstance(exc, sqlite3.IntegrityError):
        return "El registro está en uso o ya existe."
    if isinstance(exc, sqlite3.Error):
        return "Error de base de datos."
    return DEFAULT_ERROR_MESSAGE


class ErrorReporter:
    """Application-wide error slot shared by every view.

    Holds at most one error; listeners are called whenever it changes so the
    window can show or hide its error toast.
    """

    def __init__(self):
        self.error: ErrorState | None = None
        self._listeners: list = []

    def subscribe(self, callback):
        self._listeners.append(callback)

        def unsubscribe():
            if callback in self._listeners:
                self._listeners.remove(callback)
        return unsubscribe

    def show_error(self, message: str | None = None, details: str | None = None):
        self.error = ErrorState(
            message=message or DEFAULT_ERROR_MESSAGE,
            details=details,
            timestamp=datetime.now().isoformat(timespec="seconds"),
        )
        logger.warning("Error shown: %s", self.error.message)
        self._notify()

    def report(self, exc: BaseException, context: str = ""):
        """Log an exception and show its user-facing message."""
        logger.error("%s failed: %s", context or "Operation", exc)
        self.show_error(format_error(exc), details=str(exc) or None)

    def clear_error(self):
        self.error = None
        self._notify()

    def _notify(self):
        for callback in list(self._listeners):
            callback(self.error)
