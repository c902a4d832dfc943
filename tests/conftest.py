from __future__ import annotations

import pytest

from database.db_manager import DatabaseManager
from services.app_services import build_services
from services.data_events import ALL_DATA_CHANGED, DataEventBus
from utils.constants import CREDIT_CARD_TYPE


@pytest.fixture
def db():
    manager = DatabaseManager(":memory:")
    manager.initialize()
    yield manager
    manager.close()


@pytest.fixture
def events() -> DataEventBus:
    return DataEventBus()


@pytest.fixture
def services(db, events):
    return build_services(db, events)


@pytest.fixture
def cash(services):
    return services.accounts.create("Banco", currency="ARS", opening_balance=1000)


@pytest.fixture
def usd_account(services):
    return services.accounts.create("Ahorro USD", currency="USD")


@pytest.fixture
def card(services):
    return services.accounts.create(
        "Visa", currency="ARS", account_type=CREDIT_CARD_TYPE, closing_day=20, due_day=5,
    )


@pytest.fixture
def expense_category(services):
    return services.categories.create("Supermercado test", "expense")


@pytest.fixture
def recorded(events):
    """Every topic emitted on the bus, in order."""
    seen: list[str] = []
    # Every emit reaches ALL_DATA_CHANGED listeners exactly once.
    events.subscribe(ALL_DATA_CHANGED, lambda _payload: seen.append(events.last_event))
    return seen
