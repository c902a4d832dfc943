from __future__ import annotations

from services.data_events import ALL_DATA_CHANGED, EXPENSES_CHANGED
from services.data_stores import AccountsStore, Store, Stores


def test_accounts_store_refetches_after_a_movement(services, cash) -> None:
    store = AccountsStore(services.accounts, services.events)
    notified = []
    store.subscribe(notified.append)

    services.movements.add_expense(cash.id, 100, "2026-01-10")

    assert store.balances[cash.id] == 900
    assert notified == [store]


def test_stores_follow_their_topics(services, cash, expense_category) -> None:
    stores = Stores(services)

    services.accounts.create("Nueva")
    services.categories.create("Otra test", "income")
    services.budgets.create({"name": "B", "amount": 10, "period_type": "monthly",
                             "start_date": "2026-01-01", "is_global": True})
    services.goals.create({"name": "G", "goal_type": "savings", "target_amount": 10,
                           "period_type": "monthly", "start_date": "2026-01-01"})

    assert "Nueva" in [a.name for a in stores.accounts.data]
    assert "Otra test" in [c.name for c in stores.categories.by_type("income")]
    assert [b.name for b in stores.budgets.active] == ["B"]
    assert [g.name for g in stores.goals.by_type()["savings"]] == ["G"]
    stores.close()


def test_recent_usage_store(services, cash, expense_category) -> None:
    stores = Stores(services)

    services.movements.add_expense(cash.id, 5, "2026-01-10", category_id=expense_category.id)

    assert stores.recent.account_ids[0] == cash.id
    assert stores.recent.category_ids == [expense_category.id]
    stores.close()


def test_store_ignores_echoes_but_reacts_to_broadcasts(events) -> None:
    fetches = []

    class Counting(Store):
        topics = (EXPENSES_CHANGED,)

        def _fetch(self):
            fetches.append(events.last_event)
            return list(fetches)

    store = Counting(events)
    events.emit(EXPENSES_CHANGED)
    events.emit(ALL_DATA_CHANGED)

    assert fetches == [None, EXPENSES_CHANGED, ALL_DATA_CHANGED]
    assert store.data == fetches


def test_fetch_errors_are_kept_on_the_store(events) -> None:
    class Broken(Store):
        def _fetch(self):
            raise ValueError("sin conexión")

    store = Broken(events)

    assert store.error == "sin conexión"
    assert store.loading is False
    assert store.data == []


def test_closed_store_stops_listening(services, cash) -> None:
    store = AccountsStore(services.accounts, services.events)
    store.close()

    services.movements.add_expense(cash.id, 100, "2026-01-10")

    assert store.balances[cash.id] == 1000


def test_goal_success_rate_and_budget_exceeded(services, cash) -> None:
    stores = Stores(services)
    services.budgets.create({"name": "Chico", "amount": 1, "period_type": "custom",
                             "start_date": "2026-01-01", "end_date": "2026-01-31",
                             "is_global": True})
    services.goals.create({"name": "Meta", "goal_type": "spending_reduction", "target_amount": 5,
                           "period_type": "custom", "start_date": "2026-01-01",
                           "end_date": "2026-01-31"})
    services.goals.create({"name": "Otra", "goal_type": "income", "target_amount": 5000,
                           "period_type": "custom", "start_date": "2026-01-01",
                           "end_date": "2026-01-31"})

    services.movements.add_expense(cash.id, 2, "2026-01-10")

    assert [b.name for b in stores.budgets.exceeded] == ["Chico"]
    assert stores.goals.success_rate == 50
    stores.close()
