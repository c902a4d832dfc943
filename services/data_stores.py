"""Cached, observable views over the services.

Each store fetches once, keeps the result in `data` and refetches when one of
its topics is emitted on the DataEventBus. Tabs subscribe to a store instead
of querying services directly, so a write anywhere refreshes every view.
"""
import logging
import sqlite3
from typing import Callable
from services.account_service import AccountService
from services.auto_rule_service import AutoRuleService
from services.budget_service import BudgetService
from services.category_service import CategoryService
from services.data_events import (
    ACCOUNTS_CHANGED, ALL_DATA_CHANGED, BUDGETS_CHANGED, CATEGORIES_CHANGED, EXPENSES_CHANGED,
    GOALS_CHANGED, INCOMES_CHANGED, RECURRING_CHANGED, RULES_CHANGED, TRANSFERS_CHANGED,
    DataEventBus, data_events,
)
from services.goal_service import GoalService
from services.movement_service import MovementService
from services.recurring_service import RecurringService
from utils.constants import GOAL_TYPES, TRANSACTION_TYPES
from utils.errors import format_error

logger = logging.getLogger(__name__)


class Store:
    topics: tuple[str, ...] = ()

    def __init__(self, events: DataEventBus = data_events, auto_fetch: bool = True):
        self._events = events
        self._listeners: list[Callable] = []
        self.data = []
        self.loading = False
        self.error: str | None = None
        self._unsubscribers = [events.subscribe(t, self._on_topic) for t in self.topics]
        self._unsubscribers.append(events.subscribe(ALL_DATA_CHANGED, self._on_all_data))
        if auto_fetch:
            self.refetch()

    def _fetch(self):
        raise NotImplementedError

    def refetch(self):
        self.loading = True
        try:
            self.data = self._fetch()
            self.error = None
        except (ValueError, sqlite3.Error) as exc:
            logger.exception("%s fetch failed", type(self).__name__)
            self.error = format_error(exc)
        finally:
            self.loading = False
        self._notify()

    def subscribe(self, callback: Callable) -> Callable[[], None]:
        """callback(store) after every fetch; returns an unsubscribe function."""
        self._listeners.append(callback)

        def unsubscribe():
            if callback in self._listeners:
                self._listeners.remove(callback)
        return unsubscribe

    def close(self):
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []
        self._listeners = []

    def _on_topic(self, _payload=None):
        self.refetch()

    def _on_all_data(self, _payload=None):
        # Specific topics echo on ALL_DATA_CHANGED; only react to direct broadcasts.
        if self._events.last_event == ALL_DATA_CHANGED:
            self.refetch()

    def _notify(self):
        for callback in list(self._listeners):
            callback(self)


class AccountsStore(Store):
    topics = (ACCOUNTS_CHANGED, EXPENSES_CHANGED, INCOMES_CHANGED, TRANSFERS_CHANGED)

    def __init__(self, service: AccountService, events: DataEventBus = data_events):
        self._service = service
        self.balances: dict[int, float] = {}
        super().__init__(events)

    def _fetch(self):
        accounts = self._service.get_all()
        self.balances = self._service.get_balances()
        return accounts

    @property
    def credit_cards(self):
        return [a for a in self.data if a.is_credit_card]

    def by_id(self, account_id: int):
        return next((a for a in self.data if a.id == account_id), None)


class CategoriesStore(Store):
    topics = (CATEGORIES_CHANGED,)

    def __init__(self, service: CategoryService, events: DataEventBus = data_events):
        self._service = service
        super().__init__(events)

    def _fetch(self):
        return self._service.get_all()

    def by_type(self, type_: str):
        return [c for c in self.data if c.type == type_]


class RecentUsageStore(Store):
    """Account and category ids by most recent use, for form pickers."""
    topics = (EXPENSES_CHANGED, INCOMES_CHANGED)

    def __init__(self, service: MovementService, events: DataEventBus = data_events):
        self._service = service
        super().__init__(events)

    def _fetch(self):
        return self._service.get_recent_usage()

    @property
    def account_ids(self) -> list[int]:
        return (self.data or {}).get("account_ids", [])

    @property
    def category_ids(self) -> list[int]:
        return (self.data or {}).get("category_ids", [])


class BudgetsStore(Store):
    topics = (BUDGETS_CHANGED, EXPENSES_CHANGED)

    def __init__(self, service: BudgetService, events: DataEventBus = data_events):
        self._service = service
        super().__init__(events)

    def _fetch(self):
        return self._service.get_budgets_with_progress()

    @property
    def active(self):
        return [b for b in self.data if b.is_active and not b.is_paused]

    @property
    def paused(self):
        return [b for b in self.data if b.is_paused]

    @property
    def exceeded(self):
        return [b for b in self.active if b.is_exceeded]


class GoalsStore(Store):
    topics = (GOALS_CHANGED, EXPENSES_CHANGED, INCOMES_CHANGED, TRANSFERS_CHANGED)

    def __init__(self, service: GoalService, events: DataEventBus = data_events):
        self._service = service
        super().__init__(events)

    def _fetch(self):
        return self._service.get_goals_with_progress()

    @property
    def active(self):
        return [g for g in self.data if g.is_active and not g.is_completed]

    @property
    def completed(self):
        return [g for g in self.data if g.is_completed]

    def by_type(self) -> dict[str, list]:
        grouped = {t: [] for t in GOAL_TYPES}
        for g in self.data:
            grouped.setdefault(g.goal_type, []).append(g)
        return grouped

    @property
    def success_rate(self) -> float:
        """Share of goals, in percent, currently meeting their target."""
        if not self.data:
            return 0.0
        achieved = sum(1 for g in self.data if g.is_completed or g.is_achieved)
        return achieved / len(self.data) * 100


class RecurringStore(Store):
    topics = (RECURRING_CHANGED,)

    def __init__(self, service: RecurringService, events: DataEventBus = data_events):
        self._service = service
        super().__init__(events)

    def _fetch(self):
        return self._service.get_with_stats()

    @property
    def active(self):
        return [r for r in self.data if r.status == "active"]

    @property
    def paused(self):
        return [r for r in self.data if r.status == "paused"]

    @property
    def inactive(self):
        return [r for r in self.data if r.status == "inactive"]

    def by_type(self) -> dict[str, list]:
        grouped = {t: [] for t in TRANSACTION_TYPES}
        for r in self.data:
            grouped.setdefault(r.type, []).append(r)
        return grouped

    def monthly_totals(self, currency: str | None = None) -> dict[str, float]:
        return self._service.monthly_totals(self.data, currency)

    def upcoming(self, days: int | None = None):
        if days is None:
            return self._service.upcoming()
        return self._service.upcoming(days)


class AutoRulesStore(Store):
    topics = (RULES_CHANGED,)

    def __init__(self, service: AutoRuleService, events: DataEventBus = data_events):
        self._service = service
        super().__init__(events)

    def _fetch(self):
        return self._service.get_all()

    @property
    def active(self):
        return [r for r in self.data if r.is_active]

    @property
    def inactive(self):
        return [r for r in self.data if not r.is_active]


class Stores:
    """One instance of every store, sharing the services' event bus."""

    def __init__(self, services, events: DataEventBus | None = None):
        events = events or services.events
        self.accounts = AccountsStore(services.accounts, events)
        self.categories = CategoriesStore(services.categories, events)
        self.recent = RecentUsageStore(services.movements, events)
        self.budgets = BudgetsStore(services.budgets, events)
        self.goals = GoalsStore(services.goals, events)
        self.recurring = RecurringStore(services.recurring, events)
        self.rules = AutoRulesStore(services.rules, events)

    def close(self):
        for store in (self.accounts, self.categories, self.recent, self.budgets,
                      self.goals, self.recurring, self.rules):
            store.close()
