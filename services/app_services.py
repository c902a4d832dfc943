"""Wires DAOs and services over one database and event bus."""
from dataclasses import dataclass
from database.account_dao import AccountDAO
from database.auto_rule_dao import AutoRuleDAO
from database.budget_dao import BudgetDAO
from database.category_dao import CategoryDAO
from database.db_manager import DatabaseManager
from database.goal_dao import GoalDAO
from database.movement_dao import MovementDAO
from database.recurring_dao import RecurringDAO
from database.scheduled_dao import ScheduledDAO
from database.statement_payment_dao import StatementPaymentDAO
from database.transfer_dao import TransferDAO
from services.account_service import AccountService
from services.auto_rule_service import AutoRuleService
from services.budget_service import BudgetService
from services.calendar_service import CalendarService
from services.category_service import CategoryService
from services.data_events import DataEventBus, data_events
from services.goal_service import GoalService
from services.movement_service import MovementService
from services.recurring_service import RecurringService
from services.report_service import ReportService
from services.scheduled_service import ScheduledService
from services.statement_service import StatementService
from utils.attachments import attachments_folder


@dataclass
class AppServices:
    db: DatabaseManager
    events: DataEventBus
    accounts: AccountService
    categories: CategoryService
    movements: MovementService
    statements: StatementService
    recurring: RecurringService
    budgets: BudgetService
    goals: GoalService
    scheduled: ScheduledService
    rules: AutoRuleService
    calendar: CalendarService
    reports: ReportService


def build_services(db: DatabaseManager, events: DataEventBus = data_events,
                   attachments_dir: str | None = None) -> AppServices:
    account_dao = AccountDAO(db)
    movement_dao = MovementDAO(db)

    accounts = AccountService(account_dao, events)
    movements = MovementService(movement_dao, TransferDAO(db), account_dao, events,
                                attachments_dir or attachments_folder(db.db_path))
    recurring = RecurringService(RecurringDAO(db), movements, events)
    scheduled = ScheduledService(ScheduledDAO(db), movements, events)
    return AppServices(
        db=db,
        events=events,
        accounts=accounts,
        categories=CategoryService(CategoryDAO(db), events),
        movements=movements,
        statements=StatementService(account_dao, movement_dao, StatementPaymentDAO(db), movements, events),
        recurring=recurring,
        budgets=BudgetService(BudgetDAO(db), movement_dao, events),
        goals=GoalService(GoalDAO(db), movement_dao, events),
        scheduled=scheduled,
        rules=AutoRuleService(AutoRuleDAO(db), events),
        calendar=CalendarService(movements, scheduled, recurring),
        reports=ReportService(movement_dao, account_dao),
    )
