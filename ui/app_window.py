import customtkinter as ctk
from services.data_events import BUDGETS_CHANGED, MOVEMENT_TOPICS, RECURRING_CHANGED, SCHEDULED_CHANGED
from ui.app_context import AppContext
from ui.components.alert_banner import AlertBanner, Toast
from ui.components.expense_form import ExpenseForm
from ui.components.movement_form import IncomeForm
from ui.components.transfer_form import TransferForm
from ui.tabs.accounts_tab import AccountsTab
from ui.tabs.budgets_tab import BudgetsTab
from ui.tabs.calendar_tab import CalendarTab
from ui.tabs.categories_tab import CategoriesTab
from ui.tabs.credit_cards_tab import CreditCardsTab
from ui.tabs.goals_tab import GoalsTab
from ui.tabs.home_tab import HomeTab
from ui.tabs.movements_tab import MovementsTab
from ui.tabs.recurring_tab import RecurringTab
from ui.tabs.reports_tab import ReportsTab
from ui.tabs.rules_tab import RulesTab
from ui.tabs.scheduled_tab import ScheduledTab
from ui.tabs.settings_tab import SettingsTab
from utils.constants import APP_NAME, APP_WIDTH, APP_HEIGHT, SEVERITY_COLORS
from utils.currency import convert_currency, format_currency

_TABS = [
    ("Inicio", HomeTab),
    ("Movimientos", MovementsTab),
    ("Informes", ReportsTab),
    ("Cuentas", AccountsTab),
    ("Tarjetas", CreditCardsTab),
    ("Recurrentes", RecurringTab),
    ("Programadas", ScheduledTab),
    ("Presupuestos", BudgetsTab),
    ("Objetivos", GoalsTab),
    ("Calendario", CalendarTab),
    ("Reglas", RulesTab),
    ("Categorías", CategoriesTab),
]
SETTINGS_TAB = "Configuración"


class AppWindow(ctk.CTk):
    def __init__(
        self,
        ctx: AppContext,
        startup_generated: int = 0,
        startup_arrived: int = 0,
        **kwargs,
    ):
        super().__init__(**kwargs)
        self._ctx = ctx
        self._db = ctx.services.db
        self._toast: Toast | None = None

        self.title(APP_NAME)
        self.minsize(APP_WIDTH, APP_HEIGHT)
        self.geometry(f"{APP_WIDTH}x{APP_HEIGHT}")

        self.grid_columnconfigure(0, weight=1)
        self.grid_rowconfigure(3, weight=1)

        self._build_header()
        self._build_banner_area()
        self._build_toast_area()
        self._build_tabs()

        ctx.errors.subscribe(self._on_error)
        ctx.stores.accounts.subscribe(lambda _store: self._update_total())
        ctx.subscribe([RECURRING_CHANGED, SCHEDULED_CHANGED, BUDGETS_CHANGED, MOVEMENT_TOPICS["expense"]],
                      self._refresh_banners)
        self._update_total()
        self._refresh_banners()

        if startup_generated or startup_arrived:
            self.after(300, lambda: self._show_startup_toast(startup_generated, startup_arrived))

    # ── Header ──────────────────────────────────────────────────────────────
    def _build_header(self):
        bar = ctk.CTkFrame(self, fg_color=("gray85", "gray15"), corner_radius=0, height=48)
        bar.grid(row=0, column=0, sticky="ew")
        bar.grid_propagate(False)

        ctk.CTkLabel(bar, text=APP_NAME, font=ctk.CTkFont(size=18, weight="bold")).pack(
            side="left", padx=(14, 12), pady=8)
        self._total_label = ctk.CTkLabel(bar, text="", font=ctk.CTkFont(size=14))
        self._total_label.pack(side="left", padx=8)

        for text, cmd in (
            ("+ Transferencia", self._quick_transfer),
            ("+ Ingreso", self._quick_income),
            ("+ Gasto", self._quick_expense),
        ):
            ctk.CTkButton(bar, text=text, width=110, command=cmd).pack(side="right", padx=4, pady=8)

    def _update_total(self):
        store = self._ctx.stores.accounts
        currency = self._ctx.display_currency
        total = sum(
            convert_currency(store.balances.get(a.id, 0.0), a.currency, currency)
            for a in store.data
        )
        self._total_label.configure(
            text=f"Saldo total: {format_currency(total, currency)}",
            text_color="#4CAF50" if total >= 0 else "#F44336",
        )

    def _form_kwargs(self) -> dict:
        stores = self._ctx.stores
        return {
            "recent": stores.recent.data or {},
            "date_format": self._ctx.date_format,
        }

    def _quick_expense(self):
        stores, services = self._ctx.stores, self._ctx.services
        ExpenseForm(self, services.movements, services.rules, stores.accounts.data,
                    stores.categories.data, statement_service=services.statements, **self._form_kwargs())

    def _quick_income(self):
        stores, services = self._ctx.stores, self._ctx.services
        IncomeForm(self, services.movements, services.rules, stores.accounts.data,
                   stores.categories.data, **self._form_kwargs())

    def _quick_transfer(self):
        TransferForm(self, self._ctx.services.movements, self._ctx.stores.accounts.data,
                     **self._form_kwargs())

    # ── Banners & toast ─────────────────────────────────────────────────────
    def _build_banner_area(self):
        self._banner_frame = ctk.CTkFrame(self, fg_color="transparent", height=0)
        self._banner_frame.grid(row=1, column=0, sticky="ew", padx=8)

    def _build_toast_area(self):
        self._toast_frame = ctk.CTkFrame(self, fg_color="transparent", height=0)
        self._toast_frame.grid(row=2, column=0, sticky="ew", padx=8)

    def _refresh_banners(self):
        for w in self._banner_frame.winfo_children():
            w.destroy()
        services, stores = self._ctx.services, self._ctx.stores

        pending = services.recurring.get_pending_occurrences()
        if pending:
            self._add_banner(
                f"{len(pending)} recurrente{'s' if len(pending) != 1 else ''} esperando confirmación.",
                SEVERITY_COLORS["warning"], "Recurrentes",
            )
        due = services.scheduled.process_due()
        if due:
            self._add_banner(
                f"{len(due)} transaccion{'es' if len(due) != 1 else ''} programada"
                f"{'s' if len(due) != 1 else ''} para aprobar.",
                SEVERITY_COLORS["info"], "Programadas",
            )
        exceeded = stores.budgets.exceeded
        if exceeded:
            names = ", ".join(b.name for b in exceeded[:3])
            self._add_banner(f"Presupuestos excedidos: {names}", SEVERITY_COLORS["error"], "Presupuestos")

    def _add_banner(self, message, color, tab_name):
        AlertBanner(
            self._banner_frame, message=message, color=color,
            action_text="Ver", action_cmd=lambda: self._tabview.set(tab_name),
        ).pack(fill="x", pady=2)

    def _on_error(self, error):
        if self._toast is not None and self._toast.winfo_exists():
            self._toast.destroy()
        self._toast = None
        if error is not None:
            self._toast = Toast(self._toast_frame, error.message, severity="error", duration_ms=6000)
            self._toast.pack(fill="x", pady=2)

    def _show_startup_toast(self, generated: int, arrived: int):
        parts = []
        if generated:
            parts.append(f"{generated} recurrente{'s' if generated != 1 else ''} generada{'s' if generated != 1 else ''}")
        if arrived:
            parts.append(f"{arrived} movimiento{'s' if arrived != 1 else ''} futuro{'s' if arrived != 1 else ''} ya vigente{'s' if arrived != 1 else ''}")
        Toast(self._toast_frame, " · ".join(parts) + ".", severity="success").pack(fill="x", pady=2)

    # ── Tabs ────────────────────────────────────────────────────────────────
    def _build_tabs(self):
        self._tabview = ctk.CTkTabview(self, command=self._on_tab_change)
        self._tabview.grid(row=3, column=0, sticky="nsew", padx=8, pady=(0, 8))

        self.tabs = {}
        for name, cls in _TABS:
            self._add_tab(name, cls(self._tabview.add(name), self._ctx))
        self._add_tab(SETTINGS_TAB, SettingsTab(self._tabview.add(SETTINGS_TAB), self._ctx,
                                                on_settings_changed=self._on_settings_changed))

        last = self._db.get_setting("last_tab", "")
        if last in self.tabs:
            self._tabview.set(last)

    def _add_tab(self, name, tab):
        frame = self._tabview.tab(name)
        frame.grid_columnconfigure(0, weight=1)
        frame.grid_rowconfigure(0, weight=1)
        tab.grid(row=0, column=0, sticky="nsew")
        self.tabs[name] = tab

    def _on_tab_change(self):
        self._db.set_setting("last_tab", self._tabview.get())

    def _on_settings_changed(self):
        self._update_total()
        for name, tab in self.tabs.items():
            if name != SETTINGS_TAB:
                tab.refresh()
