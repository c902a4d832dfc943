import sqlite3
import customtkinter as ctk
from models.budget import Budget
from services.budget_service import BudgetService
from ui.components.date_picker import DatePickerWidget
from ui.components.form_base import FormDialog
from ui.components.multi_select import MultiSelect
from utils.constants import CURRENCIES, PERIOD_TYPES
from utils.currency import parse_amount
from utils.date_helpers import today_str
from utils.errors import format_error

PERIOD_LABELS = {"weekly": "Semanal", "monthly": "Mensual", "yearly": "Anual", "custom": "Personalizado"}
_LABEL_TO_PERIOD = {v: k for k, v in PERIOD_LABELS.items()}


class BudgetForm(FormDialog):
    """Add or edit a spending limit over categories and/or accounts."""

    def __init__(
        self,
        master,
        budget_service: BudgetService,
        categories: list,
        accounts: list,
        budget: Budget | None = None,
        date_format: str = "DD-MM-YYYY",
        **kwargs,
    ):
        super().__init__(master, "Editar presupuesto" if budget else "Nuevo presupuesto", **kwargs)
        self._svc = budget_service
        self._budget = budget
        b = budget

        r = 0
        self._name_var = self._entry(r, "Nombre:", b.name if b else "")
        r += 1
        self._icon_var = self._entry(r, "Ícono:", b.icon if b else "", width=60)
        r += 1
        self._amount_var = self._entry(r, "Límite:", f"{b.amount:.2f}" if b else "")
        r += 1
        self._currency_var, _ = self._combo(r, "Moneda:", CURRENCIES, b.currency if b else CURRENCIES[0])
        r += 1
        self._period_var, _ = self._combo(
            r, "Período:", [PERIOD_LABELS[p] for p in PERIOD_TYPES],
            PERIOD_LABELS[b.period_type if b else "monthly"],
        )
        r += 1
        self._label("Desde:", r)
        self._start_picker = self._place(DatePickerWidget(
            self, initial_date=b.start_date if b else today_str(), date_format=date_format,
        ), r, sticky="w")
        r += 1
        self._label("Hasta:", r)
        self._end_picker = self._place(DatePickerWidget(
            self, initial_date=b.end_date if b else None, date_format=date_format,
        ), r, sticky="w")
        r += 1

        self._recurring_var = ctk.BooleanVar(value=b.is_recurring if b else True)
        self._place(ctk.CTkCheckBox(self, text="Se renueva cada período", variable=self._recurring_var),
                    r, sticky="w")
        r += 1
        self._global_var = ctk.BooleanVar(value=b.is_global if b else False)
        self._place(ctk.CTkCheckBox(
            self, text="Global (todos los gastos)", variable=self._global_var,
            command=self._on_global_toggle,
        ), r, sticky="w")
        r += 1

        self._label("Categorías:", r)
        self._categories = self._place(MultiSelect(
            self, [(c.id, c.display_name) for c in categories if c.type == "expense"],
            selected=b.category_ids if b else None,
        ), r)
        r += 1
        self._label("Cuentas:", r)
        self._accounts = self._place(MultiSelect(
            self, [(a.id, a.display_name) for a in accounts],
            selected=b.account_ids if b else None, height=80,
        ), r)
        r += 1

        self._build_footer(r)
        self._on_global_toggle()
        self._open()

    def _on_global_toggle(self):
        enabled = not self._global_var.get()
        self._categories.set_enabled(enabled)
        self._accounts.set_enabled(enabled)

    def _on_save(self):
        try:
            amount = parse_amount(self._amount_var.get())
        except ValueError:
            self._error_var.set("Monto inválido.")
            return
        if not self._start_picker.is_valid():
            self._error_var.set("Fecha de inicio inválida.")
            return
        is_global = self._global_var.get()
        data = {
            "name": self._name_var.get(),
            "icon": self._icon_var.get().strip(),
            "amount": amount,
            "currency": self._currency_var.get(),
            "period_type": _LABEL_TO_PERIOD.get(self._period_var.get(), "monthly"),
            "start_date": self._start_picker.get(),
            "end_date": self._end_picker.get() or None,
            "is_recurring": self._recurring_var.get(),
            "is_global": is_global,
            "category_ids": [] if is_global else self._categories.get(),
            "account_ids": [] if is_global else self._accounts.get(),
        }
        try:
            if self._budget:
                data["is_active"] = self._budget.is_active
                data["is_paused"] = self._budget.is_paused
                self._svc.update(self._budget.id, data)
            else:
                self._svc.create(data)
        except (ValueError, sqlite3.Error) as e:
            self._error_var.set(format_error(e))
            return
        self._done()
