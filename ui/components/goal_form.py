import sqlite3
from models.goal import Goal
from services.goal_service import GoalService
from ui.components.budget_form import PERIOD_LABELS
from ui.components.date_picker import DatePickerWidget
from ui.components.form_base import FormDialog
from ui.components.multi_select import MultiSelect
from utils.constants import CURRENCIES, GOAL_TYPE_LABELS, GOAL_TYPES, PERIOD_TYPES
from utils.currency import parse_amount
from utils.date_helpers import today_str
from utils.errors import format_error

_LABEL_TO_PERIOD = {v: k for k, v in PERIOD_LABELS.items()}
_LABEL_TO_TYPE = {v: k for k, v in GOAL_TYPE_LABELS.items()}


class GoalForm(FormDialog):
    def __init__(
        self,
        master,
        goal_service: GoalService,
        categories: list,
        accounts: list,
        goal: Goal | None = None,
        date_format: str = "DD-MM-YYYY",
        **kwargs,
    ):
        super().__init__(master, "Editar objetivo" if goal else "Nuevo objetivo", **kwargs)
        self._svc = goal_service
        self._goal = goal
        g = goal

        r = 0
        self._name_var = self._entry(r, "Nombre:", g.name if g else "")
        r += 1
        self._icon_var = self._entry(r, "Ícono:", g.icon if g else "", width=60)
        r += 1
        self._type_var, _ = self._combo(
            r, "Tipo:", [GOAL_TYPE_LABELS[t] for t in GOAL_TYPES],
            GOAL_TYPE_LABELS[g.goal_type if g else "savings"],
        )
        r += 1
        self._target_var = self._entry(r, "Objetivo:", f"{g.target_amount:.2f}" if g else "")
        r += 1
        self._currency_var, _ = self._combo(r, "Moneda:", CURRENCIES, g.currency if g else CURRENCIES[0])
        r += 1
        self._period_var, _ = self._combo(
            r, "Período:", [PERIOD_LABELS[p] for p in PERIOD_TYPES],
            PERIOD_LABELS[g.period_type if g else "monthly"],
        )
        r += 1
        self._label("Desde:", r)
        self._start_picker = self._place(DatePickerWidget(
            self, initial_date=g.start_date if g else today_str(), date_format=date_format,
        ), r, sticky="w")
        r += 1
        self._label("Hasta:", r)
        self._end_picker = self._place(DatePickerWidget(
            self, initial_date=g.end_date if g else None, date_format=date_format,
        ), r, sticky="w")
        r += 1
        self._label("Categorías:", r)
        self._categories = self._place(MultiSelect(
            self, [(c.id, c.display_name) for c in categories],
            selected=g.category_ids if g else None,
        ), r)
        r += 1
        self._label("Cuentas:", r)
        self._accounts = self._place(MultiSelect(
            self, [(a.id, a.display_name) for a in accounts],
            selected=g.account_ids if g else None, height=80,
        ), r)
        r += 1

        self._build_footer(r)
        self._open()

    def _on_save(self):
        try:
            target = parse_amount(self._target_var.get())
        except ValueError:
            self._error_var.set("Monto inválido.")
            return
        if not self._start_picker.is_valid():
            self._error_var.set("Fecha de inicio inválida.")
            return
        data = {
            "name": self._name_var.get(),
            "icon": self._icon_var.get().strip(),
            "goal_type": _LABEL_TO_TYPE.get(self._type_var.get(), "savings"),
            "target_amount": target,
            "currency": self._currency_var.get(),
            "period_type": _LABEL_TO_PERIOD.get(self._period_var.get(), "monthly"),
            "start_date": self._start_picker.get(),
            "end_date": self._end_picker.get() or None,
            "category_ids": self._categories.get(),
            "account_ids": self._accounts.get(),
        }
        try:
            if self._goal:
                data["is_active"] = self._goal.is_active
                data["is_completed"] = self._goal.is_completed
                self._svc.update(self._goal.id, data)
            else:
                self._svc.create(data)
        except (ValueError, sqlite3.Error) as e:
            self._error_var.set(format_error(e))
            return
        self._done()
