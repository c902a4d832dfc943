import sqlite3
import customtkinter as ctk
from models.movement import Movement
from models.recurring import Frequency, RecurringTransaction
from services.recurring_service import RecurringService
from ui.components.date_picker import DatePickerWidget
from ui.components.form_base import FormDialog, parse_optional_amount
from utils.constants import (
    CREATION_MODES, DAYS_OF_WEEK, FREQUENCY_LABELS, FREQUENCY_TYPES, TYPE_LABELS,
    WEEKEND_HANDLING,
)
from utils.currency import parse_amount
from utils.date_helpers import MONTH_NAMES_ES, today_str
from utils.errors import format_error

WEEKEND_LABELS = {
    "as_is": "Mantener la fecha",
    "previous_business_day": "Día hábil anterior",
    "next_business_day": "Día hábil siguiente",
}
CREATION_MODE_LABELS = {
    "automatic": "Automática",
    "manual_confirmation": "Confirmar cada vez",
}
_LABEL_TO_FREQ = {v: k for k, v in FREQUENCY_LABELS.items()}
_LABEL_TO_WEEKEND = {v: k for k, v in WEEKEND_LABELS.items()}
_LABEL_TO_MODE = {v: k for k, v in CREATION_MODE_LABELS.items()}


class FrequencyFields:
    """Frequency selector plus the detail inputs each frequency needs."""

    def __init__(self, form: FormDialog, start_row: int, frequency: Frequency | None = None):
        self._form = form
        f = frequency or Frequency()
        r = start_row
        self.type_var, _ = form._combo(
            r, "Frecuencia:", [FREQUENCY_LABELS[t] for t in FREQUENCY_TYPES],
            FREQUENCY_LABELS[f.type], command=lambda _: self.refresh(),
        )
        r += 1
        self._rows = {}
        self.day_var = self._detail(r, "day", "Día del mes:", ctk.StringVar(value=str(f.day or "")),
                                    lambda var: ctk.CTkEntry(form, textvariable=var, width=60))
        r += 1
        dow = DAYS_OF_WEEK[f.day_of_week] if f.day_of_week is not None else DAYS_OF_WEEK[0]
        self.dow_var = self._detail(r, "day_of_week", "Día de la semana:", ctk.StringVar(value=dow),
                                    lambda var: ctk.CTkSegmentedButton(form, values=DAYS_OF_WEEK, variable=var))
        r += 1
        month = MONTH_NAMES_ES[f.month - 1] if f.month else MONTH_NAMES_ES[0]
        self.month_var = self._detail(r, "month", "Mes:", ctk.StringVar(value=month),
                                      lambda var: ctk.CTkComboBox(form, values=MONTH_NAMES_ES, variable=var,
                                                                  width=140, state="readonly"))
        r += 1
        self.interval_var = self._detail(r, "interval", "Cada (días):", ctk.StringVar(value=str(f.interval or "")),
                                         lambda var: ctk.CTkEntry(form, textvariable=var, width=60))
        r += 1
        self.next_row = r
        self.refresh()

    def _detail(self, r, key, text, var, build):
        label = ctk.CTkLabel(self._form, text=text)
        label.grid(row=r, column=0, padx=(16, 8), pady=4, sticky="e")
        widget = build(var)
        widget.grid(row=r, column=1, padx=(0, 16), pady=4, sticky="w")
        self._rows[key] = (label, widget)
        return var

    def _visible(self) -> set[str]:
        ftype = _LABEL_TO_FREQ.get(self.type_var.get(), "monthly")
        if ftype in ("weekly", "biweekly"):
            return {"day_of_week"}
        if ftype == "yearly":
            return {"day", "month"}
        if ftype == "custom_days":
            return {"interval"}
        if ftype == "daily":
            return set()
        return {"day"}

    def refresh(self):
        visible = self._visible()
        for key, widgets in self._rows.items():
            for w in widgets:
                if key in visible:
                    w.grid()
                else:
                    w.grid_remove()

    def get(self) -> Frequency:
        ftype = _LABEL_TO_FREQ.get(self.type_var.get(), "monthly")
        visible = self._visible()

        def _int(var, label):
            text = var.get().strip()
            if not text:
                return None
            if not text.isdigit():
                raise ValueError(f"{label} debe ser un número.")
            return int(text)

        return Frequency(
            type=ftype,
            day=_int(self.day_var, "El día") if "day" in visible else None,
            day_of_week=DAYS_OF_WEEK.index(self.dow_var.get()) if "day_of_week" in visible else None,
            month=MONTH_NAMES_ES.index(self.month_var.get()) + 1 if "month" in visible else None,
            interval=_int(self.interval_var, "El intervalo") if "interval" in visible else None,
        )


class RecurringForm(FormDialog):
    """Add or edit a recurring income, expense or transfer."""

    def __init__(
        self,
        master,
        recurring_service: RecurringService,
        accounts: list,
        categories: list,
        rule: RecurringTransaction | None = None,
        date_format: str = "DD-MM-YYYY",
        **kwargs,
    ):
        super().__init__(master, "Editar recurrente" if rule else "Nueva recurrente", **kwargs)
        self._svc = recurring_service
        self._rule = rule
        self._accounts = accounts
        self._all_categories = categories
        names = [a.name for a in accounts]

        def _name(account_id):
            return next((a.name for a in accounts if a.id == account_id), names[0] if names else "")

        r = 0
        self._name_var = self._entry(r, "Nombre:", rule.name if rule else "")
        r += 1

        self._label("Tipo:", r)
        self._type_var = ctk.StringVar(value=rule.type if rule else "expense")
        type_frame = self._place(ctk.CTkFrame(self, fg_color="transparent"), r, sticky="w")
        for t in ("income", "expense", "transfer"):
            ctk.CTkRadioButton(
                type_frame, text=TYPE_LABELS[t], variable=self._type_var, value=t,
                command=self._on_type_change,
            ).pack(side="left", padx=4)
        r += 1

        self._amount_var = self._entry(r, "Monto:", f"{rule.amount:.2f}" if rule else "")
        r += 1

        self._account_var, self._account_combo = self._combo(
            r, "Cuenta:", names, _name(rule.account_id if rule else None))
        self._account_row = r
        r += 1
        self._to_account_var, self._to_account_combo = self._combo(
            r, "Cuenta destino:", names, _name(rule.to_account_id if rule else None))
        self._to_account_row = r
        r += 1
        self._to_amount_var = self._entry(
            r, "Monto recibido:", f"{rule.to_amount:.2f}" if rule and rule.to_amount else "")
        self._to_amount_row = r
        r += 1
        self._category_var, self._category_combo = self._combo(r, "Categoría:", [], "")
        self._category_row = r
        r += 1

        self._frequency = FrequencyFields(self, r, rule.frequency if rule else None)
        r = self._frequency.next_row

        self._label("Desde:", r)
        self._start_picker = self._place(DatePickerWidget(
            self, initial_date=rule.start_date if rule else today_str(), date_format=date_format,
        ), r, sticky="w")
        r += 1
        self._label("Hasta:", r)
        self._end_picker = self._place(DatePickerWidget(
            self, initial_date=rule.end_date if rule else None, date_format=date_format,
        ), r, sticky="w")
        r += 1
        self._weekend_var, _ = self._combo(
            r, "Fin de semana:", [WEEKEND_LABELS[w] for w in WEEKEND_HANDLING],
            WEEKEND_LABELS[rule.weekend_handling if rule else "as_is"],
        )
        r += 1
        self._mode_var, _ = self._combo(
            r, "Creación:", [CREATION_MODE_LABELS[m] for m in CREATION_MODES],
            CREATION_MODE_LABELS[rule.creation_mode if rule else "automatic"],
        )
        r += 1
        self._desc_var = self._entry(r, "Descripción:", rule.description if rule else "")
        r += 1

        self._build_footer(r)
        self._on_type_change(initial_category=rule.category_name if rule else "")
        self._open()

    def _show_row(self, row, visible: bool):
        for w in self.grid_slaves(row=row):
            if visible:
                w.grid()
            else:
                w.grid_remove()

    def _on_type_change(self, initial_category: str = ""):
        type_ = self._type_var.get()
        is_transfer = type_ == "transfer"
        self._show_row(self._to_account_row, is_transfer)
        self._show_row(self._to_amount_row, is_transfer)
        self._show_row(self._category_row, not is_transfer)
        self._categories = [c for c in self._all_categories if c.type == type_]
        names = [c.name for c in self._categories]
        self._category_combo.configure(values=names)
        self._category_var.set(initial_category if initial_category in names else (names[0] if names else ""))

    def _account(self, var):
        return next((a for a in self._accounts if a.name == var.get()), None)

    def _on_save(self):
        try:
            amount = parse_amount(self._amount_var.get())
            to_amount = parse_optional_amount(self._to_amount_var.get())
        except ValueError:
            self._error_var.set("Monto inválido.")
            return
        try:
            frequency = self._frequency.get()
        except ValueError as e:
            self._error_var.set(str(e))
            return
        if not self._start_picker.is_valid():
            self._error_var.set("Fecha de inicio inválida.")
            return

        type_ = self._type_var.get()
        account = self._account(self._account_var)
        data = {
            "name": self._name_var.get(),
            "type": type_,
            "amount": amount,
            "frequency": frequency,
            "start_date": self._start_picker.get(),
            "end_date": self._end_picker.get() or None,
            "weekend_handling": _LABEL_TO_WEEKEND.get(self._weekend_var.get(), "as_is"),
            "creation_mode": _LABEL_TO_MODE.get(self._mode_var.get(), "automatic"),
            "description": self._desc_var.get().strip(),
            "currency": account.currency if account else "ARS",
        }
        if type_ == "transfer":
            target = self._account(self._to_account_var)
            data["from_account_id"] = account.id if account else None
            data["to_account_id"] = target.id if target else None
            data["to_amount"] = to_amount
        else:
            cat = next((c for c in self._categories if c.name == self._category_var.get()), None)
            data["account_id"] = account.id if account else None
            data["category_id"] = cat.id if cat else None

        try:
            if self._rule:
                self._svc.update(self._rule.id, data)
            else:
                self._svc.create(data)
        except (ValueError, sqlite3.Error) as e:
            self._error_var.set(format_error(e))
            return
        self._done()


class ConvertToRecurringDialog(FormDialog):
    """Turn an existing movement into a recurring rule starting after its date."""

    def __init__(self, master, recurring_service: RecurringService, movement: Movement, **kwargs):
        super().__init__(master, "Convertir en recurrente", **kwargs)
        self._svc = recurring_service
        self._movement = movement

        r = 0
        self._name_var = self._entry(r, "Nombre:", movement.note or movement.category_name or "")
        r += 1
        self._frequency = FrequencyFields(self, r, Frequency(type="monthly", day=int(movement.date[8:10])))
        r = self._frequency.next_row
        self._mode_var, _ = self._combo(
            r, "Creación:", [CREATION_MODE_LABELS[m] for m in CREATION_MODES],
            CREATION_MODE_LABELS["automatic"],
        )
        r += 1
        self._build_footer(r, save_text="Convertir")
        self._open()

    def _on_save(self):
        try:
            self._svc.convert_to_recurring(
                self._movement.id,
                self._frequency.get(),
                _LABEL_TO_MODE.get(self._mode_var.get(), "automatic"),
                self._name_var.get(),
            )
        except (ValueError, sqlite3.Error) as e:
            self._error_var.set(format_error(e))
            return
        self._done()
