import sqlite3
from datetime import timedelta
import customtkinter as ctk
from models.scheduled import ScheduledTransaction
from services.scheduled_service import ScheduledService
from ui.components.date_picker import DatePickerWidget
from ui.components.form_base import FormDialog, parse_optional_amount
from utils.constants import TYPE_LABELS
from utils.currency import parse_amount
from utils.date_helpers import format_date, today
from utils.errors import format_error


class ScheduledForm(FormDialog):
    """A one-off future transaction that waits for approval."""

    def __init__(
        self,
        master,
        scheduled_service: ScheduledService,
        accounts: list,
        categories: list,
        item: ScheduledTransaction | None = None,
        date_format: str = "DD-MM-YYYY",
        **kwargs,
    ):
        super().__init__(master, "Editar programada" if item else "Nueva programada", **kwargs)
        self._svc = scheduled_service
        self._item = item
        self._accounts = accounts
        self._all_categories = categories
        names = [a.name for a in accounts]

        def _name(account_id):
            return next((a.name for a in accounts if a.id == account_id), names[0] if names else "")

        r = 0
        self._label("Tipo:", r)
        self._type_var = ctk.StringVar(value=item.type if item else "expense")
        type_frame = self._place(ctk.CTkFrame(self, fg_color="transparent"), r, sticky="w")
        for t in ("income", "expense", "transfer"):
            ctk.CTkRadioButton(
                type_frame, text=TYPE_LABELS[t], variable=self._type_var, value=t,
                command=self._on_type_change,
            ).pack(side="left", padx=4)
        r += 1

        self._label("Fecha:", r)
        self._date_picker = self._place(DatePickerWidget(
            self,
            initial_date=item.scheduled_date if item else format_date(today() + timedelta(days=1)),
            date_format=date_format,
        ), r, sticky="w")
        r += 1
        self._amount_var = self._entry(r, "Monto:", f"{item.amount:.2f}" if item else "")
        r += 1
        self._account_var, _ = self._combo(r, "Cuenta:", names, _name(item.account_id if item else None))
        r += 1
        self._to_account_var, _ = self._combo(
            r, "Cuenta destino:", names, _name(item.to_account_id if item else None))
        self._to_account_row = r
        r += 1
        self._to_amount_var = self._entry(
            r, "Monto recibido:", f"{item.to_amount:.2f}" if item and item.to_amount else "")
        self._to_amount_row = r
        r += 1
        self._category_var, self._category_combo = self._combo(r, "Categoría:", [], "")
        self._category_row = r
        r += 1
        self._note_var = self._entry(r, "Nota:", item.note if item else "")
        r += 1

        self._build_footer(r, save_text="Programar" if not item else "Guardar")
        self._on_type_change(initial_category=item.category_name if item else "")
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

    def _account_id(self, var) -> int | None:
        return next((a.id for a in self._accounts if a.name == var.get()), None)

    def _on_save(self):
        try:
            amount = parse_amount(self._amount_var.get())
            to_amount = parse_optional_amount(self._to_amount_var.get())
        except ValueError:
            self._error_var.set("Monto inválido.")
            return
        if not self._date_picker.is_valid():
            self._error_var.set("Fecha inválida.")
            return
        type_ = self._type_var.get()
        cat = next((c for c in self._categories if c.name == self._category_var.get()), None)
        data = {
            "type": type_,
            "scheduled_date": self._date_picker.get(),
            "amount": amount,
            "account_id": self._account_id(self._account_var),
            "to_account_id": self._account_id(self._to_account_var) if type_ == "transfer" else None,
            "to_amount": to_amount if type_ == "transfer" else None,
            "category_id": cat.id if cat and type_ != "transfer" else None,
            "note": self._note_var.get(),
        }
        try:
            if self._item:
                self._svc.update(self._item.id, data)
            else:
                self._svc.create(data)
        except (ValueError, sqlite3.Error) as e:
            self._error_var.set(format_error(e))
            return
        self._done()
