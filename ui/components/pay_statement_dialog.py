import sqlite3
import customtkinter as ctk
from models.account import Account
from services.statement_service import StatementService
from ui.components.date_picker import DatePickerWidget
from ui.components.form_base import FormDialog, parse_optional_amount
from utils.currency import parse_amount
from utils.date_helpers import friendly_month, today_str
from utils.errors import format_error

NO_SOURCE = "Solo marcar como pagado"


class PayStatementDialog(FormDialog):
    """Mark one currency of a card statement as paid, optionally from another account."""

    def __init__(
        self,
        master,
        statement_service: StatementService,
        card: Account,
        period: str,
        currency: str,
        amount: float,
        accounts: list,
        date_format: str = "DD-MM-YYYY",
        **kwargs,
    ):
        super().__init__(master, f"Pagar resumen {friendly_month(period)}", **kwargs)
        self._svc = statement_service
        self._card = card
        self._period = period
        self._currency = currency
        self._sources = [a for a in accounts if a.id != card.id and not a.is_credit_card]

        r = 0
        self._label("Resumen:", r)
        self._place(ctk.CTkLabel(self, text=f"{card.name} · {currency}", anchor="w"), r, sticky="w")
        r += 1
        self._amount_var = self._entry(r, "Monto:", f"{amount:.2f}")
        r += 1
        default_source = next((a.name for a in self._sources if a.currency == currency), NO_SOURCE)
        self._source_var, _ = self._combo(
            r, "Pagar desde:", [NO_SOURCE] + [a.name for a in self._sources], default_source,
        )
        r += 1
        self._paid_var = self._entry(r, "Monto debitado:", "")
        r += 1
        self._label("Fecha:", r)
        self._date_picker = self._place(DatePickerWidget(self, initial_date=today_str(),
                                                         date_format=date_format), r, sticky="w")
        r += 1
        self._build_footer(r, save_text="Pagar")
        self._open()

    def _on_save(self):
        try:
            amount = parse_amount(self._amount_var.get())
            paid_amount = parse_optional_amount(self._paid_var.get())
        except ValueError:
            self._error_var.set("Monto inválido.")
            return
        source = next((a for a in self._sources if a.name == self._source_var.get()), None)
        try:
            self._svc.pay_statement(
                self._card.id, self._period, self._currency, amount,
                from_account_id=source.id if source else None,
                paid_amount=paid_amount,
                date_str=self._date_picker.get() or None,
            )
        except (ValueError, sqlite3.Error) as e:
            self._error_var.set(format_error(e))
            return
        self._done()
