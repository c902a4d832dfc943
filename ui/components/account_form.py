import sqlite3
import customtkinter as ctk
from models.account import Account
from services.account_service import AccountService
from ui.components.form_base import FormDialog, parse_optional_amount
from utils.constants import ACCOUNT_TYPES, CREDIT_CARD_TYPE, CURRENCIES
from utils.errors import format_error


class AccountForm(FormDialog):
    """Add or edit an account. Sets self.saved = True on success."""

    def __init__(
        self,
        master,
        account_service: AccountService,
        account: Account | None = None,
        on_delete_callback=None,
        **kwargs,
    ):
        super().__init__(master, "Editar cuenta" if account else "Nueva cuenta", **kwargs)
        self._svc = account_service
        self._account = account
        self._on_delete = on_delete_callback

        r = 0
        self._name_var = self._entry(r, "Nombre:", account.name if account else "")
        r += 1
        self._icon_var = self._entry(r, "Ícono:", account.icon if account else "", width=60)
        r += 1
        self._type_var, _ = self._combo(
            r, "Tipo:", ACCOUNT_TYPES, account.account_type if account else ACCOUNT_TYPES[0],
            command=lambda _: self._update_card_fields(),
        )
        r += 1
        self._currency_var, _ = self._combo(
            r, "Moneda:", CURRENCIES, account.currency if account else CURRENCIES[0],
        )
        r += 1
        self._ob_var = self._entry(
            r, "Saldo inicial:", f"{account.opening_balance:.2f}" if account else "0",
        )
        r += 1

        self._card_widgets = []
        self._closing_var = self._card_entry(r, "Día de cierre:", account.closing_day if account else None)
        r += 1
        self._due_var = self._card_entry(r, "Día de vencimiento:", account.due_day if account else None)
        r += 1

        self._build_footer(r, on_delete=self._on_delete_click if account else None)
        self._update_card_fields()
        self._open()

    def _card_entry(self, r, text, value):
        label = ctk.CTkLabel(self, text=text)
        label.grid(row=r, column=0, padx=(16, 8), pady=4, sticky="e")
        var = ctk.StringVar(value=str(value) if value else "")
        entry = ctk.CTkEntry(self, textvariable=var, width=60)
        entry.grid(row=r, column=1, padx=(0, 16), pady=4, sticky="w")
        self._card_widgets.extend([label, entry])
        return var

    def _update_card_fields(self):
        is_card = self._type_var.get() == CREDIT_CARD_TYPE
        for w in self._card_widgets:
            if is_card:
                w.grid()
            else:
                w.grid_remove()

    @staticmethod
    def _day(text: str, label: str) -> int | None:
        text = text.strip()
        if not text:
            return None
        if not text.isdigit() or not 1 <= int(text) <= 31:
            raise ValueError(f"El {label} debe estar entre 1 y 31.")
        return int(text)

    def _on_save(self):
        try:
            opening_balance = parse_optional_amount(self._ob_var.get()) or 0.0
        except ValueError:
            self._error_var.set("El saldo inicial debe ser un número.")
            return
        try:
            closing_day = self._day(self._closing_var.get(), "día de cierre")
            due_day = self._day(self._due_var.get(), "día de vencimiento")
            args = (
                self._name_var.get(), self._currency_var.get(), self._type_var.get(),
                opening_balance, closing_day, due_day, self._icon_var.get().strip(),
            )
            if self._account:
                self._svc.update(self._account.id, *args)
            else:
                self._svc.create(*args)
        except (ValueError, sqlite3.Error) as e:
            self._error_var.set(format_error(e))
            return
        self._done()

    def _on_delete_click(self):
        try:
            self._svc.delete(self._account.id)
        except (ValueError, sqlite3.Error) as e:
            self._error_var.set(format_error(e))
            return
        if self._on_delete:
            self._on_delete()
        self._done()
