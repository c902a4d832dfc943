import sqlite3
import customtkinter as ctk
from models.movement import Transfer
from services.movement_service import MovementService
from ui.components.date_picker import DatePickerWidget
from ui.components.form_base import FormDialog, parse_optional_amount
from utils.currency import parse_amount
from utils.date_helpers import today_str
from utils.errors import format_error
from utils.recency import sort_by_recency


class TransferForm(FormDialog):
    """Move money between two accounts; asks for the received amount across currencies."""

    def __init__(
        self,
        master,
        movement_service: MovementService,
        accounts: list,
        recent: dict | None = None,
        transfer: Transfer | None = None,
        from_account_id: int | None = None,
        to_account_id: int | None = None,
        date_format: str = "DD-MM-YYYY",
        **kwargs,
    ):
        super().__init__(master, "Editar transferencia" if transfer else "Nueva transferencia", **kwargs)
        self._svc = movement_service
        self._transfer = transfer
        self._accounts = sort_by_recency(accounts, (recent or {}).get("account_ids", []))
        names = [a.name for a in self._accounts]

        from_id = transfer.from_account_id if transfer else from_account_id
        to_id = transfer.to_account_id if transfer else to_account_id
        from_name = self._name_for(from_id) or (names[0] if names else "")
        to_name = self._name_for(to_id) or next((n for n in names if n != from_name), "")

        r = 0
        self._from_var, _ = self._combo(r, "Desde:", names, from_name,
                                        command=lambda _: self._on_accounts_change())
        r += 1
        self._to_var, _ = self._combo(r, "Hacia:", names, to_name,
                                      command=lambda _: self._on_accounts_change())
        r += 1
        self._amount_var = self._entry(r, "Monto enviado:", f"{transfer.from_amount:.2f}" if transfer else "")
        r += 1

        self._to_amount_label = ctk.CTkLabel(self, text="Monto recibido:")
        self._to_amount_label.grid(row=r, column=0, padx=(16, 8), pady=4, sticky="e")
        self._to_amount_var = ctk.StringVar(
            value=f"{transfer.to_amount:.2f}" if transfer and transfer.to_amount != transfer.from_amount else ""
        )
        self._to_amount_entry = ctk.CTkEntry(self, textvariable=self._to_amount_var, width=240)
        self._to_amount_entry.grid(row=r, column=1, padx=(0, 16), pady=4, sticky="ew")
        r += 1

        self._label("Fecha:", r)
        self._date_picker = self._place(DatePickerWidget(
            self, initial_date=transfer.date if transfer else today_str(), date_format=date_format,
        ), r, sticky="w")
        r += 1
        self._note_var = self._entry(r, "Nota:", transfer.note if transfer else "")
        r += 1

        self._build_footer(r, save_text="Transferir" if not transfer else "Guardar")
        self._on_accounts_change()
        self._open()

    def _name_for(self, account_id) -> str:
        return next((a.name for a in self._accounts if a.id == account_id), "")

    def _account(self, name):
        return next((a for a in self._accounts if a.name == name), None)

    def _on_accounts_change(self):
        source, target = self._account(self._from_var.get()), self._account(self._to_var.get())
        if source and target and source.currency != target.currency:
            self._to_amount_label.grid()
            self._to_amount_entry.grid()
        else:
            self._to_amount_label.grid_remove()
            self._to_amount_entry.grid_remove()
            self._to_amount_var.set("")

    def _on_save(self):
        source, target = self._account(self._from_var.get()), self._account(self._to_var.get())
        if not source or not target:
            self._error_var.set("Seleccioná ambas cuentas.")
            return
        try:
            amount = parse_amount(self._amount_var.get())
            to_amount = parse_optional_amount(self._to_amount_var.get())
        except ValueError:
            self._error_var.set("Monto inválido.")
            return
        if not self._date_picker.is_valid():
            self._error_var.set("Fecha inválida.")
            return

        try:
            if self._transfer:
                self._svc.update_transfer(
                    self._transfer.id, source.id, target.id, amount,
                    self._date_picker.get(), self._note_var.get(), to_amount=to_amount,
                )
            else:
                self._svc.add_transfer(
                    source.id, target.id, amount, self._date_picker.get(),
                    self._note_var.get(), to_amount=to_amount,
                )
        except (ValueError, sqlite3.Error) as e:
            self._error_var.set(format_error(e))
            return
        self._done()
