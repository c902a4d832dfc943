import sqlite3
from tkinter import filedialog
import customtkinter as ctk
from models.movement import Movement
from services.auto_rule_service import AutoRuleService
from services.movement_service import MovementService
from ui.components.date_picker import DatePickerWidget
from ui.components.form_base import FormDialog
from utils.attachments import ATTACHMENT_TYPES, attachment_name
from utils.currency import parse_amount
from utils.date_helpers import today_str
from utils.errors import format_error
from utils.recency import sort_by_recency

NO_CATEGORY = "Sin categoría"


class MovementForm(FormDialog):
    """Add or edit an income or expense.

    Accounts and categories are listed most-recently-used first. While typing
    the note, auto-categorization rules are evaluated and the first match
    preselects category and/or account.
    """

    type_ = "income"
    _last_date: str = today_str()

    def __init__(
        self,
        master,
        movement_service: MovementService,
        auto_rule_service: AutoRuleService | None,
        accounts: list,
        categories: list,
        recent: dict | None = None,
        movement: Movement | None = None,
        initial_account_id: int | None = None,
        date_format: str = "DD-MM-YYYY",
        **kwargs,
    ):
        verb = "Editar" if movement else "Nuevo"
        super().__init__(master, f"{verb} {self._title_noun()}", **kwargs)
        self._svc = movement_service
        self._rules = auto_rule_service
        self._movement = movement
        self._date_format = date_format
        self._rule_after_id = None
        recent = recent or {}

        self._accounts = sort_by_recency(accounts, recent.get("account_ids", []))
        self._categories = sort_by_recency(
            [c for c in categories if c.type == self.type_], recent.get("category_ids", [])
        )

        default_account_id = movement.account_id if movement else initial_account_id
        default_account = next((a for a in self._accounts if a.id == default_account_id), None)
        if default_account is None and self._accounts:
            default_account = self._accounts[0]

        r = 0
        self._account_var, self._account_combo = self._combo(
            r, "Cuenta:", [a.name for a in self._accounts],
            default_account.name if default_account else "",
            command=lambda _: self._on_account_change(),
        )
        r += 1
        self._amount_var = self._entry(r, "Monto:", f"{movement.amount:.2f}" if movement else "")
        r += 1

        self._label("Fecha:", r)
        self._date_picker = self._place(DatePickerWidget(
            self,
            initial_date=movement.date if movement else MovementForm._last_date,
            date_format=date_format,
            command=lambda _: self._on_date_change(),
        ), r, sticky="w")
        r += 1

        r = self._build_extra_rows(r)

        current_cat = movement.category_name if movement and movement.category_name else NO_CATEGORY
        self._category_var, self._category_combo = self._combo(
            r, "Categoría:", [NO_CATEGORY] + [c.name for c in self._categories], current_cat,
        )
        r += 1

        self._note_var = self._entry(r, "Nota:", movement.note if movement else "")
        if not movement and self._rules:
            self._note_var.trace_add("write", lambda *_: self._schedule_rule_check())
        r += 1

        self._attachment_source: str | None = None
        self._attachment_cleared = False
        self._label("Adjunto:", r)
        box = self._place(ctk.CTkFrame(self, fg_color="transparent"), r, sticky="w")
        ctk.CTkButton(box, text="Elegir…", width=80,
                      command=self._choose_attachment).pack(side="left")
        ctk.CTkButton(box, text="Quitar", width=60, fg_color="transparent", border_width=1,
                      text_color=("gray10", "gray90"),
                      command=self._clear_attachment).pack(side="left", padx=6)
        self._attachment_var = ctk.StringVar(
            value=attachment_name(movement.attachment_path) if movement else "")
        ctk.CTkLabel(box, textvariable=self._attachment_var, text_color="gray60",
                     font=ctk.CTkFont(size=11)).pack(side="left")
        r += 1

        self._rule_var = ctk.StringVar()
        ctk.CTkLabel(
            self, textvariable=self._rule_var, text_color="#2196F3",
            font=ctk.CTkFont(size=11), anchor="w",
        ).grid(row=r, column=1, padx=(0, 16), sticky="w")
        r += 1

        self._build_footer(r)
        self._on_account_change()
        self._open()

    def _title_noun(self) -> str:
        return "ingreso"

    def _build_extra_rows(self, r: int) -> int:
        return r

    # ── Field handlers ──────────────────────────────────────────────────────
    def _selected_account(self):
        return next((a for a in self._accounts if a.name == self._account_var.get()), None)

    def _selected_category_id(self) -> int | None:
        cat = next((c for c in self._categories if c.name == self._category_var.get()), None)
        return cat.id if cat else None

    def _on_account_change(self):
        pass

    def _on_date_change(self):
        pass

    def _choose_attachment(self):
        path = filedialog.askopenfilename(parent=self, title="Elegir comprobante",
                                          filetypes=ATTACHMENT_TYPES)
        if path:
            self._attachment_source = path
            self._attachment_cleared = False
            self._attachment_var.set(attachment_name(path))

    def _clear_attachment(self):
        self._attachment_source = None
        self._attachment_cleared = True
        self._attachment_var.set("")

    def _save_attachment(self, movement_id: int | None):
        if movement_id is None:
            return
        if self._attachment_source:
            self._svc.attach_file(movement_id, self._attachment_source)
        elif self._attachment_cleared and self._movement and self._movement.attachment_path:
            self._svc.remove_attachment(movement_id)

    def _schedule_rule_check(self):
        if self._rule_after_id:
            self.after_cancel(self._rule_after_id)
        self._rule_after_id = self.after(400, self._apply_rules)

    def _apply_rules(self):
        self._rule_after_id = None
        account = self._selected_account()
        try:
            amount = parse_amount(self._amount_var.get())
        except ValueError:
            amount = None
        suggestion = self._rules.evaluate_auto_rules(
            self._note_var.get(), amount, account.id if account else None, self.type_,
        )
        if suggestion is None:
            self._rule_var.set("")
            return
        if suggestion.category_id:
            cat = next((c for c in self._categories if c.id == suggestion.category_id), None)
            if cat:
                self._category_var.set(cat.name)
        if suggestion.account_id:
            acct = next((a for a in self._accounts if a.id == suggestion.account_id), None)
            if acct:
                self._account_var.set(acct.name)
                self._on_account_change()
        self._rule_var.set(f"Regla aplicada: {suggestion.rule_name}")

    # ── Save ────────────────────────────────────────────────────────────────
    def _on_save(self):
        account = self._selected_account()
        if account is None:
            self._error_var.set("Seleccioná una cuenta.")
            return
        try:
            amount = parse_amount(self._amount_var.get())
        except ValueError:
            self._error_var.set("Monto inválido.")
            return
        if not self._date_picker.is_valid():
            self._error_var.set("Fecha inválida.")
            return

        date_str = self._date_picker.get()
        try:
            movement_id = self._submit(account, amount, date_str, self._selected_category_id(),
                                       self._note_var.get().strip())
            self._save_attachment(movement_id)
        except (ValueError, sqlite3.Error) as e:
            self._error_var.set(format_error(e))
            return
        MovementForm._last_date = date_str
        self._done()

    def _submit(self, account, amount, date_str, category_id, note) -> int | None:
        """Save the movement; returns the id an attachment belongs to."""
        if self._movement:
            self._svc.update_movement(
                self._movement.id, account_id=account.id, amount=amount,
                date=date_str, category_id=category_id, note=note,
            )
            return self._movement.id
        return self._svc.add_income(account.id, amount, date_str, category_id, note).id


class IncomeForm(MovementForm):
    type_ = "income"
