import customtkinter as ctk
from services.statement_service import StatementService
from ui.components.movement_form import MovementForm
from utils.card_periods import (
    clamp_installments, first_unpaid_period, generate_statement_periods,
    installment_amount, installment_dates, last_installment_date, statement_period_for,
)
from utils.constants import CURRENCIES, INSTALLMENT_OPTIONS, MAX_INSTALLMENTS
from utils.currency import format_currency, parse_amount
from utils.date_helpers import format_date, format_full_date


class ExpenseForm(MovementForm):
    """Expense form; on credit cards it adds currency, statement period and installments."""

    type_ = "expense"

    def __init__(self, master, *args, statement_service: StatementService | None = None, **kwargs):
        self._statements = statement_service
        self._periods = []
        self._card_rows = []
        super().__init__(master, *args, **kwargs)

    def _title_noun(self) -> str:
        return "gasto"

    def _build_extra_rows(self, r: int) -> int:
        mv = self._movement

        self._currency_label = ctk.CTkLabel(self, text="Moneda:")
        self._currency_var = ctk.StringVar(value=mv.currency if mv else CURRENCIES[0])
        self._currency_btn = ctk.CTkSegmentedButton(
            self, values=CURRENCIES, variable=self._currency_var,
            command=lambda _: self._update_preview(),
        )
        self._grid_card_row(r, self._currency_label, self._currency_btn)
        r += 1

        self._period_label = ctk.CTkLabel(self, text="Resumen:")
        self._period_var = ctk.StringVar()
        self._period_combo = ctk.CTkComboBox(
            self, values=[], variable=self._period_var, width=240,
            state="readonly", command=self._on_period_selected,
        )
        self._grid_card_row(r, self._period_label, self._period_combo)
        r += 1

        # Installments only when recording a new purchase.
        self._installments_var = ctk.StringVar(value="1")
        if mv is None:
            self._inst_label = ctk.CTkLabel(self, text="Cuotas:")
            inst_frame = ctk.CTkFrame(self, fg_color="transparent")
            entry = ctk.CTkEntry(inst_frame, textvariable=self._installments_var, width=48)
            entry.pack(side="left")
            entry.bind("<FocusOut>", lambda e: self._clamp_installments())
            for option in INSTALLMENT_OPTIONS:
                ctk.CTkButton(
                    inst_frame, text=str(option), width=34, height=24,
                    fg_color="transparent", border_width=1,
                    text_color=("gray10", "gray90"),
                    command=lambda n=option: self._set_installments(n),
                ).pack(side="left", padx=(4, 0))
            self._grid_card_row(r, self._inst_label, inst_frame)
            r += 1

            self._preview_var = ctk.StringVar()
            preview = ctk.CTkLabel(
                self, textvariable=self._preview_var, text_color="gray60",
                font=ctk.CTkFont(size=11), justify="left", anchor="w",
            )
            preview.grid(row=r, column=1, padx=(0, 16), sticky="w")
            self._card_rows.append(preview)
            self._installments_var.trace_add("write", lambda *_: self._update_preview())
            self._amount_var.trace_add("write", lambda *_: self._update_preview())
            r += 1
        return r

    def _grid_card_row(self, r, label, widget):
        label.grid(row=r, column=0, padx=(16, 8), pady=4, sticky="e")
        widget.grid(row=r, column=1, padx=(0, 16), pady=4, sticky="w")
        self._card_rows.extend([label, widget])

    # ── Card-specific behaviour ─────────────────────────────────────────────
    def _on_account_change(self):
        account = self._selected_account()
        is_card = bool(account and account.is_credit_card)
        for w in self._card_rows:
            if is_card:
                w.grid()
            else:
                w.grid_remove()
        if not is_card:
            self._periods = []
            self._installments_var.set("1")
            if account:
                self._currency_var.set(account.currency)
            return

        self._periods = generate_statement_periods(account.closing_day)
        self._period_combo.configure(values=[p.label for p in self._periods])
        payments = self._statements.get_statement_payments(account.id) if self._statements else {}
        billed = statement_period_for(self._date_picker.get(), account.closing_day)
        default_key = billed if self._movement else first_unpaid_period(self._periods, payments)
        period = next((p for p in self._periods if p.key == default_key), None)
        if period:
            self._period_var.set(period.label)
            if not self._movement and billed != period.key:
                self._date_picker.set(format_date(period.reference_date))
        self._update_preview()

    def _on_period_selected(self, label):
        period = next((p for p in self._periods if p.label == label), None)
        if period:
            self._date_picker.set(format_date(period.reference_date))
            self._update_preview()

    def _on_date_change(self):
        account = self._selected_account()
        if not (account and account.is_credit_card):
            return
        key = statement_period_for(self._date_picker.get(), account.closing_day)
        period = next((p for p in self._periods if p.key == key), None)
        self._period_var.set(period.label if period else "")
        self._update_preview()

    def _set_installments(self, n: int):
        self._installments_var.set(str(n))

    def _clamp_installments(self):
        self._installments_var.set(str(clamp_installments(self._installments_var.get())))

    def _update_preview(self):
        if self._movement is not None:
            return
        account = self._selected_account()
        count = clamp_installments(self._installments_var.get())
        if not (account and account.is_credit_card) or count <= 1:
            self._preview_var.set("")
            return
        try:
            total = parse_amount(self._amount_var.get())
        except ValueError:
            total = None
        dates = installment_dates(self._date_picker.get(), account.closing_day, count)
        last = last_installment_date(dates[0], count, account.closing_day) if dates else None
        lines = []
        if total:
            lines.append(f"{count} cuotas de {format_currency(installment_amount(total, count), self._currency_var.get())}")
        if dates:
            lines.append(f"Primera cuota: {format_full_date(dates[0])}  ·  Última: {format_full_date(last)}")
        self._preview_var.set("\n".join(lines))

    # ── Save ────────────────────────────────────────────────────────────────
    def _submit(self, account, amount, date_str, category_id, note) -> int | None:
        currency = self._currency_var.get() if account.is_credit_card else None
        if self._movement:
            self._svc.update_movement(
                self._movement.id, account_id=account.id, amount=amount, date=date_str,
                category_id=category_id, note=note, currency=currency,
            )
            return self._movement.id
        raw = self._installments_var.get().strip() or "1"
        if not raw.isdigit() or not 1 <= int(raw) <= MAX_INSTALLMENTS:
            raise ValueError(f"Las cuotas deben estar entre 1 y {MAX_INSTALLMENTS}.")
        if account.is_credit_card and int(raw) > 1:
            purchase = self._svc.add_expense_with_installments(
                account.id, amount, date_str, int(raw), category_id, note, currency=currency,
            )
            # The receipt goes on the first installment.
            return self._svc.get_installments_by_purchase(purchase.id)[0].id
        return self._svc.add_expense(account.id, amount, date_str, category_id, note, currency=currency).id
