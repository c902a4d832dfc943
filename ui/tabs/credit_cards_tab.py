import customtkinter as ctk
from services.data_events import ACCOUNTS_CHANGED, EXPENSES_CHANGED
from ui.app_context import AppContext
from ui.components.confirm_dialog import ConfirmDialog
from ui.components.pay_statement_dialog import PayStatementDialog
from utils.currency import format_currency
from utils.date_helpers import format_date, format_display_date, friendly_month


class CreditCardsTab(ctk.CTkFrame):
    """Statements per card, with payment per currency and pending installments."""

    def __init__(self, master, ctx: AppContext, **kwargs):
        super().__init__(master, fg_color="transparent", **kwargs)
        self._ctx = ctx
        self._svc = ctx.services.statements
        self._card_var = ctk.StringVar()
        self._show_past = ctk.BooleanVar(value=False)
        self._expanded: set[str] = set()

        self.grid_columnconfigure(0, weight=3)
        self.grid_columnconfigure(1, weight=2)
        self.grid_rowconfigure(1, weight=1)

        self._build_toolbar()
        self._build_lists()
        self._load()
        ctx.subscribe([ACCOUNTS_CHANGED, EXPENSES_CHANGED], self.refresh)

    def refresh(self):
        self._load()

    def _build_toolbar(self):
        bar = ctk.CTkFrame(self, fg_color=("gray88", "gray18"), corner_radius=8)
        bar.grid(row=0, column=0, columnspan=2, sticky="ew", padx=8, pady=(8, 0))
        ctk.CTkLabel(bar, text="Tarjeta:").pack(side="left", padx=(12, 4), pady=6)
        self._card_combo = ctk.CTkComboBox(bar, variable=self._card_var, width=200, state="readonly",
                                           command=lambda _: self._load())
        self._card_combo.pack(side="left", padx=4)
        ctk.CTkCheckBox(bar, text="Mostrar resúmenes anteriores", variable=self._show_past,
                        command=self._load).pack(side="left", padx=12)
        self._card_info = ctk.CTkLabel(bar, text="", text_color="gray60")
        self._card_info.pack(side="right", padx=12)

    def _build_lists(self):
        self._scroll = ctk.CTkScrollableFrame(self, label_text="Resúmenes")
        self._scroll.grid(row=1, column=0, sticky="nsew", padx=8, pady=8)
        self._scroll.grid_columnconfigure(0, weight=1)
        self._installments = ctk.CTkScrollableFrame(self, label_text="Cuotas pendientes")
        self._installments.grid(row=1, column=1, sticky="nsew", padx=(0, 8), pady=8)
        self._installments.grid_columnconfigure(0, weight=1)

    def _selected_card(self):
        cards = self._ctx.stores.accounts.credit_cards
        names = [c.name for c in cards]
        self._card_combo.configure(values=names)
        if self._card_var.get() not in names:
            self._card_var.set(names[0] if names else "")
        return next((c for c in cards if c.name == self._card_var.get()), None)

    def _load(self):
        for frame in (self._scroll, self._installments):
            for w in frame.winfo_children():
                w.destroy()
        card = self._selected_card()
        if card is None:
            self._card_info.configure(text="")
            ctk.CTkLabel(
                self._scroll, text="No hay tarjetas de crédito. Creá una en la pestaña Cuentas.",
                text_color="gray60",
            ).grid(row=0, column=0, pady=40)
            return
        self._card_info.configure(text=f"Cierre día {card.closing_day}  ·  Vence día {card.due_day}")

        statements = self._svc.get_statements(card.id)
        if not self._show_past.get():
            statements = [s for s in statements if not s.is_past or not (s.paid_ars and s.paid_usd)]
        if not statements:
            ctk.CTkLabel(self._scroll, text="Sin consumos en esta tarjeta.",
                         text_color="gray60").grid(row=0, column=0, pady=40)
        for idx, st in enumerate(statements):
            self._add_statement_card(idx, card, st)
        self._load_installments(card)

    def _add_statement_card(self, idx, card, st):
        border = "#2196F3" if st.is_current else ("gray70", "gray30")
        box = ctk.CTkFrame(self._scroll, fg_color=("gray90", "gray20"), corner_radius=8,
                           border_width=2 if st.is_current else 1, border_color=border)
        box.grid(row=idx, column=0, sticky="ew", padx=4, pady=4)
        box.grid_columnconfigure(0, weight=1)

        status = "actual" if st.is_current else ("cerrado" if st.is_past else "próximo")
        ctk.CTkLabel(
            box, text=f"{friendly_month(st.period)}  ({status})",
            font=ctk.CTkFont(size=13, weight="bold"), anchor="w",
        ).grid(row=0, column=0, sticky="w", padx=12, pady=(8, 0))
        ctk.CTkLabel(
            box, text=f"Cierra {format_display_date(format_date(st.close_date), self._ctx.date_format)}",
            text_color="gray60", anchor="w",
        ).grid(row=1, column=0, sticky="w", padx=12)

        for r, (currency, total, paid) in enumerate(
            (("ARS", st.total_ars, st.paid_ars), ("USD", st.total_usd, st.paid_usd)), start=2
        ):
            if not total and not paid:
                continue
            line = ctk.CTkFrame(box, fg_color="transparent")
            line.grid(row=r, column=0, sticky="ew", padx=12, pady=2)
            ctk.CTkLabel(line, text=format_currency(total, currency), width=140,
                         anchor="w").pack(side="left")
            if paid:
                ctk.CTkLabel(line, text="Pagado ✓", text_color="#4CAF50").pack(side="left", padx=8)
                ctk.CTkButton(
                    line, text="Deshacer", width=70, height=24,
                    fg_color="transparent", border_width=1, text_color=("gray10", "gray90"),
                    command=lambda c=currency: self._undo(card, st.period, c),
                ).pack(side="right")
            else:
                ctk.CTkButton(
                    line, text=f"Pagar {currency}", width=90, height=24,
                    command=lambda c=currency, t=total: self._pay(card, st.period, c, t),
                ).pack(side="right")

        toggle = "Ocultar detalle" if st.period in self._expanded else f"Ver {len(st.items)} consumos"
        ctk.CTkButton(
            box, text=toggle, height=22, fg_color="transparent",
            text_color=("gray10", "gray90"), hover_color=("gray80", "gray25"),
            command=lambda: self._toggle(st.period),
        ).grid(row=4, column=0, sticky="w", padx=8, pady=(2, 8))
        if st.period in self._expanded:
            self._add_items(box, st.items)

    def _add_items(self, box, items):
        frame = ctk.CTkFrame(box, fg_color="transparent")
        frame.grid(row=5, column=0, sticky="ew", padx=12, pady=(0, 8))
        frame.grid_columnconfigure(1, weight=1)
        for r, m in enumerate(items):
            ctk.CTkLabel(frame, text=format_display_date(m.date, self._ctx.date_format),
                         width=90, anchor="w").grid(row=r, column=0, sticky="w")
            note = m.note or m.category_name or "-"
            if m.installment:
                note += f"  ({m.installment})"
            ctk.CTkLabel(frame, text=note, anchor="w").grid(row=r, column=1, sticky="w", padx=4)
            ctk.CTkLabel(frame, text=format_currency(m.amount, m.currency),
                         anchor="e").grid(row=r, column=2, sticky="e")

    def _load_installments(self, card):
        pending = [m for m in self._ctx.services.movements.get_pending_installments()
                   if m.account_id == card.id]
        if not pending:
            ctk.CTkLabel(self._installments, text="Sin cuotas pendientes.",
                         text_color="gray60").grid(row=0, column=0, pady=20)
            return
        for idx, m in enumerate(pending):
            bg = ("gray92", "gray17") if idx % 2 == 0 else ("gray88", "gray21")
            row = ctk.CTkFrame(self._installments, fg_color=bg, corner_radius=4)
            row.grid(row=idx, column=0, sticky="ew", pady=1)
            row.grid_columnconfigure(1, weight=1)
            ctk.CTkLabel(row, text=format_display_date(m.date, self._ctx.date_format),
                         width=90, anchor="w").grid(row=0, column=0, padx=(6, 2), pady=2)
            ctk.CTkLabel(row, text=f"{m.note or m.category_name}  {m.installment}",
                         anchor="w").grid(row=0, column=1, sticky="w")
            ctk.CTkLabel(row, text=format_currency(m.amount, m.currency),
                         anchor="e").grid(row=0, column=2, padx=6)

    def _toggle(self, period):
        self._expanded ^= {period}
        self._load()

    def _pay(self, card, period, currency, amount):
        PayStatementDialog(self.winfo_toplevel(), self._svc, card, period, currency, amount,
                           self._ctx.stores.accounts.data, date_format=self._ctx.date_format)

    def _undo(self, card, period, currency):
        dlg = ConfirmDialog(
            self.winfo_toplevel(), "Deshacer pago",
            f"¿Deshacer el pago {currency} de {friendly_month(period)}? Se elimina la transferencia asociada.",
            confirm_text="Deshacer",
        )
        if dlg.result:
            self._ctx.guarded(self._svc.undo_payment, card.id, period, currency, context="Deshacer pago")
