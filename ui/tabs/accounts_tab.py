import customtkinter as ctk
from ui.app_context import AppContext
from ui.components.account_form import AccountForm
from ui.components.expense_form import ExpenseForm
from ui.components.transfer_form import TransferForm
from utils.constants import CURRENCIES
from utils.currency import convert_currency, format_currency


class AccountsTab(ctk.CTkFrame):
    """Accounts and their current balances."""

    def __init__(self, master, ctx: AppContext, **kwargs):
        super().__init__(master, fg_color="transparent", **kwargs)
        self._ctx = ctx
        self._store = ctx.stores.accounts

        self.grid_columnconfigure(0, weight=1)
        self.grid_rowconfigure(2, weight=1)

        self._build_toolbar()
        self._totals = ctk.CTkFrame(self, fg_color="transparent")
        self._totals.grid(row=1, column=0, sticky="ew", padx=8, pady=(6, 0))
        self._scroll = ctk.CTkScrollableFrame(self)
        self._scroll.grid(row=2, column=0, sticky="nsew", padx=8, pady=8)
        self._scroll.grid_columnconfigure(0, weight=1)
        self._load()
        self._store.subscribe(lambda _store: self._load())

    def refresh(self):
        self._store.refetch()

    def _build_toolbar(self):
        bar = ctk.CTkFrame(self, fg_color=("gray88", "gray18"), corner_radius=8)
        bar.grid(row=0, column=0, sticky="ew", padx=8, pady=(8, 0))
        ctk.CTkLabel(bar, text="Cuentas", font=ctk.CTkFont(size=13, weight="bold")).pack(
            side="left", padx=(12, 16), pady=8)
        ctk.CTkButton(bar, text="+ Cuenta", command=lambda: self._form()).pack(side="right", padx=8, pady=6)

    def _load(self):
        for frame in (self._totals, self._scroll):
            for w in frame.winfo_children():
                w.destroy()
        if self._store.error:
            ctk.CTkLabel(self._scroll, text=self._store.error, text_color="#F44336").grid(row=0, column=0, pady=20)
            return

        accounts = self._store.data
        balances = self._store.balances
        per_currency = {c: 0.0 for c in CURRENCIES}
        for a in accounts:
            per_currency[a.currency] = per_currency.get(a.currency, 0.0) + balances.get(a.id, 0.0)
        display = self._ctx.display_currency
        total = sum(convert_currency(v, c, display) for c, v in per_currency.items())
        cards = list(per_currency.items()) + [(f"Total en {display}", total)]
        for i, (label, value) in enumerate(cards):
            card = ctk.CTkFrame(self._totals, fg_color=("gray90", "gray20"), corner_radius=8)
            card.grid(row=0, column=i, padx=4, sticky="ew")
            self._totals.grid_columnconfigure(i, weight=1)
            currency = label if label in per_currency else display
            ctk.CTkLabel(card, text=label, text_color="gray60").pack(pady=(6, 0))
            ctk.CTkLabel(card, text=format_currency(value, currency),
                         text_color="#4CAF50" if value >= 0 else "#F44336",
                         font=ctk.CTkFont(size=15, weight="bold")).pack(pady=(0, 6))

        if not accounts:
            ctk.CTkLabel(self._scroll, text="No hay cuentas. Creá una con '+ Cuenta'.",
                         text_color="gray60").grid(row=0, column=0, pady=40)
        for idx, a in enumerate(accounts):
            self._add_row(idx, a, balances.get(a.id, 0.0))

    def _add_row(self, idx, a, balance):
        row = ctk.CTkFrame(self._scroll, fg_color=("gray90", "gray20"), corner_radius=8)
        row.grid(row=idx, column=0, sticky="ew", padx=4, pady=3)
        row.grid_columnconfigure(1, weight=1)

        ctk.CTkLabel(row, text=a.icon or "🏦", width=28).grid(row=0, column=0, rowspan=2, padx=(10, 0), pady=8)
        ctk.CTkLabel(row, text=a.name, font=ctk.CTkFont(size=13, weight="bold"),
                     anchor="w").grid(row=0, column=1, padx=8, sticky="w", pady=(6, 0))
        detail = a.account_type
        if a.is_credit_card:
            detail += f"  ·  cierre {a.closing_day}  ·  vto. {a.due_day}"
        ctk.CTkLabel(row, text=detail, text_color="gray60", font=ctk.CTkFont(size=11),
                     anchor="w").grid(row=1, column=1, padx=8, sticky="w", pady=(0, 6))
        ctk.CTkLabel(row, text=format_currency(balance, a.currency), width=140, anchor="e",
                     text_color="#4CAF50" if balance >= 0 else "#F44336",
                     font=ctk.CTkFont(size=13, weight="bold")).grid(row=0, column=2, rowspan=2, padx=8)

        btn_frame = ctk.CTkFrame(row, fg_color="transparent")
        btn_frame.grid(row=0, column=3, rowspan=2, padx=(4, 10))
        ctk.CTkButton(btn_frame, text="Gasto", width=60, height=26,
                      command=lambda: self._expense(a)).pack(side="left", padx=2)
        ctk.CTkButton(btn_frame, text="Transferir", width=72, height=26,
                      command=lambda: self._transfer(a)).pack(side="left", padx=2)
        ctk.CTkButton(
            btn_frame, text="Editar", width=60, height=26,
            fg_color="transparent", border_width=1, text_color=("gray10", "gray90"),
            command=lambda: self._form(a),
        ).pack(side="left", padx=2)

    def _form(self, account=None):
        AccountForm(self.winfo_toplevel(), self._ctx.services.accounts, account=account)

    def _expense(self, account):
        stores = self._ctx.stores
        ExpenseForm(self.winfo_toplevel(), self._ctx.services.movements, self._ctx.services.rules,
                    stores.accounts.data, stores.categories.data, recent=stores.recent.data or {},
                    initial_account_id=account.id, date_format=self._ctx.date_format,
                    statement_service=self._ctx.services.statements)

    def _transfer(self, account):
        TransferForm(self.winfo_toplevel(), self._ctx.services.movements, self._ctx.stores.accounts.data,
                     recent=self._ctx.stores.recent.data or {}, from_account_id=account.id,
                     date_format=self._ctx.date_format)
