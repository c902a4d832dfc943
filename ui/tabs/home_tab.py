import customtkinter as ctk
from services.data_events import ACCOUNTS_CHANGED, MOVEMENT_TOPICS
from ui.app_context import AppContext
from ui.components.chart_panel import ChartPanel, short_amount
from utils.constants import CURRENCIES, TYPE_COLORS
from utils.currency import format_currency, format_currency_with_sign
from utils.date_helpers import current_month_str, friendly_month, next_month, prev_month


class HomeTab(ctk.CTkFrame):
    """Total balance, the month's income and expenses, and every account's balance."""

    def __init__(self, master, ctx: AppContext, **kwargs):
        super().__init__(master, fg_color="transparent", **kwargs)
        self._ctx = ctx
        self._svc = ctx.services.reports
        self._month = current_month_str()
        self._month_var = ctk.StringVar(value=friendly_month(self._month))
        self._currency_var = ctk.StringVar(value=ctx.display_currency)

        self.grid_columnconfigure(0, weight=1)
        self.grid_rowconfigure(2, weight=1)

        self._build_month_nav()
        self._build_summary_cards()
        self._build_bottom_section()
        self._load()
        ctx.subscribe(list(MOVEMENT_TOPICS.values()) + [ACCOUNTS_CHANGED], self.refresh)

    def refresh(self):
        self._load()

    def _build_month_nav(self):
        nav = ctk.CTkFrame(self, fg_color="transparent")
        nav.grid(row=0, column=0, sticky="ew", padx=16, pady=(12, 0))
        ctk.CTkButton(nav, text="◀", width=28, command=lambda: self._shift(prev_month)).pack(side="left")
        ctk.CTkLabel(
            nav, textvariable=self._month_var,
            font=ctk.CTkFont(size=15, weight="bold"), width=150, anchor="center",
        ).pack(side="left", padx=8)
        ctk.CTkButton(nav, text="▶", width=28, command=lambda: self._shift(next_month)).pack(side="left")
        ctk.CTkSegmentedButton(nav, values=CURRENCIES, variable=self._currency_var,
                               command=lambda _: self._load()).pack(side="right")

    def _shift(self, step):
        self._month = step(self._month)
        self._month_var.set(friendly_month(self._month))
        self._load()

    def _build_summary_cards(self):
        self._card_frame = ctk.CTkFrame(self, fg_color="transparent")
        self._card_frame.grid(row=1, column=0, sticky="ew", padx=16, pady=12)
        self._card_frame.grid_columnconfigure((0, 1, 2, 3), weight=1)

    def _build_bottom_section(self):
        bottom = ctk.CTkFrame(self, fg_color="transparent")
        bottom.grid(row=2, column=0, sticky="nsew", padx=16, pady=(0, 12))
        bottom.grid_columnconfigure(0, weight=2)
        bottom.grid_columnconfigure(1, weight=3)
        bottom.grid_rowconfigure(0, weight=1)

        self._accounts_frame = ctk.CTkScrollableFrame(bottom, label_text="Saldos por cuenta", height=240)
        self._accounts_frame.grid(row=0, column=0, sticky="nsew", padx=(0, 8))
        self._accounts_frame.grid_columnconfigure(0, weight=1)

        self._chart = ChartPanel(bottom, "Ingresos vs. gastos (6 meses)")
        self._chart.grid(row=0, column=1, sticky="nsew", padx=(8, 0))

    def _load(self):
        currency = self._currency_var.get()
        balances = self._svc.get_balances(currency)
        totals = self._svc.get_summary(self._month, currency)

        for w in self._card_frame.winfo_children():
            w.destroy()
        card_data = [
            ("Saldo total", format_currency(balances["total"], currency),
             "#4CAF50" if balances["total"] >= 0 else "#F44336"),
            ("Ingresos del mes", format_currency(totals["income"], currency), TYPE_COLORS["income"]),
            ("Gastos del mes", format_currency(totals["expense"], currency), TYPE_COLORS["expense"]),
            ("Neto", format_currency_with_sign(totals["net"], currency),
             "#2196F3" if totals["net"] >= 0 else "#FF9800"),
        ]
        for i, (label, text, color) in enumerate(card_data):
            self._make_card(i, label, text, color)

        for w in self._accounts_frame.winfo_children():
            w.destroy()
        if not balances["accounts"]:
            ctk.CTkLabel(self._accounts_frame, text="No hay cuentas.", text_color="gray60").grid(
                row=0, column=0, pady=20)
        for r, row in enumerate(balances["accounts"]):
            account, balance = row["account"], row["balance"]
            bg = ("gray90", "gray20") if r % 2 == 0 else ("gray86", "gray24")
            f = ctk.CTkFrame(self._accounts_frame, fg_color=bg, corner_radius=4)
            f.grid(row=r, column=0, sticky="ew", pady=1)
            f.grid_columnconfigure(0, weight=1)
            ctk.CTkLabel(f, text=account.display_name, anchor="w").grid(row=0, column=0, padx=6, pady=3, sticky="w")
            ctk.CTkLabel(
                f, text=format_currency(balance, account.currency), anchor="e",
                text_color="#4CAF50" if balance >= 0 else "#F44336",
            ).grid(row=0, column=1, padx=6)

        self.after(50, lambda: self._draw_chart(currency))

    def _make_card(self, col, label, text, color):
        card = ctk.CTkFrame(self._card_frame, fg_color=("gray90", "gray20"), corner_radius=10)
        card.grid(row=0, column=col, padx=6, sticky="ew")
        card.grid_columnconfigure(0, weight=1)
        ctk.CTkLabel(card, text=label, font=ctk.CTkFont(size=12), text_color="gray60").grid(
            row=0, column=0, pady=(12, 0), padx=16)
        ctk.CTkLabel(card, text=text, font=ctk.CTkFont(size=20, weight="bold"), text_color=color).grid(
            row=1, column=0, pady=(4, 12), padx=16)

    def _draw_chart(self, currency):
        data = self._svc.get_monthly_chart_data(months=6, currency=currency, end_month=self._month)
        if not any(d["income"] or d["expense"] for d in data):
            self._chart.show_empty()
            return
        ax = self._chart.clear()
        x = list(range(len(data)))
        w = 0.35
        ax.bar([i - w / 2 for i in x], [d["income"] for d in data], w, color=TYPE_COLORS["income"])
        ax.bar([i + w / 2 for i in x], [d["expense"] for d in data], w, color=TYPE_COLORS["expense"])
        ax.set_xticks(x)
        ax.set_xticklabels([d["month"][5:] for d in data])
        ax.yaxis.set_major_formatter(short_amount)
        self._chart.draw()
