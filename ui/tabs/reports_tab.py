import customtkinter as ctk
import tkinter as tk
from services.data_events import CATEGORIES_CHANGED, MOVEMENT_TOPICS
from ui.app_context import AppContext
from ui.components.chart_panel import ChartPanel, short_amount
from utils.constants import CURRENCIES
from utils.currency import format_currency
from utils.date_helpers import current_month_str, friendly_month, next_month, prev_month

_TYPES = {"Gastos": "expense", "Ingresos": "income"}
_WINDOWS = {"3 meses": 3, "6 meses": 6, "12 meses": 12}
_PALETTE = ["#2196F3", "#F44336", "#4CAF50", "#FF9800", "#9C27B0",
            "#00BCD4", "#795548", "#E91E63", "#607D8B", "#CDDC39"]


class ReportsTab(ctk.CTkFrame):
    """Per-category totals over time and the selected month's breakdown."""

    def __init__(self, master, ctx: AppContext, **kwargs):
        super().__init__(master, fg_color="transparent", **kwargs)
        self._ctx = ctx
        self._svc = ctx.services.reports
        self._month = current_month_str()
        self._month_var = ctk.StringVar(value=friendly_month(self._month))
        self._type_var = ctk.StringVar(value="Gastos")
        self._window_var = ctk.StringVar(value="6 meses")
        self._currency_var = ctk.StringVar(value=ctx.display_currency)

        self.grid_columnconfigure(0, weight=3)
        self.grid_columnconfigure(1, weight=2)
        self.grid_rowconfigure(1, weight=1)

        self._build_toolbar()
        self._build_charts()
        self._load()
        ctx.subscribe([MOVEMENT_TOPICS["income"], MOVEMENT_TOPICS["expense"], CATEGORIES_CHANGED], self.refresh)

    def refresh(self):
        self._load()

    def _build_toolbar(self):
        bar = ctk.CTkFrame(self, fg_color=("gray88", "gray18"), corner_radius=8)
        bar.grid(row=0, column=0, columnspan=2, sticky="ew", padx=8, pady=(8, 0))

        ctk.CTkSegmentedButton(bar, values=list(_TYPES), variable=self._type_var,
                               command=lambda _: self._load()).pack(side="left", padx=8, pady=6)
        ctk.CTkButton(bar, text="◀", width=28, command=lambda: self._shift(prev_month)).pack(side="left")
        ctk.CTkLabel(bar, textvariable=self._month_var, width=130, anchor="center").pack(side="left", padx=4)
        ctk.CTkButton(bar, text="▶", width=28, command=lambda: self._shift(next_month)).pack(side="left", padx=(0, 12))
        ctk.CTkComboBox(bar, values=list(_WINDOWS), variable=self._window_var, width=110, state="readonly",
                        command=lambda _: self._load()).pack(side="left")
        ctk.CTkSegmentedButton(bar, values=CURRENCIES, variable=self._currency_var,
                               command=lambda _: self._load()).pack(side="right", padx=8)

    def _shift(self, step):
        self._month = step(self._month)
        self._month_var.set(friendly_month(self._month))
        self._load()

    def _build_charts(self):
        self._trend = ChartPanel(self, "Por categoría en el tiempo")
        self._trend.grid(row=1, column=0, sticky="nsew", padx=(8, 4), pady=8)

        right = ctk.CTkFrame(self, fg_color="transparent")
        right.grid(row=1, column=1, sticky="nsew", padx=(4, 8), pady=8)
        right.grid_columnconfigure(0, weight=1)
        right.grid_rowconfigure(0, weight=1)
        self._pie = ChartPanel(right, "Distribución del mes", figsize=(3, 3))
        self._pie.grid(row=0, column=0, sticky="nsew")
        self._legend_frame = ctk.CTkScrollableFrame(right, height=160)
        self._legend_frame.grid(row=1, column=0, sticky="ew", pady=(8, 0))

    def _load(self):
        type_ = _TYPES[self._type_var.get()]
        currency = self._currency_var.get()
        trend = self._svc.get_category_trend(
            months=_WINDOWS[self._window_var.get()], type_=type_, currency=currency, end_month=self._month,
        )
        breakdown = self._svc.get_category_breakdown(self._month, type_=type_, currency=currency)

        for w in self._legend_frame.winfo_children():
            w.destroy()
        if not breakdown:
            ctk.CTkLabel(self._legend_frame, text="Sin movimientos en el mes.", text_color="gray60").pack(pady=10)
        for i, item in enumerate(breakdown):
            row = ctk.CTkFrame(self._legend_frame, fg_color="transparent")
            row.pack(fill="x", pady=1)
            tk.Label(row, bg=_PALETTE[i % len(_PALETTE)], width=2).pack(side="left", padx=(0, 4))
            ctk.CTkLabel(
                row, text=f"{item['category']}: {format_currency(item['total'], currency)} ({item['percentage']:.1f}%)",
                anchor="w", font=ctk.CTkFont(size=11),
            ).pack(side="left")

        self.after(50, lambda: self._draw_trend(trend))
        self.after(50, lambda: self._draw_pie(breakdown))

    def _draw_trend(self, trend):
        if not trend["series"]:
            self._trend.show_empty()
            return
        ax = self._trend.clear()
        x = list(range(len(trend["months"])))
        for i, s in enumerate(trend["series"]):
            ax.plot(x, s["values"], marker="o", linewidth=1.5,
                    color=_PALETTE[i % len(_PALETTE)], label=s["category"][:18])
        ax.set_xticks(x)
        ax.set_xticklabels([m[2:] for m in trend["months"]])
        ax.yaxis.set_major_formatter(short_amount)
        ax.legend(fontsize=7, loc="upper left")
        self._trend.draw()

    def _draw_pie(self, breakdown):
        if not breakdown:
            self._pie.show_empty()
            return
        ax = self._pie.clear()
        ax.pie(
            [item["total"] for item in breakdown],
            colors=[_PALETTE[i % len(_PALETTE)] for i in range(len(breakdown))],
            startangle=90,
        )
        ax.set_aspect("equal")
        self._pie.draw()
