from datetime import date
import customtkinter as ctk
from services.calendar_service import filter_events, group_by_date, month_grid, period_summary
from services.data_events import MOVEMENT_TOPICS, RECURRING_CHANGED, SCHEDULED_CHANGED
from ui.app_context import AppContext
from utils.constants import DAYS_OF_WEEK, TYPE_COLORS, TYPE_LABELS
from utils.currency import format_currency
from utils.date_helpers import (
    MONTH_NAMES_ES, current_month_str, format_date, format_display_date, month_range,
    next_month, parse_month, prev_month, today,
)

_EVENT_TYPE_LABELS = {"movement": "", "scheduled": "Programada", "recurring_scheduled": "Recurrente"}


def _short(v: float) -> str:
    return f"{v/1000:.1f}k" if abs(v) >= 1000 else f"{v:.0f}"


class CalendarTab(ctk.CTkFrame):
    """Month view of booked and planned movements."""

    def __init__(self, master, ctx: AppContext, **kwargs):
        super().__init__(master, fg_color="transparent", **kwargs)
        self._ctx = ctx
        self._svc = ctx.services.calendar
        self._month = current_month_str()
        self._selected: str | None = format_date(today())
        self._type_vars = {t: ctk.BooleanVar(value=True) for t in TYPE_LABELS}
        self._events = []

        self.grid_columnconfigure(0, weight=3)
        self.grid_columnconfigure(1, weight=1)
        self.grid_rowconfigure(2, weight=1)

        self._build_toolbar()
        self._build_summary()
        self._build_grid()
        self._build_detail()
        self._load()
        ctx.subscribe(list(MOVEMENT_TOPICS.values()) + [SCHEDULED_CHANGED, RECURRING_CHANGED], self.refresh)

    def refresh(self):
        self._load()

    def _build_toolbar(self):
        bar = ctk.CTkFrame(self, fg_color=("gray88", "gray18"), corner_radius=8)
        bar.grid(row=0, column=0, columnspan=2, sticky="ew", padx=8, pady=(8, 0))

        ctk.CTkButton(bar, text="◀", width=28, command=self._prev_month).pack(side="left", padx=(8, 0), pady=6)
        self._month_label = ctk.CTkLabel(bar, width=150, anchor="center",
                                         font=ctk.CTkFont(size=13, weight="bold"))
        self._month_label.pack(side="left", padx=4)
        ctk.CTkButton(bar, text="▶", width=28, command=self._next_month).pack(side="left", padx=(0, 8))
        ctk.CTkButton(
            bar, text="Hoy", width=50, command=self._go_today,
            fg_color="transparent", border_width=1, text_color=("gray10", "gray90"),
        ).pack(side="left", padx=4)

        for type_, var in self._type_vars.items():
            ctk.CTkCheckBox(bar, text=TYPE_LABELS[type_], variable=var, width=110,
                            command=self._render).pack(side="right", padx=4)

    def _build_summary(self):
        self._summary = ctk.CTkFrame(self, fg_color="transparent")
        self._summary.grid(row=1, column=0, columnspan=2, sticky="ew", padx=8, pady=(6, 0))
        self._summary_vars = {}
        for i, (key, label, color) in enumerate([
            ("income", "Ingresos", TYPE_COLORS["income"]),
            ("expense", "Gastos", TYPE_COLORS["expense"]),
            ("balance", "Balance", "#2196F3"),
        ]):
            card = ctk.CTkFrame(self._summary, fg_color=("gray90", "gray20"), corner_radius=8)
            card.grid(row=0, column=i, padx=4, sticky="ew")
            self._summary.grid_columnconfigure(i, weight=1)
            ctk.CTkLabel(card, text=label, text_color="gray60").pack(pady=(6, 0))
            var = ctk.StringVar()
            ctk.CTkLabel(card, textvariable=var, text_color=color,
                         font=ctk.CTkFont(size=15, weight="bold")).pack(pady=(0, 6))
            self._summary_vars[key] = var

    def _build_grid(self):
        self._grid = ctk.CTkFrame(self, fg_color=("gray90", "gray20"), corner_radius=8)
        self._grid.grid(row=2, column=0, sticky="nsew", padx=8, pady=8)
        for c in range(7):
            self._grid.grid_columnconfigure(c, weight=1, uniform="day")

    def _build_detail(self):
        self._detail = ctk.CTkScrollableFrame(self, label_text="Detalle del día")
        self._detail.grid(row=2, column=1, sticky="nsew", padx=(0, 8), pady=8)
        self._detail.grid_columnconfigure(0, weight=1)

    # ── Navigation ──────────────────────────────────────────────────────────
    def _prev_month(self):
        self._month = prev_month(self._month)
        self._load()

    def _next_month(self):
        self._month = next_month(self._month)
        self._load()

    def _go_today(self):
        self._month = current_month_str()
        self._selected = format_date(today())
        self._load()

    # ── Rendering ───────────────────────────────────────────────────────────
    def _load(self):
        start, end = month_range(self._month)
        self._events = self._svc.get_calendar_events(start, end)
        first = parse_month(self._month)
        self._month_label.configure(text=f"{MONTH_NAMES_ES[first.month - 1]} {first.year}")
        self._render()

    def _visible_events(self):
        types = {t for t, var in self._type_vars.items() if var.get()}
        return filter_events(self._events, types)

    def _render(self):
        events = self._visible_events()
        currency = self._ctx.display_currency
        for key, value in period_summary(events, currency).items():
            self._summary_vars[key].set(format_currency(value, currency))

        for w in self._grid.winfo_children():
            w.destroy()
        for c, name in enumerate(DAYS_OF_WEEK):
            ctk.CTkLabel(self._grid, text=name, font=ctk.CTkFont(weight="bold")).grid(row=0, column=c, pady=(6, 2))

        by_day = group_by_date(events)
        first = parse_month(self._month)
        today_s = format_date(today())
        for r, week in enumerate(month_grid(first.year, first.month), start=1):
            self._grid.grid_rowconfigure(r, weight=1)
            for c, day in enumerate(week):
                if day is not None:
                    self._add_day_cell(r, c, day, by_day.get(format_date(day), []), today_s)
        self._render_detail(by_day)

    def _add_day_cell(self, r, c, day: date, day_events, today_s):
        key = format_date(day)
        selected = key == self._selected
        cell = ctk.CTkFrame(
            self._grid, corner_radius=6, border_width=2 if key == today_s else 0,
            border_color="#2196F3",
            fg_color=("gray80", "gray28") if selected else ("gray95", "gray16"),
        )
        cell.grid(row=r, column=c, sticky="nsew", padx=2, pady=2)
        widgets = [cell, ctk.CTkLabel(cell, text=str(day.day), anchor="w",
                                      font=ctk.CTkFont(size=12, weight="bold"))]
        widgets[-1].pack(anchor="nw", padx=6, pady=(2, 0))

        summary = period_summary(day_events, self._ctx.display_currency)
        for type_ in ("income", "expense"):
            if summary[type_]:
                sign = "+" if type_ == "income" else "-"
                label = ctk.CTkLabel(cell, text=f"{sign}{_short(summary[type_])}",
                                     text_color=TYPE_COLORS[type_], font=ctk.CTkFont(size=10), height=14)
                label.pack(anchor="w", padx=6)
                widgets.append(label)
        if any(e.event_type != "movement" for e in day_events):
            label = ctk.CTkLabel(cell, text="⏳", font=ctk.CTkFont(size=10), height=14)
            label.pack(anchor="w", padx=6)
            widgets.append(label)
        for w in widgets:
            w.bind("<Button-1>", lambda _e, k=key: self._select(k))

    def _select(self, key: str):
        self._selected = key
        self._render()

    def _render_detail(self, by_day):
        for w in self._detail.winfo_children():
            w.destroy()
        if not self._selected:
            return
        ctk.CTkLabel(
            self._detail, text=format_display_date(self._selected, self._ctx.date_format),
            font=ctk.CTkFont(size=13, weight="bold"),
        ).grid(row=0, column=0, sticky="w", padx=4, pady=(0, 4))
        day_events = by_day.get(self._selected, [])
        if not day_events:
            ctk.CTkLabel(self._detail, text="Sin movimientos.", text_color="gray60").grid(
                row=1, column=0, sticky="w", padx=4)
            return
        for idx, e in enumerate(day_events, start=1):
            card = ctk.CTkFrame(self._detail, fg_color=("gray92", "gray17"), corner_radius=6)
            card.grid(row=idx, column=0, sticky="ew", pady=2)
            card.grid_columnconfigure(0, weight=1)
            title = e.title or e.category_name or TYPE_LABELS[e.type]
            tag = _EVENT_TYPE_LABELS.get(e.event_type, "")
            if tag:
                title = f"{title}  [{tag}]"
            ctk.CTkLabel(card, text=title, anchor="w", wraplength=200,
                         justify="left").grid(row=0, column=0, sticky="w", padx=6, pady=(4, 0))
            ctk.CTkLabel(card, text=e.account_name, anchor="w", text_color="gray60",
                         font=ctk.CTkFont(size=11)).grid(row=1, column=0, sticky="w", padx=6, pady=(0, 4))
            ctk.CTkLabel(card, text=format_currency(e.amount, e.currency), text_color=TYPE_COLORS[e.type],
                         ).grid(row=0, column=1, rowspan=2, padx=6)
