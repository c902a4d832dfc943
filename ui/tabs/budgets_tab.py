import customtkinter as ctk
from ui.app_context import AppContext
from ui.components.budget_form import PERIOD_LABELS, BudgetForm
from ui.components.chart_panel import ChartPanel, short_amount
from ui.components.confirm_dialog import ConfirmDialog
from utils.constants import BUDGET_WARNING_PCT
from utils.currency import format_currency
from utils.date_helpers import format_display_date

_FILTERS = ["Activos", "Pausados", "Excedidos", "Todos"]


def progress_color(pct: float) -> str:
    if pct > 100:
        return "#F44336"
    if pct >= BUDGET_WARNING_PCT:
        return "#FF9800"
    return "#4CAF50"


class BudgetsTab(ctk.CTkFrame):
    def __init__(self, master, ctx: AppContext, **kwargs):
        super().__init__(master, fg_color="transparent", **kwargs)
        self._ctx = ctx
        self._svc = ctx.services.budgets
        self._store = ctx.stores.budgets
        self._filter_var = ctk.StringVar(value="Activos")

        self.grid_columnconfigure(0, weight=3)
        self.grid_columnconfigure(1, weight=2)
        self.grid_rowconfigure(1, weight=1)

        self._build_toolbar()
        self._build_list()
        self._chart = ChartPanel(self, "Gastado vs. límite", figsize=(4, 3))
        self._chart.grid(row=1, column=1, sticky="nsew", padx=(0, 8), pady=8)
        self._load()
        self._store.subscribe(lambda _store: self._load())

    def refresh(self):
        self._store.refetch()

    def _build_toolbar(self):
        bar = ctk.CTkFrame(self, fg_color=("gray88", "gray18"), corner_radius=8)
        bar.grid(row=0, column=0, columnspan=2, sticky="ew", padx=8, pady=(8, 0))

        ctk.CTkSegmentedButton(bar, values=_FILTERS, variable=self._filter_var,
                               command=lambda _: self._load()).pack(side="left", padx=8, pady=6)
        ctk.CTkButton(bar, text="+ Presupuesto", command=self._open_add).pack(side="right", padx=8, pady=6)

    def _build_list(self):
        self._scroll = ctk.CTkScrollableFrame(self)
        self._scroll.grid(row=1, column=0, sticky="nsew", padx=8, pady=8)
        self._scroll.grid_columnconfigure(0, weight=1)

    def _visible(self) -> list:
        choice = self._filter_var.get()
        if choice == "Activos":
            return self._store.active
        if choice == "Pausados":
            return self._store.paused
        if choice == "Excedidos":
            return self._store.exceeded
        return list(self._store.data)

    def _load(self):
        for w in self._scroll.winfo_children():
            w.destroy()

        if self._store.error:
            ctk.CTkLabel(self._scroll, text=self._store.error, text_color="#F44336").grid(row=0, column=0, pady=20)
            return
        budgets = self._visible()
        if not budgets:
            ctk.CTkLabel(
                self._scroll,
                text="No hay presupuestos. Creá uno con '+ Presupuesto'.",
                text_color="gray60",
            ).grid(row=0, column=0, pady=40)
        for idx, b in enumerate(budgets):
            self._add_budget_card(idx, b)
        self._draw_chart(budgets)

    def _add_budget_card(self, idx, b):
        card = ctk.CTkFrame(self._scroll, fg_color=("gray90", "gray20"), corner_radius=8)
        card.grid(row=idx, column=0, sticky="ew", padx=4, pady=4)
        card.grid_columnconfigure(0, weight=1)

        hdr = ctk.CTkFrame(card, fg_color="transparent")
        hdr.grid(row=0, column=0, sticky="ew", padx=12, pady=(10, 4))
        hdr.grid_columnconfigure(0, weight=1)

        title = f"{b.icon} {b.name}".strip()
        if b.is_paused:
            title += "  (pausado)"
        ctk.CTkLabel(hdr, text=title, font=ctk.CTkFont(size=13, weight="bold"),
                     anchor="w").grid(row=0, column=0, sticky="w")

        pct = b.percentage_used
        color = progress_color(pct)
        ctk.CTkLabel(hdr, text=f"{pct:.1f}%", text_color=color).grid(row=0, column=1, padx=(8, 0))

        for col, (text, cmd) in enumerate((
            ("Editar", lambda: self._open_edit(b)),
            ("Duplicar", lambda: self._duplicate(b)),
            ("Reanudar" if b.is_paused else "Pausar", lambda: self._toggle_pause(b)),
        ), start=2):
            ctk.CTkButton(
                hdr, text=text, width=70, height=24,
                fg_color="transparent", border_width=1,
                text_color=("gray10", "gray90"), command=cmd,
            ).grid(row=0, column=col, padx=(8, 0))
        ctk.CTkButton(
            hdr, text="Borrar", width=60, height=24,
            fg_color="#F44336", hover_color="#D32F2F",
            command=lambda: self._delete(b),
        ).grid(row=0, column=5, padx=(8, 0))

        period = PERIOD_LABELS.get(b.period_type, b.period_type)
        window = ""
        if b.period_start:
            window = (f"  ·  {format_display_date(b.period_start, self._ctx.date_format)}"
                      f" - {format_display_date(b.period_end, self._ctx.date_format)}")
        ctk.CTkLabel(
            card,
            text=(f"{period}{window}  |  Gastado: {format_currency(b.spent, b.currency)}"
                  f"  /  Límite: {format_currency(b.amount, b.currency)}"
                  f"  |  Restante: {format_currency(b.remaining, b.currency)}"),
            text_color="gray60", anchor="w",
        ).grid(row=1, column=0, padx=12, sticky="ew")

        bar = ctk.CTkProgressBar(card, progress_color=color)
        bar.grid(row=2, column=0, padx=12, pady=(4, 10), sticky="ew")
        bar.set(min(pct / 100, 1.0))

    def _draw_chart(self, budgets):
        if not budgets:
            self._chart.show_empty()
            return
        ax = self._chart.clear()
        names = [b.name[:12] for b in budgets]
        y = list(range(len(budgets)))
        ax.barh(y, [b.amount for b in budgets], color="#9E9E9E", height=0.6)
        ax.barh(y, [b.spent for b in budgets], color=[progress_color(b.percentage_used) for b in budgets],
                height=0.35)
        ax.set_yticks(y)
        ax.set_yticklabels(names)
        ax.invert_yaxis()
        ax.xaxis.set_major_formatter(short_amount)
        self._chart.draw()

    def _form(self, budget=None):
        BudgetForm(self.winfo_toplevel(), self._svc, self._ctx.stores.categories.data,
                   self._ctx.stores.accounts.data, budget=budget, date_format=self._ctx.date_format)

    def _open_add(self):
        self._form()

    def _open_edit(self, budget):
        self._form(budget)

    def _duplicate(self, b):
        self._ctx.guarded(self._svc.duplicate, b.id, context="Duplicar presupuesto")

    def _toggle_pause(self, b):
        self._ctx.guarded(self._svc.set_paused, b.id, not b.is_paused, context="Pausar presupuesto")

    def _delete(self, b):
        dlg = ConfirmDialog(self.winfo_toplevel(), "Eliminar presupuesto", f"¿Eliminar '{b.name}'?")
        if dlg.result:
            self._ctx.guarded(self._svc.delete, b.id, context="Eliminar presupuesto")
