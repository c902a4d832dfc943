import customtkinter as ctk
from ui.app_context import AppContext
from ui.components.confirm_dialog import ConfirmDialog
from ui.components.goal_form import GoalForm
from utils.constants import GOAL_TYPE_LABELS
from utils.currency import format_currency


class GoalsTab(ctk.CTkFrame):
    """Savings, income and spending-reduction goals grouped by type."""

    def __init__(self, master, ctx: AppContext, **kwargs):
        super().__init__(master, fg_color="transparent", **kwargs)
        self._ctx = ctx
        self._svc = ctx.services.goals
        self._store = ctx.stores.goals
        self._show_completed = ctk.BooleanVar(value=False)

        self.grid_columnconfigure(0, weight=1)
        self.grid_rowconfigure(1, weight=1)

        self._build_toolbar()
        self._build_list()
        self._load()
        self._store.subscribe(lambda _store: self._load())

    def refresh(self):
        self._store.refetch()

    def _build_toolbar(self):
        bar = ctk.CTkFrame(self, fg_color=("gray88", "gray18"), corner_radius=8)
        bar.grid(row=0, column=0, sticky="ew", padx=8, pady=(8, 0))

        self._rate_var = ctk.StringVar()
        ctk.CTkLabel(bar, textvariable=self._rate_var,
                     font=ctk.CTkFont(size=13, weight="bold")).pack(side="left", padx=12, pady=6)
        ctk.CTkCheckBox(bar, text="Mostrar completados", variable=self._show_completed,
                        command=self._load).pack(side="left", padx=8)
        ctk.CTkButton(bar, text="+ Objetivo", command=lambda: self._form()).pack(side="right", padx=8, pady=6)

    def _build_list(self):
        self._scroll = ctk.CTkScrollableFrame(self)
        self._scroll.grid(row=1, column=0, sticky="nsew", padx=8, pady=8)
        self._scroll.grid_columnconfigure(0, weight=1)

    def _load(self):
        for w in self._scroll.winfo_children():
            w.destroy()
        self._rate_var.set(f"Tasa de éxito: {self._store.success_rate:.0f}%")

        if self._store.error:
            ctk.CTkLabel(self._scroll, text=self._store.error, text_color="#F44336").grid(row=0, column=0, pady=20)
            return

        show_completed = self._show_completed.get()
        r = 0
        for goal_type, goals in self._store.by_type().items():
            goals = [g for g in goals if show_completed or not g.is_completed]
            if not goals:
                continue
            ctk.CTkLabel(
                self._scroll, text=GOAL_TYPE_LABELS.get(goal_type, goal_type),
                font=ctk.CTkFont(size=14, weight="bold"), anchor="w",
            ).grid(row=r, column=0, sticky="w", padx=6, pady=(10, 2))
            r += 1
            for g in goals:
                self._add_goal_card(r, g)
                r += 1
        if r == 0:
            ctk.CTkLabel(
                self._scroll, text="No hay objetivos. Creá uno con '+ Objetivo'.",
                text_color="gray60",
            ).grid(row=0, column=0, pady=40)

    def _add_goal_card(self, r, g):
        card = ctk.CTkFrame(self._scroll, fg_color=("gray90", "gray20"), corner_radius=8)
        card.grid(row=r, column=0, sticky="ew", padx=4, pady=4)
        card.grid_columnconfigure(0, weight=1)

        hdr = ctk.CTkFrame(card, fg_color="transparent")
        hdr.grid(row=0, column=0, sticky="ew", padx=12, pady=(10, 4))
        hdr.grid_columnconfigure(0, weight=1)
        title = f"{g.icon} {g.name}".strip()
        if g.is_completed:
            title += "  ✓"
        ctk.CTkLabel(hdr, text=title, font=ctk.CTkFont(size=13, weight="bold"),
                     anchor="w").grid(row=0, column=0, sticky="w")

        pct = g.percentage_achieved
        color = "#4CAF50" if g.is_achieved else "#2196F3"
        ctk.CTkLabel(hdr, text=f"{pct:.0f}%", text_color=color).grid(row=0, column=1, padx=(8, 0))
        if not g.is_completed:
            ctk.CTkButton(
                hdr, text="Completar", width=80, height=24,
                fg_color="transparent", border_width=1, text_color=("gray10", "gray90"),
                command=lambda: self._ctx.guarded(self._svc.set_completed, g.id, True,
                                                  context="Completar objetivo"),
            ).grid(row=0, column=2, padx=(8, 0))
        ctk.CTkButton(
            hdr, text="Editar", width=60, height=24,
            fg_color="transparent", border_width=1, text_color=("gray10", "gray90"),
            command=lambda: self._form(g),
        ).grid(row=0, column=3, padx=(8, 0))
        ctk.CTkButton(
            hdr, text="Borrar", width=60, height=24,
            fg_color="#F44336", hover_color="#D32F2F",
            command=lambda: self._delete(g),
        ).grid(row=0, column=4, padx=(8, 0))

        verb = "Gastado" if g.goal_type == "spending_reduction" else "Acumulado"
        ctk.CTkLabel(
            card,
            text=(f"{verb}: {format_currency(g.current_amount, g.currency)}"
                  f"  /  Meta: {format_currency(g.target_amount, g.currency)}"),
            text_color="gray60", anchor="w",
        ).grid(row=1, column=0, padx=12, sticky="ew")
        bar = ctk.CTkProgressBar(card, progress_color=color)
        bar.grid(row=2, column=0, padx=12, pady=(4, 10), sticky="ew")
        bar.set(min(pct / 100, 1.0))

    def _form(self, goal=None):
        GoalForm(self.winfo_toplevel(), self._svc, self._ctx.stores.categories.data,
                 self._ctx.stores.accounts.data, goal=goal, date_format=self._ctx.date_format)

    def _delete(self, g):
        dlg = ConfirmDialog(self.winfo_toplevel(), "Eliminar objetivo", f"¿Eliminar '{g.name}'?")
        if dlg.result:
            self._ctx.guarded(self._svc.delete, g.id, context="Eliminar objetivo")
