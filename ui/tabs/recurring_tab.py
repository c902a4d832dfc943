import customtkinter as ctk
from ui.app_context import AppContext
from ui.components.confirm_dialog import ConfirmDialog
from ui.components.form_base import parse_optional_amount
from ui.components.recurring_form import RecurringForm
from utils.constants import FREQUENCY_LABELS, TYPE_COLORS, TYPE_LABELS
from utils.currency import format_currency
from utils.date_helpers import format_date, format_display_date

_STATUS_FILTERS = {"Activas": "active", "Pausadas": "paused", "Inactivas": "inactive", "Todas": None}
_STATUS_LABELS = {"active": "Activa", "paused": "Pausada", "inactive": "Inactiva"}
_STATUS_COLORS = {"active": "#4CAF50", "paused": "#FF9800", "inactive": "gray60"}


class RecurringTab(ctk.CTkFrame):
    def __init__(self, master, ctx: AppContext, **kwargs):
        super().__init__(master, fg_color="transparent", **kwargs)
        self._ctx = ctx
        self._svc = ctx.services.recurring
        self._store = ctx.stores.recurring
        self._status_var = ctk.StringVar(value="Activas")

        self.grid_columnconfigure(0, weight=1)
        self.grid_rowconfigure(2, weight=1)

        self._build_toolbar()
        self._build_summary()
        self._build_list()
        self._load()
        self._store.subscribe(lambda _store: self._load())

    def refresh(self):
        self._store.refetch()

    def _build_toolbar(self):
        bar = ctk.CTkFrame(self, fg_color=("gray88", "gray18"), corner_radius=8)
        bar.grid(row=0, column=0, sticky="ew", padx=8, pady=(8, 0))
        ctk.CTkSegmentedButton(bar, values=list(_STATUS_FILTERS), variable=self._status_var,
                               command=lambda _: self._load()).pack(side="left", padx=8, pady=6)
        ctk.CTkButton(bar, text="+ Recurrente", command=lambda: self._form()).pack(
            side="right", padx=8, pady=6
        )
        ctk.CTkButton(
            bar, text="Procesar ahora", command=self._process_now,
            fg_color="transparent", border_width=1, text_color=("gray10", "gray90"),
        ).pack(side="right", padx=4, pady=6)

    def _build_summary(self):
        self._summary = ctk.CTkFrame(self, fg_color="transparent")
        self._summary.grid(row=1, column=0, sticky="ew", padx=8, pady=(6, 0))

    def _build_list(self):
        self._scroll = ctk.CTkScrollableFrame(self)
        self._scroll.grid(row=2, column=0, sticky="nsew", padx=8, pady=8)
        self._scroll.grid_columnconfigure(0, weight=1)

    def _load(self):
        self._load_summary()
        for w in self._scroll.winfo_children():
            w.destroy()
        if self._store.error:
            ctk.CTkLabel(self._scroll, text=self._store.error, text_color="#F44336").grid(row=0, column=0, pady=20)
            return

        r = self._add_pending(0)
        status = _STATUS_FILTERS[self._status_var.get()]
        rules = [rec for rec in self._store.data if status is None or rec.status == status]
        if not rules:
            ctk.CTkLabel(
                self._scroll, text="No hay transacciones recurrentes en esta vista.",
                text_color="gray60",
            ).grid(row=r, column=0, pady=40)
            return

        hdr = ctk.CTkFrame(self._scroll, fg_color=("gray82", "gray22"), corner_radius=0)
        hdr.grid(row=r, column=0, sticky="ew", pady=(0, 2))
        for i, (col, w) in enumerate([
            ("Nombre", 170), ("Tipo", 100), ("Monto", 110), ("Frecuencia", 100),
            ("Próxima", 100), ("Estado", 80), ("Acciones", 200),
        ]):
            ctk.CTkLabel(hdr, text=col, width=w, anchor="w",
                         font=ctk.CTkFont(weight="bold")).grid(row=0, column=i, padx=4, pady=4)
        for idx, rec in enumerate(rules, start=r + 1):
            self._add_row(idx, rec)

    def _load_summary(self):
        for w in self._summary.winfo_children():
            w.destroy()
        currency = self._ctx.display_currency
        totals = self._store.monthly_totals(currency)
        for i, (label, value, color) in enumerate([
            ("Ingresos / mes", totals["monthly_income"], TYPE_COLORS["income"]),
            ("Gastos / mes", totals["monthly_expense"], TYPE_COLORS["expense"]),
            ("Balance", totals["balance"], "#2196F3"),
        ]):
            card = ctk.CTkFrame(self._summary, fg_color=("gray90", "gray20"), corner_radius=8)
            card.grid(row=0, column=i, padx=4, sticky="ew")
            self._summary.grid_columnconfigure(i, weight=1)
            ctk.CTkLabel(card, text=label, text_color="gray60").pack(pady=(6, 0))
            ctk.CTkLabel(card, text=format_currency(value, currency), text_color=color,
                         font=ctk.CTkFont(size=15, weight="bold")).pack(pady=(0, 6))

        upcoming = self._store.upcoming()
        card = ctk.CTkFrame(self._summary, fg_color=("gray90", "gray20"), corner_radius=8)
        card.grid(row=0, column=3, padx=4, sticky="nsew")
        self._summary.grid_columnconfigure(3, weight=2)
        ctk.CTkLabel(card, text="Próximos 7 días", text_color="gray60").pack(pady=(6, 0))
        if not upcoming:
            ctk.CTkLabel(card, text="Nada programado").pack(pady=(0, 6))
        for d, rec in upcoming[:4]:
            ctk.CTkLabel(
                card, text=f"{format_display_date(format_date(d), self._ctx.date_format)}  {rec.name}"
                           f"  {format_currency(rec.amount, rec.currency)}",
                font=ctk.CTkFont(size=11),
            ).pack(anchor="w", padx=10)

    def _add_pending(self, r: int) -> int:
        pending = self._svc.get_pending_occurrences()
        if not pending:
            return r
        ctk.CTkLabel(
            self._scroll, text=f"Pendientes de confirmación ({len(pending)})",
            font=ctk.CTkFont(size=14, weight="bold"), anchor="w",
        ).grid(row=r, column=0, sticky="w", padx=6, pady=(4, 2))
        r += 1
        for occ in pending:
            rec = next((x for x in self._store.data if x.id == occ.recurring_id), None)
            row = ctk.CTkFrame(self._scroll, fg_color=("#FFF3E0", "#3E2A14"), corner_radius=6)
            row.grid(row=r, column=0, sticky="ew", padx=2, pady=2)
            text = f"{format_display_date(occ.scheduled_date, self._ctx.date_format)}  ·  {occ.recurring_name}"
            ctk.CTkLabel(row, text=text, anchor="w", width=320).pack(side="left", padx=10, pady=4)
            amount_var = ctk.StringVar(value=f"{rec.amount:.2f}" if rec else "")
            ctk.CTkEntry(row, textvariable=amount_var, width=100).pack(side="left", padx=4)
            ctk.CTkButton(
                row, text="Omitir", width=70, height=24,
                fg_color="transparent", border_width=1, text_color=("gray10", "gray90"),
                command=lambda o=occ: self._ctx.guarded(self._svc.skip_occurrence, o.id,
                                                        context="Omitir ocurrencia"),
            ).pack(side="right", padx=(4, 8))
            ctk.CTkButton(
                row, text="Confirmar", width=80, height=24,
                command=lambda o=occ, v=amount_var: self._confirm(o, v),
            ).pack(side="right", padx=4)
            r += 1
        return r

    def _add_row(self, idx, rec):
        bg = ("gray92", "gray17") if idx % 2 == 0 else ("gray88", "gray21")
        row = ctk.CTkFrame(self._scroll, fg_color=bg, corner_radius=4)
        row.grid(row=idx, column=0, sticky="ew", pady=1, padx=2)

        nxt = self._svc.effective_next_date(rec) if rec.status == "active" else None
        next_str = format_display_date(format_date(nxt), self._ctx.date_format) if nxt else "-"
        data = [
            (rec.name, 170, None),
            (TYPE_LABELS[rec.type], 100, TYPE_COLORS[rec.type]),
            (format_currency(rec.amount, rec.currency), 110, None),
            (FREQUENCY_LABELS.get(rec.frequency.type, rec.frequency.type), 100, None),
            (next_str, 100, None),
            (_STATUS_LABELS[rec.status], 80, _STATUS_COLORS[rec.status]),
        ]
        for i, (text, width, color) in enumerate(data):
            label = ctk.CTkLabel(row, text=text, width=width, anchor="w")
            if color:
                label.configure(text_color=color)
            label.grid(row=0, column=i, padx=4, pady=4)

        acts = ctk.CTkFrame(row, fg_color="transparent")
        acts.grid(row=0, column=6, padx=(4, 6))
        ctk.CTkButton(acts, text="Editar", width=50, height=24,
                      command=lambda: self._form(rec)).pack(side="left", padx=2)
        if rec.status != "inactive":
            ctk.CTkButton(
                acts, text="Reanudar" if rec.is_paused else "Pausar", width=64, height=24,
                fg_color="transparent", border_width=1, text_color=("gray10", "gray90"),
                command=lambda: self._ctx.guarded(self._svc.set_paused, rec.id, not rec.is_paused,
                                                  context="Pausar recurrente"),
            ).pack(side="left", padx=2)
        if rec.status == "active":
            ctk.CTkButton(
                acts, text="Saltar", width=50, height=24,
                fg_color="transparent", border_width=1, text_color=("gray10", "gray90"),
                command=lambda: self._ctx.guarded(self._svc.skip_next_occurrence, rec.id,
                                                  context="Saltar próxima"),
            ).pack(side="left", padx=2)
        ctk.CTkButton(acts, text="✕", width=28, height=24,
                      fg_color="#F44336", hover_color="#D32F2F",
                      command=lambda: self._delete(rec)).pack(side="left", padx=2)

    def _confirm(self, occurrence, amount_var):
        try:
            amount = parse_optional_amount(amount_var.get())
        except ValueError as exc:
            self._ctx.errors.report(exc, "Confirmar ocurrencia")
            return
        self._ctx.guarded(self._svc.confirm_occurrence, occurrence.id, amount,
                          context="Confirmar ocurrencia")

    def _process_now(self):
        self._ctx.guarded(self._svc.process_due, context="Procesar recurrentes")

    def _form(self, rule=None):
        RecurringForm(self.winfo_toplevel(), self._svc, self._ctx.stores.accounts.data,
                      self._ctx.stores.categories.data, rule=rule, date_format=self._ctx.date_format)

    def _delete(self, rec):
        dlg = ConfirmDialog(
            self.winfo_toplevel(), "Eliminar recurrente",
            f"¿Eliminar '{rec.name}'? Los movimientos ya generados se conservan.",
        )
        if dlg.result:
            self._ctx.guarded(self._svc.delete, rec.id, context="Eliminar recurrente")
