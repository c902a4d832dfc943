import customtkinter as ctk
from services.data_events import SCHEDULED_CHANGED
from ui.app_context import AppContext
from ui.components.confirm_dialog import ConfirmDialog
from ui.components.scheduled_form import ScheduledForm
from utils.constants import SCHEDULED_STATUSES, TYPE_COLORS, TYPE_LABELS
from utils.currency import format_currency
from utils.date_helpers import format_display_date, today_str

_STATUS_LABELS = {"pending": "Pendientes", "executed": "Ejecutadas", "rejected": "Rechazadas"}


class ScheduledTab(ctk.CTkFrame):
    """One-off future transactions waiting for approval."""

    def __init__(self, master, ctx: AppContext, **kwargs):
        super().__init__(master, fg_color="transparent", **kwargs)
        self._ctx = ctx
        self._svc = ctx.services.scheduled
        self._status = "pending"

        self.grid_columnconfigure(0, weight=1)
        self.grid_rowconfigure(1, weight=1)

        self._build_toolbar()
        self._build_list()
        self._load()
        ctx.subscribe([SCHEDULED_CHANGED], self.refresh)

    def refresh(self):
        self._load()

    def _build_toolbar(self):
        bar = ctk.CTkFrame(self, fg_color=("gray88", "gray18"), corner_radius=8)
        bar.grid(row=0, column=0, sticky="ew", padx=8, pady=(8, 0))
        self._status_btn = ctk.CTkSegmentedButton(bar, command=self._on_status)
        self._status_btn.pack(side="left", padx=8, pady=6)
        ctk.CTkButton(bar, text="+ Programada", command=lambda: self._form()).pack(
            side="right", padx=8, pady=6
        )

    def _build_list(self):
        self._scroll = ctk.CTkScrollableFrame(self)
        self._scroll.grid(row=1, column=0, sticky="nsew", padx=8, pady=8)
        self._scroll.grid_columnconfigure(0, weight=1)

    def _on_status(self, label):
        self._status = next(s for s in SCHEDULED_STATUSES if label.startswith(_STATUS_LABELS[s]))
        self._load()

    def _load(self):
        counts = self._svc.counts()
        labels = [f"{_STATUS_LABELS[s]} ({counts[s]})" for s in SCHEDULED_STATUSES]
        self._status_btn.configure(values=labels)
        self._status_btn.set(labels[SCHEDULED_STATUSES.index(self._status)])

        for w in self._scroll.winfo_children():
            w.destroy()
        items = self._svc.get_all(self._status)
        if not items:
            ctk.CTkLabel(self._scroll, text="No hay transacciones en esta vista.",
                         text_color="gray60").grid(row=0, column=0, pady=40)
            return
        ref = today_str()
        for idx, item in enumerate(items):
            self._add_row(idx, item, ref)

    def _add_row(self, idx, s, ref):
        bg = ("gray92", "gray17") if idx % 2 == 0 else ("gray88", "gray21")
        row = ctk.CTkFrame(self._scroll, fg_color=bg, corner_radius=4)
        row.grid(row=idx, column=0, sticky="ew", pady=1, padx=2)

        date_text = format_display_date(s.scheduled_date, self._ctx.date_format)
        due = s.status == "pending" and s.scheduled_date <= ref
        ctk.CTkLabel(row, text=date_text, width=100, anchor="w",
                     text_color="#FF9800" if due else None).grid(row=0, column=0, padx=(10, 4), pady=4)
        ctk.CTkLabel(row, text=TYPE_LABELS[s.type], width=100, anchor="w",
                     text_color=TYPE_COLORS[s.type]).grid(row=0, column=1, padx=4)
        where = f"{s.account_name} → {s.to_account_name}" if s.type == "transfer" else s.account_name
        ctk.CTkLabel(row, text=where, width=200, anchor="w").grid(row=0, column=2, padx=4)
        ctk.CTkLabel(row, text=s.category_name or s.note or "-", width=180, anchor="w").grid(row=0, column=3, padx=4)
        account = self._ctx.stores.accounts.by_id(s.account_id)
        currency = account.currency if account else self._ctx.display_currency
        ctk.CTkLabel(row, text=format_currency(s.amount, currency), width=110,
                     anchor="e").grid(row=0, column=4, padx=4)

        acts = ctk.CTkFrame(row, fg_color="transparent")
        acts.grid(row=0, column=5, padx=(4, 6))
        if s.status == "pending":
            ctk.CTkButton(acts, text="Aprobar", width=64, height=24,
                          command=lambda: self._ctx.guarded(self._svc.approve, s.id,
                                                            context="Aprobar programada"),
                          ).pack(side="left", padx=2)
            ctk.CTkButton(
                acts, text="Rechazar", width=64, height=24,
                fg_color="transparent", border_width=1, text_color=("gray10", "gray90"),
                command=lambda: self._ctx.guarded(self._svc.reject, s.id, context="Rechazar programada"),
            ).pack(side="left", padx=2)
            ctk.CTkButton(acts, text="Editar", width=50, height=24,
                          command=lambda: self._form(s)).pack(side="left", padx=2)
        ctk.CTkButton(acts, text="✕", width=28, height=24,
                      fg_color="#F44336", hover_color="#D32F2F",
                      command=lambda: self._delete(s)).pack(side="left", padx=2)

    def _form(self, item=None):
        ScheduledForm(self.winfo_toplevel(), self._svc, self._ctx.stores.accounts.data,
                      self._ctx.stores.categories.data, item=item, date_format=self._ctx.date_format)

    def _delete(self, s):
        dlg = ConfirmDialog(self.winfo_toplevel(), "Eliminar programada",
                            "¿Eliminar esta transacción programada?")
        if dlg.result:
            self._ctx.guarded(self._svc.delete, s.id, context="Eliminar programada")
