import customtkinter as ctk
from services.data_events import (
    ACCOUNTS_CHANGED, CATEGORIES_CHANGED, MOVEMENT_TOPICS,
)
from services.movement_list import (
    SORT_LABELS, filter_movements, load_sort_preference, save_sort_preference,
    sort_movements, sort_options, subtotals,
)
from ui.app_context import AppContext
from ui.components.confirm_dialog import ConfirmDialog
from ui.components.date_picker import DatePickerWidget
from ui.components.expense_form import ExpenseForm
from ui.components.movement_form import IncomeForm
from ui.components.recurring_form import ConvertToRecurringDialog
from ui.components.transfer_form import TransferForm
from utils.attachments import attachment_name, open_attachment
from utils.constants import TYPE_COLORS
from utils.currency import format_currency
from utils.date_helpers import format_display_date, month_range, current_month_str

_MAX_RENDERED_ROWS = 100
_KINDS = {"Gastos": "expense", "Ingresos": "income", "Transferencias": "transfer"}
ALL = "Todas"
_BULK_FIELDS = {"Cuenta": "account_id", "Categoría": "category_id"}


class MovementsTab(ctk.CTkFrame):
    def __init__(self, master, ctx: AppContext, **kwargs):
        super().__init__(master, fg_color="transparent", **kwargs)
        self._ctx = ctx
        self._svc = ctx.services.movements
        self._db = ctx.services.db
        self._kind_var = ctk.StringVar(value="Gastos")
        self._account_var = ctk.StringVar(value=ALL)
        self._category_var = ctk.StringVar(value=ALL)
        self._search_var = ctk.StringVar()
        self._search_var.trace_add("write", lambda *_: self._load())
        self._sort_var = ctk.StringVar()
        self._order_var = ctk.StringVar()
        self._selected: dict[int, ctk.BooleanVar] = {}

        self.grid_columnconfigure(0, weight=1)
        self.grid_rowconfigure(3, weight=1)

        self._build_toolbar()
        self._build_filter_bar()
        self._build_summary()
        self._build_list()
        self._load_sort()
        self._refresh_bulk_values()
        self._load()

        ctx.subscribe(MOVEMENT_TOPICS.values(), self.refresh)
        ctx.subscribe([ACCOUNTS_CHANGED, CATEGORIES_CHANGED], self._refresh_filters)

    @property
    def _kind(self) -> str:
        return _KINDS[self._kind_var.get()]

    def refresh(self):
        self._load()

    # ── Toolbar ─────────────────────────────────────────────────────────────
    def _build_toolbar(self):
        bar = ctk.CTkFrame(self, fg_color=("gray88", "gray18"), corner_radius=8)
        bar.grid(row=0, column=0, sticky="ew", padx=8, pady=(8, 0))

        ctk.CTkSegmentedButton(
            bar, values=list(_KINDS), variable=self._kind_var,
            command=lambda _: self._on_kind_change(),
        ).pack(side="left", padx=8, pady=6)

        for label, cmd in (
            ("+ Gasto", self._open_expense),
            ("+ Ingreso", self._open_income),
            ("+ Transferencia", self._open_transfer),
        ):
            ctk.CTkButton(bar, text=label, width=110, command=cmd).pack(side="right", padx=4, pady=6)

    def _build_filter_bar(self):
        bar = ctk.CTkFrame(self, fg_color=("gray88", "gray18"), corner_radius=8)
        bar.grid(row=1, column=0, sticky="ew", padx=8, pady=(4, 0))

        start, end = month_range(current_month_str())
        ctk.CTkLabel(bar, text="Desde:").pack(side="left", padx=(12, 4), pady=6)
        self._from_picker = DatePickerWidget(bar, initial_date=start, date_format=self._ctx.date_format,
                                             command=lambda _: self._load())
        self._from_picker.pack(side="left")
        ctk.CTkLabel(bar, text="Hasta:").pack(side="left", padx=(8, 4))
        self._to_picker = DatePickerWidget(bar, initial_date=end, date_format=self._ctx.date_format,
                                           command=lambda _: self._load())
        self._to_picker.pack(side="left")

        self._account_combo = ctk.CTkComboBox(bar, variable=self._account_var, width=140,
                                              state="readonly", command=lambda _: self._load())
        self._account_combo.pack(side="left", padx=(12, 4))
        self._category_combo = ctk.CTkComboBox(bar, variable=self._category_var, width=140,
                                               state="readonly", command=lambda _: self._load())
        self._category_combo.pack(side="left", padx=4)
        ctk.CTkEntry(bar, textvariable=self._search_var, placeholder_text="Buscar…",
                     width=140).pack(side="left", padx=4)

        self._sort_combo = ctk.CTkComboBox(bar, variable=self._sort_var, width=130,
                                           state="readonly", command=lambda _: self._on_sort_change())
        self._sort_combo.pack(side="right", padx=(4, 8))
        ctk.CTkSegmentedButton(bar, values=["asc", "desc"], variable=self._order_var,
                               command=lambda _: self._on_sort_change()).pack(side="right", padx=4)
        self._refresh_filters()

    def _refresh_filters(self):
        accounts = self._ctx.stores.accounts.data
        self._account_combo.configure(values=[ALL] + [a.name for a in accounts])
        if self._account_var.get() not in [a.name for a in accounts]:
            self._account_var.set(ALL)
        categories = [c for c in self._ctx.stores.categories.data if c.type == self._kind]
        self._category_combo.configure(values=[ALL] + [c.name for c in categories])
        if self._category_var.get() not in [c.name for c in categories]:
            self._category_var.set(ALL)
        self._load()

    def _build_summary(self):
        self._summary_frame = ctk.CTkFrame(self, fg_color="transparent")
        self._summary_frame.grid(row=2, column=0, sticky="ew", padx=12, pady=(6, 0))
        self._summary_var = ctk.StringVar()
        ctk.CTkLabel(self._summary_frame, textvariable=self._summary_var, anchor="w",
                     font=ctk.CTkFont(size=13, weight="bold")).pack(side="left")

        self._bulk_frame = ctk.CTkFrame(self._summary_frame, fg_color="transparent")
        self._bulk_frame.pack(side="right")
        ctk.CTkButton(
            self._bulk_frame, text="Eliminar seleccionados", width=150,
            fg_color="#F44336", hover_color="#D32F2F", command=self._bulk_delete,
        ).pack(side="right", padx=4)
        self._bulk_field_var = ctk.StringVar(value="Categoría")
        self._bulk_value_var = ctk.StringVar()
        ctk.CTkButton(self._bulk_frame, text="Aplicar", width=70,
                      command=self._bulk_update).pack(side="right", padx=4)
        self._bulk_value_combo = ctk.CTkComboBox(self._bulk_frame, variable=self._bulk_value_var,
                                                 width=140, state="readonly")
        self._bulk_value_combo.pack(side="right", padx=4)
        ctk.CTkComboBox(self._bulk_frame, values=list(_BULK_FIELDS), variable=self._bulk_field_var,
                        width=110, state="readonly",
                        command=lambda _: self._refresh_bulk_values()).pack(side="right", padx=4)

    def _build_list(self):
        self._scroll = ctk.CTkScrollableFrame(self)
        self._scroll.grid(row=3, column=0, sticky="nsew", padx=8, pady=8)
        self._scroll.grid_columnconfigure(0, weight=1)

    # ── Sorting ─────────────────────────────────────────────────────────────
    def _load_sort(self):
        field, order = load_sort_preference(self._db, self._kind)
        self._sort_combo.configure(values=[SORT_LABELS[o] for o in sort_options(self._kind)])
        self._sort_var.set(SORT_LABELS[field])
        self._order_var.set(order)

    def _on_sort_change(self):
        field = next((k for k, v in SORT_LABELS.items() if v == self._sort_var.get()), "date")
        save_sort_preference(self._db, self._kind, field, self._order_var.get())
        self._load()

    def _on_kind_change(self):
        self._selected.clear()
        self._load_sort()
        self._refresh_filters()
        if self._kind == "transfer":
            self._bulk_frame.pack_forget()
        else:
            self._bulk_frame.pack(side="right")
            self._refresh_bulk_values()

    # ── Data ────────────────────────────────────────────────────────────────
    def _items(self) -> list:
        kind = self._kind
        items = self._svc.get_transfers() if kind == "transfer" else self._svc.get_movements(type_=kind)
        accounts = {a.name: a.id for a in self._ctx.stores.accounts.data}
        categories = {c.name: c.id for c in self._ctx.stores.categories.data if c.type == kind}
        account_id = accounts.get(self._account_var.get())
        category_id = categories.get(self._category_var.get())
        items = filter_movements(
            items, kind,
            date_from=self._from_picker.get() or None,
            date_to=self._to_picker.get() or None,
            account_ids=[account_id] if account_id else None,
            category_ids=[category_id] if category_id else None,
            search=self._search_var.get(),
        )
        field = next((k for k, v in SORT_LABELS.items() if v == self._sort_var.get()), "date")
        return sort_movements(items, field, self._order_var.get() or "desc", kind)

    def _load(self):
        if not hasattr(self, "_scroll"):
            return
        for w in self._scroll.winfo_children():
            w.destroy()

        kind = self._kind
        items = self._items()
        self._show_subtotals(subtotals(items, kind, self._ctx.display_currency), kind)
        if not items:
            ctk.CTkLabel(self._scroll, text="No hay movimientos para este filtro.",
                         text_color="gray60").grid(row=0, column=0, pady=20)
            return

        visible = items[:_MAX_RENDERED_ROWS]
        for idx, item in enumerate(visible):
            if kind == "transfer":
                self._add_transfer_row(idx, item)
            else:
                self._add_movement_row(idx, item)
        if len(items) > _MAX_RENDERED_ROWS:
            ctk.CTkLabel(
                self._scroll,
                text=f"Mostrando {_MAX_RENDERED_ROWS} de {len(items)}. Usá los filtros para acotar.",
                text_color="gray60", font=ctk.CTkFont(size=11),
            ).grid(row=_MAX_RENDERED_ROWS, column=0, pady=8)

    def _show_subtotals(self, totals: dict, kind: str):
        if kind == "transfer":
            out = "  ".join(format_currency(v, c) for c, v in totals["outgoing"].items())
            self._summary_var.set(f"{totals['count']} transferencias  ·  Enviado: {out or '-'}")
        else:
            total = "  ".join(format_currency(v, c) for c, v in totals["total"].items())
            self._summary_var.set(f"{totals['count']} movimientos  ·  Total: {total or '-'}")

    def _row_frame(self, idx):
        bg = ("gray92", "gray17") if idx % 2 == 0 else ("gray88", "gray21")
        row = ctk.CTkFrame(self._scroll, fg_color=bg, corner_radius=4)
        row.grid(row=idx, column=0, sticky="ew", pady=1, padx=2)
        return row

    def _add_movement_row(self, idx, m):
        row = self._row_frame(idx)
        var = self._selected.setdefault(m.id, ctk.BooleanVar(value=False))
        ctk.CTkCheckBox(row, text="", variable=var, width=30).grid(row=0, column=0, padx=(6, 0), pady=4)
        date_text = format_display_date(m.date, self._ctx.date_format)
        if m.is_future:
            date_text += " ⏳"
        ctk.CTkLabel(row, text=date_text, width=100, anchor="w").grid(row=0, column=1, padx=4)
        ctk.CTkLabel(row, text=m.category_name or "-", width=140, anchor="w").grid(row=0, column=2, padx=4)
        ctk.CTkLabel(row, text=m.account_name, width=130, anchor="w").grid(row=0, column=3, padx=4)
        note = m.note or "-"
        ctk.CTkLabel(row, text=note, width=240, anchor="w").grid(row=0, column=4, padx=4)
        sign = "+" if m.type == "income" else "-"
        ctk.CTkLabel(
            row, text=f"{sign}{format_currency(m.amount, m.currency)}", width=120, anchor="e",
            text_color=TYPE_COLORS[m.type],
        ).grid(row=0, column=5, padx=4)

        acts = ctk.CTkFrame(row, fg_color="transparent")
        acts.grid(row=0, column=6, padx=(4, 6))
        ctk.CTkButton(acts, text="Editar", width=52, height=24,
                      command=lambda: self._open_edit(m)).pack(side="left", padx=2)
        if m.attachment_path:
            ctk.CTkButton(acts, text="📎", width=28, height=24,
                          fg_color="transparent", border_width=1,
                          text_color=("gray10", "gray90"),
                          command=lambda: self._open_attachment(m)).pack(side="left", padx=2)
        if not m.installment_purchase_id:
            ctk.CTkButton(acts, text="↻", width=28, height=24,
                          fg_color="transparent", border_width=1,
                          text_color=("gray10", "gray90"),
                          command=lambda: self._convert(m)).pack(side="left", padx=2)
        ctk.CTkButton(acts, text="Borrar", width=52, height=24,
                      fg_color="#F44336", hover_color="#D32F2F",
                      command=lambda: self._delete(m)).pack(side="left")

    def _add_transfer_row(self, idx, t):
        row = self._row_frame(idx)
        ctk.CTkLabel(row, text=format_display_date(t.date, self._ctx.date_format),
                     width=100, anchor="w").grid(row=0, column=0, padx=(10, 4), pady=4)
        ctk.CTkLabel(row, text=f"{t.from_account_name} → {t.to_account_name}",
                     width=260, anchor="w").grid(row=0, column=1, padx=4)
        ctk.CTkLabel(row, text=t.note or "-", width=220, anchor="w").grid(row=0, column=2, padx=4)
        amount = format_currency(t.from_amount, t.from_currency)
        if t.from_currency != t.to_currency or t.from_amount != t.to_amount:
            amount += f" → {format_currency(t.to_amount, t.to_currency)}"
        ctk.CTkLabel(row, text=amount, width=200, anchor="e",
                     text_color=TYPE_COLORS["transfer"]).grid(row=0, column=3, padx=4)
        acts = ctk.CTkFrame(row, fg_color="transparent")
        acts.grid(row=0, column=4, padx=(4, 6))
        ctk.CTkButton(acts, text="Editar", width=52, height=24,
                      command=lambda: self._open_transfer(t)).pack(side="left", padx=2)
        ctk.CTkButton(acts, text="Borrar", width=52, height=24,
                      fg_color="#F44336", hover_color="#D32F2F",
                      command=lambda: self._delete_transfer(t)).pack(side="left")

    # ── Actions ─────────────────────────────────────────────────────────────
    def _form_kwargs(self) -> dict:
        stores = self._ctx.stores
        return {
            "accounts": stores.accounts.data,
            "categories": stores.categories.data,
            "recent": stores.recent.data or {},
            "date_format": self._ctx.date_format,
        }

    def _open_expense(self):
        ExpenseForm(self.winfo_toplevel(), self._svc, self._ctx.services.rules,
                    statement_service=self._ctx.services.statements, **self._form_kwargs())

    def _open_income(self):
        IncomeForm(self.winfo_toplevel(), self._svc, self._ctx.services.rules, **self._form_kwargs())

    def _open_attachment(self, m):
        if not open_attachment(m.attachment_path):
            self._ctx.errors.show_error("No se encontró el archivo adjunto.", attachment_name(m.attachment_path))

    def _open_edit(self, m):
        cls = ExpenseForm if m.type == "expense" else IncomeForm
        extra = {"statement_service": self._ctx.services.statements} if m.type == "expense" else {}
        cls(self.winfo_toplevel(), self._svc, self._ctx.services.rules, movement=m,
            **extra, **self._form_kwargs())

    def _open_transfer(self, transfer=None):
        TransferForm(self.winfo_toplevel(), self._svc, self._ctx.stores.accounts.data,
                     recent=self._ctx.stores.recent.data or {}, transfer=transfer,
                     date_format=self._ctx.date_format)

    def _convert(self, m):
        ConvertToRecurringDialog(self.winfo_toplevel(), self._ctx.services.recurring, m)

    def _delete(self, m):
        if m.installment_purchase_id:
            installments = self._svc.get_installments_by_purchase(m.installment_purchase_id)
            dlg = ConfirmDialog(
                self.winfo_toplevel(), "Eliminar compra en cuotas",
                "Este gasto es una cuota. ¿Eliminar la compra completa con todas sus cuotas?",
                details=[self._describe(i) for i in installments],
            )
            if dlg.result:
                self._ctx.guarded(self._svc.delete_installment_purchase, m.installment_purchase_id,
                                  context="Eliminar cuotas")
            return
        dlg = ConfirmDialog(self.winfo_toplevel(), "Eliminar movimiento",
                            f"¿Eliminar este movimiento de {format_currency(m.amount, m.currency)}?")
        if dlg.result:
            self._ctx.guarded(self._svc.delete_movement, m.id, context="Eliminar movimiento")

    def _describe(self, m) -> str:
        label = m.note or m.category_name or m.account_name
        return f"{format_display_date(m.date, self._ctx.date_format)}  {label}  {format_currency(m.amount, m.currency)}"

    def _delete_transfer(self, t):
        dlg = ConfirmDialog(self.winfo_toplevel(), "Eliminar transferencia",
                            f"¿Eliminar la transferencia de {format_currency(t.from_amount, t.from_currency)}?")
        if dlg.result:
            self._ctx.guarded(self._svc.delete_transfer, t.id, context="Eliminar transferencia")

    def _selected_ids(self) -> list[int]:
        return [mid for mid, var in self._selected.items() if var.get()]

    def _bulk_delete(self):
        ids = self._selected_ids()
        if not ids:
            return
        by_id = {m.id: m for m in self._items()}
        dlg = ConfirmDialog(self.winfo_toplevel(), "Eliminar movimientos",
                            f"¿Eliminar {len(ids)} movimientos seleccionados?",
                            details=[self._describe(by_id[i]) for i in ids if i in by_id])
        if dlg.result:
            self._selected.clear()
            self._ctx.guarded(self._svc.bulk_delete_movements, ids, context="Eliminar movimientos")

    def _refresh_bulk_values(self):
        if _BULK_FIELDS[self._bulk_field_var.get()] == "account_id":
            names = [a.name for a in self._ctx.stores.accounts.data]
        else:
            names = [c.name for c in self._ctx.stores.categories.data if c.type == self._kind]
        self._bulk_value_combo.configure(values=names)
        self._bulk_value_var.set(names[0] if names else "")

    def _bulk_update(self):
        ids = self._selected_ids()
        if not ids:
            return
        field = _BULK_FIELDS[self._bulk_field_var.get()]
        name = self._bulk_value_var.get()
        if field == "account_id":
            value = next((a.id for a in self._ctx.stores.accounts.data if a.name == name), None)
        else:
            value = next((c.id for c in self._ctx.stores.categories.data
                          if c.name == name and c.type == self._kind), None)
        if value is None:
            return
        self._selected.clear()
        self._ctx.guarded(self._svc.bulk_update_movements, ids, field, value,
                          context="Actualizar movimientos")
