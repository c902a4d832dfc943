import customtkinter as ctk
from ui.app_context import AppContext
from ui.components.category_form import CategoryForm
from ui.components.confirm_dialog import ConfirmDialog
from utils.constants import TYPE_COLORS


class CategoriesTab(ctk.CTkFrame):
    def __init__(self, master, ctx: AppContext, **kwargs):
        super().__init__(master, fg_color="transparent", **kwargs)
        self._ctx = ctx
        self._svc = ctx.services.categories
        self._store = ctx.stores.categories

        self.grid_columnconfigure((0, 1), weight=1)
        self.grid_rowconfigure(1, weight=1)

        self._build_toolbar()
        self._lists = {}
        for col, (type_, title) in enumerate((("expense", "Gastos"), ("income", "Ingresos"))):
            scroll = ctk.CTkScrollableFrame(self, label_text=title)
            scroll.grid(row=1, column=col, sticky="nsew", padx=(8, 4) if col == 0 else (4, 8), pady=8)
            scroll.grid_columnconfigure(0, weight=1)
            self._lists[type_] = scroll
        self._load()
        self._store.subscribe(lambda _store: self._load())

    def refresh(self):
        self._store.refetch()

    def _build_toolbar(self):
        bar = ctk.CTkFrame(self, fg_color=("gray88", "gray18"), corner_radius=8)
        bar.grid(row=0, column=0, columnspan=2, sticky="ew", padx=8, pady=(8, 0))
        ctk.CTkLabel(bar, text="Categorías", font=ctk.CTkFont(size=13, weight="bold")).pack(
            side="left", padx=(12, 16), pady=8)
        ctk.CTkButton(bar, text="+ Gasto", width=90,
                      command=lambda: self._form(initial_type="expense")).pack(side="right", padx=(4, 8), pady=6)
        ctk.CTkButton(bar, text="+ Ingreso", width=90,
                      command=lambda: self._form(initial_type="income")).pack(side="right", padx=4, pady=6)

    def _load(self):
        for type_, scroll in self._lists.items():
            for w in scroll.winfo_children():
                w.destroy()
            categories = self._store.by_type(type_)
            if not categories:
                ctk.CTkLabel(scroll, text="Sin categorías.", text_color="gray60").grid(row=0, column=0, pady=40)
            for idx, cat in enumerate(categories):
                self._add_row(scroll, idx, cat)

    def _add_row(self, scroll, idx, cat):
        row = ctk.CTkFrame(scroll, fg_color=("gray90", "gray20"), corner_radius=8)
        row.grid(row=idx, column=0, sticky="ew", padx=4, pady=3)
        row.grid_columnconfigure(1, weight=1)

        ctk.CTkLabel(row, text=cat.icon or "•", width=28,
                     text_color=TYPE_COLORS[cat.type]).grid(row=0, column=0, padx=(10, 0), pady=8)
        ctk.CTkLabel(row, text=cat.name, font=ctk.CTkFont(size=13, weight="bold"),
                     anchor="w").grid(row=0, column=1, padx=8, sticky="w")

        btn_frame = ctk.CTkFrame(row, fg_color="transparent")
        btn_frame.grid(row=0, column=2, padx=(4, 10), pady=6)
        ctk.CTkButton(
            btn_frame, text="Editar", width=60, height=26,
            fg_color="transparent", border_width=1,
            text_color=("gray10", "gray90"),
            command=lambda: self._form(cat),
        ).pack(side="left", padx=(0, 4))
        ctk.CTkButton(
            btn_frame, text="Borrar", width=60, height=26,
            fg_color="#F44336", hover_color="#D32F2F",
            command=lambda: self._on_delete(cat),
        ).pack(side="left")

    def _form(self, category=None, initial_type="expense"):
        CategoryForm(self.winfo_toplevel(), self._svc, category=category, initial_type=initial_type)

    def _on_delete(self, cat):
        dlg = ConfirmDialog(
            self.winfo_toplevel(), "Eliminar categoría",
            f"¿Eliminar '{cat.name}'? Los movimientos existentes quedan sin categoría.",
        )
        if dlg.result:
            self._ctx.guarded(self._svc.delete, cat.id, context="Eliminar categoría")
