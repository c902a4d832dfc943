import customtkinter as ctk
from services.auto_rule_service import ACTION_FIELDS, FIELD_OPTIONS, OPERATOR_LABELS
from ui.app_context import AppContext
from ui.components.confirm_dialog import ConfirmDialog
from ui.components.form_base import parse_optional_amount
from ui.components.rule_form import RuleForm
from utils.constants import TYPE_LABELS

_ANY_ACCOUNT = "Cualquier cuenta"
_LABEL_TO_TYPE = {TYPE_LABELS[t]: t for t in ("expense", "income")}


class RulesTab(ctk.CTkFrame):
    """Auto-categorization rules in evaluation order, plus a tester."""

    def __init__(self, master, ctx: AppContext, **kwargs):
        super().__init__(master, fg_color="transparent", **kwargs)
        self._ctx = ctx
        self._svc = ctx.services.rules
        self._store = ctx.stores.rules

        self.grid_columnconfigure(0, weight=1)
        self.grid_rowconfigure(2, weight=1)

        self._build_toolbar()
        self._build_tester()
        self._build_list()
        self._load()
        self._store.subscribe(lambda _store: self._load())

    def refresh(self):
        self._store.refetch()

    def _build_toolbar(self):
        bar = ctk.CTkFrame(self, fg_color=("gray88", "gray18"), corner_radius=8)
        bar.grid(row=0, column=0, sticky="ew", padx=8, pady=(8, 0))
        ctk.CTkLabel(bar, text="Reglas de categorización",
                     font=ctk.CTkFont(size=14, weight="bold")).pack(side="left", padx=12, pady=8)
        ctk.CTkButton(bar, text="+ Regla", command=lambda: self._form()).pack(side="right", padx=8, pady=6)

    def _build_tester(self):
        box = ctk.CTkFrame(self, fg_color=("gray90", "gray20"), corner_radius=8)
        box.grid(row=1, column=0, sticky="ew", padx=8, pady=(6, 0))
        ctk.CTkLabel(box, text="Probar:").pack(side="left", padx=(12, 4), pady=6)
        self._test_note = ctk.StringVar()
        self._test_amount = ctk.StringVar()
        self._test_type = ctk.StringVar(value=TYPE_LABELS["expense"])
        self._test_account = ctk.StringVar(value=_ANY_ACCOUNT)
        ctk.CTkEntry(box, textvariable=self._test_note, placeholder_text="Nota",
                     width=200).pack(side="left", padx=4)
        ctk.CTkEntry(box, textvariable=self._test_amount, placeholder_text="Monto",
                     width=90).pack(side="left", padx=4)
        ctk.CTkComboBox(box, values=list(_LABEL_TO_TYPE), variable=self._test_type,
                        width=100, state="readonly").pack(side="left", padx=4)
        self._test_account_combo = ctk.CTkComboBox(box, variable=self._test_account,
                                                   width=150, state="readonly")
        self._test_account_combo.pack(side="left", padx=4)
        ctk.CTkButton(box, text="Evaluar", width=80, command=self._run_test).pack(side="left", padx=4)
        self._test_result = ctk.StringVar()
        ctk.CTkLabel(box, textvariable=self._test_result, anchor="w").pack(side="left", padx=8)

    def _build_list(self):
        self._scroll = ctk.CTkScrollableFrame(self)
        self._scroll.grid(row=2, column=0, sticky="nsew", padx=8, pady=8)
        self._scroll.grid_columnconfigure(0, weight=1)

    def _load(self):
        self._test_account_combo.configure(
            values=[_ANY_ACCOUNT] + [a.name for a in self._ctx.stores.accounts.data]
        )
        for w in self._scroll.winfo_children():
            w.destroy()
        if self._store.error:
            ctk.CTkLabel(self._scroll, text=self._store.error, text_color="#F44336").grid(row=0, column=0, pady=20)
            return
        rules = self._store.data
        if not rules:
            ctk.CTkLabel(
                self._scroll, text="No hay reglas. Creá una con '+ Regla'.",
                text_color="gray60",
            ).grid(row=0, column=0, pady=40)
            return
        for idx, rule in enumerate(rules):
            self._add_rule_card(idx, rule, rules)

    def _describe_value(self, field, value) -> str:
        if field == "account_id":
            account = self._ctx.stores.accounts.by_id(int(value)) if str(value).isdigit() else None
            return account.name if account else str(value)
        if field == "category_id":
            category = next((c for c in self._ctx.stores.categories.data if str(c.id) == str(value)), None)
            return category.name if category else str(value)
        if field == "type":
            return TYPE_LABELS.get(value, value)
        return f"'{value}'" if field == "note" else str(value)

    def _add_rule_card(self, idx, rule, rules):
        card = ctk.CTkFrame(self._scroll, fg_color=("gray90", "gray20"), corner_radius=8)
        card.grid(row=idx, column=0, sticky="ew", padx=4, pady=4)
        card.grid_columnconfigure(1, weight=1)

        order = ctk.CTkFrame(card, fg_color="transparent")
        order.grid(row=0, column=0, rowspan=2, padx=(8, 4), pady=6)
        ctk.CTkButton(order, text="▲", width=26, height=20, state="normal" if idx > 0 else "disabled",
                      command=lambda: self._move(rules, idx, -1)).pack(pady=1)
        ctk.CTkButton(order, text="▼", width=26, height=20,
                      state="normal" if idx < len(rules) - 1 else "disabled",
                      command=lambda: self._move(rules, idx, 1)).pack(pady=1)

        title = rule.name if rule.is_active else f"{rule.name}  (inactiva)"
        ctk.CTkLabel(card, text=title, font=ctk.CTkFont(size=13, weight="bold"),
                     text_color=None if rule.is_active else "gray60",
                     anchor="w").grid(row=0, column=1, sticky="w", pady=(8, 0))

        joiner = " y " if rule.logic_operator == "AND" else " o "
        conditions = joiner.join(
            f"{FIELD_OPTIONS.get(c.field, c.field)} {OPERATOR_LABELS.get(c.operator, c.operator)} "
            f"{self._describe_value(c.field, c.value)}"
            for c in rule.conditions
        )
        actions = ", ".join(
            f"{ACTION_FIELDS.get(a.field, a.field)}: {self._describe_value(a.field, a.value)}"
            for a in rule.actions
        )
        ctk.CTkLabel(card, text=f"Si {conditions}  →  {actions}", text_color="gray60",
                     anchor="w", wraplength=700, justify="left").grid(row=1, column=1, sticky="w", pady=(0, 8))

        acts = ctk.CTkFrame(card, fg_color="transparent")
        acts.grid(row=0, column=2, rowspan=2, padx=(4, 8))
        ctk.CTkSwitch(
            acts, text="", width=40, variable=ctk.BooleanVar(value=rule.is_active),
            command=lambda: self._ctx.guarded(self._svc.set_active, rule.id, not rule.is_active,
                                              context="Activar regla"),
        ).pack(side="left", padx=4)
        ctk.CTkButton(acts, text="Editar", width=50, height=24,
                      command=lambda: self._form(rule)).pack(side="left", padx=2)
        ctk.CTkButton(acts, text="✕", width=28, height=24,
                      fg_color="#F44336", hover_color="#D32F2F",
                      command=lambda: self._delete(rule)).pack(side="left", padx=2)

    def _move(self, rules, idx, step):
        ids = [r.id for r in rules]
        target = idx + step
        if not 0 <= target < len(ids):
            return
        ids[idx], ids[target] = ids[target], ids[idx]
        self._ctx.guarded(self._svc.reorder, ids, context="Reordenar reglas")

    def _run_test(self):
        try:
            amount = parse_optional_amount(self._test_amount.get())
        except ValueError:
            self._test_result.set("Monto inválido.")
            return
        account = next((a for a in self._ctx.stores.accounts.data
                        if a.name == self._test_account.get()), None)
        suggestion = self._svc.evaluate_auto_rules(
            note=self._test_note.get(), amount=amount,
            account_id=account.id if account else None,
            type_=_LABEL_TO_TYPE.get(self._test_type.get()),
        )
        if suggestion is None:
            self._test_result.set("Ninguna regla coincide.")
            return
        parts = [f"Regla: {suggestion.rule_name}"]
        if suggestion.category_id:
            parts.append(f"categoría {self._describe_value('category_id', suggestion.category_id)}")
        if suggestion.account_id:
            parts.append(f"cuenta {self._describe_value('account_id', suggestion.account_id)}")
        self._test_result.set(" · ".join(parts))

    def _form(self, rule=None):
        RuleForm(self.winfo_toplevel(), self._svc, self._ctx.stores.accounts.data,
                 self._ctx.stores.categories.data, rule=rule)

    def _delete(self, rule):
        dlg = ConfirmDialog(self.winfo_toplevel(), "Eliminar regla", f"¿Eliminar '{rule.name}'?")
        if dlg.result:
            self._ctx.guarded(self._svc.delete, rule.id, context="Eliminar regla")
