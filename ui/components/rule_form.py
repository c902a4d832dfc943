import sqlite3
import customtkinter as ctk
from models.auto_rule import AutoRule, RuleAction, RuleCondition
from services.auto_rule_service import (
    ACTION_FIELDS, FIELD_OPTIONS, OPERATOR_LABELS, OPERATOR_OPTIONS, AutoRuleService,
)
from ui.components.form_base import FormDialog
from utils.constants import RULE_LOGIC_OPERATORS, TYPE_LABELS
from utils.errors import format_error

_LABEL_TO_FIELD = {v: k for k, v in FIELD_OPTIONS.items()}
_LABEL_TO_OPERATOR = {v: k for k, v in OPERATOR_LABELS.items()}
_LABEL_TO_ACTION = {v: k for k, v in ACTION_FIELDS.items()}
_LABEL_TO_TYPE = {v: k for k, v in TYPE_LABELS.items()}


class _ConditionRow(ctk.CTkFrame):
    def __init__(self, master, accounts, condition: RuleCondition | None, on_remove):
        super().__init__(master, fg_color="transparent")
        self._accounts = accounts
        c = condition or RuleCondition(field="note", operator="contains", value="")

        self.field_var = ctk.StringVar(value=FIELD_OPTIONS[c.field])
        ctk.CTkComboBox(
            self, values=list(FIELD_OPTIONS.values()), variable=self.field_var,
            width=100, state="readonly", command=lambda _: self._on_field_change(),
        ).pack(side="left", padx=(0, 4))
        self.operator_var = ctk.StringVar(value=OPERATOR_LABELS[c.operator])
        self._operator_combo = ctk.CTkComboBox(
            self, values=[], variable=self.operator_var, width=120, state="readonly",
        )
        self._operator_combo.pack(side="left", padx=(0, 4))
        self.value_var = ctk.StringVar(value=self._display_value(c))
        self._value_holder = ctk.CTkFrame(self, fg_color="transparent")
        self._value_holder.pack(side="left", padx=(0, 4))
        ctk.CTkButton(
            self, text="✕", width=28, height=24,
            fg_color="transparent", border_width=1,
            text_color=("gray10", "gray90"),
            command=lambda: on_remove(self),
        ).pack(side="left")
        self._on_field_change(keep_value=True)

    def _display_value(self, c: RuleCondition) -> str:
        if c.field == "account_id":
            return next((a.name for a in self._accounts if str(a.id) == str(c.value)), "")
        if c.field == "type":
            return TYPE_LABELS.get(c.value, "")
        return str(c.value or "")

    def _field(self) -> str:
        return _LABEL_TO_FIELD.get(self.field_var.get(), "note")

    def _on_field_change(self, keep_value: bool = False):
        field = self._field()
        operators = [OPERATOR_LABELS[o] for o in OPERATOR_OPTIONS[field]]
        self._operator_combo.configure(values=operators)
        if self.operator_var.get() not in operators:
            self.operator_var.set(operators[0])
        if not keep_value:
            self.value_var.set("")

        for w in self._value_holder.winfo_children():
            w.destroy()
        if field == "account_id":
            widget = ctk.CTkComboBox(self._value_holder, values=[a.name for a in self._accounts],
                                     variable=self.value_var, width=150, state="readonly")
        elif field == "type":
            widget = ctk.CTkComboBox(self._value_holder, values=list(TYPE_LABELS.values()),
                                     variable=self.value_var, width=150, state="readonly")
        else:
            widget = ctk.CTkEntry(self._value_holder, textvariable=self.value_var, width=150,
                                  placeholder_text="mín|máx" if field == "amount" else "")
        widget.pack()

    def get(self) -> RuleCondition:
        field = self._field()
        value = self.value_var.get().strip()
        if field == "account_id":
            value = str(next((a.id for a in self._accounts if a.name == value), ""))
        elif field == "type":
            value = _LABEL_TO_TYPE.get(value, "")
        return RuleCondition(field=field, operator=_LABEL_TO_OPERATOR.get(self.operator_var.get(), ""),
                             value=value)


class _ActionRow(ctk.CTkFrame):
    def __init__(self, master, accounts, categories, action: RuleAction | None, on_remove):
        super().__init__(master, fg_color="transparent")
        self._options = {
            "category_id": [(c.id, c.display_name) for c in categories],
            "account_id": [(a.id, a.display_name) for a in accounts],
        }
        a = action or RuleAction(field="category_id", value="")
        self.field_var = ctk.StringVar(value=ACTION_FIELDS[a.field])
        ctk.CTkComboBox(
            self, values=list(ACTION_FIELDS.values()), variable=self.field_var,
            width=150, state="readonly", command=lambda _: self._on_field_change(),
        ).pack(side="left", padx=(0, 4))
        self.value_var = ctk.StringVar(
            value=next((label for oid, label in self._options[a.field] if str(oid) == str(a.value)), "")
        )
        self._value_combo = ctk.CTkComboBox(self, values=[], variable=self.value_var,
                                            width=180, state="readonly")
        self._value_combo.pack(side="left", padx=(0, 4))
        ctk.CTkButton(
            self, text="✕", width=28, height=24,
            fg_color="transparent", border_width=1,
            text_color=("gray10", "gray90"),
            command=lambda: on_remove(self),
        ).pack(side="left")
        self._on_field_change(keep_value=True)

    def _field(self) -> str:
        return _LABEL_TO_ACTION.get(self.field_var.get(), "category_id")

    def _on_field_change(self, keep_value: bool = False):
        labels = [label for _, label in self._options[self._field()]]
        self._value_combo.configure(values=labels)
        if not keep_value or self.value_var.get() not in labels:
            self.value_var.set(labels[0] if labels else "")

    def get(self) -> RuleAction:
        field = self._field()
        value = next((oid for oid, label in self._options[field] if label == self.value_var.get()), "")
        return RuleAction(field=field, value=str(value))


class RuleForm(FormDialog):
    """Auto-categorization rule: conditions joined by AND/OR, then actions."""

    def __init__(
        self,
        master,
        rule_service: AutoRuleService,
        accounts: list,
        categories: list,
        rule: AutoRule | None = None,
        **kwargs,
    ):
        super().__init__(master, "Editar regla" if rule else "Nueva regla", **kwargs)
        self._svc = rule_service
        self._rule = rule
        self._accounts = accounts
        self._categories = categories

        r = 0
        self._name_var = self._entry(r, "Nombre:", rule.name if rule else "")
        r += 1
        self._label("Cumplir:", r)
        self._logic_var = ctk.StringVar(value=rule.logic_operator if rule else "AND")
        self._place(ctk.CTkSegmentedButton(
            self, values=RULE_LOGIC_OPERATORS, variable=self._logic_var,
        ), r, sticky="w")
        r += 1

        self._label("Condiciones:", r)
        self._conditions_frame = self._place(ctk.CTkFrame(self, fg_color="transparent"), r)
        self._condition_rows: list[_ConditionRow] = []
        r += 1
        self._place(ctk.CTkButton(self, text="+ Condición", width=110,
                                  command=lambda: self._add_condition(None)), r, sticky="w")
        r += 1

        self._label("Acciones:", r)
        self._actions_frame = self._place(ctk.CTkFrame(self, fg_color="transparent"), r)
        self._action_rows: list[_ActionRow] = []
        r += 1
        self._place(ctk.CTkButton(self, text="+ Acción", width=110,
                                  command=lambda: self._add_action(None)), r, sticky="w")
        r += 1

        self._active_var = ctk.BooleanVar(value=rule.is_active if rule else True)
        self._place(ctk.CTkCheckBox(self, text="Activa", variable=self._active_var), r, sticky="w")
        r += 1

        for c in (rule.conditions if rule else [None]):
            self._add_condition(c)
        for a in (rule.actions if rule else [None]):
            self._add_action(a)

        self._build_footer(r)
        self._open()

    def _add_condition(self, condition):
        row = _ConditionRow(self._conditions_frame, self._accounts, condition, self._remove_condition)
        row.pack(fill="x", pady=2)
        self._condition_rows.append(row)

    def _remove_condition(self, row):
        self._condition_rows.remove(row)
        row.destroy()

    def _add_action(self, action):
        row = _ActionRow(self._actions_frame, self._accounts, self._categories, action, self._remove_action)
        row.pack(fill="x", pady=2)
        self._action_rows.append(row)

    def _remove_action(self, row):
        self._action_rows.remove(row)
        row.destroy()

    def _on_save(self):
        conditions = [row.get() for row in self._condition_rows]
        actions = [row.get() for row in self._action_rows]
        try:
            if self._rule:
                self._svc.update(self._rule.id, self._name_var.get(), conditions, actions,
                                 self._logic_var.get(), is_active=self._active_var.get())
            else:
                self._svc.create(self._name_var.get(), conditions, actions,
                                 self._logic_var.get(), is_active=self._active_var.get())
        except (ValueError, sqlite3.Error) as e:
            self._error_var.set(format_error(e))
            return
        self._done()
