import sqlite3
from models.category import Category
from services.category_service import CategoryService
from ui.components.form_base import FormDialog
from utils.constants import TYPE_LABELS
from utils.errors import format_error

_TYPES = {TYPE_LABELS["expense"]: "expense", TYPE_LABELS["income"]: "income"}


class CategoryForm(FormDialog):
    """Add or edit a category."""

    def __init__(
        self,
        master,
        category_service: CategoryService,
        category: Category | None = None,
        initial_type: str = "expense",
        **kwargs,
    ):
        super().__init__(master, "Editar categoría" if category else "Nueva categoría", **kwargs)
        self._svc = category_service
        self._category = category

        r = 0
        self._name_var = self._entry(r, "Nombre:", category.name if category else "")
        r += 1
        self._icon_var = self._entry(r, "Ícono:", category.icon if category else "", width=60)
        r += 1
        current_type = category.type if category else initial_type
        self._type_var, _ = self._combo(r, "Tipo:", list(_TYPES), TYPE_LABELS[current_type])
        r += 1

        self._build_footer(r)
        self._open()

    def _on_save(self):
        type_ = _TYPES.get(self._type_var.get(), "expense")
        try:
            if self._category:
                self._svc.update(self._category.id, self._name_var.get(), type_, self._icon_var.get().strip())
            else:
                self._svc.create(self._name_var.get(), type_, self._icon_var.get().strip())
        except (ValueError, sqlite3.Error) as e:
            self._error_var.set(format_error(e))
            return
        self._done()
