import logging
from database.category_dao import CategoryDAO
from models.category import Category
from services.data_events import CATEGORIES_CHANGED, DataEventBus, data_events
from utils.errors import FinanceError

logger = logging.getLogger(__name__)


class CategoryService:
    def __init__(self, category_dao: CategoryDAO, events: DataEventBus = data_events):
        self._dao = category_dao
        self._events = events

    def get_all(self) -> list[Category]:
        return self._dao.get_all()

    def get_by_type(self, type_: str) -> list[Category]:
        return self._dao.get_by_type(type_)

    def create(self, name: str, type_: str, icon: str = "") -> Category:
        name = self._validate(name, type_)
        if self._name_taken(name, type_):
            raise FinanceError(f"Ya existe una categoría llamada '{name}'.")
        category = self._dao.create(name, type_, icon)
        self._events.emit(CATEGORIES_CHANGED)
        return category

    def update(self, category_id: int, name: str, type_: str, icon: str = "") -> Category:
        name = self._validate(name, type_)
        if self._name_taken(name, type_, exclude_id=category_id):
            raise FinanceError(f"Ya existe una categoría llamada '{name}'.")
        category = self._dao.update(category_id, name, type_, icon)
        self._events.emit(CATEGORIES_CHANGED)
        return category

    def delete(self, category_id: int):
        used = self._dao.usage_count(category_id)
        if used:
            logger.info("Deleting category %s used by %d movements", category_id, used)
        self._dao.delete(category_id)
        self._events.emit(CATEGORIES_CHANGED)

    def _name_taken(self, name: str, type_: str, exclude_id: int | None = None) -> bool:
        return any(
            c.name.lower() == name.lower() and c.type == type_ and c.id != exclude_id
            for c in self._dao.get_all()
        )

    @staticmethod
    def _validate(name: str, type_: str) -> str:
        name = name.strip()
        if not name:
            raise FinanceError("El nombre de la categoría es obligatorio.")
        if type_ not in ("income", "expense"):
            raise FinanceError("El tipo debe ser ingreso o gasto.")
        return name
