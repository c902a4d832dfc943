from dataclasses import dataclass


@dataclass
class Category:
    id: int
    name: str
    type: str           # 'income' | 'expense'
    icon: str = ""

    @property
    def display_name(self) -> str:
        return f"{self.icon} {self.name}".strip()
