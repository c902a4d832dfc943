from typing import Optional
from database.db_manager import DatabaseManager
from models.auto_rule import AutoRule, RuleAction, RuleCondition


class AutoRuleDAO:
    def __init__(self, db: DatabaseManager):
        self._db = db

    def _row_to_model(self, row) -> AutoRule:
        conn = self._db.get_connection()
        conditions = [
            RuleCondition(id=r["id"], field=r["field"], operator=r["operator"], value=r["value"])
            for r in conn.execute(
                "SELECT * FROM auto_rule_conditions WHERE rule_id = ? ORDER BY id", (row["id"],)
            ).fetchall()
        ]
        actions = [
            RuleAction(id=r["id"], field=r["field"], value=r["value"])
            for r in conn.execute(
                "SELECT * FROM auto_rule_actions WHERE rule_id = ? ORDER BY id", (row["id"],)
            ).fetchall()
        ]
        return AutoRule(
            id=row["id"],
            name=row["name"],
            priority=row["priority"],
            logic_operator=row["logic_operator"],
            is_active=bool(row["is_active"]),
            conditions=conditions,
            actions=actions,
        )

    def get_all(self) -> list[AutoRule]:
        rows = self._db.get_connection().execute(
            "SELECT * FROM auto_rules ORDER BY priority DESC, id"
        ).fetchall()
        return [self._row_to_model(r) for r in rows]

    def get_by_id(self, rule_id: int) -> Optional[AutoRule]:
        row = self._db.get_connection().execute(
            "SELECT * FROM auto_rules WHERE id = ?", (rule_id,)
        ).fetchone()
        return self._row_to_model(row) if row else None

    def _replace_children(self, conn, rule_id: int, conditions, actions):
        conn.execute("DELETE FROM auto_rule_conditions WHERE rule_id = ?", (rule_id,))
        conn.execute("DELETE FROM auto_rule_actions WHERE rule_id = ?", (rule_id,))
        conn.executemany(
            "INSERT INTO auto_rule_conditions(rule_id, field, operator, value) VALUES (?, ?, ?, ?)",
            [(rule_id, c.field, c.operator, str(c.value)) for c in conditions],
        )
        conn.executemany(
            "INSERT INTO auto_rule_actions(rule_id, field, value) VALUES (?, ?, ?)",
            [(rule_id, a.field, str(a.value)) for a in actions],
        )

    def create(self, name: str, priority: int, logic_operator: str, is_active: bool,
               conditions: list[RuleCondition], actions: list[RuleAction]) -> AutoRule:
        conn = self._db.get_connection()
        cursor = conn.execute(
            "INSERT INTO auto_rules(name, priority, logic_operator, is_active) VALUES (?, ?, ?, ?)",
            (name, priority, logic_operator, int(is_active)),
        )
        self._replace_children(conn, cursor.lastrowid, conditions, actions)
        conn.commit()
        return self.get_by_id(cursor.lastrowid)

    def update(self, rule_id: int, name: str, priority: int, logic_operator: str, is_active: bool,
               conditions: list[RuleCondition], actions: list[RuleAction]) -> AutoRule:
        conn = self._db.get_connection()
        conn.execute(
            "UPDATE auto_rules SET name = ?, priority = ?, logic_operator = ?, is_active = ? WHERE id = ?",
            (name, priority, logic_operator, int(is_active), rule_id),
        )
        self._replace_children(conn, rule_id, conditions, actions)
        conn.commit()
        return self.get_by_id(rule_id)

    def set_active(self, rule_id: int, is_active: bool):
        conn = self._db.get_connection()
        conn.execute("UPDATE auto_rules SET is_active = ? WHERE id = ?", (int(is_active), rule_id))
        conn.commit()

    def set_priorities(self, priorities: dict[int, int]):
        conn = self._db.get_connection()
        conn.executemany(
            "UPDATE auto_rules SET priority = ? WHERE id = ?",
            [(priority, rule_id) for rule_id, priority in priorities.items()],
        )
        conn.commit()

    def delete(self, rule_id: int):
        conn = self._db.get_connection()
        conn.execute("DELETE FROM auto_rules WHERE id = ?", (rule_id,))
        conn.commit()
