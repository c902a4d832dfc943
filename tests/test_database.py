from __future__ import annotations

import sqlite3

import pytest

from database.db_manager import DatabaseManager
from utils import app_config
from utils.constants import DEFAULT_ACCOUNT_NAME, DEFAULT_CATEGORIES


def test_initialize_seeds_defaults(db) -> None:
    conn = db.get_connection()
    accounts = [r["name"] for r in conn.execute("SELECT name FROM accounts")]
    categories = conn.execute("SELECT COUNT(*) FROM categories").fetchone()[0]

    assert accounts == [DEFAULT_ACCOUNT_NAME]
    assert categories == len(DEFAULT_CATEGORIES)
    assert db.get_setting("date_format") == "DD-MM-YYYY"


def test_initialize_is_idempotent(db) -> None:
    db.set_setting("date_format", "YYYY-MM-DD")

    db.initialize()

    assert db.get_setting("date_format") == "YYYY-MM-DD"
    assert db.get_connection().execute("SELECT COUNT(*) FROM accounts").fetchone()[0] == 1


def test_fresh_schema_has_every_column(db) -> None:
    conn = db.get_connection()

    def columns(table):
        return {r["name"] for r in conn.execute(f"PRAGMA table_info({table})")}

    assert {"closing_day", "due_day", "icon"} <= columns("accounts")
    assert {"currency", "attachment_path", "is_future", "installment_purchase_id",
            "recurring_occurrence_id"} <= columns("movements")


def test_settings_default_for_missing_keys(db) -> None:
    assert db.get_setting("nope", "x") == "x"


def test_transaction_rolls_back_on_error(db) -> None:
    with pytest.raises(sqlite3.IntegrityError):
        with db.transaction() as conn:
            conn.execute("INSERT INTO accounts(name) VALUES ('Temporal')")
            conn.execute("INSERT INTO accounts(name) VALUES ('Temporal')")

    names = [r["name"] for r in db.get_connection().execute("SELECT name FROM accounts")]
    assert "Temporal" not in names


def test_open_creates_the_folder(tmp_path) -> None:
    folder = tmp_path / "datos"

    db = DatabaseManager.open(str(folder))

    assert (folder / "cashe.db").exists()
    db.close()


def test_config_round_trip(tmp_path, monkeypatch) -> None:
    monkeypatch.setattr(app_config, "CONFIG_DIR", tmp_path)
    monkeypatch.setattr(app_config, "CONFIG_FILE", tmp_path / "config.json")

    assert app_config.get_db_folder() is None
    app_config.set_db_folder("/datos")
    assert app_config.get_db_folder() == "/datos"
    app_config.set_db_folder(None)
    assert app_config.load_config() == {}
    assert app_config.get_log_level() == "INFO"


def test_corrupt_config_is_ignored(tmp_path, monkeypatch) -> None:
    config_file = tmp_path / "config.json"
    config_file.write_text("{not json", encoding="utf-8")
    monkeypatch.setattr(app_config, "CONFIG_FILE", config_file)

    assert app_config.load_config() == {}


def test_log_level_is_validated(tmp_path, monkeypatch) -> None:
    monkeypatch.setattr(app_config, "CONFIG_DIR", tmp_path)
    monkeypatch.setattr(app_config, "CONFIG_FILE", tmp_path / "config.json")

    app_config.set_log_level("debug")

    assert app_config.get_log_level() == "DEBUG"
    with pytest.raises(ValueError):
        app_config.set_log_level("verbose")
