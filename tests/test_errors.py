from __future__ import annotations

import sqlite3

from utils.errors import DEFAULT_ERROR_MESSAGE, ErrorReporter, FinanceError, format_error


def test_format_error_prefers_the_exception_message() -> None:
    assert format_error(FinanceError("Monto inválido.")) == "Monto inválido."
    assert format_error(sqlite3.IntegrityError("UNIQUE")) == "El registro está en uso o ya existe."
    assert format_error(sqlite3.OperationalError("locked")) == "Error de base de datos."
    assert format_error(RuntimeError("x")) == DEFAULT_ERROR_MESSAGE
    assert format_error(ValueError()) == DEFAULT_ERROR_MESSAGE


def test_reporter_holds_one_error_and_notifies() -> None:
    reporter = ErrorReporter()
    seen = []
    reporter.subscribe(seen.append)

    reporter.show_error("Primero")
    reporter.show_error("Segundo", details="detalle")

    assert reporter.error.message == "Segundo"
    assert reporter.error.details == "detalle"
    assert reporter.error.timestamp
    assert [e.message for e in seen] == ["Primero", "Segundo"]


def test_reporter_defaults_and_clear() -> None:
    reporter = ErrorReporter()
    seen = []
    unsubscribe = reporter.subscribe(seen.append)

    reporter.show_error()
    reporter.clear_error()
    unsubscribe()
    reporter.show_error("ignored")

    assert seen[0].message == DEFAULT_ERROR_MESSAGE
    assert seen[1] is None
    assert len(seen) == 2


def test_report_uses_the_formatted_message(caplog) -> None:
    reporter = ErrorReporter()

    reporter.report(FinanceError("Seleccioná una cuenta."), context="Guardar gasto")

    assert reporter.error.message == "Seleccioná una cuenta."
    assert "Guardar gasto failed" in caplog.text
