from __future__ import annotations

import os

import pytest

from services.app_services import build_services
from utils.attachments import attachment_name, attachments_folder, discard_attachment
from utils.errors import FinanceError


@pytest.fixture
def folder(tmp_path):
    return str(tmp_path / "adjuntos")


@pytest.fixture
def movements(db, events, folder):
    return build_services(db, events, attachments_dir=folder).movements


@pytest.fixture
def receipt(tmp_path):
    path = tmp_path / "ticket.pdf"
    path.write_bytes(b"%PDF-1.4 ticket")
    return str(path)


def test_attach_copies_the_file_and_links_it(movements, cash, receipt, folder) -> None:
    expense = movements.add_expense(cash.id, 250, "2026-03-01", note="Farmacia")

    updated = movements.attach_file(expense.id, receipt)

    assert os.path.dirname(updated.attachment_path) == folder
    with open(updated.attachment_path, "rb") as f:
        assert f.read() == b"%PDF-1.4 ticket"
    assert attachment_name(updated.attachment_path) == "ticket.pdf"
    assert movements.get_movement(expense.id).attachment_path == updated.attachment_path
    assert [m.id for m in movements.get_attachments()] == [expense.id]


def test_replacing_and_removing_clean_up_stored_copies(movements, cash, receipt) -> None:
    expense = movements.add_expense(cash.id, 250, "2026-03-01")
    first = movements.attach_file(expense.id, receipt).attachment_path

    second = movements.attach_file(expense.id, receipt).attachment_path
    assert not os.path.exists(first)
    assert os.path.exists(second)

    assert movements.remove_attachment(expense.id).attachment_path is None
    assert not os.path.exists(second)
    assert os.path.exists(receipt)
    assert movements.get_attachments() == []


def test_deleting_a_movement_deletes_its_attachment(movements, cash, receipt) -> None:
    expense = movements.add_expense(cash.id, 250, "2026-03-01")
    stored = movements.attach_file(expense.id, receipt).attachment_path

    movements.delete_movement(expense.id)

    assert not os.path.exists(stored)


def test_attach_errors(services, movements, cash, tmp_path) -> None:
    expense = movements.add_expense(cash.id, 250, "2026-03-01")

    with pytest.raises(FinanceError):
        movements.attach_file(expense.id, str(tmp_path / "missing.pdf"))
    with pytest.raises(FinanceError):
        movements.attach_file(9999, str(tmp_path / "missing.pdf"))
    # In-memory databases have no folder beside them.
    with pytest.raises(FinanceError):
        services.movements.attach_file(expense.id, str(tmp_path / "missing.pdf"))


def test_folder_and_name_helpers(tmp_path, receipt) -> None:
    assert attachments_folder(":memory:") is None
    assert attachments_folder(str(tmp_path / "cashe.db")) == str(tmp_path / "attachments")
    assert attachment_name("/x/20260301120000123456_factura luz.pdf") == "factura luz.pdf"
    assert attachment_name("/x/2024_resumen.pdf") == "2024_resumen.pdf"

    discard_attachment(receipt, str(tmp_path / "attachments"))

    assert os.path.exists(receipt)
