from __future__ import annotations

from datetime import date

import pytest

from services.data_events import ACCOUNTS_CHANGED
from utils.errors import FinanceError

TODAY = date(2026, 3, 15)


@pytest.fixture
def charges(services, card):
    services.movements.add_expense(card.id, 100, "2026-03-10", note="Cena")
    services.movements.add_expense(card.id, 20, "2026-03-11", currency="USD", note="App")
    services.movements.add_expense(card.id, 50, "2026-03-22", note="Libro")
    return card


def test_charges_are_grouped_by_closing_period(services, charges) -> None:
    statements = services.statements.get_statements(charges.id, TODAY)

    assert [st.period for st in statements] == ["2026-03", "2026-04"]
    march, april = statements
    assert (march.total_ars, march.total_usd) == (100, 20)
    assert march.is_current and not march.is_past
    assert march.close_date == date(2026, 3, 20)
    assert [m.note for m in march.items] == ["Cena", "App"]
    assert april.is_future and april.total_ars == 50


def test_installments_land_in_their_statements(services, card) -> None:
    services.movements.add_expense_with_installments(card.id, 300, "2026-01-10", 3)

    statements = services.statements.get_statements(card.id, TODAY)

    assert [st.period for st in statements] == ["2026-03", "2026-04", "2026-05"]
    assert all(st.has_installments for st in statements)
    assert statements[0].is_current


def test_pay_statement_with_transfer_and_undo(services, cash, charges, recorded) -> None:
    recorded.clear()

    payment = services.statements.pay_statement(charges.id, "2026-03", "ARS", 100,
                                                from_account_id=cash.id, date_str="2026-03-16")

    assert payment.payment_key == "2026-03_ARS"
    assert payment.transfer_id is not None
    assert ACCOUNTS_CHANGED in recorded
    assert services.accounts.get_balances()[cash.id] == 900
    march = services.statements.get_statements(charges.id, TODAY)[0]
    assert march.paid_ars and not march.paid_usd

    services.statements.undo_payment(charges.id, "2026-03", "ARS")

    assert services.statements.get_statement_payments(charges.id) == {}
    assert services.movements.get_transfer(payment.transfer_id) is None
    assert services.accounts.get_balances()[cash.id] == 1000


def test_usd_statement_paid_from_pesos(services, cash, charges) -> None:
    payment = services.statements.pay_statement(charges.id, "2026-03", "USD", 20,
                                                from_account_id=cash.id, paid_amount=19600,
                                                date_str="2026-03-16")

    transfer = services.movements.get_transfer(payment.transfer_id)
    assert (transfer.from_amount, transfer.to_amount) == (19600, 20)


def test_statement_can_be_marked_paid_without_a_transfer(services, charges) -> None:
    payment = services.statements.pay_statement(charges.id, "2026-04", "ARS", 50)

    assert payment.transfer_id is None
    assert set(services.statements.get_statement_payments(charges.id)) == {"2026-04_ARS"}


def test_payment_rules(services, cash, charges) -> None:
    services.statements.pay_statement(charges.id, "2026-03", "ARS", 100)

    with pytest.raises(FinanceError):
        services.statements.pay_statement(charges.id, "2026-03", "ARS", 100)
    with pytest.raises(FinanceError):
        services.statements.pay_statement(charges.id, "2026-04", "ARS", 0)
    with pytest.raises(FinanceError):
        services.statements.pay_statement(cash.id, "2026-03", "ARS", 10)
    with pytest.raises(FinanceError):
        services.statements.undo_payment(charges.id, "2026-04", "USD")
