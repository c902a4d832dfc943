import logging
from datetime import date
from database.account_dao import AccountDAO
from database.movement_dao import MovementDAO
from database.transfer_dao import TransferDAO
from models.account import Account
from models.movement import InstallmentPurchase, Movement, Transfer
from services.data_events import (
    ALL_DATA_CHANGED, EXPENSES_CHANGED, TRANSFERS_CHANGED, DataEventBus, data_events,
)
from utils.attachments import attachment_name, discard_attachment, store_attachment
from utils.card_periods import clamp_installments, installment_dates, split_installment_amounts
from utils.constants import CURRENCIES, RECENT_USAGE_LIMIT
from utils.date_helpers import format_date, parse_date, today as _today
from utils.errors import FinanceError

logger = logging.getLogger(__name__)

BULK_FIELDS = ("account_id", "category_id", "note")


class MovementService:
    """Incomes, expenses, transfers and installment purchases."""

    def __init__(
        self,
        movement_dao: MovementDAO,
        transfer_dao: TransferDAO,
        account_dao: AccountDAO,
        events: DataEventBus = data_events,
        attachments_dir: str | None = None,
    ):
        self._dao = movement_dao
        self._transfer_dao = transfer_dao
        self._account_dao = account_dao
        self._events = events
        self._attachments_dir = attachments_dir

    # ── Queries ──────────────────────────────────────────────────────────────
    def get_movements(
        self,
        type_: str | None = None,
        start_date: str | None = None,
        end_date: str | None = None,
        account_ids: list[int] | None = None,
        category_ids: list[int] | None = None,
    ) -> list[Movement]:
        return self._dao.get_filtered(type_, start_date, end_date, account_ids, category_ids)

    def get_movement(self, movement_id: int) -> Movement | None:
        return self._dao.get_by_id(movement_id)

    def get_transfers(
        self,
        start_date: str | None = None,
        end_date: str | None = None,
        account_ids: list[int] | None = None,
    ) -> list[Transfer]:
        return self._transfer_dao.get_filtered(start_date, end_date, account_ids)

    def get_transfer(self, transfer_id: int) -> Transfer | None:
        return self._transfer_dao.get_by_id(transfer_id)

    def get_recent_usage(self, limit: int = RECENT_USAGE_LIMIT) -> dict[str, list[int]]:
        """Account and category ids ordered by most recent use."""
        account_ids: list[int] = []
        category_ids: list[int] = []
        for m in self._dao.get_recent(limit):
            if m.account_id not in account_ids:
                account_ids.append(m.account_id)
            if m.category_id is not None and m.category_id not in category_ids:
                category_ids.append(m.category_id)
        return {"account_ids": account_ids, "category_ids": category_ids}

    # ── Incomes and expenses ─────────────────────────────────────────────────
    def add_income(self, account_id: int, amount: float, date_str: str,
                   category_id: int | None = None, note: str = "",
                   attachment_path: str | None = None) -> Movement:
        return self._add("income", account_id, amount, date_str, category_id, note,
                         attachment_path=attachment_path)

    def add_expense(self, account_id: int, amount: float, date_str: str,
                    category_id: int | None = None, note: str = "",
                    attachment_path: str | None = None,
                    currency: str | None = None) -> Movement:
        """Record an expense; `currency` may differ from the account's only on cards."""
        return self._add("expense", account_id, amount, date_str, category_id, note,
                         attachment_path=attachment_path, currency=currency)

    def add_movement(self, type_: str, account_id: int, amount: float, date_str: str,
                     category_id: int | None = None, note: str = "",
                     attachment_path: str | None = None,
                     recurring_occurrence_id: int | None = None,
                     commit: bool = True, emit: bool = True) -> Movement:
        if type_ not in ("income", "expense"):
            raise FinanceError("El tipo debe ser ingreso o gasto.")
        return self._add(type_, account_id, amount, date_str, category_id, note,
                         attachment_path=attachment_path,
                         recurring_occurrence_id=recurring_occurrence_id, commit=commit, emit=emit)

    def _add(self, type_, account_id, amount, date_str, category_id, note,
             attachment_path=None, recurring_occurrence_id=None, currency=None,
             commit: bool = True, emit: bool = True) -> Movement:
        account = self._require_account(account_id)
        d = self._validate_amount_date(amount, date_str)
        movement = self._dao.create(
            type_=type_,
            date=format_date(d),
            amount=round(float(amount), 2),
            account_id=account_id,
            category_id=category_id,
            note=(note or "").strip(),
            currency=self._movement_currency(account, currency),
            attachment_path=attachment_path,
            recurring_occurrence_id=recurring_occurrence_id,
            is_future=d > _today(),
            commit=commit,
        )
        logger.info("Added %s %s", type_, movement.id)
        if emit:
            self._events.emit_for_type(type_)
        return movement

    def add_expense_with_installments(
        self,
        account_id: int,
        total_amount: float,
        purchase_date: str,
        installments: int,
        category_id: int | None = None,
        description: str = "",
        currency: str | None = None,
    ) -> InstallmentPurchase | Movement:
        """Split a card purchase into monthly installments.

        With a single installment this is a plain expense on the purchase
        date. Otherwise one movement per installment is created, each dated
        on the card's closing day of its statement month.
        """
        count = clamp_installments(installments)
        if count == 1:
            return self.add_expense(account_id, total_amount, purchase_date, category_id,
                                    description, currency=currency)

        account = self._require_account(account_id)
        if not account.is_credit_card or not account.closing_day:
            raise FinanceError("Las cuotas solo están disponibles para tarjetas de crédito.")
        currency = self._movement_currency(account, currency)
        d = self._validate_amount_date(total_amount, purchase_date)
        dates = installment_dates(d, account.closing_day, count)
        amounts = split_installment_amounts(float(total_amount), count)
        description = (description or "").strip()
        today = _today()

        with self._dao.transaction():
            purchase = self._dao.create_purchase(
                description=description,
                total_amount=round(float(total_amount), 2),
                installments=count,
                account_id=account_id,
                category_id=category_id,
                currency=currency,
                purchase_date=format_date(d),
                first_installment_date=format_date(dates[0]),
                commit=False,
            )
            for number, (due, amount) in enumerate(zip(dates, amounts), start=1):
                label = f"{number}/{count}"
                self._dao.create(
                    type_="expense",
                    date=format_date(due),
                    amount=amount,
                    account_id=account_id,
                    category_id=category_id,
                    note=f"{description} - Cuota {label}" if description else f"Cuota {label}",
                    currency=currency,
                    installment=label,
                    installment_purchase_id=purchase.id,
                    is_future=due > today,
                    commit=False,
                )
        logger.info("Added installment purchase %s (%d installments)", purchase.id, count)
        self._events.emit(EXPENSES_CHANGED)
        return purchase

    def update_movement(self, movement_id: int, **fields) -> Movement:
        current = self._dao.get_by_id(movement_id)
        if current is None:
            raise FinanceError("El movimiento no existe.")
        if "amount" in fields:
            self._validate_amount(fields["amount"])
            fields["amount"] = round(float(fields["amount"]), 2)
        if "date" in fields:
            d = parse_date(fields["date"])
            if d is None:
                raise FinanceError("Fecha inválida.")
            fields["date"] = format_date(d)
            fields["is_future"] = d > _today()
        if "type" in fields and fields["type"] not in ("income", "expense"):
            raise FinanceError("El tipo debe ser ingreso o gasto.")
        if "account_id" in fields or "currency" in fields:
            account = self._require_account(fields.get("account_id", current.account_id))
            fields["currency"] = self._movement_currency(account, fields.get("currency"))
        if "note" in fields:
            fields["note"] = (fields["note"] or "").strip()
        movement = self._dao.update(movement_id, **fields)
        logger.info("Updated movement %s", movement_id)
        self._events.emit_for_type(current.type)
        if movement.type != current.type:
            self._events.emit_for_type(movement.type)
        return movement

    def delete_movement(self, movement_id: int):
        current = self._dao.get_by_id(movement_id)
        if current is None:
            raise FinanceError("El movimiento no existe.")
        self._dao.delete(movement_id)
        logger.info("Deleted movement %s", movement_id)
        discard_attachment(current.attachment_path, self._attachments_dir)
        self._events.emit_for_type(current.type)

    def bulk_delete_movements(self, movement_ids: list[int]) -> int:
        """Delete one by one; stops at the first failure leaving earlier deletes in place."""
        deleted = 0
        try:
            for movement_id in movement_ids:
                current = self._dao.get_by_id(movement_id)
                self._dao.delete(movement_id)
                deleted += 1
                if current:
                    discard_attachment(current.attachment_path, self._attachments_dir)
        finally:
            if deleted:
                logger.info("Bulk deleted %d movements", deleted)
                self._events.emit(ALL_DATA_CHANGED)
        return deleted

    def bulk_update_movements(self, movement_ids: list[int], field: str, value) -> int:
        if field not in BULK_FIELDS:
            raise FinanceError(f"Campo no editable en lote: {field}.")
        changes = {field: value}
        if field == "account_id":
            changes["currency"] = self._require_account(value).currency
        updated = 0
        try:
            for movement_id in movement_ids:
                self._dao.update(movement_id, **changes)
                updated += 1
        finally:
            if updated:
                logger.info("Bulk updated %s on %d movements", field, updated)
                self._events.emit(ALL_DATA_CHANGED)
        return updated

    # ── Installments ─────────────────────────────────────────────────────────
    def get_purchase(self, purchase_id: int) -> InstallmentPurchase | None:
        return self._dao.get_purchase(purchase_id)

    def get_installments_by_purchase(self, purchase_id: int) -> list[Movement]:
        return self._dao.get_by_purchase(purchase_id)

    def get_pending_installments(self, today: date | None = None) -> list[Movement]:
        return self._dao.get_pending_installments(format_date(today or _today()))

    def delete_installment_purchase(self, purchase_id: int):
        if self._dao.get_purchase(purchase_id) is None:
            raise FinanceError("La compra en cuotas no existe.")
        stored = [m.attachment_path for m in self._dao.get_by_purchase(purchase_id)]
        self._dao.delete_purchase(purchase_id)
        for path in stored:
            discard_attachment(path, self._attachments_dir)
        logger.info("Deleted installment purchase %s", purchase_id)
        self._events.emit(EXPENSES_CHANGED)

    # ── Attachments ──────────────────────────────────────────────────────────
    def get_attachments(self) -> list[Movement]:
        return self._dao.get_with_attachments()

    def attach_file(self, movement_id: int, source: str) -> Movement:
        """Copy `source` into the attachments folder and link it, replacing any previous file."""
        current = self._dao.get_by_id(movement_id)
        if current is None:
            raise FinanceError("El movimiento no existe.")
        if not self._attachments_dir:
            raise FinanceError("No hay una carpeta para guardar adjuntos.")
        try:
            stored = store_attachment(source, self._attachments_dir)
        except OSError as e:
            raise FinanceError(f"No se pudo guardar el adjunto {attachment_name(source)}.") from e
        movement = self._dao.update(movement_id, attachment_path=stored)
        discard_attachment(current.attachment_path, self._attachments_dir)
        logger.info("Attached file to movement %s", movement_id)
        self._events.emit_for_type(current.type)
        return movement

    def remove_attachment(self, movement_id: int) -> Movement:
        current = self._dao.get_by_id(movement_id)
        if current is None:
            raise FinanceError("El movimiento no existe.")
        movement = self._dao.update(movement_id, attachment_path=None)
        discard_attachment(current.attachment_path, self._attachments_dir)
        self._events.emit_for_type(current.type)
        return movement

    # ── Transfers ────────────────────────────────────────────────────────────
    def add_transfer(
        self,
        from_account_id: int,
        to_account_id: int,
        amount: float,
        date_str: str,
        note: str = "",
        to_amount: float | None = None,
        recurring_occurrence_id: int | None = None,
        commit: bool = True,
        emit: bool = True,
    ) -> Transfer:
        if from_account_id == to_account_id:
            raise FinanceError("No se puede transferir a la misma cuenta.")
        source = self._require_account(from_account_id)
        target = self._require_account(to_account_id)
        d = self._validate_amount_date(amount, date_str)
        to_amount = self._resolve_to_amount(source, target, amount, to_amount)
        transfer = self._transfer_dao.create(
            date=format_date(d),
            from_account_id=from_account_id,
            to_account_id=to_account_id,
            from_amount=round(float(amount), 2),
            to_amount=to_amount,
            note=(note or "").strip(),
            is_future=d > _today(),
            recurring_occurrence_id=recurring_occurrence_id,
            commit=commit,
        )
        logger.info("Added transfer %s", transfer.id)
        if emit:
            self._events.emit(TRANSFERS_CHANGED)
        return transfer

    def transfer_to_amount(self, from_account_id: int, to_account_id: int, amount: float,
                           to_amount: float | None = None) -> float:
        """Amount credited to the target account; required across currencies."""
        source = self._require_account(from_account_id)
        target = self._require_account(to_account_id)
        return self._resolve_to_amount(source, target, amount, to_amount)

    def update_transfer(self, transfer_id: int, from_account_id: int, to_account_id: int,
                        amount: float, date_str: str, note: str = "",
                        to_amount: float | None = None) -> Transfer:
        if self._transfer_dao.get_by_id(transfer_id) is None:
            raise FinanceError("La transferencia no existe.")
        if from_account_id == to_account_id:
            raise FinanceError("No se puede transferir a la misma cuenta.")
        source = self._require_account(from_account_id)
        target = self._require_account(to_account_id)
        d = self._validate_amount_date(amount, date_str)
        transfer = self._transfer_dao.update(
            transfer_id,
            date=format_date(d),
            from_account_id=from_account_id,
            to_account_id=to_account_id,
            from_amount=round(float(amount), 2),
            to_amount=self._resolve_to_amount(source, target, amount, to_amount),
            note=(note or "").strip(),
            is_future=d > _today(),
        )
        self._events.emit(TRANSFERS_CHANGED)
        return transfer

    def delete_transfer(self, transfer_id: int):
        self._transfer_dao.delete(transfer_id)
        logger.info("Deleted transfer %s", transfer_id)
        self._events.emit(TRANSFERS_CHANGED)

    # ── Future-dated items ───────────────────────────────────────────────────
    def process_arrived_future(self, today: date | None = None) -> int:
        """Flip is_future off for items whose date has arrived."""
        as_of = format_date(today or _today())
        changed = self._dao.mark_arrived(as_of) + self._transfer_dao.mark_arrived(as_of)
        if changed:
            logger.info("%d future items became effective", changed)
            self._events.emit(ALL_DATA_CHANGED)
        return changed

    # ── Helpers ──────────────────────────────────────────────────────────────
    def _require_account(self, account_id) -> Account:
        account = self._account_dao.get_by_id(account_id) if account_id is not None else None
        if account is None:
            raise FinanceError("Seleccioná una cuenta válida.")
        return account

    @staticmethod
    def _movement_currency(account: Account, currency: str | None) -> str:
        if not currency or currency == account.currency:
            return account.currency
        if not account.is_credit_card:
            raise FinanceError("Solo las tarjetas admiten movimientos en otra moneda.")
        if currency not in CURRENCIES:
            raise FinanceError(f"Moneda inválida: {currency}.")
        return currency

    @staticmethod
    def _resolve_to_amount(source: Account, target: Account, amount, to_amount) -> float:
        if to_amount in (None, ""):
            if source.currency != target.currency:
                raise FinanceError("Indicá el monto recibido para cuentas en distinta moneda.")
            return round(float(amount), 2)
        MovementService._validate_amount(to_amount)
        return round(float(to_amount), 2)

    @staticmethod
    def _validate_amount(amount):
        try:
            value = float(amount)
        except (TypeError, ValueError):
            raise FinanceError("Monto inválido.") from None
        if value <= 0:
            raise FinanceError("El monto debe ser mayor a cero.")

    @staticmethod
    def _validate_amount_date(amount, date_str) -> date:
        MovementService._validate_amount(amount)
        d = parse_date(date_str)
        if d is None:
            raise FinanceError("Fecha inválida.")
        return d
