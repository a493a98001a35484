from __future__ import annotations

import secrets
import string
from dataclasses import dataclass
from datetime import date, datetime, timezone
from decimal import Decimal

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from erpmini.errors import ValidationError
from erpmini.logging_config import get_logger
from erpmini.models import (
    Account,
    Customer,
    Employee,
    EntityType,
    LedgerTransaction,
    Supplier,
    TransactionType,
)

logger = get_logger(__name__)

MEMO_ALPHABET = string.ascii_uppercase + string.digits

_NAME_SOURCES = {
    EntityType.ACCOUNT: (Account, Account.name),
    EntityType.CUSTOMER: (Customer, Customer.name),
    EntityType.EMPLOYEE: (Employee, Employee.name),
    EntityType.SUPPLIER: (Supplier, Supplier.name),
}


@dataclass(frozen=True)
class EntityRef:
    type: EntityType
    id: int

    @classmethod
    def account(cls, account_id: int) -> EntityRef:
        return cls(EntityType.ACCOUNT, account_id)

    @classmethod
    def customer(cls, customer_id: int) -> EntityRef:
        return cls(EntityType.CUSTOMER, customer_id)

    @classmethod
    def employee(cls, employee_id: int) -> EntityRef:
        return cls(EntityType.EMPLOYEE, employee_id)

    @classmethod
    def supplier(cls, supplier_id: int) -> EntityRef:
        return cls(EntityType.SUPPLIER, supplier_id)


@dataclass(frozen=True)
class LedgerEntry:
    transaction_date: date
    branch_id: int
    source: EntityRef
    target: EntityRef
    amount: Decimal
    transaction_type: TransactionType
    memo_no: str | None = None
    notes: str | None = None


def _now() -> datetime:
    return datetime.now(tz=timezone.utc)


def generate_memo_no(today: date | None = None) -> str:
    """MMDD followed by four random characters from A-Z0-9."""
    today = today or _now().date()
    suffix = ''.join(secrets.choice(MEMO_ALPHABET) for _ in range(4))
    return today.strftime('%m%d') + suffix


def order_memo(memo_no: str) -> str:
    return f'ORDER-{memo_no}'


def sale_memo(memo_no: str) -> str:
    return f'SALE-{memo_no}'


def purchase_memo(purchase_id: int) -> str:
    return f'PURCHASE-{purchase_id}'


def salary_memo(progress_id: int) -> str:
    return f'SALARY-{progress_id}'


def advance_memo(progress_id: int) -> str:
    return f'ADVANCE-{progress_id}'


def is_unique_violation(
    exc: IntegrityError, constraint_name: str, table: str | None = None, column: str = 'memo_no'
) -> bool:
    """Match the driver message against a named unique constraint.

    Postgres reports the constraint name; SQLite only reports the columns,
    so ``table`` and ``column`` let the ``<table>.<column>`` form match too.
    """
    message = str(exc.orig if exc.orig is not None else exc).lower()
    if 'unique' not in message:
        return False
    if constraint_name.lower() in message:
        return True
    return table is not None and f'{table.lower()}.{column.lower()}' in message


def append_transaction(db: Session, entry: LedgerEntry) -> int:
    """Insert one ledger row inside the caller's unit of work and return its id."""
    if entry.amount <= 0:
        raise ValidationError('ledger amount must be positive')
    row = LedgerTransaction(
        transaction_date=entry.transaction_date,
        memo_no=entry.memo_no or generate_memo_no(entry.transaction_date),
        branch_id=entry.branch_id,
        from_entity_type=entry.source.type,
        from_entity_id=entry.source.id,
        to_entity_type=entry.target.type,
        to_entity_id=entry.target.id,
        amount=entry.amount,
        transaction_type=entry.transaction_type,
        notes=entry.notes,
    )
    db.add(row)
    db.flush()
    logger.debug(
        'ledger entry appended',
        extra={
            'transaction_id': row.id,
            'memo_no': row.memo_no,
            'branch_id': row.branch_id,
            'amount': row.amount,
            'transaction_type': row.transaction_type.value,
        },
    )
    return row.id


def find_transactions_by_memo(
    db: Session,
    *,
    memo_no: str,
    branch_id: int,
    transaction_type: TransactionType | None = None,
) -> list[LedgerTransaction]:
    stmt = select(LedgerTransaction).where(
        LedgerTransaction.memo_no == memo_no,
        LedgerTransaction.branch_id == branch_id,
    )
    if transaction_type is not None:
        stmt = stmt.where(LedgerTransaction.transaction_type == transaction_type)
    return list(db.execute(stmt.order_by(LedgerTransaction.id.asc())).scalars().all())


def delete_transactions_by_memo(
    db: Session,
    *,
    memo_no: str,
    branch_id: int,
    transaction_type: TransactionType | None = None,
) -> int:
    """Remove every ledger row for ``memo_no`` in the branch. Zero matches is fine."""
    stmt = delete(LedgerTransaction).where(
        LedgerTransaction.memo_no == memo_no,
        LedgerTransaction.branch_id == branch_id,
    )
    if transaction_type is not None:
        stmt = stmt.where(LedgerTransaction.transaction_type == transaction_type)
    result = db.execute(stmt)
    return result.rowcount or 0


def _resolve_names(db: Session, refs: set[tuple[EntityType, int]]) -> dict[tuple[EntityType, int], str]:
    names: dict[tuple[EntityType, int], str] = {}
    for entity_type, (model, name_col) in _NAME_SOURCES.items():
        ids = {entity_id for kind, entity_id in refs if kind == entity_type}
        if not ids:
            continue
        for entity_id, name in db.execute(select(model.id, name_col).where(model.id.in_(ids))).all():
            names[(entity_type, entity_id)] = name
    return names


def _filtered(stmt, *, branch_id: int, start_date: date, end_date: date, transaction_type: TransactionType | None):
    stmt = stmt.where(
        LedgerTransaction.branch_id == branch_id,
        LedgerTransaction.transaction_date >= start_date,
        LedgerTransaction.transaction_date <= end_date,
    )
    if transaction_type is not None:
        stmt = stmt.where(LedgerTransaction.transaction_type == transaction_type)
    return stmt


def list_transactions(
    db: Session,
    *,
    branch_id: int,
    start_date: date,
    end_date: date,
    transaction_type: TransactionType | None = None,
    page: int = 1,
    limit: int = 10,
) -> tuple[list[dict], int]:
    total_count = db.execute(
        _filtered(
            select(func.count(LedgerTransaction.id)),
            branch_id=branch_id,
            start_date=start_date,
            end_date=end_date,
            transaction_type=transaction_type,
        )
    ).scalar_one()
    rows = db.execute(
        _filtered(
            select(LedgerTransaction),
            branch_id=branch_id,
            start_date=start_date,
            end_date=end_date,
            transaction_type=transaction_type,
        )
        .order_by(LedgerTransaction.transaction_date.desc(), LedgerTransaction.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    ).scalars().all()

    refs = set()
    for row in rows:
        refs.add((row.from_entity_type, row.from_entity_id))
        refs.add((row.to_entity_type, row.to_entity_id))
    names = _resolve_names(db, refs)

    return [
        {
            'transaction_id': row.id,
            'transaction_date': row.transaction_date,
            'memo_no': row.memo_no,
            'branch_id': row.branch_id,
            'from_id': row.from_entity_id,
            'from_type': row.from_entity_type.value,
            'from_account_name': names.get((row.from_entity_type, row.from_entity_id), ''),
            'to_id': row.to_entity_id,
            'to_type': row.to_entity_type.value,
            'to_account_name': names.get((row.to_entity_type, row.to_entity_id), ''),
            'amount': row.amount,
            'transaction_type': row.transaction_type.value,
            'notes': row.notes,
            'created_at': row.created_at,
        }
        for row in rows
    ], total_count


def transaction_summary(
    db: Session,
    *,
    branch_id: int,
    start_date: date,
    end_date: date,
) -> dict[str, Decimal]:
    rows = db.execute(
        _filtered(
            select(LedgerTransaction.transaction_type, func.coalesce(func.sum(LedgerTransaction.amount), 0)),
            branch_id=branch_id,
            start_date=start_date,
            end_date=end_date,
            transaction_type=None,
        ).group_by(LedgerTransaction.transaction_type)
    ).all()
    summary = {transaction_type.value: Decimal('0') for transaction_type in TransactionType}
    for transaction_type, amount in rows:
        summary[transaction_type.value] = Decimal(str(amount))
    return summary


def account_ledger_balance(db: Session, *, account_id: int) -> Decimal:
    """Signed sum of ledger rows touching an account (inflows minus outflows)."""
    inflow = db.execute(
        select(func.coalesce(func.sum(LedgerTransaction.amount), 0)).where(
            LedgerTransaction.to_entity_type == EntityType.ACCOUNT,
            LedgerTransaction.to_entity_id == account_id,
        )
    ).scalar_one()
    outflow = db.execute(
        select(func.coalesce(func.sum(LedgerTransaction.amount), 0)).where(
            LedgerTransaction.from_entity_type == EntityType.ACCOUNT,
            LedgerTransaction.from_entity_id == account_id,
        )
    ).scalar_one()
    return Decimal(str(inflow)) - Decimal(str(outflow))

