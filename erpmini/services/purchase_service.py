from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timezone
from decimal import Decimal

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from erpmini.db import unit_of_work
from erpmini.errors import NotFoundError, ValidationError
from erpmini.logging_config import get_logger
from erpmini.models import Purchase, Supplier, TransactionType
from erpmini.services.account_service import adjust_account_balance, branch_cash_account_id
from erpmini.services.aggregate_service import TopSheetDelta, apply_top_sheet_delta
from erpmini.services.ledger_service import (
    EntityRef,
    LedgerEntry,
    append_transaction,
    delete_transactions_by_memo,
    find_transactions_by_memo,
    generate_memo_no,
    purchase_memo,
)
from erpmini.services.money import ensure_cents
from erpmini.services.supplier_service import require_supplier

logger = get_logger(__name__)


@dataclass(frozen=True)
class PurchaseDraft:
    branch_id: int
    supplier_id: int
    purchase_date: date
    total_amount: Decimal
    memo_no: str | None = None
    notes: str | None = None


def _now() -> datetime:
    return datetime.now(tz=timezone.utc)


def _validate_draft(draft: PurchaseDraft) -> None:
    if draft.total_amount <= 0:
        raise ValidationError('purchase amount must be positive')
    ensure_cents(draft.total_amount, field='purchase amount')


def _apply_purchase(db: Session, purchase: Purchase) -> None:
    amount = Decimal(purchase.total_amount)
    apply_top_sheet_delta(
        db,
        branch_id=purchase.branch_id,
        sheet_date=purchase.purchase_date,
        delta=TopSheetDelta(expense=amount),
    )
    account_id = branch_cash_account_id(db, branch_id=purchase.branch_id)
    append_transaction(
        db,
        LedgerEntry(
            transaction_date=purchase.purchase_date,
            branch_id=purchase.branch_id,
            source=EntityRef.account(account_id),
            target=EntityRef.supplier(purchase.supplier_id),
            amount=amount,
            transaction_type=TransactionType.PAYMENT,
            memo_no=purchase_memo(purchase.id),
            notes='Payment for Material Purchase',
        ),
    )
    adjust_account_balance(db, account_id=account_id, branch_id=purchase.branch_id, delta=-amount)


def _reverse_purchase(db: Session, purchase: Purchase) -> None:
    apply_top_sheet_delta(
        db,
        branch_id=purchase.branch_id,
        sheet_date=purchase.purchase_date,
        delta=TopSheetDelta(expense=-Decimal(purchase.total_amount)),
    )
    memo_no = purchase_memo(purchase.id)
    # The paying account is whatever the stored ledger rows say, not today's cash account.
    for entry in find_transactions_by_memo(db, memo_no=memo_no, branch_id=purchase.branch_id):
        adjust_account_balance(
            db, account_id=entry.from_entity_id, branch_id=purchase.branch_id, delta=Decimal(entry.amount)
        )
    delete_transactions_by_memo(db, memo_no=memo_no, branch_id=purchase.branch_id)


def _lock_purchase(db: Session, *, purchase_id: int, branch_id: int) -> Purchase:
    purchase = db.execute(
        select(Purchase).where(Purchase.id == purchase_id, Purchase.branch_id == branch_id).with_for_update()
    ).scalar_one_or_none()
    if purchase is None:
        raise NotFoundError('Purchase not found')
    return purchase


def create_purchase(db: Session, draft: PurchaseDraft) -> int:
    _validate_draft(draft)
    with unit_of_work(db):
        require_supplier(db, supplier_id=draft.supplier_id, branch_id=draft.branch_id)
        purchase = Purchase(
            memo_no=draft.memo_no or generate_memo_no(draft.purchase_date),
            purchase_date=draft.purchase_date,
            supplier_id=draft.supplier_id,
            branch_id=draft.branch_id,
            total_amount=draft.total_amount,
            notes=draft.notes,
        )
        db.add(purchase)
        db.flush()
        _apply_purchase(db, purchase)
        purchase_id = purchase.id

    logger.info(
        'purchase created',
        extra={'purchase_id': purchase_id, 'branch_id': draft.branch_id, 'total_amount': draft.total_amount},
    )
    return purchase_id


def update_purchase(db: Session, *, purchase_id: int, draft: PurchaseDraft) -> None:
    _validate_draft(draft)
    with unit_of_work(db):
        purchase = _lock_purchase(db, purchase_id=purchase_id, branch_id=draft.branch_id)
        require_supplier(db, supplier_id=draft.supplier_id, branch_id=draft.branch_id)
        _reverse_purchase(db, purchase)

        purchase.memo_no = draft.memo_no or purchase.memo_no
        purchase.purchase_date = draft.purchase_date
        purchase.supplier_id = draft.supplier_id
        purchase.total_amount = draft.total_amount
        purchase.notes = draft.notes
        purchase.updated_at = _now()
        db.flush()

        _apply_purchase(db, purchase)

    logger.info(
        'purchase updated',
        extra={'purchase_id': purchase_id, 'branch_id': draft.branch_id, 'total_amount': draft.total_amount},
    )


def delete_purchase(db: Session, *, purchase_id: int, branch_id: int) -> None:
    with unit_of_work(db):
        purchase = _lock_purchase(db, purchase_id=purchase_id, branch_id=branch_id)
        _reverse_purchase(db, purchase)
        db.delete(purchase)

    logger.info('purchase deleted', extra={'purchase_id': purchase_id, 'branch_id': branch_id})


def purchase_report(
    db: Session,
    *,
    branch_id: int,
    start_date: date,
    end_date: date,
    search: str | None = None,
    page: int = 1,
    limit: int = 10,
) -> tuple[list[dict], int, dict]:
    conditions = [
        Purchase.branch_id == branch_id,
        Purchase.purchase_date >= start_date,
        Purchase.purchase_date <= end_date,
    ]
    if search:
        pattern = f'%{search.strip()}%'
        conditions.append(
            or_(Purchase.memo_no.ilike(pattern), Supplier.name.ilike(pattern), Supplier.mobile.ilike(pattern))
        )

    total_count, total_amount = db.execute(
        select(func.count(Purchase.id), func.coalesce(func.sum(Purchase.total_amount), 0))
        .join(Supplier, Supplier.id == Purchase.supplier_id)
        .where(*conditions)
    ).one()
    rows = db.execute(
        select(Purchase, Supplier.name)
        .join(Supplier, Supplier.id == Purchase.supplier_id)
        .where(*conditions)
        .order_by(Purchase.purchase_date.desc(), Purchase.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    ).all()
    return (
        [
            {
                'id': purchase.id,
                'memo_no': purchase.memo_no,
                'purchase_date': purchase.purchase_date,
                'supplier_id': purchase.supplier_id,
                'supplier_name': supplier_name,
                'branch_id': purchase.branch_id,
                'total_amount': purchase.total_amount,
                'notes': purchase.notes,
            }
            for purchase, supplier_name in rows
        ],
        total_count,
        {'total_amount': Decimal(str(total_amount))},
    )
