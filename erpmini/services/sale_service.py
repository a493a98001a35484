from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from decimal import Decimal

from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, aliased

from erpmini.db import unit_of_work
from erpmini.errors import DUPLICATE_MEMO_MESSAGE, ConflictError, NotFoundError, ValidationError
from erpmini.logging_config import get_logger
from erpmini.models import (
    Customer,
    Employee,
    Product,
    Sale,
    SaleItem,
    SaleStatus,
    SaleTransaction,
    TransactionType,
)
from erpmini.services.account_service import adjust_account_balance, adjust_customer_due, get_payment_account_type
from erpmini.services.aggregate_service import (
    ProgressDelta,
    TopSheetDelta,
    apply_progress_delta,
    apply_top_sheet_delta,
)
from erpmini.services.customer_service import require_customer
from erpmini.services.employee_service import require_employee
from erpmini.services.ledger_service import (
    EntityRef,
    LedgerEntry,
    append_transaction,
    delete_transactions_by_memo,
    generate_memo_no,
    is_unique_violation,
    sale_memo,
)
from erpmini.services.money import cash_bank_delta, validate_amounts
from erpmini.services.order_service import OrderItemInput, validate_items

logger = get_logger(__name__)

SALE_MEMO_CONSTRAINT = 'sales_memo_no_branch_id_key'

SaleItemInput = OrderItemInput


@dataclass(frozen=True)
class SaleDraft:
    branch_id: int
    salesperson_id: int
    customer_id: int
    sale_date: date
    total_amount: Decimal
    received_amount: Decimal
    items: list[SaleItemInput] = field(default_factory=list)
    payment_account_id: int | None = None
    memo_no: str | None = None
    notes: str | None = None

    @property
    def total_items(self) -> int:
        return sum(item.quantity for item in self.items)


@dataclass(frozen=True)
class _SaleEffects:
    sale_id: int
    branch_id: int
    memo_no: str
    sale_date: date
    salesperson_id: int
    customer_id: int
    total_items: int
    total_amount: Decimal
    received_amount: Decimal
    payment_account_id: int | None

    @classmethod
    def from_sale(cls, sale: Sale) -> _SaleEffects:
        return cls(
            sale_id=sale.id,
            branch_id=sale.branch_id,
            memo_no=sale.memo_no,
            sale_date=sale.sale_date,
            salesperson_id=sale.salesperson_id,
            customer_id=sale.customer_id,
            total_items=sale.total_items,
            total_amount=Decimal(sale.total_amount),
            received_amount=Decimal(sale.received_amount),
            payment_account_id=sale.payment_account_id,
        )


def _now() -> datetime:
    return datetime.now(tz=timezone.utc)


def _deduct_stock(db: Session, items: list[SaleItemInput]) -> None:
    for item in items:
        product = db.execute(select(Product).where(Product.id == item.product_id).with_for_update()).scalar_one_or_none()
        if product is None:
            raise NotFoundError(f'Product {item.product_id} not found')
        if product.quantity < item.quantity:
            raise ValidationError(f'insufficient stock for {product.product_name}')
        db.execute(
            update(Product)
            .where(Product.id == item.product_id)
            .values(quantity=Product.quantity - item.quantity)
            .execution_options(synchronize_session='fetch')
        )


def _restore_stock(db: Session, items: list[SaleItemInput]) -> None:
    for item in items:
        result = db.execute(
            update(Product)
            .where(Product.id == item.product_id)
            .values(quantity=Product.quantity + item.quantity)
            .execution_options(synchronize_session='fetch')
        )
        if result.rowcount == 0:
            raise NotFoundError(f'Product {item.product_id} not found')


def _propagate(db: Session, effects: _SaleEffects, sign: int) -> None:
    """Apply (sign=1) or undo (sign=-1) the aggregates a sale header implies."""
    account_type = None
    if effects.received_amount > 0:
        account_type = get_payment_account_type(
            db, account_id=effects.payment_account_id, branch_id=effects.branch_id
        )

    top_sheet = TopSheetDelta(
        sales_amount=effects.total_amount,
        ready_made=effects.total_items,
        **cash_bank_delta(account_type, effects.received_amount),
    )
    apply_top_sheet_delta(
        db,
        branch_id=effects.branch_id,
        sheet_date=effects.sale_date,
        delta=top_sheet if sign > 0 else top_sheet.negated(),
    )

    if effects.received_amount > 0:
        ledger_memo = sale_memo(effects.memo_no)
        if sign > 0:
            db.add(
                SaleTransaction(
                    sale_id=effects.sale_id,
                    transaction_date=effects.sale_date,
                    memo_no=effects.memo_no,
                    payment_account_id=effects.payment_account_id,
                    amount=effects.received_amount,
                    transaction_type=TransactionType.PAYMENT,
                )
            )
            append_transaction(
                db,
                LedgerEntry(
                    transaction_date=effects.sale_date,
                    branch_id=effects.branch_id,
                    source=EntityRef.customer(effects.customer_id),
                    target=EntityRef.account(effects.payment_account_id),
                    amount=effects.received_amount,
                    transaction_type=TransactionType.PAYMENT,
                    memo_no=ledger_memo,
                    notes='Received payment on sale',
                ),
            )
        else:
            db.execute(delete(SaleTransaction).where(SaleTransaction.sale_id == effects.sale_id))
            delete_transactions_by_memo(
                db,
                memo_no=ledger_memo,
                branch_id=effects.branch_id,
                transaction_type=TransactionType.PAYMENT,
            )
        adjust_account_balance(
            db,
            account_id=effects.payment_account_id,
            branch_id=effects.branch_id,
            delta=sign * effects.received_amount,
        )

    due = effects.total_amount - effects.received_amount
    if due > 0:
        adjust_customer_due(db, customer_id=effects.customer_id, delta=sign * due)

    progress = ProgressDelta(sale_amount=effects.total_amount)
    apply_progress_delta(
        db,
        branch_id=effects.branch_id,
        employee_id=effects.salesperson_id,
        sheet_date=effects.sale_date,
        delta=progress if sign > 0 else progress.negated(),
    )


def _apply_side_effects(db: Session, effects: _SaleEffects) -> None:
    _propagate(db, effects, 1)


def _reverse_side_effects(db: Session, effects: _SaleEffects) -> None:
    _propagate(db, effects, -1)


def _flush_header(db: Session, memo_no: str, branch_id: int) -> None:
    try:
        db.flush()
    except IntegrityError as exc:
        if is_unique_violation(exc, SALE_MEMO_CONSTRAINT, 'sales'):
            logger.warning('duplicate sale memo rejected', extra={'memo_no': memo_no, 'branch_id': branch_id})
            raise ConflictError(DUPLICATE_MEMO_MESSAGE) from exc
        raise


def _add_items(db: Session, sale_id: int, items: list[SaleItemInput]) -> None:
    for item in items:
        db.add(SaleItem(sale_id=sale_id, product_id=item.product_id, quantity=item.quantity, subtotal=item.subtotal))


def _validate_draft(draft: SaleDraft) -> None:
    validate_items(draft.items)
    validate_amounts(draft.total_amount, draft.received_amount, draft.payment_account_id)


def _resolve_parties(db: Session, draft: SaleDraft) -> None:
    require_employee(db, employee_id=draft.salesperson_id, branch_id=draft.branch_id)
    require_customer(db, customer_id=draft.customer_id, branch_id=draft.branch_id)


def sale_products(db: Session, draft: SaleDraft) -> int:
    _validate_draft(draft)
    memo_no = draft.memo_no or generate_memo_no(draft.sale_date)

    with unit_of_work(db):
        _resolve_parties(db, draft)
        _deduct_stock(db, draft.items)
        sale = Sale(
            branch_id=draft.branch_id,
            memo_no=memo_no,
            sale_date=draft.sale_date,
            salesperson_id=draft.salesperson_id,
            customer_id=draft.customer_id,
            total_items=draft.total_items,
            total_amount=draft.total_amount,
            received_amount=draft.received_amount,
            payment_account_id=draft.payment_account_id,
            status=SaleStatus.DELIVERED,
            notes=draft.notes,
        )
        db.add(sale)
        _flush_header(db, memo_no, draft.branch_id)
        _add_items(db, sale.id, draft.items)
        _apply_side_effects(db, _SaleEffects.from_sale(sale))
        sale_id = sale.id

    logger.info(
        'sale recorded',
        extra={
            'sale_id': sale_id,
            'memo_no': memo_no,
            'branch_id': draft.branch_id,
            'total_amount': draft.total_amount,
            'received_amount': draft.received_amount,
        },
    )
    return sale_id


def update_sale(db: Session, *, sale_id: int, draft: SaleDraft) -> None:
    _validate_draft(draft)

    with unit_of_work(db):
        sale = db.execute(
            select(Sale).where(Sale.id == sale_id, Sale.branch_id == draft.branch_id).with_for_update()
        ).scalar_one_or_none()
        if sale is None:
            raise NotFoundError('Sale not found')
        if sale.status == SaleStatus.RETURNED:
            raise ValidationError("Returned sales can't be modified")
        _resolve_parties(db, draft)

        old_items = [
            SaleItemInput(product_id=item.product_id, quantity=item.quantity, subtotal=Decimal(item.subtotal))
            for item in db.execute(select(SaleItem).where(SaleItem.sale_id == sale.id)).scalars().all()
        ]
        _restore_stock(db, old_items)
        _deduct_stock(db, draft.items)

        _reverse_side_effects(db, _SaleEffects.from_sale(sale))

        sale.memo_no = draft.memo_no or sale.memo_no
        sale.sale_date = draft.sale_date
        sale.salesperson_id = draft.salesperson_id
        sale.customer_id = draft.customer_id
        sale.total_items = draft.total_items
        sale.total_amount = draft.total_amount
        sale.received_amount = draft.received_amount
        sale.payment_account_id = draft.payment_account_id
        sale.notes = draft.notes
        sale.updated_at = _now()
        _flush_header(db, sale.memo_no, sale.branch_id)

        db.execute(delete(SaleItem).where(SaleItem.sale_id == sale.id))
        _add_items(db, sale.id, draft.items)
        _apply_side_effects(db, _SaleEffects.from_sale(sale))

    logger.info(
        'sale updated',
        extra={'sale_id': sale_id, 'branch_id': draft.branch_id, 'total_amount': draft.total_amount},
    )


def list_sales(
    db: Session,
    *,
    branch_id: int,
    search: str | None = None,
    page_index: int = 0,
    page_length: int = 10,
) -> tuple[list[dict], int]:
    salesperson = aliased(Employee)
    conditions = [Sale.branch_id == branch_id]
    if search:
        pattern = f'%{search.strip()}%'
        conditions.append(
            or_(Sale.memo_no.ilike(pattern), Customer.mobile.ilike(pattern), Customer.name.ilike(pattern))
        )

    total_count = db.execute(
        select(func.count(Sale.id)).join(Customer, Customer.id == Sale.customer_id).where(*conditions)
    ).scalar_one()
    rows = db.execute(
        select(Sale, Customer.name, Customer.mobile, salesperson.name)
        .join(Customer, Customer.id == Sale.customer_id)
        .join(salesperson, salesperson.id == Sale.salesperson_id)
        .where(*conditions)
        .order_by(Sale.sale_date.desc(), Sale.id.desc())
        .offset(page_index * page_length)
        .limit(page_length)
    ).all()
    return [
        {
            'id': sale.id,
            'memo_no': sale.memo_no,
            'sale_date': sale.sale_date,
            'customer_name': customer_name,
            'customer_mobile': customer_mobile,
            'salesperson_name': salesperson_name,
            'total_items': sale.total_items,
            'total_amount': sale.total_amount,
            'received_amount': sale.received_amount,
            'status': sale.status.value,
        }
        for sale, customer_name, customer_mobile, salesperson_name in rows
    ], total_count


def get_sale_detail(db: Session, *, sale_id: int, branch_id: int) -> dict:
    sale = db.execute(select(Sale).where(Sale.id == sale_id, Sale.branch_id == branch_id)).scalar_one_or_none()
    if sale is None:
        raise NotFoundError('Sale not found')

    customer = db.get(Customer, sale.customer_id)
    salesperson = db.get(Employee, sale.salesperson_id)
    items = db.execute(
        select(SaleItem, Product.product_name)
        .join(Product, Product.id == SaleItem.product_id)
        .where(SaleItem.sale_id == sale.id)
        .order_by(SaleItem.id.asc())
    ).all()
    transactions = db.execute(
        select(SaleTransaction).where(SaleTransaction.sale_id == sale.id).order_by(SaleTransaction.id.asc())
    ).scalars().all()

    return {
        'id': sale.id,
        'branch_id': sale.branch_id,
        'memo_no': sale.memo_no,
        'sale_date': sale.sale_date,
        'salesperson_id': sale.salesperson_id,
        'salesperson_name': salesperson.name if salesperson else '',
        'customer_id': sale.customer_id,
        'customer_name': customer.name if customer else '',
        'customer_mobile': customer.mobile if customer else '',
        'total_items': sale.total_items,
        'total_amount': sale.total_amount,
        'received_amount': sale.received_amount,
        'payment_account_id': sale.payment_account_id,
        'status': sale.status.value,
        'notes': sale.notes,
        'items': [
            {
                'id': item.id,
                'product_id': item.product_id,
                'product_name': product_name,
                'quantity': item.quantity,
                'subtotal': item.subtotal,
            }
            for item, product_name in items
        ],
        'sale_transactions': [
            {
                'transaction_id': txn.id,
                'transaction_date': txn.transaction_date,
                'memo_no': txn.memo_no,
                'payment_account_id': txn.payment_account_id,
                'amount': txn.amount,
                'transaction_type': txn.transaction_type.value,
            }
            for txn in transactions
        ],
    }
