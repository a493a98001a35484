from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from decimal import Decimal

from sqlalchemy import delete, func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, aliased

from erpmini.db import unit_of_work
from erpmini.errors import DUPLICATE_MEMO_MESSAGE, ConflictError, NotFoundError, ValidationError
from erpmini.logging_config import get_logger
from erpmini.models import (
    Account,
    Customer,
    Employee,
    Order,
    OrderItem,
    OrderStatus,
    OrderTransaction,
    Product,
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
    order_memo,
)
from erpmini.services.money import cash_bank_delta, ensure_cents, validate_amounts
from erpmini.services.stock_service import require_products

logger = get_logger(__name__)

ORDER_MEMO_CONSTRAINT = 'orders_memo_no_branch_id_key'
DELIVERABLE_STATUSES = (OrderStatus.PENDING, OrderStatus.PARTIAL)


@dataclass(frozen=True)
class OrderItemInput:
    product_id: int
    quantity: int
    subtotal: Decimal


@dataclass(frozen=True)
class OrderDraft:
    branch_id: int
    salesperson_id: int
    customer_id: int
    order_date: date
    total_amount: Decimal
    received_amount: Decimal
    items: list[OrderItemInput] = field(default_factory=list)
    delivery_date: date | None = None
    payment_account_id: int | None = None
    memo_no: str | None = None
    notes: str | None = None

    @property
    def total_items(self) -> int:
        return sum(item.quantity for item in self.items)


@dataclass(frozen=True)
class DeliveryDraft:
    branch_id: int
    delivery_date: date
    quantity: int
    amount: Decimal
    payment_account_id: int | None = None
    delivered_by: int | None = None


@dataclass(frozen=True)
class _OrderEffects:
    order_id: int
    branch_id: int
    memo_no: str
    order_date: date
    salesperson_id: int
    customer_id: int
    total_items: int
    total_amount: Decimal
    received_amount: Decimal
    payment_account_id: int | None

    @classmethod
    def from_order(cls, order: Order) -> _OrderEffects:
        return cls(
            order_id=order.id,
            branch_id=order.branch_id,
            memo_no=order.memo_no,
            order_date=order.order_date,
            salesperson_id=order.salesperson_id,
            customer_id=order.customer_id,
            total_items=order.total_items,
            total_amount=Decimal(order.total_amount),
            received_amount=Decimal(order.received_amount),
            payment_account_id=order.payment_account_id,
        )


def _now() -> datetime:
    return datetime.now(tz=timezone.utc)


def validate_items(items: list[OrderItemInput]) -> None:
    if not items:
        raise ValidationError('order must contain at least one item')
    for item in items:
        if item.quantity <= 0:
            raise ValidationError('item quantity must be positive')
        if item.subtotal < 0:
            raise ValidationError('item subtotal cannot be negative')
        ensure_cents(item.subtotal, field='item subtotal')


def _validate_draft(draft: OrderDraft) -> None:
    validate_items(draft.items)
    validate_amounts(draft.total_amount, draft.received_amount, draft.payment_account_id)


def _resolve_references(db: Session, draft: OrderDraft) -> None:
    require_employee(db, employee_id=draft.salesperson_id, branch_id=draft.branch_id)
    require_customer(db, customer_id=draft.customer_id, branch_id=draft.branch_id)
    require_products(db, product_ids=[item.product_id for item in draft.items])


def _propagate(db: Session, effects: _OrderEffects, sign: int) -> None:
    """Apply (sign=1) or undo (sign=-1) everything an order header implies."""
    account_type = None
    if effects.received_amount > 0:
        account_type = get_payment_account_type(
            db, account_id=effects.payment_account_id, branch_id=effects.branch_id
        )

    top_sheet = TopSheetDelta(
        order_count=effects.total_items,
        **cash_bank_delta(account_type, effects.received_amount),
    )
    apply_top_sheet_delta(
        db,
        branch_id=effects.branch_id,
        sheet_date=effects.order_date,
        delta=top_sheet if sign > 0 else top_sheet.negated(),
    )

    if effects.received_amount > 0:
        ledger_memo = order_memo(effects.memo_no)
        if sign > 0:
            db.add(
                OrderTransaction(
                    order_id=effects.order_id,
                    transaction_date=effects.order_date,
                    memo_no=effects.memo_no,
                    payment_account_id=effects.payment_account_id,
                    amount=effects.received_amount,
                    transaction_type=TransactionType.ADVANCE_PAYMENT,
                )
            )
            append_transaction(
                db,
                LedgerEntry(
                    transaction_date=effects.order_date,
                    branch_id=effects.branch_id,
                    source=EntityRef.customer(effects.customer_id),
                    target=EntityRef.account(effects.payment_account_id),
                    amount=effects.received_amount,
                    transaction_type=TransactionType.ADVANCE_PAYMENT,
                    memo_no=ledger_memo,
                    notes='Advance payment from customer',
                ),
            )
        else:
            db.execute(
                delete(OrderTransaction).where(
                    OrderTransaction.order_id == effects.order_id,
                    OrderTransaction.transaction_type == TransactionType.ADVANCE_PAYMENT,
                )
            )
            delete_transactions_by_memo(
                db,
                memo_no=ledger_memo,
                branch_id=effects.branch_id,
                transaction_type=TransactionType.ADVANCE_PAYMENT,
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

    progress = ProgressDelta(order_count=effects.total_items, sale_amount=effects.total_amount)
    apply_progress_delta(
        db,
        branch_id=effects.branch_id,
        employee_id=effects.salesperson_id,
        sheet_date=effects.order_date,
        delta=progress if sign > 0 else progress.negated(),
    )


def _apply_side_effects(db: Session, effects: _OrderEffects) -> None:
    _propagate(db, effects, 1)


def _reverse_side_effects(db: Session, effects: _OrderEffects) -> None:
    _propagate(db, effects, -1)


def _flush_header(db: Session, memo_no: str, branch_id: int) -> None:
    try:
        db.flush()
    except IntegrityError as exc:
        if is_unique_violation(exc, ORDER_MEMO_CONSTRAINT, 'orders'):
            logger.warning('duplicate order memo rejected', extra={'memo_no': memo_no, 'branch_id': branch_id})
            raise ConflictError(DUPLICATE_MEMO_MESSAGE) from exc
        raise


def _add_items(db: Session, order_id: int, items: list[OrderItemInput]) -> None:
    for item in items:
        db.add(OrderItem(order_id=order_id, product_id=item.product_id, quantity=item.quantity, subtotal=item.subtotal))


def _lock_order(db: Session, *, order_id: int, branch_id: int) -> Order:
    order = db.execute(
        select(Order).where(Order.id == order_id, Order.branch_id == branch_id).with_for_update()
    ).scalar_one_or_none()
    if order is None:
        raise NotFoundError('Order not found')
    return order


def create_order(db: Session, draft: OrderDraft) -> int:
    _validate_draft(draft)
    memo_no = draft.memo_no or generate_memo_no(draft.order_date)

    with unit_of_work(db):
        _resolve_references(db, draft)
        order = Order(
            branch_id=draft.branch_id,
            memo_no=memo_no,
            order_date=draft.order_date,
            delivery_date=draft.delivery_date,
            salesperson_id=draft.salesperson_id,
            customer_id=draft.customer_id,
            total_items=draft.total_items,
            delivered_items=0,
            total_amount=draft.total_amount,
            received_amount=draft.received_amount,
            payment_account_id=draft.payment_account_id,
            status=OrderStatus.PENDING,
            notes=draft.notes,
        )
        db.add(order)
        _flush_header(db, memo_no, draft.branch_id)
        _add_items(db, order.id, draft.items)
        _apply_side_effects(db, _OrderEffects.from_order(order))
        order_id = order.id

    logger.info(
        'order created',
        extra={
            'order_id': order_id,
            'memo_no': memo_no,
            'branch_id': draft.branch_id,
            'total_amount': draft.total_amount,
            'received_amount': draft.received_amount,
        },
    )
    return order_id


def update_order(db: Session, *, order_id: int, draft: OrderDraft) -> None:
    _validate_draft(draft)

    with unit_of_work(db):
        order = _lock_order(db, order_id=order_id, branch_id=draft.branch_id)
        if order.status != OrderStatus.PENDING:
            raise ValidationError('only pending orders can be modified')
        _resolve_references(db, draft)

        _reverse_side_effects(db, _OrderEffects.from_order(order))

        order.memo_no = draft.memo_no or order.memo_no
        order.order_date = draft.order_date
        order.delivery_date = draft.delivery_date
        order.salesperson_id = draft.salesperson_id
        order.customer_id = draft.customer_id
        order.total_items = draft.total_items
        order.total_amount = draft.total_amount
        order.received_amount = draft.received_amount
        order.payment_account_id = draft.payment_account_id
        order.notes = draft.notes
        order.updated_at = _now()
        _flush_header(db, order.memo_no, order.branch_id)

        db.execute(delete(OrderItem).where(OrderItem.order_id == order.id))
        _add_items(db, order.id, draft.items)
        _apply_side_effects(db, _OrderEffects.from_order(order))

    logger.info(
        'order updated',
        extra={'order_id': order_id, 'branch_id': draft.branch_id, 'total_amount': draft.total_amount},
    )


def record_delivery(db: Session, *, order_id: int, draft: DeliveryDraft) -> OrderStatus:
    if draft.quantity < 0:
        raise ValidationError('delivery quantity cannot be negative')
    if draft.amount < 0:
        raise ValidationError('received amount cannot be negative')
    ensure_cents(draft.amount, field='received amount')
    if draft.quantity == 0 and draft.amount == 0:
        raise ValidationError('delivery must include items or a payment')
    if draft.amount > 0 and not draft.payment_account_id:
        raise ValidationError('payment account is required when an amount is received')

    with unit_of_work(db):
        order = _lock_order(db, order_id=order_id, branch_id=draft.branch_id)
        if order.status not in DELIVERABLE_STATUSES:
            raise ValidationError('only pending or partial orders can be delivered')
        if draft.delivered_by is not None:
            require_employee(db, employee_id=draft.delivered_by, branch_id=draft.branch_id)

        due = Decimal(order.total_amount) - Decimal(order.received_amount) - draft.amount
        if due < 0:
            raise ValidationError('received amount cannot exceed due amount')
        remaining = order.total_items - order.delivered_items - draft.quantity
        if remaining < 0:
            raise ValidationError('delivery quantity cannot exceed remaining quantity')

        account_type = None
        if draft.amount > 0:
            account_type = get_payment_account_type(
                db, account_id=draft.payment_account_id, branch_id=draft.branch_id
            )

        status = OrderStatus.DELIVERED if due == 0 and remaining == 0 else OrderStatus.PARTIAL
        order.received_amount = Decimal(order.received_amount) + draft.amount
        order.delivered_items = order.delivered_items + draft.quantity
        order.status = status
        order.updated_at = _now()

        apply_top_sheet_delta(
            db,
            branch_id=order.branch_id,
            sheet_date=draft.delivery_date,
            delta=TopSheetDelta(delivery=draft.quantity, **cash_bank_delta(account_type, draft.amount)),
        )
        db.add(
            OrderTransaction(
                order_id=order.id,
                transaction_date=draft.delivery_date,
                memo_no=order.memo_no,
                payment_account_id=draft.payment_account_id if draft.amount > 0 else None,
                delivered_by=draft.delivered_by,
                quantity_delivered=draft.quantity,
                amount=draft.amount,
                transaction_type=TransactionType.PAYMENT,
            )
        )

        if draft.amount > 0:
            append_transaction(
                db,
                LedgerEntry(
                    transaction_date=draft.delivery_date,
                    branch_id=order.branch_id,
                    source=EntityRef.customer(order.customer_id),
                    target=EntityRef.account(draft.payment_account_id),
                    amount=draft.amount,
                    transaction_type=TransactionType.PAYMENT,
                    memo_no=order_memo(order.memo_no),
                    notes='Payment received upon delivery',
                ),
            )
            adjust_account_balance(
                db, account_id=draft.payment_account_id, branch_id=order.branch_id, delta=draft.amount
            )
            adjust_customer_due(db, customer_id=order.customer_id, delta=-draft.amount)

    logger.info(
        'order delivery recorded',
        extra={
            'order_id': order_id,
            'quantity': draft.quantity,
            'amount': draft.amount,
            'status': status.value,
        },
    )
    return status


def list_orders(
    db: Session,
    *,
    branch_id: int,
    search: str | None = None,
    status: str | None = None,
    page_index: int = 0,
    page_length: int = 10,
) -> tuple[list[dict], int]:
    salesperson = aliased(Employee)
    conditions = [Order.branch_id == branch_id]
    if status and status != 'all':
        try:
            conditions.append(Order.status == OrderStatus(status))
        except ValueError as exc:
            raise ValidationError(f'Unknown order status: {status}') from exc
    if search:
        pattern = f'%{search.strip()}%'
        conditions.append(
            or_(Order.memo_no.ilike(pattern), Customer.mobile.ilike(pattern), Customer.name.ilike(pattern))
        )

    total_count = db.execute(
        select(func.count(Order.id)).join(Customer, Customer.id == Order.customer_id).where(*conditions)
    ).scalar_one()
    rows = db.execute(
        select(Order, Customer.name, Customer.mobile, salesperson.name)
        .join(Customer, Customer.id == Order.customer_id)
        .join(salesperson, salesperson.id == Order.salesperson_id)
        .where(*conditions)
        .order_by(Order.order_date.desc(), Order.id.desc())
        .offset(page_index * page_length)
        .limit(page_length)
    ).all()
    return [
        {
            'id': order.id,
            'memo_no': order.memo_no,
            'order_date': order.order_date,
            'delivery_date': order.delivery_date,
            'customer_name': customer_name,
            'customer_mobile': customer_mobile,
            'salesperson_name': salesperson_name,
            'total_items': order.total_items,
            'delivered_items': order.delivered_items,
            'total_amount': order.total_amount,
            'received_amount': order.received_amount,
            'status': order.status.value,
        }
        for order, customer_name, customer_mobile, salesperson_name in rows
    ], total_count


def get_order_detail(db: Session, *, order_id: int, branch_id: int) -> dict:
    order = db.execute(
        select(Order).where(Order.id == order_id, Order.branch_id == branch_id)
    ).scalar_one_or_none()
    if order is None:
        raise NotFoundError('Order not found')

    customer = db.get(Customer, order.customer_id)
    salesperson = db.get(Employee, order.salesperson_id)
    items = db.execute(
        select(OrderItem, Product.product_name)
        .join(Product, Product.id == OrderItem.product_id)
        .where(OrderItem.order_id == order.id)
        .order_by(OrderItem.id.asc())
    ).all()
    transactions = db.execute(
        select(OrderTransaction, Account.name)
        .outerjoin(Account, Account.id == OrderTransaction.payment_account_id)
        .where(OrderTransaction.order_id == order.id)
        .order_by(OrderTransaction.id.asc())
    ).all()

    return {
        'id': order.id,
        'branch_id': order.branch_id,
        'memo_no': order.memo_no,
        'order_date': order.order_date,
        'delivery_date': order.delivery_date,
        'salesperson_id': order.salesperson_id,
        'salesperson_name': salesperson.name if salesperson else '',
        'customer_id': order.customer_id,
        'customer_name': customer.name if customer else '',
        'customer_mobile': customer.mobile if customer else '',
        'total_items': order.total_items,
        'delivered_items': order.delivered_items,
        'total_amount': order.total_amount,
        'received_amount': order.received_amount,
        'payment_account_id': order.payment_account_id,
        'status': order.status.value,
        'notes': order.notes,
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
        'order_transactions': [
            {
                'transaction_id': txn.id,
                'transaction_date': txn.transaction_date,
                'memo_no': txn.memo_no,
                'payment_account_id': txn.payment_account_id,
                'payment_account_name': account_name or '',
                'quantity_delivered': txn.quantity_delivered,
                'amount': txn.amount,
                'transaction_type': txn.transaction_type.value,
            }
            for txn, account_name in transactions
        ],
    }
