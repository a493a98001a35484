from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from erpmini.db import unit_of_work
from erpmini.errors import ConflictError, NotFoundError, ValidationError
from erpmini.logging_config import get_logger
from erpmini.models import Customer
from erpmini.services.ledger_service import is_unique_violation

logger = get_logger(__name__)

CUSTOMER_MOBILE_CONSTRAINT = 'customers_mobile_branch_id_key'
DUPLICATE_MOBILE_MESSAGE = 'Duplicate Mobile Number'


@dataclass(frozen=True)
class CustomerDraft:
    branch_id: int
    name: str
    mobile: str
    address: str | None = None


def _validate_draft(draft: CustomerDraft) -> None:
    if not draft.name.strip():
        raise ValidationError('customer name is required')
    if not draft.mobile.strip():
        raise ValidationError('customer mobile is required')


def _as_dict(customer: Customer) -> dict:
    return {
        'id': customer.id,
        'name': customer.name,
        'mobile': customer.mobile,
        'address': customer.address,
        'due_amount': customer.due_amount,
        'branch_id': customer.branch_id,
    }


def _flush(db: Session, draft: CustomerDraft) -> None:
    try:
        db.flush()
    except IntegrityError as exc:
        if is_unique_violation(exc, CUSTOMER_MOBILE_CONSTRAINT, 'customers', 'mobile'):
            logger.warning('duplicate customer mobile rejected', extra={'branch_id': draft.branch_id})
            raise ConflictError(DUPLICATE_MOBILE_MESSAGE) from exc
        raise


def require_customer(db: Session, *, customer_id: int, branch_id: int) -> Customer:
    customer = db.execute(
        select(Customer).where(Customer.id == customer_id, Customer.branch_id == branch_id)
    ).scalar_one_or_none()
    if customer is None:
        raise NotFoundError('Customer not found')
    return customer


def add_customer(db: Session, draft: CustomerDraft) -> int:
    _validate_draft(draft)
    with unit_of_work(db):
        customer = Customer(
            name=draft.name.strip(),
            mobile=draft.mobile.strip(),
            address=draft.address,
            branch_id=draft.branch_id,
        )
        db.add(customer)
        _flush(db, draft)
        customer_id = customer.id

    logger.info('customer added', extra={'customer_id': customer_id, 'branch_id': draft.branch_id})
    return customer_id


def update_customer(db: Session, *, customer_id: int, draft: CustomerDraft) -> None:
    """Change contact details only; ``due_amount`` belongs to the order and sale flows."""
    _validate_draft(draft)
    with unit_of_work(db):
        customer = require_customer(db, customer_id=customer_id, branch_id=draft.branch_id)
        customer.name = draft.name.strip()
        customer.mobile = draft.mobile.strip()
        customer.address = draft.address
        _flush(db, draft)

    logger.info('customer updated', extra={'customer_id': customer_id, 'branch_id': draft.branch_id})


def get_customer(db: Session, *, customer_id: int, branch_id: int) -> dict:
    return _as_dict(require_customer(db, customer_id=customer_id, branch_id=branch_id))


def list_customers(
    db: Session,
    *,
    branch_id: int,
    search: str | None = None,
    page: int = 1,
    limit: int = 10,
) -> tuple[list[dict], int]:
    conditions = [Customer.branch_id == branch_id]
    if search:
        pattern = f'%{search.strip()}%'
        conditions.append(or_(Customer.name.ilike(pattern), Customer.mobile.ilike(pattern)))

    total_count = db.execute(select(func.count(Customer.id)).where(*conditions)).scalar_one()
    rows = db.execute(
        select(Customer)
        .where(*conditions)
        .order_by(Customer.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    ).scalars().all()
    return [_as_dict(customer) for customer in rows], total_count


def filter_customers_by_name(db: Session, *, branch_id: int, name: str, limit: int = 10) -> list[dict]:
    rows = db.execute(
        select(Customer.id, Customer.name, Customer.mobile)
        .where(Customer.branch_id == branch_id, Customer.name.ilike(f'%{name.strip()}%'))
        .order_by(Customer.name.asc())
        .limit(limit)
    ).all()
    return [{'id': row.id, 'name': row.name, 'mobile': row.mobile} for row in rows]


def customer_names(db: Session, *, branch_id: int) -> list[dict]:
    rows = db.execute(
        select(Customer.id, Customer.name, Customer.mobile)
        .where(Customer.branch_id == branch_id)
        .order_by(Customer.name.asc())
    ).all()
    return [{'id': row.id, 'name': row.name, 'mobile': row.mobile} for row in rows]


def list_customers_with_due(db: Session, *, branch_id: int) -> list[dict]:
    rows = db.execute(
        select(Customer)
        .where(Customer.branch_id == branch_id, Customer.due_amount > 0)
        .order_by(Customer.due_amount.desc(), Customer.id.asc())
    ).scalars().all()
    return [
        {
            'id': customer.id,
            'name': customer.name,
            'mobile': customer.mobile,
            'due_amount': customer.due_amount,
        }
        for customer in rows
    ]
