from __future__ import annotations

from decimal import Decimal

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from erpmini.errors import NotFoundError
from erpmini.models import Account, AccountType, Customer


def get_payment_account_type(db: Session, *, account_id: int, branch_id: int) -> AccountType:
    account_type = db.execute(
        select(Account.type).where(Account.id == account_id, Account.branch_id == branch_id)
    ).scalar_one_or_none()
    if account_type is None:
        raise NotFoundError('Payment account not found')
    return account_type


def lock_account(db: Session, *, account_id: int, branch_id: int | None = None) -> Account:
    stmt = select(Account).where(Account.id == account_id).with_for_update()
    if branch_id is not None:
        stmt = stmt.where(Account.branch_id == branch_id)
    account = db.execute(stmt).scalar_one_or_none()
    if account is None:
        raise NotFoundError('Account not found')
    return account


def adjust_account_balance(db: Session, *, account_id: int, delta: Decimal, branch_id: int | None = None) -> None:
    """Lock the account row, then move its balance by ``delta``."""
    if not delta:
        return
    lock_account(db, account_id=account_id, branch_id=branch_id)
    db.execute(
        update(Account)
        .where(Account.id == account_id)
        .values(current_balance=Account.current_balance + delta)
        .execution_options(synchronize_session='fetch')
    )


def adjust_customer_due(db: Session, *, customer_id: int, delta: Decimal) -> None:
    if not delta:
        return
    customer = db.execute(select(Customer.id).where(Customer.id == customer_id).with_for_update()).scalar_one_or_none()
    if customer is None:
        raise NotFoundError('Customer not found')
    db.execute(
        update(Customer)
        .where(Customer.id == customer_id)
        .values(due_amount=Customer.due_amount + delta)
        .execution_options(synchronize_session='fetch')
    )


def branch_cash_account_id(db: Session, *, branch_id: int) -> int:
    account_id = db.execute(
        select(Account.id)
        .where(Account.branch_id == branch_id, Account.type == AccountType.CASH)
        .order_by(Account.id.asc())
        .limit(1)
    ).scalar_one_or_none()
    if account_id is None:
        raise NotFoundError('No cash account found for branch')
    return account_id


def list_accounts(db: Session, *, branch_id: int) -> list[dict]:
    rows = db.execute(select(Account).where(Account.branch_id == branch_id).order_by(Account.id.asc())).scalars().all()
    return [
        {
            'id': account.id,
            'name': account.name,
            'type': account.type.value,
            'current_balance': account.current_balance,
            'branch_id': account.branch_id,
        }
        for account in rows
    ]


def account_names(db: Session, *, branch_id: int) -> list[dict]:
    rows = db.execute(
        select(Account.id, Account.name, Account.type).where(Account.branch_id == branch_id).order_by(Account.name.asc())
    ).all()
    return [{'id': row.id, 'name': row.name, 'type': row.type.value} for row in rows]
