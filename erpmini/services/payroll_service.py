from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session

from erpmini.db import unit_of_work
from erpmini.errors import NotFoundError, ValidationError
from erpmini.logging_config import get_logger
from erpmini.models import EmployeeProgress, TransactionType
from erpmini.services.account_service import adjust_account_balance, branch_cash_account_id, lock_account
from erpmini.services.aggregate_service import (
    ProgressDelta,
    TopSheetDelta,
    apply_progress_delta,
    apply_top_sheet_delta,
)
from erpmini.services.employee_service import require_employee
from erpmini.services.ledger_service import (
    EntityRef,
    LedgerEntry,
    advance_memo,
    append_transaction,
    delete_transactions_by_memo,
    find_transactions_by_memo,
    salary_memo,
)
from erpmini.services.money import ensure_cents

logger = get_logger(__name__)

ZERO = Decimal('0')


@dataclass(frozen=True)
class SalaryDraft:
    branch_id: int
    employee_id: int
    salary_date: date
    amount: Decimal
    payment_account_id: int


@dataclass(frozen=True)
class WorkerProgressDraft:
    branch_id: int
    employee_id: int
    sheet_date: date
    production_units: int = 0
    overtime_hours: int = 0
    advance_payment: Decimal = ZERO
    payment_account_id: int | None = None


@dataclass(frozen=True)
class _ProgressSnapshot:
    id: int
    branch_id: int
    employee_id: int
    sheet_date: date
    production_units: int
    overtime_hours: int
    advance_payment: Decimal
    salary: Decimal


def _lock_progress(db: Session, *, progress_id: int, branch_id: int, missing: str) -> _ProgressSnapshot:
    row = db.execute(
        select(EmployeeProgress)
        .where(EmployeeProgress.id == progress_id, EmployeeProgress.branch_id == branch_id)
        .with_for_update()
    ).scalar_one_or_none()
    if row is None:
        raise NotFoundError(missing)
    # Upserts below bypass the identity map, so copy the values out first.
    return _ProgressSnapshot(
        id=row.id,
        branch_id=row.branch_id,
        employee_id=row.employee_id,
        sheet_date=row.sheet_date,
        production_units=row.production_units,
        overtime_hours=row.overtime_hours,
        advance_payment=Decimal(row.advance_payment),
        salary=Decimal(row.salary),
    )


def _refund_ledger(db: Session, *, memo_no: str, branch_id: int, transaction_type: TransactionType) -> None:
    for entry in find_transactions_by_memo(
        db, memo_no=memo_no, branch_id=branch_id, transaction_type=transaction_type
    ):
        adjust_account_balance(db, account_id=entry.from_entity_id, branch_id=branch_id, delta=Decimal(entry.amount))
    delete_transactions_by_memo(db, memo_no=memo_no, branch_id=branch_id, transaction_type=transaction_type)


def _pay_employee(
    db: Session,
    *,
    branch_id: int,
    employee_id: int,
    account_id: int,
    paid_on: date,
    amount: Decimal,
    memo_no: str,
    transaction_type: TransactionType,
    notes: str,
) -> None:
    apply_top_sheet_delta(db, branch_id=branch_id, sheet_date=paid_on, delta=TopSheetDelta(expense=amount))
    append_transaction(
        db,
        LedgerEntry(
            transaction_date=paid_on,
            branch_id=branch_id,
            source=EntityRef.account(account_id),
            target=EntityRef.employee(employee_id),
            amount=amount,
            transaction_type=transaction_type,
            memo_no=memo_no,
            notes=notes,
        ),
    )
    adjust_account_balance(db, account_id=account_id, branch_id=branch_id, delta=-amount)


def _apply_salary(db: Session, draft: SalaryDraft) -> int:
    require_employee(db, employee_id=draft.employee_id, branch_id=draft.branch_id)
    lock_account(db, account_id=draft.payment_account_id, branch_id=draft.branch_id)
    progress_id = apply_progress_delta(
        db,
        branch_id=draft.branch_id,
        employee_id=draft.employee_id,
        sheet_date=draft.salary_date,
        delta=ProgressDelta(salary=draft.amount),
    )
    if draft.amount > 0:
        _pay_employee(
            db,
            branch_id=draft.branch_id,
            employee_id=draft.employee_id,
            account_id=draft.payment_account_id,
            paid_on=draft.salary_date,
            amount=draft.amount,
            memo_no=salary_memo(progress_id),
            transaction_type=TransactionType.SALARY,
            notes='Employee Salary',
        )
    return progress_id


def save_salary_record(db: Session, draft: SalaryDraft) -> int:
    if draft.amount <= 0:
        raise ValidationError('salary amount must be positive')
    ensure_cents(draft.amount, field='salary amount')
    with unit_of_work(db):
        progress_id = _apply_salary(db, draft)

    logger.info(
        'salary recorded',
        extra={'progress_id': progress_id, 'employee_id': draft.employee_id, 'amount': draft.amount},
    )
    return progress_id


def update_salary_record(db: Session, *, salary_id: int, draft: SalaryDraft) -> int:
    if draft.amount < 0:
        raise ValidationError('salary amount cannot be negative')
    ensure_cents(draft.amount, field='salary amount')
    with unit_of_work(db):
        old = _lock_progress(db, progress_id=salary_id, branch_id=draft.branch_id, missing='Salary record not found')
        if old.salary:
            apply_progress_delta(
                db,
                branch_id=old.branch_id,
                employee_id=old.employee_id,
                sheet_date=old.sheet_date,
                delta=ProgressDelta(salary=-old.salary),
            )
            apply_top_sheet_delta(
                db, branch_id=old.branch_id, sheet_date=old.sheet_date, delta=TopSheetDelta(expense=-old.salary)
            )
        _refund_ledger(
            db, memo_no=salary_memo(old.id), branch_id=old.branch_id, transaction_type=TransactionType.SALARY
        )
        progress_id = _apply_salary(db, draft)

    logger.info(
        'salary updated',
        extra={'progress_id': progress_id, 'employee_id': draft.employee_id, 'amount': draft.amount},
    )
    return progress_id


def _validate_worker_draft(draft: WorkerProgressDraft) -> None:
    if draft.production_units < 0:
        raise ValidationError('production units cannot be negative')
    if draft.overtime_hours < 0:
        raise ValidationError('overtime hours cannot be negative')
    if draft.advance_payment < 0:
        raise ValidationError('advance payment cannot be negative')
    ensure_cents(draft.advance_payment, field='advance payment')


def _apply_worker_progress(db: Session, draft: WorkerProgressDraft) -> int:
    require_employee(db, employee_id=draft.employee_id, branch_id=draft.branch_id)
    progress_id = apply_progress_delta(
        db,
        branch_id=draft.branch_id,
        employee_id=draft.employee_id,
        sheet_date=draft.sheet_date,
        delta=ProgressDelta(
            production_units=draft.production_units,
            overtime_hours=draft.overtime_hours,
            advance_payment=draft.advance_payment,
        ),
    )
    if draft.advance_payment > 0:
        account_id = draft.payment_account_id or branch_cash_account_id(db, branch_id=draft.branch_id)
        _pay_employee(
            db,
            branch_id=draft.branch_id,
            employee_id=draft.employee_id,
            account_id=account_id,
            paid_on=draft.sheet_date,
            amount=draft.advance_payment,
            memo_no=advance_memo(progress_id),
            transaction_type=TransactionType.ADVANCE_PAYMENT,
            notes='Worker advance payment',
        )
    return progress_id


def save_worker_progress(db: Session, draft: WorkerProgressDraft) -> int:
    _validate_worker_draft(draft)
    with unit_of_work(db):
        progress_id = _apply_worker_progress(db, draft)

    logger.info(
        'worker progress recorded',
        extra={
            'progress_id': progress_id,
            'employee_id': draft.employee_id,
            'production_units': draft.production_units,
            'advance_payment': draft.advance_payment,
        },
    )
    return progress_id


def update_worker_progress(db: Session, *, progress_id: int, draft: WorkerProgressDraft) -> int:
    _validate_worker_draft(draft)
    with unit_of_work(db):
        old = _lock_progress(
            db, progress_id=progress_id, branch_id=draft.branch_id, missing='Worker progress record not found'
        )
        apply_progress_delta(
            db,
            branch_id=old.branch_id,
            employee_id=old.employee_id,
            sheet_date=old.sheet_date,
            delta=ProgressDelta(
                production_units=-old.production_units,
                overtime_hours=-old.overtime_hours,
                advance_payment=-old.advance_payment,
            ),
        )
        if old.advance_payment > 0:
            apply_top_sheet_delta(
                db,
                branch_id=old.branch_id,
                sheet_date=old.sheet_date,
                delta=TopSheetDelta(expense=-old.advance_payment),
            )
            _refund_ledger(
                db,
                memo_no=advance_memo(old.id),
                branch_id=old.branch_id,
                transaction_type=TransactionType.ADVANCE_PAYMENT,
            )
        new_progress_id = _apply_worker_progress(db, draft)

    logger.info(
        'worker progress updated',
        extra={'progress_id': new_progress_id, 'employee_id': draft.employee_id},
    )
    return new_progress_id
