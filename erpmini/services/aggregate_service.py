from __future__ import annotations

from dataclasses import dataclass, fields
from datetime import date
from decimal import Decimal

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

from erpmini.models import EmployeeProgress, TopSheet

ZERO = Decimal('0')


@dataclass(frozen=True)
class TopSheetDelta:
    expense: Decimal = ZERO
    cash: Decimal = ZERO
    bank: Decimal = ZERO
    order_count: int = 0
    delivery: int = 0
    cancelled: int = 0
    ready_made: int = 0
    sales_amount: Decimal = ZERO

    def negated(self) -> TopSheetDelta:
        return TopSheetDelta(**{f.name: -getattr(self, f.name) for f in fields(self)})

    def is_zero(self) -> bool:
        return all(not getattr(self, f.name) for f in fields(self))


@dataclass(frozen=True)
class ProgressDelta:
    sale_amount: Decimal = ZERO
    sale_return_amount: Decimal = ZERO
    order_count: int = 0
    production_units: int = 0
    overtime_hours: int = 0
    advance_payment: Decimal = ZERO
    salary: Decimal = ZERO

    def negated(self) -> ProgressDelta:
        return ProgressDelta(**{f.name: -getattr(self, f.name) for f in fields(self)})


def _insert_for(db: Session, table):
    dialect = db.get_bind().dialect.name
    if dialect == 'postgresql':
        return postgresql.insert(table)
    if dialect == 'sqlite':
        return sqlite.insert(table)
    raise RuntimeError(f'Upsert not supported on dialect {dialect}')


def _delta_values(delta) -> dict:
    return {f.name: getattr(delta, f.name) for f in fields(delta)}


def _upsert_adding(db: Session, model, *, key: dict, delta, conflict_columns: list[str]) -> int:
    table = model.__table__
    values = {**key, **_delta_values(delta)}
    stmt = _insert_for(db, table).values(**values)
    stmt = stmt.on_conflict_do_update(
        index_elements=conflict_columns,
        set_={name: table.c[name] + stmt.excluded[name] for name in _delta_values(delta)},
    ).returning(table.c.id)
    return db.execute(stmt).scalar_one()


def apply_top_sheet_delta(db: Session, *, branch_id: int, sheet_date: date, delta: TopSheetDelta) -> int:
    """Add ``delta`` to the branch's row for ``sheet_date``, creating it when missing."""
    return _upsert_adding(
        db,
        TopSheet,
        key={'branch_id': branch_id, 'sheet_date': sheet_date},
        delta=delta,
        conflict_columns=['sheet_date', 'branch_id'],
    )


def apply_progress_delta(
    db: Session,
    *,
    branch_id: int,
    employee_id: int,
    sheet_date: date,
    delta: ProgressDelta,
) -> int:
    """Add ``delta`` to the employee's row for ``sheet_date``. Returns the row id."""
    return _upsert_adding(
        db,
        EmployeeProgress,
        key={'branch_id': branch_id, 'employee_id': employee_id, 'sheet_date': sheet_date},
        delta=delta,
        conflict_columns=['sheet_date', 'employee_id'],
    )
