from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from erpmini.db import unit_of_work
from erpmini.errors import ConflictError, NotFoundError, ValidationError
from erpmini.logging_config import get_logger
from erpmini.models import Employee, EmployeeRole
from erpmini.services.ledger_service import is_unique_violation
from erpmini.services.money import ensure_cents

logger = get_logger(__name__)

EMPLOYEE_MOBILE_CONSTRAINT = 'employees_mobile_branch_id_key'
EMPLOYEE_STATUSES = {'active': True, 'inactive': False}


@dataclass(frozen=True)
class EmployeeDraft:
    branch_id: int
    name: str
    role: EmployeeRole
    mobile: str | None = None
    email: str | None = None
    base_salary: Decimal = Decimal('0')
    overtime_rate: Decimal = Decimal('0')
    active: bool = True


def _validate_draft(draft: EmployeeDraft) -> None:
    if not draft.name.strip():
        raise ValidationError('employee name is required')
    ensure_cents(draft.base_salary, field='base salary')
    ensure_cents(draft.overtime_rate, field='overtime rate')
    if draft.base_salary < 0:
        raise ValidationError('base salary cannot be negative')
    if draft.overtime_rate < 0:
        raise ValidationError('overtime rate cannot be negative')


def _as_dict(employee: Employee) -> dict:
    return {
        'id': employee.id,
        'name': employee.name,
        'role': employee.role.value,
        'mobile': employee.mobile,
        'email': employee.email,
        'base_salary': employee.base_salary,
        'overtime_rate': employee.overtime_rate,
        'branch_id': employee.branch_id,
        'active': employee.active,
    }


def _flush(db: Session, draft: EmployeeDraft) -> None:
    try:
        db.flush()
    except IntegrityError as exc:
        if is_unique_violation(exc, EMPLOYEE_MOBILE_CONSTRAINT, 'employees', 'mobile'):
            logger.warning('duplicate employee mobile rejected', extra={'branch_id': draft.branch_id})
            raise ConflictError('Duplicate Mobile Number') from exc
        raise


def _apply_draft(employee: Employee, draft: EmployeeDraft) -> None:
    employee.name = draft.name.strip()
    employee.role = draft.role
    employee.mobile = draft.mobile
    employee.email = draft.email
    employee.base_salary = draft.base_salary
    employee.overtime_rate = draft.overtime_rate
    employee.active = draft.active


def require_employee(db: Session, *, employee_id: int, branch_id: int) -> Employee:
    employee = db.execute(
        select(Employee).where(Employee.id == employee_id, Employee.branch_id == branch_id)
    ).scalar_one_or_none()
    if employee is None:
        raise NotFoundError('Employee not found')
    return employee


def add_employee(db: Session, draft: EmployeeDraft) -> int:
    _validate_draft(draft)
    with unit_of_work(db):
        employee = Employee(branch_id=draft.branch_id)
        _apply_draft(employee, draft)
        db.add(employee)
        _flush(db, draft)
        employee_id = employee.id

    logger.info(
        'employee added',
        extra={'employee_id': employee_id, 'branch_id': draft.branch_id, 'role': draft.role.value},
    )
    return employee_id


def update_employee(db: Session, *, employee_id: int, draft: EmployeeDraft) -> None:
    _validate_draft(draft)
    with unit_of_work(db):
        employee = require_employee(db, employee_id=employee_id, branch_id=draft.branch_id)
        _apply_draft(employee, draft)
        _flush(db, draft)

    logger.info('employee updated', extra={'employee_id': employee_id, 'branch_id': draft.branch_id})


def get_employee(db: Session, *, employee_id: int, branch_id: int) -> dict:
    return _as_dict(require_employee(db, employee_id=employee_id, branch_id=branch_id))


def list_employees(
    db: Session,
    *,
    branch_id: int,
    role: str | None = None,
    status: str | None = None,
    page: int = 1,
    limit: int = 10,
) -> tuple[list[dict], int]:
    """Paginated staff list for a branch. The chairman is never listed."""
    conditions = [Employee.branch_id == branch_id, Employee.role != EmployeeRole.CHAIRMAN]
    if role:
        try:
            conditions.append(Employee.role == EmployeeRole(role))
        except ValueError as exc:
            raise ValidationError(f'Unknown employee role: {role}') from exc
    if status:
        if status not in EMPLOYEE_STATUSES:
            raise ValidationError(f'Unknown employee status: {status}')
        conditions.append(Employee.active.is_(EMPLOYEE_STATUSES[status]))

    total_count = db.execute(select(func.count(Employee.id)).where(*conditions)).scalar_one()
    rows = db.execute(
        select(Employee)
        .where(*conditions)
        .order_by(Employee.created_at.desc(), Employee.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    ).scalars().all()
    return [_as_dict(employee) for employee in rows], total_count
