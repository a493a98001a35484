from __future__ import annotations

import calendar
from collections import OrderedDict
from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal

from sqlalchemy import String, cast, func, or_, select
from sqlalchemy.orm import Session

from erpmini.errors import ValidationError
from erpmini.models import Employee, EmployeeProgress, EmployeeRole, Order, OrderStatus, TopSheet

REPORT_TYPES = ('daily', 'weekly', 'monthly', 'yearly', 'all')
GROUPING_TYPES = ('daily', 'weekly', 'monthly', 'yearly')


@dataclass(frozen=True)
class DateRange:
    start: date
    end: date


def _decimal(value) -> Decimal:
    return Decimal(str(value or 0))


def month_range(ref: date) -> DateRange:
    last_day = calendar.monthrange(ref.year, ref.month)[1]
    return DateRange(ref.replace(day=1), ref.replace(day=last_day))


def resolve_report_range(report_type: str, ref: date) -> DateRange:
    """Calendar window around ``ref``. Weeks start on Sunday."""
    if report_type == 'daily':
        return DateRange(ref, ref)
    if report_type == 'weekly':
        # date.weekday() is Monday=0; shift so Sunday=0.
        start = ref - timedelta(days=(ref.weekday() + 1) % 7)
        return DateRange(start, start + timedelta(days=6))
    if report_type == 'monthly':
        return month_range(ref)
    if report_type == 'yearly':
        return DateRange(date(ref.year, 1, 1), date(ref.year, 12, 31))
    if report_type == 'all':
        return DateRange(date(1970, 1, 1), ref)
    raise ValidationError(f'invalid report type: {report_type}')


def resolve_filter_range(start_date: date | None, end_date: date | None, today: date) -> DateRange:
    """Explicit bounds win; a missing bound falls back to the current month."""
    default = month_range(today)
    start = start_date or default.start
    end = end_date or default.end
    if start > end:
        raise ValidationError('start date cannot be after end date')
    return DateRange(start, end)


def order_overview(db: Session, *, branch_id: int, report_type: str, ref: date) -> dict:
    window = resolve_report_range(report_type, ref)
    rows = db.execute(
        select(Order.status, func.count(Order.id), func.coalesce(func.sum(Order.total_amount), 0))
        .where(Order.branch_id == branch_id, Order.order_date >= window.start, Order.order_date <= window.end)
        .group_by(Order.status)
    ).all()
    by_status = {status: (count, _decimal(amount)) for status, count, amount in rows}

    def _count(*statuses: OrderStatus) -> int:
        return sum(by_status.get(status, (0, 0))[0] for status in statuses)

    def _amount(*statuses: OrderStatus) -> Decimal:
        return sum((by_status.get(status, (0, Decimal('0')))[1] for status in statuses), Decimal('0'))

    return {
        'start_date': window.start,
        'end_date': window.end,
        'total_orders': _count(*OrderStatus),
        'pending_orders': _count(OrderStatus.PENDING, OrderStatus.PARTIAL),
        'checkout_orders': _count(OrderStatus.CHECKOUT),
        'completed_orders': _count(OrderStatus.DELIVERED),
        'cancelled_orders': _count(OrderStatus.CANCELLED),
        'total_orders_amount': _amount(*OrderStatus),
        'pending_orders_amount': _amount(OrderStatus.PENDING, OrderStatus.PARTIAL),
        'checkout_orders_amount': _amount(OrderStatus.CHECKOUT),
        'completed_orders_amount': _amount(OrderStatus.DELIVERED),
        'cancelled_orders_amount': _amount(OrderStatus.CANCELLED),
    }


def branch_report(
    db: Session,
    *,
    branch_id: int,
    start_date: date,
    end_date: date,
    search: str | None = None,
    page: int = 1,
    limit: int = 10,
) -> tuple[list[dict], int, dict]:
    conditions = [TopSheet.branch_id == branch_id, TopSheet.sheet_date >= start_date, TopSheet.sheet_date <= end_date]
    if search:
        conditions.append(cast(TopSheet.sheet_date, String).ilike(f'%{search.strip()}%'))

    count, expense, cash, bank, orders, delivery = db.execute(
        select(
            func.count(TopSheet.id),
            func.coalesce(func.sum(TopSheet.expense), 0),
            func.coalesce(func.sum(TopSheet.cash), 0),
            func.coalesce(func.sum(TopSheet.bank), 0),
            func.coalesce(func.sum(TopSheet.order_count), 0),
            func.coalesce(func.sum(TopSheet.delivery), 0),
        ).where(*conditions)
    ).one()
    expense, cash, bank = _decimal(expense), _decimal(cash), _decimal(bank)
    totals = {
        'expense': expense,
        'cash': cash,
        'bank': bank,
        'balance': cash + bank - expense,
        'orders': int(orders),
        'delivery': int(delivery),
    }

    sheets = db.execute(
        select(TopSheet)
        .where(*conditions)
        .order_by(TopSheet.sheet_date.asc())
        .offset((page - 1) * limit)
        .limit(limit)
    ).scalars().all()
    rows = []
    for sheet in sheets:
        total_amount = _decimal(sheet.cash) + _decimal(sheet.bank)
        rows.append(
            {
                'id': sheet.id,
                'sheet_date': sheet.sheet_date,
                'branch_id': sheet.branch_id,
                'expense': sheet.expense,
                'cash': sheet.cash,
                'bank': sheet.bank,
                'order_count': sheet.order_count,
                'delivery': sheet.delivery,
                'cancelled': sheet.cancelled,
                'ready_made': sheet.ready_made,
                'sales_amount': sheet.sales_amount,
                'total_amount': total_amount,
                'balance': total_amount - _decimal(sheet.expense),
            }
        )
    return rows, int(count), totals


def _employee_search(search: str | None) -> list:
    if not search:
        return []
    pattern = f'%{search.strip()}%'
    return [or_(Employee.name.ilike(pattern), Employee.mobile.ilike(pattern))]


def salesperson_progress_report(
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
        EmployeeProgress.branch_id == branch_id,
        EmployeeProgress.sheet_date >= start_date,
        EmployeeProgress.sheet_date <= end_date,
        Employee.role == EmployeeRole.SALESPERSON,
        *_employee_search(search),
    ]
    count, sale, sale_return, order_count = db.execute(
        select(
            func.count(EmployeeProgress.id),
            func.coalesce(func.sum(EmployeeProgress.sale_amount), 0),
            func.coalesce(func.sum(EmployeeProgress.sale_return_amount), 0),
            func.coalesce(func.sum(EmployeeProgress.order_count), 0),
        )
        .join(Employee, Employee.id == EmployeeProgress.employee_id)
        .where(*conditions)
    ).one()
    totals = {'sale': _decimal(sale), 'sale_return': _decimal(sale_return), 'order_count': int(order_count)}

    rows = db.execute(
        select(EmployeeProgress, Employee)
        .join(Employee, Employee.id == EmployeeProgress.employee_id)
        .where(*conditions)
        .order_by(EmployeeProgress.sheet_date.asc(), Employee.name.asc())
        .offset((page - 1) * limit)
        .limit(limit)
    ).all()
    return (
        [
            {
                'sales_person_id': employee.id,
                'sales_person_name': employee.name,
                'mobile': employee.mobile,
                'email': employee.email,
                'base_salary': employee.base_salary,
                'sheet_date': progress.sheet_date.isoformat(),
                'order_count': progress.order_count,
                'sale': progress.sale_amount,
                'sale_return': progress.sale_return_amount,
            }
            for progress, employee in rows
        ],
        int(count),
        totals,
    )


def _period_label(day: date, report_type: str) -> str:
    if report_type == 'daily':
        return day.isoformat()
    if report_type == 'weekly':
        iso_year, iso_week, _ = day.isocalendar()
        return f'{iso_year}-{iso_week:02d}'
    if report_type == 'monthly':
        return day.strftime('%Y-%m')
    if report_type == 'yearly':
        return day.strftime('%Y')
    raise ValidationError(f'invalid report type: {report_type}')


def worker_progress_report(
    db: Session,
    *,
    branch_id: int,
    start_date: date,
    end_date: date,
    report_type: str = 'daily',
    search: str | None = None,
) -> list[dict]:
    if report_type not in GROUPING_TYPES:
        raise ValidationError(f'invalid report type: {report_type}')
    rows = db.execute(
        select(EmployeeProgress, Employee)
        .join(Employee, Employee.id == EmployeeProgress.employee_id)
        .where(
            EmployeeProgress.branch_id == branch_id,
            EmployeeProgress.sheet_date >= start_date,
            EmployeeProgress.sheet_date <= end_date,
            Employee.role == EmployeeRole.WORKER,
            *_employee_search(search),
        )
        .order_by(EmployeeProgress.sheet_date.asc(), Employee.name.asc())
    ).all()

    grouped: OrderedDict[tuple[str, int], dict] = OrderedDict()
    for progress, employee in rows:
        label = _period_label(progress.sheet_date, report_type)
        bucket = grouped.get((label, employee.id))
        if bucket is None:
            bucket = grouped[(label, employee.id)] = {
                'worker_id': employee.id,
                'worker_name': employee.name,
                'mobile': employee.mobile,
                'email': employee.email,
                'base_salary': employee.base_salary,
                'date': label,
                'total_advance_payment': Decimal('0'),
                'total_production_units': 0,
                'total_overtime_hours': 0,
            }
        bucket['total_advance_payment'] += _decimal(progress.advance_payment)
        bucket['total_production_units'] += progress.production_units
        bucket['total_overtime_hours'] += progress.overtime_hours
    return list(grouped.values())


def salary_report(
    db: Session,
    *,
    branch_id: int,
    start_date: date,
    end_date: date,
    employee_id: int | None = None,
) -> list[dict]:
    conditions = [
        EmployeeProgress.branch_id == branch_id,
        EmployeeProgress.sheet_date >= start_date,
        EmployeeProgress.sheet_date <= end_date,
        EmployeeProgress.salary > 0,
    ]
    if employee_id is not None:
        conditions.append(EmployeeProgress.employee_id == employee_id)
    rows = db.execute(
        select(EmployeeProgress, Employee)
        .join(Employee, Employee.id == EmployeeProgress.employee_id)
        .where(*conditions)
        .order_by(EmployeeProgress.sheet_date.desc(), Employee.name.asc())
    ).all()
    return [
        {
            'id': progress.id,
            'employee_id': employee.id,
            'employee_name': employee.name,
            'role': employee.role.value,
            'base_salary': employee.base_salary,
            'total_salary': progress.salary,
            'sheet_date': progress.sheet_date,
        }
        for progress, employee in rows
    ]
