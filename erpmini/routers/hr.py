from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from erpmini.config import settings
from erpmini.db import get_db
from erpmini.dependencies import get_branch_id
from erpmini.schemas import (
    EmployeeCreatedResponse,
    EmployeeIn,
    EmployeeListResponse,
    EmployeeResponse,
    MessageResponse,
    ProgressSavedResponse,
    SalaryIn,
    WorkerProgressIn,
)
from erpmini.services.employee_service import (
    EmployeeDraft,
    add_employee,
    get_employee,
    list_employees,
    update_employee,
)
from erpmini.services.payroll_service import (
    SalaryDraft,
    WorkerProgressDraft,
    save_salary_record,
    save_worker_progress,
    update_salary_record,
    update_worker_progress,
)

router = APIRouter(prefix='/hr', tags=['hr'])


def _employee_draft(branch_id: int, payload: EmployeeIn) -> EmployeeDraft:
    return EmployeeDraft(
        branch_id=branch_id,
        name=payload.name,
        role=payload.role,
        mobile=payload.mobile,
        email=payload.email,
        base_salary=payload.base_salary,
        overtime_rate=payload.overtime_rate,
        active=payload.active,
    )


def _salary_draft(branch_id: int, payload: SalaryIn) -> SalaryDraft:
    return SalaryDraft(
        branch_id=branch_id,
        employee_id=payload.employee_id,
        salary_date=payload.salary_date,
        amount=payload.amount,
        payment_account_id=payload.payment_account_id,
    )


def _worker_draft(branch_id: int, payload: WorkerProgressIn) -> WorkerProgressDraft:
    return WorkerProgressDraft(
        branch_id=branch_id,
        employee_id=payload.employee_id,
        sheet_date=payload.sheet_date,
        production_units=payload.production_units,
        overtime_hours=payload.overtime_hours,
        advance_payment=payload.advance_payment,
        payment_account_id=payload.payment_account_id,
    )


@router.post('/employee/salary', response_model=ProgressSavedResponse, status_code=status.HTTP_201_CREATED)
def save_salary_endpoint(
    payload: SalaryIn,
    branch_id: int = Depends(get_branch_id),
    db: Session = Depends(get_db),
):
    progress_id = save_salary_record(db, _salary_draft(branch_id, payload))
    return ProgressSavedResponse(message='salary recorded successfully', progress_id=progress_id)


@router.patch('/employee/salary/{salary_id}', response_model=ProgressSavedResponse)
def update_salary_endpoint(
    salary_id: int,
    payload: SalaryIn,
    branch_id: int = Depends(get_branch_id),
    db: Session = Depends(get_db),
):
    progress_id = update_salary_record(db, salary_id=salary_id, draft=_salary_draft(branch_id, payload))
    return ProgressSavedResponse(message='salary updated successfully', progress_id=progress_id)


@router.post('/worker/progress', response_model=ProgressSavedResponse, status_code=status.HTTP_201_CREATED)
def save_worker_progress_endpoint(
    payload: WorkerProgressIn,
    branch_id: int = Depends(get_branch_id),
    db: Session = Depends(get_db),
):
    progress_id = save_worker_progress(db, _worker_draft(branch_id, payload))
    return ProgressSavedResponse(message='worker progress recorded successfully', progress_id=progress_id)


@router.patch('/worker/progress/{progress_id}', response_model=ProgressSavedResponse)
def update_worker_progress_endpoint(
    progress_id: int,
    payload: WorkerProgressIn,
    branch_id: int = Depends(get_branch_id),
    db: Session = Depends(get_db),
):
    new_progress_id = update_worker_progress(db, progress_id=progress_id, draft=_worker_draft(branch_id, payload))
    return ProgressSavedResponse(message='worker progress updated successfully', progress_id=new_progress_id)


@router.post('/employee/new', response_model=EmployeeCreatedResponse, status_code=status.HTTP_201_CREATED)
def add_employee_endpoint(
    payload: EmployeeIn,
    branch_id: int = Depends(get_branch_id),
    db: Session = Depends(get_db),
):
    employee_id = add_employee(db, _employee_draft(branch_id, payload))
    return EmployeeCreatedResponse(message='employee added successfully', employee_id=employee_id)


@router.get('/employees', response_model=EmployeeListResponse)
def list_employees_endpoint(
    role: str | None = None,
    employee_status: str | None = Query(default=None, alias='status'),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=settings.default_page_limit, ge=1, le=500),
    branch_id: int = Depends(get_branch_id),
    db: Session = Depends(get_db),
):
    employees, total_count = list_employees(
        db, branch_id=branch_id, role=role, status=employee_status, page=page, limit=limit
    )
    return EmployeeListResponse(total_count=total_count, employees=employees)


@router.get('/employee/{employee_id}', response_model=EmployeeResponse)
def get_employee_endpoint(
    employee_id: int,
    branch_id: int = Depends(get_branch_id),
    db: Session = Depends(get_db),
):
    return EmployeeResponse(employee=get_employee(db, employee_id=employee_id, branch_id=branch_id))


@router.put('/employee/update/{employee_id}', response_model=MessageResponse)
def update_employee_endpoint(
    employee_id: int,
    payload: EmployeeIn,
    branch_id: int = Depends(get_branch_id),
    db: Session = Depends(get_db),
):
    update_employee(db, employee_id=employee_id, draft=_employee_draft(branch_id, payload))
    return MessageResponse(message='employee updated successfully')
