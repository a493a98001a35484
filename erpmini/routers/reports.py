from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from erpmini.config import settings
from erpmini.db import get_db
from erpmini.dependencies import get_branch_id, get_date_range, parse_date_param, today
from erpmini.schemas import (
    BranchReportResponse,
    OrderOverviewResponse,
    SalaryReportResponse,
    SalespersonProgressResponse,
    WorkerProgressResponse,
)
from erpmini.services.report_service import (
    DateRange,
    branch_report,
    order_overview,
    salary_report,
    salesperson_progress_report,
    worker_progress_report,
)

router = APIRouter(prefix='/reports', tags=['reports'])


@router.get('/dashboard/orders/overview', response_model=OrderOverviewResponse)
def order_overview_endpoint(
    report_type: str = Query(default='monthly'),
    ref_date: str | None = Query(default=None, alias='date'),
    branch_id: int = Depends(get_branch_id),
    db: Session = Depends(get_db),
):
    ref = parse_date_param(ref_date, field='date') or today()
    return OrderOverviewResponse(report=order_overview(db, branch_id=branch_id, report_type=report_type, ref=ref))


@router.get('/branch', response_model=BranchReportResponse)
def branch_report_endpoint(
    search: str | None = None,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=settings.default_page_limit, ge=1, le=500),
    date_range: DateRange = Depends(get_date_range),
    branch_id: int = Depends(get_branch_id),
    db: Session = Depends(get_db),
):
    report, total_count, totals = branch_report(
        db,
        branch_id=branch_id,
        start_date=date_range.start,
        end_date=date_range.end,
        search=search,
        page=page,
        limit=limit,
    )
    return BranchReportResponse(total_count=total_count, report=report, totals=totals)


@router.get('/employee/progress', response_model=SalespersonProgressResponse)
def salesperson_progress_endpoint(
    search: str | None = None,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=settings.default_page_limit, ge=1, le=500),
    date_range: DateRange = Depends(get_date_range),
    branch_id: int = Depends(get_branch_id),
    db: Session = Depends(get_db),
):
    report, total_count, totals = salesperson_progress_report(
        db,
        branch_id=branch_id,
        start_date=date_range.start,
        end_date=date_range.end,
        search=search,
        page=page,
        limit=limit,
    )
    return SalespersonProgressResponse(total_count=total_count, report=report, totals=totals)


@router.get('/worker/progress', response_model=WorkerProgressResponse)
def worker_progress_endpoint(
    search: str | None = None,
    report_type: str = Query(default='daily'),
    date_range: DateRange = Depends(get_date_range),
    branch_id: int = Depends(get_branch_id),
    db: Session = Depends(get_db),
):
    report = worker_progress_report(
        db,
        branch_id=branch_id,
        start_date=date_range.start,
        end_date=date_range.end,
        report_type=report_type,
        search=search,
    )
    return WorkerProgressResponse(report=report)


@router.get('/employee/salaries', response_model=SalaryReportResponse)
def salary_report_endpoint(
    employee_id: int | None = None,
    date_range: DateRange = Depends(get_date_range),
    branch_id: int = Depends(get_branch_id),
    db: Session = Depends(get_db),
):
    report = salary_report(
        db,
        branch_id=branch_id,
        start_date=date_range.start,
        end_date=date_range.end,
        employee_id=employee_id,
    )
    return SalaryReportResponse(report=report)
