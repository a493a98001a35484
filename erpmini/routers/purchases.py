from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from erpmini.config import settings
from erpmini.db import get_db
from erpmini.dependencies import get_branch_id, get_date_range
from erpmini.schemas import MessageResponse, PurchaseCreatedResponse, PurchaseIn, PurchaseReportResponse
from erpmini.services.purchase_service import (
    PurchaseDraft,
    create_purchase,
    delete_purchase,
    purchase_report,
    update_purchase,
)
from erpmini.services.report_service import DateRange

router = APIRouter(prefix='/purchase', tags=['purchases'])


def _draft(branch_id: int, payload: PurchaseIn) -> PurchaseDraft:
    return PurchaseDraft(
        branch_id=branch_id,
        supplier_id=payload.supplier_id,
        purchase_date=payload.purchase_date,
        total_amount=payload.total_amount,
        memo_no=payload.memo_no,
        notes=payload.notes,
    )


@router.post('/', response_model=PurchaseCreatedResponse, status_code=status.HTTP_201_CREATED)
def create_purchase_endpoint(
    payload: PurchaseIn,
    branch_id: int = Depends(get_branch_id),
    db: Session = Depends(get_db),
):
    purchase_id = create_purchase(db, _draft(branch_id, payload))
    return PurchaseCreatedResponse(message='purchase recorded successfully', purchase_id=purchase_id)


@router.patch('/{purchase_id}', response_model=MessageResponse)
def update_purchase_endpoint(
    purchase_id: int,
    payload: PurchaseIn,
    branch_id: int = Depends(get_branch_id),
    db: Session = Depends(get_db),
):
    update_purchase(db, purchase_id=purchase_id, draft=_draft(branch_id, payload))
    return MessageResponse(message='purchase updated successfully')


@router.delete('/{purchase_id}', response_model=MessageResponse)
def delete_purchase_endpoint(
    purchase_id: int,
    branch_id: int = Depends(get_branch_id),
    db: Session = Depends(get_db),
):
    delete_purchase(db, purchase_id=purchase_id, branch_id=branch_id)
    return MessageResponse(message='purchase deleted successfully')


@router.get('/list', response_model=PurchaseReportResponse)
def purchase_report_endpoint(
    search: str | None = None,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=settings.default_page_limit, ge=1, le=500),
    date_range: DateRange = Depends(get_date_range),
    branch_id: int = Depends(get_branch_id),
    db: Session = Depends(get_db),
):
    report, total_count, totals = purchase_report(
        db,
        branch_id=branch_id,
        start_date=date_range.start,
        end_date=date_range.end,
        search=search,
        page=page,
        limit=limit,
    )
    return PurchaseReportResponse(total_count=total_count, report=report, totals=totals)
