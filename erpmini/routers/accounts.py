from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from erpmini.config import settings
from erpmini.db import get_db
from erpmini.dependencies import get_branch_id, get_date_range
from erpmini.models import TransactionType
from erpmini.schemas import (
    AccountListResponse,
    AccountNamesResponse,
    TransactionListResponse,
    TransactionSummaryResponse,
)
from erpmini.services.account_service import account_names, list_accounts
from erpmini.services.ledger_service import list_transactions, transaction_summary
from erpmini.services.report_service import DateRange

router = APIRouter(tags=['accounts'])


def _transaction_type(value: str | None) -> TransactionType | None:
    raw = (value or '').strip()
    if not raw or raw.lower() == 'all':
        return None
    for transaction_type in TransactionType:
        if transaction_type.value.lower() == raw.lower():
            return transaction_type
    raise HTTPException(status_code=400, detail=f'Unknown transaction type: {raw}')


@router.get('/accounts/', response_model=AccountListResponse)
def list_accounts_endpoint(
    branch_id: int = Depends(get_branch_id),
    db: Session = Depends(get_db),
):
    return AccountListResponse(accounts=list_accounts(db, branch_id=branch_id))


@router.get('/accounts/names', response_model=AccountNamesResponse)
def account_names_endpoint(
    branch_id: int = Depends(get_branch_id),
    db: Session = Depends(get_db),
):
    return AccountNamesResponse(accounts=account_names(db, branch_id=branch_id))


@router.get('/transactions/list', response_model=TransactionListResponse)
def list_transactions_endpoint(
    transaction_type: str | None = Query(default=None, alias='type'),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=settings.default_page_limit, ge=1, le=500),
    date_range: DateRange = Depends(get_date_range),
    branch_id: int = Depends(get_branch_id),
    db: Session = Depends(get_db),
):
    transactions, total_count = list_transactions(
        db,
        branch_id=branch_id,
        start_date=date_range.start,
        end_date=date_range.end,
        transaction_type=_transaction_type(transaction_type),
        page=page,
        limit=limit,
    )
    return TransactionListResponse(total_count=total_count, transactions=transactions)


@router.get('/transactions/summary', response_model=TransactionSummaryResponse)
def transaction_summary_endpoint(
    date_range: DateRange = Depends(get_date_range),
    branch_id: int = Depends(get_branch_id),
    db: Session = Depends(get_db),
):
    summary = transaction_summary(db, branch_id=branch_id, start_date=date_range.start, end_date=date_range.end)
    return TransactionSummaryResponse(start_date=date_range.start, end_date=date_range.end, summary=summary)
