from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from erpmini.config import settings
from erpmini.db import get_db
from erpmini.dependencies import get_branch_id, get_date_range
from erpmini.schemas import (
    MessageResponse,
    ProductListResponse,
    RestockIn,
    RestockResponse,
    SaleCreatedResponse,
    SaleDetailResponse,
    SaleIn,
    SaleListResponse,
    StockReportResponse,
)
from erpmini.services.report_service import DateRange
from erpmini.services.sale_service import (
    SaleDraft,
    SaleItemInput,
    get_sale_detail,
    list_sales,
    sale_products,
    update_sale,
)
from erpmini.services.stock_service import RestockItem, list_products, restock_products, stock_report

router = APIRouter(prefix='/products', tags=['products'])


def _sale_draft(branch_id: int, payload: SaleIn) -> SaleDraft:
    return SaleDraft(
        branch_id=branch_id,
        salesperson_id=payload.salesperson_id,
        customer_id=payload.customer_id,
        sale_date=payload.sale_date,
        total_amount=payload.total_amount,
        received_amount=payload.received_amount,
        payment_account_id=payload.payment_account_id,
        memo_no=payload.memo_no,
        notes=payload.notes,
        items=[
            SaleItemInput(product_id=item.product_id, quantity=item.quantity, subtotal=item.subtotal)
            for item in payload.items
        ],
    )


@router.get('/', response_model=ProductListResponse)
def list_products_endpoint(db: Session = Depends(get_db)):
    return ProductListResponse(products=list_products(db))


@router.post('/restock', response_model=RestockResponse, status_code=status.HTTP_201_CREATED)
def restock_endpoint(
    payload: RestockIn,
    branch_id: int = Depends(get_branch_id),
    db: Session = Depends(get_db),
):
    memo_no = restock_products(
        db,
        branch_id=branch_id,
        stock_date=payload.stock_date,
        memo_no=payload.memo_no,
        items=[RestockItem(product_id=item.product_id, quantity=item.quantity) for item in payload.items],
    )
    return RestockResponse(message='products restocked successfully', memo_no=memo_no)


@router.get('/stocks', response_model=StockReportResponse)
def stock_report_endpoint(
    search: str | None = None,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=settings.default_page_limit, ge=1, le=500),
    date_range: DateRange = Depends(get_date_range),
    branch_id: int = Depends(get_branch_id),
    db: Session = Depends(get_db),
):
    report, total_count, totals = stock_report(
        db,
        branch_id=branch_id,
        start_date=date_range.start,
        end_date=date_range.end,
        search=search,
        page=page,
        limit=limit,
    )
    return StockReportResponse(total_count=total_count, report=report, totals=totals)


@router.post('/sales/new', response_model=SaleCreatedResponse, status_code=status.HTTP_201_CREATED)
def create_sale_endpoint(
    payload: SaleIn,
    branch_id: int = Depends(get_branch_id),
    db: Session = Depends(get_db),
):
    sale_id = sale_products(db, _sale_draft(branch_id, payload))
    return SaleCreatedResponse(message='sale recorded successfully', sale_id=sale_id)


@router.patch('/sales/{sale_id}', response_model=MessageResponse)
def update_sale_endpoint(
    sale_id: int,
    payload: SaleIn,
    branch_id: int = Depends(get_branch_id),
    db: Session = Depends(get_db),
):
    update_sale(db, sale_id=sale_id, draft=_sale_draft(branch_id, payload))
    return MessageResponse(message='sale updated successfully')


@router.get('/sales', response_model=SaleListResponse)
def list_sales_endpoint(
    search: str | None = None,
    page_index: int = Query(default=0, alias='pageIndex', ge=0),
    page_length: int = Query(default=settings.default_page_limit, alias='pageLength', ge=1, le=500),
    branch_id: int = Depends(get_branch_id),
    db: Session = Depends(get_db),
):
    sales, total_count = list_sales(
        db, branch_id=branch_id, search=search, page_index=page_index, page_length=page_length
    )
    return SaleListResponse(total_count=total_count, sales=sales)


@router.get('/sales/{sale_id}', response_model=SaleDetailResponse)
def get_sale_endpoint(
    sale_id: int,
    branch_id: int = Depends(get_branch_id),
    db: Session = Depends(get_db),
):
    return SaleDetailResponse(sale=get_sale_detail(db, sale_id=sale_id, branch_id=branch_id))
