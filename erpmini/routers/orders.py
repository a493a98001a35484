from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from erpmini.config import settings
from erpmini.db import get_db
from erpmini.dependencies import get_branch_id
from erpmini.schemas import (
    DeliveryIn,
    DeliveryResponse,
    MessageResponse,
    OrderCreatedResponse,
    OrderDetailResponse,
    OrderIn,
    OrderListResponse,
)
from erpmini.services.order_service import (
    DeliveryDraft,
    OrderDraft,
    OrderItemInput,
    create_order,
    get_order_detail,
    list_orders,
    record_delivery,
    update_order,
)

router = APIRouter(prefix='/products/orders', tags=['orders'])


def _draft(branch_id: int, payload: OrderIn) -> OrderDraft:
    return OrderDraft(
        branch_id=branch_id,
        salesperson_id=payload.salesperson_id,
        customer_id=payload.customer_id,
        order_date=payload.order_date,
        delivery_date=payload.delivery_date,
        total_amount=payload.total_amount,
        received_amount=payload.received_amount,
        payment_account_id=payload.payment_account_id,
        memo_no=payload.memo_no,
        notes=payload.notes,
        items=[
            OrderItemInput(product_id=item.product_id, quantity=item.quantity, subtotal=item.subtotal)
            for item in payload.items
        ],
    )


@router.post('/new', response_model=OrderCreatedResponse, status_code=status.HTTP_201_CREATED)
def create_order_endpoint(
    payload: OrderIn,
    branch_id: int = Depends(get_branch_id),
    db: Session = Depends(get_db),
):
    order_id = create_order(db, _draft(branch_id, payload))
    return OrderCreatedResponse(message='order created successfully', order_id=order_id)


@router.patch('/{order_id}', response_model=MessageResponse)
def update_order_endpoint(
    order_id: int,
    payload: OrderIn,
    branch_id: int = Depends(get_branch_id),
    db: Session = Depends(get_db),
):
    update_order(db, order_id=order_id, draft=_draft(branch_id, payload))
    return MessageResponse(message='order updated successfully')


@router.post('/{order_id}/delivery', response_model=DeliveryResponse)
def record_delivery_endpoint(
    order_id: int,
    payload: DeliveryIn,
    branch_id: int = Depends(get_branch_id),
    db: Session = Depends(get_db),
):
    new_status = record_delivery(
        db,
        order_id=order_id,
        draft=DeliveryDraft(
            branch_id=branch_id,
            delivery_date=payload.delivery_date,
            quantity=payload.quantity,
            amount=payload.amount,
            payment_account_id=payload.payment_account_id,
            delivered_by=payload.delivered_by,
        ),
    )
    return DeliveryResponse(message='delivery recorded successfully', order_status=new_status.value)


@router.get('', response_model=OrderListResponse)
def list_orders_endpoint(
    search: str | None = None,
    order_status: str | None = Query(default=None, alias='status'),
    page_index: int = Query(default=0, alias='pageIndex', ge=0),
    page_length: int = Query(default=settings.default_page_limit, alias='pageLength', ge=1, le=500),
    branch_id: int = Depends(get_branch_id),
    db: Session = Depends(get_db),
):
    orders, total_count = list_orders(
        db,
        branch_id=branch_id,
        search=search,
        status=order_status,
        page_index=page_index,
        page_length=page_length,
    )
    return OrderListResponse(total_count=total_count, orders=orders)


@router.get('/{order_id}', response_model=OrderDetailResponse)
def get_order_endpoint(
    order_id: int,
    branch_id: int = Depends(get_branch_id),
    db: Session = Depends(get_db),
):
    return OrderDetailResponse(order=get_order_detail(db, order_id=order_id, branch_id=branch_id))
