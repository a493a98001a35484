from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from erpmini.config import settings
from erpmini.db import get_db
from erpmini.dependencies import get_branch_id
from erpmini.schemas import (
    CustomerCreatedResponse,
    CustomerDueListResponse,
    CustomerIn,
    CustomerListResponse,
    CustomerNamesResponse,
    CustomerResponse,
    MessageResponse,
)
from erpmini.services.customer_service import (
    CustomerDraft,
    add_customer,
    customer_names,
    filter_customers_by_name,
    get_customer,
    list_customers,
    list_customers_with_due,
    update_customer,
)

router = APIRouter(prefix='/customers', tags=['customers'])


def _draft(branch_id: int, payload: CustomerIn) -> CustomerDraft:
    return CustomerDraft(branch_id=branch_id, name=payload.name, mobile=payload.mobile, address=payload.address)


@router.post('/', response_model=CustomerCreatedResponse, status_code=status.HTTP_201_CREATED)
def add_customer_endpoint(
    payload: CustomerIn,
    branch_id: int = Depends(get_branch_id),
    db: Session = Depends(get_db),
):
    customer_id = add_customer(db, _draft(branch_id, payload))
    return CustomerCreatedResponse(message='customer added successfully', customer_id=customer_id)


@router.get('/', response_model=CustomerListResponse)
def list_customers_endpoint(
    search: str | None = None,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=settings.default_page_limit, ge=1, le=500),
    branch_id: int = Depends(get_branch_id),
    db: Session = Depends(get_db),
):
    customers, total_count = list_customers(db, branch_id=branch_id, search=search, page=page, limit=limit)
    return CustomerListResponse(total_count=total_count, customers=customers)


@router.get('/names', response_model=CustomerNamesResponse)
def customer_names_endpoint(
    branch_id: int = Depends(get_branch_id),
    db: Session = Depends(get_db),
):
    return CustomerNamesResponse(customers=customer_names(db, branch_id=branch_id))


@router.get('/filter', response_model=CustomerNamesResponse)
def filter_customers_endpoint(
    name: str = Query(min_length=1),
    branch_id: int = Depends(get_branch_id),
    db: Session = Depends(get_db),
):
    return CustomerNamesResponse(customers=filter_customers_by_name(db, branch_id=branch_id, name=name))


@router.get('/with-due', response_model=CustomerDueListResponse)
def customers_with_due_endpoint(
    branch_id: int = Depends(get_branch_id),
    db: Session = Depends(get_db),
):
    return CustomerDueListResponse(customers=list_customers_with_due(db, branch_id=branch_id))


@router.get('/{customer_id}', response_model=CustomerResponse)
def get_customer_endpoint(
    customer_id: int,
    branch_id: int = Depends(get_branch_id),
    db: Session = Depends(get_db),
):
    return CustomerResponse(customer=get_customer(db, customer_id=customer_id, branch_id=branch_id))


@router.put('/{customer_id}', response_model=MessageResponse)
def update_customer_endpoint(
    customer_id: int,
    payload: CustomerIn,
    branch_id: int = Depends(get_branch_id),
    db: Session = Depends(get_db),
):
    update_customer(db, customer_id=customer_id, draft=_draft(branch_id, payload))
    return MessageResponse(message='customer updated successfully')
