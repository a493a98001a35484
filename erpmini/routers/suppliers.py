from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from erpmini.config import settings
from erpmini.db import get_db
from erpmini.dependencies import get_branch_id
from erpmini.schemas import (
    MessageResponse,
    SupplierCreatedResponse,
    SupplierIn,
    SupplierListResponse,
    SupplierResponse,
)
from erpmini.services.supplier_service import (
    SupplierDraft,
    add_supplier,
    get_supplier,
    list_suppliers,
    update_supplier,
)

router = APIRouter(prefix='/suppliers', tags=['suppliers'])


def _draft(branch_id: int, payload: SupplierIn) -> SupplierDraft:
    return SupplierDraft(branch_id=branch_id, name=payload.name, mobile=payload.mobile)


@router.post('/', response_model=SupplierCreatedResponse, status_code=status.HTTP_201_CREATED)
def add_supplier_endpoint(
    payload: SupplierIn,
    branch_id: int = Depends(get_branch_id),
    db: Session = Depends(get_db),
):
    supplier_id = add_supplier(db, _draft(branch_id, payload))
    return SupplierCreatedResponse(message='supplier added successfully', supplier_id=supplier_id)


@router.get('/', response_model=SupplierListResponse)
def list_suppliers_endpoint(
    search: str | None = None,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=settings.default_page_limit, ge=1, le=500),
    branch_id: int = Depends(get_branch_id),
    db: Session = Depends(get_db),
):
    suppliers, total_count = list_suppliers(db, branch_id=branch_id, search=search, page=page, limit=limit)
    return SupplierListResponse(total_count=total_count, suppliers=suppliers)


@router.get('/{supplier_id}', response_model=SupplierResponse)
def get_supplier_endpoint(
    supplier_id: int,
    branch_id: int = Depends(get_branch_id),
    db: Session = Depends(get_db),
):
    return SupplierResponse(supplier=get_supplier(db, supplier_id=supplier_id, branch_id=branch_id))


@router.put('/{supplier_id}', response_model=MessageResponse)
def update_supplier_endpoint(
    supplier_id: int,
    payload: SupplierIn,
    branch_id: int = Depends(get_branch_id),
    db: Session = Depends(get_db),
):
    update_supplier(db, supplier_id=supplier_id, draft=_draft(branch_id, payload))
    return MessageResponse(message='supplier updated successfully')
