from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from erpmini.db import unit_of_work
from erpmini.errors import NotFoundError, ValidationError
from erpmini.logging_config import get_logger
from erpmini.models import Supplier

logger = get_logger(__name__)


@dataclass(frozen=True)
class SupplierDraft:
    branch_id: int
    name: str
    mobile: str | None = None


def _validate_draft(draft: SupplierDraft) -> None:
    if not draft.name.strip():
        raise ValidationError('supplier name is required')


def _as_dict(supplier: Supplier) -> dict:
    return {
        'id': supplier.id,
        'name': supplier.name,
        'mobile': supplier.mobile,
        'branch_id': supplier.branch_id,
    }


def require_supplier(db: Session, *, supplier_id: int, branch_id: int) -> Supplier:
    supplier = db.execute(
        select(Supplier).where(Supplier.id == supplier_id, Supplier.branch_id == branch_id)
    ).scalar_one_or_none()
    if supplier is None:
        raise NotFoundError('Supplier not found')
    return supplier


def add_supplier(db: Session, draft: SupplierDraft) -> int:
    _validate_draft(draft)
    with unit_of_work(db):
        supplier = Supplier(name=draft.name.strip(), mobile=draft.mobile, branch_id=draft.branch_id)
        db.add(supplier)
        db.flush()
        supplier_id = supplier.id

    logger.info('supplier added', extra={'supplier_id': supplier_id, 'branch_id': draft.branch_id})
    return supplier_id


def update_supplier(db: Session, *, supplier_id: int, draft: SupplierDraft) -> None:
    _validate_draft(draft)
    with unit_of_work(db):
        supplier = require_supplier(db, supplier_id=supplier_id, branch_id=draft.branch_id)
        supplier.name = draft.name.strip()
        supplier.mobile = draft.mobile

    logger.info('supplier updated', extra={'supplier_id': supplier_id, 'branch_id': draft.branch_id})


def get_supplier(db: Session, *, supplier_id: int, branch_id: int) -> dict:
    return _as_dict(require_supplier(db, supplier_id=supplier_id, branch_id=branch_id))


def list_suppliers(
    db: Session,
    *,
    branch_id: int,
    search: str | None = None,
    page: int = 1,
    limit: int = 10,
) -> tuple[list[dict], int]:
    conditions = [Supplier.branch_id == branch_id]
    if search:
        pattern = f'%{search.strip()}%'
        conditions.append(or_(Supplier.name.ilike(pattern), Supplier.mobile.ilike(pattern)))

    total_count = db.execute(select(func.count(Supplier.id)).where(*conditions)).scalar_one()
    rows = db.execute(
        select(Supplier)
        .where(*conditions)
        .order_by(Supplier.name.asc())
        .offset((page - 1) * limit)
        .limit(limit)
    ).scalars().all()
    return [_as_dict(supplier) for supplier in rows], total_count
