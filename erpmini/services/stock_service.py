from __future__ import annotations

from dataclasses import dataclass
from datetime import date

from sqlalchemy import String, cast, func, or_, select, update
from sqlalchemy.orm import Session

from erpmini.db import unit_of_work
from erpmini.errors import NotFoundError, ValidationError
from erpmini.logging_config import get_logger
from erpmini.models import Branch, Product, ProductStockRegistry
from erpmini.services.ledger_service import generate_memo_no

logger = get_logger(__name__)


@dataclass(frozen=True)
class RestockItem:
    product_id: int
    quantity: int


def list_products(db: Session) -> list[dict]:
    rows = db.execute(select(Product).order_by(Product.product_name.asc())).scalars().all()
    return [
        {'id': product.id, 'product_name': product.product_name, 'quantity': product.quantity}
        for product in rows
    ]


def require_products(db: Session, *, product_ids: list[int]) -> None:
    wanted = set(product_ids)
    found = set(db.execute(select(Product.id).where(Product.id.in_(wanted))).scalars().all())
    missing = sorted(wanted - found)
    if missing:
        raise NotFoundError(f'Product {missing[0]} not found')


def restock_products(
    db: Session,
    *,
    branch_id: int,
    stock_date: date,
    items: list[RestockItem],
    memo_no: str | None = None,
) -> str:
    if not items:
        raise ValidationError('restock must contain at least one item')
    for item in items:
        if item.quantity <= 0:
            raise ValidationError('restock quantity must be positive')

    memo_no = memo_no or generate_memo_no(stock_date)
    with unit_of_work(db):
        for item in items:
            result = db.execute(
                update(Product)
                .where(Product.id == item.product_id)
                .values(quantity=Product.quantity + item.quantity)
                .execution_options(synchronize_session='fetch')
            )
            if result.rowcount == 0:
                raise NotFoundError(f'Product {item.product_id} not found')
            db.add(
                ProductStockRegistry(
                    memo_no=memo_no,
                    stock_date=stock_date,
                    branch_id=branch_id,
                    product_id=item.product_id,
                    quantity=item.quantity,
                )
            )

    logger.info('products restocked', extra={'memo_no': memo_no, 'branch_id': branch_id, 'items': len(items)})
    return memo_no


def stock_report(
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
        ProductStockRegistry.branch_id == branch_id,
        ProductStockRegistry.stock_date >= start_date,
        ProductStockRegistry.stock_date <= end_date,
    ]
    if search:
        pattern = f'%{search.strip()}%'
        conditions.append(
            or_(
                ProductStockRegistry.memo_no.ilike(pattern),
                Product.product_name.ilike(pattern),
                cast(ProductStockRegistry.stock_date, String).ilike(pattern),
            )
        )

    total_count, total_quantity = db.execute(
        select(func.count(ProductStockRegistry.id), func.coalesce(func.sum(ProductStockRegistry.quantity), 0))
        .join(Product, Product.id == ProductStockRegistry.product_id)
        .where(*conditions)
    ).one()
    rows = db.execute(
        select(ProductStockRegistry, Product.product_name, Branch.name)
        .join(Product, Product.id == ProductStockRegistry.product_id)
        .join(Branch, Branch.id == ProductStockRegistry.branch_id)
        .where(*conditions)
        .order_by(ProductStockRegistry.stock_date.desc(), ProductStockRegistry.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    ).all()
    return (
        [
            {
                'id': entry.id,
                'memo_no': entry.memo_no,
                'stock_date': entry.stock_date,
                'branch_id': entry.branch_id,
                'branch_name': branch_name,
                'product_id': entry.product_id,
                'product_name': product_name,
                'quantity': entry.quantity,
            }
            for entry, product_name, branch_name in rows
        ],
        total_count,
        {'quantity': int(total_quantity)},
    )
