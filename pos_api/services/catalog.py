from __future__ import annotations

from typing import Iterable

from sqlalchemy.orm import Session, selectinload

from pos_api.db.models import Product
from pos_api.schemas.pricing import AdditivePrice, ProductSnapshot, RestaurantPrice


def to_snapshot(product: Product) -> ProductSnapshot:
    return ProductSnapshot(
        id=product.id,
        title=product.title,
        base_price=product.price,
        restaurant_prices=[
            RestaurantPrice(restaurant_id=rp.restaurant_id, price=rp.price, is_stop_list=rp.is_stop_list)
            for rp in product.restaurant_prices
        ],
        additives=[AdditivePrice(id=a.id, title=a.title, price=a.price) for a in product.additives],
    )


def _products_query(db: Session):
    return db.query(Product).options(
        selectinload(Product.restaurant_prices),
        selectinload(Product.additives),
    )


def build_product_lookup(db: Session, product_ids: Iterable[str]) -> dict[str, ProductSnapshot]:
    """Snapshot of the given products, keyed by id. Unknown ids are simply absent."""
    ids = sorted(set(product_ids))
    if not ids:
        return {}
    rows = _products_query(db).filter(Product.id.in_(ids)).all()
    return {p.id: to_snapshot(p) for p in rows}


def load_menu(db: Session, network_id: str | None = None, active_only: bool = True) -> list[ProductSnapshot]:
    q = _products_query(db)
    if network_id:
        q = q.filter(Product.network_id == network_id)
    if active_only:
        q = q.filter(Product.active.is_(True))
    return [to_snapshot(p) for p in q.order_by(Product.title.asc()).all()]
