from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session, selectinload
from pos_api.api.deps import get_db, get_session_context
from pos_api.core.context import SessionContext
from pos_api.core.security import require_admin_key
from pos_api.db.models import Network, Restaurant, Product
from pos_api.schemas.catalog import (
    NetworkOut, RestaurantOut, ProductOut, RestaurantStatusOut, WorkingHoursIn, WorkingHoursOut
)
from pos_api.services import pricing, schedule
from pos_api.services.catalog import to_snapshot

router = APIRouter(dependencies=[Depends(require_admin_key)])

def _get_restaurant(db: Session, restaurant_id: str) -> Restaurant:
    r = db.query(Restaurant).filter(Restaurant.id == restaurant_id).first()
    if not r:
        raise HTTPException(status_code=404, detail="restaurant not found")
    return r

def _product_out(p: Product, restaurant_id: str | None) -> ProductOut:
    out = ProductOut.model_validate(p)
    if restaurant_id:
        snap = to_snapshot(p)
        out = out.model_copy(update={
            "effective_price": pricing.resolve_unit_price(snap, restaurant_id),
            "is_stop_list": pricing.is_stop_listed(snap, restaurant_id),
        })
    return out

@router.get("/networks", response_model=list[NetworkOut])
def list_networks(db: Session = Depends(get_db)):
    return db.query(Network).order_by(Network.name.asc()).all()

@router.get("/networks/{network_id}/restaurants", response_model=list[RestaurantOut])
def list_restaurants(network_id: str, db: Session = Depends(get_db)):
    network = db.query(Network).filter(Network.id == network_id).first()
    if not network:
        raise HTTPException(status_code=404, detail="network not found")
    return db.query(Restaurant).filter(Restaurant.network_id == network_id).order_by(Restaurant.title.asc()).all()

@router.get("/restaurants/{restaurant_id}", response_model=RestaurantOut)
def get_restaurant(restaurant_id: str, db: Session = Depends(get_db)):
    return _get_restaurant(db, restaurant_id)

@router.get("/restaurants/{restaurant_id}/working-hours", response_model=list[WorkingHoursOut])
def get_working_hours(restaurant_id: str, db: Session = Depends(get_db)):
    return _get_restaurant(db, restaurant_id).working_hours

@router.put("/restaurants/{restaurant_id}/working-hours", response_model=list[WorkingHoursOut])
def put_working_hours(restaurant_id: str, body: list[WorkingHoursIn], db: Session = Depends(get_db)):
    r = schedule.set_working_hours(db, _get_restaurant(db, restaurant_id), body)
    return r.working_hours

@router.get("/restaurants/{restaurant_id}/status", response_model=RestaurantStatusOut)
def get_restaurant_status(restaurant_id: str, db: Session = Depends(get_db)):
    is_open, message = schedule.restaurant_status(_get_restaurant(db, restaurant_id))
    return RestaurantStatusOut(restaurant_id=restaurant_id, is_open=is_open, message=message)

@router.get("/products", response_model=list[ProductOut])
def list_products(
    search: str | None = None,
    active: int = 1,
    skip: int = 0,
    limit: int = 50,
    ctx: SessionContext = Depends(get_session_context),
    db: Session = Depends(get_db),
):
    q = db.query(Product).options(selectinload(Product.restaurant_prices), selectinload(Product.additives))
    if ctx.network_id:
        q = q.filter(Product.network_id == ctx.network_id)
    if active in (0, 1):
        q = q.filter(Product.active == bool(active))
    if search:
        q = q.filter(Product.title.ilike(f"%{search.strip()}%"))
    rows = q.order_by(Product.title.asc()).offset(max(skip, 0)).limit(min(max(limit, 1), 200)).all()
    return [_product_out(p, ctx.restaurant_id) for p in rows]

@router.get("/products/{product_id}", response_model=ProductOut)
def get_product(product_id: str, ctx: SessionContext = Depends(get_session_context), db: Session = Depends(get_db)):
    p = db.query(Product).filter(Product.id == product_id).first()
    if not p:
        raise HTTPException(status_code=404, detail="product not found")
    return _product_out(p, ctx.restaurant_id)
