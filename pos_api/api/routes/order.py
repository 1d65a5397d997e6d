from datetime import datetime
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session, selectinload
from pos_api.api.deps import get_db, get_geocoder, get_session_context
from pos_api.core.context import SessionContext
from pos_api.core.security import require_admin_key
from pos_api.db.models import Order, OrderType
from pos_api.schemas.order import OrderCreate, OrderOut
from pos_api.services import orders
from pos_api.services.delivery import GeocoderClient

router = APIRouter(dependencies=[Depends(require_admin_key)])

def _with_children(q):
    return q.options(
        selectinload(Order.lines),
        selectinload(Order.surcharges),
        selectinload(Order.discounts),
    )

@router.post("/orders", response_model=OrderOut)
def create_order(
    body: OrderCreate,
    ctx: SessionContext = Depends(get_session_context),
    db: Session = Depends(get_db),
    geocoder: GeocoderClient = Depends(get_geocoder),
):
    return orders.submit_order(db, ctx, body, geocoder)

@router.get("/orders", response_model=list[OrderOut])
def list_orders(
    restaurant_id: str | None = None,
    type: OrderType | None = None,
    from_: datetime | None = None,
    to: datetime | None = None,
    skip: int = 0,
    limit: int = 50,
    ctx: SessionContext = Depends(get_session_context),
    db: Session = Depends(get_db),
):
    q = _with_children(db.query(Order))
    restaurant_id = restaurant_id or ctx.restaurant_id
    if restaurant_id:
        q = q.filter(Order.restaurant_id == restaurant_id)
    if type:
        q = q.filter(Order.type == type)
    if from_:
        q = q.filter(Order.created_at >= from_)
    if to:
        q = q.filter(Order.created_at < to)
    return q.order_by(Order.created_at.desc()).offset(max(skip, 0)).limit(min(max(limit, 1), 200)).all()

@router.get("/orders/{order_id}", response_model=OrderOut)
def get_order(order_id: str, db: Session = Depends(get_db)):
    o = _with_children(db.query(Order)).filter(Order.id == order_id).first()
    if not o:
        raise HTTPException(status_code=404, detail="order not found")
    return o
