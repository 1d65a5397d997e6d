from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from pos_api.api.deps import get_db, get_session_context
from pos_api.core.context import SessionContext
from pos_api.core.clock import utcnow
from pos_api.core.security import require_admin_key
from pos_api.db.models import Surcharge, Restaurant, OrderType
from pos_api.schemas.promotion import SurchargeCreate, SurchargeOut
from pos_api.services import promotions

router = APIRouter(dependencies=[Depends(require_admin_key)])

@router.get("/surcharges", response_model=list[SurchargeOut])
def list_surcharges(search: str | None = None, db: Session = Depends(get_db)):
    q = db.query(Surcharge)
    if search:
        q = q.filter(Surcharge.title.ilike(f"%{search.strip()}%"))
    return q.order_by(Surcharge.created_at.desc()).all()

@router.post("/surcharges", response_model=SurchargeOut)
def create_surcharge(body: SurchargeCreate, db: Session = Depends(get_db)):
    restaurants = []
    if body.restaurant_ids:
        restaurants = db.query(Restaurant).filter(Restaurant.id.in_(body.restaurant_ids)).all()
        if len(restaurants) != len(set(body.restaurant_ids)):
            raise HTTPException(status_code=404, detail="restaurant not found")

    s = Surcharge(
        **body.model_dump(exclude={"restaurant_ids", "order_types"}),
        order_types=[t.value for t in body.order_types],
        created_at=utcnow(),
    )
    s.restaurants = restaurants
    db.add(s)
    db.commit()
    db.refresh(s)
    return s

@router.get("/surcharges/for-order/{order_type}", response_model=list[SurchargeOut])
def surcharges_for_order(
    order_type: OrderType,
    restaurant_id: str | None = None,
    ctx: SessionContext = Depends(get_session_context),
    db: Session = Depends(get_db),
):
    return promotions.surcharges_for_order(db, order_type, restaurant_id or ctx.restaurant_id)
