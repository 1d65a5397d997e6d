from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from pos_api.api.deps import get_db
from pos_api.core.clock import utcnow
from pos_api.core.errors import ValidationFailed
from pos_api.core.security import require_admin_key
from pos_api.db.models import Discount, Restaurant
from pos_api.schemas.promotion import DiscountCreate, DiscountUpdate, DiscountOut, check_percentage
from pos_api.services import promotions

router = APIRouter(dependencies=[Depends(require_admin_key)])

def _restaurants(db: Session, ids: list[str]) -> list[Restaurant]:
    if not ids:
        return []
    rows = db.query(Restaurant).filter(Restaurant.id.in_(ids)).all()
    if len(rows) != len(set(ids)):
        raise HTTPException(status_code=404, detail="restaurant not found")
    return rows

@router.get("/discounts", response_model=list[DiscountOut])
def list_discounts(
    restaurant_id: str | None = None,
    include_codes: int = 1,
    active: int | None = None,
    db: Session = Depends(get_db),
):
    q = db.query(Discount)
    if active in (0, 1):
        q = q.filter(Discount.is_active == bool(active))
    if not include_codes:
        q = q.filter(Discount.code.is_(None))
    rows = q.order_by(Discount.created_at.desc()).all()
    if restaurant_id:
        rows = [d for d in rows if not d.restaurants or any(r.id == restaurant_id for r in d.restaurants)]
    return rows

@router.post("/discounts", response_model=DiscountOut)
def create_discount(body: DiscountCreate, db: Session = Depends(get_db)):
    code = body.code.strip() if body.code else None
    if code and db.query(Discount).filter(Discount.code == code).first():
        raise HTTPException(status_code=409, detail="promo code already exists")

    data = body.model_dump(exclude={"restaurant_ids", "code", "order_types"})
    d = Discount(
        **data,
        code=code or None,
        order_types=[t.value for t in body.order_types],
        current_uses=0,
        created_at=utcnow(),
    )
    d.restaurants = _restaurants(db, body.restaurant_ids)
    db.add(d)
    db.commit()
    db.refresh(d)
    return d

@router.get("/discounts/promo/{code}", response_model=DiscountOut)
def get_discount_by_code(code: str, db: Session = Depends(get_db)):
    return promotions.find_by_code(db, code)

@router.get("/discounts/{discount_id}", response_model=DiscountOut)
def get_discount(discount_id: str, db: Session = Depends(get_db)):
    d = db.query(Discount).filter(Discount.id == discount_id).first()
    if not d:
        raise HTTPException(status_code=404, detail="discount not found")
    return d

@router.patch("/discounts/{discount_id}", response_model=DiscountOut)
def update_discount(discount_id: str, body: DiscountUpdate, db: Session = Depends(get_db)):
    d = db.query(Discount).filter(Discount.id == discount_id).first()
    if not d:
        raise HTTPException(status_code=404, detail="discount not found")

    data = body.model_dump(exclude_unset=True)
    if "restaurant_ids" in data:
        d.restaurants = _restaurants(db, data.pop("restaurant_ids") or [])
    if "order_types" in data:
        d.order_types = [t.value for t in (data.pop("order_types") or [])]
    for k, v in data.items():
        setattr(d, k, v)
    try:
        check_percentage(d.type, d.amount)
    except ValueError as e:
        db.rollback()
        raise ValidationFailed(str(e))
    db.commit()
    db.refresh(d)
    return d
