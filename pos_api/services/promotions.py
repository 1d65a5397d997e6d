from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy.orm import Session

from pos_api.core.clock import utcnow
from pos_api.core.errors import PromoCodeNotFound, PromotionIncompatible
from pos_api.db.models import Discount, Surcharge, OrderType
from pos_api.schemas.pricing import AppliedDiscount, AppliedSurcharge, OrderDraft
from pos_api.services import pricing

logger = logging.getLogger(__name__)


def to_applied_discount(d: Discount) -> AppliedDiscount:
    return AppliedDiscount(
        id=d.id,
        title=d.title,
        amount=d.amount,
        type=d.type,
        min_order_amount=d.min_order_amount,
        max_order_amount=d.max_order_amount,
    )


def to_applied_surcharge(s: Surcharge) -> AppliedSurcharge:
    return AppliedSurcharge(id=s.id, title=s.title, amount=s.amount, type=s.type)


def in_window(start: datetime | None, end: datetime | None, now: datetime) -> bool:
    if start is not None and now < start:
        return False
    if end is not None and now > end:
        return False
    return True


def _scoped_to(record: Discount | Surcharge, restaurant_id: str) -> bool:
    # no restaurants assigned = valid everywhere in the network
    if not record.restaurants:
        return True
    return any(r.id == restaurant_id for r in record.restaurants)


def surcharge_refusal(
    s: Surcharge, order_type: OrderType, restaurant_id: str | None, now: datetime
) -> str | None:
    """Why a surcharge can't go on this order, or None when it applies."""
    if not s.is_active:
        return "is switched off"
    if order_type.value not in (s.order_types or []):
        return f"is not valid for {order_type.value} orders"
    if not in_window(s.start_date, s.end_date, now):
        return "is not valid at this time"
    if restaurant_id is not None and not _scoped_to(s, restaurant_id):
        return "is not valid in this restaurant"
    return None


def surcharges_for_order(
    db: Session, order_type: OrderType, restaurant_id: str | None, now: datetime | None = None
) -> list[Surcharge]:
    """Active surcharges that apply to an order type (and restaurant, when given)."""
    now = now or utcnow()
    rows = db.query(Surcharge).filter(Surcharge.is_active.is_(True)).order_by(Surcharge.title.asc()).all()
    return [s for s in rows if surcharge_refusal(s, order_type, restaurant_id, now) is None]


def check_surcharge(s: Surcharge, draft: OrderDraft, now: datetime | None = None) -> None:
    reason = surcharge_refusal(s, draft.type, draft.restaurant_id, now or utcnow())
    if reason:
        raise PromotionIncompatible(f"surcharge '{s.title}' {reason}")


def find_by_code(db: Session, code: str) -> Discount:
    code = code.strip()
    d = db.query(Discount).filter(Discount.code == code).first()
    if not d or not d.is_active:
        raise PromoCodeNotFound(f"promo code '{code}' not found")
    return d


def check_compatibility(discount: Discount, draft: OrderDraft, now: datetime | None = None) -> None:
    """Active flag, order type, restaurant scope, validity window and usage limit."""
    now = now or utcnow()
    if not discount.is_active:
        raise PromotionIncompatible(f"'{discount.title}' is switched off")
    if draft.type.value not in (discount.order_types or []):
        raise PromotionIncompatible(f"'{discount.title}' is not valid for {draft.type.value} orders")
    if not _scoped_to(discount, draft.restaurant_id):
        raise PromotionIncompatible(f"'{discount.title}' is not valid in this restaurant")
    if not in_window(discount.start_date, discount.end_date, now):
        raise PromotionIncompatible(f"'{discount.title}' is not valid at this time")
    if discount.max_uses is not None and discount.current_uses >= discount.max_uses:
        raise PromotionIncompatible(f"'{discount.title}' has reached its usage limit")


def apply_promo_code(
    db: Session,
    code: str,
    draft: OrderDraft,
    product_lookup: pricing.ProductLookup,
    now: datetime | None = None,
) -> OrderDraft:
    """Return a copy of draft with the promo discount appended.

    The input draft is left as is on every rejection path.
    """
    discount = find_by_code(db, code)
    check_compatibility(discount, draft, now)

    if any(d.id == discount.id for d in draft.discounts):
        raise PromotionIncompatible(f"'{discount.title}' is already applied")
    pricing.ensure_draft_orderable(draft, product_lookup)

    applied = to_applied_discount(discount)
    base_price = pricing.compute_base_price(draft, product_lookup)
    pricing.check_discount_eligibility(applied, base_price)

    logger.info(f"[promo] {code} applied to draft for restaurant {draft.restaurant_id}")
    return draft.model_copy(update={"discounts": [*draft.discounts, applied]})
