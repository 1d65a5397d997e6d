from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from pos_api.api.deps import get_db
from pos_api.core.security import require_admin_key
from pos_api.schemas.order import QuoteRequest, QuoteOut, LineQuote
from pos_api.schemas.promotion import PromoCodeApply, PromoCodeApplied
from pos_api.services import catalog, pricing, promotions

router = APIRouter(dependencies=[Depends(require_admin_key)])

@router.post("/pricing/quote", response_model=QuoteOut)
def quote(body: QuoteRequest, db: Session = Depends(get_db)):
    draft = body.draft
    lookup = catalog.build_product_lookup(db, [i.product_id for i in draft.items])
    pricing.ensure_draft_orderable(draft, lookup)
    breakdown = pricing.price_draft(draft, lookup)
    if body.check_discounts:
        pricing.check_discounts(draft, breakdown.base_price)

    lines = []
    for item in draft.items:
        product = lookup[item.product_id]
        lines.append(LineQuote(
            product_id=item.product_id,
            quantity=item.quantity,
            unit_price=pricing.resolve_unit_price(product, draft.restaurant_id),
            additives_price=pricing.additives_price(product, item.additive_ids),
            line_total=pricing.line_total(item, product, draft.restaurant_id),
        ))
    return QuoteOut(lines=lines, breakdown=breakdown.rounded())

@router.post("/pricing/promo-code", response_model=PromoCodeApplied)
def apply_promo_code(body: PromoCodeApply, db: Session = Depends(get_db)):
    lookup = catalog.build_product_lookup(db, [i.product_id for i in body.draft.items])
    draft = promotions.apply_promo_code(db, body.code, body.draft, lookup)
    return PromoCodeApplied(draft=draft, breakdown=pricing.price_draft(draft, lookup).rounded())
