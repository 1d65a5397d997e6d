from __future__ import annotations

import logging
import re
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from pos_api.core.clock import as_utc, utcnow
from pos_api.core.config import settings
from pos_api.core.context import SessionContext
from pos_api.core.errors import (
    DeliveryZoneRequired,
    MissingRestaurant,
    NegativeTotal,
    OrderNumberConflict,
    PromotionIncompatible,
    RecordNotFound,
    TotalMismatch,
    ValidationFailed,
)
from pos_api.db.models import (
    Customer, DeliveryZone, Discount, Order, OrderDiscount, OrderLine,
    OrderStatus, OrderSurcharge, OrderType, Restaurant, Surcharge,
)
from pos_api.schemas.order import OrderCreate
from pos_api.schemas.pricing import CENT, OrderDraft, PriceBreakdown
from pos_api.services import catalog, delivery, pricing, promotions, schedule

logger = logging.getLogger(__name__)

NUMBER_RETRIES = 3


def resolve_restaurant_id(body_restaurant_id: str | None, ctx: SessionContext) -> str:
    restaurant_id = body_restaurant_id or ctx.restaurant_id
    if not restaurant_id:
        raise MissingRestaurant("select a restaurant first")
    return restaurant_id


def _load_by_ids(db: Session, model, ids: list[str], label: str) -> list:
    if not ids:
        return []
    rows = db.query(model).filter(model.id.in_(ids)).all()
    by_id = {r.id: r for r in rows}
    missing = [i for i in ids if i not in by_id]
    if missing:
        raise RecordNotFound(f"{label} not found: {', '.join(missing)}")
    return [by_id[i] for i in ids]


def _resolve_zone(
    db: Session, body: OrderCreate, restaurant_id: str, geocoder: delivery.GeocoderClient | None
) -> DeliveryZone | None:
    if body.type != OrderType.DELIVERY:
        return None
    if body.delivery_zone_id:
        zone = db.query(DeliveryZone).filter(
            DeliveryZone.id == body.delivery_zone_id,
            DeliveryZone.restaurant_id == restaurant_id,
        ).first()
        if not zone:
            raise RecordNotFound("delivery zone not found")
        return zone
    if body.delivery_address and geocoder is not None:
        _, _, zone = delivery.resolve_zone_for_address(db, geocoder, restaurant_id, body.delivery_address)
        return zone
    raise DeliveryZoneRequired("delivery orders need an address inside a delivery zone")


def _link_customer(db: Session, phone: str | None, name: str | None) -> Customer | None:
    if not phone:
        return None
    digits = re.sub(r"\D", "", phone)
    if not digits:
        return None
    customer = db.query(Customer).filter(Customer.phone == digits).first()
    if customer:
        return customer
    # unknown phone: register as a new customer
    customer = Customer(phone=digits, name=name, created_at=utcnow())
    db.add(customer)
    db.flush()
    logger.info(f"[order] new customer {customer.id}")
    return customer


def _next_number(db: Session, restaurant_id: str) -> int:
    last = db.query(func.max(Order.number)).filter(Order.restaurant_id == restaurant_id).scalar()
    return (last or 0) + 1


def _reject_repeats(ids: list[str], label: str) -> None:
    seen = set()
    for i in ids:
        if i in seen:
            raise PromotionIncompatible(f"{label} {i} is applied more than once")
        seen.add(i)


def _build_order(
    db: Session,
    body: OrderCreate,
    draft: OrderDraft,
    breakdown: PriceBreakdown,
    product_lookup: pricing.ProductLookup,
    zone: DeliveryZone | None,
    now: datetime,
) -> Order:
    restaurant_id = draft.restaurant_id
    shown = breakdown.rounded()
    customer = _link_customer(db, body.customer_phone, body.customer_name)
    order = Order(
        restaurant_id=restaurant_id,
        number=_next_number(db, restaurant_id),
        type=body.type,
        status=OrderStatus.CREATED,
        payment_method=body.payment_method,
        base_price=shown.base_price,
        total=shown.total,
        savings=shown.savings,
        delivery_address=body.delivery_address if body.type == OrderType.DELIVERY else None,
        delivery_zone_id=zone.id if zone else None,
        delivery_price=shown.delivery_cost if zone else None,
        customer_id=customer.id if customer else None,
        comment=body.comment,
        number_of_people=body.number_of_people,
        table_number=body.table_number,
        scheduled_at=as_utc(body.scheduled_at) if body.scheduled_at else None,
        created_at=now,
    )
    for item in body.items:
        product = product_lookup[item.product_id]
        order.lines.append(OrderLine(
            product_id=item.product_id,
            quantity=item.quantity,
            unit_price=pricing.resolve_unit_price(product, restaurant_id),
            additive_ids=list(item.additive_ids),
            additives_price=pricing.additives_price(product, item.additive_ids),
            line_total=pricing.line_total(item, product, restaurant_id),
            comment=item.comment,
        ))
    base = breakdown.base_price
    for s in draft.surcharges:
        order.surcharges.append(OrderSurcharge(
            surcharge_id=s.id,
            amount=_money(pricing.adjustment_amount(s, base)),
            description=s.title,
        ))
    for d in draft.discounts:
        order.discounts.append(OrderDiscount(
            discount_id=d.id,
            amount=_money(pricing.adjustment_amount(d, base)),
            description=d.title,
        ))
    return order


def submit_order(
    db: Session,
    ctx: SessionContext,
    body: OrderCreate,
    geocoder: delivery.GeocoderClient | None = None,
) -> Order:
    restaurant_id = resolve_restaurant_id(body.restaurant_id, ctx)
    restaurant = db.query(Restaurant).filter(Restaurant.id == restaurant_id).first()
    if not restaurant:
        raise RecordNotFound("restaurant not found")
    if not body.items:
        raise ValidationFailed("order has no items")
    now = utcnow()
    schedule.ensure_accepting(restaurant, body.scheduled_at, now)
    _reject_repeats(body.surcharge_ids, "surcharge")
    _reject_repeats(body.discount_ids, "discount")

    product_lookup = catalog.build_product_lookup(db, [i.product_id for i in body.items])
    zone = _resolve_zone(db, body, restaurant_id, geocoder)
    surcharges = _load_by_ids(db, Surcharge, body.surcharge_ids, "surcharge")
    discounts = _load_by_ids(db, Discount, body.discount_ids, "discount")

    draft = OrderDraft(
        restaurant_id=restaurant_id,
        type=body.type,
        items=body.items,
        delivery_zone=delivery.to_zone_ref(zone) if zone else None,
        surcharges=[promotions.to_applied_surcharge(s) for s in surcharges],
        discounts=[promotions.to_applied_discount(d) for d in discounts],
    )
    pricing.ensure_draft_orderable(draft, product_lookup)
    for s in surcharges:
        promotions.check_surcharge(s, draft, now)
    for d in discounts:
        promotions.check_compatibility(d, draft, now)
    breakdown = pricing.price_draft(draft, product_lookup)

    if zone is not None and zone.min_order is not None and breakdown.items_total < zone.min_order:
        raise ValidationFailed(
            f"minimum order for zone '{zone.title}' is {zone.min_order:.2f} "
            f"({zone.min_order - breakdown.items_total:.2f} short)"
        )

    pricing.check_discounts(draft, breakdown.base_price)

    if breakdown.total < 0 and not settings.ALLOW_NEGATIVE_TOTAL:
        raise NegativeTotal(f"order total is negative ({breakdown.total:.2f}); remove a discount")

    shown = breakdown.rounded()
    if body.client_total is not None and _money(body.client_total) != shown.total:
        raise TotalMismatch(f"client total {body.client_total} differs from computed {shown.total}")

    # a concurrent submission can take the same number between max() and commit
    for attempt in range(1, NUMBER_RETRIES + 1):
        order = _build_order(db, body, draft, breakdown, product_lookup, zone, now)
        for d in discounts:
            d.current_uses = (d.current_uses or 0) + 1
        db.add(order)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            logger.warning(f"[order] number {order.number} taken in restaurant {restaurant_id} (attempt {attempt})")
            continue
        db.refresh(order)
        logger.info(f"[order] #{order.number} created for restaurant {restaurant_id}, total {order.total}")
        return order
    raise OrderNumberConflict("could not allocate an order number, try again")


def _money(v: Decimal) -> Decimal:
    return v.quantize(CENT, rounding=ROUND_HALF_UP)
