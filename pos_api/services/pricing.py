"""Order pricing & promotion composition.

Pure functions over an OrderDraft snapshot. Nothing here touches the
database or the network; callers fetch products, zones, surcharges and
discounts first and pass them in.

    base_price = sum(qty * (unit_price + additives)) [+ zone price if DELIVERY]
    total      = base_price + surcharges - discounts

Percentage surcharges and discounts are computed against base_price only,
never against a running total.
"""
from __future__ import annotations

import logging
from decimal import Decimal
from typing import Mapping

from pos_api.core.errors import DiscountNotApplicable, ProductNotFound, ProductUnavailable
from pos_api.db.models import AdjustmentType, OrderType
from pos_api.schemas.pricing import (
    AppliedDiscount,
    AppliedSurcharge,
    LineItem,
    OrderDraft,
    PriceBreakdown,
    ProductSnapshot,
    RestaurantPrice,
)

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
HUNDRED = Decimal("100")

ProductLookup = Mapping[str, ProductSnapshot]


def _restaurant_price(product: ProductSnapshot, restaurant_id: str) -> RestaurantPrice | None:
    for rp in product.restaurant_prices:
        if rp.restaurant_id == restaurant_id:
            return rp
    return None


def resolve_unit_price(product: ProductSnapshot, restaurant_id: str) -> Decimal:
    rp = _restaurant_price(product, restaurant_id)
    if rp is not None:
        return rp.price
    return product.base_price


def is_stop_listed(product: ProductSnapshot, restaurant_id: str) -> bool:
    rp = _restaurant_price(product, restaurant_id)
    return bool(rp and rp.is_stop_list)


def ensure_orderable(product: ProductSnapshot, restaurant_id: str) -> None:
    if is_stop_listed(product, restaurant_id):
        raise ProductUnavailable(f"'{product.title or product.id}' is in the stop-list")


def ensure_draft_orderable(draft: OrderDraft, product_lookup: ProductLookup) -> None:
    """Every line must reference a known product that isn't stop-listed here."""
    for item in draft.items:
        product = product_lookup.get(item.product_id)
        if product is None:
            raise ProductNotFound(f"product {item.product_id} not found")
        ensure_orderable(product, draft.restaurant_id)


def additives_price(product: ProductSnapshot, additive_ids: list[str]) -> Decimal:
    prices = {a.id: a.price for a in product.additives}
    total = ZERO
    for additive_id in additive_ids:
        price = prices.get(additive_id)
        if price is None:
            # unknown additive on the product counts as free
            logger.debug(f"[pricing] additive {additive_id} not on product {product.id}")
            continue
        total += price
    return total


def line_total(item: LineItem, product: ProductSnapshot, restaurant_id: str) -> Decimal:
    unit = resolve_unit_price(product, restaurant_id)
    return item.quantity * (unit + additives_price(product, item.additive_ids))


def _lookup(product_lookup: ProductLookup, product_id: str) -> ProductSnapshot:
    product = product_lookup.get(product_id)
    if product is None:
        raise ProductNotFound(f"product {product_id} not found")
    return product


def compute_items_total(draft: OrderDraft, product_lookup: ProductLookup) -> Decimal:
    total = ZERO
    for item in draft.items:
        total += line_total(item, _lookup(product_lookup, item.product_id), draft.restaurant_id)
    return total


def delivery_cost(draft: OrderDraft) -> Decimal:
    if draft.type == OrderType.DELIVERY and draft.delivery_zone is not None:
        return draft.delivery_zone.price
    return ZERO


def compute_base_price(draft: OrderDraft, product_lookup: ProductLookup) -> Decimal:
    return compute_items_total(draft, product_lookup) + delivery_cost(draft)


def adjustment_amount(adjustment: AppliedSurcharge | AppliedDiscount, base_price: Decimal) -> Decimal:
    """Money value of one surcharge/discount against the base price."""
    if adjustment.type == AdjustmentType.FIXED:
        return adjustment.amount
    if adjustment.type == AdjustmentType.PERCENTAGE:
        return base_price * adjustment.amount / HUNDRED
    raise ValueError(f"unknown adjustment type: {adjustment.type!r}")


def surcharge_total(draft: OrderDraft, base_price: Decimal) -> Decimal:
    return sum((adjustment_amount(s, base_price) for s in draft.surcharges), ZERO)


def discount_total(draft: OrderDraft, base_price: Decimal) -> Decimal:
    return sum((adjustment_amount(d, base_price) for d in draft.discounts), ZERO)


def compute_total(draft: OrderDraft, base_price: Decimal) -> Decimal:
    # not clamped at zero; submission decides what to do with a negative total
    return base_price + surcharge_total(draft, base_price) - discount_total(draft, base_price)


def compute_savings(base_price: Decimal, total: Decimal) -> Decimal:
    return base_price - total


def price_draft(draft: OrderDraft, product_lookup: ProductLookup) -> PriceBreakdown:
    items = compute_items_total(draft, product_lookup)
    delivery = delivery_cost(draft)
    base = items + delivery
    total = compute_total(draft, base)
    return PriceBreakdown(
        items_total=items,
        delivery_cost=delivery,
        base_price=base,
        surcharge_total=surcharge_total(draft, base),
        discount_total=discount_total(draft, base),
        total=total,
        savings=compute_savings(base, total),
    )


# -----------------------
# Discount eligibility gate
# -----------------------
def check_discount_eligibility(discount: AppliedDiscount, base_price: Decimal) -> None:
    if discount.min_order_amount is not None and base_price < discount.min_order_amount:
        shortfall = discount.min_order_amount - base_price
        raise DiscountNotApplicable(
            f"'{discount.title}' requires a minimum order of {discount.min_order_amount:.2f} "
            f"({shortfall:.2f} short)"
        )
    if discount.max_order_amount is not None and base_price > discount.max_order_amount:
        excess = base_price - discount.max_order_amount
        raise DiscountNotApplicable(
            f"'{discount.title}' is limited to orders up to {discount.max_order_amount:.2f} "
            f"({excess:.2f} over)"
        )


def check_discounts(draft: OrderDraft, base_price: Decimal) -> None:
    for d in draft.discounts:
        check_discount_eligibility(d, base_price)
