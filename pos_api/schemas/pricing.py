from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP
from pydantic import BaseModel, ConfigDict, Field

from pos_api.db.models import OrderType, AdjustmentType

CENT = Decimal("0.01")


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


# -----------------------
# Catalog snapshot (read-only input)
# -----------------------
class RestaurantPrice(_Frozen):
    restaurant_id: str
    price: Decimal
    is_stop_list: bool = False

class AdditivePrice(_Frozen):
    id: str
    title: str = ""
    price: Decimal

class ProductSnapshot(_Frozen):
    id: str
    title: str = ""
    base_price: Decimal
    restaurant_prices: list[RestaurantPrice] = []
    additives: list[AdditivePrice] = []


# -----------------------
# Draft
# -----------------------
class LineItem(_Frozen):
    product_id: str
    quantity: int = Field(gt=0)
    additive_ids: list[str] = []
    comment: str | None = None

class DeliveryZoneRef(_Frozen):
    id: str
    title: str = ""
    price: Decimal
    min_order: Decimal | None = None

class AppliedSurcharge(_Frozen):
    id: str
    title: str = ""
    amount: Decimal
    type: AdjustmentType

class AppliedDiscount(_Frozen):
    id: str
    title: str = ""
    amount: Decimal
    type: AdjustmentType
    min_order_amount: Decimal | None = None
    max_order_amount: Decimal | None = None

class OrderDraft(_Frozen):
    restaurant_id: str
    type: OrderType = OrderType.DINE_IN
    items: list[LineItem] = []
    delivery_zone: DeliveryZoneRef | None = None
    surcharges: list[AppliedSurcharge] = []
    discounts: list[AppliedDiscount] = []


# -----------------------
# Result
# -----------------------
class PriceBreakdown(_Frozen):
    items_total: Decimal
    delivery_cost: Decimal
    base_price: Decimal
    surcharge_total: Decimal
    discount_total: Decimal
    total: Decimal
    savings: Decimal

    def rounded(self) -> "PriceBreakdown":
        """Presentation copy: every figure to 2 places, half up."""
        return PriceBreakdown(**{
            k: v.quantize(CENT, rounding=ROUND_HALF_UP)
            for k, v in self.model_dump().items()
        })
