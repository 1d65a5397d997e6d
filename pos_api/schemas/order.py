from datetime import datetime
from decimal import Decimal
from pydantic import BaseModel, Field
from pos_api.schemas.common import ORMBase
from pos_api.schemas.pricing import LineItem, OrderDraft, PriceBreakdown
from pos_api.db.models import OrderType, OrderStatus, PaymentMethod

class QuoteRequest(BaseModel):
    draft: OrderDraft
    # gate the draft's discounts as a submission would
    check_discounts: bool = False

class LineQuote(BaseModel):
    product_id: str
    quantity: int
    unit_price: Decimal
    additives_price: Decimal
    line_total: Decimal

class QuoteOut(BaseModel):
    lines: list[LineQuote]
    breakdown: PriceBreakdown

class OrderCreate(BaseModel):
    restaurant_id: str | None = None
    type: OrderType
    items: list[LineItem] = Field(min_length=1)
    surcharge_ids: list[str] = []
    discount_ids: list[str] = []
    delivery_zone_id: str | None = None
    delivery_address: str | None = None
    customer_phone: str | None = None
    customer_name: str | None = None
    payment_method: PaymentMethod | None = None
    comment: str | None = None
    number_of_people: int | None = Field(default=None, ge=1)
    table_number: int | None = Field(default=None, ge=1)
    # total the client rendered; must match the server's computation
    client_total: Decimal | None = None
    # future time the order is for; bypasses the working hours gate
    scheduled_at: datetime | None = None

class OrderLineOut(ORMBase):
    id: int
    product_id: str
    quantity: int
    unit_price: Decimal
    additive_ids: list[str]
    additives_price: Decimal
    line_total: Decimal
    comment: str | None = None

class OrderSurchargeOut(ORMBase):
    surcharge_id: str
    amount: Decimal
    description: str | None = None

class OrderDiscountOut(ORMBase):
    discount_id: str
    amount: Decimal
    description: str | None = None

class OrderOut(ORMBase):
    id: str
    restaurant_id: str
    number: int
    type: OrderType
    status: OrderStatus
    payment_method: PaymentMethod | None = None
    base_price: Decimal
    total: Decimal
    savings: Decimal
    delivery_address: str | None = None
    delivery_zone_id: str | None = None
    delivery_price: Decimal | None = None
    customer_id: str | None = None
    comment: str | None = None
    number_of_people: int | None = None
    table_number: int | None = None
    scheduled_at: datetime | None = None
    created_at: datetime
    lines: list[OrderLineOut] = []
    surcharges: list[OrderSurchargeOut] = []
    discounts: list[OrderDiscountOut] = []
