from datetime import datetime
from decimal import Decimal
from pydantic import BaseModel, Field, model_validator
from pos_api.schemas.common import ORMBase
from pos_api.schemas.pricing import OrderDraft, PriceBreakdown
from pos_api.db.models import AdjustmentType, OrderType

MAX_PERCENT = Decimal("100")

def check_percentage(type_: AdjustmentType, amount: Decimal) -> None:
    if type_ == AdjustmentType.PERCENTAGE and amount is not None and amount > MAX_PERCENT:
        raise ValueError(f"percentage amount must be at most {MAX_PERCENT}, got {amount}")

class RestaurantRef(ORMBase):
    id: str
    title: str

class DiscountCreate(BaseModel):
    title: str
    description: str | None = None
    type: AdjustmentType
    amount: Decimal = Field(ge=0)
    min_order_amount: Decimal | None = Field(default=None, ge=0)
    max_order_amount: Decimal | None = Field(default=None, ge=0)
    order_types: list[OrderType] = Field(default_factory=lambda: list(OrderType))
    code: str | None = None
    is_active: bool = True
    start_date: datetime | None = None
    end_date: datetime | None = None
    max_uses: int | None = Field(default=None, ge=1)
    restaurant_ids: list[str] = []

    @model_validator(mode="after")
    def _percentage_range(self):
        check_percentage(self.type, self.amount)
        return self

class DiscountUpdate(BaseModel):
    title: str | None = None
    description: str | None = None
    amount: Decimal | None = Field(default=None, ge=0)
    min_order_amount: Decimal | None = Field(default=None, ge=0)
    max_order_amount: Decimal | None = Field(default=None, ge=0)
    order_types: list[OrderType] | None = None
    is_active: bool | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None
    max_uses: int | None = Field(default=None, ge=1)
    restaurant_ids: list[str] | None = None

class DiscountOut(ORMBase):
    id: str
    title: str
    description: str | None = None
    type: AdjustmentType
    amount: Decimal
    min_order_amount: Decimal | None = None
    max_order_amount: Decimal | None = None
    order_types: list[OrderType]
    code: str | None = None
    is_active: bool
    start_date: datetime | None = None
    end_date: datetime | None = None
    max_uses: int | None = None
    current_uses: int
    restaurants: list[RestaurantRef] = []
    created_at: datetime

class SurchargeCreate(BaseModel):
    title: str
    description: str | None = None
    type: AdjustmentType
    amount: Decimal = Field(ge=0)
    order_types: list[OrderType] = Field(default_factory=lambda: list(OrderType))
    is_active: bool = True
    start_date: datetime | None = None
    end_date: datetime | None = None
    restaurant_ids: list[str] = []

    @model_validator(mode="after")
    def _percentage_range(self):
        check_percentage(self.type, self.amount)
        return self

class SurchargeOut(ORMBase):
    id: str
    title: str
    description: str | None = None
    type: AdjustmentType
    amount: Decimal
    order_types: list[OrderType]
    is_active: bool
    start_date: datetime | None = None
    end_date: datetime | None = None
    restaurants: list[RestaurantRef] = []
    created_at: datetime

class PromoCodeApply(BaseModel):
    code: str = Field(min_length=1)
    draft: OrderDraft

class PromoCodeApplied(BaseModel):
    draft: OrderDraft
    breakdown: PriceBreakdown
