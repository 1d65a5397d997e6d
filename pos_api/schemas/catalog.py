from datetime import datetime, time
from decimal import Decimal
from pydantic import BaseModel, Field, model_validator
from pos_api.schemas.common import ORMBase

class NetworkOut(ORMBase):
    id: str
    name: str
    created_at: datetime

class RestaurantOut(ORMBase):
    id: str
    network_id: str
    title: str
    address: str | None = None
    utc_offset_minutes: int = 0
    created_at: datetime

class AdditiveOut(ORMBase):
    id: str
    title: str
    price: Decimal

class RestaurantPriceOut(ORMBase):
    restaurant_id: str
    price: Decimal
    is_stop_list: bool

class ProductOut(ORMBase):
    id: str
    network_id: str
    title: str
    price: Decimal
    active: bool
    additives: list[AdditiveOut] = []
    restaurant_prices: list[RestaurantPriceOut] = []
    # filled when a restaurant is selected
    effective_price: Decimal | None = None
    is_stop_list: bool | None = None

class WorkingHoursIn(BaseModel):
    weekday: int = Field(ge=0, le=6)  # 0 = Monday
    is_working: bool = True
    open_time: time | None = None
    close_time: time | None = None

    @model_validator(mode="after")
    def _times_for_working_day(self):
        if self.is_working and (self.open_time is None or self.close_time is None):
            raise ValueError("a working day needs open_time and close_time")
        return self

class WorkingHoursOut(ORMBase):
    weekday: int
    is_working: bool
    open_time: time | None = None
    close_time: time | None = None

class RestaurantStatusOut(BaseModel):
    restaurant_id: str
    is_open: bool
    message: str
