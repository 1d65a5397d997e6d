from datetime import datetime
from decimal import Decimal
from pydantic import BaseModel, Field
from pos_api.schemas.common import ORMBase

class DeliveryZoneCreate(BaseModel):
    title: str
    price: Decimal = Field(ge=0)
    min_order: Decimal | None = Field(default=None, ge=0)
    polygon: str  # WKT: POLYGON((lng lat, ...))
    priority: int | None = None

class DeliveryZoneOut(ORMBase):
    id: str
    restaurant_id: str
    title: str
    price: Decimal
    min_order: Decimal | None = None
    polygon: str
    priority: int
    created_at: datetime

class ZoneResolution(BaseModel):
    lat: float
    lng: float
    zone: DeliveryZoneOut
