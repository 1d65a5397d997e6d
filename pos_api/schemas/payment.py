from datetime import datetime
from pydantic import BaseModel
from pos_api.schemas.common import ORMBase
from pos_api.db.models import PaymentProvider

class PaymentIntegrationCreate(BaseModel):
    name: str
    provider: PaymentProvider
    is_active: bool = True
    is_test_mode: bool = False
    credentials: dict[str, str] = {}
    webhook_url: str | None = None
    success_url: str | None = None
    fail_url: str | None = None

class PaymentIntegrationUpdate(BaseModel):
    name: str | None = None
    is_active: bool | None = None
    is_test_mode: bool | None = None
    credentials: dict[str, str] | None = None
    webhook_url: str | None = None
    success_url: str | None = None
    fail_url: str | None = None

class PaymentIntegrationOut(ORMBase):
    id: str
    restaurant_id: str
    name: str
    provider: PaymentProvider
    is_active: bool
    is_test_mode: bool
    credentials: dict[str, str]
    webhook_url: str | None = None
    success_url: str | None = None
    fail_url: str | None = None
    created_at: datetime
    updated_at: datetime

class ProviderField(BaseModel):
    name: str
    required: bool
    secret: bool = False

class ProviderFieldsOut(BaseModel):
    provider: PaymentProvider
    fields: list[ProviderField]
