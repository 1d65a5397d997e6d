from typing import Literal
from pydantic import BaseModel, Field
from pos_api.schemas.pricing import LineItem, PriceBreakdown
from pos_api.db.models import OrderType

VoiceAction = Literal["ADD_ITEMS", "REMOVE_ITEMS", "MODIFY_QUANTITY", "CLEAR_ORDER", "SET_ORDER_TYPE", "NONE"]

class VoiceParseRequest(BaseModel):
    text: str = Field(min_length=1)
    restaurant_id: str | None = None
    type: OrderType = OrderType.DINE_IN
    items: list[LineItem] = []
    language: Literal["ru", "ka"] = "ru"

class AIItemToAdd(BaseModel):
    product_id: str | None = None
    product_title: str | None = None
    quantity: int = Field(default=1, ge=1)
    comment: str | None = None

class AIItemToModify(BaseModel):
    product_id: str
    quantity: int = Field(ge=0)

class AIAction(BaseModel):
    """Structured reply expected from the AI endpoint."""
    action: VoiceAction = "NONE"
    items_to_add: list[AIItemToAdd] = []
    items_to_remove: list[str] = []
    items_to_modify: list[AIItemToModify] = []
    order_type: OrderType | None = None
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    message: str | None = None

class VoiceParseOut(BaseModel):
    action: VoiceAction
    type: OrderType
    items: list[LineItem]
    added: list[str] = []
    not_found: list[str] = []
    confidence: float
    message: str | None = None
    breakdown: PriceBreakdown
