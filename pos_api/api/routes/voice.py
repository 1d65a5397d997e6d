from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from pos_api.api.deps import get_db, get_ai_client, get_session_context
from pos_api.core.context import SessionContext
from pos_api.core.security import require_admin_key
from pos_api.schemas.voice import VoiceParseRequest, VoiceParseOut
from pos_api.services import voice_order
from pos_api.services.ai_client import AIClient
from pos_api.services.orders import resolve_restaurant_id

router = APIRouter(dependencies=[Depends(require_admin_key)])

@router.post("/voice/parse", response_model=VoiceParseOut)
def parse_voice(
    body: VoiceParseRequest,
    ctx: SessionContext = Depends(get_session_context),
    db: Session = Depends(get_db),
    client: AIClient = Depends(get_ai_client),
):
    restaurant_id = resolve_restaurant_id(body.restaurant_id, ctx)
    return voice_order.parse_voice_order(db, client, body, restaurant_id)
