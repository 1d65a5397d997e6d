from typing import Generator
from fastapi import Header
from sqlalchemy.orm import Session
from pos_api.core.context import SessionContext
from pos_api.db.session import SessionLocal
from pos_api.services.delivery import GeocoderClient
from pos_api.services.ai_client import AIClient

def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

def get_session_context(
    x_network_id: str | None = Header(default=None, alias="X-NETWORK-ID"),
    x_restaurant_id: str | None = Header(default=None, alias="X-RESTAURANT-ID"),
) -> SessionContext:
    return SessionContext(network_id=x_network_id or None, restaurant_id=x_restaurant_id or None)

def get_geocoder() -> GeocoderClient:
    return GeocoderClient()

def get_ai_client() -> AIClient:
    return AIClient()
