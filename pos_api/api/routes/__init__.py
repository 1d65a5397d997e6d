from fastapi import APIRouter
from pos_api.api.routes import catalog, pricing, discount, surcharge, delivery, order, payment, voice

api_router = APIRouter()
api_router.include_router(catalog.router, tags=["catalog"])
api_router.include_router(pricing.router, tags=["pricing"])
api_router.include_router(discount.router, tags=["discount"])
api_router.include_router(surcharge.router, tags=["surcharge"])
api_router.include_router(delivery.router, tags=["delivery"])
api_router.include_router(order.router, tags=["order"])
api_router.include_router(payment.router, tags=["payment"])
api_router.include_router(voice.router, tags=["voice"])
