from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from pos_api.api.deps import get_db
from pos_api.core.security import require_admin_key
from pos_api.db.models import PaymentIntegration, Restaurant
from pos_api.schemas.payment import (
    PaymentIntegrationCreate, PaymentIntegrationUpdate, PaymentIntegrationOut, ProviderFieldsOut
)
from pos_api.services import payments

router = APIRouter(dependencies=[Depends(require_admin_key)])

def _get_integration(db: Session, integration_id: str) -> PaymentIntegration:
    i = db.query(PaymentIntegration).filter(PaymentIntegration.id == integration_id).first()
    if not i:
        raise HTTPException(status_code=404, detail="payment integration not found")
    return i

@router.get("/payment-providers", response_model=list[ProviderFieldsOut])
def list_providers():
    return [ProviderFieldsOut(provider=p, fields=f) for p, f in payments.PROVIDER_FIELDS.items()]

@router.get("/restaurants/{restaurant_id}/payment-integrations", response_model=list[PaymentIntegrationOut])
def list_integrations(restaurant_id: str, db: Session = Depends(get_db)):
    rows = (
        db.query(PaymentIntegration)
        .filter(PaymentIntegration.restaurant_id == restaurant_id)
        .order_by(PaymentIntegration.created_at.asc())
        .all()
    )
    return [payments.to_out(i) for i in rows]

@router.post("/restaurants/{restaurant_id}/payment-integrations", response_model=PaymentIntegrationOut)
def create_integration(restaurant_id: str, body: PaymentIntegrationCreate, db: Session = Depends(get_db)):
    if not db.query(Restaurant).filter(Restaurant.id == restaurant_id).first():
        raise HTTPException(status_code=404, detail="restaurant not found")
    return payments.to_out(payments.create_integration(db, restaurant_id, body))

@router.patch("/payment-integrations/{integration_id}", response_model=PaymentIntegrationOut)
def update_integration(integration_id: str, body: PaymentIntegrationUpdate, db: Session = Depends(get_db)):
    i = _get_integration(db, integration_id)
    return payments.to_out(payments.update_integration(db, i, body))

@router.post("/payment-integrations/{integration_id}/toggle", response_model=PaymentIntegrationOut)
def toggle_integration(integration_id: str, db: Session = Depends(get_db)):
    i = _get_integration(db, integration_id)
    return payments.to_out(payments.toggle_integration(db, i))

@router.delete("/payment-integrations/{integration_id}")
def delete_integration(integration_id: str, db: Session = Depends(get_db)):
    i = _get_integration(db, integration_id)
    db.delete(i)
    db.commit()
    return {"ok": True}
