from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from pos_api.core.clock import utcnow
from pos_api.core.errors import InvalidCredentials
from pos_api.db.models import PaymentIntegration, PaymentProvider
from pos_api.schemas.payment import (
    PaymentIntegrationCreate,
    PaymentIntegrationOut,
    PaymentIntegrationUpdate,
    ProviderField,
)

logger = logging.getLogger(__name__)

MASK = "****"

# credential fields each provider needs; the gateways themselves live elsewhere
PROVIDER_FIELDS: dict[PaymentProvider, list[ProviderField]] = {
    PaymentProvider.YOOKASSA: [
        ProviderField(name="yookassa_shop_id", required=True),
        ProviderField(name="yookassa_secret_key", required=True, secret=True),
    ],
    PaymentProvider.CLOUDPAYMENTS: [
        ProviderField(name="cloudpayments_public_id", required=True),
        ProviderField(name="cloudpayments_api_secret", required=True, secret=True),
    ],
    PaymentProvider.SBERBANK: [
        ProviderField(name="sberbank_login", required=True),
        ProviderField(name="sberbank_password", required=True, secret=True),
        ProviderField(name="sberbank_merchant_login", required=False),
    ],
    PaymentProvider.ALFABANK: [
        ProviderField(name="alfabank_login", required=True),
        ProviderField(name="alfabank_password", required=True, secret=True),
        ProviderField(name="alfabank_gateway_merchant_id", required=False),
        ProviderField(name="alfabank_rest_api_url", required=False),
    ],
    PaymentProvider.SBP: [
        ProviderField(name="sbp_merchant_id", required=True),
        ProviderField(name="sbp_secret_key", required=True, secret=True),
        ProviderField(name="sbp_bank_name", required=False),
        ProviderField(name="sbp_qr_issuer_id", required=False),
    ],
    PaymentProvider.TINKOFF: [
        ProviderField(name="tinkoff_terminal_key", required=True),
        ProviderField(name="tinkoff_password", required=True, secret=True),
    ],
}


def clean_credentials(provider: PaymentProvider, credentials: dict[str, str]) -> dict[str, str]:
    """Keep the provider's known fields; every required one must be non-empty."""
    fields = PROVIDER_FIELDS[provider]
    known = {f.name for f in fields}
    cleaned = {k: v.strip() for k, v in credentials.items() if k in known and v and v.strip()}
    missing = [f.name for f in fields if f.required and f.name not in cleaned]
    if missing:
        raise InvalidCredentials(f"{provider.value} requires: {', '.join(missing)}")
    return cleaned


def mask_credentials(provider: PaymentProvider, credentials: dict[str, str]) -> dict[str, str]:
    secret = {f.name for f in PROVIDER_FIELDS[provider] if f.secret}
    return {k: (MASK if k in secret else v) for k, v in (credentials or {}).items()}


def to_out(integration: PaymentIntegration) -> PaymentIntegrationOut:
    out = PaymentIntegrationOut.model_validate(integration)
    return out.model_copy(update={"credentials": mask_credentials(integration.provider, integration.credentials)})


def create_integration(db: Session, restaurant_id: str, body: PaymentIntegrationCreate) -> PaymentIntegration:
    now = utcnow()
    integration = PaymentIntegration(
        restaurant_id=restaurant_id,
        name=body.name,
        provider=body.provider,
        is_active=body.is_active,
        is_test_mode=body.is_test_mode,
        credentials=clean_credentials(body.provider, body.credentials),
        webhook_url=body.webhook_url,
        success_url=body.success_url,
        fail_url=body.fail_url,
        created_at=now,
        updated_at=now,
    )
    db.add(integration)
    db.commit()
    db.refresh(integration)
    logger.info(f"[payment] {body.provider.value} integration '{body.name}' added to restaurant {restaurant_id}")
    return integration


def update_integration(db: Session, integration: PaymentIntegration, body: PaymentIntegrationUpdate) -> PaymentIntegration:
    data = body.model_dump(exclude_unset=True)
    credentials = data.pop("credentials", None)
    if credentials is not None:
        # masked values coming back from the UI keep the stored secret
        merged = dict(integration.credentials or {})
        merged.update({k: v for k, v in credentials.items() if v != MASK})
        integration.credentials = clean_credentials(integration.provider, merged)
    for k, v in data.items():
        setattr(integration, k, v)
    integration.updated_at = utcnow()
    db.commit()
    db.refresh(integration)
    return integration


def toggle_integration(db: Session, integration: PaymentIntegration) -> PaymentIntegration:
    integration.is_active = not integration.is_active
    integration.updated_at = utcnow()
    db.commit()
    db.refresh(integration)
    logger.info(f"[payment] integration {integration.id} active={integration.is_active}")
    return integration
