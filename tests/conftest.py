import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("ADMIN_KEY", "test-admin-key")
os.environ["AI_BASE_URL"] = "http://ai.test/v1"
os.environ["GEOCODER_URL"] = "http://geo.test/suggest"

import json
from datetime import timedelta
from decimal import Decimal

import httpx
import pytest
from fastapi.testclient import TestClient

from pos_api.api import deps
from pos_api.core.config import settings
from pos_api.db.base import Base
from pos_api.db.models import (
    Additive, AdjustmentType, DeliveryZone, Discount, Network, OrderType,
    Product, ProductRestaurantPrice, Restaurant, Surcharge,
)
from pos_api.db.session import SessionLocal, engine
from pos_api.main import app
from pos_api.services.ai_client import AIClient
from pos_api.services.delivery import GeocoderClient
from pos_api.core.clock import utcnow

D = Decimal
ALL_TYPES = [t.value for t in OrderType]

# lng 37..38, lat 55..56
SQUARE = "POLYGON((37 55, 38 55, 38 56, 37 56, 37 55))"


class FakeUpstreams:
    """Canned geocoder and AI replies served through httpx.MockTransport."""

    def __init__(self):
        self.coords: dict[str, tuple[float, float]] = {}
        self.geocoder_status = 200
        self.ai_reply: dict | str = {"action": "NONE", "confidence": 1.0}
        self.ai_requests: list[dict] = []

    def geocoder(self, request: httpx.Request) -> httpx.Response:
        if self.geocoder_status != 200:
            return httpx.Response(self.geocoder_status, json={"message": "boom"})
        query = json.loads(request.content)["query"]
        if query not in self.coords:
            return httpx.Response(200, json={"suggestions": []})
        lat, lng = self.coords[query]
        return httpx.Response(200, json={
            "suggestions": [{"value": query, "data": {"geo_lat": str(lat), "geo_lon": str(lng)}}],
        })

    def ai(self, request: httpx.Request) -> httpx.Response:
        self.ai_requests.append(json.loads(request.content))
        content = self.ai_reply if isinstance(self.ai_reply, str) else json.dumps(self.ai_reply)
        return httpx.Response(200, json={"choices": [{"message": {"content": content}}]})


@pytest.fixture
def upstream():
    return FakeUpstreams()


@pytest.fixture
def geocoder(upstream):
    return GeocoderClient(transport=httpx.MockTransport(upstream.geocoder))


@pytest.fixture
def ai_client(upstream):
    return AIClient(transport=httpx.MockTransport(upstream.ai))


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db, geocoder, ai_client):
    app.dependency_overrides[deps.get_geocoder] = lambda: geocoder
    app.dependency_overrides[deps.get_ai_client] = lambda: ai_client
    with TestClient(app) as c:
        c.headers.update({"X-ADMIN-KEY": settings.ADMIN_KEY})
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def seed(db):
    """Two restaurants of one network, a small menu, one delivery zone, promotions."""
    now = utcnow()
    db.add(Network(id="n1", name="Pelmeni House", created_at=now))
    r1 = Restaurant(id="r1", network_id="n1", title="Center", created_at=now)
    r2 = Restaurant(id="r2", network_id="n1", title="North", created_at=now)
    db.add_all([r1, r2])

    cream = Additive(id="cream", title="Sour cream", price=D("50"))
    bread = Additive(id="bread", title="Rye bread", price=D("30"))
    db.add_all([
        Product(id="soup", network_id="n1", title="Borscht", price=D("300"), created_at=now,
                additives=[cream, bread]),
        Product(id="kebab", network_id="n1", title="Lamb kebab", price=D("500"), created_at=now,
                restaurant_prices=[ProductRestaurantPrice(restaurant_id="r1", price=D("450"))]),
        Product(id="salad", network_id="n1", title="Caesar salad", price=D("200"), created_at=now,
                restaurant_prices=[ProductRestaurantPrice(restaurant_id="r1", price=D("200"), is_stop_list=True)]),
        Product(id="steak", network_id="n1", title="Ribeye steak", price=D("1000"), created_at=now),
        Product(id="old", network_id="n1", title="Okroshka", price=D("250"), active=False, created_at=now),
    ])

    db.add(DeliveryZone(
        id="z1", restaurant_id="r1", title="Center", price=D("150"), min_order=D("500"),
        polygon=SQUARE, priority=0, created_at=now,
    ))

    db.add_all([
        Surcharge(id="service", title="Service charge", type=AdjustmentType.PERCENTAGE, amount=D("10"),
                  order_types=ALL_TYPES, created_at=now),
        Surcharge(id="packing", title="Packing", type=AdjustmentType.FIXED, amount=D("100"),
                  order_types=["TAKEAWAY", "DELIVERY"], created_at=now),
        Surcharge(id="banquet", title="Banquet hall", type=AdjustmentType.FIXED, amount=D("1000"),
                  order_types=["BANQUET"], is_active=False, created_at=now),
    ])

    db.add_all([
        Discount(id="happy", title="Happy hour", type=AdjustmentType.PERCENTAGE, amount=D("10"),
                 order_types=ALL_TYPES, created_at=now),
        Discount(id="huge", title="Owner's friend", type=AdjustmentType.FIXED, amount=D("1500"),
                 order_types=ALL_TYPES, created_at=now),
        Discount(id="welcome", title="Welcome", code="WELCOME", type=AdjustmentType.FIXED, amount=D("100"),
                 min_order_amount=D("500"), order_types=["DINE_IN", "TAKEAWAY"], created_at=now),
        Discount(id="north", title="North only", code="NORTH", type=AdjustmentType.PERCENTAGE, amount=D("5"),
                 order_types=ALL_TYPES, restaurants=[r2], created_at=now),
        Discount(id="expired", title="Last summer", code="OLD", type=AdjustmentType.PERCENTAGE, amount=D("10"),
                 order_types=ALL_TYPES, end_date=now - timedelta(days=1), created_at=now),
        Discount(id="once", title="One time", code="ONCE", type=AdjustmentType.FIXED, amount=D("50"),
                 order_types=ALL_TYPES, max_uses=1, current_uses=0, created_at=now),
        Discount(id="off", title="Switched off", code="OFF", type=AdjustmentType.FIXED, amount=D("50"),
                 order_types=ALL_TYPES, is_active=False, created_at=now),
    ])
    db.commit()
    return db
