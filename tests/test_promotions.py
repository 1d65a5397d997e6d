from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from pos_api.core.errors import (
    DiscountNotApplicable, ProductUnavailable, PromoCodeNotFound, PromotionIncompatible
)
from pos_api.db.models import Discount, OrderType, Surcharge
from pos_api.schemas.pricing import LineItem, OrderDraft
from pos_api.services import catalog, promotions


def make_draft(type_=OrderType.DINE_IN, restaurant_id="r1", items=None):
    return OrderDraft(
        restaurant_id=restaurant_id,
        type=type_,
        items=items or [LineItem(product_id="steak", quantity=1)],
    )


def apply(db, code, draft):
    lookup = catalog.build_product_lookup(db, [i.product_id for i in draft.items])
    return promotions.apply_promo_code(db, code, draft, lookup)


def test_promo_code_is_appended_to_a_copy(seed):
    draft = make_draft()
    out = apply(seed, " WELCOME ", draft)

    assert [d.id for d in out.discounts] == ["welcome"]
    assert out.discounts[0].min_order_amount == Decimal("500")
    assert draft.discounts == []


@pytest.mark.parametrize("code", ["NOPE", "OFF"])
def test_unknown_or_inactive_code_is_not_found(seed, code):
    with pytest.raises(PromoCodeNotFound):
        apply(seed, code, make_draft())


def test_order_type_mismatch_leaves_draft_unchanged(seed):
    draft = make_draft(OrderType.DELIVERY)
    before = draft.model_dump()

    with pytest.raises(PromotionIncompatible):
        apply(seed, "WELCOME", draft)
    assert draft.model_dump() == before


def test_restaurant_scoped_code(seed):
    with pytest.raises(PromotionIncompatible):
        apply(seed, "NORTH", make_draft(restaurant_id="r1"))
    out = apply(seed, "NORTH", make_draft(restaurant_id="r2"))
    assert out.discounts[0].id == "north"


def test_expired_code_is_rejected(seed):
    with pytest.raises(PromotionIncompatible):
        apply(seed, "OLD", make_draft())


def test_usage_limit(seed):
    apply(seed, "ONCE", make_draft())

    d = seed.query(Discount).filter(Discount.id == "once").one()
    d.current_uses = 1
    seed.commit()

    with pytest.raises(PromotionIncompatible):
        apply(seed, "ONCE", make_draft())


def test_same_code_twice_is_rejected(seed):
    draft = apply(seed, "WELCOME", make_draft())
    with pytest.raises(PromotionIncompatible):
        apply(seed, "WELCOME", draft)
    assert len(draft.discounts) == 1


def test_min_order_gate_runs_when_applying(seed):
    draft = make_draft(items=[LineItem(product_id="soup", quantity=1)])
    with pytest.raises(DiscountNotApplicable) as exc:
        apply(seed, "WELCOME", draft)
    assert "200.00 short" in exc.value.message


def test_in_window_bounds_are_inclusive():
    start = datetime(2026, 3, 1)
    end = datetime(2026, 3, 31)
    assert promotions.in_window(start, end, start)
    assert promotions.in_window(start, end, end)
    assert not promotions.in_window(start, end, start - timedelta(seconds=1))
    assert not promotions.in_window(start, end, end + timedelta(seconds=1))
    assert promotions.in_window(None, None, start)


def test_surcharges_filtered_by_order_type(seed):
    dine_in = promotions.surcharges_for_order(seed, OrderType.DINE_IN, "r1")
    delivery = promotions.surcharges_for_order(seed, OrderType.DELIVERY, "r1")
    banquet = promotions.surcharges_for_order(seed, OrderType.BANQUET, "r1")

    assert [s.id for s in dine_in] == ["service"]
    assert [s.id for s in delivery] == ["packing", "service"]
    assert [s.id for s in banquet] == ["service"]


def test_switched_off_discount_fails_compatibility(seed):
    d = seed.query(Discount).filter(Discount.id == "off").one()
    with pytest.raises(PromotionIncompatible) as exc:
        promotions.check_compatibility(d, make_draft())
    assert "switched off" in exc.value.message


def test_check_surcharge(seed):
    packing = seed.query(Surcharge).filter(Surcharge.id == "packing").one()
    banquet = seed.query(Surcharge).filter(Surcharge.id == "banquet").one()

    promotions.check_surcharge(packing, make_draft(OrderType.TAKEAWAY))
    with pytest.raises(PromotionIncompatible):
        promotions.check_surcharge(packing, make_draft(OrderType.DINE_IN))
    with pytest.raises(PromotionIncompatible) as exc:
        promotions.check_surcharge(banquet, make_draft(OrderType.BANQUET))
    assert "switched off" in exc.value.message

    packing.end_date = datetime(2020, 1, 1)
    with pytest.raises(PromotionIncompatible):
        promotions.check_surcharge(packing, make_draft(OrderType.TAKEAWAY))


def test_promo_code_refused_for_stop_listed_item(seed):
    items = [LineItem(product_id="salad", quantity=3)]
    with pytest.raises(ProductUnavailable):
        apply(seed, "WELCOME", make_draft(items=items))
    assert apply(seed, "WELCOME", make_draft(restaurant_id="r2", items=items)).discounts[0].id == "welcome"


# -----------------------
# HTTP
# -----------------------
def test_promo_code_endpoint_returns_priced_draft(client, seed):
    r = client.post("/api/v1/pricing/promo-code", json={
        "code": "WELCOME",
        "draft": {"restaurant_id": "r1", "type": "DINE_IN", "items": [{"product_id": "steak", "quantity": 1}]},
    })
    assert r.status_code == 200, r.text
    body = r.json()
    assert [d["id"] for d in body["draft"]["discounts"]] == ["welcome"]
    assert body["breakdown"]["total"] == "900.00"
    assert body["breakdown"]["savings"] == "100.00"


def test_promo_code_endpoint_rejects_wrong_type(client, seed):
    r = client.post("/api/v1/pricing/promo-code", json={
        "code": "WELCOME",
        "draft": {"restaurant_id": "r1", "type": "DELIVERY", "items": [{"product_id": "steak", "quantity": 1}]},
    })
    assert r.status_code == 400
    assert r.json()["code"] == "promotion_incompatible"


def test_discount_crud(client, seed):
    r = client.post("/api/v1/discounts", json={
        "title": "Lunch", "type": "PERCENTAGE", "amount": "15", "code": "LUNCH",
        "order_types": ["DINE_IN"], "restaurant_ids": ["r1"],
    })
    assert r.status_code == 200, r.text
    created = r.json()
    assert created["current_uses"] == 0
    assert [x["id"] for x in created["restaurants"]] == ["r1"]

    dup = client.post("/api/v1/discounts", json={"title": "Again", "type": "FIXED", "amount": "1", "code": "LUNCH"})
    assert dup.status_code == 409

    r = client.patch(f"/api/v1/discounts/{created['id']}", json={"is_active": False, "restaurant_ids": []})
    assert r.status_code == 200
    assert r.json()["is_active"] is False
    assert r.json()["restaurants"] == []

    assert client.get("/api/v1/discounts/promo/LUNCH").status_code == 404


def test_discount_list_filters_by_restaurant(client, seed):
    ids = {d["id"] for d in client.get("/api/v1/discounts", params={"restaurant_id": "r1"}).json()}
    assert "north" not in ids
    assert "happy" in ids

    no_codes = {d["id"] for d in client.get("/api/v1/discounts", params={"include_codes": 0}).json()}
    assert no_codes == {"happy", "huge"}


def test_surcharges_for_order_endpoint(client, seed):
    r = client.get("/api/v1/surcharges/for-order/TAKEAWAY", headers={"X-RESTAURANT-ID": "r1"})
    assert r.status_code == 200
    assert [s["id"] for s in r.json()] == ["packing", "service"]


def test_admin_key_required(client, seed):
    r = client.get("/api/v1/discounts", headers={"X-ADMIN-KEY": "wrong"})
    assert r.status_code == 401


def test_promo_code_endpoint_checks_stop_list(client, seed):
    r = client.post("/api/v1/pricing/promo-code", json={
        "code": "WELCOME",
        "draft": {"restaurant_id": "r1", "type": "DINE_IN", "items": [{"product_id": "salad", "quantity": 3}]},
    })
    assert r.status_code == 400
    assert r.json()["code"] == "product_unavailable"


@pytest.mark.parametrize("path", ["/api/v1/discounts", "/api/v1/surcharges"])
def test_percentage_over_hundred_is_refused(client, seed, path):
    r = client.post(path, json={"title": "Too much", "type": "PERCENTAGE", "amount": "150"})
    assert r.status_code == 422

    # fixed amounts have no upper bound
    assert client.post(path, json={"title": "Big", "type": "FIXED", "amount": "150"}).status_code == 200


def test_discount_update_keeps_percentage_in_range(client, seed, db):
    r = client.patch("/api/v1/discounts/happy", json={"amount": "150"})
    assert r.status_code == 400
    assert r.json()["code"] == "validation_failed"

    db.expire_all()
    assert db.query(Discount).filter(Discount.id == "happy").one().amount == Decimal("10")

    assert client.patch("/api/v1/discounts/huge", json={"amount": "2000"}).status_code == 200
