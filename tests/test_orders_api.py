from datetime import timedelta
from decimal import Decimal

from pos_api.core.clock import utcnow
from pos_api.core.config import settings
from pos_api.db.models import Customer, Discount, Order
from pos_api.services import orders

D = Decimal


def submit(client, **body):
    body.setdefault("restaurant_id", "r1")
    body.setdefault("type", "DINE_IN")
    return client.post("/api/v1/orders", json=body)


def test_quote_matches_worked_example(client, seed):
    r = client.post("/api/v1/pricing/quote", json={"draft": {
        "restaurant_id": "r2",
        "type": "DINE_IN",
        "items": [{"product_id": "soup", "quantity": 2, "additive_ids": ["cream"]}],
        "surcharges": [{"id": "s", "title": "Corkage", "amount": "100", "type": "FIXED"}],
        "discounts": [{"id": "d", "title": "Regulars", "amount": "10", "type": "PERCENTAGE"}],
    }})
    assert r.status_code == 200, r.text
    body = r.json()

    assert D(body["lines"][0]["line_total"]) == D("700")
    assert D(body["lines"][0]["additives_price"]) == D("50")
    assert body["breakdown"]["base_price"] == "700.00"
    assert body["breakdown"]["total"] == "730.00"
    assert body["breakdown"]["savings"] == "-30.00"


def test_quote_uses_restaurant_price_and_gates_discounts_on_request(client, seed):
    draft = {
        "restaurant_id": "r1",
        "items": [{"product_id": "kebab", "quantity": 1}],
        "discounts": [{"id": "w", "amount": "100", "type": "FIXED", "min_order_amount": "500"}],
    }
    r = client.post("/api/v1/pricing/quote", json={"draft": draft})
    assert r.status_code == 200
    assert D(r.json()["lines"][0]["unit_price"]) == D("450")
    assert r.json()["breakdown"]["total"] == "350.00"

    r = client.post("/api/v1/pricing/quote", json={"draft": draft, "check_discounts": True})
    assert r.status_code == 400
    assert r.json()["code"] == "discount_not_applicable"


def test_quote_unknown_product(client, seed):
    r = client.post("/api/v1/pricing/quote", json={"draft": {
        "restaurant_id": "r1", "items": [{"product_id": "ghost", "quantity": 1}],
    }})
    assert r.status_code == 404
    assert r.json()["code"] == "product_not_found"


def test_submit_persists_priced_order(client, seed):
    r = submit(
        client,
        items=[{"product_id": "kebab", "quantity": 2, "comment": "no onion"}],
        surcharge_ids=["service"],
        payment_method="CARD",
        table_number=4,
        number_of_people=2,
    )
    assert r.status_code == 200, r.text
    order = r.json()

    assert order["number"] == 1
    assert order["status"] == "CREATED"
    assert D(order["base_price"]) == D("900")
    assert D(order["total"]) == D("990")
    assert D(order["savings"]) == D("-90")
    assert order["lines"][0]["comment"] == "no onion"
    assert D(order["lines"][0]["unit_price"]) == D("450")
    assert [(s["surcharge_id"], D(s["amount"])) for s in order["surcharges"]] == [("service", D("90"))]

    fetched = client.get(f"/api/v1/orders/{order['id']}")
    assert fetched.status_code == 200
    assert fetched.json()["id"] == order["id"]


def test_order_numbers_are_per_restaurant(client, seed):
    item = [{"product_id": "steak", "quantity": 1}]
    assert submit(client, items=item).json()["number"] == 1
    assert submit(client, items=item).json()["number"] == 2
    assert submit(client, restaurant_id="r2", items=item).json()["number"] == 1

    listed = client.get("/api/v1/orders", headers={"X-RESTAURANT-ID": "r1"}).json()
    assert sorted(o["number"] for o in listed) == [1, 2]


def test_restaurant_from_session_headers(client, seed):
    body = {"type": "DINE_IN", "items": [{"product_id": "steak", "quantity": 1}]}

    r = client.post("/api/v1/orders", json=body)
    assert r.status_code == 400
    assert r.json()["code"] == "missing_restaurant"

    r = client.post("/api/v1/orders", json=body, headers={"X-RESTAURANT-ID": "r2"})
    assert r.status_code == 200
    assert r.json()["restaurant_id"] == "r2"


def test_stop_listed_product_blocks_submission(client, seed):
    r = submit(client, items=[{"product_id": "salad", "quantity": 1}])
    assert r.status_code == 400
    assert r.json()["code"] == "product_unavailable"

    assert submit(client, restaurant_id="r2", items=[{"product_id": "salad", "quantity": 1}]).status_code == 200


def test_delivery_needs_a_zone(client, seed):
    r = submit(client, type="DELIVERY", items=[{"product_id": "steak", "quantity": 1}])
    assert r.status_code == 400
    assert r.json()["code"] == "delivery_zone_required"


def test_delivery_zone_resolved_from_address(client, seed, upstream):
    upstream.coords["Tverskaya 1"] = (55.5, 37.5)
    r = submit(
        client,
        type="DELIVERY",
        delivery_address="Tverskaya 1",
        items=[{"product_id": "steak", "quantity": 1}],
        surcharge_ids=["packing"],
    )
    assert r.status_code == 200, r.text
    order = r.json()
    assert order["delivery_zone_id"] == "z1"
    assert D(order["delivery_price"]) == D("150")
    assert D(order["base_price"]) == D("1150")
    assert D(order["total"]) == D("1250")


def test_delivery_address_outside_zones(client, seed, upstream):
    upstream.coords["Far away"] = (59.9, 30.3)
    r = submit(client, type="DELIVERY", delivery_address="Far away", items=[{"product_id": "steak", "quantity": 1}])
    assert r.status_code == 404
    assert r.json()["code"] == "outside_delivery_area"


def test_delivery_zone_minimum_order(client, seed):
    r = submit(client, type="DELIVERY", delivery_zone_id="z1", items=[{"product_id": "soup", "quantity": 1}])
    assert r.status_code == 400
    assert "200.00 short" in r.json()["detail"]


def test_discount_gate_at_submission(client, seed):
    r = submit(client, items=[{"product_id": "soup", "quantity": 1}], discount_ids=["welcome"])
    assert r.status_code == 400
    assert r.json()["code"] == "discount_not_applicable"

    r = submit(client, type="DELIVERY", delivery_zone_id="z1",
               items=[{"product_id": "steak", "quantity": 1}], discount_ids=["welcome"])
    assert r.status_code == 400
    assert r.json()["code"] == "promotion_incompatible"


def test_negative_total_is_blocked_unless_allowed(client, seed, monkeypatch):
    body = {"items": [{"product_id": "steak", "quantity": 1}], "discount_ids": ["huge"]}

    r = submit(client, **body)
    assert r.status_code == 400
    assert r.json()["code"] == "negative_total"

    monkeypatch.setattr(settings, "ALLOW_NEGATIVE_TOTAL", 1)
    r = submit(client, **body)
    assert r.status_code == 200
    assert D(r.json()["total"]) == D("-500")
    assert D(r.json()["savings"]) == D("1500")


def test_client_total_must_match(client, seed):
    item = [{"product_id": "kebab", "quantity": 2}]
    r = submit(client, items=item, surcharge_ids=["service"], client_total="980")
    assert r.status_code == 400
    assert r.json()["code"] == "total_mismatch"

    assert submit(client, items=item, surcharge_ids=["service"], client_total="990").status_code == 200


def test_unknown_discount_id(client, seed):
    r = submit(client, items=[{"product_id": "steak", "quantity": 1}], discount_ids=["nope"])
    assert r.status_code == 404
    assert r.json()["code"] == "record_not_found"


def test_customer_linked_by_phone(client, seed, db):
    item = [{"product_id": "steak", "quantity": 1}]
    first = submit(client, items=item, customer_phone="+7 (900) 123-45-67", customer_name="Ivan").json()
    second = submit(client, items=item, customer_phone="79001234567").json()

    assert first["customer_id"] is not None
    assert first["customer_id"] == second["customer_id"]
    customer = db.query(Customer).one()
    assert customer.phone == "79001234567"
    assert customer.name == "Ivan"


def test_discount_usage_is_counted(client, seed, db):
    item = [{"product_id": "steak", "quantity": 1}]
    r = submit(client, items=item, discount_ids=["once"])
    assert r.status_code == 200, r.text
    assert [d["discount_id"] for d in r.json()["discounts"]] == ["once"]

    db.expire_all()
    assert db.query(Discount).filter(Discount.id == "once").one().current_uses == 1

    r = submit(client, items=item, discount_ids=["once"])
    assert r.status_code == 400
    assert r.json()["code"] == "promotion_incompatible"


def test_quote_refuses_stop_listed_product(client, seed):
    r = client.post("/api/v1/pricing/quote", json={"draft": {
        "restaurant_id": "r1",
        "type": "DINE_IN",
        "items": [{"product_id": "salad", "quantity": 1}],
    }})
    assert r.status_code == 400
    assert r.json()["code"] == "product_unavailable"


def test_repeated_discount_is_rejected_and_not_counted(client, seed, db):
    item = [{"product_id": "steak", "quantity": 1}]
    r = submit(client, items=item, discount_ids=["once", "once"])
    assert r.status_code == 400
    assert r.json()["code"] == "promotion_incompatible"

    db.expire_all()
    assert db.query(Discount).filter(Discount.id == "once").one().current_uses == 0


def test_repeated_surcharge_is_rejected(client, seed):
    r = submit(client, items=[{"product_id": "steak", "quantity": 1}], surcharge_ids=["service", "service"])
    assert r.status_code == 400
    assert r.json()["code"] == "promotion_incompatible"


def test_switched_off_discount_is_rejected(client, seed):
    r = submit(client, items=[{"product_id": "steak", "quantity": 1}], discount_ids=["off"])
    assert r.status_code == 400
    assert r.json()["code"] == "promotion_incompatible"
    assert "switched off" in r.json()["detail"]


def test_surcharges_are_gated_at_submission(client, seed):
    item = [{"product_id": "steak", "quantity": 1}]

    r = submit(client, items=item, surcharge_ids=["banquet"])
    assert r.status_code == 400
    assert r.json()["code"] == "promotion_incompatible"

    # packing is for takeaway and delivery only
    r = submit(client, items=item, surcharge_ids=["packing"])
    assert r.status_code == 400
    assert "DINE_IN" in r.json()["detail"]

    r = submit(client, type="TAKEAWAY", items=item, surcharge_ids=["packing"])
    assert r.status_code == 200
    assert D(r.json()["total"]) == D("1100")


def test_order_number_collision_is_retried(client, seed, monkeypatch):
    item = [{"product_id": "steak", "quantity": 1}]
    assert submit(client, items=item).json()["number"] == 1

    real = orders._next_number
    calls = []

    def colliding_once(db, restaurant_id):
        calls.append(restaurant_id)
        return 1 if len(calls) == 1 else real(db, restaurant_id)

    monkeypatch.setattr(orders, "_next_number", colliding_once)
    r = submit(client, items=item)
    assert r.status_code == 200, r.text
    assert r.json()["number"] == 2
    assert len(calls) == 2


def test_order_number_conflict_when_retries_run_out(client, seed, db, monkeypatch):
    item = [{"product_id": "steak", "quantity": 1}]
    assert submit(client, items=item, discount_ids=["happy"]).status_code == 200

    monkeypatch.setattr(orders, "_next_number", lambda db, restaurant_id: 1)
    r = submit(client, items=item, discount_ids=["happy"])
    assert r.status_code == 409
    assert r.json()["code"] == "order_number_conflict"

    db.expire_all()
    assert db.query(Order).count() == 1
    assert db.query(Discount).filter(Discount.id == "happy").one().current_uses == 1


# -----------------------
# Working hours
# -----------------------
CLOSED_WEEK = [{"weekday": d, "is_working": False} for d in range(7)]


def test_closed_restaurant_takes_scheduled_orders_only(client, seed):
    r = client.put("/api/v1/restaurants/r1/working-hours", json=CLOSED_WEEK)
    assert r.status_code == 200, r.text
    assert len(r.json()) == 7

    item = [{"product_id": "steak", "quantity": 1}]
    r = submit(client, items=item)
    assert r.status_code == 400
    assert r.json()["code"] == "restaurant_closed"

    later = (utcnow() + timedelta(days=1)).replace(microsecond=0)
    r = submit(client, items=item, scheduled_at=later.isoformat())
    assert r.status_code == 200, r.text
    assert r.json()["scheduled_at"] == later.isoformat()

    # the other restaurant has no hours set
    assert submit(client, restaurant_id="r2", items=item).status_code == 200


def test_scheduled_time_in_the_past_is_rejected(client, seed):
    earlier = utcnow() - timedelta(hours=1)
    r = submit(client, items=[{"product_id": "steak", "quantity": 1}], scheduled_at=earlier.isoformat())
    assert r.status_code == 400
    assert r.json()["code"] == "validation_failed"
