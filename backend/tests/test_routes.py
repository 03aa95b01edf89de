"""
API tests: actor resolution, permission gates, failure mapping, and a full
purchase order round trip over HTTP.
"""

from decimal import Decimal

from larder.extensions import db
from larder.services import stock_ledger


def _order_payload(supplier, location, *lines):
    return {
        "supplier_id": supplier.id,
        "location_id": location.id,
        "lines": [
            {"inventory_item_id": item.id, "quantity_ordered": qty, "unit_cost": cost}
            for item, qty, cost in lines
        ],
    }


def test_health(client):
    response = client.get("/api/health")

    assert response.status_code == 200
    assert response.get_json()["checks"]["database"]["status"] == "healthy"


def test_missing_or_unknown_actor_is_401(client, users):
    assert client.get("/api/orders").status_code == 401
    assert client.get("/api/orders", headers={"X-User-Id": "abc"}).status_code == 401
    assert client.get("/api/orders", headers={"X-User-Id": "99999"}).status_code == 401
    assert client.get("/api/orders", headers={"X-User-Id": "²"}).status_code == 401
    assert client.get("/api/orders", headers={"X-User-Id": "-1"}).status_code == 401


def test_inactive_actor_is_401(client, staff, auth_headers):
    staff.is_active = False
    db.session.commit()

    assert client.get("/api/orders", headers=auth_headers(staff)).status_code == 401


def test_staff_cannot_create_orders(client, staff, supplier, location, flour, auth_headers):
    response = client.post(
        "/api/orders",
        json=_order_payload(supplier, location, (flour, "10", "4.00")),
        headers=auth_headers(staff),
    )

    assert response.status_code == 403
    assert response.get_json()["required_permission"] == "orders:create"


def test_order_round_trip(client, manager, staff, supplier, location, flour, tomatoes, auth_headers):
    created = client.post(
        "/api/orders",
        json=_order_payload(supplier, location, (flour, "10", "4.50"), (tomatoes, 5, "2.50")),
        headers=auth_headers(manager),
    )
    assert created.status_code == 201
    order = created.get_json()
    assert order["status"] == "DRAFT"
    assert Decimal(order["total_amount"]) == Decimal("57.50")
    assert order["order_number"].startswith("PO-")

    for target in ("SUBMITTED", "APPROVED", "ORDERED"):
        response = client.post(
            f"/api/orders/{order['id']}/status", json={"status": target}, headers=auth_headers(manager)
        )
        assert response.status_code == 200, response.get_json()
        assert response.get_json()["status"] == target

    detail = client.get(f"/api/orders/{order['id']}", headers=auth_headers(staff)).get_json()
    assert detail["allowed_transitions"] == ["CANCELLED", "PARTIALLY_RECEIVED", "RECEIVED"]
    lines = detail["lines"]

    received = client.post(
        f"/api/orders/{order['id']}/receive",
        json={"lines": [{"line_id": line["id"], "quantity_received": line["quantity_ordered"]} for line in lines]},
        headers=auth_headers(staff),
    )
    assert received.status_code == 200
    body = received.get_json()
    assert body["status"] == "RECEIVED"
    assert body["received_date"] is not None

    db.session.expire_all()
    assert stock_ledger.get_stock_level(flour.id, location.id) == Decimal("10")
    item = client.get(f"/api/inventory/items/{flour.id}", headers=auth_headers(staff)).get_json()
    assert Decimal(item["unit_cost"]) == Decimal("4.50")
    assert item["price_history"][0]["source"] == "RECEIVING"


def test_invalid_transition_is_409(client, manager, supplier, location, flour, auth_headers):
    order = client.post(
        "/api/orders", json=_order_payload(supplier, location, (flour, 1, 1)), headers=auth_headers(manager)
    ).get_json()

    response = client.post(
        f"/api/orders/{order['id']}/status", json={"status": "RECEIVED"}, headers=auth_headers(manager)
    )

    assert response.status_code == 409
    assert response.get_json() == {
        "error": "Cannot transition from DRAFT to RECEIVED",
        "code": "INVALID_TRANSITION",
    }


def test_staff_submit_is_403(client, manager, staff, supplier, location, flour, auth_headers):
    order = client.post(
        "/api/orders", json=_order_payload(supplier, location, (flour, 1, 1)), headers=auth_headers(manager)
    ).get_json()

    response = client.post(
        f"/api/orders/{order['id']}/status", json={"status": "SUBMITTED"}, headers=auth_headers(staff)
    )

    assert response.status_code == 403
    assert response.get_json()["code"] == "PERMISSION_DENIED"


def test_receive_draft_order_is_409(client, manager, staff, supplier, location, flour, auth_headers):
    order = client.post(
        "/api/orders", json=_order_payload(supplier, location, (flour, 1, 1)), headers=auth_headers(manager)
    ).get_json()

    response = client.post(
        f"/api/orders/{order['id']}/receive",
        json={"lines": [{"line_id": order["lines"][0]["id"], "quantity_received": 1}]},
        headers=auth_headers(staff),
    )

    assert response.status_code == 409
    assert response.get_json()["code"] == "NOT_RECEIVABLE"


def test_missing_order_is_404(client, staff, auth_headers):
    assert client.get("/api/orders/424242", headers=auth_headers(staff)).status_code == 404


def test_delete_only_drafts(client, manager, supplier, location, flour, auth_headers):
    headers = auth_headers(manager)
    first = client.post("/api/orders", json=_order_payload(supplier, location, (flour, 1, 1)), headers=headers).get_json()
    second = client.post("/api/orders", json=_order_payload(supplier, location, (flour, 1, 1)), headers=headers).get_json()
    client.post(f"/api/orders/{second['id']}/status", json={"status": "CANCELLED"}, headers=headers)

    assert client.delete(f"/api/orders/{first['id']}", headers=headers).status_code == 200
    blocked = client.delete(f"/api/orders/{second['id']}", headers=headers)
    assert blocked.status_code == 409
    assert blocked.get_json()["code"] == "ORDER_NOT_EDITABLE"


def test_create_order_validation_is_400(client, manager, supplier, location, auth_headers):
    response = client.post(
        "/api/orders",
        json={"supplier_id": supplier.id, "location_id": location.id, "lines": []},
        headers=auth_headers(manager),
    )

    assert response.status_code == 400


def test_adjust_stock_below_zero_is_409(client, staff, location, flour, auth_headers):
    response = client.post(
        "/api/inventory/adjust",
        json={"inventory_item_id": flour.id, "location_id": location.id, "quantity": "-1", "reason": "Recount"},
        headers=auth_headers(staff),
    )

    assert response.status_code == 409
    assert response.get_json() == {"error": "Stock cannot go below 0", "code": "INSUFFICIENT_STOCK"}


def test_adjust_stock(client, staff, location, flour, auth_headers):
    response = client.post(
        "/api/inventory/adjust",
        json={"inventory_item_id": flour.id, "location_id": location.id, "quantity": "2.5", "reason": "Delivery found"},
        headers=auth_headers(staff),
    )

    assert response.status_code == 200
    assert response.get_json()["new_quantity"] == "2.5"


def test_oversized_or_non_finite_quantities_are_400(client, staff, location, flour, auth_headers):
    for quantity in ("1e30", "NaN", "-Infinity"):
        adjusted = client.post(
            "/api/inventory/adjust",
            json={"inventory_item_id": flour.id, "location_id": location.id, "quantity": quantity, "reason": "Recount"},
            headers=auth_headers(staff),
        )
        wasted = client.post(
            "/api/waste",
            json={"inventory_item_id": flour.id, "location_id": location.id, "quantity": quantity, "reason": "SPOILED"},
            headers=auth_headers(staff),
        )
        assert adjusted.status_code == 400
        assert wasted.status_code == 400

    db.session.expire_all()
    assert stock_ledger.get_stock_level(flour.id, location.id) == Decimal("0")


def test_log_and_list_waste(client, staff, location, tomatoes, set_stock, auth_headers):
    set_stock(tomatoes, location, 10)

    created = client.post(
        "/api/waste",
        json={"inventory_item_id": tomatoes.id, "location_id": location.id, "quantity": 3, "reason": "SPOILED"},
        headers=auth_headers(staff),
    )
    assert created.status_code == 201
    assert Decimal(created.get_json()["total_cost"]) == Decimal("7.50")

    listed = client.get("/api/waste", headers=auth_headers(staff)).get_json()
    assert listed["count"] == 1

    bad_reason = client.post(
        "/api/waste",
        json={"inventory_item_id": tomatoes.id, "location_id": location.id, "quantity": 1, "reason": "LOST"},
        headers=auth_headers(staff),
    )
    assert bad_reason.status_code == 400


def test_waste_for_missing_item_is_404(client, staff, location, auth_headers):
    response = client.post(
        "/api/waste",
        json={"inventory_item_id": 99999, "location_id": location.id, "quantity": 1, "reason": "SPOILED"},
        headers=auth_headers(staff),
    )

    assert response.status_code == 404
    assert response.get_json()["code"] == "ITEM_NOT_FOUND"


def test_item_create_and_update(client, manager, staff, location, auth_headers):
    created = client.post(
        "/api/inventory/items",
        json={"name": "Butter", "location_id": location.id, "unit": "KG", "unit_cost": "6.20"},
        headers=auth_headers(manager),
    )
    assert created.status_code == 201
    item_id = created.get_json()["id"]

    updated = client.put(
        f"/api/inventory/items/{item_id}", json={"unit_cost": "6.80"}, headers=auth_headers(manager)
    )
    assert updated.status_code == 200
    assert Decimal(updated.get_json()["unit_cost"]) == Decimal("6.80")

    forbidden = client.put(
        f"/api/inventory/items/{item_id}", json={"unit_cost": "1"}, headers=auth_headers(staff)
    )
    assert forbidden.status_code == 403

    detail = client.get(f"/api/inventory/items/{item_id}", headers=auth_headers(staff)).get_json()
    assert len(detail["stock_levels"]) == 1
    assert len(detail["price_history"]) == 1


def test_list_and_delete_items(client, admin, manager, staff, location, flour, tomatoes, auth_headers):
    listed = client.get(f"/api/inventory/items?location_id={location.id}", headers=auth_headers(staff))
    assert listed.status_code == 200
    assert [i["name"] for i in listed.get_json()["items"]] == ["Flour", "Tomatoes"]

    assert client.delete(f"/api/inventory/items/{flour.id}", headers=auth_headers(manager)).status_code == 403

    deleted = client.delete(f"/api/inventory/items/{flour.id}", headers=auth_headers(admin))
    assert deleted.status_code == 200
    assert deleted.get_json()["is_active"] is False

    active = client.get("/api/inventory/items", headers=auth_headers(staff)).get_json()
    everything = client.get("/api/inventory/items?include_inactive=true", headers=auth_headers(staff)).get_json()
    assert active["count"] == 1
    assert everything["count"] == 2

    missing = client.delete("/api/inventory/items/99999", headers=auth_headers(admin))
    assert missing.status_code == 404


def test_supplier_catalog_round_trip(client, admin, manager, staff, supplier, flour, auth_headers):
    created = client.post(
        "/api/suppliers",
        json={"name": "Mill Direct", "lead_time_days": 5},
        headers=auth_headers(manager),
    )
    assert created.status_code == 201
    mill_id = created.get_json()["id"]

    assert client.post("/api/suppliers", json={"name": "X"}, headers=auth_headers(staff)).status_code == 403
    assert client.post(
        "/api/suppliers", json={"name": "X", "lead_time_days": "soon"}, headers=auth_headers(manager)
    ).status_code == 400

    updated = client.put(f"/api/suppliers/{mill_id}", json={"phone": "555-0199"}, headers=auth_headers(manager))
    assert updated.status_code == 200
    assert updated.get_json()["phone"] == "555-0199"

    linked = client.post(
        f"/api/suppliers/{mill_id}/items",
        json={"inventory_item_id": flour.id, "unit_cost": "3.80", "is_preferred": True},
        headers=auth_headers(manager),
    )
    assert linked.status_code == 201
    link_id = linked.get_json()["id"]
    assert linked.get_json()["is_preferred"] is True

    bad_cost = client.post(
        f"/api/suppliers/{mill_id}/items",
        json={"inventory_item_id": flour.id, "unit_cost": "1e30"},
        headers=auth_headers(manager),
    )
    assert bad_cost.status_code == 400

    detail = client.get(f"/api/suppliers/{mill_id}", headers=auth_headers(staff)).get_json()
    assert [link["inventory_item_id"] for link in detail["items"]] == [flour.id]

    unlinked = client.delete(f"/api/suppliers/items/{link_id}", headers=auth_headers(manager))
    assert unlinked.status_code == 200

    assert client.delete(f"/api/suppliers/{mill_id}", headers=auth_headers(manager)).status_code == 403
    assert client.delete(f"/api/suppliers/{mill_id}", headers=auth_headers(admin)).status_code == 200

    names = [s["name"] for s in client.get("/api/suppliers", headers=auth_headers(staff)).get_json()["items"]]
    assert names == ["Green Valley Produce"]
    assert client.get("/api/suppliers/99999", headers=auth_headers(staff)).status_code == 404
