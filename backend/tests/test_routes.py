"""
HTTP surface tests: status codes and response shapes for the JSON API.
"""

from conftest import checkout_payload
from retail_erp.services import order_service


def test_health(client, db_session):
    response = client.get('/api/health')
    assert response.status_code == 200
    assert response.json == {"status": "ok", "database": "ok"}


def test_create_order_returns_201(client, db_session, order_rule, cash, products):
    response = client.post('/api/orders', json=checkout_payload(products, cash))

    assert response.status_code == 201
    body = response.json
    assert body["success"] is True
    assert body["message"] == "Order created"
    assert set(body["data"]) == {"order_id", "order_no"}


def test_create_order_business_failure_is_400(client, db_session, order_rule, cash, products):
    response = client.post('/api/orders', json=checkout_payload(products, cash, paid="200"))

    assert response.status_code == 400
    body = response.json
    assert body["success"] is False
    assert body["details"] == {"required": "252.00", "received": "200.00"}


def test_create_order_rejects_non_json(client, db_session):
    response = client.post('/api/orders', data="items=1", content_type="text/plain")

    assert response.status_code == 400
    assert response.json["message"] == "Invalid JSON payload"


def test_get_order_with_lines(client, db_session, order_rule, cash, products):
    created = client.post('/api/orders', json=checkout_payload(products, cash)).json

    response = client.get(f'/api/orders/{created["data"]["order_id"]}')

    assert response.status_code == 200
    order = response.json["order"]
    assert order["order_no"] == created["data"]["order_no"]
    assert order["total_amount"] == "252.00"
    assert len(order["items"]) == 2
    assert len(order["payments"]) == 1


def test_get_missing_order_is_404(client, db_session):
    assert client.get('/api/orders/99999').status_code == 404


def test_list_orders_pagination(client, db_session, order_rule, cash, products):
    client.post('/api/orders', json=checkout_payload(products, cash))

    response = client.get('/api/orders?page=1&page_size=5')

    assert response.status_code == 200
    assert response.json["pagination"]["total"] == 1
    assert len(response.json["orders"]) == 1


def test_list_orders_bad_date_is_400(client, db_session):
    assert client.get('/api/orders?start_date=yesterday').status_code == 400


def test_order_stats(client, db_session, order_rule, cash, products):
    client.post('/api/orders', json=checkout_payload(products, cash))

    response = client.get('/api/orders/stats')

    assert response.status_code == 200
    assert response.json["completed_orders"] == 1
    assert response.json["total_revenue"] == "252.00"


def test_numbering_rule_lifecycle(client, db_session):
    response = client.post('/api/numbering-rules', json={
        "code": "gr",
        "name": "Goods receipt",
        "prefix": "GR",
        "date_format": "YYYYMM",
        "sequence_length": 4,
        "reset_period": "MONTHLY",
    })
    assert response.status_code == 201
    rule = response.json["rule"]
    assert rule["code"] == "GR"

    duplicate = client.post('/api/numbering-rules', json={"code": "GR", "name": "Again"})
    assert duplicate.status_code == 409

    preview = client.get('/api/numbering-rules/GR/preview')
    assert preview.status_code == 200
    assert preview.json["preview"].startswith("GR")
    assert preview.json["preview"].endswith("0001")

    updated = client.put(f'/api/numbering-rules/{rule["id"]}', json={"prefix": "RCV"})
    assert updated.status_code == 200
    assert updated.json["rule"]["prefix"] == "RCV"

    reset = client.post(f'/api/numbering-rules/{rule["id"]}/reset')
    assert reset.status_code == 200
    assert reset.json["rule"]["current_sequence"] == 0

    listed = client.get('/api/numbering-rules')
    assert [r["code"] for r in listed.json["rules"]] == ["GR"]


def test_numbering_rule_validation_is_400(client, db_session):
    response = client.post('/api/numbering-rules', json={"code": "X", "name": "X", "sequence_length": 42})
    assert response.status_code == 400
    assert "sequence_length" in response.json["errors"]


def test_preview_unknown_rule_is_404(client, db_session):
    assert client.get('/api/numbering-rules/NOPE/preview').status_code == 404


def test_inventory_receive_adjust_and_movements(client, db_session, products):
    p1, _ = products

    received = client.post(f'/api/inventory/{p1.id}/receive', json={"quantity": 5, "reason": "Delivery"})
    assert received.status_code == 200
    assert received.json["inventory"]["available_qty"] == 15

    adjusted = client.post(f'/api/inventory/{p1.id}/adjust', json={"type": "DAMAGE", "quantity": 20})
    assert adjusted.status_code == 400
    assert adjusted.json["details"]["available"] == 15

    movements = client.get(f'/api/inventory/{p1.id}/movements')
    assert movements.status_code == 200
    assert [m["movement_type"] for m in movements.json["movements"]] == ["RECEIVE"]


def test_inventory_lookup_and_low_stock(client, db_session, products):
    p1, p2 = products

    assert client.get(f'/api/inventory/{p1.id}').json["inventory"]["available_qty"] == 10
    assert client.get('/api/inventory/99999').status_code == 404

    low = client.get('/api/inventory/low-stock').json
    assert low["total"] == 1
    assert low["items"][0]["product_id"] == p2.id


def test_update_rule_with_bad_types_is_400(client, db_session, order_rule):
    for payload, field in (({"prefix": None}, "prefix"), ({"is_active": "false"}, "is_active")):
        response = client.put(f'/api/numbering-rules/{order_rule.id}', json=payload)
        assert response.status_code == 400
        assert field in response.json["errors"]


def test_infrastructure_fault_is_500(client, db_session, order_rule, cash, products, monkeypatch):
    def boom(*args, **kwargs):
        raise RuntimeError("disk on fire")

    monkeypatch.setattr(order_service.inventory_service, "decrement", boom)

    response = client.post('/api/orders', json=checkout_payload(products, cash))

    assert response.status_code == 500
    assert response.json == {"success": False, "message": "Failed to create order"}
