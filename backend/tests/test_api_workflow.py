"""
End-to-end API tests for the rental and billing workflow.
"""

from datetime import datetime, timedelta
from sqlalchemy import select

from backend.app.models.vehicle import Vehicle


async def _create_order(client, headers, payload, **overrides):
    response = await client.post("/v1/rental-orders", json=payload(**overrides), headers=headers)
    assert response.status_code == 201, response.text
    return response.json()["data"]


async def _post(client, headers, path, json=None):
    response = await client.post(path, json=json, headers=headers)
    assert response.status_code in (200, 201), response.text
    return response.json()["data"]


async def test_health(client):
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json()["redis"] == "up"
    assert "X-Correlation-ID" in response.headers


async def test_rent_invoice_and_pay(client, staff_headers, order_payload, seeded, mock_redis, session_factory):
    # Quote
    quote = await _post(client, staff_headers, "/v1/rental-orders/calculate-price", {
        "vehicle_id": seeded["vehicle"].id,
        "start_date": order_payload()["start_date"],
        "end_date": order_payload()["end_date"],
    })
    assert quote["total_days"] == 3
    assert quote["total_amount"] == 1500000

    # Drive the order to COMPLETED
    order = await _create_order(client, staff_headers, order_payload)
    assert order["status"] == "DRAFT"
    assert order["created_by"] == "counter.staff"

    order_id = order["id"]
    for action, expected in [("confirm", "CONFIRMED"), ("start", "IN_PROGRESS"), ("complete", "COMPLETED")]:
        order = await _post(client, staff_headers, f"/v1/rental-orders/{order_id}/{action}")
        assert order["status"] == expected

    # Invoice with 10% tax
    invoice = await _post(client, staff_headers, f"/v1/invoices/from-rental/{order_id}", {"tax_rate": 10})
    assert invoice["total_amount"] == 1650000
    assert invoice["remaining_amount"] == 1650000
    assert invoice["status"] == "UNPAID"
    assert len(invoice["details"]) == 1

    # Pay in full
    payment = await _post(client, staff_headers, "/v1/payments", {
        "invoice_id": invoice["id"],
        "payment_date": datetime.utcnow().isoformat(),
        "amount": 1650000,
        "payment_method": "CASH",
    })
    assert payment["amount"] == 1650000

    response = await client.get(f"/v1/invoices/{invoice['id']}", headers=staff_headers)
    invoice = response.json()["data"]
    assert invoice["status"] == "PAID"
    assert invoice["paid_amount"] == 1650000
    assert invoice["remaining_amount"] == 0

    # History: created, confirmed, started, completed, invoiced
    response = await client.get(f"/v1/rental-orders/{order_id}/history", headers=staff_headers)
    history = response.json()["data"]
    assert [h["new_status"] for h in history] == ["INVOICED", "COMPLETED", "IN_PROGRESS", "CONFIRMED", "DRAFT"]
    assert all(h["changed_by"] == "counter.staff" for h in history)

    response = await client.get(f"/v1/vehicles/{seeded['vehicle'].id}", headers=staff_headers)
    assert response.json()["data"]["status"] == "AVAILABLE"
    assert response.json()["data"]["current_location"] == "Ha Noi Depot"

    response = await client.get(f"/v1/vehicles/{seeded['vehicle'].id}/history", headers=staff_headers)
    assert [e["action_type"] for e in response.json()["data"]] == ["RETURNED", "RENTED"]

    events = mock_redis.events()
    assert "VehicleUpdated" in events
    assert "PaymentRecorded" in events
    assert events.count("RentalOrderUpdated") == 4


async def test_overpayment_returns_business_rule_error(client, staff_headers, order_payload):
    order = await _create_order(client, staff_headers, order_payload)
    for action in ("confirm", "start", "complete"):
        await _post(client, staff_headers, f"/v1/rental-orders/{order['id']}/{action}")
    invoice = await _post(client, staff_headers, f"/v1/invoices/from-rental/{order['id']}", {"tax_rate": 10})

    response = await client.post("/v1/payments", json={
        "invoice_id": invoice["id"],
        "payment_date": datetime.utcnow().isoformat(),
        "amount": 2000000,
        "payment_method": "BANK_TRANSFER",
    }, headers=staff_headers)

    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert body["error_code"] == "ERR_RULE_001"
    assert body["details"]["remaining_amount"] == 1650000

    response = await client.get(f"/v1/invoices/{invoice['id']}", headers=staff_headers)
    assert response.json()["data"]["paid_amount"] == 0


async def test_second_invoice_is_rejected(client, staff_headers, order_payload):
    order = await _create_order(client, staff_headers, order_payload)
    for action in ("confirm", "start", "complete"):
        await _post(client, staff_headers, f"/v1/rental-orders/{order['id']}/{action}")
    await _post(client, staff_headers, f"/v1/invoices/from-rental/{order['id']}", {"tax_rate": 10})

    response = await client.post(
        f"/v1/invoices/from-rental/{order['id']}", json={"tax_rate": 10}, headers=staff_headers
    )
    assert response.status_code == 400
    assert response.json()["success"] is False


async def test_invalid_transition_is_rolled_back(client, staff_headers, order_payload):
    order = await _create_order(client, staff_headers, order_payload)

    response = await client.post(f"/v1/rental-orders/{order['id']}/start", headers=staff_headers)
    assert response.status_code == 400
    body = response.json()
    assert body["error_code"] == "ERR_STATE_001"
    assert body["details"]["current_status"] == "DRAFT"

    response = await client.get(f"/v1/rental-orders/{order['id']}/history", headers=staff_headers)
    assert len(response.json()["data"]) == 1


async def test_cancel_confirmed_order_frees_vehicle(client, staff_headers, order_payload, seeded, session_factory):
    order = await _create_order(client, staff_headers, order_payload, status="CONFIRMED")

    async with session_factory() as session:
        vehicle = (await session.execute(select(Vehicle).where(Vehicle.id == seeded["vehicle"].id))).scalar_one()
        assert vehicle.status.value == "RENTED"

    response = await client.post(
        f"/v1/rental-orders/{order['id']}/cancel", json={"reason": "No show"}, headers=staff_headers
    )
    assert response.status_code == 200
    assert response.json()["data"]["status"] == "CANCELLED"

    response = await client.get(f"/v1/vehicles/{seeded['vehicle'].id}", headers=staff_headers)
    assert response.json()["data"]["status"] == "AVAILABLE"


async def test_cancel_draft_order_does_not_announce_vehicle_change(client, staff_headers, order_payload, mock_redis):
    draft = await _create_order(client, staff_headers, order_payload)
    confirmed = await _create_order(client, staff_headers, order_payload, status="CONFIRMED")
    mock_redis.published.clear()

    await _post(client, staff_headers, f"/v1/rental-orders/{draft['id']}/cancel")
    assert mock_redis.events() == ["RentalOrderUpdated"]

    mock_redis.published.clear()
    await _post(client, staff_headers, f"/v1/rental-orders/{confirmed['id']}/cancel")
    assert "VehicleUpdated" in mock_redis.events()


async def test_not_found_envelope(client, staff_headers, seeded):
    response = await client.get("/v1/rental-orders/9999", headers=staff_headers)

    assert response.status_code == 404
    assert response.json() == {
        "success": False,
        "error_code": "ERR_NOT_FOUND_001",
        "message": "Rental order with ID 9999 not found",
        "details": {"resource": "Rental order", "id": 9999},
    }


async def test_validation_error_envelope(client, staff_headers, order_payload):
    payload = order_payload()
    payload["end_date"] = (datetime.fromisoformat(payload["start_date"]) - timedelta(days=2)).isoformat()

    response = await client.post("/v1/rental-orders", json=payload, headers=staff_headers)

    assert response.status_code == 422
    assert response.json()["error_code"] == "ERR_VALIDATION"


async def test_requires_token(client, seeded):
    response = await client.get("/v1/rental-orders")

    assert response.status_code == 401
    assert response.json() == {
        "success": False,
        "error_code": "ERR_AUTH_001",
        "message": "Not authenticated",
        "details": {},
    }


async def test_rejects_garbage_token(client, seeded):
    response = await client.get("/v1/rental-orders", headers={"Authorization": "Bearer not-a-jwt"})

    assert response.status_code == 401
    assert response.json()["error_code"] == "ERR_AUTH_001"


async def test_customer_role_cannot_write(client, customer_headers, order_payload):
    response = await client.post("/v1/rental-orders", json=order_payload(), headers=customer_headers)
    assert response.status_code == 403
    assert response.json()["error_code"] == "ERR_PERM_001"
    assert response.json()["details"] == {"role": "CUSTOMER"}

    response = await client.get("/v1/rental-orders", headers=customer_headers)
    assert response.status_code == 200


async def test_list_orders(client, staff_headers, order_payload, seeded):
    await _create_order(client, staff_headers, order_payload)
    await _create_order(client, staff_headers, order_payload, vehicle_id=seeded["suv"].id)

    response = await client.get(
        "/v1/rental-orders", params={"search": "51G", "page_size": 5}, headers=staff_headers
    )
    page = response.json()["data"]
    assert page["total"] == 1
    assert page["page_size"] == 5
    assert page["items"][0]["vehicle_id"] == seeded["suv"].id


async def test_promotion_endpoints(client, staff_headers, seeded):
    response = await client.post("/v1/promotions/validate", json={
        "promotion_code": "SUMMER10",
        "sub_total": 1500000,
    }, headers=staff_headers)
    result = response.json()["data"]
    assert result["is_valid"] is True
    assert result["discount_amount"] == 50000

    response = await client.post("/v1/promotions/validate", json={
        "promotion_code": "MISSING",
        "sub_total": 1500000,
    }, headers=staff_headers)
    assert response.status_code == 200
    assert response.json()["data"]["is_valid"] is False

    promotion_id = seeded["percentage_promotion"].id
    copy = await _post(client, staff_headers, f"/v1/promotions/{promotion_id}/copy")
    assert copy["code"] == "SUMMER10_1"
    assert copy["used_count"] == 0
    copy = await _post(client, staff_headers, f"/v1/promotions/{promotion_id}/copy")
    assert copy["code"] == "SUMMER10_2"

    now = datetime.utcnow()
    response = await client.post("/v1/promotions", json={
        "code": "SUMMER10",
        "name": "Duplicate",
        "type": "PERCENTAGE",
        "value": 5,
        "start_date": now.isoformat(),
        "end_date": (now + timedelta(days=10)).isoformat(),
    }, headers=staff_headers)
    assert response.status_code == 400
    assert response.json()["error_code"] == "ERR_RULE_001"

    response = await client.delete(f"/v1/promotions/{promotion_id}", headers=staff_headers)
    assert response.status_code == 200
    response = await client.get(f"/v1/promotions/{promotion_id}", headers=staff_headers)
    assert response.status_code == 404


async def test_notification_outage_does_not_fail_request(client, staff_headers, order_payload, mock_redis):
    mock_redis.fail = True

    order = await _create_order(client, staff_headers, order_payload, status="CONFIRMED")

    assert order["status"] == "CONFIRMED"
    assert mock_redis.published == []
