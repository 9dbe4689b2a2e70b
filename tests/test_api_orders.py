from decimal import Decimal


def _create_order(client, menu, table_number=1, quantity=2):
    response = client.post("/api/orders", json={
        "table_number": table_number,
        "items": [{"menu_item_id": menu["paneer"].id, "quantity": quantity}],
    })
    assert response.status_code == 201, response.text
    return response.json()["data"]


def test_create_order_returns_envelope_with_totals(client, tables, menu):
    order = _create_order(client, menu)

    assert order["status"] == "confirmed"
    assert order["table_number"] == 1
    assert Decimal(order["subtotal"]) == Decimal("500.00")
    assert Decimal(order["tax"]) == Decimal("50.00")
    assert Decimal(order["total"]) == Decimal("550.00")
    assert order["items"][0]["menu_item"]["name"] == "Paneer Tikka"
    assert client.get(f"/api/tables/{tables[0].id}").json()["data"]["status"] == "occupied"


def test_create_order_failures(client, tables, menu):
    missing_table = client.post("/api/orders", json={"table_number": 50, "items": [{"menu_item_id": menu["dosa"].id, "quantity": 1}]})
    assert missing_table.status_code == 404
    assert missing_table.json()["success"] is False

    empty = client.post("/api/orders", json={"table_number": 1, "items": []})
    assert empty.status_code == 400

    bad_quantity = client.post("/api/orders", json={"table_number": 1, "items": [{"menu_item_id": menu["dosa"].id, "quantity": 0}]})
    assert bad_quantity.status_code == 422

    _create_order(client, menu)
    second = client.post("/api/orders", json={"table_number": 1, "items": [{"menu_item_id": menu["dosa"].id, "quantity": 1}]})
    assert second.status_code == 409
    assert "Use add items endpoint instead" in second.json()["message"]


def test_order_queries(client, tables, menu):
    first = _create_order(client, menu, table_number=1)
    second = _create_order(client, menu, table_number=2)

    listed = client.get("/api/orders").json()["data"]
    assert {o["id"] for o in listed} == {first["id"], second["id"]}

    by_table = client.get("/api/orders", params={"table_id": tables[1].id}).json()["data"]
    assert [o["id"] for o in by_table] == [second["id"]]

    assert client.get(f"/api/orders/{first['id']}").json()["data"]["order_number"] == first["order_number"]
    assert client.get("/api/orders/table/2").json()["data"]["id"] == second["id"]

    idle = client.get("/api/orders/table/3").json()
    assert idle["data"] is None
    assert idle["message"] == "No active order for this table"

    assert client.get("/api/orders/999").status_code == 404


def test_add_items_and_kot(client, tables, menu):
    order = _create_order(client, menu, quantity=1)

    response = client.post(f"/api/orders/{order['id']}/items", json={"items": [{"menu_item_id": menu["dosa"].id, "quantity": 2}]})
    assert response.status_code == 200
    updated = response.json()["data"]
    assert len(updated["items"]) == 2
    assert Decimal(updated["total"]) == Decimal("539.00")

    kot = client.get(f"/api/orders/{order['id']}/kot").json()["data"]
    assert kot["kot_number"] == f"KOT-{order['order_number']}"
    assert [(i["name"], i["quantity"]) for i in kot["items"]] == [("Paneer Tikka", 1), ("Masala Dosa", 2)]


def test_item_status_endpoint(client, tables, menu, waiter_headers):
    order = _create_order(client, menu)
    item_id = order["items"][0]["id"]

    response = client.put(f"/api/orders/{order['id']}/items/{item_id}/status", json={"status": "preparing"}, headers=waiter_headers)
    assert response.status_code == 200
    assert response.json()["data"]["status"] == "preparing"
    assert client.get(f"/api/orders/{order['id']}").json()["data"]["status"] == "preparing"

    illegal = client.put(f"/api/orders/{order['id']}/items/{item_id}/status", json={"status": "pending"}, headers=waiter_headers)
    assert illegal.status_code == 409
    assert illegal.json()["error"] == "invalid_transition"


def test_deleting_last_item_cancels_order(client, tables, menu, waiter_headers):
    order = _create_order(client, menu)
    item_id = order["items"][0]["id"]

    response = client.delete(f"/api/orders/{order['id']}/items/{item_id}", headers=waiter_headers)

    body = response.json()
    assert response.status_code == 200
    assert body["order_cancelled"] is True
    assert body["message"] == "Last item deleted. Order cancelled and table freed."
    assert body["data"]["status"] == "cancelled"
    assert client.get(f"/api/tables/{tables[0].id}").json()["data"]["status"] == "available"


def test_order_status_endpoint(client, tables, menu, waiter_headers):
    order = _create_order(client, menu)

    completed = client.put(f"/api/orders/{order['id']}/status", json={"status": "completed"}, headers=waiter_headers)
    assert completed.status_code == 409

    cancelled = client.put(f"/api/orders/{order['id']}/status", json={"status": "cancelled"}, headers=waiter_headers)
    assert cancelled.status_code == 200
    assert cancelled.json()["data"]["status"] == "cancelled"


def test_bill_flow(client, tables, menu, cashier_headers):
    order = _create_order(client, menu)

    generated = client.post(f"/api/bills/generate/{order['id']}")
    assert generated.status_code == 201
    bill = generated.json()["data"]
    assert Decimal(bill["total_amount"]) == Decimal("550.00")
    assert bill["order"]["id"] == order["id"]

    again = client.post(f"/api/bills/generate/{order['id']}")
    assert again.status_code == 200
    assert again.json()["data"]["id"] == bill["id"]

    settled = client.post(f"/api/bills/{bill['id']}/settle", json={
        "payment_method": "cash",
        "paid_amount": "600.00",
        "version": bill["version"],
    }, headers=cashier_headers)
    assert settled.status_code == 200
    data = settled.json()["data"]
    assert data["is_paid"] is True
    assert Decimal(data["change_amount"]) == Decimal("50.00")
    assert data["order"]["status"] == "completed"
    assert client.get(f"/api/tables/{tables[0].id}").json()["data"]["status"] == "available"

    double = client.post(f"/api/bills/{bill['id']}/settle", json={"payment_method": "cash"}, headers=cashier_headers)
    assert double.status_code == 409
    assert double.json()["message"] == "Bill is already paid"


def test_bill_lookups_and_pdf(client, tables, menu):
    order = _create_order(client, menu)
    bill = client.post(f"/api/bills/generate/{order['id']}").json()["data"]

    assert client.get(f"/api/bills/{bill['id']}").json()["data"]["bill_number"] == bill["bill_number"]
    assert client.get(f"/api/bills/order/{order['id']}").json()["data"]["id"] == bill["id"]
    assert [b["id"] for b in client.get("/api/bills", params={"is_paid": False}).json()["data"]] == [bill["id"]]
    assert client.get("/api/bills", params={"is_paid": True}).json()["data"] == []

    pdf = client.get(f"/api/bills/{bill['id']}/pdf")
    assert pdf.status_code == 200
    assert pdf.headers["content-type"] == "application/pdf"
    assert pdf.content.startswith(b"%PDF")


def test_settle_validation(client, tables, menu, cashier_headers):
    order = _create_order(client, menu)
    bill = client.post(f"/api/bills/generate/{order['id']}").json()["data"]

    wrong_method = client.post(f"/api/bills/{bill['id']}/settle", json={"payment_method": "cheque"}, headers=cashier_headers)
    assert wrong_method.status_code == 422

    short = client.post(f"/api/bills/{bill['id']}/settle", json={"payment_method": "card", "paid_amount": "100.00"}, headers=cashier_headers)
    assert short.status_code == 400

    stale = client.post(f"/api/bills/{bill['id']}/settle", json={"payment_method": "card", "version": 5}, headers=cashier_headers)
    assert stale.status_code == 409

    assert client.post("/api/bills/999/settle", json={"payment_method": "card"}, headers=cashier_headers).status_code == 404


def test_staff_writes_require_login(client, tables, menu):
    order = _create_order(client, menu)
    item_id = order["items"][0]["id"]

    assert client.put(f"/api/orders/{order['id']}/items/{item_id}/status", json={"status": "preparing"}).status_code in (401, 403)
    assert client.put(f"/api/orders/{order['id']}/status", json={"status": "cancelled"}).status_code in (401, 403)
    assert client.delete(f"/api/orders/{order['id']}/items/{item_id}").status_code in (401, 403)
    assert client.get(f"/api/orders/{order['id']}").json()["data"]["status"] == "confirmed"


def test_settlement_is_limited_to_cashiers_and_admins(client, tables, menu, waiter_headers, cashier_headers):
    order = _create_order(client, menu)
    bill = client.post(f"/api/bills/generate/{order['id']}").json()["data"]

    anonymous = client.post(f"/api/bills/{bill['id']}/settle", json={"payment_method": "cash"})
    assert anonymous.status_code in (401, 403)

    waiter = client.post(f"/api/bills/{bill['id']}/settle", json={"payment_method": "cash"}, headers=waiter_headers)
    assert waiter.status_code == 403
    assert waiter.json()["message"] == "Only cashiers and admins can settle bills"

    settled = client.post(
        f"/api/bills/{bill['id']}/settle",
        json={"payment_method": "cash", "cashier_id": 999},
        headers=cashier_headers,
    )
    cashier_id = client.get("/api/auth/me", headers=cashier_headers).json()["id"]
    assert settled.status_code == 200
    assert settled.json()["data"]["cashier_id"] == cashier_id


def test_item_status_records_the_logged_in_staff_member(client, tables, menu, waiter_headers):
    order = _create_order(client, menu)
    item_id = order["items"][0]["id"]
    waiter_id = client.get("/api/auth/me", headers=waiter_headers).json()["id"]
    client.put(f"/api/orders/{order['id']}/items/{item_id}/status", json={"status": "preparing"}, headers=waiter_headers)

    response = client.put(
        f"/api/orders/{order['id']}/items/{item_id}/status",
        json={"status": "ready", "actor_id": 999},
        headers=waiter_headers,
    )

    assert response.json()["data"]["prepared_by"] == waiter_id
