def _send(ws, event, data=None):
    ws.send_json({"event": event, "data": data})


def test_ping_pong(client):
    with client.websocket_connect("/ws") as ws:
        _send(ws, "ping")
        message = ws.receive_json()

    assert message["event"] == "pong"
    assert isinstance(message["data"]["timestamp"], int)


def test_join_role_and_table(client, tables):
    with client.websocket_connect("/ws") as ws:
        _send(ws, "join-role", "waiter")
        assert ws.receive_json()["event"] == "role-joined"

        _send(ws, "join-table", {"table_number": 2})
        joined = ws.receive_json()
        assert joined == {"event": "table-joined", "data": {"table_number": 2, "connection_id": joined["data"]["connection_id"]}}

        _send(ws, "join-table", 77)
        error = ws.receive_json()
        assert error["event"] == "error"
        assert error["data"]["message"] == "Table not found"


def test_unknown_role_and_bad_messages_report_errors(client):
    with client.websocket_connect("/ws") as ws:
        _send(ws, "join-role", "manager")
        assert ws.receive_json()["event"] == "error"

        ws.send_text("not json")
        assert ws.receive_json()["data"]["message"] == "Invalid JSON"

        ws.send_json({"data": 1})
        assert ws.receive_json()["event"] == "error"


def test_request_refresh_only_answers_the_sender(client):
    with client.websocket_connect("/ws") as first, client.websocket_connect("/ws") as second:
        _send(first, "request-refresh")
        assert first.receive_json() == {"event": "refresh-data", "data": None}

        _send(second, "ping")
        assert second.receive_json()["event"] == "pong"


def test_call_waiter_reaches_waiters(client, tables):
    with client.websocket_connect("/ws") as waiter, client.websocket_connect("/ws") as guest:
        _send(waiter, "join-role", "waiter")
        waiter.receive_json()
        _send(guest, "join-table", 3)
        guest.receive_json()

        _send(guest, "call-waiter", {"tableNumber": 3})
        message = waiter.receive_json()

    assert message == {"event": "waiter-called", "data": {"tableNumber": 3}}


def test_order_ready_reaches_waiters_and_table(client, tables):
    with client.websocket_connect("/ws") as waiter, client.websocket_connect("/ws") as guest, \
            client.websocket_connect("/ws") as kitchen:
        _send(waiter, "join-role", "waiter")
        waiter.receive_json()
        _send(guest, "join-table", 1)
        guest.receive_json()

        _send(kitchen, "order-ready", {"tableNumber": 1, "orderNumber": "ORD2610190001"})

        assert waiter.receive_json()["event"] == "order-ready-notification"
        assert guest.receive_json()["data"]["orderNumber"] == "ORD2610190001"


def test_new_order_is_pushed_to_kitchen(client, tables, menu):
    with client.websocket_connect("/ws") as kitchen:
        _send(kitchen, "join-role", "kitchen")
        kitchen.receive_json()

        response = client.post("/api/orders", json={
            "table_number": 1,
            "items": [{"menu_item_id": menu["paneer"].id, "quantity": 1}],
        })
        assert response.status_code == 201

        new_order = kitchen.receive_json()
        ticket = kitchen.receive_json()
        table_update = kitchen.receive_json()

    assert new_order["event"] == "new-order"
    assert new_order["data"]["order_number"] == response.json()["data"]["order_number"]
    assert ticket["event"] == "print-kot"
    assert ticket["data"]["items"][0]["name"] == "Paneer Tikka"
    assert table_update["event"] == "table-updated"
    assert table_update["data"]["status"] == "occupied"


def test_connection_stats_endpoint(client, tables, admin_headers):
    with client.websocket_connect("/ws") as waiter, client.websocket_connect("/ws") as guest:
        _send(waiter, "join-role", "waiter")
        waiter.receive_json()
        _send(guest, "join-table", 1)
        guest.receive_json()

        stats = client.get("/api/admin/connections", headers=admin_headers).json()["data"]

    assert stats == {"total": 2, "customers": 1, "waiters": 1, "kitchen": 0, "admin": 0, "groups": 2}
