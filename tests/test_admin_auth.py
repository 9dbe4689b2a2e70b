import base64
from decimal import Decimal


def test_first_registration_bootstraps_admin(client):
    response = client.post("/api/auth/register", json={
        "name": "Owner",
        "email": "owner@pos.test",
        "password": "secret123",
        "role": "waiter",
    })

    assert response.status_code == 201
    assert response.json()["role"] == "admin"


def test_registration_requires_admin_once_one_exists(client, admin_user, admin_headers):
    payload = {"name": "Wes", "email": "wes@pos.test", "password": "secret123", "role": "waiter"}

    anonymous = client.post("/api/auth/register", json=payload)
    assert anonymous.status_code == 403

    created = client.post("/api/auth/register", json=payload, headers=admin_headers)
    assert created.status_code == 201
    assert created.json()["role"] == "waiter"

    duplicate = client.post("/api/auth/register", json=payload, headers=admin_headers)
    assert duplicate.status_code == 400


def test_login_and_me(client, admin_user):
    bad = client.post("/api/auth/login", json={"email": "admin@pos.test", "password": "wrong"})
    assert bad.status_code == 401
    assert bad.json()["success"] is False

    login = client.post("/api/auth/login", json={"email": "admin@pos.test", "password": "secret123"})
    assert login.status_code == 200
    token = login.json()["access_token"]

    me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert me.json()["email"] == "admin@pos.test"

    garbage = client.get("/api/auth/me", headers={"Authorization": "Bearer not-a-token"})
    assert garbage.status_code == 401


def test_dashboard_requires_admin(client, db, admin_user):
    from models.user import User, UserRole
    from utils.auth import create_access_token, get_password_hash

    waiter = User(name="Wes", email="wes@pos.test", hashed_password=get_password_hash("secret123"), role=UserRole.WAITER)
    db.add(waiter)
    db.commit()
    headers = {"Authorization": f"Bearer {create_access_token({'sub': waiter.email})}"}

    assert client.get("/api/admin/dashboard", headers=headers).status_code == 403
    assert client.get("/api/admin/dashboard").status_code in (401, 403)


def test_dashboard_counts_today(client, tables, menu, admin_headers):
    paid = client.post("/api/orders", json={"table_number": 1, "items": [{"menu_item_id": menu["paneer"].id, "quantity": 2}]}).json()["data"]
    client.post("/api/orders", json={"table_number": 2, "items": [{"menu_item_id": menu["dosa"].id, "quantity": 1}]})
    bill = client.post(f"/api/bills/generate/{paid['id']}").json()["data"]
    client.post(f"/api/bills/{bill['id']}/settle", json={"payment_method": "upi"}, headers=admin_headers)

    stats = client.get("/api/admin/dashboard", headers=admin_headers).json()["data"]

    assert Decimal(stats["today_revenue"]) == Decimal("550.00")
    assert stats["active_orders"] == 1
    assert stats["occupied_tables"] == 1
    assert stats["total_tables"] == 3
    assert stats["today_orders"] == 2


def test_menu_crud(client, menu, admin_headers):
    listed = client.get("/api/menu", params={"available": True}).json()["data"]
    assert "Seasonal Soup" not in [item["name"] for item in listed]

    created = client.post("/api/menu", json={"name": "  Lassi ", "category": "Drinks", "price": "80.00"}, headers=admin_headers)
    assert created.status_code == 201
    item = created.json()["data"]
    assert item["name"] == "Lassi"

    updated = client.put(f"/api/menu/{item['id']}", json={"price": "90.00"}, headers=admin_headers)
    assert Decimal(updated.json()["data"]["price"]) == Decimal("90.00")

    assert client.delete(f"/api/menu/{item['id']}", headers=admin_headers).json()["message"] == "Menu item deleted"
    assert client.get(f"/api/menu/{item['id']}").status_code == 404
    assert client.post("/api/menu", json={"name": "X", "category": "Y", "price": "1.00"}).status_code in (401, 403)


def test_menu_item_used_by_orders_is_hidden_not_deleted(client, tables, menu, admin_headers):
    client.post("/api/orders", json={"table_number": 1, "items": [{"menu_item_id": menu["dosa"].id, "quantity": 1}]})

    response = client.delete(f"/api/menu/{menu['dosa'].id}", headers=admin_headers)

    assert response.status_code == 200
    assert client.get(f"/api/menu/{menu['dosa'].id}").json()["data"]["is_available"] is False


def test_image_upload_returns_data_uri(client, admin_headers):
    png = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64

    response = client.post(
        "/api/menu/upload-image",
        files={"image": ("dish.png", png, "image/png")},
        headers=admin_headers,
    )

    body = response.json()
    assert response.status_code == 200
    assert body["image_url"] == "data:image/png;base64," + base64.b64encode(png).decode("ascii")
    assert body["size"] == len(base64.b64encode(png))


def test_image_upload_rejects_non_images_and_large_files(client, admin_headers):
    text = client.post("/api/menu/upload-image", files={"image": ("notes.txt", b"hello", "text/plain")}, headers=admin_headers)
    assert text.status_code == 400

    large = client.post(
        "/api/menu/upload-image",
        files={"image": ("big.jpg", b"\xff" * (500 * 1024 + 1), "image/jpeg")},
        headers=admin_headers,
    )
    assert large.status_code == 400
    assert large.json()["message"] == "Image must be 500KB or smaller"


def test_health(client):
    assert client.get("/health").json() == {"status": "ok", "connections": 0}
