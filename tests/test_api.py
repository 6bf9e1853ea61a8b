import pytest

from swiftlocal.db.models import ApprovalStatus, Product, Role

from tests.conftest import make_token


@pytest.fixture
def people(make_user, make_vendor):
    return {
        "customer": make_user(),
        "vendor": make_vendor(store_name="Corner Bakery", city="Springfield"),
        "pending": make_vendor(store_name="New Deli", approval=ApprovalStatus.PENDING),
        "courier": make_user(Role.DELIVERY),
        "admin": make_user(Role.ADMIN),
    }


def test_health_and_info(client):
    assert client.get("/health").json() == {"status": "ok"}
    assert client.get("/v1/_info").json()["service"] == "swiftlocal"


def test_me_requires_a_token(client):
    res = client.get("/v1/me")
    assert res.status_code == 401
    assert res.json()["title"] == "Sign in required"


@pytest.mark.parametrize("token", ["not-a-jwt", make_token("someone", token_type="refresh")])
def test_bad_tokens(client, token):
    res = client.get("/cart/v1/cart", headers={"Authorization": f"Bearer {token}"})
    assert res.status_code == 401


def test_token_for_unknown_user(client, auth):
    assert client.get("/v1/me", headers=auth("ghost")).status_code == 401


def test_me_for_each_role(client, auth, people):
    customer = client.get("/v1/me", headers=auth(people["customer"])).json()
    assert customer["role"] == "user"
    assert "cart.checkout" in customer["dashboard"]["operations"]

    pending = client.get("/v1/me", headers=auth(people["pending"])).json()
    assert pending["dashboard"]["view"] == "approval_pending"
    assert pending["dashboard"]["operations"] == []
    assert "under review" in pending["dashboard"]["notice"]


def test_shopping_flow(client, auth, people, make_product):
    bread = make_product(people["vendor"], name="Sourdough", price="4.50", stock=5)
    jam = make_product(people["vendor"], name="Jam", price="6.00", stock=5)
    headers = auth(people["customer"])

    listed = client.get("/catalog/v1/products").json()
    assert {p["name"] for p in listed} == {"Sourdough", "Jam"}

    res = client.post("/cart/v1/cart/items", json={"product_id": bread, "qty": 2}, headers=headers)
    assert res.status_code == 201
    cart = client.post("/cart/v1/cart/items", json={"product_id": jam}, headers=headers).json()
    assert cart["total_items"] == 3
    assert cart["subtotal"] == "15.00"
    assert cart["vendor_id"] == people["vendor"]

    jam_line = next(line for line in cart["items"] if line["product_id"] == jam)
    cart = client.patch(f"/cart/v1/cart/items/{jam_line['id']}", json={"qty": 0}, headers=headers).json()
    assert [line["product_id"] for line in cart["items"]] == [bread]

    res = client.post("/cart/v1/cart/checkout", json={"delivery_address": "9 Oak Ave"}, headers=headers)
    assert res.status_code == 201
    order = res.json()
    assert order["status"] == "pending"
    assert order["total_amount"] == "9.00"
    assert order["vendor_store_name"] == "Corner Bakery"

    assert client.get("/cart/v1/cart", headers=headers).json()["items"] == []
    assert [o["id"] for o in client.get("/order/v1/orders", headers=headers).json()] == [order["id"]]


def test_conflicts_render_as_problem_json(client, auth, people, make_vendor, make_product):
    bread = make_product(people["vendor"])
    fish = make_product(make_vendor(store_name="Fish Market"), name="Trout")
    headers = auth(people["customer"])
    client.post("/cart/v1/cart/items", json={"product_id": bread}, headers=headers)

    res = client.post("/cart/v1/cart/items", json={"product_id": fish}, headers=headers)

    assert res.status_code == 409
    assert res.json()["title"] == "Different vendor"


def test_quantity_must_be_positive(client, auth, people, make_product):
    bread = make_product(people["vendor"])
    res = client.post("/cart/v1/cart/items", json={"product_id": bread, "qty": 0}, headers=auth(people["customer"]))
    assert res.status_code == 422


def test_pending_vendor_is_blocked(client, auth, people, gateway):
    headers = auth(people["pending"])
    res = client.post("/vendor/v1/products", json={"name": "Pastrami", "price": "9.00", "stock_quantity": 3}, headers=headers)
    assert res.status_code == 403
    assert res.json()["title"] == "Vendor not approved"
    assert gateway.select(Product) == []
    assert client.get("/vendor/v1/store", headers=headers).status_code == 403
    assert client.get("/order/v1/vendor/orders", headers=headers).status_code == 403


def test_vendor_manages_products_and_images(client, auth, people):
    headers = auth(people["vendor"])
    res = client.post("/vendor/v1/products", json={"name": "Bagel", "price": "1.25", "stock_quantity": 30}, headers=headers)
    assert res.status_code == 201
    product_id = res.json()["id"]

    toggled = client.post(f"/vendor/v1/products/{product_id}/active", json={"is_active": False}, headers=headers)
    assert toggled.json()["is_active"] is False
    assert client.get("/catalog/v1/products").json() == []

    upload = client.post("/vendor/v1/images", files={"file": ("bagel.png", b"\x89PNG", "image/png")}, headers=headers)
    assert upload.status_code == 201
    assert upload.json()["path"].endswith(".png")

    assert client.delete(f"/vendor/v1/products/{product_id}", headers=headers).status_code == 204
    assert client.get("/vendor/v1/products", headers=headers).json() == []


def test_order_status_flow(client, auth, people, make_product):
    bread = make_product(people["vendor"], price="4.50")
    items = [{"product_id": bread, "product_name": "Sourdough", "product_price": "4.50", "quantity": 2}]
    order = client.post(
        "/order/v1/orders",
        json={"vendor_id": people["vendor"], "delivery_address": "9 Oak Ave", "items": items, "total_amount": "9.00"},
        headers=auth(people["customer"]),
    ).json()
    url = f"/order/v1/orders/{order['id']}"

    refused = client.post(f"{url}/status", json={"status": "cancelled"}, headers=auth(people["customer"]))
    assert refused.status_code == 409
    by_admin = client.post(f"{url}/status", json={"status": "accepted"}, headers=auth(people["admin"]))
    assert by_admin.status_code == 409
    assert by_admin.json()["title"] == "Illegal status change"

    vendor = auth(people["vendor"])
    assert client.get(f"{url}/transitions", headers=vendor).json() == ["accepted", "cancelled"]
    assert client.post(f"{url}/status", json={"status": "accepted"}, headers=vendor).status_code == 200
    assert client.post(f"{url}/status", json={"status": "ready_for_pickup"}, headers=vendor).json()["status"] == "ready_for_pickup"

    courier = auth(people["courier"])
    res = client.get("/order/v1/delivery/orders", headers=courier)
    assert res.headers["X-Poll-Interval"] == "30"
    assert [o["id"] for o in res.json()] == [order["id"]]

    skipped = client.post(f"{url}/status", json={"status": "delivered"}, headers=courier)
    assert skipped.status_code == 409
    client.post(f"{url}/status", json={"status": "picked_up"}, headers=courier)
    client.post(f"{url}/status", json={"status": "delivered"}, headers=courier)
    assert [o["status"] for o in client.get("/order/v1/delivery/history", headers=courier).json()] == ["delivered"]


def test_admin_routes(client, auth, people):
    admin = auth(people["admin"])
    stats = client.get("/admin/v1/stats", headers=admin).json()
    assert stats["total_vendors"] == 2
    assert [v["user_id"] for v in client.get("/admin/v1/vendors/pending", headers=admin).json()] == [people["pending"]]

    res = client.post(f"/admin/v1/vendors/{people['pending']}/approval", json={"status": "approved"}, headers=admin)
    assert res.json()["approval_status"] == "approved"
    assert client.get("/v1/me", headers=auth(people["pending"])).json()["dashboard"]["view"] == "dashboard"

    assert client.get("/admin/v1/members?role=delivery", headers=admin).json()[0]["user_id"] == people["courier"]
    assert client.get("/admin/v1/orders?status=pending", headers=admin).json() == []
    assert client.get("/admin/v1/stats", headers=auth(people["customer"])).status_code == 403
