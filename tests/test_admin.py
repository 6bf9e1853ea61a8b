from decimal import Decimal

import pytest

from swiftlocal.core.errors import Forbidden, NotFound, ValidationFailed
from swiftlocal.db.models import ApprovalStatus, Role
from swiftlocal.schemas import OrderItemIn, ProductCreate


@pytest.fixture
def market(make_user, make_vendor, make_product, login, orders):
    approved = make_vendor(store_name="Corner Bakery")
    waiting = make_vendor(store_name="New Deli", approval=ApprovalStatus.PENDING)
    bread = make_product(approved, price="5.00", stock=50)
    make_product(approved, name="Bagel", price="1.25")
    customers = [make_user(), make_user()]
    courier = make_user(Role.DELIVERY)

    placed = []
    for customer, qty in zip(customers, (2, 4)):
        item = OrderItemIn(product_id=bread, product_name="Sourdough", product_price=Decimal("5.00"), quantity=qty)
        placed.append(orders.place_order(login(customer), approved, "9 Oak Ave", [item]))
    orders.update_status(login(approved), placed[0].id, "cancelled")
    return {
        "admin": login(make_user(Role.ADMIN)),
        "approved": approved,
        "waiting": waiting,
        "courier": courier,
        "orders": placed,
    }


def test_platform_stats(admin, market):
    stats = admin.platform_stats(market["admin"])
    assert (stats.total_users, stats.total_vendors, stats.total_delivery) == (2, 2, 1)
    assert stats.total_orders == 2
    assert stats.total_revenue == Decimal("30.00")
    assert stats.net_revenue == Decimal("20.00")
    assert stats.orders_by_status == {"cancelled": 1, "pending": 1}


def test_admin_only(admin, market, login):
    with pytest.raises(Forbidden):
        admin.platform_stats(login(market["approved"]))


def test_vendor_roster_counts(admin, market):
    roster = {p.user_id: p for p in admin.vendor_roster(market["admin"])}
    assert roster[market["approved"]].product_count == 2
    assert roster[market["approved"]].order_count == 2
    assert roster[market["waiting"]].product_count == 0
    assert roster[market["waiting"]].role == "vendor"


def test_roster_product_count_follows_vendor_edits(admin, market, vendors, login):
    def count():
        roster = {p.user_id: p for p in admin.vendor_roster(market["admin"])}
        return roster[market["approved"]].product_count

    assert count() == 2
    vendor = login(market["approved"])
    created = vendors.create_product(vendor, ProductCreate(name="Rye", price="3.00", stock_quantity=5))
    assert count() == 3
    vendors.delete_product(vendor, created.id)
    assert count() == 2


def test_pending_vendors_and_approval(admin, market, catalog, make_product):
    assert [p.user_id for p in admin.pending_vendors(market["admin"])] == [market["waiting"]]
    make_product(market["waiting"], name="Pastrami")
    assert "Pastrami" not in [p.name for p in catalog.list_public_products()]

    updated = admin.set_vendor_approval(market["admin"], market["waiting"], "approved")

    assert updated.approval_status == "approved"
    assert admin.pending_vendors(market["admin"]) == []
    assert "Pastrami" in [p.name for p in catalog.list_public_products()]


def test_approval_decisions(admin, market, make_user):
    with pytest.raises(ValidationFailed):
        admin.set_vendor_approval(market["admin"], market["waiting"], "pending")
    with pytest.raises(NotFound):
        admin.set_vendor_approval(market["admin"], make_user(), "approved")


def test_suspension_hides_products(admin, market, catalog):
    assert catalog.list_public_products()
    admin.set_vendor_active(market["admin"], market["approved"], False)
    assert catalog.list_public_products() == []
    assert admin.platform_stats(market["admin"]).total_vendors == 2


def test_members(admin, market):
    assert len(admin.members(market["admin"], "user")) == 2
    assert [m.user_id for m in admin.members(market["admin"], "delivery")] == [market["courier"]]
    with pytest.raises(ValidationFailed):
        admin.members(market["admin"], "vendor")


def test_orders_filtered(admin, market):
    assert len(admin.orders_filtered(market["admin"])) == 2
    cancelled = admin.orders_filtered(market["admin"], "cancelled")
    assert [o.id for o in cancelled] == [market["orders"][0].id]
    assert cancelled[0].vendor_store_name == "Corner Bakery"
    with pytest.raises(ValidationFailed):
        admin.orders_filtered(market["admin"], "lost")


def test_stats_follow_new_orders(admin, market, orders, login, make_user, gateway):
    from swiftlocal.db.models import Product

    assert admin.platform_stats(market["admin"]).total_orders == 2
    bread = gateway.select(Product, eq={"name": "Sourdough"})[0]
    item = OrderItemIn(product_id=bread.id, product_name="Sourdough", product_price=Decimal("5.00"), quantity=1)
    orders.place_order(login(make_user()), market["approved"], "1 Pine Rd", [item])
    assert admin.platform_stats(market["admin"]).total_orders == 3
