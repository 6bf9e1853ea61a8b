"""Order lifecycle.

    pending -> accepted -> ready_for_pickup -> picked_up -> delivered
       \\          \\
        cancelled   cancelled

Vendors drive the first half, delivery partners the second. ``delivered``
and ``cancelled`` are terminal. Only ``status`` (and ``updated_at``) ever
change after placement; totals, items and the vendor address snapshot are
frozen.
"""
import logging
from collections import Counter
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from pydantic import TypeAdapter

from swiftlocal.core.config import settings
from swiftlocal.core.errors import (
    EmptyCart, Forbidden, IllegalTransition, InsufficientStock, NotFound,
    TotalMismatch, ValidationFailed, VendorConflict,
)
from swiftlocal.core.session import MarketplaceSession, require_session
from swiftlocal.db.models import Order, OrderItem, OrderStatus, Product, Profile, Role, now_utc
from swiftlocal.schemas import OrderItemIn, OrderRead
from swiftlocal.services.approval import ensure_approved, ensure_can_mutate
from swiftlocal.services.catalog import fetch_vendor_profiles, vendor_is_visible
from swiftlocal.store import view_cache as views
from swiftlocal.store.gateway import DataGateway
from swiftlocal.store.view_cache import ViewCache

logger = logging.getLogger(__name__)

_orders = TypeAdapter(List[OrderRead])

STATUS_LABELS: Dict[OrderStatus, str] = {
    OrderStatus.PENDING: "Pending",
    OrderStatus.ACCEPTED: "Accepted",
    OrderStatus.READY_FOR_PICKUP: "Ready for Pickup",
    OrderStatus.PICKED_UP: "Picked Up",
    OrderStatus.DELIVERED: "Delivered",
    OrderStatus.CANCELLED: "Cancelled",
}

TRANSITIONS: Dict[Tuple[OrderStatus, OrderStatus], Role] = {
    (OrderStatus.PENDING, OrderStatus.ACCEPTED): Role.VENDOR,
    (OrderStatus.PENDING, OrderStatus.CANCELLED): Role.VENDOR,
    (OrderStatus.ACCEPTED, OrderStatus.READY_FOR_PICKUP): Role.VENDOR,
    (OrderStatus.ACCEPTED, OrderStatus.CANCELLED): Role.VENDOR,
    (OrderStatus.READY_FOR_PICKUP, OrderStatus.PICKED_UP): Role.DELIVERY,
    (OrderStatus.PICKED_UP, OrderStatus.DELIVERED): Role.DELIVERY,
}

TERMINAL = frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED})
DELIVERY_ACTIVE = (OrderStatus.READY_FOR_PICKUP, OrderStatus.PICKED_UP)


def allowed_transitions(current: OrderStatus, role: Role) -> List[OrderStatus]:
    return [to for (frm, to), who in TRANSITIONS.items() if frm == current and who == role]


def check_transition(current: OrderStatus, new: OrderStatus, role: Role) -> None:
    if TRANSITIONS.get((current, new)) != role:
        raise IllegalTransition(
            f"A {role.value} cannot move an order from "
            f"{STATUS_LABELS[current]} to {STATUS_LABELS[new]}."
        )


def vendor_address_snapshot(profile: Optional[Profile]) -> Optional[str]:
    """Store name, address line and phone joined with " · ", blanks omitted."""
    if profile is None:
        return None
    address = ", ".join(
        part for part in (profile.pickup_address_line, profile.city, profile.state, profile.zip_code) if part
    )
    return " · ".join(part for part in (profile.store_name, address, profile.phone) if part) or None


def order_views(user_id: str, vendor_id: str) -> List[str]:
    """Every named view that can contain an order of this customer/vendor pair."""
    return [
        views.family(views.USER_ORDERS, user_id),
        views.family(views.VENDOR_ORDERS, vendor_id),
        views.DELIVERY_ORDERS,
        views.DELIVERY_HISTORY,
        views.ADMIN_ORDERS,
        views.ADMIN_STATS,
        views.ADMIN_VENDORS,
    ]


class OrderService:
    def __init__(self, gateway: DataGateway, cache: ViewCache, decrement_stock: Optional[bool] = None):
        self.gateway = gateway
        self.cache = cache
        self.decrement_stock = settings.DECREMENT_STOCK_ON_PLACEMENT if decrement_stock is None else decrement_stock

    # ---------- placement ----------
    def place_order(
        self,
        session: Optional[MarketplaceSession],
        vendor_id: str,
        delivery_address: str,
        items: Sequence[OrderItemIn],
        total_amount: Optional[Decimal] = None,
    ) -> OrderRead:
        session = require_session(session)
        if session.role is not Role.USER:
            raise Forbidden("Only customers can place orders")
        if not items:
            raise EmptyCart()
        delivery_address = (delivery_address or "").strip()
        if not delivery_address:
            raise ValidationFailed("A delivery address is required")

        computed = sum((Decimal(i.product_price) * i.quantity for i in items), Decimal("0"))
        if total_amount is not None and Decimal(total_amount) != computed:
            raise TotalMismatch(f"Order total {total_amount} does not match items total {computed}")

        vendor = self.gateway.first(Profile, user_id=vendor_id)
        if not vendor_is_visible(vendor):
            raise NotFound("Store not found")
        products = {p.id: p for p in self.gateway.select(Product, in_={"id": {i.product_id for i in items}})}
        for item in items:
            product = products.get(item.product_id)
            if product is None or not product.is_active:
                raise NotFound(f"Product {item.product_name} is no longer available")
            if product.vendor_id != vendor_id:
                raise VendorConflict("All items of an order must come from the same store")

        order = Order(
            user_id=session.user_id,
            vendor_id=vendor_id,
            status=OrderStatus.PENDING.value,
            total_amount=computed,
            delivery_address=delivery_address,
            vendor_address_snapshot=vendor_address_snapshot(vendor),
        )
        with self.gateway.transaction():
            self.gateway.insert(order)
            self.gateway.insert_many([
                OrderItem(
                    order_id=order.id,
                    position=n,
                    product_id=item.product_id,
                    product_name=item.product_name,
                    product_price=Decimal(item.product_price),
                    quantity=item.quantity,
                )
                for n, item in enumerate(items)
            ])
            if self.decrement_stock:
                self._take_stock(items, products)
        order_id = order.id

        invalidate = order_views(session.user_id, vendor_id)
        if self.decrement_stock:
            invalidate += [views.PUBLIC_PRODUCTS, views.family(views.VENDOR_PRODUCTS, vendor_id)]
        self.cache.invalidate(invalidate)
        logger.info("order %s placed by %s with vendor %s for %s", order_id, session.user_id, vendor_id, computed)
        return self.enrich([self.gateway.get(Order, order_id)])[0]

    def _take_stock(self, items: Iterable[OrderItemIn], products: Dict[str, Product]) -> None:
        wanted = Counter()
        for item in items:
            wanted[item.product_id] += item.quantity
        for product_id, qty in wanted.items():
            ok = self.gateway.decrement_guarded(Product, product_id, "stock_quantity", qty, updated_at=now_utc())
            if not ok:
                raise InsufficientStock(f"Not enough stock left for {products[product_id].name}")

    # ---------- queries ----------
    def enrich(self, rows: List[Order]) -> List[OrderRead]:
        profiles = fetch_vendor_profiles(self.gateway, (o.vendor_id for o in rows))
        out = []
        for row in rows:
            order = OrderRead.model_validate(row)
            profile = profiles.get(row.vendor_id)
            if profile is not None:
                order.vendor_name = profile.full_name
                order.vendor_store_name = profile.store_name
            out.append(order)
        return out

    def list_for_customer(self, session: Optional[MarketplaceSession], user_id: Optional[str] = None) -> List[OrderRead]:
        session = require_session(session)
        user_id = user_id or session.user_id
        if user_id != session.user_id and session.role is not Role.ADMIN:
            raise Forbidden("You can only view your own orders")

        def load():
            rows = self.gateway.select(Order, eq={"user_id": user_id}, order_by="created_at", descending=True)
            return self.enrich(rows)

        return self.cache.get_or_load(views.family(views.USER_ORDERS, user_id), "all", _orders, load)

    def list_for_vendor(self, session: Optional[MarketplaceSession], vendor_id: Optional[str] = None) -> List[OrderRead]:
        session = require_session(session)
        vendor_id = vendor_id or session.user_id
        if session.role is Role.VENDOR and vendor_id == session.user_id:
            ensure_approved(session.profile)
        elif session.role is not Role.ADMIN:
            raise Forbidden("You can only view your own store's orders")

        def load():
            rows = self.gateway.select(Order, eq={"vendor_id": vendor_id}, order_by="created_at", descending=True)
            return self.enrich(rows)

        return self.cache.get_or_load(views.family(views.VENDOR_ORDERS, vendor_id), "all", _orders, load)

    def _require_delivery(self, session: MarketplaceSession) -> None:
        if session.role not in (Role.DELIVERY, Role.ADMIN):
            raise Forbidden("Delivery partners only")

    def list_for_delivery(self, session: Optional[MarketplaceSession]) -> List[OrderRead]:
        """Orders waiting for or on their way with a delivery partner, any vendor."""
        session = require_session(session)
        self._require_delivery(session)

        def load():
            rows = self.gateway.select(
                Order, in_={"status": [s.value for s in DELIVERY_ACTIVE]}, order_by="updated_at", descending=True,
            )
            return self.enrich(rows)

        return self.cache.get_or_load(
            views.DELIVERY_ORDERS, "all", _orders, load, ttl=settings.DELIVERY_POLL_INTERVAL_SECONDS,
        )

    def list_delivery_history(self, session: Optional[MarketplaceSession]) -> List[OrderRead]:
        session = require_session(session)
        self._require_delivery(session)

        def load():
            rows = self.gateway.select(
                Order, eq={"status": OrderStatus.DELIVERED.value}, order_by="updated_at", descending=True,
            )
            return self.enrich(rows)

        return self.cache.get_or_load(
            views.DELIVERY_HISTORY, "all", _orders, load, ttl=settings.DELIVERY_POLL_INTERVAL_SECONDS,
        )

    def get_order(self, session: Optional[MarketplaceSession], order_id: str) -> OrderRead:
        session = require_session(session)
        row = self.gateway.get(Order, order_id)
        if row is None or not self._can_see(session, row):
            raise NotFound("Order not found")
        return self.enrich([row])[0]

    def _can_see(self, session: MarketplaceSession, row: Order) -> bool:
        if session.role is Role.ADMIN:
            return True
        if session.role is Role.USER:
            return row.user_id == session.user_id
        if session.role is Role.VENDOR:
            return row.vendor_id == session.user_id
        return row.status in (*[s.value for s in DELIVERY_ACTIVE], OrderStatus.DELIVERED.value)

    # ---------- transitions ----------
    def update_status(self, session: Optional[MarketplaceSession], order_id: str, new_status: str) -> OrderRead:
        session = require_session(session)
        try:
            target = OrderStatus(new_status)
        except ValueError:
            raise IllegalTransition(f"Unknown order status {new_status!r}")
        row = self.gateway.get(Order, order_id)
        if row is None:
            raise NotFound("Order not found")
        current = OrderStatus(row.status)
        check_transition(current, target, session.role)
        if not self._can_see(session, row):
            raise NotFound("Order not found")
        if session.role is Role.VENDOR:
            ensure_can_mutate(session.profile)

        # compare-and-set: a concurrent change by another actor wins
        changed = self.gateway.update_where(
            Order,
            {"id": order_id, "status": current.value},
            {"status": target.value, "updated_at": now_utc()},
        )
        if not changed:
            logger.warning("order %s changed underneath %s", order_id, session.user_id)
            raise IllegalTransition("The order was updated by someone else. Refresh and try again.")

        self.cache.invalidate(order_views(row.user_id, row.vendor_id))
        logger.info("order %s: %s -> %s by %s %s", order_id, current.value, target.value, session.role.value, session.user_id)
        return self.get_order(session, order_id)
