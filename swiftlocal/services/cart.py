"""Cart consistency engine.

One cart per customer, stored as ``cart_items`` rows. Two rules hold for
every successful mutation:

* all lines share one vendor (the *vendor lock*; only ``clear`` or removing
  the last line releases it),
* a line's quantity never exceeds the product's stock as read during the
  call. Stock is not reserved, so this is advisory until placement.

Each mutation is its own round-trip and the cart is reloaded from the
store afterwards, so the returned cart always reflects remote state.
"""
import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import TYPE_CHECKING, List, Optional

from swiftlocal.core.errors import (
    EmptyCart, InsufficientStock, InvalidQuantity, NotFound, OutOfStock, VendorConflict,
)
from swiftlocal.core.session import MarketplaceSession, require_session
from swiftlocal.db.models import CartItem, Product, Profile
from swiftlocal.schemas import OrderItemIn, OrderRead, ProductRead
from swiftlocal.services.catalog import CatalogAccessor, enrich_product, fetch_vendor_profiles, vendor_is_visible
from swiftlocal.store.gateway import DataGateway

if TYPE_CHECKING:
    from swiftlocal.services.orders import OrderService

logger = logging.getLogger(__name__)


@dataclass
class CartLine:
    id: str
    product_id: str
    vendor_id: str
    quantity: int
    product: ProductRead
    # false once the product is deactivated or its store is hidden
    available: bool = True


@dataclass
class Cart:
    user_id: str
    items: List[CartLine] = field(default_factory=list)

    @property
    def vendor_id(self) -> Optional[str]:
        return self.items[0].vendor_id if self.items else None

    @property
    def subtotal(self) -> Decimal:
        return sum((line.product.price * line.quantity for line in self.items), Decimal("0"))

    @property
    def total_items(self) -> int:
        return sum(line.quantity for line in self.items)

    def line_for(self, product_id: str) -> Optional[CartLine]:
        return next((line for line in self.items if line.product_id == product_id), None)


class CartEngine:
    def __init__(self, gateway: DataGateway, catalog: CatalogAccessor):
        self.gateway = gateway
        self.catalog = catalog

    def load(self, session: Optional[MarketplaceSession]) -> Cart:
        session = require_session(session)
        rows = self.gateway.select(CartItem, eq={"user_id": session.user_id}, order_by="created_at")
        if not rows:
            return Cart(user_id=session.user_id)
        products = self.catalog.get_products(r.product_id for r in rows)
        profiles = fetch_vendor_profiles(self.gateway, (p.vendor_id for p in products.values()))
        items = [
            CartLine(
                id=r.id,
                product_id=r.product_id,
                vendor_id=r.vendor_id,
                quantity=r.quantity,
                product=enrich_product(products[r.product_id], profiles.get(r.vendor_id)),
                available=bool(products[r.product_id].is_active) and vendor_is_visible(profiles.get(r.vendor_id)),
            )
            for r in rows
            # lines whose product was deleted drop out of the cart view
            if r.product_id in products
        ]
        return Cart(user_id=session.user_id, items=items)

    def add_item(self, session: Optional[MarketplaceSession], product_id: str, qty: int = 1) -> Cart:
        session = require_session(session)
        if qty < 1:
            raise InvalidQuantity("Quantity must be at least 1")
        product = self.gateway.get(Product, product_id)
        if product is None or not product.is_active:
            raise NotFound("Product not found")
        if not vendor_is_visible(self.gateway.first(Profile, user_id=product.vendor_id)):
            raise NotFound("Product not found")
        if product.stock_quantity < 1:
            raise OutOfStock(f"{product.name} is out of stock.")

        # the lock follows the stored rows, not only the lines still on display
        stored = self.gateway.select(CartItem, eq={"user_id": session.user_id}, order_by="created_at")
        locked_to = stored[0].vendor_id if stored else None
        if locked_to and locked_to != product.vendor_id:
            logger.info("vendor lock refused %s for user %s", product.id, session.user_id)
            raise VendorConflict(
                "Your cart already has items from another store. "
                "Clear it first or complete your current order."
            )

        existing = next((r for r in stored if r.product_id == product.id), None)
        if existing is not None:
            merged = existing.quantity + qty
            if merged > product.stock_quantity:
                raise InsufficientStock(
                    f"Only {product.stock_quantity} of {product.name} available; "
                    f"{existing.quantity} already in your cart."
                )
            self.gateway.update_by_id(CartItem, existing.id, {"quantity": merged})
        else:
            if qty > product.stock_quantity:
                raise InsufficientStock(f"Only {product.stock_quantity} of {product.name} available.")
            self.gateway.insert(CartItem(
                user_id=session.user_id,
                product_id=product.id,
                vendor_id=product.vendor_id,
                quantity=qty,
            ))
        logger.info("user %s added %d x %s", session.user_id, qty, product.id)
        return self.load(session)

    def update_quantity(self, session: Optional[MarketplaceSession], line_id: str, qty: int) -> Cart:
        session = require_session(session)
        if qty <= 0:
            raise InvalidQuantity("Quantity must be at least 1; remove the item instead")
        line = self.gateway.get(CartItem, line_id)
        if line is None or line.user_id != session.user_id:
            raise NotFound("Item not in cart")
        product = self.gateway.get(Product, line.product_id)
        if product is None:
            raise NotFound("Product not found")
        if qty > product.stock_quantity:
            raise InsufficientStock(f"Only {product.stock_quantity} of {product.name} available.")
        self.gateway.update_by_id(CartItem, line_id, {"quantity": qty})
        return self.load(session)

    def remove_item(self, session: Optional[MarketplaceSession], line_id: str) -> Cart:
        session = require_session(session)
        self.gateway.delete_where(CartItem, {"id": line_id, "user_id": session.user_id})
        return self.load(session)

    def clear(self, session: Optional[MarketplaceSession]) -> Cart:
        session = require_session(session)
        self.gateway.delete_where(CartItem, {"user_id": session.user_id})
        return Cart(user_id=session.user_id)

    def checkout(self, session: Optional[MarketplaceSession], delivery_address: str, orders: "OrderService") -> OrderRead:
        """Turn the cart into a pending order, then empty the cart."""
        session = require_session(session)
        cart = self.load(session)
        if not cart.items:
            raise EmptyCart()
        unavailable = [line.product.name for line in cart.items if not line.available]
        if unavailable:
            raise NotFound(f"No longer available: {', '.join(unavailable)}. Remove it from your cart to continue.")
        items = [
            OrderItemIn(
                product_id=line.product_id,
                product_name=line.product.name,
                product_price=line.product.price,
                quantity=line.quantity,
            )
            for line in cart.items
        ]
        order = orders.place_order(session, cart.vendor_id, delivery_address, items, total_amount=cart.subtotal)
        self.clear(session)
        return order
