"""Admin reporting and vendor management.

Counts are grouped in the store (one GROUP BY per table) instead of pulling
whole tables into the process.
"""
import logging
from decimal import Decimal
from typing import List, Optional

from pydantic import TypeAdapter

from swiftlocal.core.errors import Forbidden, NotFound, ValidationFailed
from swiftlocal.core.session import MarketplaceSession, require_session
from swiftlocal.db.models import ApprovalStatus, Order, OrderStatus, Product, Profile, Role, UserRole
from swiftlocal.schemas import OrderRead, PlatformStats, ProfileRead
from swiftlocal.services.approval import approval_state
from swiftlocal.services.orders import OrderService
from swiftlocal.store import view_cache as views
from swiftlocal.store.gateway import DataGateway
from swiftlocal.store.view_cache import ViewCache

logger = logging.getLogger(__name__)

_stats = TypeAdapter(PlatformStats)
_profiles = TypeAdapter(List[ProfileRead])
_orders = TypeAdapter(List[OrderRead])


class PlatformAggregation:
    def __init__(self, gateway: DataGateway, cache: ViewCache, orders: OrderService):
        self.gateway = gateway
        self.cache = cache
        self.orders = orders

    def _admin(self, session: Optional[MarketplaceSession]) -> MarketplaceSession:
        session = require_session(session)
        if session.role is not Role.ADMIN:
            raise Forbidden("Admins only")
        return session

    def _ids_with_role(self, role: Role) -> List[str]:
        return [r.user_id for r in self.gateway.select(UserRole, eq={"role": role.value})]

    # ---------- reports ----------
    def platform_stats(self, session: Optional[MarketplaceSession]) -> PlatformStats:
        self._admin(session)

        def load() -> PlatformStats:
            roles = self.gateway.count_grouped(UserRole, "role")
            by_status = self.gateway.sum_grouped(Order, "status", "total_amount")
            revenue = sum((Decimal(total) for _, total in by_status.values()), Decimal("0"))
            cancelled = Decimal(by_status.get(OrderStatus.CANCELLED.value, (0, 0))[1])
            return PlatformStats(
                total_users=roles.get(Role.USER.value, 0),
                total_vendors=roles.get(Role.VENDOR.value, 0),
                total_delivery=roles.get(Role.DELIVERY.value, 0),
                total_orders=sum(n for n, _ in by_status.values()),
                total_revenue=revenue,
                net_revenue=revenue - cancelled,
                orders_by_status={status: n for status, (n, _) in by_status.items()},
            )

        return self.cache.get_or_load(views.ADMIN_STATS, "all", _stats, load)

    def vendor_roster(self, session: Optional[MarketplaceSession]) -> List[ProfileRead]:
        """Every vendor profile with its live product and order counts."""
        self._admin(session)

        def load() -> List[ProfileRead]:
            ids = self._ids_with_role(Role.VENDOR)
            if not ids:
                return []
            profiles = self.gateway.select(Profile, in_={"user_id": ids}, order_by="created_at", descending=True)
            product_counts = self.gateway.count_grouped(Product, "vendor_id", in_={"vendor_id": ids})
            order_counts = self.gateway.count_grouped(Order, "vendor_id", in_={"vendor_id": ids})
            out = []
            for p in profiles:
                row = ProfileRead.model_validate(p)
                row.role = Role.VENDOR.value
                row.product_count = product_counts.get(p.user_id, 0)
                row.order_count = order_counts.get(p.user_id, 0)
                out.append(row)
            return out

        return self.cache.get_or_load(views.ADMIN_VENDORS, "roster", _profiles, load)

    def pending_vendors(self, session: Optional[MarketplaceSession]) -> List[ProfileRead]:
        """Vendors awaiting a decision, including those never given a status."""
        self._admin(session)

        def load() -> List[ProfileRead]:
            ids = self._ids_with_role(Role.VENDOR)
            rows = self.gateway.select(Profile, in_={"user_id": ids}, order_by="created_at", descending=True)
            return [
                ProfileRead.model_validate(p).model_copy(update={"role": Role.VENDOR.value})
                for p in rows
                if approval_state(p) is ApprovalStatus.PENDING
            ]

        return self.cache.get_or_load(views.ADMIN_VENDORS, "pending", _profiles, load)

    def members(self, session: Optional[MarketplaceSession], role: str) -> List[ProfileRead]:
        """Profiles of customers or delivery partners."""
        self._admin(session)
        try:
            wanted = Role(role)
        except ValueError:
            raise ValidationFailed(f"Unknown role {role!r}")
        if wanted not in (Role.USER, Role.DELIVERY):
            raise ValidationFailed("Use the vendor roster for vendors")

        def load() -> List[ProfileRead]:
            ids = self._ids_with_role(wanted)
            rows = self.gateway.select(Profile, in_={"user_id": ids}, order_by="created_at", descending=True)
            return [ProfileRead.model_validate(p).model_copy(update={"role": wanted.value}) for p in rows]

        return self.cache.get_or_load(views.ADMIN_MEMBERS, wanted.value, _profiles, load)

    def orders_filtered(self, session: Optional[MarketplaceSession], status: str = "all") -> List[OrderRead]:
        self._admin(session)
        if status != "all":
            try:
                status = OrderStatus(status).value
            except ValueError:
                raise ValidationFailed(f"Unknown order status {status!r}")

        def load() -> List[OrderRead]:
            eq = None if status == "all" else {"status": status}
            rows = self.gateway.select(Order, eq=eq, order_by="created_at", descending=True)
            return self.orders.enrich(rows)

        return self.cache.get_or_load(views.ADMIN_ORDERS, status, _orders, load)

    # ---------- vendor management ----------
    def _vendor_profile(self, user_id: str) -> Profile:
        assignment = self.gateway.first(UserRole, user_id=user_id)
        profile = self.gateway.first(Profile, user_id=user_id)
        if assignment is None or assignment.role != Role.VENDOR.value or profile is None:
            raise NotFound("Vendor not found")
        return profile

    def _vendor_changed(self) -> None:
        self.cache.invalidate([views.ADMIN_VENDORS, views.ADMIN_STATS, views.PUBLIC_PRODUCTS])

    def set_vendor_active(self, session: Optional[MarketplaceSession], user_id: str, is_active: bool) -> ProfileRead:
        admin = self._admin(session)
        self._vendor_profile(user_id)
        self.gateway.update_where(Profile, {"user_id": user_id}, {"is_active": is_active})
        self._vendor_changed()
        logger.info("admin %s %s vendor %s", admin.user_id, "activated" if is_active else "suspended", user_id)
        return ProfileRead.model_validate(self._vendor_profile(user_id))

    def set_vendor_approval(self, session: Optional[MarketplaceSession], user_id: str, status: str) -> ProfileRead:
        """Approving is the only way a vendor leaves the blocked state."""
        admin = self._admin(session)
        try:
            decision = ApprovalStatus(status)
        except ValueError:
            raise ValidationFailed(f"Unknown approval status {status!r}")
        if decision is ApprovalStatus.PENDING:
            raise ValidationFailed("A vendor can only be approved or rejected")
        self._vendor_profile(user_id)
        self.gateway.update_where(Profile, {"user_id": user_id}, {"approval_status": decision.value})
        self._vendor_changed()
        logger.info("admin %s marked vendor %s %s", admin.user_id, user_id, decision.value)
        return ProfileRead.model_validate(self._vendor_profile(user_id))
