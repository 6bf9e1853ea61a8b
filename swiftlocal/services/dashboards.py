"""One dashboard per role, chosen in a single place.

``dashboard_for`` is the only code that branches on the session's role to
decide what the caller may do. HTTP routes name the operation they perform
and ``authorize`` checks it against the caller's dashboard.
"""
from dataclasses import dataclass
from typing import FrozenSet, Optional, Union

from swiftlocal.core.errors import ApprovalRequired, Forbidden
from swiftlocal.core.session import MarketplaceSession, require_session
from swiftlocal.db.models import ApprovalStatus, Role
from swiftlocal.services.approval import approval_state, blocking_notice, can_mutate

CUSTOMER_OPERATIONS = frozenset({
    "cart.read", "cart.add", "cart.update", "cart.remove", "cart.clear", "cart.checkout",
    "orders.place", "orders.own",
})
VENDOR_OPERATIONS = frozenset({
    "vendor.products.read", "vendor.products.write", "vendor.images.upload",
    "vendor.orders.read", "vendor.orders.update",
    "vendor.store.read", "vendor.store.write",
})
VENDOR_READ_OPERATIONS = frozenset({"vendor.products.read", "vendor.orders.read", "vendor.store.read"})
DELIVERY_OPERATIONS = frozenset({"delivery.orders.read", "delivery.orders.update", "delivery.history"})
ADMIN_OPERATIONS = frozenset({
    "admin.stats", "admin.vendors", "admin.members", "admin.orders", "admin.vendors.manage",
})


@dataclass(frozen=True)
class CustomerDashboard:
    role: Role = Role.USER
    view: str = "dashboard"
    operations: FrozenSet[str] = CUSTOMER_OPERATIONS
    read_only: bool = False
    notice: Optional[str] = None


@dataclass(frozen=True)
class VendorDashboard:
    # view is "dashboard", "approval_pending" or "approval_rejected"
    view: str
    operations: FrozenSet[str]
    read_only: bool = False
    notice: Optional[str] = None
    role: Role = Role.VENDOR

    @property
    def blocked(self) -> bool:
        return self.view != "dashboard"


@dataclass(frozen=True)
class DeliveryDashboard:
    role: Role = Role.DELIVERY
    view: str = "dashboard"
    operations: FrozenSet[str] = DELIVERY_OPERATIONS
    read_only: bool = False
    notice: Optional[str] = None


@dataclass(frozen=True)
class AdminDashboard:
    role: Role = Role.ADMIN
    view: str = "dashboard"
    operations: FrozenSet[str] = ADMIN_OPERATIONS
    read_only: bool = False
    notice: Optional[str] = None


Dashboard = Union[CustomerDashboard, VendorDashboard, DeliveryDashboard, AdminDashboard]


def _vendor_dashboard(session: MarketplaceSession) -> VendorDashboard:
    state = approval_state(session.profile)
    notice = blocking_notice(session.profile)
    if state is not ApprovalStatus.APPROVED:
        return VendorDashboard(view=f"approval_{state.value}", operations=frozenset(), notice=notice)
    if not can_mutate(session.profile):
        # suspended: the dashboard shell stays readable
        return VendorDashboard(view="dashboard", operations=VENDOR_READ_OPERATIONS, read_only=True, notice=notice)
    return VendorDashboard(view="dashboard", operations=VENDOR_OPERATIONS)


def dashboard_for(session: Optional[MarketplaceSession]) -> Dashboard:
    session = require_session(session)
    if session.role is Role.USER:
        return CustomerDashboard()
    if session.role is Role.VENDOR:
        return _vendor_dashboard(session)
    if session.role is Role.DELIVERY:
        return DeliveryDashboard()
    return AdminDashboard()


def authorize(session: Optional[MarketplaceSession], operation: str) -> Dashboard:
    dashboard = dashboard_for(session)
    if operation in dashboard.operations:
        return dashboard
    if isinstance(dashboard, VendorDashboard) and operation in VENDOR_OPERATIONS:
        # let the vendor service raise the precise gate error for writes
        if dashboard.blocked:
            raise ApprovalRequired(dashboard.notice)
        return dashboard
    raise Forbidden(f"Your account cannot perform {operation}")
