from fastapi import APIRouter, Depends, Response
from typing import List, Optional
from swiftlocal.api.deps import get_orders, get_session, require_operation
from swiftlocal.core.config import settings
from swiftlocal.core.session import MarketplaceSession, require_session
from swiftlocal.db.models import OrderStatus, Role
from swiftlocal.schemas import OrderRead, PlaceOrderRequest, StatusUpdate
from swiftlocal.services.dashboards import authorize
from swiftlocal.services.orders import OrderService, allowed_transitions

router = APIRouter()

STATUS_OPERATIONS = {Role.VENDOR: "vendor.orders.update", Role.DELIVERY: "delivery.orders.update"}

def _poll_hint(response: Response) -> None:
    response.headers["X-Poll-Interval"] = str(settings.DELIVERY_POLL_INTERVAL_SECONDS)

@router.post("/v1/orders", response_model=OrderRead, status_code=201)
def place_order(payload: PlaceOrderRequest, session: MarketplaceSession = Depends(require_operation("orders.place")),
                orders: OrderService = Depends(get_orders)):
    return orders.place_order(session, payload.vendor_id, payload.delivery_address, payload.items, payload.total_amount)

@router.get("/v1/orders", response_model=List[OrderRead])
def my_orders(session: MarketplaceSession = Depends(require_operation("orders.own")), orders: OrderService = Depends(get_orders)):
    return orders.list_for_customer(session)

@router.get("/v1/orders/{order_id}", response_model=OrderRead)
def get_order(order_id: str, session: Optional[MarketplaceSession] = Depends(get_session), orders: OrderService = Depends(get_orders)):
    return orders.get_order(session, order_id)

@router.get("/v1/orders/{order_id}/transitions", response_model=List[str])
def next_statuses(order_id: str, session: Optional[MarketplaceSession] = Depends(get_session), orders: OrderService = Depends(get_orders)):
    """Statuses the caller may move this order to; empty when it is not their turn."""
    order = orders.get_order(session, order_id)
    return [s.value for s in allowed_transitions(OrderStatus(order.status), session.role)]

@router.post("/v1/orders/{order_id}/status", response_model=OrderRead)
def update_status(order_id: str, payload: StatusUpdate, session: Optional[MarketplaceSession] = Depends(get_session),
                  orders: OrderService = Depends(get_orders)):
    session = require_session(session)
    # other roles own no transitions; the state machine refuses them
    if session.role in STATUS_OPERATIONS:
        authorize(session, STATUS_OPERATIONS[session.role])
    return orders.update_status(session, order_id, payload.status)

@router.get("/v1/vendor/orders", response_model=List[OrderRead])
def vendor_orders(session: MarketplaceSession = Depends(require_operation("vendor.orders.read")), orders: OrderService = Depends(get_orders)):
    return orders.list_for_vendor(session)

@router.get("/v1/delivery/orders", response_model=List[OrderRead])
def delivery_orders(response: Response, session: MarketplaceSession = Depends(require_operation("delivery.orders.read")),
                    orders: OrderService = Depends(get_orders)):
    _poll_hint(response)
    return orders.list_for_delivery(session)

@router.get("/v1/delivery/history", response_model=List[OrderRead])
def delivery_history(response: Response, session: MarketplaceSession = Depends(require_operation("delivery.history")),
                     orders: OrderService = Depends(get_orders)):
    _poll_hint(response)
    return orders.list_delivery_history(session)
