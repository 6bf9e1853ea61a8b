from fastapi import APIRouter, Depends
from swiftlocal.api.deps import get_cart, get_orders, require_operation
from swiftlocal.core.session import MarketplaceSession
from swiftlocal.schemas import CartItemAdd, CartItemUpdate, CartRead, CheckoutRequest, OrderRead
from swiftlocal.services.cart import Cart, CartEngine
from swiftlocal.services.orders import OrderService

router = APIRouter()

def _view(cart: Cart) -> CartRead:
    return CartRead.model_validate(cart)

@router.get("/v1/cart", response_model=CartRead)
def get_my_cart(session: MarketplaceSession = Depends(require_operation("cart.read")), cart: CartEngine = Depends(get_cart)):
    return _view(cart.load(session))

@router.post("/v1/cart/items", response_model=CartRead, status_code=201)
def add_item(payload: CartItemAdd, session: MarketplaceSession = Depends(require_operation("cart.add")), cart: CartEngine = Depends(get_cart)):
    return _view(cart.add_item(session, payload.product_id, payload.qty))

@router.patch("/v1/cart/items/{line_id}", response_model=CartRead)
def update_item(line_id: str, payload: CartItemUpdate, session: MarketplaceSession = Depends(require_operation("cart.update")), cart: CartEngine = Depends(get_cart)):
    # stepping a line down to zero removes it
    if payload.qty == 0:
        return _view(cart.remove_item(session, line_id))
    return _view(cart.update_quantity(session, line_id, payload.qty))

@router.delete("/v1/cart/items/{line_id}", response_model=CartRead)
def remove_item(line_id: str, session: MarketplaceSession = Depends(require_operation("cart.remove")), cart: CartEngine = Depends(get_cart)):
    return _view(cart.remove_item(session, line_id))

@router.post("/v1/cart/clear", response_model=CartRead)
def clear(session: MarketplaceSession = Depends(require_operation("cart.clear")), cart: CartEngine = Depends(get_cart)):
    return _view(cart.clear(session))

@router.post("/v1/cart/checkout", response_model=OrderRead, status_code=201)
def checkout(payload: CheckoutRequest, session: MarketplaceSession = Depends(require_operation("cart.checkout")),
             cart: CartEngine = Depends(get_cart), orders: OrderService = Depends(get_orders)):
    return cart.checkout(session, payload.delivery_address, orders)
