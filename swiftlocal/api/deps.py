from typing import Iterator, Optional
from fastapi import Depends
from sqlalchemy.orm import Session
from swiftlocal.core.auth import get_optional_identity
from swiftlocal.core.config import settings
from swiftlocal.core.session import MarketplaceSession, open_session
from swiftlocal.db.session import SessionLocal
from swiftlocal.services.admin import PlatformAggregation
from swiftlocal.services.cart import CartEngine
from swiftlocal.services.catalog import CatalogAccessor
from swiftlocal.services.dashboards import authorize
from swiftlocal.services.orders import OrderService
from swiftlocal.services.vendor import VendorService
from swiftlocal.store.gateway import DataGateway
from swiftlocal.store.view_cache import ViewCache, redis_client

def get_db() -> Iterator[Session]:
    db = SessionLocal()
    try: yield db
    finally: db.close()

def get_gateway(db: Session = Depends(get_db)) -> DataGateway:
    return DataGateway(db)

def get_view_cache() -> ViewCache:
    return ViewCache(redis_client() if settings.REDIS_URL else None)

def get_session(
    identity: Optional[dict] = Depends(get_optional_identity),
    gateway: DataGateway = Depends(get_gateway),
) -> Iterator[Optional[MarketplaceSession]]:
    """Opened per request from the bearer token, closed when the request ends."""
    if identity is None:
        yield None
        return
    session = open_session(gateway, identity["sub"])
    try: yield session
    finally: session.close()

def require_operation(operation: str):
    def _checker(session: Optional[MarketplaceSession] = Depends(get_session)) -> MarketplaceSession:
        authorize(session, operation)
        return session
    return _checker

def get_catalog(gateway: DataGateway = Depends(get_gateway), cache: ViewCache = Depends(get_view_cache)) -> CatalogAccessor:
    return CatalogAccessor(gateway, cache)

def get_orders(gateway: DataGateway = Depends(get_gateway), cache: ViewCache = Depends(get_view_cache)) -> OrderService:
    return OrderService(gateway, cache)

def get_cart(gateway: DataGateway = Depends(get_gateway), catalog: CatalogAccessor = Depends(get_catalog)) -> CartEngine:
    return CartEngine(gateway, catalog)

def get_vendor_service(gateway: DataGateway = Depends(get_gateway), cache: ViewCache = Depends(get_view_cache)) -> VendorService:
    return VendorService(gateway, cache)

def get_admin(
    gateway: DataGateway = Depends(get_gateway),
    cache: ViewCache = Depends(get_view_cache),
    orders: OrderService = Depends(get_orders),
) -> PlatformAggregation:
    return PlatformAggregation(gateway, cache, orders)
