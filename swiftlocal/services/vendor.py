"""Vendor-side operations on products and the store profile."""
import logging
from typing import List, Optional

from pydantic import TypeAdapter

from swiftlocal.core.errors import Forbidden, NotFound
from swiftlocal.core.session import MarketplaceSession, require_session
from swiftlocal.db.models import CartItem, Order, Product, Profile, Role, now_utc
from swiftlocal.schemas import ImageUploadRead, ProductCreate, ProductRead, ProductUpdate, ProfileRead, StoreProfile
from swiftlocal.services.approval import ensure_approved, ensure_can_mutate
from swiftlocal.services.storage import ImageStore, image_key
from swiftlocal.store import view_cache as views
from swiftlocal.store.gateway import DataGateway
from swiftlocal.store.view_cache import ViewCache

logger = logging.getLogger(__name__)

_products = TypeAdapter(List[ProductRead])


class VendorService:
    def __init__(self, gateway: DataGateway, cache: ViewCache, images: Optional[ImageStore] = None):
        self.gateway = gateway
        self.cache = cache
        self._images = images

    @property
    def images(self) -> ImageStore:
        if self._images is None:
            self._images = ImageStore()
        return self._images

    def _vendor(self, session: Optional[MarketplaceSession]) -> MarketplaceSession:
        session = require_session(session)
        if session.role is not Role.VENDOR:
            raise Forbidden("Vendors only")
        return session

    def _writer(self, session: Optional[MarketplaceSession]) -> MarketplaceSession:
        session = self._vendor(session)
        ensure_can_mutate(session.profile)
        return session

    def _own_product(self, session: MarketplaceSession, product_id: str) -> Product:
        product = self.gateway.get(Product, product_id)
        if product is None or product.vendor_id != session.user_id:
            raise NotFound("Product not found")
        return product

    def _changed(self, vendor_id: str) -> None:
        self.cache.invalidate([views.family(views.VENDOR_PRODUCTS, vendor_id), views.PUBLIC_PRODUCTS, views.ADMIN_VENDORS])

    # ---------- products ----------
    def list_products(self, session: Optional[MarketplaceSession]) -> List[ProductRead]:
        session = self._vendor(session)
        ensure_approved(session.profile)

        def load():
            rows = self.gateway.select(Product, eq={"vendor_id": session.user_id}, order_by="created_at", descending=True)
            return [ProductRead.model_validate(p) for p in rows]

        return self.cache.get_or_load(views.family(views.VENDOR_PRODUCTS, session.user_id), "all", _products, load)

    def create_product(self, session: Optional[MarketplaceSession], payload: ProductCreate) -> ProductRead:
        session = self._writer(session)
        product = self.gateway.insert(Product(vendor_id=session.user_id, **payload.model_dump()))
        self._changed(session.user_id)
        logger.info("vendor %s created product %s", session.user_id, product.id)
        return ProductRead.model_validate(product)

    def update_product(self, session: Optional[MarketplaceSession], product_id: str, payload: ProductUpdate) -> ProductRead:
        session = self._writer(session)
        self._own_product(session, product_id)
        values = payload.model_dump(exclude_unset=True)
        if values:
            values["updated_at"] = now_utc()
            self.gateway.update_by_id(Product, product_id, values)
            self._changed(session.user_id)
        return ProductRead.model_validate(self.gateway.get(Product, product_id))

    def set_product_active(self, session: Optional[MarketplaceSession], product_id: str, is_active: bool) -> ProductRead:
        return self.update_product(session, product_id, ProductUpdate(is_active=is_active))

    def delete_product(self, session: Optional[MarketplaceSession], product_id: str) -> None:
        session = self._writer(session)
        self._own_product(session, product_id)
        with self.gateway.transaction():
            # cart lines never outlive their product
            self.gateway.delete_where(CartItem, {"product_id": product_id})
            self.gateway.delete_by_id(Product, product_id)
        self._changed(session.user_id)
        logger.info("vendor %s deleted product %s", session.user_id, product_id)

    def upload_product_image(
        self, session: Optional[MarketplaceSession], filename: str, data: bytes, content_type: Optional[str] = None,
    ) -> ImageUploadRead:
        session = self._writer(session)
        path = image_key(session.user_id, filename)
        self.images.upload(path, data, content_type or "application/octet-stream")
        return ImageUploadRead(path=path, url=self.images.public_url(path))

    # ---------- store profile ----------
    def _store_views(self, vendor_id: str) -> List[str]:
        """Every view that shows this store's names."""
        customers = {o.user_id for o in self.gateway.select(Order, eq={"vendor_id": vendor_id})}
        return [
            views.PUBLIC_PRODUCTS,
            views.ADMIN_VENDORS,
            views.ADMIN_ORDERS,
            views.family(views.VENDOR_ORDERS, vendor_id),
            views.DELIVERY_ORDERS,
            views.DELIVERY_HISTORY,
            *(views.family(views.USER_ORDERS, user_id) for user_id in sorted(customers)),
        ]

    def get_store_profile(self, session: Optional[MarketplaceSession]) -> ProfileRead:
        session = self._vendor(session)
        profile = self.gateway.first(Profile, user_id=session.user_id)
        if profile is None:
            raise NotFound("Store profile not found")
        return ProfileRead.model_validate(profile)

    def update_store_profile(self, session: Optional[MarketplaceSession], payload: StoreProfile) -> ProfileRead:
        session = self._writer(session)
        # blank optional fields are stored as NULL
        values = {k: (v or None) for k, v in payload.model_dump(exclude_unset=True).items()}
        values["store_name"] = payload.store_name
        self.gateway.update_where(Profile, {"user_id": session.user_id}, values)
        self.cache.invalidate(self._store_views(session.user_id))
        logger.info("vendor %s updated store profile", session.user_id)
        return self.get_store_profile(session)
