"""Read-only product queries, enriched with the owning vendor's names."""
from typing import Dict, Iterable, List, Optional

from pydantic import TypeAdapter

from swiftlocal.core.errors import NotFound
from swiftlocal.db.models import ApprovalStatus, Product, Profile
from swiftlocal.schemas import ProductRead
from swiftlocal.store.gateway import DataGateway
from swiftlocal.store.view_cache import PUBLIC_PRODUCTS, ViewCache

_products = TypeAdapter(List[ProductRead])


def fetch_vendor_profiles(gateway: DataGateway, vendor_ids: Iterable[str]) -> Dict[str, Profile]:
    ids = sorted(set(vendor_ids))
    if not ids:
        return {}
    return {p.user_id: p for p in gateway.select(Profile, in_={"user_id": ids})}


def vendor_is_visible(profile: Optional[Profile]) -> bool:
    return (
        profile is not None
        and bool(profile.is_active)
        and profile.approval_status == ApprovalStatus.APPROVED.value
    )


def enrich_product(product: Product, profile: Optional[Profile]) -> ProductRead:
    out = ProductRead.model_validate(product)
    if profile is not None:
        out.vendor_name = profile.full_name
        out.vendor_store_name = profile.store_name
    return out


class CatalogAccessor:
    def __init__(self, gateway: DataGateway, cache: ViewCache):
        self.gateway = gateway
        self.cache = cache

    def list_public_products(self, category: Optional[str] = None, search: Optional[str] = None) -> List[ProductRead]:
        if category == "All":
            category = None
        search = (search or "").strip() or None

        def load() -> List[ProductRead]:
            eq = {"is_active": True}
            if category:
                eq["category"] = category
            ilike = {"name": f"%{search}%"} if search else None
            rows = self.gateway.select(Product, eq=eq, ilike=ilike, order_by="created_at", descending=True)
            profiles = fetch_vendor_profiles(self.gateway, (p.vendor_id for p in rows))
            return [
                enrich_product(p, profiles.get(p.vendor_id))
                for p in rows
                if vendor_is_visible(profiles.get(p.vendor_id))
            ]

        variant = f"{category or '*'}|{(search or '').lower()}"
        return self.cache.get_or_load(PUBLIC_PRODUCTS, variant, _products, load)

    def get_product(self, product_id: str) -> ProductRead:
        product = self.gateway.get(Product, product_id)
        if product is None or not product.is_active:
            raise NotFound("Product not found")
        profile = self.gateway.first(Profile, user_id=product.vendor_id)
        if not vendor_is_visible(profile):
            raise NotFound("Product not found")
        return enrich_product(product, profile)

    def get_products(self, product_ids: Iterable[str]) -> Dict[str, Product]:
        ids = sorted(set(product_ids))
        if not ids:
            return {}
        return {p.id: p for p in self.gateway.select(Product, in_={"id": ids})}
