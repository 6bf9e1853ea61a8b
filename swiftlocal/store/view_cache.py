"""Named read views cached in Redis.

A view belongs to a *family* (``"vendor-orders:<id>"``, ``"admin-stats"``...).
Every cached key is recorded in a per-family index set so that a mutation
can drop the whole family, whatever arguments the views were built with.
Mutations declare the families they affect and call :meth:`ViewCache.invalidate`
after their write succeeds.
"""
import logging
from typing import Callable, Iterable, Optional, TypeVar

from pydantic import TypeAdapter
from redis import Redis
from redis.exceptions import RedisError

from swiftlocal.core.config import settings
from swiftlocal.core.errors import BackendFailure

logger = logging.getLogger(__name__)

T = TypeVar("T")

USER_ORDERS = "user-orders"
VENDOR_ORDERS = "vendor-orders"
VENDOR_PRODUCTS = "vendor-products"
DELIVERY_ORDERS = "delivery-orders"
DELIVERY_HISTORY = "delivery-history"
PUBLIC_PRODUCTS = "public-products"
ADMIN_STATS = "admin-stats"
ADMIN_VENDORS = "admin-vendors"
ADMIN_ORDERS = "admin-orders"
ADMIN_MEMBERS = "admin-members"


def family(name: str, owner: Optional[str] = None) -> str:
    return f"{name}:{owner}" if owner else name


def redis_client() -> Redis:
    return Redis.from_url(settings.REDIS_URL, decode_responses=True)


class ViewCache:
    def __init__(self, client: Optional[Redis], ttl: Optional[int] = None):
        self.client = client
        self.ttl = ttl if ttl is not None else settings.VIEW_CACHE_TTL_SECONDS

    @property
    def enabled(self) -> bool:
        return self.client is not None

    def _key(self, fam: str, variant: str) -> str:
        return f"view:{fam}:{variant}"

    def _index(self, fam: str) -> str:
        return f"views:{fam}"

    def get_or_load(
        self,
        fam: str,
        variant: str,
        adapter: TypeAdapter,
        loader: Callable[[], T],
        ttl: Optional[int] = None,
    ) -> T:
        if not self.enabled:
            return loader()
        key = self._key(fam, variant)
        try:
            raw = self.client.get(key)
        except RedisError as exc:
            raise BackendFailure("View cache unavailable") from exc
        if raw is not None:
            return adapter.validate_json(raw)
        value = loader()
        try:
            self.client.set(key, adapter.dump_json(value).decode("utf-8"), ex=ttl or self.ttl)
            self.client.sadd(self._index(fam), key)
        except RedisError as exc:
            raise BackendFailure("View cache unavailable") from exc
        return value

    def invalidate(self, families: Iterable[str]) -> None:
        if not self.enabled:
            return
        families = list(families)
        try:
            for fam in families:
                idx = self._index(fam)
                keys = list(self.client.smembers(idx))
                self.client.delete(*keys, idx)
        except RedisError as exc:
            raise BackendFailure("View cache unavailable") from exc
        logger.debug("invalidated views %s", families)
