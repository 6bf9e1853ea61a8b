import pytest
from redis.exceptions import ConnectionError as RedisConnectionError
from sqlalchemy.exc import OperationalError

from swiftlocal.core.errors import BackendFailure, InsufficientStock
from swiftlocal.db.models import CartItem, Product, Profile
from swiftlocal.store.view_cache import ViewCache, family


def test_select_filters_and_ordering(gateway, make_vendor, make_product):
    vendor = make_vendor()
    for name in ("b", "a", "c"):
        make_product(vendor, name=name)
    names = [p.name for p in gateway.select(Product, eq={"vendor_id": vendor}, order_by="name", descending=True)]
    assert names == ["c", "b", "a"]
    assert gateway.select(Product, in_={"id": []}) == []
    assert gateway.count_grouped(Product, "vendor_id") == {vendor: 3}


def test_guarded_decrement(gateway, make_vendor, make_product):
    product = make_product(make_vendor(), stock=2)
    assert gateway.decrement_guarded(Product, product, "stock_quantity", 2)
    assert not gateway.decrement_guarded(Product, product, "stock_quantity", 1)
    assert gateway.get(Product, product).stock_quantity == 0


def test_transaction_rolls_back_everything(gateway, make_vendor, make_product):
    product = make_product(make_vendor(), stock=5)
    with pytest.raises(InsufficientStock):
        with gateway.transaction():
            gateway.insert(CartItem(user_id="u", product_id=product, vendor_id="v", quantity=1))
            gateway.decrement_guarded(Product, product, "stock_quantity", 3)
            raise InsufficientStock()
    assert gateway.select(CartItem) == []
    assert gateway.get(Product, product).stock_quantity == 5


def test_driver_errors_become_backend_failures(gateway, monkeypatch):
    def broken(*args, **kwargs):
        raise OperationalError("SELECT 1", {}, Exception("connection reset"))

    monkeypatch.setattr(gateway.db, "execute", broken)
    with pytest.raises(BackendFailure) as err:
        gateway.first(Profile, user_id="u")
    assert isinstance(err.value.__cause__, OperationalError)


class BrokenRedis:
    def get(self, key):
        raise RedisConnectionError("redis down")


def test_view_cache_errors_become_backend_failures():
    cache = ViewCache(BrokenRedis())
    with pytest.raises(BackendFailure):
        cache.get_or_load("f", "v", None, lambda: [])


def test_disabled_cache_always_loads():
    calls = []
    cache = ViewCache(None)
    cache.get_or_load("f", "v", None, lambda: calls.append(1))
    cache.get_or_load("f", "v", None, lambda: calls.append(1))
    cache.invalidate(["f"])
    assert len(calls) == 2


def test_invalidate_drops_every_variant_of_a_family(redis):
    from pydantic import TypeAdapter
    from typing import List

    cache = ViewCache(redis, ttl=60)
    adapter = TypeAdapter(List[int])
    fam = family("vendor-orders", "v1")
    cache.get_or_load(fam, "a", adapter, lambda: [1])
    cache.get_or_load(fam, "b", adapter, lambda: [2])
    cache.get_or_load("other", "a", adapter, lambda: [3])
    assert cache.get_or_load(fam, "a", adapter, lambda: [9]) == [1]

    cache.invalidate([fam])

    assert cache.get_or_load(fam, "a", adapter, lambda: [9]) == [9]
    assert cache.get_or_load(fam, "b", adapter, lambda: [8]) == [8]
    assert cache.get_or_load("other", "a", adapter, lambda: [7]) == [3]
    assert redis.ttls["view:other:a"] == 60
