import os

os.environ["POSTGRES_DSN"] = "sqlite://"
os.environ["REDIS_URL"] = ""
os.environ.setdefault("JWT_SECRET", "test-secret")

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from fnmatch import fnmatch

import jwt
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from swiftlocal.core.config import settings
from swiftlocal.core.session import open_session
from swiftlocal.db.models import ApprovalStatus, Product, Profile, Role, UserRole, new_id
from swiftlocal.db.session import Base
from swiftlocal.services.admin import PlatformAggregation
from swiftlocal.services.cart import CartEngine
from swiftlocal.services.catalog import CatalogAccessor
from swiftlocal.services.orders import OrderService
from swiftlocal.services.vendor import VendorService
from swiftlocal.store.gateway import DataGateway
from swiftlocal.store.view_cache import ViewCache


def s3_error(code):
    from unittest.mock import MagicMock
    from minio.error import S3Error

    return S3Error(
        code=code, message=code, resource="/product-images", request_id="req", host_id="host", response=MagicMock(),
    )


class FakeRedis:
    """The handful of Redis commands the view cache uses, kept in dicts."""

    def __init__(self):
        self.values = {}
        self.sets = {}
        self.ttls = {}

    def get(self, key):
        return self.values.get(key)

    def set(self, key, value, ex=None):
        self.values[key] = value
        self.ttls[key] = ex
        return True

    def sadd(self, key, *members):
        self.sets.setdefault(key, set()).update(members)
        return len(members)

    def smembers(self, key):
        return set(self.sets.get(key, set()))

    def delete(self, *keys):
        n = 0
        for key in keys:
            n += int(self.values.pop(key, None) is not None or self.sets.pop(key, None) is not None)
            self.ttls.pop(key, None)
        return n

    def keys(self, pattern="*"):
        return [k for k in self.values if fnmatch(k, pattern)]


@pytest.fixture
def engine():
    eng = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    Base.metadata.create_all(eng)
    yield eng
    Base.metadata.drop_all(eng)
    eng.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(bind=engine, autoflush=False)()
    yield session
    session.close()


@pytest.fixture
def gateway(db):
    return DataGateway(db)


@pytest.fixture
def redis():
    return FakeRedis()


@pytest.fixture
def cache(redis):
    return ViewCache(redis)


@pytest.fixture
def catalog(gateway, cache):
    return CatalogAccessor(gateway, cache)


@pytest.fixture
def orders(gateway, cache):
    return OrderService(gateway, cache, decrement_stock=True)


@pytest.fixture
def cart(gateway, catalog):
    return CartEngine(gateway, catalog)


@pytest.fixture
def images():
    from unittest.mock import MagicMock
    from swiftlocal.services.storage import ImageStore

    client = MagicMock()
    client.bucket_exists.return_value = True
    client.stat_object.side_effect = s3_error("NoSuchKey")
    return ImageStore(client=client, bucket="product-images")


@pytest.fixture
def vendors(gateway, cache, images):
    return VendorService(gateway, cache, images=images)


@pytest.fixture
def admin(gateway, cache, orders):
    return PlatformAggregation(gateway, cache, orders)


@pytest.fixture
def make_user(gateway):
    """Create a role assignment and profile; returns the user id."""

    def _make(role=Role.USER, **profile):
        user_id = new_id()
        gateway.insert(UserRole(user_id=user_id, role=role.value))
        profile.setdefault("full_name", f"{role.value} {user_id[:6]}")
        gateway.insert(Profile(user_id=user_id, **profile))
        return user_id

    return _make


@pytest.fixture
def make_vendor(make_user):
    def _make(approval=ApprovalStatus.APPROVED, is_active=True, **profile):
        profile.setdefault("store_name", "Corner Bakery")
        status = approval.value if approval is not None else None
        return make_user(Role.VENDOR, approval_status=status, is_active=is_active, **profile)

    return _make


@pytest.fixture
def make_product(gateway):
    def _make(vendor_id, name="Sourdough", price="4.50", stock=10, **extra):
        product = Product(vendor_id=vendor_id, name=name, price=Decimal(price), stock_quantity=stock, **extra)
        return gateway.insert(product).id

    return _make


@pytest.fixture
def login(gateway):
    def _login(user_id):
        return open_session(gateway, user_id)

    return _login


def make_token(user_id, token_type="access", secret=None):
    payload = {
        "sub": user_id,
        "type": token_type,
        "exp": datetime.now(timezone.utc) + timedelta(minutes=15),
    }
    return jwt.encode(payload, secret or settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


@pytest.fixture
def auth():
    def _headers(user_id):
        return {"Authorization": f"Bearer {make_token(user_id)}"}

    return _headers


@pytest.fixture
def client(db, cache, images):
    from swiftlocal.api import deps
    from swiftlocal.main import app

    def _db():
        yield db

    app.dependency_overrides[deps.get_db] = _db
    app.dependency_overrides[deps.get_view_cache] = lambda: cache
    app.dependency_overrides[deps.get_vendor_service] = lambda: VendorService(DataGateway(db), cache, images=images)
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
