from typing import Dict, List, Optional

import pytest
import redis
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from storefront.cart.cart_store import CartStore
from storefront.catalog.models import Product
from storefront.config import Settings
from storefront.identity.schemas import Identity
from storefront.shared.database import Base, init_db


class FakeRedis:
    """Dict-backed stand-in for the subset of redis.Redis the cart store uses.

    ``fail_on`` holds command names ("get", "set", "delete", "watch", "execute")
    that raise ConnectionError, to simulate a degraded cache.
    """

    def __init__(self):
        self.data: Dict[str, str] = {}
        self.ttls: Dict[str, Optional[int]] = {}
        self.versions: Dict[str, int] = {}
        self.fail_on = set()
        self.calls: List[str] = []

    def _check(self, command: str) -> None:
        self.calls.append(command)
        if command in self.fail_on:
            raise redis.ConnectionError(f"simulated {command} failure")

    def _bump(self, key: str) -> None:
        self.versions[key] = self.versions.get(key, 0) + 1

    def get(self, key):
        self._check("get")
        return self.data.get(key)

    def set(self, key, value, ex=None):
        self._check("set")
        self.data[key] = value
        self.ttls[key] = ex
        self._bump(key)
        return True

    def delete(self, *keys):
        self._check("delete")
        removed = 0
        for key in keys:
            if key in self.data:
                del self.data[key]
                self.ttls.pop(key, None)
                self._bump(key)
                removed += 1
        return removed

    def pipeline(self):
        return FakePipeline(self)


class FakePipeline:
    def __init__(self, store: FakeRedis):
        self.store = store
        self.watched: Dict[str, int] = {}
        self.queued = []
        self.in_multi = False

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.reset()

    def reset(self):
        self.watched = {}
        self.queued = []
        self.in_multi = False

    def watch(self, *keys):
        self.store._check("watch")
        for key in keys:
            self.watched[key] = self.store.versions.get(key, 0)

    def multi(self):
        self.in_multi = True

    def get(self, key):
        return self.store.get(key)

    def set(self, key, value, ex=None):
        self.queued.append(("set", (key, value), {"ex": ex}))

    def delete(self, *keys):
        self.queued.append(("delete", keys, {}))

    def execute(self):
        self.store._check("execute")
        try:
            for key, version in self.watched.items():
                if self.store.versions.get(key, 0) != version:
                    raise redis.WatchError("Watched variable changed.")
            return [getattr(self.store, name)(*args, **kwargs) for name, args, kwargs in self.queued]
        finally:
            self.reset()


@pytest.fixture()
def fake_redis():
    return FakeRedis()


@pytest.fixture()
def cart_store(fake_redis):
    return CartStore(fake_redis, ttl=3600, max_write_retries=3)


@pytest.fixture()
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture()
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture()
def identity():
    return Identity(user_id="kp_user_1", email="thandi@example.com", given_name="Thandi", family_name="Nkosi")


@pytest.fixture()
def test_settings():
    return Settings(
        flat_shipping_fee=50,
        checkout_cart_read_attempts=3,
        checkout_cart_read_delay=1.0,
        success_redirect_base="",
    )


def make_product(db, **overrides) -> Product:
    fields = {
        "id": "prod-shirt",
        "name": "Linen Shirt",
        "price": 100.0,
        "discount_price": 80.0,
        "is_sale": True,
        "stock": 20,
        "vendor_id": "vendor-a",
        "images": ["https://cdn.example.com/shirt.jpg"],
    }
    fields.update(overrides)
    product = Product(**fields)
    db.add(product)
    db.commit()
    return product


@pytest.fixture()
def product_factory(db):
    return lambda **overrides: make_product(db, **overrides)


@pytest.fixture()
def product(db):
    return make_product(db)


@pytest.fixture()
def plain_product(db):
    return make_product(
        db,
        id="prod-mug",
        name="Ceramic Mug",
        price=45.0,
        discount_price=None,
        is_sale=False,
        stock=5,
        vendor_id="vendor-b",
        images=[],
    )
