"""Pytest fixtures for storefront tests."""

from decimal import Decimal

import pytest

from storefront.data.database import Database
from storefront.data.models.product import ProductModel
from storefront.domain.principal import Principal


class FakeLockService:
    """In-memory stand-in for the redis resolution lock."""

    def __init__(self):
        self.locks = {}

    def acquire_resolution_lock(self, payment_id, token, ttl):
        if payment_id in self.locks:
            return False
        self.locks[payment_id] = token
        return True

    def release_resolution_lock(self, payment_id, token):
        if self.locks.get(payment_id) == token:
            del self.locks[payment_id]
            return True
        return False


class RecordingScheduler:
    def __init__(self):
        self.scheduled = []

    def __call__(self, payment_id):
        self.scheduled.append(payment_id)


class FakeNotifier:
    def __init__(self):
        self.sent = []

    def send_order_placed(self, user_id, order_id):
        self.sent.append(("order_placed", user_id, order_id))

    def send_payment_resolved(self, user_id, payment_id, order_id, status):
        self.sent.append(("payment_resolved", user_id, payment_id, status))


class UnreachableNotifier:
    """Notifier whose broker is down."""

    def send_order_placed(self, user_id, order_id):
        raise ConnectionError("broker unreachable")

    def send_payment_resolved(self, user_id, payment_id, order_id, status):
        raise ConnectionError("broker unreachable")


class FixedRandom:
    """Random source returning a fixed draw: 0.0 always succeeds, 0.99 always fails."""

    def __init__(self, value):
        self.value = value

    def random(self):
        return self.value


@pytest.fixture
def database(tmp_path):
    db = Database(f"sqlite:///{tmp_path / 'storefront.db'}")
    db.create_all()
    yield db
    db.dispose()


@pytest.fixture
def db(database):
    session = database.session()
    yield session
    session.close()


@pytest.fixture
def make_product(db):
    def _make(name="Widget", price="10.00", stock=10, seller_id=None):
        product = ProductModel(name=name, price=Decimal(price), stock=stock, seller_id=seller_id)
        db.add(product)
        db.commit()
        db.refresh(product)
        return product

    return _make


@pytest.fixture
def stock_of(db):
    def _stock(product_id):
        return db.get(ProductModel, product_id, populate_existing=True).stock

    return _stock


@pytest.fixture
def customer():
    return Principal(user_id=1, role="customer")


@pytest.fixture
def other_customer():
    return Principal(user_id=2, role="customer")


@pytest.fixture
def admin():
    return Principal(user_id=99, role="admin")


@pytest.fixture
def lock_service():
    return FakeLockService()


@pytest.fixture
def scheduler():
    return RecordingScheduler()


@pytest.fixture
def notifier():
    return FakeNotifier()
