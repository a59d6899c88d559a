import os
import pytest
from decimal import Decimal

# Set test environment variables before importing the app
os.environ['FLASK_ENV'] = 'testing'
os.environ['DATABASE_URL'] = 'sqlite:///:memory:'

from stockcloud import create_app
from stockcloud.database import PENDING_EVICTIONS
from stockcloud.models import (
    db, Category, Customer, Product, RecordState, Supplier, User, UserRole
)
from stockcloud.utils.cache_utils import CACHE_EXTENSION


class FakeRedis:
    """In-memory stand-in for the few redis commands the cache store uses"""

    def __init__(self):
        self.store = {}

    def get(self, key):
        return self.store.get(key)

    def setex(self, key, ttl, value):
        self.store[key] = value
        return True

    def delete(self, *keys):
        removed = 0
        for key in keys:
            if self.store.pop(key, None) is not None:
                removed += 1
        return removed

    def ping(self):
        return True

    def flushdb(self):
        self.store.clear()


@pytest.fixture(scope='session')
def fake_redis():
    return FakeRedis()


@pytest.fixture(scope='session')
def app(fake_redis):
    """Create application for the tests."""
    app = create_app('testing', redis_client=fake_redis)

    with app.app_context():
        # Create all database tables
        db.create_all()
        yield app
        # Clean up
        db.drop_all()


@pytest.fixture
def client(app):
    """A test client for the app."""
    return app.test_client()


@pytest.fixture
def cache(app):
    """The cache store the services use."""
    return app.extensions[CACHE_EXTENSION]


@pytest.fixture
def db_session(app, fake_redis):
    """Create a database session for a test."""
    with app.app_context():
        db.create_all()

        yield db.session

        # Clean up tables
        db.session.rollback()
        db.session.info.pop(PENDING_EVICTIONS, None)
        for table in reversed(db.metadata.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()
        fake_redis.flushdb()


# Helper functions for tests
def create_test_supplier(db_session, **kwargs):
    """Create a test supplier with default values."""
    defaults = {
        'business_name': 'Distribuidora Andina SAC',
        'tax_id': None,
        'phone': '014567890',
        'email': 'ventas@andina.pe',
    }
    defaults.update(kwargs)

    supplier = Supplier(**defaults)
    db_session.add(supplier)
    db_session.commit()
    return supplier


def create_test_category(db_session, **kwargs):
    """Create a test category with default values."""
    defaults = {
        'name': 'Abarrotes',
        'state': RecordState.ACTIVE,
    }
    defaults.update(kwargs)

    category = Category(**defaults)
    db_session.add(category)
    db_session.commit()
    return category


def create_test_product(db_session, **kwargs):
    """Create a test product with default values."""
    import uuid
    defaults = {
        'name': f'Product {str(uuid.uuid4())[:8]}',  # Generate unique name
        'stock': 5,
        'minimum_quantity': 2,
        'unit_price': Decimal('3.50'),
        'state': RecordState.ACTIVE,
    }
    defaults.update(kwargs)

    product = Product(**defaults)
    db_session.add(product)
    db_session.commit()
    return product


def create_test_user(db_session, password='secret-pass', **kwargs):
    """Create a test user with default values."""
    defaults = {
        'username': 'cashier',
        'email': 'cashier@stockcloud.pe',
        'role': UserRole.EMPLOYEE,
        'active': True,
    }
    defaults.update(kwargs)

    user = User(**defaults)
    user.set_password(password)
    db_session.add(user)
    db_session.commit()
    return user


def create_test_customer(db_session, **kwargs):
    """Create a test customer with default values."""
    defaults = {
        'name': 'Rosa Quispe',
        'national_id': '45678912',
        'email': 'rosa@mail.pe',
        'address': 'Av. Arequipa 123',
    }
    defaults.update(kwargs)

    customer = Customer(**defaults)
    db_session.add(customer)
    db_session.commit()
    return customer


# Test data generators
def generate_sale_data(product_id, **kwargs):
    """Generate sale request data."""
    defaults = {
        'customer': {'name': 'Rosa Quispe', 'national_id': '45678912'},
        'document_type': 'receipt',
        'lines': [{'product_id': product_id, 'quantity': 2}],
        'note': 'Counter sale',
    }
    defaults.update(kwargs)
    return defaults


def generate_order_data(supplier_id, product_id, quantity=10, **kwargs):
    """Generate replenishment order request data."""
    defaults = {
        'supplier_id': supplier_id,
        'lines': [{'product_id': product_id, 'quantity': quantity}],
    }
    defaults.update(kwargs)
    return defaults
