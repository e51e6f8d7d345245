"""
Pytest fixtures for walk-in backend tests.

Provides the application on an in-memory database, a per-test table wipe,
a test client, and small factories for catalog / queue / inventory rows.
"""

import pytest

from walkin import create_app
from walkin.extensions import db
from walkin.models import Category, Customer, Product, Service, Staff, WalkIn, WalkInStatus
from walkin.time_utils import utcnow


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'DB_RETRY_ATTEMPTS': 2,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def make_category(db_session):
    def _make(name="Hair", **kwargs):
        category = Category(name=name, display_order=kwargs.pop("display_order", 0), is_active=True, **kwargs)
        db_session.add(category)
        db_session.commit()
        return category
    return _make


@pytest.fixture(scope='function')
def make_service(db_session):
    def _make(name="Haircut", price_cents=30000, duration_minutes=30, **kwargs):
        service = Service(
            name=name,
            price_cents=price_cents,
            duration_minutes=duration_minutes,
            is_active=kwargs.pop("is_active", True),
            **kwargs,
        )
        db_session.add(service)
        db_session.commit()
        return service
    return _make


@pytest.fixture(scope='function')
def make_staff(db_session):
    def _make(name="Ravi", is_active=True, **kwargs):
        member = Staff(name=name, is_active=is_active, display_order=kwargs.pop("display_order", 0), **kwargs)
        db_session.add(member)
        db_session.commit()
        return member
    return _make


@pytest.fixture(scope='function')
def make_product(db_session):
    def _make(name="Hair Wax", sku=None, price_cents=35000, stock_quantity=10, is_active=True, **kwargs):
        product = Product(
            name=name,
            sku=sku,
            price_cents=price_cents,
            stock_quantity=stock_quantity,
            is_active=is_active,
            **kwargs,
        )
        db_session.add(product)
        db_session.commit()
        return product
    return _make


@pytest.fixture(scope='function')
def make_walkin(db_session):
    """Insert a ticket directly, bypassing intake (any status, any service label)."""
    counter = {"n": 0}

    def _make(service_name="Haircut", status=WalkInStatus.WAITING.value, staff_id=None, service_id=None,
              customer_name="Asha", **kwargs):
        counter["n"] += 1
        customer = Customer(phone=f"+91900000{counter['n']:04d}", name=customer_name)
        db_session.add(customer)
        db_session.flush()
        walkin = WalkIn(
            customer_id=customer.id,
            customer_name=customer_name,
            service_name=service_name,
            service_id=service_id,
            staff_id=staff_id,
            status=status,
            created_at=kwargs.pop("created_at", utcnow()),
            **kwargs,
        )
        db_session.add(walkin)
        db_session.commit()
        return walkin
    return _make
