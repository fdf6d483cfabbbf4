"""
Pytest fixtures for the stock ledger tests.

Provides an in-memory application, a fresh database per test, and
reference data (users, truck, shop, products) built through the services.
"""

import pytest

from stockline import create_app
from stockline.extensions import db
from stockline.services import catalog_service


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'LEDGER_RETRY_BACKOFF': 0,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


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
def operator(db_session):
    """Warehouse operator who receives deliveries."""
    return catalog_service.create_user(
        first_name="Wendy",
        last_name="Warehouse",
        email="operator@stockline.test",
        role="manager",
    )


@pytest.fixture(scope='function')
def driver(db_session):
    return catalog_service.create_user(
        first_name="Dan",
        last_name="Driver",
        email="driver@stockline.test",
        role="driver",
    )


@pytest.fixture(scope='function')
def truck(db_session):
    return catalog_service.create_truck(truck_number="TRK-001", model="Isuzu NPR")


@pytest.fixture(scope='function')
def shop(db_session):
    return catalog_service.create_shop(name="Corner Shop", address="1 Market Street", city="Kandy")


@pytest.fixture(scope='function')
def product_a(db_session):
    """Product A at 10.00 per unit."""
    return catalog_service.create_product(name="Product A", price="10.00", unit_type="unit")


@pytest.fixture(scope='function')
def product_b(db_session):
    """Product B at 2.50 per unit."""
    return catalog_service.create_product(name="Product B", price="2.50", unit_type="pack", commission="0.05")
