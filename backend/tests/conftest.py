"""
Pytest fixtures for the POS backend tests.

Provides test database setup, catalog fixtures and a test client.
"""

from decimal import Decimal

import pytest

from pos_backend import create_app
from pos_backend.config import TestConfig
from pos_backend.extensions import db
from pos_backend.models import PaymentType, Product


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app(TestConfig)

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
def cash(db_session):
    """Cash payment type."""
    payment_type = PaymentType(name="Cash", description="Cash payment")
    db_session.add(payment_type)
    db_session.commit()
    return payment_type


@pytest.fixture(scope='function')
def card(db_session):
    """Card payment type."""
    payment_type = PaymentType(name="Card", description="Card payment")
    db_session.add(payment_type)
    db_session.commit()
    return payment_type


@pytest.fixture(scope='function')
def vat_product(db_session):
    """Taxable product at 15%, price 100.00, 10 in stock."""
    product = Product(
        name="Kettle",
        barcode="4000000000017",
        sku="KET-001",
        price=Decimal("100.00"),
        is_taxable=True,
        tax_rate=Decimal("15.00"),
        stock_quantity=10,
    )
    db_session.add(product)
    db_session.commit()
    return product


@pytest.fixture(scope='function')
def plain_product(db_session):
    """Non-taxable product, price 50.00, 5 in stock."""
    product = Product(
        name="Bread",
        barcode="4000000000024",
        sku="BRD-001",
        price=Decimal("50.00"),
        is_taxable=False,
        tax_rate=Decimal("0"),
        stock_quantity=5,
    )
    db_session.add(product)
    db_session.commit()
    return product

