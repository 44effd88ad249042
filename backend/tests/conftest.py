"""
Pytest fixtures for RetailPOS backend tests.

Provides test database setup, tenant fixtures, and test client.
"""

from datetime import timedelta

import pytest
from retailpos import create_app
from retailpos.extensions import db
from retailpos.models import Company, Employee, Category, Item, Shift, Transaction
from retailpos.time_utils import utcnow


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
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
def company(db_session):
    """Company A (first tenant), no default return period of its own."""
    company = Company(name="Company A - Corner Store", timezone="UTC")
    db_session.add(company)
    db_session.commit()
    return company


@pytest.fixture(scope='function')
def other_company(db_session):
    """Company B (second tenant)."""
    company = Company(name="Company B - Beta Mart", timezone="UTC")
    db_session.add(company)
    db_session.commit()
    return company


@pytest.fixture(scope='function')
def cashier(db_session, company):
    emp = Employee(company_id=company.id, name="Casey Cashier", barcode="EMP-CASH1", in_sales=True)
    db_session.add(emp)
    db_session.commit()
    return emp


@pytest.fixture(scope='function')
def manager(db_session, company):
    emp = Employee(company_id=company.id, name="Morgan Manager", barcode="EMP-MGR01", is_manager=True, in_sales=True)
    db_session.add(emp)
    db_session.commit()
    return emp


@pytest.fixture(scope='function')
def category(db_session, company):
    cat = Category(company_id=company.id, name="Groceries", tax_rate=10.0)
    db_session.add(cat)
    db_session.commit()
    return cat


@pytest.fixture(scope='function')
def item(db_session, company, category):
    it = Item(
        company_id=company.id,
        category_id=category.id,
        name="Coffee Beans 1kg",
        barcode="0001",
        price_cents=1500,
        quantity_on_hand=20,
    )
    db_session.add(it)
    db_session.commit()
    return it


@pytest.fixture(scope='function')
def open_shift(db_session, company, cashier):
    """Open shift that started an hour ago with a 100.00 float."""
    shift = Shift(
        company_id=company.id,
        employee_id=cashier.id,
        status="open",
        start_time=utcnow() - timedelta(hours=1),
        opening_balance_cents=10000,
        cash_injections_cents=0,
    )
    db_session.add(shift)
    db_session.commit()
    return shift


@pytest.fixture(scope='function')
def make_transaction(db_session, company, cashier):
    """Factory for transaction rows with explicit totals and timestamps."""
    counter = {"n": 0}

    def _make(**kwargs):
        counter["n"] += 1
        values = {
            "company_id": company.id,
            "employee_id": cashier.id,
            "transaction_number": f"TXN-TEST-{counter['n']:06d}",
            "type": "sale",
            "status": "completed",
            "subtotal_cents": kwargs.get("total_cents", 0),
            "tax_cents": 0,
            "total_cents": 0,
            "payment_method": "cash",
            "created_at": utcnow(),
        }
        values.update(kwargs)
        tx = Transaction(**values)
        db_session.add(tx)
        db_session.commit()
        return tx

    return _make
