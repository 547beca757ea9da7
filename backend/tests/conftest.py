"""
Pytest fixtures for clinic POS backend tests.

Provides test database setup, user/customer/product factories, and test client.
"""

import itertools
from decimal import Decimal

import pytest
from clinicpos import create_app
from clinicpos.extensions import db
from clinicpos.models import (
    Customer,
    Product,
    ProductCategory,
    Sale,
    Service,
    User,
    ROLE_ADMIN,
    ROLE_EMPLOYEE,
    STATUS_PAID,
)
from clinicpos.services.auth_service import hash_password
from clinicpos.time_utils import now

TEST_PASSWORD = "secret123"


@pytest.fixture(scope='session')
def app(tmp_path_factory):
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'UPLOAD_FOLDER': str(tmp_path_factory.mktemp("uploads")),
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='session')
def password_hash():
    """bcrypt is slow; hash the shared test password once."""
    return hash_password(TEST_PASSWORD)


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
def make_user(db_session, password_hash):
    counter = itertools.count(1)

    def _make(role=ROLE_EMPLOYEE, username=None, is_active=True):
        n = next(counter)
        user = User(
            username=username or f"{role.lower()}{n}",
            name=f"{role.title()} {n}",
            password_hash=password_hash,
            role=role,
            is_active=is_active,
        )
        db_session.add(user)
        db_session.commit()
        return user

    return _make


@pytest.fixture(scope='function')
def admin(make_user):
    return make_user(ROLE_ADMIN, username="admin")


@pytest.fixture(scope='function')
def employee(make_user):
    return make_user(ROLE_EMPLOYEE, username="employee")


@pytest.fixture(scope='function')
def make_customer(db_session):
    counter = itertools.count(1)

    def _make(first_name="Customer", phone=None, **fields):
        n = next(counter)
        customer = Customer(
            first_name=first_name,
            last_name=f"No{n}",
            phone=phone or f"0205550{n:04d}",
            **fields,
        )
        db_session.add(customer)
        db_session.commit()
        return customer

    return _make


@pytest.fixture(scope='function')
def category(db_session):
    category = ProductCategory(name="Tablets", unit="tablet")
    db_session.add(category)
    db_session.commit()
    return category


@pytest.fixture(scope='function')
def make_product(db_session, category):
    def _make(name="Paracetamol 500mg", price="5000", stock=100, min_stock=20, is_active=True):
        product = Product(
            name=name,
            price=Decimal(price),
            cost_price=Decimal(price),
            stock=stock,
            min_stock=min_stock,
            category_id=category.id,
            is_active=is_active,
        )
        db_session.add(product)
        db_session.commit()
        return product

    return _make


@pytest.fixture(scope='function')
def service(db_session):
    service = Service(name="Injection", price=Decimal("20000"), is_active=True)
    db_session.add(service)
    db_session.commit()
    return service


@pytest.fixture(scope='function')
def make_sale(db_session):
    """Insert a sale row directly, bypassing stock and invoice logic."""
    counter = itertools.count(1)

    def _make(user, customer, total="100", status=STATUS_PAID, created_at=None):
        n = next(counter)
        amount = Decimal(total)
        sale = Sale(
            invoice_number=f"TEST-{n:06d}",
            customer_id=customer.id,
            user_id=user.id,
            subtotal=amount,
            discount=Decimal("0"),
            total=amount,
            status=status,
            created_at=created_at or now(),
        )
        db_session.add(sale)
        db_session.commit()
        return sale

    return _make


def get_auth_token(client, username: str, password: str = TEST_PASSWORD) -> str:
    """Helper to get auth token for a user."""
    response = client.post('/api/auth/login', json={
        'username': username,
        'password': password
    })
    if response.status_code == 200:
        return response.json['data']['token']
    return None


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture(scope='function')
def admin_headers(client, admin):
    return auth_headers(get_auth_token(client, admin.username))


@pytest.fixture(scope='function')
def employee_headers(client, employee):
    return auth_headers(get_auth_token(client, employee.username))
