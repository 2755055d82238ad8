"""
Pytest fixtures for D-DIK backend tests.

Provides an in-memory database per test, one user per role, bearer token
helpers and a sample product.
"""

import pytest

from ddik import create_app
from ddik.extensions import db
from ddik.models import Product
from ddik.services.auth_service import create_user
from ddik.services import session_service


TEST_PASSWORD = "Password123!"

TEST_CONFIG = {
    "TESTING": True,
    "SQLALCHEMY_DATABASE_URI": "sqlite://",
    "SECRET_KEY": "test-secret",
    "BCRYPT_ROUNDS": 4,
    "LOG_LEVEL": "WARNING",
}


@pytest.fixture(scope='function')
def app():
    """Create application for testing with a fresh schema."""
    app = create_app(TEST_CONFIG)

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture(scope='function')
def file_app(tmp_path):
    """File-backed database so a second connection can commit concurrently."""
    config = dict(TEST_CONFIG)
    config["SQLALCHEMY_DATABASE_URI"] = f"sqlite:///{tmp_path / 'ddik.sqlite3'}"
    app = create_app(config)

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def users(app):
    """One user per role, keyed by role name."""
    return {
        role: create_user(email=f"{role}@ddik.test", password=TEST_PASSWORD, role=role)
        for role in ("admin", "gerente", "funcionario", "cliente")
    }


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


def token_for(user) -> str:
    """Open a session for user without going through the login route."""
    _session, token = session_service.create_session(user_id=user.id)
    return token


@pytest.fixture(scope='function')
def admin_headers(users):
    return auth_headers(token_for(users["admin"]))


@pytest.fixture(scope='function')
def manager_headers(users):
    return auth_headers(token_for(users["gerente"]))


@pytest.fixture(scope='function')
def staff_headers(users):
    return auth_headers(token_for(users["funcionario"]))


@pytest.fixture(scope='function')
def customer_headers(users):
    return auth_headers(token_for(users["cliente"]))


@pytest.fixture(scope='function')
def product(app):
    """Product with 20 units on hand and a minimum of 5."""
    product = Product(
        sku="CAM-001",
        name="Camisa Oficial",
        category="Camisas",
        size="M",
        current_stock=20,
        minimum_stock=5,
        maximum_stock=100,
        purchase_price_cents=6000,
        sale_price_cents=10000,
    )
    db.session.add(product)
    db.session.commit()
    return product
