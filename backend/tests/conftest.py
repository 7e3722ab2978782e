"""
Pytest fixtures for salesledger backend tests.

Provides test database setup, users per role with session tokens, a product
factory and the test client.
"""

import pytest
from salesledger import create_app
from salesledger.extensions import db
from salesledger.services import products_service
from salesledger.services.auth_service import create_user


SUPERVISOR_CODE = "SUP-4821"
PASSWORD = "Password123!"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'SUPERVISOR_CODE': SUPERVISOR_CODE,
        'REPORT_TIMEZONE': 'Asia/Manila',
        'TX_RETRY_BACKOFF': 0,
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


def _make_user(role: str):
    return create_user(
        username=f"{role}_user",
        email=f"{role}@example.com",
        password=PASSWORD,
        role=role,
        rounds=4,
    )


@pytest.fixture(scope='function')
def admin_user(db_session):
    return _make_user("admin")


@pytest.fixture(scope='function')
def staff_user(db_session):
    return _make_user("staff")


@pytest.fixture(scope='function')
def supplier_user(db_session):
    return _make_user("supplier")


@pytest.fixture(scope='function')
def make_product(db_session):
    """Factory: make_product(name, price_cents=..., markup_percentage=..., stock_quantity=...)."""
    def _make(name="Widget", **fields):
        payload = {"name": name, "price_cents": 10000, "markup_percentage": 20, "stock_quantity": 100}
        payload.update(fields)
        return products_service.create_product(payload)
    return _make


def get_auth_token(client, username: str, password: str = PASSWORD) -> str:
    """Helper to get auth token for a user."""
    response = client.post('/api/auth/login', json={
        'username': username,
        'password': password
    })
    if response.status_code == 200:
        return response.json.get('token')
    return None


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture(scope='function')
def admin_headers(client, admin_user):
    return auth_headers(get_auth_token(client, admin_user.username))


@pytest.fixture(scope='function')
def staff_headers(client, staff_user):
    return auth_headers(get_auth_token(client, staff_user.username))


@pytest.fixture(scope='function')
def supplier_headers(client, supplier_user):
    return auth_headers(get_auth_token(client, supplier_user.username))
