"""
Pytest fixtures for merchpos backend tests.

Provides an in-memory database, test client, associates with bearer
sessions, and a stocked inventory item.
"""

from decimal import Decimal

import pytest
from merchpos import create_app
from merchpos.extensions import db
from merchpos.services import auth_service, inventory_service, session_service


@pytest.fixture(scope='session')
def app(tmp_path_factory):
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'MEDIA_ROOT': str(tmp_path_factory.mktemp('media')),
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
        db.session.expunge_all()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def admin_user(db_session):
    """Create an active admin associate."""
    return auth_service.create_associate("Ada Admin", email="ada@example.com", role="admin")


@pytest.fixture(scope='function')
def associate_user(db_session):
    """Create an active regular associate."""
    return auth_service.create_associate("Sam Seller", role="associate")


@pytest.fixture(scope='function')
def admin_headers(admin_user):
    _session, token = session_service.create_session(admin_user.id)
    return auth_headers(token)


@pytest.fixture(scope='function')
def associate_headers(associate_user):
    _session, token = session_service.create_session(associate_user.id)
    return auth_headers(token)


@pytest.fixture(scope='function')
def item(db_session, admin_user):
    """Blue shirt with 10 on hand (opening stock recorded in the ledger)."""
    return make_item(quantity=10, user_id=admin_user.id)


def make_item(quantity: int = 10, sku: str = "SHI-BLU-M-100", user_id=None, **overrides):
    """Helper to create an inventory item through the service layer."""
    patch = {
        "sku": sku,
        "type": "Shirt",
        "color": "Blue",
        "size": "M",
        "price": Decimal("25.00"),
        "cost": Decimal("10.00"),
        "quantity": quantity,
        "min_stock_level": 5,
    }
    patch.update(overrides)
    return inventory_service.create_item(patch, user_id=user_id)


def login(client, associate_code: str):
    """Helper to sign in with an associate code; returns the bearer token or None."""
    response = client.post('/api/auth/login', json={'associateCode': associate_code})
    if response.status_code == 200:
        return response.json.get('token')
    return None


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}
