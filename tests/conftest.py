"""
Pytest configuration and fixtures for EcoFinds tests.
"""

from decimal import Decimal

import pytest

from ecofinds import create_app
from ecofinds.config import Config
from ecofinds.extensions import db
from ecofinds.models import Category, Product, ProductStatus, User


# =============================================================================
# Test Settings
# =============================================================================

class TestConfig(Config):
    """Settings configured for testing."""

    TESTING = True
    SECRET_KEY = 'test-secret-key'
    JWT_SECRET_KEY = 'test-jwt-secret'
    SQLALCHEMY_DATABASE_URI = 'sqlite://'


# =============================================================================
# Application Fixtures
# =============================================================================

@pytest.fixture
def app():
    """Application with a fresh in-memory database.

    No app context stays pushed, so each test client request gets its own.
    """
    app = create_app(TestConfig)
    with app.app_context():
        db.create_all()

    yield app

    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def app_ctx(app):
    """Pushed app context for calling services directly."""
    with app.app_context():
        yield app


# =============================================================================
# Data Helpers
# =============================================================================

def auth_headers(token):
    return {'Authorization': f'Bearer {token}'}


def register(client, username, password='secret123', email=None):
    """Register a user over HTTP; returns (user_id, token)."""
    response = client.post('/api/auth/register', json={
        'username': username,
        'email': email or f'{username}@example.com',
        'password': password,
    })
    assert response.status_code == 201, response.get_json()
    data = response.get_json()
    return data['user']['id'], data['token']


def create_category(app, name='Electronics'):
    with app.app_context():
        category = Category(name=name, description=f'{name} items')
        db.session.add(category)
        db.session.commit()
        return category.id


def create_product(app, seller_id, category_id, price='10.00',
                   title='Used Lamp', status=ProductStatus.ACTIVE):
    with app.app_context():
        product = Product(
            seller_id=seller_id,
            category_id=category_id,
            title=title,
            description=f'{title} in good condition',
            price=Decimal(str(price)),
            status=status
        )
        db.session.add(product)
        db.session.commit()
        return product.id


def make_user(username):
    """Create a user inside the current app context."""
    user = User(username=username, email=f'{username}@example.com')
    user.set_password('secret123')
    db.session.add(user)
    db.session.commit()
    return user


@pytest.fixture
def category_id(app):
    return create_category(app)


@pytest.fixture
def seller(client):
    return register(client, 'alice')


@pytest.fixture
def buyer(client):
    return register(client, 'bob')


def make_category(name='Electronics'):
    """Create a category inside the current app context."""
    category = Category(name=name)
    db.session.add(category)
    db.session.commit()
    return category
