import pytest

from inventory_service import create_app
from inventory_service.model import db


@pytest.fixture
def app():
    app = create_app({'SQLALCHEMY_DATABASE_URI': 'sqlite://', 'TESTING': True})
    with app.app_context():
        db.create_all()
    yield app
    with app.app_context():
        db.drop_all()
    app.extensions['store'].close()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def store(app):
    return app.extensions['store']


@pytest.fixture
def make_product(client):
    def _make_product(**overrides):
        payload = {
            'productname': 'Tea',
            'description': 'Black tea',
            'category': 'Beverage',
            'price': 2.5,
            'quantity': 10,
        }
        payload.update(overrides)
        response = client.post('/products', json=payload)
        assert response.status_code == 201
        return response.get_json()
    return _make_product
