"""Shared fixtures: an app on in-memory SQLite with a small catalog."""
from decimal import Decimal
from types import SimpleNamespace

import httpx
import pytest

from core import create_app, db, Book, Category, User


@pytest.fixture
def database_uri():
    return "sqlite://"


@pytest.fixture
def app(database_uri):
    app = create_app({
        "TESTING": True,
        "SECRET_KEY": "test-secret",
        "SQLALCHEMY_DATABASE_URI": database_uri,
        "SEED_DATABASE": False,
        "API_BASE_URL": "http://testserver/api",
    })
    # Storefront and admin reach the API in-process.
    app.config["API_CLIENT_TRANSPORT"] = httpx.WSGITransport(app=app)
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def seeded(app):
    with app.app_context():
        roman = Category(name="Roman", description="Novels")
        scifi = Category(name="Bilim Kurgu", description="Science fiction")
        db.session.add_all([roman, scifi])
        db.session.flush()

        crime = Book(title="Suç ve Ceza", author="Fyodor Dostoyevski",
                     price=Decimal("45.50"), stock=10, category_id=roman.id)
        dune = Book(title="Dune", author="Frank Herbert",
                    price=Decimal("65.00"), stock=15, category_id=scifi.id)
        admin = User(first_name="Admin", last_name="User", email="admin@example.com", role="Admin")
        admin.set_password("admin-pass")
        customer = User(first_name="Test", last_name="User", email="user@example.com", role="User")
        customer.set_password("user-pass")
        db.session.add_all([crime, dune, admin, customer])
        db.session.commit()

        ids = SimpleNamespace(
            roman=roman.id, scifi=scifi.id, crime=crime.id, dune=dune.id,
            admin=admin.id, customer=customer.id,
        )
    app.config["STORE_CUSTOMER_ID"] = ids.customer
    return ids


@pytest.fixture
def ctx(app, seeded):
    with app.app_context():
        yield seeded


@pytest.fixture
def client(app, seeded):
    return app.test_client()
