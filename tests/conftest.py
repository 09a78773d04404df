import os

os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ["MONGO_TRANSACTIONS"] = "false"

import mongomock
import pytest
from fastapi.testclient import TestClient

from database import ensure_indexes, get_db
from main import app
from security import create_access_token
from services.accounts_service import create_account
from services.catalog_service import create_product


@pytest.fixture
def db():
    database = mongomock.MongoClient()["storefront_test"]
    ensure_indexes(database)
    return database


@pytest.fixture
def client(db):
    app.dependency_overrides[get_db] = lambda: db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def auth():
    def _auth(account):
        return {"Authorization": f"Bearer {create_access_token(account)}"}
    return _auth


@pytest.fixture
def make_account(db):
    def _make(role="customer", email=None, password="secret123", **extra):
        _make.count += 1
        return create_account(
            db,
            email=email or f"{role}{_make.count}@example.com",
            password=password,
            first_name="Test",
            last_name=role.capitalize(),
            role=role,
            **extra,
        )
    _make.count = 0
    return _make


@pytest.fixture
def customer(make_account):
    return make_account("customer", email="alice@example.com")


@pytest.fixture
def other_customer(make_account):
    return make_account("customer", email="bob@example.com")


@pytest.fixture
def admin(make_account):
    return make_account("admin", email="root@example.com", is_super_admin=True)


@pytest.fixture
def make_product(db):
    def _make(**overrides):
        data = {
            "product_name": "Rose Eau de Parfum",
            "description": "A soft floral scent",
            "category": "perfumes",
            "price": 10.0,
            "stock": 10,
            "images": ["https://cdn.example.com/rose.jpg"],
        }
        data.update(overrides)
        return create_product(db, data)
    return _make
