import mongomock
import pytest
from fastapi.testclient import TestClient

from config import Settings
from main import create_app
from mongodb_manager import MongoDBManager


@pytest.fixture
def settings():
    return Settings(
        mongo_uri="mongodb://localhost:27017",
        db_name="eduelevate_test",
        secret_key="test-secret",
        stripe_secret_key="sk_test_123",
    )


@pytest.fixture
def db():
    return MongoDBManager(client=mongomock.MongoClient(), db_name="eduelevate_test")


@pytest.fixture
def client(settings, db):
    app = create_app(settings=settings, db=db)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def make_class(client):
    """Create a class through the API and return its _id"""
    def _make_class(**fields):
        payload = {"name": "Intro to Python", "email": "grace@example.com", "price": 20, **fields}
        response = client.post("/classes", json=payload)
        assert response.status_code == 200
        return response.json()["insertedId"]
    return _make_class
