import os

# Point the application at SQLite and keep Redis out of the test run
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("CACHE_ENABLED", "false")
os.environ.setdefault("ENVIRONMENT", "test")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from pos_api.main import app
from pos_api.database import Base, build_engine, get_db


# Create test database (SQLite in-memory for testing)
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = build_engine(SQLALCHEMY_DATABASE_URL)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def override_get_db():
    """Override database dependency for testing."""
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


# Override the dependency
app.dependency_overrides[get_db] = override_get_db


@pytest.fixture(scope="function")
def client():
    """Create test client with fresh database for each test."""
    # Create tables
    Base.metadata.create_all(bind=engine)

    with TestClient(app) as test_client:
        yield test_client

    # Drop tables after test
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def db_session():
    """Create database session for direct database access in tests."""
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()

    yield session

    session.close()
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def make_product(client):
    """Create a product through the API and return its JSON."""
    def _make_product(name="Tea", price=10.0, category="Drinks", **extra):
        response = client.post(
            "/api/products/",
            json={"name": name, "price": price, "category": category, **extra}
        )
        assert response.status_code == 201, response.text
        return response.json()
    return _make_product


@pytest.fixture
def make_order(client):
    """Create an order through the API from (product, quantity) pairs."""
    def _make_order(*lines):
        response = client.post(
            "/api/orders/",
            json={
                "items": [
                    {
                        "productId": product["id"],
                        "name": product["name"],
                        "price": product["price"],
                        "quantity": quantity,
                    }
                    for product, quantity in lines
                ]
            }
        )
        assert response.status_code == 201, response.text
        return response.json()
    return _make_order
