"""
Shared test fixtures — SQLite test database, test client, store/wizard helpers.
"""

import os
from io import BytesIO

import pytest
from fastapi.testclient import TestClient
from PIL import Image
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

# Point the app at the test database before importing app modules
os.environ["DATABASE_URL"] = "sqlite:///./test.db"

from garment_costing.database import Base, get_db
from garment_costing.image_codec import compress
from garment_costing.main import app
from garment_costing.store import CostingStore
from garment_costing.wizard import CostingWizard


TEST_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


app.dependency_overrides[get_db] = override_get_db


@pytest.fixture(autouse=True)
def setup_database():
    """Create all tables before each test, drop after."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client():
    """FastAPI test client with a fresh wizard."""
    app.state.wizard = None
    return TestClient(app)


@pytest.fixture
def db():
    """Direct database session for test setup/assertions."""
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def store(db):
    return CostingStore(db)


@pytest.fixture
def wizard(store):
    return CostingWizard(store)


def make_image_bytes(size=(64, 48), color=(200, 30, 60), fmt="PNG", mode="RGB"):
    """Encode a solid-color test image."""
    img = Image.new(mode, size, color)
    out = BytesIO()
    img.save(out, format=fmt)
    return out.getvalue()


@pytest.fixture
def photo():
    """A small compressed garment photo."""
    return compress(make_image_bytes())
