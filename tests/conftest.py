import pytest
from unittest.mock import MagicMock
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from fastapi.testclient import TestClient
import os
import sys

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

os.environ.setdefault("DATABASE_URL", "sqlite://")

from image_gateway.api_gateway import app, get_db, get_image_provider, get_asset_store
from image_gateway.asset_store import AssetStore
from image_gateway.database import init_db
from image_gateway.image_provider import GeminiImageProvider

BUCKET = "photo-ai-test"
PUBLIC_BASE_URL = "https://storage.googleapis.com"


@pytest.fixture()
def sample_request():
    return {
        "prompt": "a cat",
        "sampleCount": 2,
    }


@pytest.fixture()
def mock_db_session():
    return MagicMock(spec=Session)


@pytest.fixture()
def mock_provider():
    return MagicMock(spec=GeminiImageProvider)


@pytest.fixture()
def mock_s3_client():
    return MagicMock()


@pytest.fixture()
def asset_store(mock_s3_client):
    return AssetStore(mock_s3_client, BUCKET, PUBLIC_BASE_URL)


@pytest.fixture()
def sqlite_session():
    engine = create_engine("sqlite://")
    init_db(bind=engine)
    session = sessionmaker(bind=engine)()

    yield session

    session.close()
    engine.dispose()


@pytest.fixture()
def client(mock_db_session, mock_provider, asset_store):
    app.dependency_overrides[get_db] = lambda: mock_db_session
    app.dependency_overrides[get_image_provider] = lambda: mock_provider
    app.dependency_overrides[get_asset_store] = lambda: asset_store

    test_client = TestClient(app)

    yield test_client

    app.dependency_overrides.clear()
