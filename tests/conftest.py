import os

os.environ["ENCODE_KEY"] = "test-only-session-signing-key-0123456789abcdef"
os.environ["AUTH_DOMAIN"] = "svc"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["ENVIRONMENT"] = "test"
os.environ["RECORDS_PUBLIC_READ"] = "false"

from typing import Generator

import pytest
from eth_account import Account
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from main import app
from rpckeys.db.base import Base
from rpckeys.db.session import get_db
from tests.helpers import ALICE_KEY, BOB_KEY, TestingSessionLocal, engine, override_get_db


@pytest.fixture(autouse=True)
def tables() -> Generator:
    """Fresh schema for every test"""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db() -> Generator[Session, None, None]:
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client() -> TestClient:
    """Create a test client for the FastAPI application"""
    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def alice():
    return Account.from_key(ALICE_KEY)


@pytest.fixture
def bob():
    return Account.from_key(BOB_KEY)
