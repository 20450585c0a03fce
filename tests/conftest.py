import mongomock
import pytest
from fastapi.testclient import TestClient

from ledger import OrderLedger
from main import create_app
from profiles import ProfileStore


@pytest.fixture
def db():
    return mongomock.MongoClient()["userprofile-test"]


@pytest.fixture
def profiles(db):
    return ProfileStore(db)


@pytest.fixture
def ledger(db, profiles):
    return OrderLedger(db, profiles)


@pytest.fixture
def client(db):
    with TestClient(create_app(db)) as c:
        yield c


@pytest.fixture
def ann():
    return {"name": "Ann", "email": "ann@x.com", "age": 30}
