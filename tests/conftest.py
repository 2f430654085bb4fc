import os

TEST_DB_FILE = "test_edugrid.db"
TEST_DB_URL = f"sqlite:///./{TEST_DB_FILE}"

# must be set before edugrid.core.config is imported
os.environ.setdefault("EDUGRID_DATABASE_URL", TEST_DB_URL)

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from edugrid.core.deps import get_store  # noqa: E402
from edugrid.db.classroom_store import ClassroomStore  # noqa: E402
from edugrid.main import app  # noqa: E402
from tests.factories import classroom_document  # noqa: E402


@pytest.fixture(scope="session")
def store():
    """One store over a throwaway SQLite file for the whole test session."""
    s = ClassroomStore(TEST_DB_URL)
    s.connect()
    yield s
    s.disconnect()
    if os.path.exists(TEST_DB_FILE):
        os.remove(TEST_DB_FILE)


@pytest.fixture(autouse=True)
def seed_data(store):
    """A clean classroom (instructor, two students, one task due tomorrow) for each test."""
    store.clear()
    store.insert_one(classroom_document())
    yield


@pytest.fixture()
def client(store):
    """Test client that talks to the test store via dependency override."""
    app.dependency_overrides[get_store] = lambda: store
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
