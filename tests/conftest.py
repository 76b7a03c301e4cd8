"""
Shared fixtures: temporary SQLite database, controllable clock, services and HTTP client
"""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from ephemeral_store import models  # noqa: F401
from ephemeral_store.config import MILLIS_PER_DAY
from ephemeral_store.database import Base, create_db_engine
from ephemeral_store.main import create_app
from ephemeral_store.services.entries import EntryService
from ephemeral_store.services.entry_store import EntryStore
from ephemeral_store.services.stats import StatsReporter
from ephemeral_store.services.sweeper import ExpirySweeper

TTL_MS = 25 * MILLIS_PER_DAY
START_MILLIS = 1_700_000_000_000


class FakeClock:
    """Epoch-millisecond clock that only moves when told to."""

    def __init__(self, now: int = START_MILLIS):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, millis: int) -> int:
        self.now += millis
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def database_url(tmp_path):
    return f"sqlite:///{tmp_path / 'storage.db'}"


@pytest.fixture
def session_factory(database_url):
    engine = create_db_engine(database_url)
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    engine.dispose()


@pytest.fixture
def store(session_factory):
    return EntryStore(session_factory, ttl_ms=TTL_MS)


@pytest.fixture
def service(store, clock):
    return EntryService(store, page_size=10, max_payload_bytes=1024, clock=clock)


@pytest.fixture
def sweeper(store, clock):
    return ExpirySweeper(store, clock=clock)


@pytest.fixture
def reporter(store):
    return StatsReporter(store)


@pytest.fixture
def client(database_url, clock):
    app = create_app(database_url=database_url, environment="testing", clock=clock)
    with TestClient(app) as test_client:
        yield test_client
