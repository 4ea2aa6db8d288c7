"""
Global pytest fixtures for the Affiliate Platform test suite.

Responsibilities:
    - Provide a fresh FastAPI TestClient via the app factory for integration tests
    - Provide an isolated in-memory Storage for direct testing
    - Provide the core services wired to that Storage

Using `create_app(storage=...)` gives each test fresh in-memory state and
lets the test inspect the exact backend the app writes to.
"""

import pytest
from fastapi.testclient import TestClient

from main import create_app
from affiliate_platform.analytics.aggregator import AnalyticsAggregator
from affiliate_platform.analytics.click_recorder import ClickRecorder
from affiliate_platform.conversions.merger import ConversionMerger
from affiliate_platform.manager.link_store import LinkStore
from affiliate_platform.storage.storage import Storage


@pytest.fixture
def storage() -> Storage:
    """Fresh in-memory Storage backend."""
    return Storage()


@pytest.fixture
def link_store(storage: Storage) -> LinkStore:
    return LinkStore(storage, base_url="https://aff.test/go?code=")


@pytest.fixture
def recorder(storage: Storage):
    rec = ClickRecorder(storage, max_workers=2)
    yield rec
    rec.shutdown()


@pytest.fixture
def aggregator(storage: Storage) -> AnalyticsAggregator:
    return AnalyticsAggregator(storage)


@pytest.fixture
def merger(storage: Storage) -> ConversionMerger:
    return ConversionMerger(storage)


@pytest.fixture
def app(storage: Storage):
    """App wired to the `storage` fixture."""
    return create_app(storage=storage)


@pytest.fixture
def client(app) -> TestClient:
    """
    Fresh TestClient; redirects are not followed so tests can inspect the 302.
    Entering the client runs the app lifespan, so the click recorder is shut
    down (and drained) when the test ends.
    """
    with TestClient(app, follow_redirects=False) as c:
        yield c
