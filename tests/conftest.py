"""
Pytest configuration and shared fixtures.

Provides fake-provider managers, a controllable clock and a FastAPI
TestClient for the provider manager test suite.

IMPORTANT: Environment variables must be set BEFORE importing modules
that use pydantic-settings.
"""

import os
from datetime import datetime, timedelta, timezone

# Set test environment variables before importing package modules
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["DEBUG"] = "false"
for _key in (
    "OPENAI_API_KEY",
    "ANTHROPIC_API_KEY",
    "GROQ_API_KEY",
    "SERPER_API_KEY",
    "COST_ALERT_THRESHOLD",
):
    os.environ.pop(_key, None)

# Now safe to import everything else
import pytest
from fastapi.testclient import TestClient

from fixtures import (
    GOOGLE_RESULTS,
    SERPER_RESULTS,
    FakeEmbeddingProvider,
    FakeExtractionProvider,
    FakeSearchProvider,
    FakeTextProvider,
)


def pytest_configure(config):
    """Configure custom pytest markers."""
    config.addinivalue_line("markers", "asyncio: mark test as async")
    config.addinivalue_line(
        "markers", "integration: mark test as requiring real API calls"
    )


@pytest.fixture(autouse=True)
def reset_singletons():
    """
    Reset all singleton instances between tests.

    This ensures each test starts with a clean state.
    """
    yield

    from provider_manager.config import get_settings
    from provider_manager.metrics import cost

    get_settings.cache_clear()
    cost._calculator = None


class FakeClock:
    """Settable UTC clock for CostTracker and ResponseCache tests."""

    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def tracker(clock):
    """CostTracker driven by the fake clock."""
    from provider_manager.metrics.store import CostTracker

    return CostTracker(clock=clock)


@pytest.fixture
def manager():
    """ProviderManager with no providers registered."""
    from provider_manager.dispatcher.manager import ProviderManager

    return ProviderManager()


@pytest.fixture
def openai_text():
    return FakeTextProvider("openai")


@pytest.fixture
def anthropic_text():
    return FakeTextProvider("anthropic")


@pytest.fixture
def text_manager(manager, openai_text, anthropic_text):
    """
    Manager with openai and anthropic text providers.

    Matches the default query-enhancement routing: openai primary,
    anthropic fallback.
    """
    manager.register_text_provider("openai", openai_text)
    manager.register_text_provider("anthropic", anthropic_text)
    return manager


@pytest.fixture
def search_manager(manager):
    """Manager with serper and google search providers sharing one URL."""
    manager.register_search_provider(
        "serper", FakeSearchProvider("serper", results=SERPER_RESULTS)
    )
    manager.register_search_provider(
        "google", FakeSearchProvider("google", results=GOOGLE_RESULTS, cost=0.005)
    )
    return manager


@pytest.fixture
def full_manager(text_manager):
    """Manager with every capability registered."""
    text_manager.register_embedding_provider("openai", FakeEmbeddingProvider("openai"))
    text_manager.register_extraction_provider("anthropic", FakeExtractionProvider("anthropic"))
    text_manager.register_extraction_provider("openai", FakeExtractionProvider("openai"))
    text_manager.register_search_provider(
        "serper", FakeSearchProvider("serper", results=SERPER_RESULTS)
    )
    text_manager.register_search_provider(
        "google", FakeSearchProvider("google", results=GOOGLE_RESULTS)
    )
    return text_manager


@pytest.fixture
def test_client(full_manager):
    """
    Create a FastAPI TestClient around a fake-provider manager.

    The manager is installed on app.state before startup so the lifespan
    keeps it instead of building real adapters.
    """
    from provider_manager.main import app

    app.state.manager = full_manager
    with TestClient(app) as client:
        yield client
    app.state.manager = None
