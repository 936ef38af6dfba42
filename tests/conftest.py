"""Pytest configuration and fixtures."""

from collections.abc import AsyncGenerator, Generator

import pytest
from httpx import ASGITransport, AsyncClient

from transit_aggregator.config import Settings, get_settings
from transit_aggregator.main import app
from transit_aggregator.services.providers.registry import TransitRegistry, get_registry


@pytest.fixture
def settings() -> Settings:
    """Settings with every city configured."""
    return Settings().model_copy(update={"wmata_api_key": "test-key"})


@pytest.fixture
def registry(settings: Settings) -> TransitRegistry:
    return TransitRegistry(settings)


@pytest.fixture
def configured_env(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    """Environment with the WMATA key set, seen through a fresh get_settings()."""
    monkeypatch.setenv("WMATA_API_KEY", "test-key")
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
async def client(registry: TransitRegistry) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client for the app, resolving cities through ``registry``."""
    app.dependency_overrides[get_registry] = lambda: registry
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
