"""Shared fixtures: isolated settings, app wiring and an ASGI client."""

import pytest
from httpx import ASGITransport, AsyncClient

from helpers import FakeProvider
from stylizer.config import Settings
from stylizer.jobs.store import JobStore
from stylizer.main import create_app
from stylizer.storage.artifacts import ArtifactStore


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def settings(tmp_path):
    return Settings(
        _env_file=None,
        upload_dir=str(tmp_path / "uploads"),
        provider="simulated",
        poll_interval_seconds=0.0,
        max_poll_attempts=5,
    )


@pytest.fixture
def store():
    return JobStore()


@pytest.fixture
def artifacts(tmp_path):
    artifact_store = ArtifactStore(str(tmp_path / "artifacts"))
    artifact_store.ensure_dirs()
    return artifact_store


@pytest.fixture
def provider():
    return FakeProvider()


@pytest.fixture
async def app(settings, provider):
    application = create_app(settings, provider=provider)
    await application.state.dispatcher.start()
    yield application
    await application.state.dispatcher.stop()


@pytest.fixture
async def client(app):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
