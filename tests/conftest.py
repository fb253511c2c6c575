"""Shared fixtures: settings, stores, gateways and the wired pipeline."""

import httpx
import pytest
import pytest_asyncio

from app.config import Settings
from app.core.components import build_components
from app.db import DatabaseManager
from app.main import create_app
from app.models import User  # noqa: F401  (registers tables on Base.metadata)
from app.stores.sql_identity_store import SqlIdentityStore
from tests.fixtures.fakes import (
    FakeProfileGateway,
    InMemoryDocumentStore,
    InMemoryIdentityStore,
)
from tests.fixtures.line_events import CHANNEL_SECRET


@pytest.fixture
def settings(tmp_path):
    return Settings(
        ENV="test",
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        line_channel_secret=CHANNEL_SECRET,
        line_channel_access_token="test-access-token",
        ingestion_max_attempts=3,
        ingestion_retry_base_delay=0,
        summary_update_attempts=2,
    )


@pytest_asyncio.fixture
async def database(settings):
    """Fresh sqlite database with all tables created."""
    manager = DatabaseManager(settings)
    await manager.create_all()
    yield manager
    await manager.dispose()


@pytest.fixture
def sql_identity_store(database):
    return SqlIdentityStore(database.session_factory)


@pytest.fixture
def identity_store():
    return InMemoryIdentityStore()


@pytest.fixture
def document_store():
    return InMemoryDocumentStore()


@pytest.fixture
def profiles():
    return FakeProfileGateway()


@pytest.fixture
def recorded():
    """Collects (event, talk_room) pairs passed to the on_recorded hook."""
    return []


@pytest.fixture
def components(settings, sql_identity_store, document_store, profiles, recorded):
    async def on_recorded(event, talk_room):
        recorded.append((event, talk_room))

    return build_components(
        settings=settings,
        identity_store=sql_identity_store,
        conversations=document_store,
        timeline=document_store,
        profiles=profiles,
        on_recorded=on_recorded,
    )


@pytest.fixture
def app(components):
    return create_app(testing=True, components=components)


@pytest_asyncio.fixture
async def client(app):
    """Async client bound to the ASGI app; shares the test's event loop."""
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
