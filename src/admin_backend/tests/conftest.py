"""
Pytest configuration and fixtures for all tests.
"""

import asyncio
import pytest
from aiocache import SimpleMemoryCache
from aiocache.serializers import JsonSerializer
from fastapi.testclient import TestClient

from admin_backend.database import build_engine, build_session_factory, init_schema
from admin_backend.model import Base
from admin_backend.server import create_app
from admin_backend.settings import BackendSettings
from admin_backend.tests.fixtures import FakeRedis

TEST_ENVIRON = {
    "DEBUG_MODE": "development",
    "LOG_LEVEL": "DEBUG",
    "DATABASE_URL": "sqlite://",
    "TOKEN_SECRET_KEY": "test-secret-key-with-enough-entropy",
    "PASSWORD_HASH_ROUNDS": "4",
    "CAPTCHA_ENABLED": "true",
}


@pytest.fixture
def settings():
    """Settings snapshot built from a dict instead of the process environment."""
    return BackendSettings(environ=TEST_ENVIRON)


@pytest.fixture
def engine(settings):
    """In-memory SQLite engine with every table created."""
    engine = build_engine(settings)
    init_schema(engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture
def db(session_factory):
    """Create a new database session for a test."""
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def memory_cache():
    """aiocache memory backend; its storage is shared per process, so clear it around each test."""
    cache = SimpleMemoryCache(serializer=JsonSerializer())
    asyncio.run(cache.clear())
    yield cache
    asyncio.run(cache.clear())


@pytest.fixture
def app(settings, session_factory, fake_redis, memory_cache):
    return create_app(settings, session_factory=session_factory, redis=fake_redis, cache=memory_cache)


@pytest.fixture
def state(app):
    """The ``App`` holding every handle of the test application."""
    return app.state.app


@pytest.fixture
def client(app):
    return TestClient(app)
