import os

# The application engine is built at import time; keep it off PostgreSQL.
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

import pytest
import pytest_asyncio
from unittest.mock import AsyncMock, MagicMock

from app.core.db import build_engine, build_session_factory
from app.core.init_db import init_db
from app.main import create_store
from app.schemas.readings import CurrentWeather


@pytest_asyncio.fixture
async def test_engine(tmp_path):
    """
    Create a SQLite async engine on a fresh database file for each test
    and create all tables.

    A file (rather than `:memory:`) gives every session its own connection,
    as concurrent callers would have against a real server.
    """
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'weather.db'}")
    await init_db(engine)

    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    return build_session_factory(test_engine)


@pytest.fixture
def weather_client():
    """
    Stand-in for `OpenMeteoClient` reporting 12.5 degrees at a fixed time.
    """
    client = MagicMock()
    client.current_weather = AsyncMock(
        return_value=CurrentWeather(temperature=12.5, time="2024-01-01T12:00")
    )
    return client


@pytest.fixture
def store(session_factory, weather_client):
    return create_store(session_factory, client=weather_client)


@pytest.fixture
def registry(store):
    return store.registry


@pytest.fixture
def ledger(store):
    return store.ledger
