import os
import random
import tempfile

# keep log files out of the working tree; must run before country_cache imports
os.environ.setdefault("LOG_DIR", tempfile.mkdtemp(prefix="country-cache-logs-"))

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from country_cache.config import config
from country_cache.db import Base, get_session
from country_cache.fetchers import DataFetcher
from country_cache.main import app, get_fetcher, get_rng
from country_cache.schema import CountryApiItem

# Setup test database
DATABASE_URL = "sqlite+aiosqlite:///:memory:"


def make_country(name, population=1_000_000, codes=("XYZ",), region="Africa", capital=None):
    return CountryApiItem(
        name=name,
        population=population,
        capital=capital or f"{name} City",
        region=region,
        flag=f"https://flags.example/{name.lower()}.svg",
        currencies=[{"code": code, "name": f"{code} money", "symbol": "$"} for code in codes],
    )


class FakeFetcher(DataFetcher):
    """Serves canned payloads, or raises ``error`` when it is set."""

    def __init__(self, countries=None, rates=None, error=None):
        super().__init__()
        self.countries = countries or []
        self.rates = rates or {}
        self.error = error
        self.calls = 0

    async def fetch_all(self):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return list(self.countries), dict(self.rates)


@pytest.fixture(autouse=True)
def cache_dir(tmp_path, monkeypatch):
    """Keep summary images out of the working tree."""
    path = tmp_path / "cache"
    monkeypatch.setattr(config, "CACHE_DIR", str(path))
    return path


@pytest_asyncio.fixture(scope="function")
async def engine():
    """Fresh in-memory database with the schema created, per test"""
    engine = create_async_engine(
        DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(
        autoflush=False,
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


@pytest_asyncio.fixture(scope="function")
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def fake_fetcher():
    return FakeFetcher(
        countries=[make_country("Wakanda", population=2_000_000)],
        rates={"XYZ": 2.0},
    )


@pytest_asyncio.fixture(scope="function")
async def client(session_factory, fake_fetcher):
    """Async HTTP client for testing"""

    async def override_get_session():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_session] = override_get_session
    app.dependency_overrides[get_fetcher] = lambda: fake_fetcher
    app.dependency_overrides[get_rng] = lambda: random.Random(1234)
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test"
    ) as ac:
        yield ac
    app.dependency_overrides.clear()
