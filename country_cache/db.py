from typing import AsyncGenerator

import sqlalchemy as sa
from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from country_cache.log import setup_logger

logger = setup_logger(__name__, "app.log")

Base = declarative_base()


class Country(Base):
    __tablename__ = "countries"
    id = sa.Column(sa.Integer, primary_key=True, autoincrement=True)
    # lowercased country name, the natural key
    name = sa.Column(sa.String(255), nullable=False, unique=True)
    capital = sa.Column(sa.String(255), nullable=True)
    region = sa.Column(sa.String(100), nullable=True)
    population = sa.Column(sa.BigInteger, nullable=False, default=0)
    currency_code = sa.Column(sa.String(10), nullable=True)
    exchange_rate = sa.Column(sa.Float, nullable=True)
    estimated_gdp = sa.Column(sa.Float, nullable=True)
    flag_url = sa.Column(sa.String(500), nullable=True)
    last_refreshed_at = sa.Column(sa.DateTime(timezone=True), nullable=True)

    def __repr__(self):
        return f"<Country {self.name}>"


class Database:
    """
    Process-wide store handle.

    Owns the async engine and the session factory. It is created once by the
    application lifespan, initialised explicitly with :meth:`init` and
    disposed explicitly with :meth:`dispose`; request handlers receive
    sessions from it through :func:`get_session` instead of importing a
    global engine.
    """

    def __init__(self, url: str, **engine_kwargs):
        self.url = url
        self.engine: AsyncEngine = create_async_engine(url, **engine_kwargs)
        self.session_factory = async_sessionmaker(
            bind=self.engine, class_=AsyncSession, expire_on_commit=False
        )

    async def init(self):
        """Create every table defined on ``Base.metadata`` that does not exist yet."""
        async with self.engine.begin() as conn:
            # Use run_sync to call the synchronous create_all method in an async context
            await conn.run_sync(Base.metadata.create_all)
        logger.info(f"Tables ready: {list(Base.metadata.tables.keys())}")

    async def dispose(self):
        await self.engine.dispose()
        logger.info("Database engine disposed.")


async def get_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """
    Yield a session from the handle stored on ``app.state.database``.

    The session is closed when the request that depends on it finishes.
    """
    database: Database = request.app.state.database
    async with database.session_factory() as session:
        yield session
