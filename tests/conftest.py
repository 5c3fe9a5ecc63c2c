"""Shared fixtures: a throwaway SQLite database per test."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

import catalog_hub.models  # noqa: F401  (registers tables on Base.metadata)
from catalog_hub.models import Merchant
from catalog_hub.stores.postgres import Base


@pytest.fixture
async def engine(tmp_path):
    """File-backed SQLite engine with all tables created."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'catalog.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
def session_scope(session_factory):
    """Same contract as stores.postgres.get_session: commit on success, rollback on error."""

    @asynccontextmanager
    async def scope() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    return scope


@pytest.fixture
async def merchant_id(session_scope) -> int:
    """A configured, active merchant."""
    async with session_scope() as session:
        merchant = Merchant(
            name="Acme Store",
            email="ops@acme.test",
            source_type="SHOPIFY",
            source_config={"storeUrl": "acme", "accessToken": "shpat_test"},
            shopify_configured=True,
            is_active=True,
        )
        session.add(merchant)
        await session.flush()
        return merchant.id
