"""Shared fixtures: a throwaway SQLite database and an HTTP client bound to it."""

import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from orchestrator.infrastructure.database import Base, build_engine, build_session_factory, get_db_session
from orchestrator.main import app


@pytest_asyncio.fixture
async def session_factory(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'orchestrator.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield build_session_factory(engine)
    await engine.dispose()


@pytest_asyncio.fixture
async def client(session_factory):
    async def _test_session():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db_session] = _test_session
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as http_client:
        yield http_client
    app.dependency_overrides.clear()
