import pytest

from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from jira_sync.core.auth import verify_api_key
from jira_sync.database import enable_sqlite_foreign_keys, get_db
from jira_sync.models import Base


@pytest.fixture()
async def engine(tmp_path):
    db_file = tmp_path / "test.db"
    eng = create_async_engine(f"sqlite+aiosqlite:///{db_file}", future=True)
    enable_sqlite_foreign_keys(eng)
    try:
        yield eng
    finally:
        await eng.dispose()


@pytest.fixture()
async def session_maker(engine) -> async_sessionmaker[AsyncSession]:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture()
async def db_session(session_maker: async_sessionmaker[AsyncSession]):
    async with session_maker() as session:
        yield session


@pytest.fixture()
async def app(session_maker: async_sessionmaker[AsyncSession]):
    """
    FastAPI app with:
    - DB dependency overridden to use a per-test SQLite DB
    - API key dependency overridden
    """
    from jira_sync.main import app as fastapi_app

    async def override_get_db():
        async with session_maker() as session:
            yield session

    fastapi_app.dependency_overrides[get_db] = override_get_db
    fastapi_app.dependency_overrides[verify_api_key] = lambda: "test-key"

    try:
        yield fastapi_app
    finally:
        fastapi_app.dependency_overrides.clear()


@pytest.fixture()
async def client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
