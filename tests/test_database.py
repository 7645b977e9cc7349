import pytest
from sqlalchemy import text
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession

from jira_sync.database import enable_sqlite_foreign_keys, init_db
from jira_sync.models import Base


@pytest.mark.asyncio
async def test_init_db_creates_all_tables():
    """Test that init_db creates the project and issue tables with their indexes."""
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", echo=False)

    # Override the global engine temporarily
    from jira_sync import database as db_mod
    original_engine = db_mod.engine
    db_mod.engine = engine

    try:
        await init_db()

        async with engine.begin() as conn:
            result = await conn.execute(text(
                "SELECT name FROM sqlite_master WHERE type='table' ORDER BY name"
            ))
            tables = {row[0] for row in result.fetchall()}

            result = await conn.execute(text(
                "SELECT name FROM sqlite_master WHERE type='index' AND tbl_name='jira_issue'"
            ))
            indexes = {row[0] for row in result.fetchall()}

        assert {"jira_project", "jira_issue"}.issubset(tables)
        assert {"idx_jira_issue_project_id", "idx_jira_issue_updated_at"}.issubset(indexes)

    finally:
        db_mod.engine = original_engine
        await engine.dispose()


@pytest.mark.asyncio
async def test_init_db_is_idempotent():
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", echo=False)

    from jira_sync import database as db_mod
    original_engine = db_mod.engine
    db_mod.engine = engine

    try:
        await init_db()
        await init_db()
    finally:
        db_mod.engine = original_engine
        await engine.dispose()


@pytest.mark.asyncio
async def test_project_name_is_nullable():
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", echo=False)

    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
            result = await conn.execute(text("PRAGMA table_info(jira_project)"))
            columns = {row[1]: row for row in result.fetchall()}

        # PRAGMA table_info: (cid, name, type, notnull, dflt_value, pk)
        assert columns["name"][3] == 0
        assert columns["key"][3] == 1
    finally:
        await engine.dispose()


@pytest.mark.asyncio
async def test_sqlite_foreign_keys_enabled_on_connect():
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", echo=False)
    enable_sqlite_foreign_keys(engine)

    try:
        async with engine.connect() as conn:
            result = await conn.execute(text("PRAGMA foreign_keys"))
            assert result.scalar() == 1
    finally:
        await engine.dispose()


@pytest.mark.asyncio
async def test_get_db_yields_session():
    """Test that get_db dependency yields a valid session."""
    from jira_sync.database import get_db

    engine = create_async_engine("sqlite+aiosqlite:///:memory:", echo=False)
    session_maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    # Override global session maker
    from jira_sync import database as db_mod
    original_session_maker = db_mod.AsyncSessionLocal
    db_mod.AsyncSessionLocal = session_maker

    try:
        gen = get_db()
        session = await gen.__anext__()

        try:
            assert isinstance(session, AsyncSession)

            result = await session.execute(text("SELECT 1"))
            assert result.scalar() == 1

        finally:
            try:
                await gen.__anext__()
            except StopAsyncIteration:
                pass

    finally:
        db_mod.AsyncSessionLocal = original_session_maker
        await engine.dispose()
