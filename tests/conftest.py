"""Test configuration and fixtures for dbgraphql."""

import os
import pytest
from dotenv import load_dotenv
from sqlalchemy.ext.asyncio import create_async_engine

from tests.models import Base

# Try to load environment variables from .env file
load_dotenv()


@pytest.fixture(scope="function")
async def engine(tmp_path):
    """Create a test database engine for each test function.

    Uses DBGRAPHQL_TEST_DATABASE_URL when set, otherwise an on-disk SQLite
    database under the test's tmp_path (separate connections share it).
    """
    test_db_url = os.getenv('DBGRAPHQL_TEST_DATABASE_URL')
    is_external_db = bool(test_db_url)
    if is_external_db:
        engine = create_async_engine(test_db_url, echo=False, pool_pre_ping=True)
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
            await conn.run_sync(Base.metadata.create_all)
    else:
        engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'dbgraphql_test.db'}", echo=False)
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    yield engine

    if is_external_db:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


# Import fixtures from fixtures module
from tests.fixtures import (  # noqa: E402,F401
    populated_db,
    api,
    executable,
)
