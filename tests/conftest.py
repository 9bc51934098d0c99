"""
Shared pytest fixtures.

- Test settings pointing at TEST_DATABASE_URL (falls back to DATABASE_URL).
- Alembic migrations applied once per module that touches the database.
- `db_pool` / `repository`: a real PostgresRepository over the test database, with every
  clawxiv table truncated before each test (serialised by a session-wide lock).
  Both skip the test when no test database is configured.
- `mock_pg_repo`: an `AsyncMock(spec=PostgresRepository)` for service unit tests.
- `clock`: a controllable UTC clock injected into services.
- `bot_account`: a ready-made `BotAccount`.
"""

import asyncio
import logging
import os
import subprocess
import uuid
from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator, Optional
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from dotenv import load_dotenv
from psycopg_pool import AsyncConnectionPool

from clawxiv.core.config import Settings
from clawxiv.models.bot import BotAccount
from clawxiv.repositories.postgres_repo import PostgresRepository

logger = logging.getLogger(__name__)

dotenv_path = os.path.join(os.path.dirname(__file__), "..", ".env")
load_dotenv(dotenv_path=dotenv_path)

TEST_DB_URL_FROM_ENV = os.getenv("TEST_DATABASE_URL")
PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))

CLAWXIV_TABLES = (
    "clawxiv.submissions",
    "clawxiv.papers",
    "clawxiv.registration_attempts",
    "clawxiv.paper_id_sequences",
    "clawxiv.bot_accounts",
)

FIXED_NOW = datetime(2026, 1, 15, 12, 0, 0, tzinfo=timezone.utc)


class FrozenClock:
    """Callable clock for services; `advance` moves it forward."""

    def __init__(self, now: datetime = FIXED_NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    settings = Settings(
        database_url=TEST_DB_URL_FROM_ENV or os.getenv("DATABASE_URL"),
        base_url="https://clawxiv.test",
        environment="test",
        latex_compiler_url="https://compiler.test/api/compile",
        blob_bucket_name="clawxiv-test-papers",
    )
    logger.info(f"[test_settings] database configured: {bool(settings.database_url)}")
    return settings


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture
def bot_account() -> BotAccount:
    return BotAccount(
        id=uuid.UUID("11111111-2222-3333-4444-555555555555"),
        name="Alice",
        description="A test bot",
        paper_count=0,
        created_at=FIXED_NOW - timedelta(days=3),
    )


@pytest.fixture
def mock_pg_repo() -> AsyncMock:
    return AsyncMock(spec=PostgresRepository)


# --- Database fixtures --- #


@pytest.fixture(scope="session")
def db_cleanup_lock() -> asyncio.Lock:
    return asyncio.Lock()


@pytest.fixture(scope="module")
def apply_migrations() -> bool:
    """Runs `alembic upgrade head` against TEST_DATABASE_URL; False when it is unset."""
    if not TEST_DB_URL_FROM_ENV:
        logger.warning("TEST_DATABASE_URL is not set, skipping database migrations.")
        return False

    alembic_env = os.environ.copy()
    alembic_env["DATABASE_URL"] = TEST_DB_URL_FROM_ENV
    try:
        result = subprocess.run(
            ["alembic", "upgrade", "head"],
            cwd=PROJECT_ROOT,
            env=alembic_env,
            check=True,
            capture_output=True,
            text=True,
            timeout=60,
        )
        logger.info("Alembic upgrade head stdout:\n%s", result.stdout)
    except subprocess.CalledProcessError as e:
        logger.error("Alembic upgrade failed:\n%s\n%s", e.stdout, e.stderr)
        pytest.fail(f"Alembic upgrade head failed: {e.stderr}")
    except (FileNotFoundError, subprocess.TimeoutExpired) as e:
        pytest.fail(f"Could not run alembic: {e}")
    return True


@pytest_asyncio.fixture
async def db_pool(
    apply_migrations: bool,
) -> AsyncGenerator[Optional[AsyncConnectionPool], None]:
    if not apply_migrations:
        pytest.skip("TEST_DATABASE_URL is not configured.")
    pool = AsyncConnectionPool(
        conninfo=TEST_DB_URL_FROM_ENV, min_size=1, max_size=4, open=False
    )
    await pool.open()
    try:
        yield pool
    finally:
        await pool.close()


@pytest_asyncio.fixture
async def repository(
    db_pool: AsyncConnectionPool, db_cleanup_lock: asyncio.Lock
) -> AsyncGenerator[PostgresRepository, None]:
    async with db_cleanup_lock:
        async with db_pool.connection() as conn:
            async with conn.cursor() as cur:
                await cur.execute(f"TRUNCATE TABLE {', '.join(CLAWXIV_TABLES)} CASCADE;")
            await conn.commit()
    yield PostgresRepository(pool=db_pool)
