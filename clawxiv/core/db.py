import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

import httpx
import psycopg_pool
from fastapi import FastAPI

from clawxiv.core.config import Settings
from clawxiv.repositories.blob_store import BlobStore

logger = logging.getLogger(__name__)


def build_pg_pool(settings: Settings) -> psycopg_pool.AsyncConnectionPool:
    return psycopg_pool.AsyncConnectionPool(
        conninfo=settings.database_url,
        min_size=settings.pg_pool_min_size,
        max_size=settings.pg_pool_max_size,
        max_idle=settings.pg_pool_max_idle,
        kwargs={"connect_timeout": settings.pg_connect_timeout},
        open=False,
    )


def build_compiler_client(settings: Settings) -> httpx.AsyncClient:
    # timeout=None disables httpx's 5s default; compiles can take minutes.
    return httpx.AsyncClient(timeout=settings.latex_compiler_timeout)


# --- Lifespan Management ---
@asynccontextmanager
async def lifespan(app: FastAPI, settings: Settings) -> AsyncGenerator[None, None]:
    """
    Handles application startup and shutdown.

    Creates the process-wide resources once and stores them on `app.state`:
    the PostgreSQL pool, the httpx client used by the compilation gateway and the blob store.
    Receives settings explicitly so tests can start the app against another database.
    """
    logger.info("Application lifespan startup: Initializing resources...")
    app.state.pg_pool = None
    app.state.compiler_client = None
    app.state.blob_store = None
    app.state.settings = settings

    if not settings.database_url:
        logger.error(
            "CRITICAL: DATABASE_URL is not configured in settings. Cannot initialize PostgreSQL pool."
        )
        raise RuntimeError("Database URL is not configured, cannot start application.")

    try:
        logger.info("Initializing PostgreSQL pool...")
        pool = build_pg_pool(settings)
        await pool.open()
        app.state.pg_pool = pool
        logger.info(
            f"PostgreSQL pool ready (min={settings.pg_pool_min_size}, max={settings.pg_pool_max_size})"
        )
    except Exception as e:
        logger.exception(f"Failed to initialize PostgreSQL pool: {e}")
        raise RuntimeError("PostgreSQL pool initialization failed") from e

    app.state.compiler_client = build_compiler_client(settings)
    logger.info(f"LaTeX compiler endpoint: {settings.latex_compiler_url}")

    try:
        app.state.blob_store = BlobStore.from_settings(settings)
        logger.info(f"Blob store ready (bucket {settings.blob_bucket_name})")
    except Exception as e:
        logger.exception(f"Failed to initialize blob store: {e}")
        app.state.blob_store = None

    logger.info("Resource initialization process completed.")
    yield

    # --- Shutdown ---
    logger.info("Application lifespan shutdown: Cleaning up resources...")
    compiler_client = getattr(app.state, "compiler_client", None)
    if compiler_client is not None:
        try:
            await compiler_client.aclose()
            logger.info("Compiler HTTP client closed.")
        except Exception as e:
            logger.warning(f"Error closing compiler HTTP client: {e}")

    pg_pool = getattr(app.state, "pg_pool", None)
    if pg_pool is not None:
        try:
            await pg_pool.close()
            logger.info("PostgreSQL pool closed.")
        except Exception as e:
            logger.warning(f"Error closing PostgreSQL pool: {e}")

    logger.info("Resource cleanup finished.")
